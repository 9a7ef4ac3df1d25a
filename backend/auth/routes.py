"""Authentication routes: signup, login, logout, me."""

import logging
from fastapi import APIRouter, HTTPException, Depends, Response
from server.database import get_db
from server.config import AUTH_COOKIE_NAME
from auth.utils import hash_password, verify_password, generate_token, get_current_user, set_session_cookie
from auth.schemas import SignupRequest, LoginRequest, AuthResponse
from users.schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _user_response(row) -> UserResponse:
    return UserResponse(**{k: row[k] for k in UserResponse.model_fields})


@router.post("/signup", response_model=AuthResponse)
def signup(body: SignupRequest, response: Response):
    email = body.email.lower().strip()
    if len(body.password) < 6:
        raise HTTPException(status_code=400, detail="Password must be at least 6 characters")
    if not email or "@" not in email:
        raise HTTPException(status_code=400, detail="Valid email required")
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Name is required")
    if body.daily_hours <= 0 or body.daily_hours > 24:
        raise HTTPException(status_code=400, detail="daily_hours must be between 0 and 24")

    db = get_db()
    existing = db.execute("SELECT id FROM users WHERE email = ?", (email,)).fetchone()
    if existing:
        db.close()
        raise HTTPException(status_code=409, detail="User already exists")

    token = generate_token()
    try:
        cursor = db.execute(
            """INSERT INTO users (name, email, password_hash, auth_token, daily_hours, timezone_offset)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (body.name.strip(), email, hash_password(body.password),
             token, body.daily_hours, body.timezone_offset)
        )
        db.commit()
        row = db.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone()
    finally:
        db.close()

    logger.info("User signed up: %s", email)
    set_session_cookie(response, token)
    return AuthResponse(token=token, user=_user_response(row))


@router.post("/login", response_model=AuthResponse)
def login(body: LoginRequest, response: Response):
    db = get_db()
    row = db.execute(
        "SELECT * FROM users WHERE email = ?", (body.email.lower().strip(),)
    ).fetchone()

    if not row or not verify_password(body.password, row["password_hash"]):
        db.close()
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = generate_token()
    db.execute("UPDATE users SET auth_token = ? WHERE id = ?", (token, row["id"]))
    db.commit()
    db.close()

    logger.info("User logged in: %s", row["email"])
    set_session_cookie(response, token)
    return AuthResponse(token=token, user=_user_response(row))


@router.post("/logout")
def logout(response: Response, current_user: dict = Depends(get_current_user)):
    db = get_db()
    db.execute("UPDATE users SET auth_token = NULL WHERE id = ?", (current_user["id"],))
    db.commit()
    db.close()

    response.delete_cookie(key=AUTH_COOKIE_NAME, httponly=True, samesite="lax", path="/")
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
def get_me(current_user: dict = Depends(get_current_user)):
    return _user_response(current_user)
