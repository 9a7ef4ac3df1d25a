"""Authentication utilities: password hashing + token management."""

import hashlib
import secrets
from fastapi import HTTPException, Request, Response
from server.database import get_db
from server.config import AUTH_COOKIE_MAX_AGE, AUTH_COOKIE_NAME, IS_PRODUCTION


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    h = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), 100_000)
    return f"{salt}${h.hex()}"


def verify_password(password: str, stored_hash: str) -> bool:
    if not stored_hash or "$" not in stored_hash:
        return False
    salt, h = stored_hash.split("$", 1)
    new_h = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), 100_000)
    return secrets.compare_digest(new_h.hex(), h)


def generate_token() -> str:
    return secrets.token_urlsafe(48)


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=IS_PRODUCTION,
        samesite="lax",
        path="/",
        max_age=AUTH_COOKIE_MAX_AGE,
    )


def _token_from_request(request: Request):
    token = request.cookies.get(AUTH_COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def get_current_user(request: Request):
    """FastAPI dependency: session token from cookie or Bearer header."""
    session_token = _token_from_request(request)
    if not session_token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    db = get_db()
    user = db.execute(
        "SELECT * FROM users WHERE auth_token = ?", (session_token,)
    ).fetchone()
    db.close()

    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return dict(user)
