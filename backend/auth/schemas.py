"""Auth request/response schemas."""

from pydantic import BaseModel
from users.schemas import UserResponse


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str
    daily_hours: float = 4.0
    timezone_offset: int = 0


class LoginRequest(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    token: str
    user: UserResponse
