from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from dashboard_auth.users import UserRecord


class ApiErrorDetail(BaseModel):
    code: str
    message: str


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("username must not be empty")
        return stripped


class UserResponse(BaseModel):
    id: int
    username: str
    email: str | None
    full_name: str | None
    last_login: datetime | None

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            last_login=user.last_login,
        )


class LoginResponse(BaseModel):
    session_id: str
    expires_at: datetime
    user: UserResponse


class SessionCheckResponse(BaseModel):
    authenticated: bool
    user: UserResponse


class DisableUserResponse(BaseModel):
    user_id: int
    revoked_sessions: int
