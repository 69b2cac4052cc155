"""Pydantic models for auth domain.

JSON bodies use camelCase keys; Python code uses snake_case field names.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class UserRole(str, Enum):
    """Roles a user may hold."""

    USER = "user"
    ADMIN = "admin"


class User(CamelModel):
    """A registered user, safe to return to callers (no password hash)."""

    id: UUID
    email: str
    phone: str | None = None
    full_name: str | None = None
    role: UserRole = UserRole.USER
    preferences: dict[str, Any] = Field(default_factory=dict)
    last_login_at: datetime | None = None
    created_at: datetime


class UserRecord(User):
    """User row as stored, including the password hash.

    Never leaves the auth service: call sanitize() first.
    """

    password_hash: str = Field(..., repr=False)

    def sanitize(self) -> User:
        """Return the same user without the password hash."""
        return User(**self.model_dump(exclude={"password_hash"}))


class TokenPair(CamelModel):
    """Freshly issued access/refresh tokens."""

    access_token: str
    refresh_token: str
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class AuthenticatedUser(CamelModel):
    """User info returned after successful registration or login."""

    user: User
    access_token: str
    refresh_token: str
    expires_in: int

    @classmethod
    def from_pair(cls, user: User, tokens: TokenPair) -> "AuthenticatedUser":
        return cls(
            user=user,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
        )


# Request bodies. Emails are plain strings so the service can report bad
# syntax as a ValidationError rather than a schema error.


class RegisterRequest(CamelModel):
    email: str
    password: str
    phone: str | None = None
    full_name: str | None = None


class LoginRequest(CamelModel):
    email: str
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


class LogoutRequest(CamelModel):
    refresh_token: str | None = None


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str


class PasswordResetRequest(CamelModel):
    email: str


class ResetPasswordRequest(CamelModel):
    token: str
    new_password: str


class ProfileUpdateRequest(CamelModel):
    phone: str | None = None
    full_name: str | None = None
