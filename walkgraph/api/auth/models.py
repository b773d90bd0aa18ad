"""Authentication models for accounts and JWT tokens."""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, Field

from walkgraph.core.entities.object import Object

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserCreate(BaseModel):
    """Model for creating a new account."""

    email: str = Field(..., pattern=EMAIL_PATTERN, description="User email address")
    password: str = Field(
        ..., min_length=6, description="User password (min 6 characters)"
    )


class UserLogin(BaseModel):
    """Model for user login."""

    email: str = Field(..., description="User email address")
    password: str = Field(..., description="User password")


class UserResponse(BaseModel):
    """Model for user response data."""

    id: str = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    created_at: datetime = Field(..., description="User creation timestamp")


class TokenResponse(BaseModel):
    """Model for authentication token response."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiration time in seconds")
    user: UserResponse = Field(..., description="User information")


class User(Object):
    """Account record.

    Users are plain Objects: they live in the ``user`` collection of the
    account database and are never part of a graph.
    """

    email: str = Field(..., description="User email address")
    password_hash: str = Field(..., description="bcrypt password hash")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="User creation timestamp",
    )

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "User":
        """Rebuild a user from its stored record."""
        return cls(id=record["id"], **record.get("context", {}))

    def to_response(self) -> UserResponse:
        return UserResponse(id=self.id, email=self.email, created_at=self.created_at)


__all__ = ["UserCreate", "UserLogin", "UserResponse", "TokenResponse", "User"]
