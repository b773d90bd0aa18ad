"""Account authentication for the HTTP API."""

from .models import TokenResponse, User, UserCreate, UserLogin, UserResponse
from .service import USER_COLLECTION, AuthService

__all__ = [
    "AuthService",
    "USER_COLLECTION",
    "User",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "TokenResponse",
]
