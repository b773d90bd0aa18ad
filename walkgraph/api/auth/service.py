"""Account registration, login and token validation.

Passwords are hashed with bcrypt and access tokens are HS256 JWTs signed
with ``Settings.jwt_secret``. Accounts are stored in the ``user``
collection of the account database, separate from any graph.
"""

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import bcrypt
import jwt

from walkgraph.config import Settings, get_settings
from walkgraph.db import Database, get_database
from walkgraph.exceptions import AuthenticationError

from .models import TokenResponse, User, UserCreate, UserLogin, UserResponse

USER_COLLECTION = "user"

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service backed by a Database.

    Args:
        database: Account database; a memory database when None
        settings: Token settings; the global settings when None
    """

    def __init__(
        self,
        database: Optional[Database] = None,
        settings: Optional[Settings] = None,
    ):
        self.database = database if database is not None else get_database("memory")
        settings = settings or get_settings()
        self.jwt_secret = settings.jwt_secret
        self.jwt_algorithm = settings.jwt_algorithm
        self.jwt_expire_minutes = settings.jwt_expire_minutes

    @staticmethod
    def _password_bytes(password: str) -> bytes:
        # bcrypt only reads the first 72 bytes
        data = password.encode("utf-8")
        if len(data) > 72:
            data = hashlib.sha256(data).hexdigest().encode("ascii")
        return data

    def _hash_password(self, password: str) -> str:
        """Hash a password with a fresh bcrypt salt."""
        hashed = bcrypt.hashpw(self._password_bytes(password), bcrypt.gensalt())
        return hashed.decode("utf-8")

    def _verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(
                self._password_bytes(password), password_hash.encode("utf-8")
            )
        except ValueError:
            return False

    def _generate_jwt_token(self, user_id: str, email: str) -> Tuple[str, datetime]:
        """Generate a JWT token for a user.

        Args:
            user_id: User ID
            email: User email

        Returns:
            Tuple of (token_string, expiration_datetime)
        """
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(minutes=self.jwt_expire_minutes)
        payload = {
            "user_id": user_id,
            "email": email,
            "iat": now,
            "exp": expires_at,
            "jti": str(uuid.uuid4()),
        }
        token = jwt.encode(payload, self.jwt_secret, algorithm=self.jwt_algorithm)
        return token, expires_at

    def _decode_jwt_token(self, token: str) -> Optional[Dict[str, Any]]:
        """Decode and validate a JWT token.

        Returns:
            Token payload if valid, None otherwise
        """
        try:
            return jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            logger.debug("Rejected expired token")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("JWT token decode failed: %s", e)
            return None

    async def _find_user_by_email(self, email: str) -> Optional[User]:
        record = await self.database.find_one(
            USER_COLLECTION, {"context.email": email.lower()}
        )
        return User.from_record(record) if record else None

    async def get_user(self, user_id: str) -> Optional[UserResponse]:
        record = await self.database.get(USER_COLLECTION, user_id)
        return User.from_record(record).to_response() if record else None

    async def register(self, email: str, password: str) -> UserResponse:
        """Register a new account.

        Args:
            email: Account email; compared case-insensitively
            password: Plain text password (min 6 characters)

        Returns:
            UserResponse with user information

        Raises:
            AuthenticationError: If an account with this email already exists
            pydantic.ValidationError: If email or password are malformed
        """
        data = UserCreate(email=email, password=password)
        email = data.email.lower()
        if await self._find_user_by_email(email) is not None:
            raise AuthenticationError(
                "User with this email already exists", details={"email": email}
            )

        user = User(email=email, password_hash=self._hash_password(data.password))
        await self.database.save(USER_COLLECTION, user.export())
        logger.info("Registered user %s", user.id)
        return user.to_response()

    async def login(self, email: str, password: str) -> TokenResponse:
        """Check credentials and issue an access token.

        Raises:
            AuthenticationError: If the email is unknown or the password is wrong
        """
        data = UserLogin(email=email, password=password)
        user = await self._find_user_by_email(data.email)
        if user is None or not self._verify_password(data.password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        token, expires_at = self._generate_jwt_token(user.id, user.email)
        expires_in = int((expires_at - datetime.now(timezone.utc)).total_seconds())
        return TokenResponse(
            access_token=token, expires_in=expires_in, user=user.to_response()
        )

    async def authenticate(self, token: str) -> str:
        """Resolve an access token to its user id.

        Raises:
            AuthenticationError: If the token is invalid, expired or names
                no account
        """
        payload = self._decode_jwt_token(token)
        if payload is None or "user_id" not in payload:
            raise AuthenticationError("Invalid or expired token")
        user_id = payload["user_id"]
        if await self.database.get(USER_COLLECTION, user_id) is None:
            raise AuthenticationError(
                "Token refers to an unknown user", details={"user_id": user_id}
            )
        return user_id


__all__ = ["AuthService", "USER_COLLECTION"]
