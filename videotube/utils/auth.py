"""
Authentication utilities with JWT tokens and bcrypt password hashing.

- bcrypt with a per-password salt for password hashing
- Separate signing secrets for access and refresh tokens
- Configurable token expiration
- UTC timezone consistency
"""

import asyncio
import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from videotube.config import Settings
from videotube.utils.logger import setup_logger

logger = setup_logger("auth")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# bcrypt ignores (newer releases reject) everything past 72 bytes
BCRYPT_MAX_PASSWORD_BYTES = 72


class TokenError(Exception):
    """Raised when a token cannot be verified. ``reason`` is for logs only."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class PasswordHasher:
    """Salted one-way password hashing with bcrypt."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a plain text password using bcrypt."""
        pwd_bytes = password.encode("utf-8")
        if len(pwd_bytes) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(
                f"Password exceeds {BCRYPT_MAX_PASSWORD_BYTES} bytes and cannot be hashed"
            )
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password=pwd_bytes, salt=salt).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str | None) -> bool:
        """Verify a plain text password against a hashed password."""
        if not hashed_password:
            return False
        pwd_bytes = plain_password.encode("utf-8")
        if len(pwd_bytes) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(pwd_bytes, hashed_password.encode("utf-8"))
        except ValueError as e:
            logger.error(f"Stored password hash is malformed: {e}")
            return False

    async def hash_async(self, password: str) -> str:
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, plain_password: str, hashed_password: str | None) -> bool:
        return await asyncio.to_thread(self.verify, plain_password, hashed_password)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    """Issues and verifies the access/refresh token pair."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        algorithm: str = "HS256",
        access_expires: timedelta = timedelta(minutes=15),
        refresh_expires: timedelta = timedelta(days=10),
    ):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.algorithm = algorithm
        self.access_expires = access_expires
        self.refresh_expires = refresh_expires

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "TokenService":
        return cls(
            app_settings.access_token_secret,
            app_settings.refresh_token_secret,
            algorithm=app_settings.jwt_algorithm,
            access_expires=timedelta(minutes=app_settings.access_token_expire_minutes),
            refresh_expires=timedelta(days=app_settings.refresh_token_expire_days),
        )

    def _encode(
        self, claims: dict[str, Any], secret: str, expires_delta: timedelta
    ) -> str:
        issued_at = datetime.now(UTC)
        to_encode = claims.copy()
        to_encode.update({"iat": issued_at, "exp": issued_at + expires_delta})
        return jwt.encode(to_encode, secret, algorithm=self.algorithm)

    def create_access_token(
        self,
        *,
        user_id: uuid.UUID,
        username: str,
        email: str,
        full_name: str,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create an access token carrying enough identity to skip a lookup."""
        claims = {
            "sub": str(user_id),
            "username": username,
            "email": email,
            "full_name": full_name,
            "type": ACCESS_TOKEN_TYPE,
        }
        return self._encode(
            claims, self.access_secret, expires_delta or self.access_expires
        )

    def create_refresh_token(
        self, *, user_id: uuid.UUID, expires_delta: timedelta | None = None
    ) -> str:
        """Create a refresh token that only references the user."""
        claims = {
            "sub": str(user_id),
            "type": REFRESH_TOKEN_TYPE,
            # Distinguishes tokens minted within the same second
            "jti": secrets.token_hex(16),
        }
        return self._encode(
            claims, self.refresh_secret, expires_delta or self.refresh_expires
        )

    def issue_pair(self, user) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(
                user_id=user.id,
                username=user.username,
                email=user.email,
                full_name=user.full_name,
            ),
            refresh_token=self.create_refresh_token(user_id=user.id),
        )

    def _decode(self, token: str, secret: str, expected_type: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenError("expired") from e
        except JWTError as e:
            raise TokenError(f"invalid: {e}") from e

        if payload.get("type") != expected_type:
            raise TokenError(f"wrong token type: {payload.get('type')}")
        if not payload.get("sub"):
            raise TokenError("missing subject")
        return payload

    def decode_access_token(self, token: str) -> dict[str, Any]:
        """Decode and verify an access token, raising TokenError on any failure."""
        return self._decode(token, self.access_secret, ACCESS_TOKEN_TYPE)

    def decode_refresh_token(self, token: str) -> dict[str, Any]:
        """Decode and verify a refresh token, raising TokenError on any failure."""
        return self._decode(token, self.refresh_secret, REFRESH_TOKEN_TYPE)

    @staticmethod
    def subject_as_uuid(payload: dict[str, Any]) -> uuid.UUID:
        try:
            return uuid.UUID(payload["sub"])
        except (KeyError, ValueError) as e:
            raise TokenError("subject is not a user id") from e
