"""
Authentication dependencies for FastAPI route protection.

The access token is taken from the ``accessToken`` cookie first and from an
``Authorization: Bearer`` header second. Absent, invalid and expired tokens are
told apart in the logs only; clients always see the same 401 envelope.
"""

from dataclasses import dataclass
from typing import Literal

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.db import get_app_db
from videotube.db_handlers import UserDBHandler
from videotube.dependencies.services import get_token_service, get_user_db_handler
from videotube.errors import ApiError
from videotube.models import User
from videotube.utils.auth import TokenError, TokenService
from videotube.utils.logger import setup_logger

logger = setup_logger("dependencies.auth")

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

# HTTP Bearer token extraction; a missing header is handled below
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved for the current request."""

    user: User
    token_source: Literal["cookie", "header"]
    claims: dict


def extract_access_token(
    request: Request, credentials: HTTPAuthorizationCredentials | None
) -> tuple[str | None, Literal["cookie", "header"] | None]:
    cookie_token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if cookie_token:
        return cookie_token, "cookie"
    if credentials and credentials.credentials:
        return credentials.credentials, "header"
    return None, None


async def _resolve(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
    token_service: TokenService,
    user_db_handler: UserDBHandler,
) -> AuthContext:
    token, source = extract_access_token(request, credentials)
    if token is None:
        logger.debug(f"No access token on {request.method} {request.url.path}")
        raise ApiError.unauthenticated("Unauthorized request")

    try:
        payload = token_service.decode_access_token(token)
        user_id = token_service.subject_as_uuid(payload)
    except TokenError as e:
        logger.info(
            f"Rejected access token from {source} on {request.url.path}: {e.reason}"
        )
        raise ApiError.unauthenticated("Invalid or expired access token") from e

    user = await user_db_handler.get(user_id, db=db)
    if user is None:
        logger.info(f"Access token subject {user_id} no longer exists")
        raise ApiError.unauthenticated("Invalid or expired access token")

    return AuthContext(user=user, token_source=source, claims=payload)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_app_db),
    token_service: TokenService = Depends(get_token_service),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
) -> AuthContext:
    """
    Dependency to get the current authenticated user from the access token.
    """
    return await _resolve(request, credentials, db, token_service, user_db_handler)


async def get_current_user_optional(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_app_db),
    token_service: TokenService = Depends(get_token_service),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
) -> AuthContext | None:
    """
    Optional dependency to get the current authenticated user.
    Returns None if no valid token is provided instead of raising an exception.
    """
    try:
        return await _resolve(request, credentials, db, token_service, user_db_handler)
    except ApiError:
        return None
