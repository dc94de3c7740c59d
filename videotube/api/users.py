# User account routes: registration, session management and profile updates

import secrets

from fastapi import APIRouter, Body, Depends, File, Form, Request, Response, UploadFile, status
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.api.media import host_upload
from videotube.config import Settings
from videotube.db import get_app_db
from videotube.db_handlers import UserDBHandler
from videotube.dependencies.auth import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    AuthContext,
    get_current_user,
)
from videotube.dependencies.services import (
    get_media_storage,
    get_password_hasher,
    get_settings,
    get_token_service,
    get_user_db_handler,
)
from videotube.errors import ApiError
from videotube.schemas import (
    ApiResponse,
    ChangePasswordRequest,
    LoginData,
    RefreshTokenRequest,
    TokenData,
    UpdateAccountRequest,
    UserLogin,
    UserRegister,
    UserResponse,
)
from videotube.services.media_storage import MediaStorage
from videotube.utils.auth import PasswordHasher, TokenError, TokenPair, TokenService
from videotube.utils.logger import setup_logger
from videotube.utils.uploads import is_provided

logger = setup_logger("api.users")

router = APIRouter(prefix="/users", tags=["Users"])


def _validation_errors(exc: ValidationError) -> list[dict]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


def _cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": settings.cookie_samesite.lower(),
        "path": "/",
    }


def set_token_cookies(response: Response, pair: TokenPair, settings: Settings) -> None:
    options = _cookie_options(settings)
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        pair.access_token,
        max_age=settings.access_token_expire_minutes * 60,
        **options,
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        pair.refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        **options,
    )


def clear_token_cookies(response: Response, settings: Settings) -> None:
    options = _cookie_options(settings)
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **options)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, **options)


@router.post(
    "/register",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register_user(
    username: str = Form(""),
    email: str = Form(""),
    full_name: str = Form("", alias="fullName"),
    password: str = Form(""),
    avatar: UploadFile | None = File(None),
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    media_storage: MediaStorage = Depends(get_media_storage),
    settings: Settings = Depends(get_settings),
):
    """Register a new user with an avatar and an optional cover image."""
    if not all(field.strip() for field in (username, email, full_name, password)):
        raise ApiError.validation("All fields are required")

    try:
        user_data = UserRegister(
            username=username, email=email, full_name=full_name, password=password
        )
    except ValidationError as e:
        raise ApiError.validation(
            "Invalid registration data", _validation_errors(e)
        ) from e

    existing_user = await user_db_handler.find_by_username_or_email(
        username=user_data.username, email=user_data.email, db=db
    )
    if existing_user:
        raise ApiError.conflict("User with email or username already exists")

    if not is_provided(avatar):
        raise ApiError.validation("Avatar file is required")

    try:
        hashed_password = await password_hasher.hash_async(user_data.password)
    except Exception as e:
        logger.error(f"Password hashing failed during registration: {e}", exc_info=True)
        raise ApiError.internal("Something went wrong while registering the user") from e

    avatar_asset = await host_upload(
        media_storage, settings, avatar, "avatar", resource_type="image"
    )
    cover_asset = None
    if is_provided(cover_image):
        try:
            cover_asset = await host_upload(
                media_storage, settings, cover_image, "cover image", resource_type="image"
            )
        except ApiError:
            await media_storage.delete(avatar_asset.public_id)
            raise

    try:
        user = await user_db_handler.create_user(
            {
                "username": user_data.username,
                "email": user_data.email,
                "full_name": user_data.full_name,
                "hashed_password": hashed_password,
                "avatar": avatar_asset.url,
                "avatar_public_id": avatar_asset.public_id,
                "cover_image": cover_asset.url if cover_asset else None,
                "cover_image_public_id": cover_asset.public_id if cover_asset else None,
            },
            db=db,
        )
    except IntegrityError as e:
        # Lost a race with a concurrent registration of the same identity
        await media_storage.delete(avatar_asset.public_id)
        if cover_asset:
            await media_storage.delete(cover_asset.public_id)
        raise ApiError.conflict("User with email or username already exists") from e

    return ApiResponse.ok(
        UserResponse.model_validate(user),
        "User registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login", response_model=ApiResponse[LoginData])
async def login_user(
    credentials: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
    token_service: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
):
    """Authenticate by username or email and start a new session."""
    user = await user_db_handler.find_by_username_or_email(
        username=credentials.username, email=credentials.email, db=db
    )

    if not user or not await password_hasher.verify_async(
        credentials.password, user.hashed_password
    ):
        raise ApiError.unauthenticated("Invalid user credentials")

    user_response = UserResponse.model_validate(user)
    pair = token_service.issue_pair(user)
    # Overwrites any previous session's refresh token
    await user_db_handler.set_refresh_token(user.id, pair.refresh_token, db=db)
    set_token_cookies(response, pair, settings)
    logger.info(f"User {user_response.id} logged in")

    return ApiResponse.ok(
        LoginData(
            user=user_response,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ),
        "User logged in successfully",
    )


@router.post("/logout", response_model=ApiResponse[dict])
async def logout_user(
    response: Response,
    auth: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
    settings: Settings = Depends(get_settings),
):
    """End the current session by clearing the stored refresh token."""
    await user_db_handler.set_refresh_token(auth.user.id, None, db=db)
    clear_token_cookies(response, settings)
    logger.info(f"User {auth.user.id} logged out")
    return ApiResponse.ok({}, "User logged out")


@router.post("/refresh-token", response_model=ApiResponse[TokenData])
async def refresh_access_token(
    request: Request,
    response: Response,
    payload: RefreshTokenRequest | None = Body(None),
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
    token_service: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_settings),
):
    """Exchange the current refresh token for a new token pair."""
    incoming_token = request.cookies.get(REFRESH_TOKEN_COOKIE) or (
        payload.refresh_token if payload else None
    )
    if not incoming_token:
        raise ApiError.unauthenticated("Refresh token is required")

    try:
        claims = token_service.decode_refresh_token(incoming_token)
        user_id = token_service.subject_as_uuid(claims)
    except TokenError as e:
        logger.info(f"Rejected refresh token: {e.reason}")
        raise ApiError.unauthenticated("Invalid refresh token") from e

    user = await user_db_handler.get(user_id, db=db)
    if user is None:
        raise ApiError.unauthenticated("Invalid refresh token")

    stored = (user.refresh_token or "").encode()
    if not stored or not secrets.compare_digest(stored, incoming_token.encode()):
        logger.info(f"Stale refresh token presented for user {user.id}")
        raise ApiError.unauthenticated("Refresh token is expired or used")

    pair = token_service.issue_pair(user)
    await user_db_handler.set_refresh_token(user.id, pair.refresh_token, db=db)
    set_token_cookies(response, pair, settings)

    return ApiResponse.ok(
        TokenData(access_token=pair.access_token, refresh_token=pair.refresh_token),
        "Access token refreshed",
    )


@router.get("/profile", response_model=ApiResponse[UserResponse])
@router.get("/current-user", response_model=ApiResponse[UserResponse])
async def get_current_user_profile(auth: AuthContext = Depends(get_current_user)):
    """Retrieve current authenticated user's profile information."""
    return ApiResponse.ok(
        UserResponse.model_validate(auth.user), "User fetched successfully"
    )


@router.post("/change-password", response_model=ApiResponse[dict])
async def change_password(
    body: ChangePasswordRequest,
    auth: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
    password_hasher: PasswordHasher = Depends(get_password_hasher),
):
    if not await password_hasher.verify_async(
        body.old_password, auth.user.hashed_password
    ):
        raise ApiError.validation("Invalid old password")

    try:
        new_hash = await password_hasher.hash_async(body.new_password)
    except Exception as e:
        logger.error(f"Password hashing failed for user {auth.user.id}: {e}", exc_info=True)
        raise ApiError.internal() from e

    await user_db_handler.set_password_hash(auth.user.id, new_hash, db=db)
    logger.info(f"User {auth.user.id} changed their password")
    return ApiResponse.ok({}, "Password changed successfully")


@router.patch("/update-account", response_model=ApiResponse[UserResponse])
async def update_account_details(
    body: UpdateAccountRequest,
    auth: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
):
    changes = body.model_dump(exclude_none=True)

    if "email" in changes and await user_db_handler.email_taken_by_other(
        changes["email"], auth.user.id, db=db
    ):
        raise ApiError.conflict("Email is already in use")

    try:
        user = await user_db_handler.update(auth.user, changes, db=db)
    except IntegrityError as e:
        raise ApiError.conflict("Email is already in use") from e

    return ApiResponse.ok(
        UserResponse.model_validate(user), "Account details updated successfully"
    )


@router.patch("/avatar", response_model=ApiResponse[UserResponse])
async def update_user_avatar(
    avatar: UploadFile | None = File(None),
    auth: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
    media_storage: MediaStorage = Depends(get_media_storage),
    settings: Settings = Depends(get_settings),
):
    if not is_provided(avatar):
        raise ApiError.validation("Avatar file is missing")

    asset = await host_upload(media_storage, settings, avatar, "avatar", resource_type="image")
    previous_public_id = auth.user.avatar_public_id

    user = await user_db_handler.update(
        auth.user, {"avatar": asset.url, "avatar_public_id": asset.public_id}, db=db
    )
    await media_storage.delete(previous_public_id)

    return ApiResponse.ok(UserResponse.model_validate(user), "Avatar updated successfully")


@router.patch("/cover-image", response_model=ApiResponse[UserResponse])
async def update_user_cover_image(
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    auth: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    user_db_handler: UserDBHandler = Depends(get_user_db_handler),
    media_storage: MediaStorage = Depends(get_media_storage),
    settings: Settings = Depends(get_settings),
):
    if not is_provided(cover_image):
        raise ApiError.validation("Cover image file is missing")

    asset = await host_upload(
        media_storage, settings, cover_image, "cover image", resource_type="image"
    )
    previous_public_id = auth.user.cover_image_public_id

    user = await user_db_handler.update(
        auth.user,
        {"cover_image": asset.url, "cover_image_public_id": asset.public_id},
        db=db,
    )
    await media_storage.delete(previous_public_id)

    return ApiResponse.ok(
        UserResponse.model_validate(user), "Cover image updated successfully"
    )
