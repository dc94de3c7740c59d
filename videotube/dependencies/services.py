"""
Accessors for the process-wide components built once in ``create_app``.
"""

from fastapi import Request

from videotube.config import Settings
from videotube.db_handlers import UserDBHandler, VideoDBHandler
from videotube.services.media_storage import MediaStorage
from videotube.utils.auth import PasswordHasher, TokenService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_media_storage(request: Request) -> MediaStorage:
    return request.app.state.media_storage


def get_user_db_handler(request: Request) -> UserDBHandler:
    return UserDBHandler(request.app.state.session_factory)


def get_video_db_handler(request: Request) -> VideoDBHandler:
    return VideoDBHandler(request.app.state.session_factory)
