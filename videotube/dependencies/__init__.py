from videotube.dependencies.auth import (
    AuthContext,
    get_current_user,
    get_current_user_optional,
)
from videotube.dependencies.videos import get_owned_video

__all__ = [
    "AuthContext",
    "get_current_user",
    "get_current_user_optional",
    "get_owned_video",
]
