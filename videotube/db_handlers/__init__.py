from videotube.db_handlers.base import BaseDBHandler, check_local_db
from videotube.db_handlers.user import UserDBHandler
from videotube.db_handlers.video import VideoDBHandler

__all__ = [
    "BaseDBHandler",
    "check_local_db",
    "UserDBHandler",
    "VideoDBHandler",
]
