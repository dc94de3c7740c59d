from videotube.api.health import router as health_router
from videotube.api.users import router as users_router
from videotube.api.videos import router as videos_router

__all__ = ["health_router", "users_router", "videos_router"]
