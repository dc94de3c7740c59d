import uuid

from fastapi import Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.db import get_app_db
from videotube.db_handlers import VideoDBHandler
from videotube.dependencies.auth import AuthContext, get_current_user
from videotube.dependencies.services import get_video_db_handler
from videotube.errors import ApiError
from videotube.models import Video


def parse_uuid(value: str, what: str = "video") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError as e:
        raise ApiError.validation(f"Invalid {what} id") from e


async def get_owned_video(
    video_id: str = Path(..., description="The ID of the video to modify"),
    db: AsyncSession = Depends(get_app_db),
    auth: AuthContext = Depends(get_current_user),
    video_db_handler: VideoDBHandler = Depends(get_video_db_handler),
) -> Video:
    """
    Dependency to get a video, ensuring the current user is the owner.

    Raises 400 for a malformed id, 404 if the video is not found and 403 if the
    caller does not own it.
    """
    video_uuid = parse_uuid(video_id)
    video = await video_db_handler.get_video_with_owner(video_uuid, db=db)

    if not video:
        raise ApiError.not_found("Video not found")
    if video.owner_id != auth.user.id:
        raise ApiError.forbidden("You are not allowed to modify this video")

    return video
