"""
Video Routes - publishing, browsing and owner management of uploaded videos.

Anonymous callers can browse published videos. Only the owner can see an
unpublished video or modify, toggle or delete one.
"""

from typing import Literal

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import ValidationError
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from videotube.api.media import host_upload
from videotube.config import Settings
from videotube.db import get_app_db
from videotube.db_handlers import VideoDBHandler
from videotube.dependencies.auth import (
    AuthContext,
    get_current_user,
    get_current_user_optional,
)
from videotube.dependencies.services import (
    get_media_storage,
    get_settings,
    get_video_db_handler,
)
from videotube.dependencies.videos import get_owned_video, parse_uuid
from videotube.errors import ApiError
from videotube.models import User, Video
from videotube.schemas import (
    ApiResponse,
    Page,
    VideoCreate,
    VideoOwner,
    VideoResponse,
    VideoUpdate,
)
from videotube.services.media_storage import MediaStorage
from videotube.utils.logger import setup_logger
from videotube.utils.uploads import is_provided

logger = setup_logger("api.videos")

router = APIRouter(prefix="/videos", tags=["Videos"])


def to_video_response(video: Video, owner: User | None = None) -> VideoResponse:
    """Serialize a video without triggering a lazy load of its owner."""
    if "owner" not in sa_inspect(video).unloaded:
        owner = video.owner
    response = VideoResponse.model_validate(video.to_dict())
    if owner is not None:
        response.owner = VideoOwner.model_validate(owner)
    return response


def _validation_errors(exc: ValidationError) -> list[dict]:
    return [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]


@router.get("", response_model=ApiResponse[Page[VideoResponse]])
async def get_all_videos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    query: str | None = Query(None, max_length=200, description="Search in title and description"),
    sort_by: Literal["createdAt", "views", "duration", "title"] = Query(
        "createdAt", alias="sortBy"
    ),
    sort_type: Literal["asc", "desc"] = Query("desc", alias="sortType"),
    user_id: str | None = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_app_db),
    video_db_handler: VideoDBHandler = Depends(get_video_db_handler),
):
    """List published videos with search, sorting and pagination."""
    owner_id = parse_uuid(user_id, "user") if user_id else None

    videos, total = await video_db_handler.search_videos(
        page=page,
        limit=limit,
        query=query,
        sort_by=sort_by,
        sort_type=sort_type,
        owner_id=owner_id,
        published_only=True,
        db=db,
    )
    logger.debug(f"Listed {len(videos)} of {total} published videos (page {page})")

    return ApiResponse.ok(
        Page.build([to_video_response(v) for v in videos], total, page, limit),
        "Videos fetched successfully",
    )


@router.post(
    "",
    response_model=ApiResponse[VideoResponse],
    status_code=status.HTTP_201_CREATED,
)
async def publish_video(
    title: str = Form(""),
    description: str = Form(""),
    video_file: UploadFile | None = File(None, alias="videoFile"),
    thumbnail: UploadFile | None = File(None),
    auth: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    video_db_handler: VideoDBHandler = Depends(get_video_db_handler),
    media_storage: MediaStorage = Depends(get_media_storage),
    settings: Settings = Depends(get_settings),
):
    """Upload a video file and its thumbnail, then store the video record."""
    try:
        video_data = VideoCreate(title=title, description=description)
    except ValidationError as e:
        raise ApiError.validation("Title and description are required", _validation_errors(e)) from e

    if not is_provided(video_file):
        raise ApiError.validation("Video file is required")
    if not is_provided(thumbnail):
        raise ApiError.validation("Thumbnail is required")

    video_asset = await host_upload(
        media_storage, settings, video_file, "video file", resource_type="video"
    )
    try:
        thumbnail_asset = await host_upload(
            media_storage, settings, thumbnail, "thumbnail", resource_type="image"
        )
    except ApiError:
        await media_storage.delete(video_asset.public_id, resource_type="video")
        raise

    video = await video_db_handler.create(
        {
            "owner_id": auth.user.id,
            "title": video_data.title,
            "description": video_data.description,
            "video_file": video_asset.url,
            "video_public_id": video_asset.public_id,
            "thumbnail": thumbnail_asset.url,
            "thumbnail_public_id": thumbnail_asset.public_id,
            "duration": video_asset.duration or 0.0,
        },
        db=db,
    )
    logger.info(f"User {auth.user.id} published video {video.id}")

    return ApiResponse.ok(
        to_video_response(video, owner=auth.user),
        "Video published successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/mine", response_model=ApiResponse[Page[VideoResponse]])
async def get_my_videos(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    auth: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    video_db_handler: VideoDBHandler = Depends(get_video_db_handler),
):
    """List every video of the current user, published or not."""
    videos, total = await video_db_handler.search_videos(
        page=page,
        limit=limit,
        owner_id=auth.user.id,
        published_only=False,
        db=db,
    )
    return ApiResponse.ok(
        Page.build([to_video_response(v) for v in videos], total, page, limit),
        "Videos fetched successfully",
    )


@router.get("/{video_id}", response_model=ApiResponse[VideoResponse])
async def get_video_by_id(
    video_id: str,
    auth: AuthContext | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_app_db),
    video_db_handler: VideoDBHandler = Depends(get_video_db_handler),
):
    """Fetch one video and count the view. Unpublished videos are visible to their owner only."""
    video_uuid = parse_uuid(video_id)
    video = await video_db_handler.get_video_with_owner(video_uuid, db=db)

    is_owner = auth is not None and video is not None and video.owner_id == auth.user.id
    if video is None or (not video.is_published and not is_owner):
        raise ApiError.not_found("Video not found")

    await video_db_handler.increment_views(video.id, db=db)
    await db.refresh(video, attribute_names=["views"])

    return ApiResponse.ok(to_video_response(video), "Video fetched successfully")


@router.patch("/toggle/publish/{video_id}", response_model=ApiResponse[VideoResponse])
async def toggle_publish_status(
    video: Video = Depends(get_owned_video),
    auth: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    video_db_handler: VideoDBHandler = Depends(get_video_db_handler),
):
    video = await video_db_handler.update(
        video, {"is_published": not video.is_published}, db=db
    )
    state = "published" if video.is_published else "unpublished"
    logger.info(f"Video {video.id} {state} by its owner")
    return ApiResponse.ok(
        to_video_response(video, owner=auth.user), f"Video {state} successfully"
    )


@router.patch("/{video_id}", response_model=ApiResponse[VideoResponse])
async def update_video(
    title: str | None = Form(None),
    description: str | None = Form(None),
    thumbnail: UploadFile | None = File(None),
    video: Video = Depends(get_owned_video),
    auth: AuthContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_app_db),
    video_db_handler: VideoDBHandler = Depends(get_video_db_handler),
    media_storage: MediaStorage = Depends(get_media_storage),
    settings: Settings = Depends(get_settings),
):
    """Update the title, description and/or thumbnail of an owned video."""
    try:
        changes = VideoUpdate(title=title, description=description).model_dump(
            exclude_none=True
        )
    except ValidationError as e:
        raise ApiError.validation("Invalid video details", _validation_errors(e)) from e

    has_thumbnail = is_provided(thumbnail)
    if not changes and not has_thumbnail:
        raise ApiError.validation("Nothing to update")

    previous_thumbnail_id = None
    if has_thumbnail:
        asset = await host_upload(
            media_storage, settings, thumbnail, "thumbnail", resource_type="image"
        )
        previous_thumbnail_id = video.thumbnail_public_id
        changes.update({"thumbnail": asset.url, "thumbnail_public_id": asset.public_id})

    video = await video_db_handler.update(video, changes, db=db)
    if previous_thumbnail_id:
        await media_storage.delete(previous_thumbnail_id)

    return ApiResponse.ok(
        to_video_response(video, owner=auth.user), "Video updated successfully"
    )


@router.delete("/{video_id}", response_model=ApiResponse[dict])
async def delete_video(
    video: Video = Depends(get_owned_video),
    db: AsyncSession = Depends(get_app_db),
    video_db_handler: VideoDBHandler = Depends(get_video_db_handler),
    media_storage: MediaStorage = Depends(get_media_storage),
):
    video_public_id = video.video_public_id
    thumbnail_public_id = video.thumbnail_public_id

    await video_db_handler.remove(video.id, db=db)
    logger.info(f"Deleted video {video.id}")

    await media_storage.delete(video_public_id, resource_type="video")
    await media_storage.delete(thumbnail_public_id)

    return ApiResponse.ok({}, "Video deleted successfully")
