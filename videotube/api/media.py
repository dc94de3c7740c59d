from fastapi import UploadFile

from videotube.config import Settings
from videotube.errors import ApiError
from videotube.services.media_storage import MediaAsset, MediaStorage, MediaUploadError


async def host_upload(
    storage: MediaStorage,
    settings: Settings,
    upload: UploadFile,
    label: str,
    *,
    resource_type: str = "auto",
) -> MediaAsset:
    """Send one form file to the media host, turning host failures into a 500."""
    try:
        return await storage.upload_form_file(
            upload,
            temp_dir=settings.upload_temp_dir,
            max_bytes=settings.max_upload_size_bytes,
            resource_type=resource_type,
        )
    except MediaUploadError as e:
        raise ApiError.internal(f"Failed to upload {label}") from e
