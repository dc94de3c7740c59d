from videotube.services.media_storage import (
    MediaAsset,
    MediaStorage,
    MediaUploadError,
    sign_params,
)

__all__ = [
    "MediaAsset",
    "MediaStorage",
    "MediaUploadError",
    "sign_params",
]
