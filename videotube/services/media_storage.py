"""
Media Storage - signed uploads to the Cloudinary REST API.

Files arrive as staged local paths; each upload is a single round trip with
no retry, and the local file is removed whatever the outcome.
"""

import hashlib
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from fastapi import UploadFile

from videotube.config import Settings
from videotube.utils.logger import setup_logger
from videotube.utils.uploads import discard_temp_file, save_upload_to_temp

logger = setup_logger("media_storage")


class MediaUploadError(Exception):
    """Raised when the media host rejects or cannot be reached for an upload."""


@dataclass(frozen=True)
class MediaAsset:
    url: str
    public_id: str
    resource_type: str
    duration: float | None = None


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Cloudinary request signature: SHA-1 of the sorted ``k=v`` pairs followed by the secret."""
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if params[key] is not None and params[key] != ""
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()


class MediaStorage:
    """
    Client for the media host.
    """

    def __init__(
        self,
        *,
        cloud_name: str | None,
        api_key: str | None,
        api_secret: str | None,
        api_base_url: str = "https://api.cloudinary.com/v1_1",
        folder: str | None = None,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.api_base_url = api_base_url.rstrip("/")
        self.folder = folder
        self.http_client = http_client if http_client else httpx.AsyncClient(
            timeout=timeout
        )

    @classmethod
    def from_settings(
        cls, app_settings: Settings, http_client: httpx.AsyncClient | None = None
    ) -> "MediaStorage":
        return cls(
            cloud_name=app_settings.cloudinary_cloud_name,
            api_key=app_settings.cloudinary_api_key,
            api_secret=app_settings.cloudinary_api_secret,
            api_base_url=app_settings.cloudinary_api_base_url,
            folder=app_settings.cloudinary_folder,
            timeout=app_settings.media_upload_timeout,
            http_client=http_client,
        )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _endpoint(self, resource_type: str, action: str) -> str:
        return f"{self.api_base_url}/{self.cloud_name}/{resource_type}/{action}"

    def _signed_form(self, params: dict[str, Any]) -> dict[str, str]:
        params = {key: value for key, value in params.items() if value}
        params["timestamp"] = int(time.time())
        form = {key: str(value) for key, value in params.items()}
        form["signature"] = sign_params(params, self.api_secret)
        form["api_key"] = self.api_key
        return form

    async def upload(self, local_path: str | Path, *, resource_type: str = "auto") -> MediaAsset:
        """Upload a staged file and remove it locally, whether or not the upload worked."""
        path = Path(local_path)
        try:
            if not self.configured:
                raise MediaUploadError("Media host credentials are not configured")

            form = self._signed_form({"folder": self.folder})
            start_time = time.perf_counter()
            try:
                with path.open("rb") as fh:
                    response = await self.http_client.post(
                        self._endpoint(resource_type, "upload"),
                        data=form,
                        files={"file": (path.name, fh)},
                    )
                response.raise_for_status()
                body = response.json()
            except httpx.HTTPStatusError as e:
                logger.error(
                    f"Media host rejected upload of {path.name}: "
                    f"{e.response.status_code} {e.response.text[:200]}"
                )
                raise MediaUploadError(f"Upload rejected ({e.response.status_code})") from e
            except (httpx.RequestError, OSError, ValueError) as e:
                logger.error(f"Upload of {path.name} failed: {e}", exc_info=True)
                raise MediaUploadError(f"Upload failed: {e}") from e

            url = body.get("secure_url") or body.get("url")
            public_id = body.get("public_id")
            if not url or not public_id:
                raise MediaUploadError("Media host response is missing url or public_id")

            duration = body.get("duration")
            asset = MediaAsset(
                url=url,
                public_id=public_id,
                resource_type=body.get("resource_type", resource_type),
                duration=float(duration) if duration is not None else None,
            )
            logger.info(
                f"Uploaded {path.name} as {asset.public_id} "
                f"in {time.perf_counter() - start_time:.2f}s"
            )
            return asset
        finally:
            discard_temp_file(path)

    async def upload_form_file(
        self,
        upload: UploadFile,
        *,
        temp_dir: str | Path,
        max_bytes: int,
        resource_type: str = "auto",
    ) -> MediaAsset:
        """Stage a multipart upload on disk, then send it to the media host."""
        staged = await save_upload_to_temp(upload, temp_dir, max_bytes)
        return await self.upload(staged, resource_type=resource_type)

    async def delete(self, public_id: str | None, *, resource_type: str = "image") -> bool:
        """Delete a hosted asset. Failures are logged and reported as ``False``."""
        if not public_id:
            return False
        if not self.configured:
            logger.warning(f"Skipping delete of {public_id}: media host not configured")
            return False

        form = self._signed_form({"public_id": public_id})
        try:
            response = await self.http_client.post(
                self._endpoint(resource_type, "destroy"), data=form
            )
            response.raise_for_status()
            result = response.json().get("result")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Could not delete hosted asset {public_id}: {e}")
            return False

        if result != "ok":
            logger.warning(f"Media host did not delete {public_id}: {result}")
            return False
        logger.info(f"Deleted hosted asset {public_id}")
        return True

    async def aclose(self) -> None:
        await self.http_client.aclose()
