"""
Staging of multipart uploads on local disk before they are sent to the media host.
"""

import uuid
from pathlib import Path

from fastapi import UploadFile

from videotube.errors import ApiError, ErrorKind
from videotube.utils.logger import setup_logger

logger = setup_logger("uploads")

CHUNK_SIZE = 1024 * 1024


def is_provided(upload: UploadFile | None) -> bool:
    """Browsers send an empty part with no filename when a file input is left blank."""
    return upload is not None and bool(upload.filename)


def discard_temp_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not remove temporary upload {path}: {e}")


async def save_upload_to_temp(
    upload: UploadFile, temp_dir: str | Path, max_bytes: int
) -> Path:
    """
    Stream ``upload`` into ``temp_dir`` under a collision-free name.

    The partial file is removed when the upload exceeds ``max_bytes`` or the
    write fails.
    """
    directory = Path(temp_dir)
    directory.mkdir(parents=True, exist_ok=True)

    suffix = Path(upload.filename or "").suffix
    target = directory / f"{uuid.uuid4().hex}{suffix}"

    written = 0
    try:
        with target.open("wb") as out:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise ApiError(
                        ErrorKind.PAYLOAD_TOO_LARGE,
                        f"File '{upload.filename}' exceeds the {max_bytes // (1024 * 1024)} MB limit",
                    )
                out.write(chunk)
    except BaseException:
        discard_temp_file(target)
        raise
    finally:
        await upload.close()

    logger.debug(f"Staged upload '{upload.filename}' ({written} bytes) at {target}")
    return target
