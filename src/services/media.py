"""Image files kept on local disk under media_root and served from /media."""

import logging
import uuid
from pathlib import Path

from src.config import get_settings
from src.services.errors import ValidationError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/heic": "heic",
    "image/heif": "heif",
}


def image_extension(content_type: str | None, data: bytes) -> str:
    """Check an uploaded image and return the file extension to store it under."""
    extension = ALLOWED_IMAGE_TYPES.get(content_type or "")
    if extension is None:
        raise ValidationError(
            "Invalid file type. Allowed types: jpeg, png, webp, heic, heif",
            code="INVALID_FILE_TYPE",
        )
    if len(data) > MAX_IMAGE_BYTES:
        raise ValidationError("File too large. Maximum size is 5MB.", code="FILE_TOO_LARGE")
    return extension


def store_file(folder: str, user_id: int, data: bytes, extension: str) -> str:
    """Write a file under media_root/<folder>/<user_id>/ and return its public URL."""
    settings = get_settings()
    relative = Path(folder) / str(user_id) / f"{uuid.uuid4().hex}.{extension}"
    path = Path(settings.media_root) / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return f"{settings.media_base_url.rstrip('/')}/{relative.as_posix()}"


def remove_file(url: str) -> None:
    """Delete the file behind a public URL. URLs outside the media base are ignored."""
    settings = get_settings()
    prefix = f"{settings.media_base_url.rstrip('/')}/"
    if not url.startswith(prefix):
        return
    path = Path(settings.media_root) / url[len(prefix) :]
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove media file {path}: {e}")
