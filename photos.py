"""
photos.py
Local-disk photo store. Photos are referenced by their file name inside
settings.photo_dir.
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path

from config import settings
from errors import NotFound, ValidationError
from models import PhotoUpload

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def validate_photo(upload: PhotoUpload) -> None:
    if upload.content_type not in ALLOWED_TYPES:
        raise ValidationError("Photo must be a JPEG, PNG or WebP image.")
    if not upload.data:
        raise ValidationError("Photo file is empty.")
    if len(upload.data) > settings.max_photo_bytes:
        limit_mb = settings.max_photo_bytes / (1024 * 1024)
        raise ValidationError(f"Photo must be at most {limit_mb:g} MB.")


def store_photo(upload: PhotoUpload) -> str:
    """Write the photo to disk and return its reference."""
    validate_photo(upload)
    settings.photo_dir.mkdir(parents=True, exist_ok=True)
    ref = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ALLOWED_TYPES[upload.content_type]}"
    (settings.photo_dir / ref).write_bytes(upload.data)
    logger.info("Stored photo %s (%d bytes)", ref, len(upload.data))
    return ref


def photo_path(ref: str) -> Path:
    # refs are bare file names; anything else could escape photo_dir
    if not ref or Path(ref).name != ref:
        raise NotFound("Photo not found.")
    path = settings.photo_dir / ref
    if not path.is_file():
        raise NotFound("Photo not found.")
    return path


def delete_photo(ref: str) -> None:
    """Remove a stored photo. A photo that is already gone is not an error."""
    (settings.photo_dir / ref).unlink(missing_ok=True)
    logger.info("Deleted photo %s", ref)
