"""Cover, background and upload helpers shared by every entity type."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import IO, Any

from PIL import ExifTags, Image, UnidentifiedImageError

from db.utils import ensure_directory_exists, remove_directory_if_empty

logger = logging.getLogger(__name__)

COVER_FILENAME = "cover.webp"
BACKGROUND_FILENAME = "background.webp"
WEBP_MIMETYPE = "image/webp"

MEDIA_FILENAMES = {
    "cover": COVER_FILENAME,
    "background": BACKGROUND_FILENAME,
}


class InvalidImageError(ValueError):
    """Raised when an uploaded payload cannot be decoded as an image."""


def open_image_auto_rotate(source: Any) -> Image.Image:
    """Open image from path or file-like and auto-rotate using EXIF."""
    img = Image.open(source) if not isinstance(source, Image.Image) else source
    try:
        exif = img.getexif()
        if exif:
            orientation_tag = next(
                k for k, v in ExifTags.TAGS.items() if v == 'Orientation'
            )
            orientation = exif.get(orientation_tag)
            if orientation == 3:
                img = img.rotate(180, expand=True)
            elif orientation == 6:
                img = img.rotate(270, expand=True)
            elif orientation == 8:
                img = img.rotate(90, expand=True)
    except (AttributeError, StopIteration, ValueError):
        pass
    if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
        return img.convert('RGBA')
    return img.convert('RGB')


def save_webp_image(
    source: IO[bytes] | str | os.PathLike[str],
    dest_path: str | os.PathLike[str],
    *,
    quality: int = 90,
) -> Path:
    """Decode ``source`` and persist it as WebP at ``dest_path``."""

    try:
        img = open_image_auto_rotate(source)
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError("Uploaded file is not a valid image") from exc

    target = Path(dest_path)
    ensure_directory_exists(target.parent)
    img.save(target, format='WEBP', quality=quality)
    return target


def delete_media_file(directory: str | os.PathLike[str], filename: str) -> bool:
    """Remove ``filename`` from ``directory`` and drop the directory if empty.

    Returns ``True`` when a file was deleted. A missing file is not an error.
    """

    target = Path(directory) / filename
    deleted = False
    if target.is_file():
        target.unlink()
        deleted = True
        logger.info("Deleted media file %s", target)
    remove_directory_if_empty(directory)
    return deleted


def is_image_mimetype(mimetype: str | None) -> bool:
    return bool(mimetype) and str(mimetype).startswith("image/")


__all__ = [
    "BACKGROUND_FILENAME",
    "COVER_FILENAME",
    "InvalidImageError",
    "MEDIA_FILENAMES",
    "WEBP_MIMETYPE",
    "delete_media_file",
    "is_image_mimetype",
    "open_image_auto_rotate",
    "save_webp_image",
]
