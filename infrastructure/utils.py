"""Utilities for timestamp storage and capture-date extraction.

This module centralizes date parsing/formatting and image metadata extraction
so the catalog and the asset source share a single behavior. Metadata reads
are best-effort and never raise; callers should expect `None` when data is
not available.
"""

from __future__ import annotations

from datetime import datetime, timezone
import os
from typing import Any

from PIL import Image, UnidentifiedImageError
from loguru import logger

try:  # pragma: no cover - optional dependency
    from pillow_heif import register_heif_opener  # type: ignore

    register_heif_opener()
    HEIF_AVAILABLE = True
except ImportError:  # pragma: no cover - optional dependency
    HEIF_AVAILABLE = False

# EXIF tags: 36867 DateTimeOriginal (in the Exif IFD), 306 DateTime
_EXIF_IFD_POINTER = 0x8769
_TAG_DATETIME_ORIGINAL = 36867
_TAG_DATETIME = 306


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Normalize `dt` to UTC; naive values are taken as local time."""
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt.astimezone(timezone.utc)


def format_db_datetime(dt: datetime) -> str:
    """Format for storage. Fixed width so lexical order equals time order."""
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def parse_db_datetime(value: str) -> datetime:
    """Parse a value written by `format_db_datetime`."""
    return to_utc(datetime.fromisoformat(value))


def get_filesystem_creation_datetime(path: str) -> datetime | None:
    """Best-effort file creation time in UTC.

    On Windows, `os.path.getctime` returns creation time. On other systems it may
    return ctime (metadata change). We accept that as a best-effort value.
    """
    try:
        return datetime.fromtimestamp(os.path.getctime(path), tz=timezone.utc)
    except (OSError, ValueError) as ex:
        logger.debug("getctime failed for {}: {}", path, ex)
        return None


def _parse_exif_datetime(value: Any) -> datetime | None:
    # Common EXIF format: "YYYY:MM:DD HH:MM:SS"
    text = str(value).strip().rstrip("\x00")
    try:
        if len(text) >= 19 and text[4] == ":" and text[7] == ":":
            return datetime.strptime(text[:19], "%Y:%m:%d %H:%M:%S")
        return datetime.fromisoformat(text.replace("/", "-"))
    except ValueError:
        return None


def read_image_metadata(path: str) -> tuple[datetime | None, int | None, int | None]:
    """Return (EXIF capture time in UTC, width, height) for the image at `path`.

    Any field that cannot be read is None.
    """
    try:
        with Image.open(path) as im:
            width, height = im.size
            exif = im.getexif()
            raw = None
            if exif:
                raw = exif.get_ifd(_EXIF_IFD_POINTER).get(_TAG_DATETIME_ORIGINAL) or exif.get(
                    _TAG_DATETIME
                )
    except (OSError, UnidentifiedImageError, ValueError) as ex:
        logger.debug("Image metadata read failed for {}: {}", path, ex)
        return None, None, None

    captured = _parse_exif_datetime(raw) if raw else None
    return (to_utc(captured) if captured else None), width, height
