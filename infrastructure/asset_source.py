"""Directory-backed photo library.

Treats a folder on disk (e.g. the OS screenshot folder or a synced camera
roll) as the asset source. Asset refs are POSIX paths relative to the library
root, so they stay stable across runs for a given file.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
import fnmatch
import os
from pathlib import Path

from loguru import logger
from send2trash import send2trash

from core.models import AccessStatus, Asset
from infrastructure.utils import (
    HEIF_AVAILABLE,
    get_filesystem_creation_datetime,
    read_image_metadata,
)

DEFAULT_PATTERNS: tuple[str, ...] = (
    "screenshot*",
    "screen shot*",
    "스크린샷*",
    "bildschirmfoto*",
)
DEFAULT_EXTENSIONS: tuple[str, ...] = (".png", ".jpg", ".jpeg", ".heic", ".webp")
DEFAULT_FETCH_LIMIT = 100


class DirectoryAssetSource:
    """Scans a directory tree for screenshot-like image files."""

    def __init__(
        self,
        root: str | Path,
        patterns: Iterable[str] = DEFAULT_PATTERNS,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
        recursive: bool = True,
    ) -> None:
        self._root = Path(root).expanduser().resolve()
        self._patterns = tuple(p.lower() for p in patterns)
        self._extensions = tuple(e.lower() for e in extensions)
        self._fetch_limit = max(1, int(fetch_limit or DEFAULT_FETCH_LIMIT))
        self._recursive = recursive
        if not HEIF_AVAILABLE and ".heic" in self._extensions:
            logger.warning("pillow-heif not installed; HEIC screenshots use file times")

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, asset_ref: str) -> Path:
        """Absolute path of `asset_ref`. Refs escaping the root are rejected."""
        candidate = (self._root / asset_ref).resolve()
        root = self._root
        if candidate != root and root not in candidate.parents:
            raise ValueError(f"Asset ref outside library: {asset_ref}")
        return candidate

    def is_screenshot(self, path: Path) -> bool:
        name = path.name.lower()
        if not name.endswith(self._extensions):
            return False
        if not self._patterns:
            return True
        return any(fnmatch.fnmatchcase(name, p) for p in self._patterns)

    def _iter_files(self) -> Iterator[Path]:
        try:
            entries = self._root.rglob("*") if self._recursive else self._root.iterdir()
            for path in entries:
                if path.is_file() and self.is_screenshot(path):
                    yield path
        except OSError as ex:
            logger.error("Scan library failed: {} ({})", self._root, ex)

    def _to_asset(self, path: Path) -> Asset | None:
        captured, width, height = read_image_metadata(str(path))
        if captured is None:
            captured = get_filesystem_creation_datetime(str(path))
        if captured is None:
            logger.warning("No capture time for {}, skipping", path)
            return None
        return Asset(
            asset_ref=path.relative_to(self._root).as_posix(),
            captured_at=captured,
            pixel_width=width,
            pixel_height=height,
        )

    def _scan(self) -> list[Asset]:
        assets = [a for a in (self._to_asset(p) for p in self._iter_files()) if a is not None]
        assets.sort(key=lambda a: a.captured_at, reverse=True)
        return assets

    def fetch_assets_since(self, cutoff: datetime) -> list[Asset]:
        """Screenshots captured at or after `cutoff`, newest first, capped at the fetch limit."""
        if not self._root.is_dir():
            return []
        result = [a for a in self._scan() if a.captured_at >= cutoff][: self._fetch_limit]
        logger.info("Fetched {} screenshots since {} from {}", len(result), cutoff, self._root)
        return result

    def resolve(self, asset_ref: str) -> Asset | None:
        try:
            path = self.path_for(asset_ref)
        except ValueError:
            return None
        if not path.is_file() or not self.is_screenshot(path):
            return None
        return self._to_asset(path)

    def latest(self) -> Asset | None:
        assets = self._scan() if self._root.is_dir() else []
        return assets[0] if assets else None

    def delete_asset(self, asset_ref: str) -> bool:
        """Move the asset file to the recycle bin."""
        try:
            path = self.path_for(asset_ref)
        except ValueError as ex:
            logger.error("Delete rejected: {}", ex)
            return False
        if not path.exists():
            logger.error("File does not exist: {}", path)
            return False
        try:
            send2trash(str(path))
        except OSError as ex:
            logger.error("Delete to recycle bin failed for {}: {}", path, ex)
            return False
        logger.info("Asset moved to recycle bin: {}", asset_ref)
        return True

    def request_access(self) -> AccessStatus:
        """Map directory permissions onto photo-library authorization states."""
        if not self._root.is_dir():
            return AccessStatus.RESTRICTED
        if not os.access(self._root, os.R_OK | os.X_OK):
            return AccessStatus.DENIED
        if not os.access(self._root, os.W_OK):
            return AccessStatus.LIMITED
        return AccessStatus.GRANTED
