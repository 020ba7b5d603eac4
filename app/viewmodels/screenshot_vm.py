"""Lightweight view model wrappers around `Asset` and `FolderSummary`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from core.models import Asset, FolderSummary


@dataclass
class ScreenshotVM:
    """Expose convenient properties for bindings/templates."""

    asset: Asset
    is_selected: bool = False

    @property
    def asset_ref(self) -> str:
        return self.asset.asset_ref

    @property
    def file_name(self) -> str:
        """Base name of the asset ref."""
        return PurePosixPath(self.asset.asset_ref).name

    @property
    def captured_label(self) -> str:
        """Capture time in local time, e.g. "2025-10-01 14:03"."""
        return self.asset.captured_at.astimezone().strftime("%Y-%m-%d %H:%M")

    @property
    def size_label(self) -> str:
        if self.asset.pixel_width and self.asset.pixel_height:
            return f"{self.asset.pixel_width}x{self.asset.pixel_height}"
        return ""


@dataclass
class FolderVM:
    summary: FolderSummary

    @property
    def id(self) -> str:
        return self.summary.id

    @property
    def name(self) -> str:
        return self.summary.name

    @property
    def count_label(self) -> str:
        return str(self.summary.screenshot_count)
