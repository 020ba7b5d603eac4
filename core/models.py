"""Core domain models for folders, screenshot assignments and library assets."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Folder:
    """A user-defined bucket that screenshots are filed into."""

    id: str
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Screenshot:
    """Assignment record linking one library asset to one folder.

    This is not the image itself; `asset_ref` points back to the asset source.
    """

    id: str
    asset_ref: str
    created_at: datetime
    folder_id: str


@dataclass(frozen=True)
class Asset:
    """A screenshot as reported by the asset source."""

    asset_ref: str
    captured_at: datetime
    pixel_width: int | None = None
    pixel_height: int | None = None


@dataclass(frozen=True)
class FolderSummary:
    """Folder row with its assignment count, as shown in folder pickers."""

    id: str
    name: str
    screenshot_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "screenshot_count": self.screenshot_count}


class AccessStatus(str, Enum):
    """Authorization state of the asset source."""

    GRANTED = "granted"
    LIMITED = "limited"
    DENIED = "denied"
    RESTRICTED = "restricted"

    @property
    def allows_read(self) -> bool:
        return self in (AccessStatus.GRANTED, AccessStatus.LIMITED)


class OutcomeKind(str, Enum):
    ASSIGNED = "assigned"
    ALREADY_ASSIGNED = "already_assigned"
    FAILED = "failed"


class ActivityState(str, Enum):
    """Lifecycle of one Live Activity session."""

    IDLE = "idle"
    STARTED = "started"
    SAVING = "saving"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SessionHandle:
    """Opaque identifier of an ephemeral display session."""

    session_id: str


@dataclass(frozen=True)
class ActivitySnapshot:
    """State pushed to the ephemeral display.

    `version` increases with every push inside one session so an out-of-process
    host can discard reordered deliveries.
    """

    screenshot_asset_ref: str | None
    screenshot_timestamp: datetime
    folders: tuple[FolderSummary, ...] = field(default_factory=tuple)
    selected_folder_id: str | None = None
    is_saving: bool = False
    saved_successfully: bool | None = None
    version: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "screenshot_asset_ref": self.screenshot_asset_ref,
            "screenshot_timestamp": self.screenshot_timestamp.isoformat(),
            "folders": [f.to_dict() for f in self.folders],
            "selected_folder_id": self.selected_folder_id,
            "is_saving": self.is_saving,
            "saved_successfully": self.saved_successfully,
            "version": self.version,
        }
