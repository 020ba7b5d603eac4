"""Core service interfaces and shared data structures.

This module defines the outcome dataclasses returned by the assignment engine
and the protocols the core expects from its external collaborators: the
catalog, the asset source (photo library) and the ephemeral display host
(Live Activity).
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from core.models import (
    AccessStatus,
    ActivitySnapshot,
    Asset,
    Folder,
    FolderSummary,
    OutcomeKind,
    Screenshot,
    SessionHandle,
)


@dataclass
class AssignOutcome:
    """Outcome of filing one asset into a folder.

    Attributes:
        asset_ref: Asset the outcome is about.
        kind: Assigned, already assigned, or failed.
        screenshot: The new or pre-existing assignment record, if any.
        reason: Failure reason for `FAILED` outcomes.
    """

    asset_ref: str
    kind: OutcomeKind
    screenshot: Screenshot | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        """True when the asset ends up filed in the folder."""
        return self.kind is not OutcomeKind.FAILED


class AssetSource(Protocol):
    """Photo library adapter consumed by the assignment engine."""

    def fetch_assets_since(self, cutoff: datetime) -> list[Asset]:
        """Return screenshot-like assets captured at or after `cutoff`."""
        raise NotImplementedError

    def resolve(self, asset_ref: str) -> Asset | None:
        """Return the asset for `asset_ref`, or None if it no longer exists."""
        raise NotImplementedError

    def latest(self) -> Asset | None:
        """Return the most recently captured screenshot, if any."""
        raise NotImplementedError

    def delete_asset(self, asset_ref: str) -> bool:
        """Delete the underlying asset. Returns True on success."""
        raise NotImplementedError

    def request_access(self) -> AccessStatus:
        """Return the current authorization status."""
        raise NotImplementedError


class ActivityDisplay(Protocol):
    """Out-of-process display host for Live Activity sessions."""

    async def start(self, snapshot: ActivitySnapshot) -> SessionHandle:
        """Open a session showing `snapshot`; raise `SessionUnavailable` on refusal."""
        raise NotImplementedError

    async def update(self, handle: SessionHandle, snapshot: ActivitySnapshot) -> None:
        """Replace the state shown by the session."""
        raise NotImplementedError

    async def end(self, handle: SessionHandle, snapshot: ActivitySnapshot) -> None:
        """Show `snapshot` one last time and dismiss the session."""
        raise NotImplementedError


class Catalog(Protocol):
    """Folder/assignment store used by the services (see `SqliteCatalog`)."""

    def transaction(self) -> AbstractContextManager[Any]:
        """Hold the store for a block of mutations and commit them together."""
        raise NotImplementedError

    def save(self) -> None:
        raise NotImplementedError

    def rollback(self) -> None:
        raise NotImplementedError

    def create_folder(self, name: str) -> Folder:
        raise NotImplementedError

    def rename_folder(self, folder: Folder, new_name: str) -> Folder:
        raise NotImplementedError

    def duplicate_folder(self, folder: Folder, copy_assignments: bool = True) -> Folder:
        raise NotImplementedError

    def delete_folder(self, folder: Folder) -> None:
        raise NotImplementedError

    def get_folder(self, folder_id: str) -> Folder | None:
        raise NotImplementedError

    def list_folders(self) -> list[Folder]:
        raise NotImplementedError

    def folder_summaries(self) -> list[FolderSummary]:
        raise NotImplementedError

    def assign(self, asset_ref: str, folder: Folder) -> Screenshot:
        """Insert an assignment; callers check for an existing one first."""
        raise NotImplementedError

    def find_assignment(self, asset_ref: str, folder: Folder) -> Screenshot | None:
        raise NotImplementedError

    def list_assignments(self, folder: Folder) -> list[Screenshot]:
        raise NotImplementedError

    def all_assigned_asset_refs(self) -> set[str]:
        raise NotImplementedError
