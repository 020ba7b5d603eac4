"""Domain errors shared by the catalog, the asset source and the services."""

from __future__ import annotations

from core.models import AccessStatus


class CaptureCabinetError(Exception):
    """Base class for all domain errors."""


class PersistenceError(CaptureCabinetError):
    """Catalog read/write failure (disk, corruption, constraint violation)."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message if cause is None else f"{message}: {cause}")
        self.cause = cause


class AccessDenied(CaptureCabinetError):
    """The asset source has not been granted read access."""

    def __init__(self, status: AccessStatus) -> None:
        super().__init__(f"Photo library access is {status.value}")
        self.status = status


class AssetNotFound(CaptureCabinetError, LookupError):
    """An asset reference no longer resolves in the asset source."""

    def __init__(self, asset_ref: str) -> None:
        super().__init__(f"Asset not found: {asset_ref}")
        self.asset_ref = asset_ref


class FolderNotFound(CaptureCabinetError, LookupError):
    def __init__(self, folder_id: str) -> None:
        super().__init__(f"Folder not found: {folder_id}")
        self.folder_id = folder_id


class SessionUnavailable(CaptureCabinetError):
    """The ephemeral display session could not be started."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Live Activity unavailable: {reason}")
        self.reason = reason
