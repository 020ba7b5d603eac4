"""Folder management on top of the catalog.

Each operation runs in its own catalog transaction and publishes a change
event once committed; on failure the transaction is rolled back and the
error is re-raised.
"""

from __future__ import annotations

from loguru import logger

from core.errors import FolderNotFound, PersistenceError
from core.models import Folder, FolderSummary, Screenshot
from core.services.events import ChangeEvent, ChangeKind, ChangeNotifier
from core.services.interfaces import Catalog


class FolderService:
    """Create, rename, duplicate and delete folders."""

    def __init__(self, catalog: Catalog, notifier: ChangeNotifier) -> None:
        self._catalog = catalog
        self._notifier = notifier

    def _log_failure(self, action: str, ex: PersistenceError) -> None:
        logger.error("{} failed, nothing was written: {}", action, ex)

    def get(self, folder_id: str) -> Folder:
        folder = self._catalog.get_folder(folder_id)
        if folder is None:
            raise FolderNotFound(folder_id)
        return folder

    def list(self) -> list[Folder]:
        return self._catalog.list_folders()

    def summaries(self) -> list[FolderSummary]:
        return self._catalog.folder_summaries()

    def screenshots(self, folder: Folder) -> list[Screenshot]:
        """Assignments in `folder`, most recently filed first."""
        return self._catalog.list_assignments(folder)

    def create(self, name: str) -> Folder:
        try:
            with self._catalog.transaction():
                folder = self._catalog.create_folder(name)
        except PersistenceError as ex:
            self._log_failure("Create folder", ex)
            raise
        logger.info("Folder created: {} ({})", folder.name, folder.id)
        self._notifier.publish(ChangeEvent(ChangeKind.FOLDER_CREATED, folder_id=folder.id))
        return folder

    def rename(self, folder: Folder, new_name: str) -> Folder:
        try:
            with self._catalog.transaction():
                renamed = self._catalog.rename_folder(folder, new_name)
        except PersistenceError as ex:
            self._log_failure("Rename folder", ex)
            raise
        logger.info("Folder renamed: {} -> {}", folder.name, renamed.name)
        self._notifier.publish(ChangeEvent(ChangeKind.FOLDER_RENAMED, folder_id=folder.id))
        return renamed

    def duplicate(self, folder: Folder, copy_assignments: bool = True) -> Folder:
        """Duplicate `folder`, deep-copying its assignments by default."""
        try:
            with self._catalog.transaction():
                copy = self._catalog.duplicate_folder(folder, copy_assignments=copy_assignments)
        except PersistenceError as ex:
            self._log_failure("Duplicate folder", ex)
            raise
        logger.info("Folder duplicated: {} -> {} ({})", folder.name, copy.name, copy.id)
        self._notifier.publish(ChangeEvent(ChangeKind.FOLDER_CREATED, folder_id=copy.id))
        return copy

    def delete(self, folder: Folder) -> None:
        """Delete `folder` together with all of its screenshot records."""
        try:
            with self._catalog.transaction():
                self._catalog.delete_folder(folder)
        except PersistenceError as ex:
            self._log_failure("Delete folder", ex)
            raise
        logger.info("Folder deleted: {} ({})", folder.name, folder.id)
        self._notifier.publish(ChangeEvent(ChangeKind.FOLDER_DELETED, folder_id=folder.id))
