"""ViewModel that mediates between the services and a presentation layer."""

from __future__ import annotations

from loguru import logger

from app.viewmodels.screenshot_vm import FolderVM, ScreenshotVM
from core.errors import AccessDenied
from core.models import Folder, OutcomeKind
from core.services.assignment_service import AssignmentService
from core.services.events import FOLDER_KINDS, ChangeEvent, ChangeKind
from core.services.folder_service import FolderService
from core.services.interfaces import AssignOutcome
from core.services.selection_service import SelectionService


class MainVM:
    """Main application view-model.

    Holds the recent-screenshot list, the folder list and the current
    selection, and rebuilds them whenever the services report a change.
    """

    def __init__(
        self,
        assignments: AssignmentService,
        folders: FolderService,
        selection: SelectionService | None = None,
    ) -> None:
        """Create a MainVM.

        Args:
            assignments: Assignment engine (also provides the change channel).
            folders: Folder management service.
            selection: Selection state (defaults to a new `SelectionService`).
        """
        self._assignments = assignments
        self._folders = folders
        self.selection = selection or SelectionService()
        self.recent: list[ScreenshotVM] = []
        self.folders: list[FolderVM] = []
        self.needs_permission_prompt = False
        self._unsubscribe = assignments.subscribe(self._on_change)
        self._rebuild_folders()

    def close(self) -> None:
        self._unsubscribe()

    # Loading
    def refresh(self) -> list[ScreenshotVM]:
        """Recompute the unassigned list (e.g. when the app comes to the foreground)."""
        try:
            self._assignments.unassigned_recent()
        except AccessDenied as ex:
            logger.warning("Recent screenshots unavailable: {}", ex)
            self.needs_permission_prompt = True
            self.recent = []
            self.selection.clear()
            return self.recent
        self.needs_permission_prompt = False
        return self.recent

    def _rebuild_recent(self) -> None:
        assets = self._assignments.recent
        self.selection.reconcile(a.asset_ref for a in assets)
        self.recent = [ScreenshotVM(a, is_selected=a.asset_ref in self.selection) for a in assets]

    def _rebuild_folders(self) -> None:
        self.folders = [FolderVM(s) for s in self._folders.summaries()]

    def _on_change(self, event: ChangeEvent) -> None:
        if event.kind is ChangeKind.UNASSIGNED_CHANGED:
            self._rebuild_recent()
        elif event.kind is ChangeKind.ASSIGNMENTS_CHANGED or event.kind in FOLDER_KINDS:
            self._rebuild_folders()

    # Selection
    def toggle_selection(self, asset_ref: str) -> bool:
        selected = self.selection.toggle(asset_ref)
        for vm in self.recent:
            if vm.asset_ref == asset_ref:
                vm.is_selected = selected
        return selected

    def cancel_selection(self) -> None:
        self.selection.clear()
        for vm in self.recent:
            vm.is_selected = False

    @property
    def is_selection_mode(self) -> bool:
        return self.selection.is_active

    # Filing
    def file_selection_into(self, folder_id: str) -> dict[str, AssignOutcome]:
        """File every selected screenshot into `folder_id` (tap on a folder card).

        Refs that ended up in the folder are removed from the selection; failed
        ones stay selected so the user can retry.
        """
        refs = self.selection.selected()
        if not refs:
            return {}
        folder = self._folders.get(folder_id)
        outcomes = self._assignments.assign_batch(refs, folder)
        for ref, outcome in outcomes.items():
            if outcome.kind is not OutcomeKind.FAILED:
                self.selection.deselect(ref)
        self._rebuild_recent()
        return outcomes

    def drop_on_folder(self, asset_ref: str, folder_id: str) -> AssignOutcome:
        """Handle a screenshot dragged onto a folder."""
        outcome = self._assignments.assign_to_folder_id(asset_ref, folder_id)
        self.selection.deselect(asset_ref)
        return outcome

    def create_folder_with(self, name: str, asset_ref: str) -> Folder:
        """Quick-create a folder and file `asset_ref` into it."""
        return self._assignments.create_folder_and_assign(name, asset_ref)

    def discard(self, asset_ref: str) -> bool:
        """Swipe-left: delete the screenshot from the library."""
        self.selection.deselect(asset_ref)
        return self._assignments.discard(asset_ref)

    # Folders
    def create_folder(self, name: str) -> Folder:
        return self._folders.create(name)

    def rename_folder(self, folder_id: str, new_name: str) -> Folder:
        return self._folders.rename(self._folders.get(folder_id), new_name)

    def duplicate_folder(self, folder_id: str) -> Folder:
        return self._folders.duplicate(self._folders.get(folder_id))

    def delete_folder(self, folder_id: str) -> None:
        self._folders.delete(self._folders.get(folder_id))

    @property
    def folder_count(self) -> int:
        """Number of folders currently listed."""
        return len(self.folders)
