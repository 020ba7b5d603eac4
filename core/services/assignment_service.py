"""Screenshot-to-folder assignment and deduplication.

`AssignmentService` is the only path that files assets into folders. It keeps
every (asset_ref, folder) pair unique, owns the in-memory list of unassigned
recent screenshots, and announces changes through a `ChangeNotifier`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
import threading

from loguru import logger

from core.errors import AccessDenied, AssetNotFound, FolderNotFound, PersistenceError
from core.models import Asset, Folder, OutcomeKind
from core.services.events import ChangeEvent, ChangeKind, ChangeNotifier, Listener
from core.services.interfaces import AssetSource, AssignOutcome, Catalog
from core.services.sort_service import SortService

DEFAULT_RECENT_WINDOW = timedelta(hours=24)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AssignmentService:
    """Reconciles the asset source, the catalog and the unassigned list."""

    def __init__(
        self,
        catalog: Catalog,
        source: AssetSource,
        notifier: ChangeNotifier | None = None,
        sorter: SortService | None = None,
        recent_window: timedelta = DEFAULT_RECENT_WINDOW,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Create the engine.

        Args:
            catalog: Folder/assignment store (see `SqliteCatalog`).
            source: Asset source (photo library adapter).
            notifier: Change channel shared with other services; a private one
                is created when omitted.
            sorter: Ordering rules (defaults to `SortService`).
            recent_window: Default look-back for `unassigned_recent`.
            clock: Source of "now".
        """
        self._catalog = catalog
        self._source = source
        self._notifier = notifier or ChangeNotifier()
        self._sorter = sorter or SortService()
        self._recent_window = recent_window
        self._clock = clock
        self._lock = threading.RLock()
        self._recent: list[Asset] = []
        self._last_cutoff: datetime | None = None
        self._notifier.subscribe(self._on_change)

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    @property
    def recent(self) -> tuple[Asset, ...]:
        """Last computed unassigned-recent list (read-only snapshot)."""
        with self._lock:
            return tuple(self._recent)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for change events. Returns an unsubscribe callable."""
        return self._notifier.subscribe(listener)

    def _ensure_access(self) -> None:
        status = self._source.request_access()
        if not status.allows_read:
            logger.warning("Photo library access {}; operation aborted", status.value)
            raise AccessDenied(status)

    # Unassigned view
    def default_cutoff(self) -> datetime:
        return self._clock() - self._recent_window

    def unassigned_recent(self, cutoff: datetime | None = None) -> list[Asset]:
        """Recompute recent screenshots that are not filed in any folder.

        Args:
            cutoff: Earliest capture time to include; defaults to now minus
                the recent window.

        Returns:
            Assets ordered by capture time, newest first.

        Raises:
            AccessDenied: The asset source is not readable.
        """
        if cutoff is None:
            cutoff = self.default_cutoff()
        elif cutoff.tzinfo is None:
            cutoff = cutoff.astimezone(timezone.utc)
        self._ensure_access()

        fetched = self._sorter.dedupe_assets(self._source.fetch_assets_since(cutoff))
        assigned = self._catalog.all_assigned_asset_refs()
        result = self._sorter.sort_assets(a for a in fetched if a.asset_ref not in assigned)
        logger.info(
            "Unassigned recent: fetched={} assigned={} available={}",
            len(fetched),
            len(assigned),
            len(result),
        )
        with self._lock:
            self._recent = result
            self._last_cutoff = cutoff
        refs = tuple(a.asset_ref for a in result)
        self._notifier.publish(ChangeEvent(ChangeKind.UNASSIGNED_CHANGED, asset_refs=refs))
        return list(result)

    def refresh(self) -> list[Asset]:
        """Recompute with the last used cutoff (or the default one)."""
        with self._lock:
            cutoff = self._last_cutoff
        return self.unassigned_recent(cutoff)

    def _drop_from_recent(self, asset_refs: Iterable[str]) -> None:
        refs = set(asset_refs)
        with self._lock:
            before = len(self._recent)
            self._recent = [a for a in self._recent if a.asset_ref not in refs]
            changed = len(self._recent) != before
        if changed:
            event = ChangeEvent(ChangeKind.UNASSIGNED_CHANGED, asset_refs=tuple(refs))
            self._notifier.publish(event)

    def _on_change(self, event: ChangeEvent) -> None:
        # A deleted folder may leave its screenshots unassigned again
        if event.kind is ChangeKind.FOLDER_DELETED and self._last_cutoff is not None:
            self.refresh()

    # Assignment
    def assign_to_folder(self, asset_ref: str, folder: Folder) -> AssignOutcome:
        """File `asset_ref` into `folder` exactly once.

        Returns:
            `ASSIGNED` with the new record, `ALREADY_ASSIGNED` with the
            existing one, or `FAILED` when the asset no longer exists.

        Raises:
            PersistenceError: The catalog write failed; nothing was changed.
            AccessDenied: The asset source is not readable.
        """
        # Existence check and insert commit as one unit
        try:
            with self._catalog.transaction():
                existing = self._catalog.find_assignment(asset_ref, folder)
                if existing is not None:
                    logger.info("Already in folder {}: {}", folder.name, asset_ref)
                    return AssignOutcome(
                        asset_ref, OutcomeKind.ALREADY_ASSIGNED, screenshot=existing
                    )

                self._ensure_access()
                if self._source.resolve(asset_ref) is None:
                    logger.warning("Asset vanished before assignment: {}", asset_ref)
                    return AssignOutcome(
                        asset_ref, OutcomeKind.FAILED, reason=str(AssetNotFound(asset_ref))
                    )
                shot = self._catalog.assign(asset_ref, folder)
        except PersistenceError:
            logger.error("Assign failed: {} -> {}", asset_ref, folder.name)
            raise

        logger.info("Screenshot saved to folder {}: {}", folder.name, asset_ref)
        self._drop_from_recent([asset_ref])
        self._notifier.publish(
            ChangeEvent(
                ChangeKind.ASSIGNMENTS_CHANGED, folder_id=folder.id, asset_refs=(asset_ref,)
            )
        )
        return AssignOutcome(asset_ref, OutcomeKind.ASSIGNED, screenshot=shot)

    def assign_to_folder_id(self, asset_ref: str, folder_id: str) -> AssignOutcome:
        """Like `assign_to_folder`, looking the folder up by id first.

        Raises:
            FolderNotFound: No folder has `folder_id`.
        """
        folder = self._catalog.get_folder(folder_id)
        if folder is None:
            raise FolderNotFound(folder_id)
        return self.assign_to_folder(asset_ref, folder)

    def assign_batch(self, asset_refs: Iterable[str], folder: Folder) -> dict[str, AssignOutcome]:
        """File several assets; each element succeeds or fails on its own.

        Returns:
            Outcomes keyed by asset ref. Repeated refs are processed once.

        Raises:
            AccessDenied: The asset source is not readable (checked up front).
        """
        self._ensure_access()
        outcomes: dict[str, AssignOutcome] = {}
        for ref in asset_refs:
            if ref in outcomes:
                continue
            try:
                outcomes[ref] = self.assign_to_folder(ref, folder)
            except PersistenceError as ex:
                outcomes[ref] = AssignOutcome(ref, OutcomeKind.FAILED, reason=str(ex))
        failed = sum(1 for o in outcomes.values() if o.kind is OutcomeKind.FAILED)
        logger.info(
            "Batch assign to {}: {} items, {} failed", folder.name, len(outcomes), failed
        )
        return outcomes

    def create_folder_and_assign(self, name: str, asset_ref: str) -> Folder:
        """Create a folder and file `asset_ref` into it.

        The folder is committed first and kept even if the assignment fails.

        Raises:
            PersistenceError: Folder creation or the assignment write failed.
        """
        try:
            with self._catalog.transaction():
                folder = self._catalog.create_folder(name)
        except PersistenceError:
            logger.error("Create folder failed: {}", name)
            raise
        logger.info("Folder created: {} ({})", folder.name, folder.id)
        self._notifier.publish(ChangeEvent(ChangeKind.FOLDER_CREATED, folder_id=folder.id))

        outcome = self.assign_to_folder(asset_ref, folder)
        if not outcome.succeeded:
            logger.warning(
                "New folder {} kept without {}: {}", folder.name, asset_ref, outcome.reason
            )
        return folder

    # Asset actions
    def latest_screenshot(self) -> Asset | None:
        """Newest screenshot in the asset source."""
        self._ensure_access()
        return self._source.latest()

    def discard(self, asset_ref: str) -> bool:
        """Delete an asset from the library and drop it from the recent list."""
        self._ensure_access()
        if not self._source.delete_asset(asset_ref):
            logger.warning("Discard failed: {}", asset_ref)
            return False
        self._drop_from_recent([asset_ref])
        return True
