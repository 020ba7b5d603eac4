"""Live Activity (Dynamic Island) sync bridge.

Projects the pending screenshot and the folder list into an out-of-process
display session and forwards the folder picked there to the assignment
engine. The bridge only reflects results; it never writes to the catalog.

State machine per capture::

    IDLE -> STARTED -> SAVING -> COMPLETED -> IDLE   (selection path)
    STARTED -> IDLE                                  (timeout, nothing assigned)

Selections for any handle other than the live one, or arriving in any state
other than STARTED, are dropped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from core.errors import AccessDenied, FolderNotFound, PersistenceError, SessionUnavailable
from core.models import ActivitySnapshot, ActivityState, OutcomeKind, SessionHandle
from core.services.assignment_service import AssignmentService
from core.services.folder_service import FolderService
from core.services.interfaces import ActivityDisplay, AssignOutcome

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_COMPLETION_DELAY_SECONDS = 2.0
DEFAULT_CAPTURE_SETTLE_SECONDS = 0.5


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LiveActivityBridge:
    """Drives one ephemeral display session at a time."""

    def __init__(
        self,
        assignments: AssignmentService,
        folders: FolderService,
        display: ActivityDisplay,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        completion_delay: float = DEFAULT_COMPLETION_DELAY_SECONDS,
        capture_settle: float = DEFAULT_CAPTURE_SETTLE_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Create the bridge.

        Args:
            assignments: Engine that performs the actual filing.
            folders: Source of the folder list shown in the session.
            display: Out-of-process host of the session.
            timeout: Seconds to wait for a selection before tearing down.
            completion_delay: Seconds the result stays visible after saving.
            capture_settle: Seconds to wait after a capture notification before
                looking up the newest screenshot.
            clock: Source of "now" for snapshot timestamps.
        """
        self._assignments = assignments
        self._folders = folders
        self._display = display
        self._timeout = timeout
        self._completion_delay = completion_delay
        self._capture_settle = capture_settle
        self._clock = clock

        self._lock = asyncio.Lock()
        self._state = ActivityState.IDLE
        self._handle: SessionHandle | None = None
        self._snapshot: ActivitySnapshot | None = None
        self._asset_ref: str | None = None
        self._timeout_task: asyncio.Task[None] | None = None
        self._teardown_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ActivityState:
        return self._state

    @property
    def handle(self) -> SessionHandle | None:
        return self._handle

    @property
    def snapshot(self) -> ActivitySnapshot | None:
        return self._snapshot

    async def screenshot_captured(self, asset_ref: str | None = None) -> SessionHandle | None:
        """Start a session for a freshly captured screenshot.

        Args:
            asset_ref: The captured asset. When omitted, the bridge waits for the
                library to settle and uses the newest screenshot.

        Returns:
            The new session handle, or None when no session could be shown.
        """
        if asset_ref is None:
            await asyncio.sleep(self._capture_settle)
            try:
                latest = await asyncio.to_thread(self._assignments.latest_screenshot)
            except AccessDenied as ex:
                logger.warning("Cannot look up captured screenshot: {}", ex)
                return None
            if latest is None:
                logger.warning("Could not fetch latest screenshot")
                return None
            asset_ref = latest.asset_ref

        async with self._lock:
            await self._end_locked()
            try:
                folders = await asyncio.to_thread(self._folders.summaries)
            except PersistenceError as ex:
                logger.error("Folder list unavailable for Live Activity: {}", ex)
                return None

            snapshot = ActivitySnapshot(
                screenshot_asset_ref=asset_ref,
                screenshot_timestamp=self._clock(),
                folders=tuple(folders),
            )
            try:
                handle = await self._display.start(snapshot)
            except SessionUnavailable as ex:
                logger.warning("{}", ex)
                return None

            self._handle = handle
            self._snapshot = snapshot
            self._asset_ref = asset_ref
            self._state = ActivityState.STARTED
            self._timeout_task = asyncio.create_task(self._expire(handle))
            logger.info("Live Activity started: {} for {}", handle.session_id, asset_ref)
            return handle

    async def folder_selected(self, handle: SessionHandle, folder_id: str) -> AssignOutcome | None:
        """Handle a folder picked in the display session.

        Returns:
            The assignment outcome, or None when the event was stale and dropped.
        """
        async with self._lock:
            if handle != self._handle or self._state is not ActivityState.STARTED:
                logger.info(
                    "Dropping stale folder selection {} for session {} (state={})",
                    folder_id,
                    handle.session_id,
                    self._state.value,
                )
                return None
            self._cancel_timers()
            asset_ref = self._asset_ref or ""
            self._state = ActivityState.SAVING
            await self._push(selected_folder_id=folder_id, is_saving=True)

            try:
                outcome = await asyncio.to_thread(
                    self._assignments.assign_to_folder_id, asset_ref, folder_id
                )
            except (FolderNotFound, PersistenceError, AccessDenied) as ex:
                logger.error("Live Activity save failed for {}: {}", asset_ref, ex)
                outcome = AssignOutcome(asset_ref, OutcomeKind.FAILED, reason=str(ex))

            self._state = ActivityState.COMPLETED
            await self._push(is_saving=False, saved_successfully=outcome.succeeded)
            self._teardown_task = asyncio.create_task(self._teardown_after(handle))
            logger.info(
                "Live Activity {} completed: {} -> {} ({})",
                handle.session_id,
                asset_ref,
                folder_id,
                outcome.kind.value,
            )
            return outcome

    async def end(self) -> None:
        """Tear down the current session, if any."""
        async with self._lock:
            await self._end_locked()

    async def aclose(self) -> None:
        """End any live session and cancel pending timers (owner shutdown)."""
        await self.end()

    async def __aenter__(self) -> LiveActivityBridge:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def _expire(self, handle: SessionHandle) -> None:
        await asyncio.sleep(self._timeout)
        async with self._lock:
            if handle == self._handle and self._state is ActivityState.STARTED:
                logger.info("Live Activity {} timed out without selection", handle.session_id)
                await self._end_locked()

    async def _teardown_after(self, handle: SessionHandle) -> None:
        await asyncio.sleep(self._completion_delay)
        async with self._lock:
            if handle == self._handle:
                await self._end_locked()

    def _cancel_timers(self) -> None:
        current = asyncio.current_task()
        for task in (self._timeout_task, self._teardown_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._timeout_task = None
        self._teardown_task = None

    async def _push(self, **changes: Any) -> None:
        if self._handle is None or self._snapshot is None:
            return
        self._snapshot = replace(self._snapshot, version=self._snapshot.version + 1, **changes)
        try:
            await self._display.update(self._handle, self._snapshot)
        except SessionUnavailable as ex:
            logger.warning("Live Activity update failed: {}", ex)

    async def _end_locked(self) -> None:
        self._cancel_timers()
        handle, snapshot = self._handle, self._snapshot
        self._handle = None
        self._snapshot = None
        self._asset_ref = None
        self._state = ActivityState.IDLE
        if handle is None or snapshot is None:
            return
        final = replace(
            snapshot,
            screenshot_timestamp=self._clock(),
            folders=(),
            selected_folder_id=None,
            is_saving=False,
            saved_successfully=None,
            version=snapshot.version + 1,
        )
        try:
            await self._display.end(handle, final)
        except SessionUnavailable as ex:
            logger.warning("Live Activity end failed: {}", ex)
        logger.info("Live Activity ended: {}", handle.session_id)
