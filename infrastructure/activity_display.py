"""File-backed Live Activity host.

Each session is mirrored as `<session_id>.json` in a shared directory that an
out-of-process renderer (widget, menu-bar helper, phone companion) watches.
Files are replaced atomically so a reader never sees a half-written snapshot.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
import tempfile
import uuid

from loguru import logger

from core.errors import SessionUnavailable
from core.models import ActivitySnapshot, SessionHandle


class FileActivityDisplay:
    """Writes session snapshots as JSON files; enforces a session quota."""

    def __init__(self, directory: str | Path, enabled: bool = True, max_sessions: int = 1) -> None:
        self._dir = Path(directory).expanduser()
        self._enabled = enabled
        self._max_sessions = max(1, int(max_sessions))
        self._open: set[str] = set()

    @property
    def directory(self) -> Path:
        return self._dir

    def session_path(self, handle: SessionHandle) -> Path:
        return self._dir / f"{handle.session_id}.json"

    def _write(self, handle: SessionHandle, snapshot: ActivitySnapshot) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        payload = {"session_id": handle.session_id, "state": snapshot.to_dict()}
        fd, tmp = tempfile.mkstemp(dir=str(self._dir), prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.session_path(handle))
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def start(self, snapshot: ActivitySnapshot) -> SessionHandle:
        if not self._enabled:
            raise SessionUnavailable("live activities are disabled")
        if len(self._open) >= self._max_sessions:
            raise SessionUnavailable(f"session quota of {self._max_sessions} exhausted")
        handle = SessionHandle(session_id=str(uuid.uuid4()))
        try:
            await asyncio.to_thread(self._write, handle, snapshot)
        except OSError as ex:
            logger.error("Start session write failed: {}", ex)
            raise SessionUnavailable(str(ex)) from ex
        self._open.add(handle.session_id)
        return handle

    async def update(self, handle: SessionHandle, snapshot: ActivitySnapshot) -> None:
        if handle.session_id not in self._open:
            logger.debug("Update for closed session {} ignored", handle.session_id)
            return
        try:
            await asyncio.to_thread(self._write, handle, snapshot)
        except OSError as ex:
            raise SessionUnavailable(str(ex)) from ex

    async def end(self, handle: SessionHandle, snapshot: ActivitySnapshot) -> None:
        """Write the final snapshot, then dismiss immediately by removing the file."""
        if handle.session_id not in self._open:
            return
        self._open.discard(handle.session_id)
        try:
            await asyncio.to_thread(self._write, handle, snapshot)
            await asyncio.to_thread(self.session_path(handle).unlink, True)
        except OSError as ex:
            raise SessionUnavailable(str(ex)) from ex
