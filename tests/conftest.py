"""Pytest fixtures for Capture Cabinet tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import sqlite3

import pytest

from core.errors import SessionUnavailable
from core.models import AccessStatus, ActivitySnapshot, Asset, SessionHandle
from core.services.assignment_service import AssignmentService
from core.services.events import ChangeNotifier
from core.services.folder_service import FolderService
from infrastructure.sqlite_catalog import SqliteCatalog

BASE_TIME = datetime(2025, 10, 1, 10, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """Capture time `minutes` after 10:00 UTC on the test day."""
    return BASE_TIME + timedelta(minutes=minutes)


class SteppingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        self.now = self.now + self.step
        return self.now


class FakeAssetSource:
    """In-memory photo library."""

    def __init__(self) -> None:
        self.assets: dict[str, Asset] = {}
        self.status = AccessStatus.GRANTED
        self.deleted: list[str] = []

    def add(self, asset_ref: str, captured_at: datetime) -> Asset:
        asset = Asset(asset_ref=asset_ref, captured_at=captured_at)
        self.assets[asset_ref] = asset
        return asset

    def remove(self, asset_ref: str) -> None:
        self.assets.pop(asset_ref, None)

    def fetch_assets_since(self, cutoff: datetime) -> list[Asset]:
        # Deliberately unsorted to exercise the engine's ordering
        return [a for a in self.assets.values() if a.captured_at >= cutoff]

    def resolve(self, asset_ref: str) -> Asset | None:
        return self.assets.get(asset_ref)

    def latest(self) -> Asset | None:
        return max(self.assets.values(), key=lambda a: a.captured_at, default=None)

    def delete_asset(self, asset_ref: str) -> bool:
        if asset_ref not in self.assets:
            return False
        del self.assets[asset_ref]
        self.deleted.append(asset_ref)
        return True

    def request_access(self) -> AccessStatus:
        return self.status


class RecordingDisplay:
    """Ephemeral display host that records every call."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.started: list[tuple[SessionHandle, ActivitySnapshot]] = []
        self.updates: list[tuple[SessionHandle, ActivitySnapshot]] = []
        self.ended: list[tuple[SessionHandle, ActivitySnapshot]] = []

    async def start(self, snapshot: ActivitySnapshot) -> SessionHandle:
        if not self.available:
            raise SessionUnavailable("quota exhausted")
        handle = SessionHandle(session_id=f"session-{len(self.started) + 1}")
        self.started.append((handle, snapshot))
        return handle

    async def update(self, handle: SessionHandle, snapshot: ActivitySnapshot) -> None:
        self.updates.append((handle, snapshot))

    async def end(self, handle: SessionHandle, snapshot: ActivitySnapshot) -> None:
        self.ended.append((handle, snapshot))


class FailingSaveCatalog(SqliteCatalog):
    """Catalog whose commits fail while `fail_saves` is set."""

    fail_saves = False

    def _commit(self) -> None:
        if self.fail_saves:
            raise sqlite3.OperationalError("disk I/O error")
        super()._commit()


@pytest.fixture
def clock():
    return SteppingClock(BASE_TIME + timedelta(hours=1))


@pytest.fixture
def source():
    return FakeAssetSource()


@pytest.fixture
def catalog(tmp_path, clock):
    cat = FailingSaveCatalog(tmp_path / "catalog.sqlite3", clock=clock)
    yield cat
    cat.close()


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
def assignments(catalog, source, notifier, clock):
    return AssignmentService(catalog, source, notifier=notifier, clock=clock)


@pytest.fixture
def folders(catalog, notifier):
    return FolderService(catalog, notifier)


@pytest.fixture
def abc_source(source):
    """Library with screenshots A@10:00, B@10:05, C@10:10."""
    source.add("A", at(0))
    source.add("B", at(5))
    source.add("C", at(10))
    return source
