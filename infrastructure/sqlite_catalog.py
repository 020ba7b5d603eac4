"""SQLite persistence for folders and screenshot assignments.

Mutations stay pending on the single catalog connection until `save()`
commits them atomically; a failed commit is rolled back so later reads only
ever see the last committed state. All access goes through one re-entrant
lock, making the catalog the single writer for the whole app. Services wrap
their writes in `transaction()`, which keeps that lock from the first
statement to the commit.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
import sqlite3
import threading
from typing import Any
import uuid

from loguru import logger

from core.errors import FolderNotFound, PersistenceError
from core.models import Folder, FolderSummary, Screenshot
from infrastructure.utils import format_db_datetime, parse_db_datetime, utc_now

DEFAULT_PLACEHOLDER_NAME = "New Folder"
COPY_SUFFIX = " Copy"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS folders(
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS screenshots(
  id TEXT PRIMARY KEY,
  asset_ref TEXT NOT NULL,
  created_at TEXT NOT NULL,
  folder_id TEXT NOT NULL REFERENCES folders(id) ON DELETE CASCADE,
  UNIQUE(asset_ref, folder_id)
);

CREATE INDEX IF NOT EXISTS idx_folders_created ON folders(created_at, id);
CREATE INDEX IF NOT EXISTS idx_screenshots_folder ON screenshots(folder_id);
"""


def _folder_from_row(row: sqlite3.Row) -> Folder:
    return Folder(id=row["id"], name=row["name"], created_at=parse_db_datetime(row["created_at"]))


def _screenshot_from_row(row: sqlite3.Row) -> Screenshot:
    return Screenshot(
        id=row["id"],
        asset_ref=row["asset_ref"],
        created_at=parse_db_datetime(row["created_at"]),
        folder_id=row["folder_id"],
    )


class SqliteCatalog:
    """Relational store of `Folder` and `Screenshot` records."""

    def __init__(
        self,
        db_path: str | Path,
        placeholder_name: str = DEFAULT_PLACEHOLDER_NAME,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Open (and create if needed) the catalog at `db_path`.

        Args:
            db_path: SQLite file path, or ":memory:".
            placeholder_name: Name used when a folder name is empty.
            clock: Source of "now" for `created_at` stamps.
        """
        self._placeholder = placeholder_name or DEFAULT_PLACEHOLDER_NAME
        self._clock = clock
        self._lock = threading.RLock()
        self._tx_depth = 0
        target = str(db_path)
        if target != ":memory:":
            Path(target).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = sqlite3.connect(target, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except sqlite3.Error as ex:
            logger.error("Open catalog failed: {} ({})", target, ex)
            raise PersistenceError(f"Cannot open catalog {target}", ex) from ex
        logger.info("Catalog opened: {}", target)

    # Lifecycle
    def __enter__(self) -> SqliteCatalog:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        """Discard pending changes and close the connection."""
        with self._lock:
            try:
                self._conn.rollback()
                self._conn.close()
            except sqlite3.Error as ex:
                logger.warning("Close catalog failed: {}", ex)

    @property
    def has_pending_changes(self) -> bool:
        with self._lock:
            return self._conn.in_transaction

    def save(self) -> None:
        """Commit all pending mutations atomically.

        Raises:
            PersistenceError: The commit failed; pending changes were rolled back.
        """
        with self._lock:
            try:
                self._commit()
            except sqlite3.Error as ex:
                logger.error("Catalog save failed, rolling back: {}", ex)
                self.rollback()
                raise PersistenceError("Catalog save failed", ex) from ex

    def rollback(self) -> None:
        """Drop all pending mutations."""
        with self._lock:
            try:
                self._conn.rollback()
            except sqlite3.Error as ex:
                logger.error("Catalog rollback failed: {}", ex)
                raise PersistenceError("Catalog rollback failed", ex) from ex

    @contextmanager
    def transaction(self) -> Iterator[SqliteCatalog]:
        """Group mutations into one atomic unit.

        The catalog lock is held until the block has been committed or rolled
        back, so other threads can neither read the pending rows nor discard
        them. Any exception rolls the block back and propagates. Nested blocks
        join the outermost one.

        Raises:
            PersistenceError: The commit failed; nothing was written.
        """
        with self._lock:
            if self._tx_depth:
                self._tx_depth += 1
                try:
                    yield self
                finally:
                    self._tx_depth -= 1
                return
            self._tx_depth = 1
            try:
                yield self
            except BaseException:
                self.rollback()
                raise
            finally:
                self._tx_depth = 0
            self.save()

    def _commit(self) -> None:
        self._conn.commit()

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as ex:
                logger.error("Catalog statement failed: {} | {}", ex, sql.split("(")[0].strip())
                raise PersistenceError("Catalog statement failed", ex) from ex

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._execute(sql, params).fetchall()

    def _query_one(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        with self._lock:
            return self._execute(sql, params).fetchone()

    def _display_name(self, name: str | None) -> str:
        cleaned = (name or "").strip()
        return cleaned or self._placeholder

    # Folders
    def create_folder(self, name: str) -> Folder:
        """Insert a new folder stamped with the current time."""
        folder = Folder(
            id=str(uuid.uuid4()), name=self._display_name(name), created_at=self._clock()
        )
        self._insert_folder(folder)
        return folder

    def _insert_folder(self, folder: Folder) -> None:
        self._execute(
            "INSERT INTO folders(id, name, created_at) VALUES(?, ?, ?)",
            (folder.id, folder.name, format_db_datetime(folder.created_at)),
        )

    def rename_folder(self, folder: Folder, new_name: str) -> Folder:
        """Rename `folder`; returns the updated entity."""
        name = self._display_name(new_name)
        cur = self._execute("UPDATE folders SET name = ? WHERE id = ?", (name, folder.id))
        if cur.rowcount == 0:
            raise FolderNotFound(folder.id)
        return Folder(id=folder.id, name=name, created_at=folder.created_at)

    def duplicate_folder(self, folder: Folder, copy_assignments: bool = True) -> Folder:
        """Create "<name> Copy", optionally deep-copying its assignments.

        The copy is stamped one second before now so it lists directly ahead
        of anything created in the same moment.
        """
        with self._lock:
            source = self.get_folder(folder.id)
            if source is None:
                raise FolderNotFound(folder.id)
            now = self._clock()
            copy = Folder(
                id=str(uuid.uuid4()),
                name=f"{source.name}{COPY_SUFFIX}",
                created_at=now - timedelta(seconds=1),
            )
            self._insert_folder(copy)
            if copy_assignments:
                rows = self._query(
                    "SELECT asset_ref FROM screenshots WHERE folder_id = ? ORDER BY created_at, id",
                    (source.id,),
                )
                for row in rows:
                    self._insert_screenshot(
                        Screenshot(
                            id=str(uuid.uuid4()),
                            asset_ref=row["asset_ref"],
                            created_at=now,
                            folder_id=copy.id,
                        )
                    )
        return copy

    def delete_folder(self, folder: Folder) -> None:
        """Delete `folder` and, by cascade, all of its screenshot records."""
        cur = self._execute("DELETE FROM folders WHERE id = ?", (folder.id,))
        if cur.rowcount == 0:
            raise FolderNotFound(folder.id)

    def get_folder(self, folder_id: str) -> Folder | None:
        row = self._query_one(
            "SELECT id, name, created_at FROM folders WHERE id = ?", (folder_id,)
        )
        return _folder_from_row(row) if row is not None else None

    def list_folders(self) -> list[Folder]:
        """All folders ordered by `created_at` ascending, ties by id."""
        rows = self._query(
            "SELECT id, name, created_at FROM folders ORDER BY created_at ASC, id ASC"
        )
        return [_folder_from_row(r) for r in rows]

    def folder_summaries(self) -> list[FolderSummary]:
        """Folders in listing order with their assignment counts."""
        rows = self._query(
            """
            SELECT f.id AS id, f.name AS name, COUNT(s.id) AS n
            FROM folders f LEFT JOIN screenshots s ON s.folder_id = f.id
            GROUP BY f.id
            ORDER BY f.created_at ASC, f.id ASC
            """
        )
        return [
            FolderSummary(id=r["id"], name=r["name"], screenshot_count=int(r["n"])) for r in rows
        ]

    # Assignments
    def assign(self, asset_ref: str, folder: Folder) -> Screenshot:
        """Insert an assignment. Callers perform the duplicate check first."""
        shot = Screenshot(
            id=str(uuid.uuid4()), asset_ref=asset_ref, created_at=self._clock(), folder_id=folder.id
        )
        self._insert_screenshot(shot)
        return shot

    def _insert_screenshot(self, shot: Screenshot) -> None:
        self._execute(
            "INSERT INTO screenshots(id, asset_ref, created_at, folder_id) VALUES(?, ?, ?, ?)",
            (shot.id, shot.asset_ref, format_db_datetime(shot.created_at), shot.folder_id),
        )

    def find_assignment(self, asset_ref: str, folder: Folder) -> Screenshot | None:
        row = self._query_one(
            "SELECT id, asset_ref, created_at, folder_id FROM screenshots "
            "WHERE asset_ref = ? AND folder_id = ?",
            (asset_ref, folder.id),
        )
        return _screenshot_from_row(row) if row is not None else None

    def list_assignments(self, folder: Folder) -> list[Screenshot]:
        """Assignments of `folder`, most recently filed first."""
        rows = self._query(
            "SELECT id, asset_ref, created_at, folder_id FROM screenshots "
            "WHERE folder_id = ? ORDER BY created_at DESC, id ASC",
            (folder.id,),
        )
        return [_screenshot_from_row(r) for r in rows]

    def all_assigned_asset_refs(self) -> set[str]:
        """Every asset ref filed in any folder."""
        rows = self._query("SELECT DISTINCT asset_ref FROM screenshots")
        return {r["asset_ref"] for r in rows}
