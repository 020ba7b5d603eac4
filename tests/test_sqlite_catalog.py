"""Tests for the SQLite folder/screenshot catalog."""

from datetime import timedelta

import pytest

from core.errors import FolderNotFound, PersistenceError
from infrastructure.sqlite_catalog import SqliteCatalog


def test_create_folder_stamps_id_and_time(catalog, clock):
    folder = catalog.create_folder("Work")
    catalog.save()

    assert folder.id
    assert folder.name == "Work"
    assert folder.created_at == clock.now
    assert catalog.get_folder(folder.id) == folder


def test_empty_name_uses_placeholder(tmp_path):
    with SqliteCatalog(tmp_path / "c.sqlite3", placeholder_name="새 폴더") as cat:
        blank = cat.create_folder("")
        spaces = cat.create_folder("   ")
        renamed = cat.rename_folder(cat.create_folder("Trip"), "")

    assert blank.name == "새 폴더"
    assert spaces.name == "새 폴더"
    assert renamed.name == "새 폴더"


def test_list_folders_ascending_by_creation(catalog):
    first = catalog.create_folder("First")
    second = catalog.create_folder("Second")
    third = catalog.create_folder("Third")
    catalog.save()

    assert [f.id for f in catalog.list_folders()] == [first.id, second.id, third.id]


def test_list_folders_ties_broken_by_id(tmp_path, clock):
    frozen = clock()
    with SqliteCatalog(tmp_path / "c.sqlite3", clock=lambda: frozen) as cat:
        made = [cat.create_folder(name) for name in ("x", "y", "z")]
        cat.save()
        listed = cat.list_folders()

    assert [f.id for f in listed] == sorted(f.id for f in made)


def test_rename_folder_returns_updated_entity(catalog):
    folder = catalog.create_folder("Old")
    renamed = catalog.rename_folder(folder, "New")
    catalog.save()

    assert renamed.id == folder.id
    assert renamed.created_at == folder.created_at
    assert catalog.get_folder(folder.id).name == "New"


def test_rename_missing_folder_raises(catalog):
    folder = catalog.create_folder("Gone")
    catalog.delete_folder(folder)
    catalog.save()

    with pytest.raises(FolderNotFound):
        catalog.rename_folder(folder, "Back")


def test_assign_and_find_assignment(catalog):
    folder = catalog.create_folder("Work")
    shot = catalog.assign("A", folder)
    catalog.save()

    found = catalog.find_assignment("A", folder)
    assert found == shot
    assert found.folder_id == folder.id
    assert catalog.find_assignment("B", folder) is None


def test_duplicate_pair_violates_constraint(catalog):
    folder = catalog.create_folder("Work")
    catalog.assign("A", folder)

    with pytest.raises(PersistenceError):
        catalog.assign("A", folder)


def test_assign_to_missing_folder_is_rejected(catalog):
    folder = catalog.create_folder("Temp")
    catalog.delete_folder(folder)

    with pytest.raises(PersistenceError):
        catalog.assign("A", folder)


def test_all_assigned_refs_spans_folders(catalog):
    work = catalog.create_folder("Work")
    home = catalog.create_folder("Home")
    catalog.assign("A", work)
    catalog.assign("B", home)
    catalog.assign("A", home)
    catalog.save()

    assert catalog.all_assigned_asset_refs() == {"A", "B"}


def test_delete_folder_cascades(catalog):
    work = catalog.create_folder("Work")
    keep = catalog.create_folder("Keep")
    for ref in ("A", "B", "C"):
        catalog.assign(ref, work)
    catalog.assign("D", keep)
    catalog.save()

    catalog.delete_folder(work)
    catalog.save()

    assert catalog.list_assignments(work) == []
    assert catalog.all_assigned_asset_refs() == {"D"}
    assert catalog.get_folder(work.id) is None


def test_duplicate_folder_copies_assignments(catalog, clock):
    work = catalog.create_folder("Work")
    catalog.assign("A", work)
    catalog.assign("B", work)
    catalog.save()

    copy = catalog.duplicate_folder(work)
    catalog.save()

    assert copy.id != work.id
    assert copy.name == "Work Copy"
    assert copy.created_at == clock.now - timedelta(seconds=1)
    copied = catalog.list_assignments(copy)
    assert {s.asset_ref for s in copied} == {"A", "B"}
    original_ids = {s.id for s in catalog.list_assignments(work)}
    assert not original_ids & {s.id for s in copied}
    assert all(s.folder_id == copy.id for s in copied)


def test_duplicate_folder_shell_only(catalog):
    work = catalog.create_folder("Work")
    catalog.assign("A", work)
    copy = catalog.duplicate_folder(work, copy_assignments=False)
    catalog.save()

    assert catalog.list_assignments(copy) == []


def test_folder_summaries_count_assignments(catalog):
    work = catalog.create_folder("Work")
    empty = catalog.create_folder("Empty")
    catalog.assign("A", work)
    catalog.assign("B", work)
    catalog.save()

    summaries = catalog.folder_summaries()
    assert [(s.id, s.screenshot_count) for s in summaries] == [(work.id, 2), (empty.id, 0)]


def test_list_assignments_newest_first(catalog):
    work = catalog.create_folder("Work")
    catalog.assign("A", work)
    catalog.assign("B", work)
    catalog.assign("C", work)
    catalog.save()

    assert [s.asset_ref for s in catalog.list_assignments(work)] == ["C", "B", "A"]


def test_failed_save_rolls_back_pending_writes(catalog):
    work = catalog.create_folder("Work")
    catalog.save()

    catalog.assign("A", work)
    catalog.create_folder("Never")
    catalog.fail_saves = True
    with pytest.raises(PersistenceError) as excinfo:
        catalog.save()

    assert excinfo.value.cause is not None
    assert not catalog.has_pending_changes
    assert catalog.all_assigned_asset_refs() == set()
    assert [f.name for f in catalog.list_folders()] == ["Work"]


def test_saved_state_survives_reopen(tmp_path):
    path = tmp_path / "c.sqlite3"
    with SqliteCatalog(path) as cat:
        folder = cat.create_folder("Work")
        cat.assign("A", folder)
        cat.save()
        cat.create_folder("Unsaved")

    with SqliteCatalog(path) as reopened:
        assert [f.name for f in reopened.list_folders()] == ["Work"]
        assert reopened.all_assigned_asset_refs() == {"A"}


def test_transaction_commits_on_exit(catalog):
    with catalog.transaction():
        work = catalog.create_folder("Work")
        catalog.assign("A", work)

    assert not catalog.has_pending_changes
    assert catalog.all_assigned_asset_refs() == {"A"}


def test_transaction_rolls_back_on_error(catalog):
    work = catalog.create_folder("Work")
    catalog.save()

    with pytest.raises(ValueError):
        with catalog.transaction():
            catalog.assign("A", work)
            raise ValueError("boom")

    assert not catalog.has_pending_changes
    assert catalog.all_assigned_asset_refs() == set()


def test_nested_transaction_joins_outer(catalog):
    with pytest.raises(ValueError):
        with catalog.transaction():
            work = catalog.create_folder("Work")
            with catalog.transaction():
                catalog.assign("A", work)
            assert catalog.has_pending_changes
            raise ValueError("boom")

    assert catalog.list_folders() == []
    assert catalog.all_assigned_asset_refs() == set()


def test_transaction_with_failed_commit_writes_nothing(catalog):
    catalog.fail_saves = True
    with pytest.raises(PersistenceError):
        with catalog.transaction():
            catalog.create_folder("Work")
    catalog.fail_saves = False

    assert catalog.list_folders() == []
