"""Tests for the directory-backed photo library."""

from datetime import datetime, timedelta, timezone

from PIL import Image
import pytest

from core.models import AccessStatus
from infrastructure import asset_source as asset_source_module
from infrastructure.asset_source import DirectoryAssetSource


def local_utc(*args):
    return datetime(*args).astimezone(timezone.utc)


def make_image(path, taken=None, size=(32, 20)):
    path.parent.mkdir(parents=True, exist_ok=True)
    im = Image.new("RGB", size, "white")
    if taken is None:
        im.save(path, format="JPEG")
    else:
        exif = Image.Exif()
        exif[306] = taken.strftime("%Y:%m:%d %H:%M:%S")
        im.save(path, format="JPEG", exif=exif.tobytes())
    return path


@pytest.fixture
def library(tmp_path):
    root = tmp_path / "Screenshots"
    make_image(root / "Screenshot 1.jpg", datetime(2025, 10, 1, 10, 0))
    make_image(root / "Screenshot 2.jpg", datetime(2025, 10, 1, 10, 5))
    make_image(root / "2025" / "Screen Shot 3.jpg", datetime(2025, 10, 1, 10, 10))
    make_image(root / "holiday.jpg", datetime(2025, 10, 1, 11, 0))
    (root / "screenshot notes.txt").write_text("not an image", encoding="utf-8")
    return root


def test_only_screenshot_images_are_listed(library):
    source = DirectoryAssetSource(library)

    refs = [a.asset_ref for a in source.fetch_assets_since(local_utc(2025, 1, 1))]

    assert refs == ["2025/Screen Shot 3.jpg", "Screenshot 2.jpg", "Screenshot 1.jpg"]


def test_capture_time_and_size_come_from_image(library):
    source = DirectoryAssetSource(library)

    asset = source.resolve("Screenshot 2.jpg")

    assert asset.captured_at == local_utc(2025, 10, 1, 10, 5)
    assert (asset.pixel_width, asset.pixel_height) == (32, 20)


def test_fetch_respects_cutoff_and_limit(library):
    source = DirectoryAssetSource(library, fetch_limit=1)

    assert [a.asset_ref for a in source.fetch_assets_since(local_utc(2025, 10, 1, 10, 1))] == [
        "2025/Screen Shot 3.jpg"
    ]
    unlimited = DirectoryAssetSource(library)
    assert len(unlimited.fetch_assets_since(local_utc(2025, 10, 1, 10, 1))) == 2


def test_non_recursive_scan_skips_subfolders(library):
    source = DirectoryAssetSource(library, recursive=False)

    assert source.latest().asset_ref == "Screenshot 2.jpg"


def test_missing_capture_time_falls_back_to_file_time(tmp_path):
    path = make_image(tmp_path / "screenshot plain.jpg")
    source = DirectoryAssetSource(tmp_path)

    asset = source.resolve("screenshot plain.jpg")

    assert abs(asset.captured_at - datetime.now(timezone.utc)) < timedelta(minutes=5)
    assert path.exists()


def test_resolve_rejects_unknown_and_escaping_refs(library, tmp_path):
    make_image(tmp_path / "Screenshot outside.jpg", datetime(2025, 10, 1, 9, 0))
    source = DirectoryAssetSource(library)

    assert source.resolve("Screenshot 9.jpg") is None
    assert source.resolve("holiday.jpg") is None
    assert source.resolve("../Screenshot outside.jpg") is None


def test_delete_moves_file_to_trash(library, monkeypatch):
    trashed = []
    monkeypatch.setattr(asset_source_module, "send2trash", trashed.append)
    source = DirectoryAssetSource(library)

    assert source.delete_asset("Screenshot 1.jpg") is True
    assert trashed == [str((library / "Screenshot 1.jpg").resolve())]
    assert source.delete_asset("Screenshot 9.jpg") is False
    assert source.delete_asset("../elsewhere.jpg") is False


def test_delete_reports_trash_failure(library, monkeypatch):
    def broken(path):
        raise OSError("trash unavailable")

    monkeypatch.setattr(asset_source_module, "send2trash", broken)
    source = DirectoryAssetSource(library)

    assert source.delete_asset("Screenshot 1.jpg") is False


def test_access_status(library, tmp_path):
    assert DirectoryAssetSource(library).request_access() is AccessStatus.GRANTED
    missing = DirectoryAssetSource(tmp_path / "nope")
    assert missing.request_access() is AccessStatus.RESTRICTED
    assert missing.fetch_assets_since(local_utc(2025, 1, 1)) == []
    assert missing.latest() is None
