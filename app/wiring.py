"""Composition root: builds the services from an `AppConfig`."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from core.services.assignment_service import AssignmentService
from core.services.events import ChangeNotifier
from core.services.folder_service import FolderService
from core.services.live_activity import LiveActivityBridge
from infrastructure.activity_display import FileActivityDisplay
from infrastructure.asset_source import DirectoryAssetSource
from infrastructure.settings import AppConfig
from infrastructure.sqlite_catalog import SqliteCatalog


@dataclass
class AppServices:
    catalog: SqliteCatalog
    source: DirectoryAssetSource
    assignments: AssignmentService
    folders: FolderService
    bridge: LiveActivityBridge

    def close(self) -> None:
        self.catalog.close()


def build_services(cfg: AppConfig) -> AppServices:
    catalog = SqliteCatalog(cfg.catalog_path, placeholder_name=cfg.placeholder_name)
    source = DirectoryAssetSource(
        cfg.library_root,
        patterns=cfg.library_patterns,
        extensions=cfg.library_extensions,
        fetch_limit=cfg.fetch_limit,
    )
    notifier = ChangeNotifier()
    assignments = AssignmentService(
        catalog,
        source,
        notifier=notifier,
        recent_window=timedelta(hours=cfg.recent_window_hours),
    )
    folders = FolderService(catalog, notifier)
    display = FileActivityDisplay(
        cfg.live_activity_dir,
        enabled=cfg.live_activity_enabled,
        max_sessions=cfg.live_activity_max_sessions,
    )
    bridge = LiveActivityBridge(
        assignments,
        folders,
        display,
        timeout=cfg.live_activity_timeout_seconds,
        completion_delay=cfg.completion_delay_seconds,
        capture_settle=cfg.capture_settle_seconds,
    )
    return AppServices(
        catalog=catalog, source=source, assignments=assignments, folders=folders, bridge=bridge
    )
