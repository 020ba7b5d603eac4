"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from pathlib import Path
from typing import Any

from infrastructure.asset_source import DEFAULT_EXTENSIONS, DEFAULT_FETCH_LIMIT, DEFAULT_PATTERNS
from infrastructure.sqlite_catalog import DEFAULT_PLACEHOLDER_NAME

APP_DIR = Path.home() / ".capture_cabinet"


class JsonSettings:
    """Lightweight JSON settings reader with dotted-key access."""

    def __init__(self, settings_path: str | Path) -> None:
        self._path = Path(settings_path)
        if not self._path.exists():
            raise FileNotFoundError(f"settings.json not found: {self._path}")
        with self._path.open("r", encoding="utf-8") as f:
            self._data = json.load(f)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node


def _expand_path(value: Any, default: Path) -> Path:
    if isinstance(value, str) and value.strip():
        return Path(os.path.expandvars(value)).expanduser()
    return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str_list(value: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    return default


@dataclass
class AppConfig:
    """Typed view of settings.json with defaults for every key."""

    library_root: Path = field(default_factory=lambda: Path.home() / "Pictures" / "Screenshots")
    library_patterns: tuple[str, ...] = DEFAULT_PATTERNS
    library_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    fetch_limit: int = DEFAULT_FETCH_LIMIT
    catalog_path: Path = field(default_factory=lambda: APP_DIR / "catalog.sqlite3")
    placeholder_name: str = DEFAULT_PLACEHOLDER_NAME
    recent_window_hours: float = 24.0
    live_activity_enabled: bool = True
    live_activity_dir: Path = field(default_factory=lambda: APP_DIR / "live_activity")
    live_activity_max_sessions: int = 1
    live_activity_timeout_seconds: float = 30.0
    completion_delay_seconds: float = 2.0
    capture_settle_seconds: float = 0.5
    log_dir: Path | None = None
    log_level: str = "INFO"


def load_app_config(settings: JsonSettings | None) -> AppConfig:
    """Build `AppConfig` from `settings`; missing or invalid values use defaults."""
    cfg = AppConfig()
    if settings is None:
        return cfg
    get = settings.get
    cfg.library_root = _expand_path(get("library.root"), cfg.library_root)
    cfg.library_patterns = _as_str_list(get("library.patterns"), cfg.library_patterns)
    cfg.library_extensions = _as_str_list(get("library.extensions"), cfg.library_extensions)
    cfg.fetch_limit = max(1, _as_int(get("library.fetch_limit"), cfg.fetch_limit))
    cfg.catalog_path = _expand_path(get("catalog.path"), cfg.catalog_path)
    cfg.placeholder_name = str(get("folders.placeholder_name") or cfg.placeholder_name)
    cfg.recent_window_hours = _as_float(get("recent.window_hours"), cfg.recent_window_hours)
    cfg.live_activity_enabled = bool(get("live_activity.enabled", cfg.live_activity_enabled))
    cfg.live_activity_dir = _expand_path(get("live_activity.directory"), cfg.live_activity_dir)
    cfg.live_activity_max_sessions = max(
        1, _as_int(get("live_activity.max_sessions"), cfg.live_activity_max_sessions)
    )
    cfg.live_activity_timeout_seconds = _as_float(
        get("live_activity.timeout_seconds"), cfg.live_activity_timeout_seconds
    )
    cfg.completion_delay_seconds = _as_float(
        get("live_activity.completion_delay_seconds"), cfg.completion_delay_seconds
    )
    cfg.capture_settle_seconds = _as_float(
        get("live_activity.capture_settle_seconds"), cfg.capture_settle_seconds
    )
    raw_log_dir = get("logging.directory")
    cfg.log_dir = _expand_path(raw_log_dir, Path()) if raw_log_dir else None
    cfg.log_level = str(get("logging.level") or cfg.log_level).upper()
    return cfg
