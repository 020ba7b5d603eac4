"""Logging initialization utilities using loguru."""

from __future__ import annotations

from pathlib import Path
import sys

from loguru import logger

LOG_FILE_PATTERN = "app_{time:YYYYMMDD}.log"


def get_log_directory() -> str:
    """Default log directory under the per-user app folder."""
    return str(Path.home() / ".capture_cabinet" / "logs")


def init_logging(
    log_dir: str | Path | None = None, level: str = "INFO", console_level: str | None = None
) -> Path:
    """Send logs to a rotating daily file, and optionally to stderr.

    Args:
        log_dir: Directory for log files (default: `get_log_directory()`).
        level: Minimum level written to the file.
        console_level: If set, also echo records at this level or above to stderr.

    Returns:
        The directory the log files are written to.
    """
    log_path = Path(log_dir or get_log_directory())
    log_path.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        str(log_path / LOG_FILE_PATTERN),
        rotation="10 MB",
        retention="10 days",
        compression="zip",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level=level,
    )
    if console_level:
        logger.add(sys.stderr, level=console_level, format="{level: <8} {message}")
    return log_path


def find_latest_log_file(log_dir: str | Path | None = None) -> Path | None:
    """Most recently modified `app_*.log` in `log_dir`, or None."""
    log_path = Path(log_dir or get_log_directory())
    try:
        candidates = [p for p in log_path.glob("app_*.log") if p.is_file()]
        return max(candidates, key=lambda p: p.stat().st_mtime, default=None)
    except OSError:
        return None
