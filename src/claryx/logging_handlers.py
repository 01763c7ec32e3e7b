"""Custom logging handler utilities."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo


def date_stamped_log_path(
    directory: Path,
    prefix: str,
    tz: ZoneInfo,
    current_time: datetime | None = None,
) -> Path:
    """Return `<directory>/<YYYY-MM-DD>/<prefix>_<YYYY-MM-DD_HH-MM-SS>_<TZ>.log`."""
    timestamp = current_time or datetime.now(timezone.utc)
    local_time = timestamp.astimezone(tz)
    tz_abbr = local_time.tzname() or "UTC"
    file_name = f"{prefix}_{local_time.strftime('%Y-%m-%d_%H-%M-%S')}_{tz_abbr}.log"
    return (directory / local_time.strftime("%Y-%m-%d") / file_name).resolve()


class DateStampedFileHandler(logging.FileHandler):
    """File handler that writes one log file per process under a date folder."""

    def __init__(
        self,
        directory: str | Path,
        *,
        prefix: str = "app",
        tz: str = "UTC",
        encoding: str | None = "utf-8",
        current_time: datetime | None = None,
    ) -> None:
        log_path = date_stamped_log_path(
            Path(directory), prefix, ZoneInfo(tz), current_time
        )
        log_path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(log_path, mode="a", encoding=encoding)


def cleanup_old_logs(
    log_directory: str | Path,
    retention_hours: int,
    logger: logging.Logger | None = None,
) -> int:
    """
    Delete `.log` files older than the retention period.

    Empty date folders left behind are removed too. A retention of 0
    disables cleanup.

    Returns:
        Number of files deleted
    """
    dir_path = Path(log_directory)
    if retention_hours <= 0 or not dir_path.exists():
        return 0

    cutoff = datetime.now(timezone.utc) - timedelta(hours=retention_hours)
    deleted = 0

    for log_file in dir_path.rglob("*.log"):
        try:
            mtime = datetime.fromtimestamp(log_file.stat().st_mtime, tz=timezone.utc)
            if mtime < cutoff:
                log_file.unlink()
                deleted += 1
        except OSError as e:
            if logger:
                logger.warning(f"Failed to delete {log_file}: {e}")

    for date_dir in dir_path.iterdir():
        if date_dir.is_dir() and not any(date_dir.iterdir()):
            try:
                date_dir.rmdir()
            except OSError as e:
                if logger:
                    logger.debug(f"Could not remove {date_dir}: {e}")

    if logger and deleted:
        logger.info(f"Log cleanup complete: {deleted} file(s) deleted")
    return deleted


__all__ = ["DateStampedFileHandler", "cleanup_old_logs", "date_stamped_log_path"]
