"""Helpers for parsing the simple logging settings file.

The file holds `key = value` lines:

    terminal = info          # console handler level
    speech = debug           # level of the claryx.services.speech loggers
    uvicorn = warning        # floor for the uvicorn server and access loggers
    retention_hours = 48     # date-stamped log files older than this are pruned

Levels are `debug`, `info`, `warning`, `error` or `off`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

_LEVEL_MAP: dict[str, int | None] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": None,
}

# File key -> LoggingSettings field
_LEVEL_FIELDS = {
    "terminal": "terminal_level",
    "speech": "speech_level",
    "uvicorn": "uvicorn_level",
}
_DEFAULT_LEVEL = logging.INFO
_DEFAULT_RETENTION_HOURS = 48


@dataclass(frozen=True)
class LoggingSettings:
    """Levels are `None` when the key is `off`."""

    terminal_level: int | None = _DEFAULT_LEVEL
    speech_level: int | None = _DEFAULT_LEVEL
    uvicorn_level: int | None = _DEFAULT_LEVEL
    retention_hours: int = _DEFAULT_RETENTION_HOURS

    def effective_level(self, level: int | None, floor: int) -> int:
        """Combine a file level with the LOG_LEVEL floor; `off` silences."""
        if level is None:
            return logging.CRITICAL + 1
        return max(level, floor)


def _parse_retention(value: str) -> int:
    try:
        return max(0, int(value))
    except ValueError:
        return _DEFAULT_RETENTION_HOURS


def parse_logging_settings(path: Path) -> LoggingSettings:
    """Parse the logging settings file; missing or unknown values keep defaults."""

    values: dict[str, int | None] = {}

    if path.exists():
        for raw_line in path.read_text(encoding="utf-8").splitlines():
            line = raw_line.split("#", 1)[0].strip()
            if "=" not in line:
                continue
            key, value = (part.strip() for part in line.split("=", 1))
            key = key.lower()
            if key == "retention_hours":
                values["retention_hours"] = _parse_retention(value)
            elif key in _LEVEL_FIELDS:
                values[_LEVEL_FIELDS[key]] = _LEVEL_MAP.get(value.lower(), _DEFAULT_LEVEL)

    return LoggingSettings(**values)


__all__ = ["LoggingSettings", "parse_logging_settings"]
