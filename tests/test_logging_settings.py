"""Tests for logging settings parsing."""

import logging
from pathlib import Path

from claryx.app import create_app
from claryx.config import get_settings
from claryx.logging_settings import LoggingSettings, parse_logging_settings


def test_parse_logging_settings_with_retention(tmp_path: Path) -> None:
    """Test parsing logging settings with retention_hours."""
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text(
        """
# Test config
terminal = debug
speech = warning
retention_hours = 72
"""
    )

    settings = parse_logging_settings(config_file)

    assert settings.terminal_level == 10  # DEBUG
    assert settings.speech_level == 30  # WARNING
    assert settings.retention_hours == 72


def test_parse_logging_settings_defaults(tmp_path: Path) -> None:
    """Test default values when config file doesn't exist."""
    settings = parse_logging_settings(tmp_path / "nonexistent.conf")

    assert settings.terminal_level == 20  # Default INFO
    assert settings.speech_level == 20  # Default INFO
    assert settings.uvicorn_level == 20  # Default INFO
    assert settings.retention_hours == 48  # Default retention


def test_parse_logging_settings_inline_comments(tmp_path: Path) -> None:
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text("speech = debug   # chatty\nretention_hours = 12 # half a day\n")

    settings = parse_logging_settings(config_file)

    assert settings.speech_level == 10
    assert settings.terminal_level == 20
    assert settings.retention_hours == 12


def test_parse_logging_settings_unknown_level_falls_back_to_info(tmp_path: Path) -> None:
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text("terminal = loud\n")

    assert parse_logging_settings(config_file).terminal_level == 20


def test_parse_logging_settings_invalid_retention(tmp_path: Path) -> None:
    """Test parsing with invalid retention value falls back to default."""
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text("terminal = info\nretention_hours = invalid\n")

    assert parse_logging_settings(config_file).retention_hours == 48


def test_parse_logging_settings_negative_retention(tmp_path: Path) -> None:
    """Test parsing with negative retention value clamps to 0."""
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text("retention_hours = -10\n")

    assert parse_logging_settings(config_file).retention_hours == 0


def test_parse_logging_settings_off_level(tmp_path: Path) -> None:
    """Test parsing with 'off' level."""
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text("terminal = off\nspeech = OFF\n")

    settings = parse_logging_settings(config_file)

    assert settings.terminal_level is None
    assert settings.speech_level is None


def test_parse_logging_settings_uvicorn_level(tmp_path: Path) -> None:
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text("uvicorn = error\n")

    settings = parse_logging_settings(config_file)

    assert settings.uvicorn_level == 40  # ERROR
    assert settings.terminal_level == 20


def test_effective_level_respects_floor_and_off() -> None:
    settings = LoggingSettings()

    assert settings.effective_level(logging.DEBUG, logging.WARNING) == logging.WARNING
    assert settings.effective_level(logging.ERROR, logging.INFO) == logging.ERROR
    assert settings.effective_level(None, logging.DEBUG) > logging.CRITICAL


def test_file_levels_reach_loggers(tmp_path: Path, monkeypatch) -> None:
    config_file = tmp_path / "logging_settings.conf"
    config_file.write_text("speech = off\nuvicorn = warning\n")
    monkeypatch.setenv("LOGGING_SETTINGS_PATH", str(config_file))
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("LOG_DIR", raising=False)
    get_settings.cache_clear()
    try:
        create_app()
    finally:
        get_settings.cache_clear()

    assert logging.getLogger("uvicorn.access").level == logging.WARNING
    assert not logging.getLogger("claryx.services.speech.driver").isEnabledFor(logging.CRITICAL)
    logging.getLogger("claryx.services.speech").setLevel(logging.NOTSET)
