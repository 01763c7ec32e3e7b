"""Application configuration using environment variables."""

from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .services.speech.voices import PREFERRED_VOICE_KEYWORDS

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Pause between flushing the synthesizer and the first utterance
    speech_settle_delay_ms: int = Field(
        default=100,
        ge=0,
        validation_alias=AliasChoices(
            "SPEECH_SETTLE_DELAY_MS",
            "speech_settle_delay_ms",
        ),
    )
    speech_pitch: float = Field(
        default=1.05,
        gt=0,
        le=2,
        validation_alias=AliasChoices("SPEECH_PITCH", "speech_pitch"),
    )
    speech_default_rate: float = Field(
        default=1.0,
        gt=0,
        validation_alias=AliasChoices("SPEECH_DEFAULT_RATE", "speech_default_rate"),
    )
    speech_default_language: str = Field(
        default="en-US",
        min_length=2,
        validation_alias=AliasChoices(
            "SPEECH_DEFAULT_LANGUAGE",
            "speech_default_language",
        ),
    )
    speech_default_voice: str = Field(
        default="",
        validation_alias=AliasChoices("SPEECH_DEFAULT_VOICE", "speech_default_voice"),
    )
    speech_highlight_as_read: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "SPEECH_HIGHLIGHT_AS_READ",
            "speech_highlight_as_read",
        ),
    )
    # How long a speak request waits for a connected client to publish voices
    speech_voice_wait_ms: int = Field(
        default=500,
        ge=0,
        validation_alias=AliasChoices("SPEECH_VOICE_WAIT_MS", "speech_voice_wait_ms"),
    )
    speech_preferred_voice_keywords: list[str] = Field(
        default_factory=lambda: list(PREFERRED_VOICE_KEYWORDS),
        validation_alias=AliasChoices(
            "SPEECH_PREFERRED_VOICE_KEYWORDS",
            "speech_preferred_voice_keywords",
        ),
        description="Voice name fragments preferred when no voice is named.",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )
    log_dir: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("LOG_DIR", "log_dir"),
    )
    log_timezone: str = Field(
        default="UTC",
        validation_alias=AliasChoices("LOG_TIMEZONE", "log_timezone"),
    )
    logging_settings_path: Path = Field(
        default_factory=lambda: Path("logging_settings.conf"),
        validation_alias=AliasChoices(
            "LOGGING_SETTINGS_PATH",
            "logging_settings_path",
        ),
    )

    @property
    def speech_settle_delay(self) -> timedelta:
        return timedelta(milliseconds=self.speech_settle_delay_ms)

    @property
    def speech_voice_wait(self) -> timedelta:
        return timedelta(milliseconds=self.speech_voice_wait_ms)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["PROJECT_ROOT", "Settings", "get_settings"]
