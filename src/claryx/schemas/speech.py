"""Request and response schemas for the speech playback API."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from claryx.services.speech.controller import PlaybackStatus
from claryx.services.speech.voices import VoiceEntry


class VoiceModel(BaseModel):
    """A synthesis voice as published by a speech client."""

    name: str = Field(min_length=1)
    language_tag: str = Field(default="", description="BCP 47 tag, e.g. 'en-US'.")
    default: bool = False
    local_service: bool = False

    def to_entry(self) -> VoiceEntry:
        return VoiceEntry(
            name=self.name,
            language_tag=self.language_tag,
            default=self.default,
            local_service=self.local_service,
        )

    @classmethod
    def from_entry(cls, entry: VoiceEntry) -> "VoiceModel":
        return cls(
            name=entry.name,
            language_tag=entry.language_tag,
            default=entry.default,
            local_service=entry.local_service,
        )


class SpeakRequest(BaseModel):
    """Start reading text aloud. Unset fields fall back to server defaults."""

    text: str = Field(description="Free-form text to read. Blank text is a no-op.")
    rate: float | None = Field(default=None, gt=0, le=10)
    language_tag: str | None = Field(default=None, min_length=2)
    preferred_voice_name: str | None = Field(default=None)
    highlight_as_read: bool | None = Field(default=None)


class ToggleRequest(BaseModel):
    text: str = ""


class HighlightModel(BaseModel):
    start: int
    end: int


class PlaybackStatusResponse(BaseModel):
    state: Literal["idle", "playing", "paused"]
    progress: int = Field(ge=0, le=100)
    highlight: Optional[HighlightModel] = None
    session_id: Optional[str] = None
    current_index: int = 0
    segment_count: int = 0
    voice: Optional[VoiceModel] = None
    last_end_reason: Optional[Literal["completed", "failed", "stopped", "superseded"]] = None

    @classmethod
    def from_status(cls, status: PlaybackStatus) -> "PlaybackStatusResponse":
        highlight = status.highlight
        return cls(
            state=status.state.value,
            progress=status.progress,
            highlight=HighlightModel(start=highlight.start, end=highlight.end) if highlight else None,
            session_id=status.session_id,
            current_index=status.current_index,
            segment_count=status.segment_count,
            voice=VoiceModel.from_entry(status.voice) if status.voice else None,
            last_end_reason=status.last_end_reason.value if status.last_end_reason else None,
        )


class VoiceCatalogMessage(BaseModel):
    """Client → server `voices` message."""

    type: Literal["voices"] = "voices"
    voices: list[VoiceModel] = Field(default_factory=list)


__all__ = [
    "HighlightModel",
    "PlaybackStatusResponse",
    "SpeakRequest",
    "ToggleRequest",
    "VoiceCatalogMessage",
    "VoiceModel",
]
