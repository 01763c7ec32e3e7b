"""
Speech backend capability and the events it reports.

The backend owns the host's single speech channel. It accepts one utterance
at a time and reports progress by putting events on an asyncio.Queue shared
with the playback controller. Every event carries the session token and
segment index of the utterance that produced it, which is how callbacks from
a cancelled or superseded session are recognised and dropped.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from .voices import VoiceEntry

# Error codes the platform reports when an utterance is cut off by cancel()
CANCELLATION_ERRORS = frozenset({"interrupted", "canceled"})


@dataclass(frozen=True)
class Utterance:
    """One segment as submitted to the backend."""

    session_id: str
    segment_index: int
    text: str
    rate: float
    language_tag: str
    pitch: float
    voice: Optional[VoiceEntry] = None


@dataclass(frozen=True)
class BoundaryEvent:
    session_id: str
    segment_index: int
    char_index: int
    char_length: int = 0
    name: str = "word"


@dataclass(frozen=True)
class EndEvent:
    session_id: str
    segment_index: int


@dataclass(frozen=True)
class ErrorEvent:
    session_id: str
    segment_index: int
    error: str

    @property
    def is_cancellation(self) -> bool:
        return self.error in CANCELLATION_ERRORS


BackendEvent = Union[BoundaryEvent, EndEvent, ErrorEvent]


class SpeechBackend(Protocol):
    """What the engine needs from the host speech synthesizer."""

    async def cancel_all(self) -> None:
        """Drop the current utterance and anything queued behind it."""

    async def speak_one(self, utterance: Utterance) -> None:
        """Start speaking; progress is reported on the event channel."""

    async def pause(self) -> None:
        ...

    async def resume(self) -> None:
        ...


def new_event_channel() -> "asyncio.Queue[BackendEvent]":
    return asyncio.Queue()


__all__ = [
    "BackendEvent",
    "BoundaryEvent",
    "CANCELLATION_ERRORS",
    "EndEvent",
    "ErrorEvent",
    "SpeechBackend",
    "Utterance",
    "new_event_channel",
]
