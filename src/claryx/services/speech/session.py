"""Playback session state shared by the controller and the queue driver."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from .segmenter import Segment
from .voices import VoiceEntry

WordBoundaryCallback = Callable[[int, int], Union[None, Awaitable[None]]]


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


class EndReason(str, Enum):
    """Why the last session ended. Informational; listeners get one signal."""

    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"
    SUPERSEDED = "superseded"


@dataclass
class SpeakOptions:
    """Per-request synthesis options."""

    rate: float = 1.0
    language_tag: str = "en-US"
    preferred_voice_name: str = ""
    voice_catalog: Sequence[VoiceEntry] = ()
    on_word_boundary: Optional[WordBoundaryCallback] = None
    highlight_as_read: bool = True

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}")


def new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass
class PlaybackSession:
    """
    One playback request from start to stop or completion.

    `session_id` is stamped on every utterance and compared against each
    backend event; events carrying any other token are stale.
    """

    text: str
    segments: List[Segment]
    rate: float
    language_tag: str
    voice: Optional[VoiceEntry] = None
    options: SpeakOptions = field(default_factory=SpeakOptions)
    session_id: str = field(default_factory=new_session_id)
    current_index: int = 0
    cancelled: bool = False

    @property
    def text_length(self) -> int:
        return len(self.text)

    @property
    def finished(self) -> bool:
        return self.current_index >= len(self.segments)


__all__ = [
    "EndReason",
    "PlaybackSession",
    "PlaybackState",
    "SpeakOptions",
    "WordBoundaryCallback",
    "new_session_id",
]
