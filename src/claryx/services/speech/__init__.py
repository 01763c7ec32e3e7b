"""
Speech Services Package.

This package contains the read-aloud engine:

- segmenter: Splits text into sentences and records their source offsets
- voices: Voice catalog and voice selection
- backend: Speech backend protocol and the events backends report
- driver: Sequential utterance queue over the backend
- boundary: Maps word boundaries back onto the original text
- controller: Public playback state machine
- relay: Backend that forwards speech to browser clients over WebSocket

Architecture Overview:

    ┌──────────┐     ┌───────────┐     ┌────────────────┐     ┌─────────┐
    │   Text   │────▶│ segment() │────▶│ QueueDriver    │────▶│ Backend │
    └──────────┘     └───────────┘     └────────────────┘     └─────────┘
                                               ▲                    │
                                               │               event channel
                                               │                    ▼
    ┌──────────┐     ┌────────────────────┐     ┌──────────────────────────┐
    │ Listener │◀────│ PlaybackController │◀────│ translate() (boundaries) │
    └──────────┘     └────────────────────┘     └──────────────────────────┘

Every utterance and every backend event carries the session token, so events
from a stopped or replaced session are recognised and discarded.
"""

from .backend import (
    BackendEvent,
    BoundaryEvent,
    EndEvent,
    ErrorEvent,
    SpeechBackend,
    Utterance,
    new_event_channel,
)
from .boundary import HighlightRange, progress_percent, translate
from .controller import PlaybackController, PlaybackStatus
from .driver import UtteranceQueueDriver
from .relay import RelaySpeechBackend
from .segmenter import Segment, segment
from .session import EndReason, PlaybackSession, PlaybackState, SpeakOptions
from .voices import VoiceCatalog, VoiceEntry, select_voice

__all__ = [
    "BackendEvent",
    "BoundaryEvent",
    "EndEvent",
    "EndReason",
    "ErrorEvent",
    "HighlightRange",
    "PlaybackController",
    "PlaybackSession",
    "PlaybackState",
    "PlaybackStatus",
    "RelaySpeechBackend",
    "Segment",
    "SpeakOptions",
    "SpeechBackend",
    "Utterance",
    "UtteranceQueueDriver",
    "VoiceCatalog",
    "VoiceEntry",
    "new_event_channel",
    "progress_percent",
    "segment",
    "select_voice",
    "translate",
]
