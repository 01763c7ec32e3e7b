"""
WebSocket relay backend.

The synthesizer lives in the browser: the server sends `speak`, `cancel`,
`pause` and `resume` commands to connected clients and turns the `boundary`,
`end` and `error` messages they send back into channel events.

Client message shapes:
    {"type": "boundary", "session_id": ..., "segment_index": 0,
     "char_index": 6, "char_length": 5, "name": "word"}
    {"type": "end", "session_id": ..., "segment_index": 0}
    {"type": "error", "session_id": ..., "segment_index": 0, "error": "interrupted"}
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from .backend import BackendEvent, BoundaryEvent, EndEvent, ErrorEvent, Utterance

if TYPE_CHECKING:
    from claryx.services.speech_session import SpeechConnectionManager

logger = logging.getLogger(__name__)

EVENT_TYPES = ("boundary", "end", "error")


def parse_client_event(data: dict) -> Optional[BackendEvent]:
    """
    Build a backend event from a client message.

    Returns None for messages that are not speech events. Raises ValueError
    for speech events with missing or malformed fields.
    """
    event_type = data.get("type")
    if event_type not in EVENT_TYPES:
        return None

    session_id = data.get("session_id")
    if not isinstance(session_id, str) or not session_id:
        raise ValueError(f"{event_type} message without session_id")
    try:
        segment_index = int(data["segment_index"])
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"{event_type} message with bad segment_index") from e

    if event_type == "boundary":
        try:
            char_index = int(data.get("char_index") or 0)
            char_length = int(data.get("char_length") or 0)
        except (TypeError, ValueError) as e:
            raise ValueError("boundary message with bad char offsets") from e
        return BoundaryEvent(
            session_id=session_id,
            segment_index=segment_index,
            char_index=char_index,
            char_length=char_length,
            name=str(data.get("name") or "word"),
        )
    if event_type == "end":
        return EndEvent(session_id=session_id, segment_index=segment_index)
    return ErrorEvent(
        session_id=session_id,
        segment_index=segment_index,
        error=str(data.get("error") or "unknown"),
    )


def utterance_message(utterance: Utterance) -> dict:
    voice = utterance.voice
    return {
        "type": "speak",
        "session_id": utterance.session_id,
        "segment_index": utterance.segment_index,
        "text": utterance.text,
        "rate": utterance.rate,
        "language_tag": utterance.language_tag,
        "pitch": utterance.pitch,
        "voice": voice.name if voice else None,
    }


class RelaySpeechBackend:
    """
    Speech backend that forwards commands to browser clients.

    Attributes:
        manager: Connection manager used to broadcast commands
        events: Channel the playback controller consumes
    """

    def __init__(
        self,
        manager: "SpeechConnectionManager",
        events: "asyncio.Queue[BackendEvent]",
    ):
        self.manager = manager
        self.events = events

    async def cancel_all(self) -> None:
        await self.manager.broadcast({"type": "cancel"})

    async def speak_one(self, utterance: Utterance) -> None:
        if not self.manager.active_connections:
            logger.warning("No speech clients connected; utterance will not be heard")
        await self.manager.broadcast(utterance_message(utterance))

    async def pause(self) -> None:
        await self.manager.broadcast({"type": "pause"})

    async def resume(self) -> None:
        await self.manager.broadcast({"type": "resume"})

    def handle_client_message(self, data: dict) -> bool:
        """
        Queue a client's boundary/end/error report.

        Returns True when the message was a speech event. Malformed events
        are logged and dropped.
        """
        try:
            event = parse_client_event(data)
        except ValueError as e:
            logger.warning(f"Ignoring malformed speech event: {e}")
            return False
        if event is None:
            return False
        self.events.put_nowait(event)
        return True


__all__ = ["RelaySpeechBackend", "parse_client_event", "utterance_message"]
