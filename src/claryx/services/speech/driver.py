"""
Utterance Queue Driver.

Feeds a session's segments to the speech backend one at a time and reacts to
the events the backend puts on the shared channel.

Architecture:
    PlaybackSession.segments → speak_one() → backend
                                               │
    on_boundary / on_segment_done  ◀── event channel (asyncio.Queue)

Segment i+1 is submitted only after segment i reports EndEvent, so the
backend never holds two utterances and spoken order matches text order.
Events are honoured only when their session token and segment index match
the utterance in flight and the session has not been cancelled.

Usage:
    driver = UtteranceQueueDriver(backend, events, settle_delay=0.1)
    task = asyncio.create_task(
        driver.run(session, on_segment_done, on_boundary, on_session_done)
    )
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable

from .backend import BackendEvent, BoundaryEvent, EndEvent, ErrorEvent, SpeechBackend, Utterance
from .boundary import HighlightRange, translate
from .session import PlaybackSession

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 0.1
DEFAULT_PITCH = 1.05

SegmentDoneCallback = Callable[[PlaybackSession, int], Awaitable[None]]
BoundaryCallback = Callable[[PlaybackSession, HighlightRange], Awaitable[None]]
SessionDoneCallback = Callable[[PlaybackSession, bool], Awaitable[None]]


class SegmentOutcome(str, Enum):
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"
    FAILED = "failed"


class UtteranceQueueDriver:
    """
    Sequential utterance submission for a single playback session.

    Attributes:
        backend: The speech backend owning the host speech channel
        events: Channel the backend reports boundary/end/error events on
        settle_delay: Seconds to wait after the initial flush before speaking
        pitch: Pitch applied to every utterance
    """

    def __init__(
        self,
        backend: SpeechBackend,
        events: "asyncio.Queue[BackendEvent]",
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        pitch: float = DEFAULT_PITCH,
    ):
        self.backend = backend
        self.events = events
        self.settle_delay = settle_delay
        self.pitch = pitch

    def _utterance_for(self, session: PlaybackSession, index: int) -> Utterance:
        return Utterance(
            session_id=session.session_id,
            segment_index=index,
            text=session.segments[index].text,
            rate=session.rate,
            language_tag=session.language_tag,
            pitch=self.pitch,
            voice=session.voice,
        )

    async def run(
        self,
        session: PlaybackSession,
        on_segment_done: SegmentDoneCallback,
        on_boundary: BoundaryCallback,
        on_session_done: SessionDoneCallback,
    ) -> None:
        """
        Speak every segment of the session in order.

        Flushes the backend first and waits `settle_delay` so a late
        cancellation from earlier speech cannot hit the new utterance.
        Returns quietly when the session is cancelled; calls
        on_session_done(session, failed) on exhaustion or a backend error.
        """
        sid = session.session_id
        start_time = time.monotonic()

        try:
            await self.backend.cancel_all()
            await asyncio.sleep(self.settle_delay)

            while not session.cancelled:
                if session.finished:
                    elapsed = (time.monotonic() - start_time) * 1000
                    logger.info(
                        f"Session {sid} complete: {len(session.segments)} segments in {elapsed:.0f}ms"
                    )
                    await on_session_done(session, False)
                    return

                index = session.current_index
                utterance = self._utterance_for(session, index)
                logger.debug(
                    f"Speaking segment {index + 1}/{len(session.segments)} "
                    f"of {sid}: {utterance.text[:50]}"
                )

                try:
                    await self.backend.speak_one(utterance)
                except Exception as e:
                    logger.error(f"Backend rejected segment {index} of {sid}: {e}")
                    await on_session_done(session, True)
                    return

                outcome = await self._await_outcome(session, index, on_boundary)

                if outcome is SegmentOutcome.INTERRUPTED or session.cancelled:
                    logger.info(f"Session {sid} interrupted at segment {index}")
                    return
                if outcome is SegmentOutcome.FAILED:
                    await on_session_done(session, True)
                    return

                await on_segment_done(session, index)
                session.current_index += 1

        except asyncio.CancelledError:
            logger.info(f"Driver task for {sid} cancelled")
            raise

    async def _await_outcome(
        self,
        session: PlaybackSession,
        index: int,
        on_boundary: BoundaryCallback,
    ) -> SegmentOutcome:
        """Consume channel events until the in-flight segment ends or errors."""
        segment = session.segments[index]

        while True:
            event = await self.events.get()

            if event.session_id != session.session_id or event.segment_index != index:
                logger.debug(
                    f"Discarding stale {type(event).__name__} "
                    f"({event.session_id}#{event.segment_index})"
                )
                continue

            if session.cancelled:
                return SegmentOutcome.INTERRUPTED

            if isinstance(event, BoundaryEvent):
                # Sentence and mark boundaries carry no word position
                if event.name != "word":
                    continue
                highlight = translate(
                    segment, event.char_index, event.char_length, session.text_length
                )
                await on_boundary(session, highlight)
                if session.cancelled:
                    return SegmentOutcome.INTERRUPTED

            elif isinstance(event, EndEvent):
                return SegmentOutcome.COMPLETED

            elif isinstance(event, ErrorEvent):
                if event.is_cancellation:
                    logger.debug(f"Segment {index} of {session.session_id} {event.error}")
                    return SegmentOutcome.INTERRUPTED
                logger.warning(
                    f"Speech error on segment {index} of {session.session_id}: {event.error}"
                )
                return SegmentOutcome.FAILED


__all__ = ["DEFAULT_PITCH", "DEFAULT_SETTLE_DELAY", "SegmentOutcome", "UtteranceQueueDriver"]
