"""
Playback Controller.

Public state machine for read-aloud playback:

    idle ──start──▶ playing ⇄ paused
      ▲               │         │
      └──stop / completion / error

One session is active at a time. Starting a new one cancels the old session
first; the old driver task is cancelled and awaited, and any of its events
still arriving on the channel fail the session token check.

Listeners (plain functions or coroutine functions):
    on_progress(percent)      0..100
    on_highlight(range|None)  HighlightRange in original-text coordinates
    on_session_end()          completion and backend failure alike
    on_state_change(state)    PlaybackState
"""

import asyncio
import inspect
import logging
from contextlib import suppress
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Sequence

from .backend import BackendEvent, SpeechBackend
from .boundary import HighlightRange, progress_percent
from .driver import DEFAULT_PITCH, DEFAULT_SETTLE_DELAY, UtteranceQueueDriver
from .segmenter import segment
from .session import EndReason, PlaybackSession, PlaybackState, SpeakOptions
from .voices import PREFERRED_VOICE_KEYWORDS, VoiceCatalog, VoiceEntry, select_voice

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


@dataclass(frozen=True)
class PlaybackStatus:
    state: PlaybackState
    progress: int
    highlight: Optional[HighlightRange]
    session_id: Optional[str]
    current_index: int
    segment_count: int
    voice: Optional[VoiceEntry]
    last_end_reason: Optional[EndReason]


class PlaybackController:
    """
    Starts, pauses, resumes and stops read-aloud sessions.

    Args:
        backend: Speech backend owning the host speech channel
        events: Channel the backend reports events on
        catalog: Host voice catalog used when options carry no voices
        default_options: Options applied when start() gets none
        settle_delay: Seconds between the initial flush and the first utterance
        pitch: Pitch for every utterance
        voice_keywords: Name fragments preferred during voice selection
        voice_wait: Seconds start() waits for an empty catalog to be populated
    """

    def __init__(
        self,
        backend: SpeechBackend,
        events: "asyncio.Queue[BackendEvent]",
        *,
        catalog: Optional[VoiceCatalog] = None,
        default_options: Optional[SpeakOptions] = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        pitch: float = DEFAULT_PITCH,
        voice_keywords: Sequence[str] = PREFERRED_VOICE_KEYWORDS,
        voice_wait: float = 0.0,
        on_progress: Optional[Listener] = None,
        on_highlight: Optional[Listener] = None,
        on_session_end: Optional[Listener] = None,
        on_state_change: Optional[Listener] = None,
    ):
        self.backend = backend
        self.catalog = catalog or VoiceCatalog()
        self.default_options = default_options or SpeakOptions()
        self.voice_keywords = tuple(voice_keywords)
        self.voice_wait = voice_wait
        self.driver = UtteranceQueueDriver(backend, events, settle_delay=settle_delay, pitch=pitch)

        self.on_progress = on_progress
        self.on_highlight = on_highlight
        self.on_session_end = on_session_end
        self.on_state_change = on_state_change

        self._state = PlaybackState.IDLE
        self._session: Optional[PlaybackSession] = None
        self._task: Optional[asyncio.Task] = None
        self._progress = 0
        self._highlight: Optional[HighlightRange] = None
        self._last_end_reason: Optional[EndReason] = None

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def highlight(self) -> Optional[HighlightRange]:
        return self._highlight

    @property
    def session(self) -> Optional[PlaybackSession]:
        return self._session

    @property
    def last_end_reason(self) -> Optional[EndReason]:
        return self._last_end_reason

    def status(self) -> PlaybackStatus:
        session = self._session
        return PlaybackStatus(
            state=self._state,
            progress=self._progress,
            highlight=self._highlight,
            session_id=session.session_id if session else None,
            current_index=session.current_index if session else 0,
            segment_count=len(session.segments) if session else 0,
            voice=session.voice if session else None,
            last_end_reason=self._last_end_reason,
        )

    # ---- listener plumbing -------------------------------------------------

    async def _notify(self, listener: Optional[Listener], *args: Any) -> None:
        if listener is None:
            return
        try:
            result = listener(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Playback listener failed")

    async def _set_state(self, state: PlaybackState) -> None:
        if state is self._state:
            return
        logger.info(f"Playback state {self._state.value} -> {state.value}")
        self._state = state
        await self._notify(self.on_state_change, state)

    def _is_current(self, session: PlaybackSession) -> bool:
        current = self._session
        return (
            current is not None
            and not session.cancelled
            and current.session_id == session.session_id
        )

    # ---- public operations -------------------------------------------------

    async def start(self, text: str, options: Optional[SpeakOptions] = None) -> Optional[str]:
        """
        Begin reading text aloud, replacing any active session.

        Returns the new session token, or None when there is nothing to speak.
        """
        if not text or not text.strip():
            logger.debug("Ignoring start with blank text")
            return None

        options = options or self.default_options
        segments = segment(text)
        if not segments:
            return None

        if not options.voice_catalog and not len(self.catalog) and self.voice_wait > 0:
            if not await self.catalog.wait_populated(self.voice_wait):
                logger.info(f"No voices published within {self.voice_wait:.2f}s")

        while self._session is not None:
            await self._cancel_current(EndReason.SUPERSEDED)

        catalog = options.voice_catalog or self.catalog.snapshot()
        voice = select_voice(
            catalog,
            options.language_tag,
            options.preferred_voice_name,
            self.voice_keywords,
        )
        if voice is None:
            logger.info("No synthesis voice available; using backend default")

        session = PlaybackSession(
            text=text,
            segments=segments,
            rate=options.rate,
            language_tag=options.language_tag,
            voice=voice,
            options=options,
        )
        self._session = session
        self._progress = 0
        self._highlight = None
        self._task = asyncio.create_task(
            self.driver.run(
                session,
                self._on_segment_done,
                self._on_boundary,
                self._on_session_done,
            ),
            name=f"speech-{session.session_id}",
        )
        logger.info(
            f"Session {session.session_id} started: {len(segments)} segments, "
            f"{len(text)} chars, voice={voice.name if voice else None}"
        )

        await self._set_state(PlaybackState.PLAYING)
        await self._notify(self.on_progress, 0)
        await self._notify(self.on_highlight, None)
        return session.session_id

    async def stop(self) -> bool:
        """Cancel the active session. Returns False when nothing was playing."""
        if self._session is None:
            return False
        await self._cancel_current(EndReason.STOPPED)
        if self._session is not None:
            # A start() ran while the old task was torn down; leave it playing
            return True
        self._highlight = None
        await self._set_state(PlaybackState.IDLE)
        await self._notify(self.on_highlight, None)
        return True

    async def pause(self) -> bool:
        session = self._session
        if session is None or self._state is not PlaybackState.PLAYING:
            return False
        await self.backend.pause()
        if self._session is not session:
            return False
        await self._set_state(PlaybackState.PAUSED)
        return True

    async def resume(self) -> bool:
        session = self._session
        if session is None or self._state is not PlaybackState.PAUSED:
            return False
        await self.backend.resume()
        if self._session is not session:
            return False
        await self._set_state(PlaybackState.PLAYING)
        return True

    async def toggle(self, text: str, options: Optional[SpeakOptions] = None) -> Optional[str]:
        """Stop when a session is active, otherwise start reading text."""
        if self._session is not None:
            await self.stop()
            return None
        return await self.start(text, options)

    async def join(self) -> None:
        """Wait for the current driver task to finish."""
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        with suppress(asyncio.CancelledError):
            await task

    async def shutdown(self) -> None:
        await self.stop()

    def options_with(self, **overrides: Any) -> SpeakOptions:
        """Default options with the non-None overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self.default_options, **changes)

    # ---- internals ---------------------------------------------------------

    async def _cancel_current(self, reason: EndReason) -> None:
        session = self._session
        if session is None:
            return
        session.cancelled = True
        self._session = None
        self._last_end_reason = reason
        task, self._task = self._task, None
        logger.info(f"Session {session.session_id} {reason.value}")

        await self.backend.cancel_all()

        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def _on_segment_done(self, session: PlaybackSession, index: int) -> None:
        if self._is_current(session):
            logger.debug(f"Segment {index} of {session.session_id} done")

    async def _on_boundary(self, session: PlaybackSession, highlight: HighlightRange) -> None:
        if not self._is_current(session):
            return
        options = session.options
        if options.on_word_boundary is not None:
            await self._notify(options.on_word_boundary, highlight.start, highlight.length)
        if not options.highlight_as_read:
            return
        self._highlight = highlight
        self._progress = progress_percent(highlight.start, session.text_length)
        await self._notify(self.on_highlight, highlight)
        await self._notify(self.on_progress, self._progress)

    async def _on_session_done(self, session: PlaybackSession, failed: bool) -> None:
        if not self._is_current(session):
            return
        self._session = None
        self._task = None
        self._last_end_reason = EndReason.FAILED if failed else EndReason.COMPLETED
        self._progress = 100
        self._highlight = None
        await self._set_state(PlaybackState.IDLE)
        await self._notify(self.on_progress, 100)
        await self._notify(self.on_highlight, None)
        await self._notify(self.on_session_end)


__all__ = ["PlaybackController", "PlaybackStatus"]
