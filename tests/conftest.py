import asyncio
import pathlib
import re
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from claryx.services.speech import (  # noqa: E402
    BoundaryEvent,
    EndEvent,
    ErrorEvent,
    PlaybackController,
    Utterance,
    new_event_channel,
)

_WORD = re.compile(r"\S+")


class FakeSpeechBackend:
    """
    Deterministic stand-in for the host synthesizer.

    In auto mode every utterance immediately reports a word boundary per word
    followed by completion, or the scripted error for that segment text.
    In manual mode tests drive events through boundary()/end()/error().
    Cancelling while an utterance is in flight reports `interrupted` for it,
    as browsers do.
    """

    def __init__(self, events: asyncio.Queue, auto: bool = True, omit_lengths: bool = False):
        self.events = events
        self.auto = auto
        self.omit_lengths = omit_lengths
        self.errors: dict[str, str] = {}
        self.utterances: list[Utterance] = []
        self.calls: list[str] = []
        self.in_flight: Utterance | None = None
        self.overlaps = 0

    async def cancel_all(self) -> None:
        self.calls.append("cancel_all")
        if self.in_flight is not None:
            self.error(self.in_flight, "interrupted")

    async def speak_one(self, utterance: Utterance) -> None:
        self.calls.append("speak_one")
        if self.in_flight is not None:
            self.overlaps += 1
        self.in_flight = utterance
        self.utterances.append(utterance)
        if self.auto:
            self.play(utterance)

    async def pause(self) -> None:
        self.calls.append("pause")

    async def resume(self) -> None:
        self.calls.append("resume")

    def play(self, utterance: Utterance) -> None:
        for match in _WORD.finditer(utterance.text):
            length = 0 if self.omit_lengths else len(match.group())
            self.boundary(utterance, match.start(), length)
        error = self.errors.get(utterance.text)
        if error:
            self.error(utterance, error)
        else:
            self.end(utterance)

    def boundary(self, utterance: Utterance, char_index: int, char_length: int = 0, name: str = "word") -> None:
        self.events.put_nowait(
            BoundaryEvent(utterance.session_id, utterance.segment_index, char_index, char_length, name)
        )

    def end(self, utterance: Utterance) -> None:
        if self.in_flight is utterance:
            self.in_flight = None
        self.events.put_nowait(EndEvent(utterance.session_id, utterance.segment_index))

    def error(self, utterance: Utterance, code: str) -> None:
        if self.in_flight is utterance:
            self.in_flight = None
        self.events.put_nowait(ErrorEvent(utterance.session_id, utterance.segment_index, code))


class Recorder:
    """Collects controller listener calls in order."""

    def __init__(self):
        self.progress: list[int] = []
        self.highlights: list = []
        self.session_ends = 0
        self.states: list = []
        self.log: list[tuple] = []

    def on_progress(self, percent):
        self.progress.append(percent)
        self.log.append(("progress", percent))

    def on_highlight(self, highlight):
        self.highlights.append(highlight)
        self.log.append(("highlight", highlight))

    def on_session_end(self):
        self.session_ends += 1
        self.log.append(("session_end",))

    def on_state_change(self, state):
        self.states.append(state)
        self.log.append(("state", state))


async def _settle(rounds: int = 20) -> None:
    """Let pending tasks run until they block on the event channel."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def events():
    return new_event_channel()


@pytest.fixture
def fake_backend(events):
    return FakeSpeechBackend(events)


@pytest.fixture
def manual_backend(events):
    return FakeSpeechBackend(events, auto=False)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_controller(events, recorder):
    def _make(backend, **kwargs):
        return PlaybackController(
            backend,
            events,
            settle_delay=0,
            on_progress=recorder.on_progress,
            on_highlight=recorder.on_highlight,
            on_session_end=recorder.on_session_end,
            on_state_change=recorder.on_state_change,
            **kwargs,
        )

    return _make


@pytest.fixture
def settle():
    return _settle


@pytest.fixture
def lengthless_backend(events):
    return FakeSpeechBackend(events, omit_lengths=True)
