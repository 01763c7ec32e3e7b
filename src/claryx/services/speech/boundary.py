"""Translate backend word boundaries into original-text coordinates."""

import math
import re
from dataclasses import dataclass

from .segmenter import Segment

_WHITESPACE = re.compile(r"\s")


@dataclass(frozen=True)
class HighlightRange:
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def _word_length(text: str, char_index: int) -> int:
    # Backends that omit charLength still give a start; read to the next space
    match = _WHITESPACE.search(text, max(char_index, 0))
    stop = match.start() if match else len(text)
    return max(1, stop - char_index)


def translate(
    segment: Segment,
    char_index: int,
    char_length: int,
    text_length: int,
) -> HighlightRange:
    """
    Map an intra-segment boundary onto the full text.

    The backend is untrusted, so the result is clamped to [0, text_length].
    """
    length = char_length if char_length > 0 else _word_length(segment.text, char_index)
    start = segment.source_offset + char_index
    end = start + length

    start = min(max(start, 0), text_length)
    end = min(max(end, start), text_length)
    return HighlightRange(start, end)


def progress_percent(position: int, text_length: int) -> int:
    """Percentage of the text read at position, rounded half up, within 0..100."""
    if text_length <= 0:
        return 0
    percent = math.floor(position / text_length * 100 + 0.5)
    return min(max(percent, 0), 100)


__all__ = ["HighlightRange", "progress_percent", "translate"]
