"""
Sentence segmentation with source offsets.

Splits free-form text into sentence-sized segments and records where each
segment starts in the original string. Word boundaries reported by the speech
backend are relative to the segment being spoken, so these offsets are what
lets highlighting land on the right characters of the full text.

Usage:
    segments = segment("Hello world. How are you?")
    # [Segment(text='Hello world.', source_offset=0),
    #  Segment(text='How are you?', source_offset=13)]
"""

import re
from dataclasses import dataclass
from typing import List

# Sentence enders, including full-width forms used in CJK text
SENTENCE_ENDINGS = ".!?\u3002\uff01\uff1f"

_SENTENCE_BREAK = re.compile(f"([{re.escape(SENTENCE_ENDINGS)}])\\s+")


@dataclass(frozen=True)
class Segment:
    """A speakable unit and the index where it begins in the source text."""

    text: str
    source_offset: int

    @property
    def end_offset(self) -> int:
        return self.source_offset + len(self.text)


def split_sentences(text: str) -> List[str]:
    """Split text into trimmed, non-empty sentence fragments."""
    if not text or not text.strip():
        return []
    marked = _SENTENCE_BREAK.sub("\\1\n", text)
    return [part.strip() for part in marked.split("\n") if part.strip()]


def segment(text: str) -> List[Segment]:
    """
    Split text into segments carrying their offsets in the original string.

    Each fragment is located with a forward scan starting where the previous
    fragment ended. A fragment that cannot be found (whitespace inside it was
    collapsed) takes the current cursor as its offset, so highlighting for
    such input is best-effort.

    Args:
        text: Raw text as the user supplied it

    Returns:
        Segments in reading order; empty for blank input
    """
    segments: List[Segment] = []
    cursor = 0

    for fragment in split_sentences(text):
        pos = text.find(fragment, cursor)
        if pos >= 0:
            segments.append(Segment(fragment, pos))
            cursor = pos + len(fragment)
        else:
            segments.append(Segment(fragment, cursor))
            cursor += len(fragment)

    return segments


__all__ = ["SENTENCE_ENDINGS", "Segment", "segment", "split_sentences"]
