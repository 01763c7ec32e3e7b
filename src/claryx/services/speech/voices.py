"""Voice catalog and voice selection."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# Substrings that usually mark the higher quality voices a platform ships
PREFERRED_VOICE_KEYWORDS: Tuple[str, ...] = (
    "natural",
    "enhanced",
    "neural",
    "premium",
    "google",
    "microsoft",
)


@dataclass(frozen=True)
class VoiceEntry:
    """A synthesis voice as reported by the host."""

    name: str
    language_tag: str
    default: bool = False
    local_service: bool = False


def _primary_subtag(language_tag: str) -> str:
    return language_tag[:2].lower()


def select_voice(
    catalog: Sequence[VoiceEntry],
    language_tag: str,
    preferred_name: str = "",
    keywords: Sequence[str] = PREFERRED_VOICE_KEYWORDS,
) -> Optional[VoiceEntry]:
    """
    Choose the best voice for a language from the catalog.

    Candidates are the entries sharing the language's two-letter primary
    subtag, or the whole catalog when none do. Within the candidates an exact
    name match wins, then the first name containing a preferred keyword, then
    the first candidate. Returns None only for an empty catalog.
    """
    code = _primary_subtag(language_tag)
    matching = [v for v in catalog if v.language_tag.lower().startswith(code)]
    candidates = matching or list(catalog)

    if preferred_name:
        for voice in candidates:
            if voice.name == preferred_name:
                return voice

    lowered = [kw.lower() for kw in keywords]
    for voice in candidates:
        name = voice.name.lower()
        if any(kw in name for kw in lowered):
            return voice

    return candidates[0] if candidates else None


class VoiceCatalog:
    """
    Holds the host's current voice list.

    Browsers populate their voice list asynchronously, so the catalog may be
    empty at first and replaced later. Selection always works on a snapshot.
    """

    def __init__(self, voices: Optional[Iterable[VoiceEntry]] = None):
        self._voices: Tuple[VoiceEntry, ...] = tuple(voices or ())
        self._changed = asyncio.Event()
        if self._voices:
            self._changed.set()

    def snapshot(self) -> Tuple[VoiceEntry, ...]:
        return self._voices

    def replace(self, voices: Iterable[VoiceEntry]) -> None:
        """Swap in a new voice list from the host."""
        self._voices = tuple(voices)
        logger.info(f"Voice catalog updated: {len(self._voices)} voices")
        if self._voices:
            self._changed.set()
        else:
            self._changed.clear()

    async def wait_populated(self, timeout: float) -> bool:
        """Wait until at least one voice is known. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._changed.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._voices)


__all__ = ["PREFERRED_VOICE_KEYWORDS", "VoiceCatalog", "VoiceEntry", "select_voice"]
