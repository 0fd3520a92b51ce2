"""
app/flow/intents.py

Purpose: Reply intent detection for the video decision step

- Closed set of intents
- Configurable phrase lists
- Whole-word phrase matching ("edited" does not match "edit")
- Messages matching both intents are ambiguous
"""

import re
from enum import Enum
from typing import Iterable, List, Sequence, Tuple

_WORD = re.compile(r"[a-z0-9']+")


class Intent(str, Enum):
    PROCEED_TO_VIDEO = "proceed_to_video"
    EDIT_AGAIN = "edit_again"
    UNKNOWN = "unknown"


def tokenize(text: str) -> List[str]:
    return _WORD.findall((text or "").lower())


def _contains_run(tokens: Sequence[str], phrase: Sequence[str]) -> bool:
    if not phrase or len(phrase) > len(tokens):
        return False
    width = len(phrase)
    return any(
        tuple(tokens[i:i + width]) == tuple(phrase)
        for i in range(len(tokens) - width + 1)
    )


class IntentResolver:
    """Maps a free-text reply onto one Intent."""

    def __init__(self, video_phrases: Iterable[str], edit_phrases: Iterable[str]):
        self._phrases: List[Tuple[Intent, List[List[str]]]] = [
            (Intent.PROCEED_TO_VIDEO, [tokenize(p) for p in video_phrases if tokenize(p)]),
            (Intent.EDIT_AGAIN, [tokenize(p) for p in edit_phrases if tokenize(p)]),
        ]

    def matches(self, text: str) -> List[Intent]:
        tokens = tokenize(text)
        return [
            intent
            for intent, phrases in self._phrases
            if any(_contains_run(tokens, phrase) for phrase in phrases)
        ]

    def resolve(self, text: str) -> Intent:
        found = self.matches(text)
        if len(found) == 1:
            return found[0]
        return Intent.UNKNOWN
