"""Word counting and reading-time estimates for speakable text."""

from __future__ import annotations

import math
import re

DEFAULT_WORDS_PER_MINUTE = 200
MAX_URL_WORD_COUNT = 3
MAX_HYPHENATED_WORD_COUNT = 3
SIMPLE_COMPOUND_PARTS = 3

_URL_RE = re.compile(r"^https?://.+", re.IGNORECASE)
_URL_PROTOCOL_RE = re.compile(r"^https?://", re.IGNORECASE)
_URL_SEGMENT_RE = re.compile(r"[/?#&=]")
_NON_WORD_RE = re.compile(r"[^\w\-]")
_EMOJI_RE = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\U0001F900-\U0001F9FF"
    "\u2600-\u26ff"
    "\u2700-\u27bf"
    "]"
)


def _is_emoji_only(token: str) -> bool:
    return _EMOJI_RE.search(token) is not None and not any(char.isalnum() for char in token)


def _count_url(token: str) -> int:
    remainder = _URL_PROTOCOL_RE.sub("", token)
    segments = [segment for segment in _URL_SEGMENT_RE.split(remainder) if segment]
    return min(len(segments), MAX_URL_WORD_COUNT)


def _count_hyphenated(token: str) -> int:
    parts = [part for part in token.split("-") if part]
    if not parts:
        return 0
    if len(parts) <= SIMPLE_COMPOUND_PARTS:
        return 1
    return min(len(parts), MAX_HYPHENATED_WORD_COUNT)


def count_token(token: str) -> int:
    """Return how many spoken words a single whitespace-free token contributes."""

    if not token:
        return 0
    if _URL_RE.match(token):
        return _count_url(token)
    if _is_emoji_only(token):
        return 0

    cleaned = _NON_WORD_RE.sub("", token)
    if not cleaned.strip("-_"):
        return 0
    if "-" in cleaned:
        return _count_hyphenated(cleaned)
    return 1


def count_words(text: str | None) -> int:
    """Count words with URL, emoji and hyphenated-compound handling."""

    if not text:
        return 0
    return sum(count_token(token) for token in text.split())


def reading_time_minutes(word_count: int, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> int:
    """Whole minutes needed to read ``word_count`` words aloud."""

    if words_per_minute <= 0:
        raise ValueError("words_per_minute must be positive")
    if word_count <= 0:
        return 0
    return math.ceil(word_count / words_per_minute)


def estimate_duration_seconds(word_count: int, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> float:
    """Speech duration in seconds, ``word_count * (60 / words_per_minute)``."""

    if words_per_minute <= 0:
        raise ValueError("words_per_minute must be positive")
    return max(word_count, 0) * 60.0 / words_per_minute
