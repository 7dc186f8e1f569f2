"""Sentence and paragraph boundary detection with stable local offsets."""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Callable

from docstruct.structure.confidence import paragraph_confidence
from docstruct.structure.models import Paragraph, Sentence
from docstruct.structure.normalization import normalize_whitespace, strip_html_and_clean
from docstruct.structure.words import count_words

_SENTENCE_PUNCTUATION = frozenset(".!?")
_ELLIPSIS = "..."
_PARAGRAPH_TAG_RE = re.compile(r"<p\b[^<>]{0,2000}>(.*?)</p\s*>", re.IGNORECASE | re.DOTALL)
_BLANK_LINE_RE = re.compile(r"\n\s*\n")


@dataclass(slots=True)
class BoundaryMatch:
    """Sentence terminator plus the whitespace that follows it."""

    start: int
    end: int
    text: str


def _whitespace_end(text: str, index: int) -> int:
    while index < len(text) and text[index].isspace():
        index += 1
    return index


def _is_decimal_point(text: str, index: int) -> bool:
    return (
        text[index] == "."
        and 0 < index < len(text) - 1
        and text[index - 1].isdigit()
        and text[index + 1].isdigit()
    )


def _terminal_match(text: str, last_end: int) -> BoundaryMatch | None:
    remainder = text[last_end:].rstrip()
    if not remainder.strip() or remainder[-1] not in _SENTENCE_PUNCTUATION:
        return None
    start = last_end + len(remainder) - 1
    return BoundaryMatch(start=start, end=len(text), text=text[start:])


def extract_sentence_matches(text: str) -> list[BoundaryMatch]:
    """Scan ``text`` for sentence boundaries.

    A boundary is ``.``, ``!``, ``?`` or an ellipsis followed by whitespace and
    then more content. Decimal points between digits never split. When the
    text ends with terminal punctuation, that final terminator is reported as
    well so ``"Price is 12.99 dollars."`` yields exactly one boundary.
    """

    matches: list[BoundaryMatch] = []
    if not text:
        return matches

    index = 0
    length = len(text)
    while index < length:
        if text[index] not in _SENTENCE_PUNCTUATION or _is_decimal_point(text, index):
            index += 1
            continue

        is_ellipsis = text.startswith(_ELLIPSIS, index)
        punctuation_end = index + len(_ELLIPSIS) if is_ellipsis else index + 1
        whitespace_end = _whitespace_end(text, punctuation_end)
        if punctuation_end < whitespace_end < length:
            matches.append(BoundaryMatch(start=index, end=whitespace_end, text=text[index:whitespace_end]))
            index = whitespace_end
            continue

        index = punctuation_end if is_ellipsis else index + 1

    last_end = matches[-1].end if matches else 0
    terminal = _terminal_match(text, last_end)
    if terminal is not None:
        matches.append(terminal)
    return matches


def _trimmed_sentence(text: str, start: int, end: int) -> Sentence | None:
    raw = text[start:end]
    stripped = raw.strip()
    if not stripped:
        return None
    left_trim = len(raw) - len(raw.lstrip())
    right_trim = len(raw) - len(raw.rstrip())
    return Sentence(
        text=stripped,
        start_index=start + left_trim,
        end_index=end - right_trim,
        word_count=count_words(stripped),
    )


def split_sentences(text: str) -> list[Sentence]:
    """Partition ``text`` into trimmed sentences separated only by whitespace."""

    sentences: list[Sentence] = []
    previous_end = 0
    for match in extract_sentence_matches(text):
        sentence = _trimmed_sentence(text, previous_end, match.end)
        if sentence is not None:
            sentences.append(sentence)
        previous_end = match.end

    tail = _trimmed_sentence(text, previous_end, len(text))
    if tail is not None:
        sentences.append(tail)
    return sentences


def _split_blocks(content: str, clean: Callable[[str], str]) -> list[str]:
    paragraphs: list[str] = []
    for block in _BLANK_LINE_RE.split(content):
        lines = [line for line in block.splitlines() if line.strip()]
        if len(lines) > 1:
            paragraphs.extend(clean(line) for line in lines)
        elif lines:
            paragraphs.append(clean(block))
    return [paragraph for paragraph in paragraphs if paragraph]


def extract_paragraph_matches(content: str | None) -> list[str]:
    """Split markup or plain text into cleaned paragraph strings.

    ``<p>`` elements win when present. Otherwise blank lines separate blocks,
    and a block holding several non-empty lines yields one paragraph per line.
    """

    if not content:
        return []

    tagged = _PARAGRAPH_TAG_RE.findall(content)
    if tagged:
        return [cleaned for cleaned in (strip_html_and_clean(inner) for inner in tagged) if cleaned]
    return _split_blocks(content, strip_html_and_clean)


def split_plain_paragraphs(content: str | None) -> list[str]:
    """Same block rules as :func:`extract_paragraph_matches` for non-markup text."""

    if not content:
        return []
    return _split_blocks(content, normalize_whitespace)


def build_paragraph(
    raw_text: str,
    *,
    paragraph_id: str,
    position: int,
    paragraph_type: str = "text",
    include_in_audio: bool = True,
    with_sentences: bool = True,
    confidence: float | None = None,
) -> Paragraph:
    """Create a paragraph whose sentences partition the trimmed ``raw_text``."""

    text = raw_text.strip()
    sentences = split_sentences(text) if with_sentences else []
    return Paragraph(
        id=paragraph_id,
        sentences=sentences,
        position=position,
        word_count=count_words(text) if with_sentences else 0,
        raw_text=text,
        include_in_audio=include_in_audio,
        confidence=paragraph_confidence(sentences) if confidence is None else confidence,
        type=paragraph_type,
    )
