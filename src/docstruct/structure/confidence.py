"""Heuristic confidence scores for paragraphs, chapters and documents.

Scores are data-driven: each rule group is an ordered tuple of
``(predicate, bonus)`` pairs and only the first matching pair of a group
contributes. Groups are folded over a base score, edge-case overrides run
next, and the result is clamped to ``[0, 1]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
import re
from typing import Callable, Sequence

from docstruct.structure.models import Chapter, Sentence

BASE_CONFIDENCE = 0.7
MAX_CONFIDENCE = 1.0
SPECIAL_ELEMENTS_BONUS = 0.10

SINGLE_WORD_CONFIDENCE = 0.8
EXTREMELY_MINIMAL_WORD_THRESHOLD = 3
EXTREMELY_MINIMAL_STRUCTURE_CONFIDENCE = 0.6
EXTREMELY_MINIMAL_CONFIDENCE = 0.2
NO_CLEAR_STRUCTURE_CONFIDENCE = 0.8
MINIMAL_STRUCTURE_WORD_THRESHOLD = 20
CONTENT_WITH_STRUCTURE_CONFIDENCE = 0.85
CONTENT_WITH_STRUCTURE_WORD_THRESHOLD = 10
REASONABLE_CONTENT_WORD_THRESHOLD = 20
REASONABLE_CONTENT_CONFIDENCE = 0.8
DEFAULT_CONTENT_CONFIDENCE = 0.75

GOOD_SENTENCE_LENGTH_MIN = 10
GOOD_SENTENCE_LENGTH_MAX = 200
PARAGRAPH_BONUS = 0.1

_TERMINAL_PUNCTUATION_RE = re.compile(r"[.!?]$")


@dataclass(frozen=True, slots=True)
class StructureMetrics:
    """Counts a structural score is computed from."""

    word_count: int
    chapter_count: int
    total_paragraphs: int
    total_sentences: int
    char_count: int
    heading_count: int = 0
    special_elements: int = 0

    @property
    def paragraphs_per_chapter(self) -> float:
        return self.total_paragraphs / max(self.chapter_count, 1)

    @property
    def sentences_per_paragraph(self) -> float:
        if not self.total_paragraphs:
            return 0.0
        return self.total_sentences / self.total_paragraphs


Predicate = Callable[[StructureMetrics], bool]
RuleGroup = tuple[tuple[Predicate, float], ...]

STRUCTURE_RULES: tuple[RuleGroup, ...] = (
    (
        (lambda m: m.heading_count >= 5, 0.15),
        (lambda m: m.heading_count >= 3, 0.10),
        (lambda m: m.heading_count >= 1, 0.05),
    ),
    (
        (lambda m: 2 <= m.paragraphs_per_chapter <= 10, 0.10),
        (lambda m: m.paragraphs_per_chapter >= 1, 0.05),
    ),
    (
        (lambda m: 2 <= m.sentences_per_paragraph <= 4, 0.10),
        (lambda m: m.sentences_per_paragraph >= 1, 0.05),
    ),
    (
        (lambda m: m.char_count >= 500, 0.15),
        (lambda m: m.char_count >= 200, 0.10),
        (lambda m: m.char_count >= 100, 0.05),
    ),
)

Override = Callable[[StructureMetrics, float], float | None]


def _single_word(metrics: StructureMetrics, score: float) -> float | None:
    return SINGLE_WORD_CONFIDENCE if metrics.word_count == 1 else None


def _extremely_minimal(metrics: StructureMetrics, score: float) -> float | None:
    if metrics.word_count > EXTREMELY_MINIMAL_WORD_THRESHOLD:
        return None
    if metrics.chapter_count == 0 and metrics.total_paragraphs == 0:
        return min(score, EXTREMELY_MINIMAL_STRUCTURE_CONFIDENCE)
    return EXTREMELY_MINIMAL_CONFIDENCE


def _no_clear_structure(metrics: StructureMetrics, score: float) -> float | None:
    if metrics.chapter_count == 0 and metrics.total_paragraphs <= 1:
        return max(score, NO_CLEAR_STRUCTURE_CONFIDENCE)
    return None


def _minimal_structure(metrics: StructureMetrics, score: float) -> float | None:
    if (
        metrics.chapter_count == 1
        and metrics.total_paragraphs == 1
        and metrics.word_count < MINIMAL_STRUCTURE_WORD_THRESHOLD
    ):
        return max(score, NO_CLEAR_STRUCTURE_CONFIDENCE)
    return None


def _content_with_structure(metrics: StructureMetrics, score: float) -> float | None:
    if metrics.word_count >= CONTENT_WITH_STRUCTURE_WORD_THRESHOLD and metrics.chapter_count > 1:
        return max(score, CONTENT_WITH_STRUCTURE_CONFIDENCE)
    if metrics.chapter_count >= 2:
        return max(score, CONTENT_WITH_STRUCTURE_CONFIDENCE)
    return None


def _reasonable_content(metrics: StructureMetrics, score: float) -> float | None:
    if metrics.word_count >= REASONABLE_CONTENT_WORD_THRESHOLD:
        return max(score, REASONABLE_CONTENT_CONFIDENCE)
    return None


def _default_content(metrics: StructureMetrics, score: float) -> float | None:
    return max(score, DEFAULT_CONTENT_CONFIDENCE)


EDGE_CASE_OVERRIDES: tuple[Override, ...] = (
    _single_word,
    _extremely_minimal,
    _no_clear_structure,
    _minimal_structure,
    _content_with_structure,
    _reasonable_content,
    _default_content,
)


def clamp_confidence(value: float) -> float:
    return max(0.0, min(MAX_CONFIDENCE, value))


def _first_bonus(group: RuleGroup, metrics: StructureMetrics) -> float:
    return next((bonus for predicate, bonus in group if predicate(metrics)), 0.0)


def accumulate_bonuses(
    metrics: StructureMetrics,
    rules: Sequence[RuleGroup] = STRUCTURE_RULES,
    base: float = BASE_CONFIDENCE,
) -> float:
    """Fold rule groups over ``base`` without clamping."""

    return reduce(lambda score, group: score + _first_bonus(group, metrics), rules, base)


def apply_overrides(
    metrics: StructureMetrics,
    score: float,
    overrides: Sequence[Override] = EDGE_CASE_OVERRIDES,
) -> float:
    """Return the first override that applies, else ``score`` unchanged."""

    for override in overrides:
        result = override(metrics, score)
        if result is not None:
            return result
    return score


def score_structure(metrics: StructureMetrics) -> float:
    """Structural confidence for a chapter or a whole document."""

    score = apply_overrides(metrics, accumulate_bonuses(metrics))
    if metrics.special_elements > 0:
        score += SPECIAL_ELEMENTS_BONUS
    return clamp_confidence(score)


def chapter_metrics(chapter: Chapter, heading_count: int = 0) -> StructureMetrics:
    sentences = sum(len(paragraph.sentences) for paragraph in chapter.paragraphs)
    special = sum(1 for paragraph in chapter.paragraphs if paragraph.type == "table")
    return StructureMetrics(
        word_count=chapter.word_count,
        chapter_count=1,
        total_paragraphs=len(chapter.paragraphs),
        total_sentences=sentences,
        char_count=chapter.text_length,
        heading_count=heading_count,
        special_elements=special,
    )


def score_chapter(chapter: Chapter, heading_count: int = 0) -> float:
    """Chapter confidence; a chapter without paragraphs scores zero."""

    if not chapter.paragraphs:
        return 0.0
    return score_structure(chapter_metrics(chapter, heading_count))


def paragraph_confidence(sentences: Sequence[Sentence]) -> float:
    """Score sentence quality: typical length, terminal punctuation, plurality."""

    if not sentences:
        return BASE_CONFIDENCE

    average_length = sum(len(sentence.text) for sentence in sentences) / len(sentences)
    bonuses = (
        (GOOD_SENTENCE_LENGTH_MIN <= average_length <= GOOD_SENTENCE_LENGTH_MAX, PARAGRAPH_BONUS),
        (any(_TERMINAL_PUNCTUATION_RE.search(sentence.text) for sentence in sentences), PARAGRAPH_BONUS),
        (len(sentences) > 1, PARAGRAPH_BONUS),
    )
    return clamp_confidence(BASE_CONFIDENCE + sum(bonus for matched, bonus in bonuses if matched))


def document_confidence(chapters: Sequence[Chapter]) -> float:
    """Mean of chapter confidences, or the base score for an empty document."""

    if not chapters:
        return BASE_CONFIDENCE
    scores = [chapter.confidence if chapter.confidence is not None else BASE_CONFIDENCE for chapter in chapters]
    return clamp_confidence(sum(scores) / len(scores))
