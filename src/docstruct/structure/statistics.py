"""Aggregate statistics derived from extracted chapters."""

from __future__ import annotations

from typing import Sequence

from docstruct.structure.models import Chapter, DocumentStatistics
from docstruct.structure.words import DEFAULT_WORDS_PER_MINUTE, reading_time_minutes

SIMPLE_DEPTH_THRESHOLD = 1.5
MODERATE_DEPTH_THRESHOLD = 2.5


def classify_complexity(chapters: Sequence[Chapter]) -> str:
    """Label hierarchy shape as ``simple``, ``moderate`` or ``complex``.

    Diagnostic only; nothing in the pipeline branches on the label.
    """

    if not chapters:
        return "simple"

    depths = [chapter.depth if chapter.depth is not None else chapter.level for chapter in chapters]
    average_depth = sum(depths) / len(depths)
    subchapters = sum(1 for chapter in chapters if chapter.parent_id is not None)
    top_level = len(chapters) - subchapters

    if average_depth <= SIMPLE_DEPTH_THRESHOLD and subchapters == 0:
        return "simple"
    if average_depth <= MODERATE_DEPTH_THRESHOLD and subchapters <= top_level:
        return "moderate"
    return "complex"


def compute_statistics(
    chapters: Sequence[Chapter],
    *,
    words_per_minute: int = DEFAULT_WORDS_PER_MINUTE,
    image_count: int = 0,
) -> DocumentStatistics:
    total_words = sum(chapter.word_count for chapter in chapters)
    paragraphs = [paragraph for chapter in chapters for paragraph in chapter.paragraphs]
    return DocumentStatistics(
        total_paragraphs=len(paragraphs),
        total_sentences=sum(len(paragraph.sentences) for paragraph in paragraphs),
        total_words=total_words,
        estimated_reading_time=reading_time_minutes(total_words, words_per_minute),
        chapter_count=len(chapters),
        table_count=sum(1 for paragraph in paragraphs if paragraph.type == "table"),
        image_count=image_count,
        complexity=classify_complexity(chapters),
    )


def total_duration(chapters: Sequence[Chapter]) -> float:
    return sum(chapter.estimated_duration for chapter in chapters)
