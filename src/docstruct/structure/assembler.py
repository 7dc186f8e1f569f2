"""Terminal assembly step producing the ``DocumentStructure`` value."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Sequence

from docstruct.structure.confidence import document_confidence
from docstruct.structure.config import ParseOptions
from docstruct.structure.models import (
    Chapter,
    CompatibilityAnalysis,
    DocumentMetadata,
    DocumentStructure,
    EmbeddedAssets,
    ProcessingMetrics,
    TocItem,
)
from docstruct.structure.statistics import compute_statistics, total_duration

AVERAGE_WORD_LENGTH = 5


def _isoformat(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat()


def assemble_document_structure(
    metadata: DocumentMetadata,
    chapters: Sequence[Chapter],
    table_of_contents: Sequence[TocItem],
    embedded_assets: EmbeddedAssets | None = None,
    *,
    options: ParseOptions | None = None,
    started_at: datetime | None = None,
    processing_errors: Sequence[str] = (),
    compatibility: CompatibilityAnalysis | None = None,
) -> DocumentStructure:
    """Combine extracted parts, statistics and timing into one structure.

    Chapters are passed through untouched; metadata is copied with word and
    character counts filled in.
    """

    settings = options or ParseOptions()
    assets = embedded_assets or EmbeddedAssets()
    finished_at = datetime.now(timezone.utc)
    started = started_at or finished_at

    chapter_list = list(chapters)
    statistics = compute_statistics(
        chapter_list,
        words_per_minute=settings.reading_speed_wpm,
        image_count=len(assets.images),
    )
    metrics = ProcessingMetrics(
        parse_start_time=_isoformat(started),
        parse_end_time=_isoformat(finished_at),
        parse_duration_ms=max((finished_at - started).total_seconds() * 1000.0, 0.0),
        source_length=statistics.total_words * AVERAGE_WORD_LENGTH,
        processing_errors=list(processing_errors),
    )
    counted_metadata = replace(
        metadata,
        word_count=statistics.total_words,
        char_count=sum(chapter.text_length for chapter in chapter_list),
        custom=dict(metadata.custom),
    )

    return DocumentStructure(
        metadata=counted_metadata,
        chapters=chapter_list,
        table_of_contents=list(table_of_contents),
        embedded_assets=assets,
        total_paragraphs=statistics.total_paragraphs,
        total_sentences=statistics.total_sentences,
        total_word_count=statistics.total_words,
        total_chapters=len(chapter_list),
        estimated_total_duration=total_duration(chapter_list),
        confidence=document_confidence(chapter_list),
        processing_metrics=metrics,
        statistics=statistics,
        compatibility=compatibility,
    )
