from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json

import pytest

from docstruct.structure.assembler import assemble_document_structure
from docstruct.structure.config import ParseOptions
from docstruct.structure.hierarchy import enrich_hierarchy
from docstruct.structure.models import (
    Chapter,
    CharRange,
    CompatibilityAnalysis,
    DocumentMetadata,
    DocumentStructure,
    EmbeddedAsset,
    EmbeddedAssets,
    EpubVersion,
    TocItem,
)
from docstruct.structure.segmentation import build_paragraph
from docstruct.structure.statistics import classify_complexity, compute_statistics


def _chapters() -> list[Chapter]:
    first = [
        build_paragraph("Chapter one opens here. It has two sentences.", paragraph_id="c1-paragraph-0", position=0),
        build_paragraph("A second paragraph.", paragraph_id="c1-paragraph-1", position=1),
    ]
    second = [
        build_paragraph(
            "a, b; c, d",
            paragraph_id="c2-paragraph-0",
            position=0,
            paragraph_type="table",
            include_in_audio=False,
            with_sentences=False,
            confidence=0.9,
        ),
        build_paragraph("Closing words.", paragraph_id="c2-paragraph-1", position=1),
    ]
    first_length = sum(len(paragraph.raw_text) for paragraph in first)
    second_length = sum(len(paragraph.raw_text) for paragraph in second)
    chapters = [
        Chapter(
            id="c1",
            title="Chapter 1",
            paragraphs=first,
            char_range=CharRange(0, first_length),
            word_count=sum(paragraph.word_count for paragraph in first),
            estimated_duration=3.0,
        ),
        Chapter(
            id="c2",
            title="Chapter 2",
            paragraphs=second,
            position=1,
            char_range=CharRange(first_length, first_length + second_length),
            word_count=sum(paragraph.word_count for paragraph in second),
            estimated_duration=1.5,
        ),
    ]
    return enrich_hierarchy(chapters)


def test_statistics_count_paragraphs_sentences_and_tables() -> None:
    statistics = compute_statistics(_chapters(), image_count=2)

    assert statistics.total_paragraphs == 4
    assert statistics.total_sentences == 4
    assert statistics.total_words == 13
    assert statistics.table_count == 1
    assert statistics.image_count == 2
    assert statistics.chapter_count == 2
    assert statistics.estimated_reading_time == 1
    assert statistics.complexity == "simple"


def test_complexity_classes() -> None:
    flat = [Chapter(id=f"c{i}", title="t", depth=1) for i in range(3)]
    nested = [
        Chapter(id="a", title="t", depth=1),
        Chapter(id="b", title="t", depth=2, parent_id="a"),
        Chapter(id="c", title="t", depth=1),
    ]
    deep = [
        Chapter(id="a", title="t", depth=1),
        Chapter(id="b", title="t", depth=3, parent_id="a"),
        Chapter(id="c", title="t", depth=4, parent_id="b"),
    ]

    assert classify_complexity([]) == "simple"
    assert classify_complexity(flat) == "simple"
    assert classify_complexity(nested) == "moderate"
    assert classify_complexity(deep) == "complex"


def test_assembler_totals_match_chapters() -> None:
    chapters = _chapters()
    started = datetime.now(timezone.utc) - timedelta(milliseconds=5)

    structure = assemble_document_structure(
        DocumentMetadata(title="Book", format="pdf"),
        chapters,
        [TocItem(id="toc-1", title="Chapter 1", href="#c1")],
        options=ParseOptions(),
        started_at=started,
        processing_errors=["Failed to extract chapter x: boom"],
    )

    assert structure.total_word_count == sum(chapter.word_count for chapter in chapters)
    assert structure.total_chapters == len(chapters) == 2
    assert structure.total_paragraphs == 4
    assert structure.estimated_total_duration == pytest.approx(4.5)
    assert 0.0 <= structure.confidence <= 1.0
    assert structure.metadata.word_count == structure.total_word_count
    assert structure.metadata.char_count == chapters[-1].char_range.end
    assert structure.processing_metrics.processing_errors == ["Failed to extract chapter x: boom"]
    assert structure.processing_metrics.parse_duration_ms >= 0.0
    assert structure.chapters == chapters


def test_structure_round_trips_through_json() -> None:
    assets = EmbeddedAssets(
        images=[EmbeddedAsset(id="images-a-png", href="images/a.png", media_type="image/png", type="images")]
    )
    structure = assemble_document_structure(
        DocumentMetadata(title="Book", format="epub", custom={"modified": "2024-01-01"}),
        _chapters(),
        [TocItem(id="toc-1", title="Part", href="a.xhtml", children=[TocItem(id="toc-2", title="One", href="b.xhtml", level=2)])],
        assets,
        compatibility=CompatibilityAnalysis(
            detected_version=EpubVersion.EPUB_3_0,
            feature_support={"html5": True},
        ),
    )

    payload = json.loads(json.dumps(structure.to_dict()))
    restored = DocumentStructure.from_dict(payload)

    assert restored == structure
    assert payload["compatibility"]["detected_version"] == "3.0"
    assert structure.statistics.image_count == 1
