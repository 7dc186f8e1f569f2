from __future__ import annotations

import pytest

from docstruct.structure.hierarchy import (
    assign_depths,
    classify_depth,
    clean_heading,
    enrich_hierarchy,
    is_chapter_heading,
    resolve_parent_ids,
)
from docstruct.structure.models import Chapter, CharRange
from docstruct.structure.segmentation import build_paragraph


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("Chapter 1", True),
        ("CHAPTER IV", True),
        ("Section 2 Methods", True),
        ("Part 3", True),
        ("1. Introduction", True),
        ("IV. Results", True),
        ("a. first item", True),
        ("## Heading", True),
        ("Hello world.", False),
        ("ab", False),
        ("Chapter " + "x" * 100, False),
        ("   ", False),
    ],
)
def test_is_chapter_heading(line: str, expected: bool) -> None:
    assert is_chapter_heading(line) is expected


def test_clean_heading_strips_markdown_hashes() -> None:
    assert clean_heading("## Heading") == "Heading"
    assert clean_heading("Chapter 1") == "Chapter 1"


def test_depth_from_patterns_then_relative_length() -> None:
    assert classify_depth("Chapter 1") == 1
    assert classify_depth("Part Two") == 1
    assert classify_depth("Section 2") == 2
    assert classify_depth("1.1 Scope") == 3
    assert classify_depth("Intro") == 1
    assert classify_depth("A considerably longer title than before", ("Intro", 1)) == 2
    assert classify_depth("Short", ("A considerably longer title than before", 2)) == 1
    assert classify_depth("Similar", ("Similar!", 2)) == 2


def test_depths_never_exceed_maximum() -> None:
    titles = ["x" * (12 * index + 1) for index in range(10)]

    assert max(assign_depths(titles)) == 6


def test_parent_is_nearest_earlier_shallower_entry() -> None:
    ids = ["a", "b", "c", "d", "e"]
    depths = [1, 2, 3, 2, 1]

    assert resolve_parent_ids(ids, depths) == [None, "a", "b", "a", None]


def test_enrich_hierarchy_only_adds_derived_fields() -> None:
    paragraph = build_paragraph("Some text here. More text.", paragraph_id="c1-paragraph-0", position=0)
    chapters = [
        Chapter(id="c1", title="Chapter 1", paragraphs=[paragraph], char_range=CharRange(0, 26), word_count=5),
        Chapter(id="c2", title="Section 1", position=1, char_range=CharRange(26, 26)),
    ]

    enriched = enrich_hierarchy(chapters)

    assert [chapter.depth for chapter in enriched] == [1, 2]
    assert [chapter.parent_id for chapter in enriched] == [None, "c1"]
    assert 0.0 < enriched[0].confidence <= 1.0
    assert enriched[1].confidence == 0.0
    assert enriched[0].paragraphs == chapters[0].paragraphs
    assert enriched[0].char_range == chapters[0].char_range
    assert chapters[0].depth is None
