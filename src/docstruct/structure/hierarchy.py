"""Heading recognition and the post-extraction hierarchy enrichment pass."""

from __future__ import annotations

from dataclasses import replace
import re
from typing import Sequence

from docstruct.structure.confidence import score_chapter
from docstruct.structure.models import Chapter

MIN_HEADING_LENGTH = 3
MAX_HEADING_LENGTH = 100
TITLE_CHANGE_THRESHOLD = 10
MAX_DEPTH = 6

_HEADING_PATTERNS = (
    re.compile(r"^chapter\s+(\d+|[ivxlcdm]+)\b", re.IGNORECASE),
    re.compile(r"^section\s+(\d+|[ivxlcdm]+)\b", re.IGNORECASE),
    re.compile(r"^part\s+(\d+|[ivxlcdm]+)\b", re.IGNORECASE),
    re.compile(r"^\d+\."),
    re.compile(r"^[ivx]+\.", re.IGNORECASE),
    re.compile(r"^[a-z]\.", re.IGNORECASE),
    re.compile(r"^#{1,2}\s"),
)

_DEPTH_PATTERNS = (
    (re.compile(r"^(chapter|part)\b", re.IGNORECASE), 1),
    (re.compile(r"^section\b", re.IGNORECASE), 2),
    (re.compile(r"^\d+\.\d+"), 3),
)


def is_chapter_heading(line: str) -> bool:
    """Return True when a text line looks like a chapter/section heading."""

    candidate = line.strip()
    if not MIN_HEADING_LENGTH <= len(candidate) <= MAX_HEADING_LENGTH:
        return False
    return any(pattern.match(candidate) for pattern in _HEADING_PATTERNS)


def clean_heading(line: str) -> str:
    """Drop markdown-style ``#`` prefixes from a heading line."""

    return line.strip().lstrip("#").strip() or line.strip()


def classify_depth(title: str, previous: tuple[str, int] | None = None) -> int:
    """Depth from the title pattern, else relative to the previous chapter.

    A title much shorter than its predecessor is treated as a parent heading,
    a much longer one as a child, anything else inherits the previous depth.
    """

    candidate = title.strip()
    for pattern, depth in _DEPTH_PATTERNS:
        if pattern.match(candidate):
            return depth

    if previous is None:
        return 1

    previous_title, previous_depth = previous
    delta = len(candidate) - len(previous_title.strip())
    if delta < -TITLE_CHANGE_THRESHOLD:
        return max(1, previous_depth - 1)
    if delta > TITLE_CHANGE_THRESHOLD:
        return min(MAX_DEPTH, previous_depth + 1)
    return previous_depth


def assign_depths(titles: Sequence[str]) -> list[int]:
    depths: list[int] = []
    previous: tuple[str, int] | None = None
    for title in titles:
        depth = classify_depth(title, previous)
        depths.append(depth)
        previous = (title, depth)
    return depths


def resolve_parent_ids(ids: Sequence[str], depths: Sequence[int]) -> list[str | None]:
    """Nearest earlier entry with a strictly smaller depth, per entry."""

    parents: list[str | None] = []
    for index, depth in enumerate(depths):
        parent: str | None = None
        if index > 0 and depth > 1:
            for candidate in range(index - 1, -1, -1):
                if depths[candidate] < depth:
                    parent = ids[candidate]
                    break
        parents.append(parent)
    return parents


def count_heading_titles(chapters: Sequence[Chapter]) -> int:
    return sum(1 for chapter in chapters if is_chapter_heading(chapter.title))


def enrich_hierarchy(chapters: Sequence[Chapter]) -> list[Chapter]:
    """Return copies of ``chapters`` with depth, parent and confidence filled in.

    Content fields are never touched; only ``depth``, ``parent_id`` and
    ``confidence`` are added.
    """

    depths = assign_depths([chapter.title for chapter in chapters])
    parents = resolve_parent_ids([chapter.id for chapter in chapters], depths)
    heading_count = count_heading_titles(chapters)

    enriched: list[Chapter] = []
    for chapter, depth, parent_id in zip(chapters, depths, parents):
        enriched.append(
            replace(
                chapter,
                depth=depth,
                parent_id=parent_id,
                confidence=score_chapter(chapter, heading_count),
            )
        )
    return enriched
