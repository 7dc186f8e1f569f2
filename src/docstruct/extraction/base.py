"""Shared extractor contracts and the offset-carrying extraction fold."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import reduce
import logging
from pathlib import Path
from typing import Any, Iterable, Protocol, Sequence, runtime_checkable

from docstruct.extraction.tables import DetectedTable
from docstruct.structure.config import ParseOptions
from docstruct.structure.models import Chapter, CharRange, DocumentStructure, Paragraph, TocItem
from docstruct.structure.normalization import title_from_href
from docstruct.structure.words import estimate_duration_seconds

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ContentUnit:
    """One chapter-sized input: a spine item, a PDF text block or a Markdown run."""

    id: str
    href: str | None = None
    title: str | None = None
    level: int = 1
    position: int = 0
    text: str | None = None
    lines: list[str | DetectedTable] | None = None
    tokens: list[Any] | None = None


@dataclass(frozen=True, slots=True)
class ExtractionState:
    """Accumulator threaded through :func:`extract_chapters`."""

    offset: int = 0
    chapters: tuple[Chapter, ...] = ()
    errors: tuple[str, ...] = field(default=())


@runtime_checkable
class ChapterExtractor(Protocol):
    """Turn one content unit into a chapter starting at ``offset``."""

    def extract(self, unit: ContentUnit, offset: int, options: ParseOptions) -> Chapter:
        """Return the chapter; raising marks the unit as failed."""


@runtime_checkable
class DocumentParser(Protocol):
    """Format-level parser owning its reader and the full pipeline."""

    def supports(self, path: Path, sniffed_bytes: bytes | None = None) -> bool:
        """Return True when this parser can handle the given file."""

    def parse(self, path: Path, options: ParseOptions) -> DocumentStructure:
        """Parse ``path`` into a document structure."""


def paragraph_id(chapter_id: str, index: int) -> str:
    return f"{chapter_id}-paragraph-{index}"


def fallback_title(unit: ContentUnit, ordinal: int) -> str:
    return unit.title or title_from_href(unit.href, ordinal)


def build_chapter(
    unit: ContentUnit,
    paragraphs: Sequence[Paragraph],
    *,
    offset: int,
    options: ParseOptions,
    title: str | None = None,
) -> Chapter:
    """Assemble a chapter whose span covers its paragraphs' raw text."""

    word_count = sum(paragraph.word_count for paragraph in paragraphs)
    length = sum(len(paragraph.raw_text) for paragraph in paragraphs)
    return Chapter(
        id=unit.id,
        title=title or fallback_title(unit, unit.position + 1),
        level=unit.level,
        paragraphs=list(paragraphs),
        position=unit.position,
        char_range=CharRange(start=offset, end=offset + length),
        word_count=word_count,
        estimated_duration=estimate_duration_seconds(word_count, options.reading_speed_wpm),
        href=unit.href,
    )


def toc_from_chapters(chapters: Sequence[Chapter]) -> list[TocItem]:
    """Flat navigation list for formats without a native table of contents."""

    return [
        TocItem(
            id=f"toc-{ordinal}",
            title=chapter.title,
            href=f"#{chapter.id}",
            level=chapter.depth or chapter.level,
        )
        for ordinal, chapter in enumerate(chapters, start=1)
    ]


def placeholder_chapter(unit: ContentUnit, *, offset: int) -> Chapter:
    """Empty stand-in for a unit that failed; it occupies no characters."""

    return Chapter(
        id=unit.id,
        title=fallback_title(unit, unit.position + 1),
        level=unit.level,
        position=unit.position,
        char_range=CharRange(start=offset, end=offset),
        href=unit.href,
    )


def _step(extractor: ChapterExtractor, options: ParseOptions):
    def step(state: ExtractionState, unit: ContentUnit) -> ExtractionState:
        unit = replace(unit, position=len(state.chapters))
        try:
            chapter = extractor.extract(unit, state.offset, options)
        except Exception as exc:
            message = f"Failed to extract chapter {unit.id}: {exc}"
            logger.warning("Chapter extraction failed, using placeholder: unit=%s error=%s", unit.id, exc)
            placeholder = placeholder_chapter(unit, offset=state.offset)
            return ExtractionState(
                offset=state.offset,
                chapters=state.chapters + (placeholder,),
                errors=state.errors + (message,),
            )

        return ExtractionState(
            offset=chapter.char_range.end,
            chapters=state.chapters + (chapter,),
            errors=state.errors,
        )

    return step


def extract_chapters(
    units: Iterable[ContentUnit],
    extractor: ChapterExtractor,
    options: ParseOptions,
    *,
    start_offset: int = 0,
) -> tuple[list[Chapter], list[str]]:
    """Fold ``extractor`` over ``units`` in order.

    Each chapter starts where the previous one ended. A failing unit yields a
    placeholder chapter and an error message instead of aborting the run, so
    the result always has one chapter per unit.
    """

    final = reduce(_step(extractor, options), units, ExtractionState(offset=start_offset))
    return list(final.chapters), list(final.errors)
