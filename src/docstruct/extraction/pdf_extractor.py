"""PDF extraction from page text lines with heading-based chapter blocks."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import logging
from pathlib import Path
import re
from typing import Iterator, Sequence

import pymupdf

from docstruct.extraction.base import (
    ContentUnit,
    build_chapter,
    extract_chapters,
    paragraph_id,
    toc_from_chapters,
)
from docstruct.extraction.tables import DetectedTable, detect_tables
from docstruct.structure.assembler import assemble_document_structure
from docstruct.structure.config import ParseOptions
from docstruct.structure.errors import DocumentParseError
from docstruct.structure.hierarchy import clean_heading, enrich_hierarchy, is_chapter_heading
from docstruct.structure.models import Chapter, DocumentMetadata, DocumentStructure, Paragraph
from docstruct.structure.normalization import detect_script_direction, normalize_whitespace
from docstruct.structure.segmentation import build_paragraph

logger = logging.getLogger(__name__)

_PDF_MAGIC = b"%PDF-"
_TITLE_SPLIT_RE = re.compile(r"[._\-]+")
_SCRIPT_SAMPLE_LINES = 200

PageLine = str | DetectedTable


def _normalize_title_from_path(path: Path) -> str:
    stem = _TITLE_SPLIT_RE.sub(" ", path.stem)
    return normalize_whitespace(stem).title()


def _first_non_empty(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = normalize_whitespace(value)
    return cleaned or None


def process_text_lines_into_chapters(lines: Sequence[PageLine]) -> list[ContentUnit]:
    """Group page lines into chapter units at recognized heading lines.

    Blank lines are never headings but are kept as paragraph separators.
    Text before the first heading becomes an ``Introduction`` unit; when no
    content line exists at all a single ``Untitled Chapter`` holds the input.
    """

    units: list[ContentUnit] = []
    current: ContentUnit | None = None

    for line in lines:
        if isinstance(line, DetectedTable):
            if current is None:
                current = ContentUnit(id="chapter-1", title="Introduction", lines=[])
            current.lines.append(line)
            continue

        trimmed = line.strip()
        if not trimmed:
            if current is not None:
                current.lines.append("")
            continue

        if is_chapter_heading(trimmed):
            if current is not None:
                units.append(current)
            current = ContentUnit(id=f"chapter-{len(units) + 1}", title=clean_heading(trimmed), lines=[])
            continue

        if current is None:
            current = ContentUnit(id="chapter-1", title="Introduction", lines=[])
        current.lines.append(trimmed)

    if current is not None:
        units.append(current)
    return units or [ContentUnit(id="chapter-1", title="Untitled Chapter", lines=list(lines))]


def _paragraph_runs(lines: Sequence[PageLine]) -> Iterator[str | DetectedTable]:
    run: list[str] = []
    for line in lines:
        if isinstance(line, DetectedTable):
            if run:
                yield " ".join(run)
                run = []
            yield line
        elif line.strip():
            run.append(line.strip())
        elif run:
            yield " ".join(run)
            run = []
    if run:
        yield " ".join(run)


class PdfExtractor:
    """Build paragraphs from blank-line separated runs; tables stay whole."""

    def extract(self, unit: ContentUnit, offset: int, options: ParseOptions) -> Chapter:
        paragraphs: list[Paragraph] = []
        for block in _paragraph_runs(unit.lines or []):
            index = len(paragraphs)
            if isinstance(block, DetectedTable):
                paragraphs.append(
                    build_paragraph(
                        block.to_text(),
                        paragraph_id=paragraph_id(unit.id, index),
                        position=index,
                        paragraph_type="table",
                        include_in_audio=options.include_tables,
                        with_sentences=False,
                        confidence=block.confidence,
                    )
                )
            else:
                paragraphs.append(build_paragraph(block, paragraph_id=paragraph_id(unit.id, index), position=index))
        return build_chapter(unit, paragraphs, offset=offset, options=options)


def merge_page_tables(lines: Sequence[str], tables: Sequence[DetectedTable]) -> list[PageLine]:
    """Replace the line span of every detected table with the table itself."""

    by_start = {table.start_line: table for table in tables}
    merged: list[PageLine] = []
    index = 0
    while index < len(lines):
        table = by_start.get(index)
        if table is not None:
            merged.append(table)
            index = table.end_line
            continue
        merged.append(lines[index])
        index += 1
    return merged


class PdfDocumentParser:
    """Full PDF pipeline over the embedded text layer of each page."""

    def supports(self, path: Path, sniffed_bytes: bytes | None = None) -> bool:
        if path.suffix.lower() == ".pdf":
            return True
        if sniffed_bytes is None:
            return False
        return sniffed_bytes.startswith(_PDF_MAGIC)

    def parse(self, path: Path, options: ParseOptions) -> DocumentStructure:
        started_at = datetime.now(timezone.utc)
        try:
            with pymupdf.open(path) as doc:
                metadata = self._extract_metadata(path, doc)
                lines = self._extract_lines(doc)
        except (RuntimeError, OSError) as exc:
            raise DocumentParseError(path, f"Failed to open PDF: {exc}") from exc

        return self.parse_lines(lines, metadata, options, started_at=started_at)

    def parse_lines(
        self,
        lines: Sequence[PageLine],
        metadata: DocumentMetadata,
        options: ParseOptions,
        *,
        started_at: datetime | None = None,
    ) -> DocumentStructure:
        started_at = started_at or datetime.now(timezone.utc)
        units = process_text_lines_into_chapters(lines)
        chapters, errors = extract_chapters(units, PdfExtractor(), options)
        chapters = enrich_hierarchy(chapters)

        sample = " ".join(line for line in lines[:_SCRIPT_SAMPLE_LINES] if isinstance(line, str))
        if "script_direction" not in metadata.custom:
            metadata = replace(
                metadata, custom={**metadata.custom, "script_direction": detect_script_direction(sample)}
            )
        logger.info("Parsed PDF %s: chapters=%s failed=%s", metadata.title, len(chapters), len(errors))

        return assemble_document_structure(
            metadata,
            chapters,
            toc_from_chapters(chapters),
            options=options,
            started_at=started_at,
            processing_errors=errors,
        )

    def _extract_metadata(self, path: Path, doc: pymupdf.Document) -> DocumentMetadata:
        doc_metadata = doc.metadata or {}
        return DocumentMetadata(
            title=_first_non_empty(doc_metadata.get("title")) or _normalize_title_from_path(path),
            author=_first_non_empty(doc_metadata.get("author")),
            date=_first_non_empty(doc_metadata.get("creationDate")),
            format="pdf",
            custom={"page_count": str(doc.page_count)},
        )

    def _extract_lines(self, doc: pymupdf.Document) -> list[PageLine]:
        extracted: list[PageLine] = []
        for page_index, page in enumerate(doc, start=1):
            page_lines = [line.strip() for line in page.get_text("text").splitlines()]
            tables = detect_tables(page_lines, page_index)
            if tables:
                logger.info("Detected %s table(s) on page %d", len(tables), page_index)
            extracted.extend(merge_page_tables(page_lines, tables))
            # a page break ends the current paragraph
            extracted.append("")
        return extracted
