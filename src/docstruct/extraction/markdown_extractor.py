"""Markdown extraction: chapter headers split the token stream into units."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Sequence

from charset_normalizer import from_bytes

from docstruct.extraction.base import (
    ContentUnit,
    build_chapter,
    extract_chapters,
    paragraph_id,
    toc_from_chapters,
)
from docstruct.extraction.markdown_tokens import (
    MarkdownToken,
    read_header,
    strip_header_lines,
    title_from_tokens,
    tokenize_markdown,
)
from docstruct.structure.assembler import assemble_document_structure
from docstruct.structure.config import ParseOptions
from docstruct.structure.errors import DocumentParseError
from docstruct.structure.hierarchy import enrich_hierarchy
from docstruct.structure.models import Chapter, DocumentMetadata, DocumentStructure, Paragraph
from docstruct.structure.normalization import detect_script_direction
from docstruct.structure.segmentation import build_paragraph

logger = logging.getLogger(__name__)

_MARKDOWN_SUFFIXES = {".md", ".markdown"}
TABLE_PLACEHOLDER = "[Table]"


def decode_markdown(raw: bytes) -> str:
    best = from_bytes(raw).best()
    if best is not None and best.encoding:
        return str(best)
    return raw.decode("utf-8", errors="replace")


def split_into_units(
    tokens: Sequence[MarkdownToken],
    chapter_levels: Sequence[int],
    document_title: str,
) -> list[ContentUnit]:
    """Open a unit at every heading whose depth is a chapter level.

    Tokens before the first chapter heading form a preamble unit titled with
    the document title. Headings shallower than every chapter level are
    document titles and carry no content.
    """

    levels = sorted(chapter_levels)
    units: list[ContentUnit] = []
    preamble: list[MarkdownToken] = []
    current: ContentUnit | None = None

    for token in tokens:
        if token.type == "heading" and token.depth in levels:
            if preamble and not units:
                units.append(ContentUnit(id="chapter-1", title=document_title, tokens=preamble))
            current = ContentUnit(
                id=f"chapter-{len(units) + 1}",
                title=token.text or None,
                level=levels.index(token.depth) + 1,
                tokens=[],
            )
            units.append(current)
            continue
        if token.type == "heading" and token.depth < levels[0]:
            continue
        if current is None:
            preamble.append(token)
        else:
            current.tokens.append(token)

    if not units:
        units.append(ContentUnit(id="chapter-1", title=document_title, tokens=preamble))
    return units


class MarkdownExtractor:
    """Map tokens to typed paragraphs honoring the audio inclusion options."""

    def extract(self, unit: ContentUnit, offset: int, options: ParseOptions) -> Chapter:
        paragraphs: list[Paragraph] = []
        for token in unit.tokens or []:
            paragraph = self._paragraph(token, paragraph_id(unit.id, len(paragraphs)), len(paragraphs), options)
            if paragraph is not None:
                paragraphs.append(paragraph)
        return build_chapter(unit, paragraphs, offset=offset, options=options)

    def _paragraph(
        self,
        token: MarkdownToken,
        identifier: str,
        position: int,
        options: ParseOptions,
    ) -> Paragraph | None:
        if token.type == "table":
            return build_paragraph(
                TABLE_PLACEHOLDER,
                paragraph_id=identifier,
                position=position,
                paragraph_type="table",
                include_in_audio=options.include_tables,
                with_sentences=False,
                confidence=1.0,
            )
        if not token.text.strip():
            return None
        if token.type == "code":
            return build_paragraph(
                token.text,
                paragraph_id=identifier,
                position=position,
                paragraph_type="code",
                include_in_audio=options.include_code_blocks,
                with_sentences=False,
                confidence=1.0,
            )
        if token.type == "blockquote":
            return build_paragraph(
                token.text,
                paragraph_id=identifier,
                position=position,
                paragraph_type="blockquote",
                include_in_audio=options.include_blockquotes,
            )
        if token.type == "list":
            return build_paragraph(
                " ".join(token.items),
                paragraph_id=identifier,
                position=position,
                paragraph_type="list",
                include_in_audio=options.include_lists,
            )
        # paragraphs and sub-chapter headings are spoken as plain text
        return build_paragraph(token.text, paragraph_id=identifier, position=position)


class MarkdownDocumentParser:
    """Full Markdown pipeline from raw bytes to document structure."""

    def supports(self, path: Path, sniffed_bytes: bytes | None = None) -> bool:
        return path.suffix.lower() in _MARKDOWN_SUFFIXES

    def parse(self, path: Path, options: ParseOptions) -> DocumentStructure:
        started_at = datetime.now(timezone.utc)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise DocumentParseError(path, f"Failed to read Markdown file: {exc}") from exc
        return self.parse_text(decode_markdown(raw), options, source_path=path, started_at=started_at)

    def parse_text(
        self,
        text: str,
        options: ParseOptions,
        *,
        source_path: Path | None = None,
        started_at: datetime | None = None,
    ) -> DocumentStructure:
        started_at = started_at or datetime.now(timezone.utc)
        header = read_header(text)
        tokens = tokenize_markdown(strip_header_lines(text, header))
        title = title_from_tokens(tokens)

        custom = {"script_direction": detect_script_direction(text)}
        if header.modified:
            custom["modified"] = header.modified
        if source_path is not None:
            custom["source_path"] = str(source_path)
        metadata = DocumentMetadata(
            title=title,
            author=header.author,
            language=header.language,
            date=header.date,
            format="markdown",
            custom=custom,
        )

        units = split_into_units(tokens, options.chapter_header_levels, title)
        chapters, errors = extract_chapters(units, MarkdownExtractor(), options)
        chapters = enrich_hierarchy(chapters)
        logger.info("Parsed Markdown %s: chapters=%s failed=%s", source_path or title, len(chapters), len(errors))

        return assemble_document_structure(
            metadata,
            chapters,
            toc_from_chapters(chapters),
            options=options,
            started_at=started_at,
            processing_errors=errors,
        )
