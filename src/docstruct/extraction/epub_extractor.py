"""EPUB chapter extraction in spine order."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path

from bs4 import BeautifulSoup

from docstruct.epub.assets import categorize_assets
from docstruct.epub.compatibility import (
    analyze_compatibility,
    apply_compatibility_fixes,
    apply_compatibility_fixes_to_toc,
)
from docstruct.epub.metadata import extract_metadata
from docstruct.epub.reader import ContentReader, EbookLibReader, SpineItem
from docstruct.epub.toc import build_table_of_contents, strip_fragment, titles_by_href
from docstruct.extraction.base import ContentUnit, build_chapter, extract_chapters, paragraph_id
from docstruct.structure.assembler import assemble_document_structure
from docstruct.structure.config import ParseOptions
from docstruct.structure.errors import DocumentParseError
from docstruct.structure.hierarchy import enrich_hierarchy
from docstruct.structure.models import Chapter, DocumentStructure, EmbeddedAssets
from docstruct.structure.normalization import normalize_whitespace
from docstruct.structure.segmentation import build_paragraph, extract_paragraph_matches

logger = logging.getLogger(__name__)

_EPUB_MAGIC = b"PK\x03\x04"
_TITLE_TAGS = ["h1", "h2", "h3"]


def _body_markup(markup: str) -> tuple[str, str | None]:
    soup = BeautifulSoup(markup, "xml")
    heading = soup.find(_TITLE_TAGS)
    heading_text = normalize_whitespace(heading.get_text(" ", strip=True)) if heading is not None else ""
    body = soup.find("body")
    if body is None:
        return markup, heading_text or None
    return body.decode_contents(), heading_text or None


class EpubExtractor:
    """Read one spine item through the reader and split it into paragraphs."""

    def __init__(self, reader: ContentReader) -> None:
        self._reader = reader

    def extract(self, unit: ContentUnit, offset: int, options: ParseOptions) -> Chapter:
        markup = unit.text if unit.text is not None else self._reader.read_content(unit.id, "text")
        if not markup:
            raise ValueError(f"No content found for chapter: {unit.title or unit.id}")

        body, heading = _body_markup(markup)
        source = markup if options.preserve_html else body
        paragraphs = [
            build_paragraph(text, paragraph_id=paragraph_id(unit.id, index), position=index)
            for index, text in enumerate(extract_paragraph_matches(source))
        ]
        return build_chapter(unit, paragraphs, offset=offset, options=options, title=unit.title or heading)


def build_units(spine: list[SpineItem], titles: dict[str, tuple[str, int]]) -> list[ContentUnit]:
    """Content units for every readable spine item except navigation documents."""

    units: list[ContentUnit] = []
    for spine_item in spine:
        if not spine_item.id or "nav" in spine_item.properties:
            continue
        title, level = titles.get(strip_fragment(spine_item.href) or "", (None, 1))
        units.append(ContentUnit(id=spine_item.id, href=spine_item.href, title=title, level=level))
    return units


class EpubDocumentParser:
    """Full EPUB pipeline: metadata, compatibility, chapters, assets, assembly."""

    def supports(self, path: Path, sniffed_bytes: bytes | None = None) -> bool:
        if path.suffix.lower() == ".epub":
            return True
        if sniffed_bytes is None:
            return False
        return sniffed_bytes.startswith(_EPUB_MAGIC)

    def parse(self, path: Path, options: ParseOptions) -> DocumentStructure:
        started_at = datetime.now(timezone.utc)
        reader = EbookLibReader.open(path)
        return self.parse_reader(reader, options, source_path=path, started_at=started_at)

    def parse_reader(
        self,
        reader: ContentReader,
        options: ParseOptions,
        *,
        source_path: Path | None = None,
        started_at: datetime | None = None,
    ) -> DocumentStructure:
        started_at = started_at or datetime.now(timezone.utc)
        metadata = extract_metadata(reader, source_path=source_path)

        try:
            spine = reader.get_spine_items()
        except Exception as exc:
            raise DocumentParseError(source_path or "<reader>", f"Failed to read spine: {exc}") from exc

        toc = build_table_of_contents(reader, spine)
        compatibility = analyze_compatibility(reader, options)
        if compatibility.required_fallbacks:
            metadata = apply_compatibility_fixes(metadata, compatibility)
            toc = apply_compatibility_fixes_to_toc(toc, compatibility)

        units = build_units(spine, titles_by_href(toc))
        chapters, errors = extract_chapters(units, EpubExtractor(reader), options)
        chapters = enrich_hierarchy(chapters)

        assets = self._assets(reader) if options.extract_media else EmbeddedAssets()
        logger.info(
            "Parsed EPUB %s: chapters=%s failed=%s version=%s",
            source_path or "<reader>",
            len(chapters),
            len(errors),
            compatibility.detected_version.value,
        )
        return assemble_document_structure(
            metadata,
            chapters,
            toc,
            assets,
            options=options,
            started_at=started_at,
            processing_errors=errors,
            compatibility=compatibility,
        )

    def _assets(self, reader: ContentReader) -> EmbeddedAssets:
        try:
            manifest = reader.get_manifest()
        except Exception as exc:
            logger.warning("Failed to read manifest for embedded assets: %s", exc)
            return EmbeddedAssets()
        return categorize_assets(manifest)
