"""Map raw EPUB package metadata onto ``DocumentMetadata``."""

from __future__ import annotations

import logging
from pathlib import Path
import re

from docstruct.epub.reader import ContentReader, MetadataEntry, metadata_mapping
from docstruct.structure.models import DocumentMetadata
from docstruct.structure.normalization import normalize_whitespace

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Document"
_TITLE_SPLIT_RE = re.compile(r"[._\-]+")
_CUSTOM_FIELDS = ("subject", "description", "rights", "type", "modified", "source", "relation", "contributor")


def _normalize_title_from_path(path: Path) -> str:
    stem = _TITLE_SPLIT_RE.sub(" ", path.stem)
    return normalize_whitespace(stem).title()


def _first(mapping: dict[str, list[str]], key: str) -> str | None:
    for value in mapping.get(key, []):
        cleaned = normalize_whitespace(value)
        if cleaned:
            return cleaned
    return None


def build_document_metadata(entries: list[MetadataEntry], *, source_path: Path | None = None) -> DocumentMetadata:
    """Fold ``{type, value}`` entries into normalized metadata with custom fields."""

    mapping = metadata_mapping(entries)
    title = _first(mapping, "title")
    if title is None:
        title = _normalize_title_from_path(source_path) if source_path is not None else DEFAULT_TITLE

    creators = [normalize_whitespace(value) for value in mapping.get("creator", []) if normalize_whitespace(value)]
    custom: dict[str, str] = {}
    for key in _CUSTOM_FIELDS:
        values = [normalize_whitespace(value) for value in mapping.get(key, [])]
        values = [value for value in values if value]
        if values:
            custom[key] = ", ".join(values)

    return DocumentMetadata(
        title=title or DEFAULT_TITLE,
        author=", ".join(creators) or None,
        language=_first(mapping, "language"),
        publisher=_first(mapping, "publisher"),
        identifier=_first(mapping, "identifier"),
        date=_first(mapping, "date"),
        version=_first(mapping, "version"),
        format="epub",
        custom=custom,
    )


def extract_metadata(reader: ContentReader, *, source_path: Path | None = None) -> DocumentMetadata:
    """Read metadata through ``reader``, degrading to defaults on failure."""

    try:
        entries = reader.get_metadata()
    except Exception as exc:
        logger.warning("Failed to extract metadata, using fallback values: %s", exc)
        entries = []
    return build_document_metadata(entries, source_path=source_path)
