"""Content-unit reader contract and its ebooklib-backed implementation."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ebooklib import epub

from docstruct.structure.errors import DocumentParseError, UnitReadError

logger = logging.getLogger(__name__)

NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
XHTML_MEDIA_TYPES = frozenset({"application/xhtml+xml", "text/html", "application/xml"})


@dataclass(slots=True)
class MetadataEntry:
    """One ``{type, value}`` metadata record as read from the package."""

    type: str
    value: str


@dataclass(slots=True)
class SpineItem:
    id: str | None
    href: str | None
    media_type: str | None = None
    linear: bool = True
    properties: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ManifestItem:
    id: str | None
    href: str | None
    media_type: str | None = None
    properties: list[str] = field(default_factory=list)
    size: int = 0

    @property
    def is_navigation_document(self) -> bool:
        return "nav" in self.properties

    @property
    def is_ncx(self) -> bool:
        return (self.media_type or "").lower() == NCX_MEDIA_TYPE

    @property
    def is_content_document(self) -> bool:
        return (self.media_type or "").lower() in XHTML_MEDIA_TYPES


@dataclass(slots=True)
class TocEntry:
    title: str
    href: str | None = None
    children: list[TocEntry] = field(default_factory=list)


@runtime_checkable
class ContentReader(Protocol):
    """Read-only view of a container; every method may raise."""

    def get_metadata(self) -> list[MetadataEntry]:
        """Return raw package metadata entries."""

    def get_spine_items(self) -> list[SpineItem]:
        """Return content units in linear reading order."""

    def get_manifest(self) -> dict[str, ManifestItem]:
        """Return manifest resources keyed by id."""

    def read_content(self, unit_id: str, mode: str = "text") -> str:
        """Return the decoded markup of one content unit."""

    def get_toc(self) -> list[TocEntry]:
        """Return the navigation tree, or an empty list when absent."""


def metadata_mapping(entries: list[MetadataEntry]) -> dict[str, list[str]]:
    """Group metadata values by lower-cased type, preserving order."""

    mapping: dict[str, list[str]] = {}
    for entry in entries:
        value = (entry.value or "").strip()
        if not value:
            continue
        mapping.setdefault(entry.type.strip().lower(), []).append(value)
    return mapping


def _decode(payload: bytes | str | None) -> str:
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload
    return payload.decode("utf-8", errors="replace")


def _item_properties(item: Any) -> list[str]:
    properties = [str(value) for value in getattr(item, "properties", None) or [] if value]
    if isinstance(item, epub.EpubNav) and "nav" not in properties:
        properties.append("nav")
    return properties


def _toc_entries(nodes: Any) -> list[TocEntry]:
    entries: list[TocEntry] = []
    for node in nodes or []:
        if isinstance(node, (tuple, list)) and len(node) == 2:
            section, children = node
            entries.append(
                TocEntry(
                    title=str(getattr(section, "title", "") or ""),
                    href=getattr(section, "href", None) or None,
                    children=_toc_entries(children),
                )
            )
            continue

        href = getattr(node, "href", None)
        if href is None and hasattr(node, "get_name"):
            href = node.get_name()
        entries.append(TocEntry(title=str(getattr(node, "title", "") or ""), href=href))
    return entries


class EbookLibReader:
    """Expose an ``ebooklib`` book through the ``ContentReader`` contract."""

    def __init__(self, book: epub.EpubBook, *, source_path: Path | None = None) -> None:
        self._book = book
        self._source_path = source_path

    @classmethod
    def open(cls, path: str | Path) -> "EbookLibReader":
        source = Path(path)
        try:
            book = epub.read_epub(str(source))
        except Exception as exc:
            raise DocumentParseError(source, f"Failed to open EPUB container: {exc}") from exc
        return cls(book, source_path=source)

    @property
    def file_size(self) -> int:
        if self._source_path is None:
            return 0
        try:
            return self._source_path.stat().st_size
        except OSError:
            return 0

    def get_metadata(self) -> list[MetadataEntry]:
        entries: list[MetadataEntry] = []
        version = getattr(self._book, "version", None)
        if version:
            entries.append(MetadataEntry(type="version", value=str(version)))

        for fields in (self._book.metadata or {}).values():
            for name, values in fields.items():
                for value, attributes in values:
                    attributes = attributes or {}
                    if name == "meta":
                        meta_name = attributes.get("property") or attributes.get("name")
                        meta_value = value or attributes.get("content")
                        if meta_name and meta_value:
                            entries.append(MetadataEntry(type=str(meta_name).split(":")[-1], value=str(meta_value)))
                        continue
                    if value:
                        entries.append(MetadataEntry(type=name, value=str(value)))
        return entries

    def get_spine_items(self) -> list[SpineItem]:
        items: list[SpineItem] = []
        for spine_entry in self._book.spine:
            if isinstance(spine_entry, tuple):
                item_id, linear = spine_entry[0], spine_entry[1] if len(spine_entry) > 1 else "yes"
            else:
                item_id, linear = spine_entry, "yes"
            if not isinstance(item_id, str):
                item_id = item_id.get_id()

            item = self._book.get_item_with_id(item_id)
            items.append(
                SpineItem(
                    id=item_id,
                    href=item.get_name() if item is not None else None,
                    media_type=getattr(item, "media_type", None) if item is not None else None,
                    linear=linear not in ("no", False),
                    properties=_item_properties(item) if item is not None else [],
                )
            )
        return items

    def get_manifest(self) -> dict[str, ManifestItem]:
        manifest: dict[str, ManifestItem] = {}
        for item in self._book.get_items():
            item_id = item.get_id()
            manifest[item_id] = ManifestItem(
                id=item_id,
                href=item.get_name() or None,
                media_type=getattr(item, "media_type", None),
                properties=_item_properties(item),
                size=len(getattr(item, "content", b"") or b""),
            )
        return manifest

    def read_content(self, unit_id: str, mode: str = "text") -> str:
        item = self._book.get_item_with_id(unit_id)
        if item is None:
            raise UnitReadError(unit_id, "Spine item not found in manifest")
        try:
            if mode == "raw":
                return _decode(getattr(item, "content", b""))
            return _decode(item.get_content())
        except Exception as exc:
            raise UnitReadError(unit_id, f"Failed to read content: {exc}") from exc

    def get_toc(self) -> list[TocEntry]:
        return _toc_entries(self._book.toc)
