"""Table-of-contents construction from navigation data or the spine."""

from __future__ import annotations

import logging

from docstruct.epub.reader import ContentReader, SpineItem, TocEntry
from docstruct.structure.models import TocItem
from docstruct.structure.normalization import normalize_whitespace, title_from_href

logger = logging.getLogger(__name__)


def strip_fragment(href: str | None) -> str | None:
    if href is None:
        return None
    return href.split("#", 1)[0] or None


def _from_entries(entries: list[TocEntry], level: int, counter: list[int]) -> list[TocItem]:
    items: list[TocItem] = []
    for entry in entries:
        counter[0] += 1
        ordinal = counter[0]
        title = normalize_whitespace(entry.title) or title_from_href(entry.href, ordinal)
        items.append(
            TocItem(
                id=f"toc-{ordinal}",
                title=title,
                href=entry.href or "",
                level=level,
                children=_from_entries(entry.children, level + 1, counter),
            )
        )
    return items


def toc_from_spine(spine: list[SpineItem]) -> list[TocItem]:
    items: list[TocItem] = []
    for ordinal, spine_item in enumerate(spine, start=1):
        if not spine_item.id:
            continue
        items.append(
            TocItem(
                id=spine_item.id,
                title=title_from_href(spine_item.href, ordinal),
                href=spine_item.href or spine_item.id,
                level=1,
            )
        )
    return items


def default_toc() -> list[TocItem]:
    return [TocItem(id="default", title="Content", href="content", level=1)]


def build_table_of_contents(reader: ContentReader, spine: list[SpineItem] | None = None) -> list[TocItem]:
    """Prefer the navigation tree, then the spine, then a single default entry."""

    try:
        entries = reader.get_toc()
    except Exception as exc:
        logger.warning("Failed to read navigation tree, deriving TOC from spine: %s", exc)
        entries = []
    if entries:
        return _from_entries(entries, 1, [0])

    if spine is None:
        try:
            spine = reader.get_spine_items()
        except Exception as exc:
            logger.warning("Failed to read spine for TOC: %s", exc)
            spine = []
    return toc_from_spine(spine) or default_toc()


def titles_by_href(toc: list[TocItem]) -> dict[str, tuple[str, int]]:
    """First title and level seen for each content file referenced by the TOC."""

    titles: dict[str, tuple[str, int]] = {}
    for root in toc:
        for item in root.walk():
            href = strip_fragment(item.href)
            if href and href not in titles:
                titles[href] = (item.title, item.level)
    return titles
