"""Markdown preprocessing, front-matter style metadata and block tokens."""

from __future__ import annotations

from dataclasses import dataclass, field
import re

from bs4 import BeautifulSoup, Comment, NavigableString, Tag
import markdown

from docstruct.structure.normalization import normalize_whitespace

DEFAULT_DOCUMENT_TITLE = "Untitled Document"
MAX_METADATA_LINES = 20
MARKDOWN_EXTENSIONS = ["fenced_code", "tables"]

_FENCE_RE = re.compile(r"^(`{3,}|~{3,})")
_HEADING_LINE_RE = re.compile(r"^#{1,6}\s")
_HEADING_TAGS = {f"h{depth}": depth for depth in range(1, 7)}

_HEADER_FIELDS = {
    "author": "author",
    "by": "author",
    "date": "date",
    "created": "date",
    "modified": "modified",
    "updated": "modified",
    "language": "language",
    "lang": "language",
}


@dataclass(slots=True)
class MarkdownToken:
    """A top-level block of a rendered Markdown document."""

    type: str
    text: str = ""
    depth: int = 0
    items: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MarkdownHeader:
    author: str | None = None
    date: str | None = None
    modified: str | None = None
    language: str | None = None
    line_numbers: set[int] = field(default_factory=set)


def _is_closing_fence(line: str, fence: str) -> bool:
    stripped = line.strip()
    return stripped.startswith(fence) and not stripped.strip(fence[0])


def _has_closing_fence(lines: list[str], start: int, fence: str) -> bool:
    return any(_is_closing_fence(line, fence) for line in lines[start:])


def repair_code_fences(text: str) -> str:
    """Close code fences that are never closed.

    An unclosed fence ends right before the next heading line, or at the end
    of the text. Fences with a matching closing line are left untouched.
    """

    lines = text.split("\n")
    repaired: list[str] = []
    fence: str | None = None
    closed_later = False

    for index, line in enumerate(lines):
        if fence is None:
            match = _FENCE_RE.match(line.strip())
            if match:
                fence = match.group(1)
                closed_later = _has_closing_fence(lines, index + 1, fence)
            repaired.append(line)
            continue

        if _is_closing_fence(line, fence):
            fence = None
        elif not closed_later and _HEADING_LINE_RE.match(line):
            repaired.append(fence)
            fence = None
        repaired.append(line)

    if fence is not None:
        repaired.append(fence)
    return "\n".join(repaired)


def read_header(text: str) -> MarkdownHeader:
    """Collect ``Author:``/``Date:``-style lines from the top of the document."""

    header = MarkdownHeader()
    for line_no, line in enumerate(text.split("\n")[:MAX_METADATA_LINES]):
        normalized = normalize_whitespace(line)
        if not normalized or ":" not in normalized:
            continue
        key, value = normalized.split(":", 1)
        name = _HEADER_FIELDS.get(key.strip().casefold())
        clean_value = normalize_whitespace(value)
        if not name or not clean_value:
            continue
        if getattr(header, name) is None:
            setattr(header, name, clean_value)
        header.line_numbers.add(line_no)
    return header


def strip_header_lines(text: str, header: MarkdownHeader) -> str:
    if not header.line_numbers:
        return text
    return "\n".join(line for line_no, line in enumerate(text.split("\n")) if line_no not in header.line_numbers)


def _block_text(element: Tag) -> str:
    return normalize_whitespace(element.get_text(" ", strip=True))


def _element_token(element: Tag) -> MarkdownToken | None:
    name = element.name
    if name in _HEADING_TAGS:
        return MarkdownToken(type="heading", text=_block_text(element), depth=_HEADING_TAGS[name])
    if name == "pre":
        return MarkdownToken(type="code", text=element.get_text().strip("\n"))
    if name == "blockquote":
        return MarkdownToken(type="blockquote", text=_block_text(element))
    if name in ("ul", "ol"):
        items = [_block_text(item) for item in element.find_all("li", recursive=False)]
        items = [item for item in items if item]
        return MarkdownToken(type="list", text=" ".join(items), items=items)
    if name == "table":
        return MarkdownToken(type="table", text=_block_text(element))
    if name == "hr":
        return None

    text = _block_text(element)
    return MarkdownToken(type="paragraph", text=text) if text else None


def tokenize_markdown(text: str) -> list[MarkdownToken]:
    """Render ``text`` and return its top-level blocks in document order."""

    html = markdown.markdown(repair_code_fences(text), extensions=MARKDOWN_EXTENSIONS)
    soup = BeautifulSoup(html, "html.parser")

    tokens: list[MarkdownToken] = []
    for node in soup.children:
        if isinstance(node, Comment):
            continue
        if isinstance(node, NavigableString):
            loose = normalize_whitespace(str(node))
            if loose:
                tokens.append(MarkdownToken(type="paragraph", text=loose))
            continue
        if isinstance(node, Tag):
            token = _element_token(node)
            if token is not None:
                tokens.append(token)
    return tokens


def title_from_tokens(tokens: list[MarkdownToken]) -> str:
    for token in tokens:
        if token.type == "heading" and token.depth == 1 and token.text:
            return token.text
    return DEFAULT_DOCUMENT_TITLE
