"""Markup cleanup helpers used by every chapter extractor."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

_WHITESPACE_RE = re.compile(r"\s+")
_SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^<>]{0,2000}>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_DECLARATION_RE = re.compile(r"<[!?][^<>]{0,2000}>")
# tag name anchored, attribute span bounded
_TAG_RE = re.compile(r"</?[A-Za-z][\w:-]*(?:\s[^<>]{0,2000})?/?>")
_NUMERIC_ENTITY_RE = re.compile(r"&#(\d{1,7});")
_HEX_ENTITY_RE = re.compile(r"&#[xX]([0-9a-fA-F]{1,6});")
_TITLE_SPLIT_RE = re.compile(r"[._\-]+")

_NAMED_ENTITIES = {
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&apos;": "'",
    "&nbsp;": " ",
}


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def _decode_codepoint(value: int) -> str:
    try:
        return chr(value)
    except (ValueError, OverflowError):
        return ""


def decode_html_entities(text: str) -> str:
    """Decode the common named entities plus numeric and hex references."""

    for entity, replacement in _NAMED_ENTITIES.items():
        text = text.replace(entity, replacement)
    text = _NUMERIC_ENTITY_RE.sub(lambda match: _decode_codepoint(int(match.group(1))), text)
    text = _HEX_ENTITY_RE.sub(lambda match: _decode_codepoint(int(match.group(1), 16)), text)
    # decoded last: "&amp;lt;" yields the literal "&lt;"
    return text.replace("&amp;", "&")


def strip_html_and_clean(html: str | None) -> str:
    """Reduce an HTML fragment to speakable plain text.

    Script and style blocks are dropped with their content, comments are
    removed, every other tag becomes a single space, entities are decoded and
    whitespace (blank lines included) is collapsed to single spaces.

    Passes repeat until the text stops changing, so entities that decode into
    tag syntax (``&lt;b&gt;``) cannot leave markup behind for a later call.
    Every changing pass shortens the text, which bounds the loop.
    """

    if not html:
        return ""

    text = html
    while True:
        cleaned = _clean_once(text)
        if cleaned == text:
            return cleaned
        text = cleaned


def _clean_once(text: str) -> str:
    text = _SCRIPT_STYLE_RE.sub(" ", text)
    text = _COMMENT_RE.sub(" ", text)
    text = _DECLARATION_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    text = decode_html_entities(text)
    return normalize_whitespace(text)


def strip_tags(html: str, tags: tuple[str, ...]) -> str:
    """Remove the given elements (with content) and any stray open/close tags."""

    if not html:
        return html
    patterns = []
    for tag in tags:
        patterns.append(re.compile(rf"<{tag}\b[^<>]{{0,2000}}>.*?</{tag}\s*>", re.IGNORECASE | re.DOTALL))
        patterns.append(re.compile(rf"</?{tag}\b[^<>]{{0,2000}}>", re.IGNORECASE))
    # removal can splice a new tag together ("<scr<script>ipt>")
    while True:
        stripped = html
        for pattern in patterns:
            stripped = pattern.sub("", stripped)
        if stripped == html:
            return stripped
        html = stripped


def title_from_href(href: str | None, ordinal: int) -> str:
    """Derive a chapter title from a content file name, else ``Chapter N``."""

    if href:
        name = PurePosixPath(href.split("#", 1)[0]).stem
        name = normalize_whitespace(_TITLE_SPLIT_RE.sub(" ", name))
        if name:
            return name[0].upper() + name[1:]
    return f"Chapter {ordinal}"


def detect_script_direction(text: str | None) -> str:
    """Classify dominant script as ``rtl``, ``cjk`` or ``ltr`` by letter share."""

    letters = [char for char in text or "" if char.isalpha()]
    if not letters:
        return "ltr"

    rtl = sum(1 for char in letters if "\u0590" <= char <= "\u08ff")
    cjk = sum(
        1
        for char in letters
        if "\u3040" <= char <= "\u30ff" or "\u3400" <= char <= "\u9fff" or "\uac00" <= char <= "\ud7af"
    )
    if rtl / len(letters) > 0.5:
        return "rtl"
    if cjk / len(letters) > 0.5:
        return "cjk"
    return "ltr"
