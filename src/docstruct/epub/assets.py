"""Categorize manifest resources into embedded asset groups."""

from __future__ import annotations

import logging
import re

from docstruct.epub.reader import ManifestItem
from docstruct.structure.errors import AssetError
from docstruct.structure.models import EmbeddedAsset, EmbeddedAssets

logger = logging.getLogger(__name__)

_ASSET_ID_RE = re.compile(r"[./]")

FONT_MARKERS = ("woff", "ttf", "otf", "eot", "vnd.ms-fontobject")
STYLE_TYPES = frozenset({"text/css", "text/x-scss", "text/x-sass", "text/x-less", "application/x-dtbncx+xml"})
IMAGE_MARKERS = ("jpeg", "jpg", "png", "gif", "webp", "svg")


def asset_id(href: str) -> str:
    return _ASSET_ID_RE.sub("-", href)


def categorize_media_type(media_type: str) -> str:
    """Return the ``EmbeddedAssets`` field name for ``media_type``."""

    value = media_type.lower()
    if value.startswith("font/") or any(marker in value for marker in FONT_MARKERS):
        return "fonts"
    if value in STYLE_TYPES:
        return "styles"
    if value.startswith("image/") or any(marker in value for marker in IMAGE_MARKERS):
        return "images"
    if value.startswith("audio/"):
        return "audio"
    if value.startswith("video/"):
        return "video"
    return "other"


def build_asset(item: ManifestItem) -> EmbeddedAsset:
    if not item.id or not item.href or not item.media_type:
        raise AssetError(item.id, "Manifest item requires id, href and media type")
    return EmbeddedAsset(
        id=asset_id(item.href),
        href=item.href,
        media_type=item.media_type,
        type=categorize_media_type(item.media_type),
        properties=list(item.properties),
        original_id=item.id,
        size=item.size,
    )


def categorize_assets(manifest: dict[str, ManifestItem]) -> EmbeddedAssets:
    """Group non-document manifest items; invalid items are logged and skipped."""

    assets = EmbeddedAssets()
    for item in manifest.values():
        if item.is_content_document:
            continue
        try:
            asset = build_asset(item)
        except AssetError as exc:
            logger.warning("Skipping embedded asset: %s", exc)
            continue
        assets.category(asset.type).append(asset)
    return assets
