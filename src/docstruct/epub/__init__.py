"""EPUB container access, compatibility and validation."""

from .assets import categorize_assets
from .compatibility import (
    analyze_compatibility,
    apply_compatibility_fixes,
    apply_compatibility_fixes_to_toc,
    detect_epub_version,
)
from .reader import ContentReader, EbookLibReader, ManifestItem, MetadataEntry, SpineItem, TocEntry
from .validation import ValidationLevel, validate_epub

__all__ = [
    "ContentReader",
    "EbookLibReader",
    "ManifestItem",
    "MetadataEntry",
    "SpineItem",
    "TocEntry",
    "ValidationLevel",
    "analyze_compatibility",
    "apply_compatibility_fixes",
    "apply_compatibility_fixes_to_toc",
    "categorize_assets",
    "detect_epub_version",
    "validate_epub",
]
