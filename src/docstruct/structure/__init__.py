"""Document structure models, text primitives and assembly."""

from .assembler import assemble_document_structure
from .config import ParseOptions
from .errors import AssetError, DocumentParseError, UnitReadError
from .hierarchy import enrich_hierarchy, is_chapter_heading
from .models import (
    Chapter,
    CharRange,
    CompatibilityAnalysis,
    DocumentMetadata,
    DocumentStructure,
    EmbeddedAssets,
    EpubVersion,
    Paragraph,
    Sentence,
    Severity,
    TocItem,
    ValidationResult,
)
from .segmentation import build_paragraph, extract_paragraph_matches, split_sentences
from .words import count_words

__all__ = [
    "AssetError",
    "Chapter",
    "CharRange",
    "CompatibilityAnalysis",
    "DocumentMetadata",
    "DocumentParseError",
    "DocumentStructure",
    "EmbeddedAssets",
    "EpubVersion",
    "ParseOptions",
    "Paragraph",
    "Sentence",
    "Severity",
    "TocItem",
    "UnitReadError",
    "ValidationResult",
    "assemble_document_structure",
    "build_paragraph",
    "count_words",
    "enrich_hierarchy",
    "extract_paragraph_matches",
    "is_chapter_heading",
    "split_sentences",
]
