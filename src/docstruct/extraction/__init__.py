"""Format parsers, chapter extractors and the extraction fold."""

import logging

from .base import ChapterExtractor, ContentUnit, DocumentParser, extract_chapters
from .processor import DocumentProcessor
from .tables import DetectedTable, detect_tables

logger = logging.getLogger(__name__)

try:
    from .epub_extractor import EpubDocumentParser, EpubExtractor
except ImportError:
    EpubDocumentParser = None
    EpubExtractor = None
    logger.warning("EPUB support unavailable: install 'EbookLib' and 'beautifulsoup4'")

try:
    from .pdf_extractor import PdfDocumentParser, PdfExtractor
except ImportError:
    PdfDocumentParser = None
    PdfExtractor = None
    logger.warning("PDF support unavailable: install 'pymupdf'")

try:
    from .markdown_extractor import MarkdownDocumentParser, MarkdownExtractor
except ImportError:
    MarkdownDocumentParser = None
    MarkdownExtractor = None
    logger.warning("Markdown support unavailable: install 'Markdown' and 'charset-normalizer'")


def build_default_parsers() -> dict[str, DocumentParser]:
    """Return the default format parser map."""
    parsers: dict[str, DocumentParser] = {}
    if EpubDocumentParser is not None:
        parsers["epub"] = EpubDocumentParser()
    if PdfDocumentParser is not None:
        parsers["pdf"] = PdfDocumentParser()
    if MarkdownDocumentParser is not None:
        parsers["markdown"] = MarkdownDocumentParser()
    return parsers


def build_default_processor() -> DocumentProcessor:
    processor = DocumentProcessor()
    for name, parser in build_default_parsers().items():
        processor.register_parser(name, parser)
    return processor


__all__ = [
    "ChapterExtractor",
    "ContentUnit",
    "DetectedTable",
    "DocumentParser",
    "DocumentProcessor",
    "EpubDocumentParser",
    "EpubExtractor",
    "MarkdownDocumentParser",
    "MarkdownExtractor",
    "PdfDocumentParser",
    "PdfExtractor",
    "build_default_parsers",
    "build_default_processor",
    "detect_tables",
    "extract_chapters",
]
