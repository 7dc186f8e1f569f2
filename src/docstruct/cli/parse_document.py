"""CLI command that parses one document and prints its structure as JSON."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from docstruct.extraction import build_default_processor
from docstruct.structure.config import ParseOptions
from docstruct.structure.errors import DocumentParseError
from docstruct.structure.models import DocumentStructure


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _summary(structure: DocumentStructure) -> dict[str, Any]:
    return {
        "title": structure.metadata.title,
        "author": structure.metadata.author,
        "format": structure.metadata.format,
        "total_chapters": structure.total_chapters,
        "total_paragraphs": structure.total_paragraphs,
        "total_sentences": structure.total_sentences,
        "total_word_count": structure.total_word_count,
        "estimated_total_duration": structure.estimated_total_duration,
        "confidence": structure.confidence,
        "complexity": structure.statistics.complexity,
        "processing_errors": list(structure.processing_metrics.processing_errors),
        "chapters": [
            {
                "id": chapter.id,
                "title": chapter.title,
                "depth": chapter.depth,
                "word_count": chapter.word_count,
                "confidence": chapter.confidence,
            }
            for chapter in structure.chapters
        ],
    }


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract chapter/paragraph/sentence structure from a document")
    parser.add_argument("--path", required=True, help="EPUB, PDF or Markdown file")
    parser.add_argument("--strict", action="store_true", default=None, help="Enable strict compatibility mode")
    parser.add_argument("--preserve-html", action="store_true", default=None, help="Keep unit markup for paragraph matching")
    parser.add_argument("--extract-media", action="store_true", default=None, help="Categorize embedded assets")
    parser.add_argument("--wpm", type=int, default=None, help="Reading speed in words per minute")
    parser.add_argument("--summary", action="store_true", help="Print chapter summary instead of the full structure")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parse_args(argv)
    source_path = Path(args.path)

    try:
        options = ParseOptions.from_env().with_overrides(
            strict_mode=args.strict,
            preserve_html=args.preserve_html,
            extract_media=args.extract_media,
            reading_speed_wpm=args.wpm,
        )
    except ValueError as exc:
        LOGGER.error("Invalid parse options: %s", exc)
        print(json.dumps({"path": str(source_path), "errors": [str(exc)]}, ensure_ascii=True, indent=2))
        return 2

    try:
        structure = build_default_processor().process(source_path, options)
    except DocumentParseError as exc:
        print(json.dumps({"path": str(source_path), "errors": [str(exc)]}, ensure_ascii=True, indent=2))
        return 1

    payload = _summary(structure) if args.summary else structure.to_dict()
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
