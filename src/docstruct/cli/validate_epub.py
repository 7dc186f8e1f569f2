"""CLI command for layered EPUB structure validation."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from docstruct.epub.reader import EbookLibReader
from docstruct.epub.validation import (
    MAX_MANIFEST_ITEMS,
    MAX_SPINE_ITEMS,
    ValidationLevel,
    parse_error_result,
    validate_epub,
)
from docstruct.structure.config import ParseOptions
from docstruct.structure.errors import DocumentParseError


load_dotenv()


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate EPUB structure and metadata")
    parser.add_argument("--path", required=True, help="EPUB file to validate")
    parser.add_argument(
        "--level",
        choices=[level.value for level in ValidationLevel],
        default=None,
        help="Validation depth (defaults to DOCSTRUCT_VALIDATION_LEVEL or standard)",
    )
    parser.add_argument("--max-spine-items", type=int, default=MAX_SPINE_ITEMS, help="Spine item ceiling")
    parser.add_argument("--max-manifest-items", type=int, default=MAX_MANIFEST_ITEMS, help="Manifest item ceiling")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parse_args(argv)
    source_path = Path(args.path)
    level = args.level or ParseOptions.from_env().validation_level

    try:
        reader = EbookLibReader.open(source_path)
    except DocumentParseError as exc:
        result = parse_error_result(exc)
    else:
        result = validate_epub(
            reader,
            level,
            file_size=reader.file_size,
            max_spine_items=args.max_spine_items,
            max_manifest_items=args.max_manifest_items,
        )

    payload = {"path": str(source_path), "level": level, **result.to_dict()}
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0 if result.is_valid else 1


if __name__ == "__main__":
    raise SystemExit(main())
