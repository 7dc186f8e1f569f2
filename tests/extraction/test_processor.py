from __future__ import annotations

from pathlib import Path

import pytest

from docstruct.extraction import build_default_parsers, build_default_processor
from docstruct.extraction.processor import DocumentProcessor
from docstruct.structure.config import ParseOptions
from docstruct.structure.errors import DocumentParseError
from docstruct.structure.models import DocumentStructure


class _ExplodingParser:
    def supports(self, path: Path, sniffed_bytes: bytes | None = None) -> bool:
        return path.suffix == ".boom"

    def parse(self, path: Path, options: ParseOptions) -> DocumentStructure:
        raise KeyError("missing field")


class _WrongOutputParser:
    def supports(self, path: Path, sniffed_bytes: bytes | None = None) -> bool:
        return True

    def parse(self, path: Path, options: ParseOptions) -> DocumentStructure:
        return {"chapters": []}  # type: ignore[return-value]


def test_default_processor_registers_all_formats() -> None:
    assert set(build_default_parsers()) == {"epub", "pdf", "markdown"}
    assert set(build_default_processor().parser_map) == {"epub", "pdf", "markdown"}


def test_markdown_file_is_routed_to_markdown_parser(tmp_path: Path) -> None:
    sample = tmp_path / "guide.md"
    sample.write_text("# Guide\n\n## Setup\n\nInstall the package first.\n", encoding="utf-8")

    structure = build_default_processor().process(sample)

    assert structure.metadata.format == "markdown"
    assert structure.metadata.title == "Guide"
    assert [chapter.title for chapter in structure.chapters] == ["Setup"]


def test_unknown_content_raises_parse_error(tmp_path: Path) -> None:
    sample = tmp_path / "notes.bin"
    sample.write_bytes(b"\x00\x01\x02 unknown payload")

    with pytest.raises(DocumentParseError, match="No parser registered"):
        build_default_processor().process(sample)


def test_missing_file_raises_parse_error(tmp_path: Path) -> None:
    with pytest.raises(DocumentParseError, match="Failed to read source file"):
        build_default_processor().process(tmp_path / "absent.md")


def test_unexpected_parser_failure_is_wrapped(tmp_path: Path) -> None:
    sample = tmp_path / "data.boom"
    sample.write_text("payload", encoding="utf-8")
    processor = DocumentProcessor()
    processor.register_parser("boom", _ExplodingParser())

    with pytest.raises(DocumentParseError, match="Parser failed") as excinfo:
        processor.process(sample)

    assert isinstance(excinfo.value.__cause__, KeyError)


def test_non_canonical_output_is_rejected(tmp_path: Path) -> None:
    sample = tmp_path / "data.txt"
    sample.write_text("payload", encoding="utf-8")
    processor = DocumentProcessor()
    processor.register_parser("wrong", _WrongOutputParser())

    with pytest.raises(DocumentParseError, match="non-canonical"):
        processor.process(sample)


def test_register_parser_requires_a_name() -> None:
    with pytest.raises(ValueError, match="cannot be empty"):
        DocumentProcessor().register_parser("", _ExplodingParser())
