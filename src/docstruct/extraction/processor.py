"""Routing entrypoint for format parsers."""

from __future__ import annotations

from pathlib import Path

from docstruct.extraction.base import DocumentParser
from docstruct.structure.config import ParseOptions
from docstruct.structure.errors import DocumentParseError
from docstruct.structure.models import DocumentStructure


class DocumentProcessor:
    """Resolve the right parser for a file and return its document structure."""

    def __init__(self, sniff_bytes: int = 4096) -> None:
        self._sniff_bytes = sniff_bytes
        self._parser_map: dict[str, DocumentParser] = {}

    @property
    def parser_map(self) -> dict[str, DocumentParser]:
        """Registered parsers keyed by parser name."""

        return dict(self._parser_map)

    def register_parser(self, name: str, parser: DocumentParser) -> None:
        """Register a parser implementation by key."""

        if not name:
            raise ValueError("Parser name cannot be empty")
        self._parser_map[name] = parser

    def process(self, path: str | Path, options: ParseOptions | None = None) -> DocumentStructure:
        """Parse a file with the first registered parser that supports it."""

        source = Path(path)
        settings = options or ParseOptions()
        sniffed = self._sniff(source)

        for parser in self._parser_map.values():
            if parser.supports(source, sniffed):
                try:
                    structure = parser.parse(source, settings)
                except DocumentParseError:
                    raise
                except Exception as exc:
                    raise DocumentParseError(source, f"Parser failed: {exc}") from exc

                if not isinstance(structure, DocumentStructure):
                    raise DocumentParseError(source, "Parser returned non-canonical output")
                return structure

        raise DocumentParseError(source, "No parser registered for file content")

    def _sniff(self, path: Path) -> bytes:
        try:
            with path.open("rb") as handle:
                return handle.read(self._sniff_bytes)
        except OSError as exc:
            raise DocumentParseError(path, f"Failed to read source file: {exc}") from exc
