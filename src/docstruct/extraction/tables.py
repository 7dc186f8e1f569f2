"""Heuristic detection of delimited and space-aligned tables in page text."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Callable, Sequence

MIN_ROW_COUNT = 2
MIN_COLUMN_COUNT = 2
MAX_TABLES_PER_PAGE = 10
CONFIDENCE_THRESHOLD = 0.6
MAX_CELL_LENGTH = 40
MAX_CELL_WORDS = 4

BASE_SCORE = 0.5
LOW_VARIANCE_THRESHOLD = 0.5
HIGH_VARIANCE_THRESHOLD = 2
LOW_VARIANCE_BONUS = 0.2
HIGH_VARIANCE_PENALTY = -0.2
HEADER_LENGTH_RATIO = 0.7

FORMAT_BONUSES = {
    "delimited": 0.3,
    "aligned": 0.2,
    "box": 0.4,
    "spanner": 0.15,
}

COMMON_HEADER_WORDS = (
    "product",
    "name",
    "title",
    "price",
    "cost",
    "date",
    "id",
    "status",
    "category",
    "type",
    "description",
    "quantity",
    "amount",
    "value",
    "address",
    "city",
    "country",
    "email",
    "phone",
    "number",
    "code",
)

_DELIMITER_RE = re.compile(r"[\t,;|]")
_SPACING_RE = re.compile(r"\s{2,}")
_DIGIT_RE = re.compile(r"\d")
_TERMINAL_PUNCTUATION_RE = re.compile(r"""[.!?]['")\]]*$""")


@dataclass(slots=True)
class DetectedTable:
    """A table candidate found on one page; rows are padded to ``column_count``."""

    id: str
    page_number: int
    row_count: int
    column_count: int
    confidence: float
    format_type: str
    rows: list[list[str]] = field(default_factory=list)
    has_header_row: bool = False
    start_line: int = 0
    end_line: int = 0

    def to_text(self) -> str:
        """Flatten rows to ``cell, cell; cell, cell`` for a table paragraph."""

        return "; ".join(", ".join(cell for cell in row if cell) for row in self.rows)


def split_by_delimiter(line: str, delimiter: str) -> list[str]:
    cells = [cell.strip() for cell in line.split(delimiter)]
    if delimiter == "|":
        return [cell for cell in cells if cell]
    return cells


def split_aligned(line: str) -> list[str]:
    return [cell.strip() for cell in _SPACING_RE.split(line.strip())]


def _average_length(row: Sequence[str]) -> float:
    return sum(len(cell) for cell in row) / len(row)


def detect_header_row(first_row: Sequence[str], second_row: Sequence[str]) -> bool:
    if not first_row or not second_row:
        return False

    first_has_digits = any(_DIGIT_RE.search(cell) for cell in first_row)
    second_has_digits = any(_DIGIT_RE.search(cell) for cell in second_row)
    has_header_words = any(
        word in cell.strip().lower() for cell in first_row for word in COMMON_HEADER_WORDS
    )
    return (
        (not first_has_digits and second_has_digits)
        or has_header_words
        or _average_length(first_row) < _average_length(second_row) * HEADER_LENGTH_RATIO
    )


def table_confidence(rows: Sequence[Sequence[str]], format_type: str) -> float:
    confidence = BASE_SCORE + FORMAT_BONUSES[format_type]
    counts = [len(row) for row in rows]
    average = sum(counts) / len(counts)
    variance = sum((count - average) ** 2 for count in counts) / len(counts)
    if variance < LOW_VARIANCE_THRESHOLD:
        confidence += LOW_VARIANCE_BONUS
    elif variance > HIGH_VARIANCE_THRESHOLD:
        confidence += HIGH_VARIANCE_PENALTY
    return max(0.0, min(1.0, confidence))


def build_table(
    rows: list[list[str]],
    *,
    page_number: int,
    table_number: int,
    format_type: str,
    start_line: int,
) -> DetectedTable:
    column_count = max(len(row) for row in rows)
    padded = [row + [""] * (column_count - len(row)) for row in rows]
    return DetectedTable(
        id=f"table-{page_number}-{table_number}",
        page_number=page_number,
        row_count=len(rows),
        column_count=column_count,
        confidence=table_confidence(rows, format_type),
        format_type=format_type,
        rows=padded,
        has_header_row=len(rows) > 1 and detect_header_row(rows[0], rows[1]),
        start_line=start_line,
        end_line=start_line + len(rows),
    )


def is_prose_cell(cell: str) -> bool:
    """True when a cell reads like running text rather than a table value."""

    return (
        len(cell) > MAX_CELL_LENGTH
        or len(cell.split()) > MAX_CELL_WORDS
        or _TERMINAL_PUNCTUATION_RE.search(cell) is not None
    )


def _delimited_cells(line: str, delimiter: str | None = None) -> list[str] | None:
    match = _DELIMITER_RE.search(line)
    if match is None:
        return None
    if delimiter is not None and match.group(0) != delimiter:
        return None
    cells = split_by_delimiter(line, match.group(0))
    if any(is_prose_cell(cell) for cell in cells):
        return None
    return cells


def _aligned_cells(line: str, delimiter: str | None = None) -> list[str] | None:
    if not _SPACING_RE.search(line.strip()):
        return None
    cells = split_aligned(line)
    if any(is_prose_cell(cell) for cell in cells):
        return None
    return cells


def _row_delimiter(line: str) -> str | None:
    match = _DELIMITER_RE.search(line)
    return match.group(0) if match else None


RowSplitter = Callable[[str, str | None], list[str] | None]


def _collect_rows(
    lines: Sequence[str],
    start: int,
    splitter: RowSplitter,
    delimiter: str | None,
    column_tolerance: int,
) -> list[list[str]]:
    first = splitter(lines[start], delimiter)
    if first is None:
        return []
    rows = [first]
    for line in lines[start + 1 :]:
        cells = splitter(line, delimiter) if line else None
        if cells is None or abs(len(cells) - len(first)) > column_tolerance:
            break
        rows.append(cells)
    return rows


def detect_tables(lines: Sequence[str], page_number: int) -> list[DetectedTable]:
    """Find table runs in the trimmed ``lines`` of one page; blank lines end a run.

    Delimited runs are searched first, then space-aligned runs among the
    remaining lines. Lines already claimed by a table are never reused.
    """

    tables: list[DetectedTable] = []
    claimed: set[int] = set()

    # delimited rows must agree on cell count; aligned rows may drift by one
    passes: tuple[tuple[str, RowSplitter, int], ...] = (
        ("delimited", _delimited_cells, 0),
        ("aligned", _aligned_cells, 1),
    )
    for format_type, splitter, column_tolerance in passes:
        index = 0
        while index < len(lines) and len(tables) < MAX_TABLES_PER_PAGE:
            if index in claimed:
                index += 1
                continue
            delimiter = _row_delimiter(lines[index]) if format_type == "delimited" else None
            rows = _collect_rows(lines, index, splitter, delimiter, column_tolerance)
            rows = rows[: next((offset for offset in range(len(rows)) if index + offset in claimed), len(rows))]
            if len(rows) >= MIN_ROW_COUNT and len(rows[0]) >= MIN_COLUMN_COUNT:
                table = build_table(
                    rows,
                    page_number=page_number,
                    table_number=len(tables),
                    format_type=format_type,
                    start_line=index,
                )
                if table.confidence >= CONFIDENCE_THRESHOLD:
                    tables.append(table)
                    claimed.update(range(table.start_line, table.end_line))
                    index = table.end_line
                    continue
            index += 1

    return sorted(tables, key=lambda table: table.start_line)
