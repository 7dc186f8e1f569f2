"""Domain errors raised at document and asset boundaries."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class DocumentParseError(Exception):
    """The container itself could not be opened or routed to a parser."""

    path: Path | str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (path={self.path})"


@dataclass(slots=True)
class UnitReadError(Exception):
    """One content unit could not be read from its container."""

    unit_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (unit={self.unit_id})"


@dataclass(slots=True)
class AssetError(Exception):
    """A manifest item is missing a field needed for categorization."""

    item_id: str | None
    message: str

    def __str__(self) -> str:
        return f"{self.message} (item={self.item_id})"
