"""Runtime options for document parsing, validation and compatibility checks."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from typing import Any, Mapping

DEFAULT_SAMPLE_SIZE_STRUCTURE = 5
DEFAULT_SAMPLE_SIZE_CONTENT = 3
DEFAULT_READING_SPEED_WPM = 200
DEFAULT_CHAPTER_HEADER_LEVELS = (2,)
VALIDATION_LEVELS = ("basic", "standard", "strict")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    value = int(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_bool(*, name: str, raw_value: str) -> bool:
    lowered = raw_value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw_value!r}")


def _parse_header_levels(raw_value: str) -> tuple[int, ...]:
    levels: list[int] = []
    for part in raw_value.split(","):
        part = part.strip()
        if not part:
            continue
        level = _parse_positive_int(name="DOCSTRUCT_CHAPTER_HEADER_LEVELS", raw_value=part)
        if level > 6:
            raise ValueError("DOCSTRUCT_CHAPTER_HEADER_LEVELS entries must be between 1 and 6")
        levels.append(level)
    if not levels:
        raise ValueError("DOCSTRUCT_CHAPTER_HEADER_LEVELS cannot be empty")
    return tuple(sorted(set(levels)))


@dataclass(frozen=True, slots=True)
class ParseOptions:
    """Validated options shared by every format parser."""

    preserve_html: bool = False
    extract_media: bool = False
    strict_mode: bool = False
    sample_size_structure: int = DEFAULT_SAMPLE_SIZE_STRUCTURE
    sample_size_content: int = DEFAULT_SAMPLE_SIZE_CONTENT
    reading_speed_wpm: int = DEFAULT_READING_SPEED_WPM
    chapter_header_levels: tuple[int, ...] = field(default=DEFAULT_CHAPTER_HEADER_LEVELS)
    include_code_blocks: bool = False
    include_tables: bool = False
    include_blockquotes: bool = True
    include_lists: bool = True
    validation_level: str = "standard"
    enable_fallbacks: bool = True
    log_compatibility_warnings: bool = True

    def __post_init__(self) -> None:
        if self.sample_size_structure < 1 or self.sample_size_content < 1:
            raise ValueError("sample sizes must be >= 1")
        if self.reading_speed_wpm < 1:
            raise ValueError("reading_speed_wpm must be >= 1")
        if self.validation_level not in VALIDATION_LEVELS:
            raise ValueError(f"validation_level must be one of: {', '.join(VALIDATION_LEVELS)}")

    def with_overrides(self, **overrides: Any) -> "ParseOptions":
        """Copy with every non-None override applied (CLI flags on top of env)."""

        return replace(self, **{key: value for key, value in overrides.items() if value is not None})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ParseOptions":
        source: Mapping[str, str] = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        for name, attribute in (
            ("DOCSTRUCT_PRESERVE_HTML", "preserve_html"),
            ("DOCSTRUCT_EXTRACT_MEDIA", "extract_media"),
            ("DOCSTRUCT_STRICT_MODE", "strict_mode"),
            ("DOCSTRUCT_INCLUDE_CODE_BLOCKS", "include_code_blocks"),
            ("DOCSTRUCT_INCLUDE_TABLES", "include_tables"),
            ("DOCSTRUCT_INCLUDE_BLOCKQUOTES", "include_blockquotes"),
            ("DOCSTRUCT_INCLUDE_LISTS", "include_lists"),
        ):
            raw = source.get(name, "").strip()
            if raw:
                values[attribute] = _parse_bool(name=name, raw_value=raw)

        for name, attribute in (
            ("DOCSTRUCT_SAMPLE_SIZE_STRUCTURE", "sample_size_structure"),
            ("DOCSTRUCT_SAMPLE_SIZE_CONTENT", "sample_size_content"),
            ("DOCSTRUCT_READING_SPEED_WPM", "reading_speed_wpm"),
        ):
            raw = source.get(name, "").strip()
            if raw:
                values[attribute] = _parse_positive_int(name=name, raw_value=raw)

        levels_raw = source.get("DOCSTRUCT_CHAPTER_HEADER_LEVELS", "").strip()
        if levels_raw:
            values["chapter_header_levels"] = _parse_header_levels(levels_raw)

        level_raw = source.get("DOCSTRUCT_VALIDATION_LEVEL", "").strip().lower()
        if level_raw:
            if level_raw not in VALIDATION_LEVELS:
                raise ValueError(f"DOCSTRUCT_VALIDATION_LEVEL must be one of: {', '.join(VALIDATION_LEVELS)}")
            values["validation_level"] = level_raw

        return cls(**values)
