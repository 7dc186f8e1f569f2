"""Layered structural validation for EPUB containers.

``BASIC`` checks that the package carries metadata, a spine and a manifest
plus the mandatory title, identifier and language. ``STANDARD`` adds limits
and naming checks on every component. ``STRICT`` adds security and content
integrity checks that need to read sampled content units.

Findings are reported, never raised: the only exception path turns into a
single critical entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
import logging
import re
from typing import Any

from docstruct.epub.reader import ContentReader, ManifestItem, MetadataEntry, SpineItem, metadata_mapping
from docstruct.structure.errors import DocumentParseError
from docstruct.structure.models import Severity, ValidationIssue, ValidationResult, ValidationWarning

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 1
MAX_TITLE_LENGTH = 500
MIN_LANGUAGE_LENGTH = 2
MAX_LANGUAGE_LENGTH = 10
MAX_AUTHOR_NAME_LENGTH = 200
MAX_SPINE_ITEMS = 1000
MAX_MANIFEST_ITEMS = 5000
MAX_TOTAL_ITEMS = 2000
LARGE_CONTENT_THRESHOLD = 1_000_000
CONTENT_SAMPLE_SIZE = 5
MIN_EPUB_VERSION = 2.0

INTEGRITY_FIX = "Check EPUB file format and integrity"

DANGEROUS_MEDIA_TYPES = frozenset(
    {
        "application/javascript",
        "application/x-javascript",
        "text/javascript",
        "application/x-executable",
        "application/x-msdownload",
    }
)

_LANGUAGE_RE = re.compile(r"^[a-z]{2}(-[A-Z]{2})?$")
_ITEM_ID_RE = re.compile(r"^[A-Za-z_][\w.\-]*$")
_FORMAT_VERSION_RE = re.compile(r"epub\s*(\d+\.\d+)", re.IGNORECASE)
_VERSION_NUMBER_RE = re.compile(r"^(\d+\.\d+)")
_XHTML_SUFFIXES = (".xhtml", ".html", ".htm")


class ValidationLevel(str, Enum):
    BASIC = "basic"
    STANDARD = "standard"
    STRICT = "strict"


@dataclass(slots=True)
class _Package:
    metadata: list[MetadataEntry]
    spine: list[SpineItem]
    manifest: dict[str, ManifestItem]


def _error(code: str, message: str, fix: str, severity: Severity = Severity.ERROR, location: str | None = None) -> ValidationIssue:
    return ValidationIssue(code=code, message=message, severity=severity, fix=fix, location=location)


def _warning(code: str, message: str, suggestion: str, location: str | None = None) -> ValidationWarning:
    return ValidationWarning(code=code, message=message, suggestion=suggestion, location=location)


def _first_value(entries: list[MetadataEntry], key: str) -> str | None:
    values = metadata_mapping(entries).get(key, [])
    return values[0] if values else None


def _validate_title(entries: list[MetadataEntry], result: ValidationResult) -> None:
    title = _first_value(entries, "title")
    if title is None:
        result.errors.append(
            _error(
                "MISSING_TITLE",
                "EPUB metadata is missing title",
                "Add a title element to the EPUB metadata",
                Severity.CRITICAL,
            )
        )
        return

    result.metadata["title"] = title
    if not MIN_TITLE_LENGTH <= len(title) <= MAX_TITLE_LENGTH:
        result.errors.append(
            _error(
                "INVALID_TITLE_LENGTH",
                f"Title length must be between {MIN_TITLE_LENGTH} and {MAX_TITLE_LENGTH} characters",
                "Update title to meet length requirements",
            )
        )


def _validate_identifier(entries: list[MetadataEntry], result: ValidationResult) -> None:
    if _first_value(entries, "identifier") is None:
        result.errors.append(
            _error(
                "MISSING_IDENTIFIER",
                "EPUB metadata is missing identifier",
                "Add a unique identifier to the EPUB metadata",
            )
        )


def _validate_language(entries: list[MetadataEntry], result: ValidationResult) -> None:
    language = _first_value(entries, "language")
    if language is None:
        result.errors.append(
            _error(
                "MISSING_LANGUAGE",
                "EPUB metadata is missing language",
                "Add a language element to the EPUB metadata",
            )
        )
        return

    if not _LANGUAGE_RE.match(language):
        result.errors.append(
            _error(
                "INVALID_LANGUAGE_CODE",
                f"EPUB metadata contains invalid language code: {language}",
                'Update language code to follow ISO 639-1 format (e.g., "en", "en-US")',
            )
        )
        return
    result.metadata["language"] = language


def validate_basic(package: _Package, result: ValidationResult) -> None:
    if not package.metadata:
        result.errors.append(
            _error(
                "MISSING_METADATA",
                "EPUB file is missing required metadata",
                "Ensure EPUB contains proper metadata with title and identifier",
                Severity.CRITICAL,
            )
        )
    else:
        _validate_title(package.metadata, result)
        _validate_identifier(package.metadata, result)
        _validate_language(package.metadata, result)

    if not package.spine:
        result.errors.append(
            _error(
                "MISSING_SPINE",
                "EPUB file is missing spine (reading order)",
                "Ensure EPUB contains a proper reading order",
                Severity.CRITICAL,
            )
        )
    if not package.manifest:
        result.errors.append(
            _error(
                "MISSING_MANIFEST",
                "EPUB file is missing manifest",
                "Ensure EPUB contains a proper file manifest",
                Severity.CRITICAL,
            )
        )


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value[:10])
    except ValueError:
        return False
    return len(value) == 10 or value[10] == "T"


def _validate_standard_metadata(entries: list[MetadataEntry], result: ValidationResult) -> None:
    mapping = metadata_mapping(entries)

    language = (mapping.get("language") or [None])[0]
    if language is not None and not MIN_LANGUAGE_LENGTH <= len(language) <= MAX_LANGUAGE_LENGTH:
        result.errors.append(
            _error(
                "INVALID_LANGUAGE_LENGTH",
                f"Invalid language code length: {len(language)} "
                f"(must be {MIN_LANGUAGE_LENGTH}-{MAX_LANGUAGE_LENGTH})",
                "Use standard language code (e.g., 'en', 'pt-BR')",
            )
        )

    authors = mapping.get("creator", [])
    if not authors:
        result.warnings.append(
            _warning("MISSING_AUTHOR", "Author information not found", "Add dc:creator element to OPF file")
        )
    for index, author in enumerate(authors, start=1):
        if len(author) > MAX_AUTHOR_NAME_LENGTH:
            result.errors.append(
                _error(
                    "AUTHOR_NAME_TOO_LONG",
                    f"Author name {index} is too long ({len(author)} > {MAX_AUTHOR_NAME_LENGTH})",
                    f"Shorten author name to {MAX_AUTHOR_NAME_LENGTH} characters or less",
                    Severity.WARNING,
                )
            )

    dates = mapping.get("date", [])
    if not dates:
        result.warnings.append(
            _warning("MISSING_DATE", "Publication date not found", "Add dc:date element to OPF file")
        )
    elif not _is_iso_date(dates[0]):
        result.errors.append(
            _error(
                "INVALID_DATE_FORMAT",
                f"Invalid date format: {dates[0]}",
                "Use ISO 8601 date format (e.g., 2023-12-01)",
                Severity.WARNING,
            )
        )


def _looks_like_xhtml(spine_item: SpineItem) -> bool:
    if spine_item.media_type and "html" in spine_item.media_type.lower():
        return True
    return (spine_item.href or "").lower().endswith(_XHTML_SUFFIXES)


def _validate_standard_spine(spine: list[SpineItem], max_spine_items: int, result: ValidationResult) -> None:
    if len(spine) > max_spine_items:
        result.errors.append(
            _error(
                "TOO_MANY_SPINE_ITEMS",
                f"Spine has too many items ({len(spine)} > {max_spine_items})",
                f"Reduce spine item count to {max_spine_items} or less",
            )
        )

    for index, spine_item in enumerate(spine):
        location = f"spine[{index}]"
        if not spine_item.id:
            result.errors.append(
                _error(
                    "MISSING_SPINE_ITEM_ID",
                    f"Spine item {index} is missing ID attribute",
                    "Add idref attribute to itemref element",
                    Severity.WARNING,
                    location,
                )
            )
        elif not _ITEM_ID_RE.match(spine_item.id):
            result.warnings.append(
                _warning(
                    "INVALID_SPINE_ITEM_ID",
                    f'Spine item {index} ID "{spine_item.id}" doesn\'t follow convention',
                    "Use IDs that start with a letter and contain no spaces",
                    location,
                )
            )

        if not spine_item.href:
            result.errors.append(
                _error(
                    "MISSING_SPINE_ITEM_HREF",
                    f"Spine item {index} is missing href in manifest",
                    "Ensure item references valid manifest entry",
                    Severity.WARNING,
                    location,
                )
            )
        elif not _looks_like_xhtml(spine_item):
            result.warnings.append(
                _warning(
                    "UNEXPECTED_SPINE_ITEM_TYPE",
                    f'Spine item {index} href "{spine_item.href}" may not be XHTML',
                    "Use XHTML files for content documents",
                    location,
                )
            )


def _validate_standard_manifest(manifest: dict[str, ManifestItem], max_manifest_items: int, result: ValidationResult) -> None:
    if len(manifest) > max_manifest_items:
        result.errors.append(
            _error(
                "TOO_MANY_MANIFEST_ITEMS",
                f"Manifest has too many items ({len(manifest)} > {max_manifest_items})",
                f"Reduce manifest item count to {max_manifest_items} or less",
            )
        )

    for item_id, item in manifest.items():
        location = f"manifest[{item_id}]"
        if not item.href:
            result.errors.append(
                _error(
                    "MISSING_MANIFEST_ITEM_HREF",
                    f'Manifest item "{item_id}" is missing href attribute',
                    "Add href attribute to item element",
                    Severity.WARNING,
                    location,
                )
            )
        elif " " in item.href or "\\" in item.href:
            result.warnings.append(
                _warning(
                    "INVALID_MANIFEST_ITEM_HREF",
                    f'Manifest item "{item_id}" href "{item.href}" doesn\'t follow convention',
                    "Use forward slashes and avoid spaces in hrefs",
                    location,
                )
            )

        if not item.media_type:
            result.errors.append(
                _error(
                    "MISSING_MANIFEST_ITEM_MEDIA_TYPE",
                    f'Manifest item "{item_id}" is missing media-type attribute',
                    "Add media-type attribute to item element",
                    Severity.WARNING,
                    location,
                )
            )


def _validate_content_structure(package: _Package, result: ValidationResult) -> None:
    items = package.manifest.values()
    if not any(item.is_content_document for item in items):
        result.errors.append(
            _error(
                "NO_CONTENT_DOCUMENTS",
                "EPUB contains no XHTML content documents",
                "Add at least one XHTML content document to the manifest",
            )
        )
    if not result.metadata.get("has_navigation"):
        result.warnings.append(
            _warning(
                "MISSING_NAVIGATION",
                "EPUB has neither an NCX nor a navigation document",
                "Add a toc.ncx or an EPUB 3 navigation document",
            )
        )


def validate_standard(
    package: _Package,
    result: ValidationResult,
    *,
    max_spine_items: int = MAX_SPINE_ITEMS,
    max_manifest_items: int = MAX_MANIFEST_ITEMS,
) -> None:
    validate_basic(package, result)
    _validate_standard_metadata(package.metadata, result)
    _validate_standard_spine(package.spine, max_spine_items, result)
    _validate_standard_manifest(package.manifest, max_manifest_items, result)
    _validate_content_structure(package, result)


def _validate_security(manifest: dict[str, ManifestItem], result: ValidationResult) -> None:
    for item_id, item in manifest.items():
        location = f"manifest[{item_id}]"
        if (item.media_type or "").lower() in DANGEROUS_MEDIA_TYPES:
            result.warnings.append(
                _warning(
                    "POTENTIALLY_DANGEROUS_FILE",
                    f'Manifest item "{item_id}" has potentially dangerous media type "{item.media_type}"',
                    "Review security implications of including executable content",
                    location,
                )
            )
        if (item.href or "").lower().startswith(("http://", "https://")):
            result.warnings.append(
                _warning(
                    "EXTERNAL_RESOURCE",
                    f'Manifest item "{item_id}" references external resource: {item.href}',
                    "External resources may affect offline functionality and security",
                    location,
                )
            )


def _validate_content_integrity(reader: ContentReader, spine: list[SpineItem], result: ValidationResult) -> None:
    for spine_item in spine[:CONTENT_SAMPLE_SIZE]:
        if not spine_item.id:
            continue
        location = f"spine[{spine_item.id}]"
        try:
            content = reader.read_content(spine_item.id, "text")
        except Exception as exc:
            result.errors.append(
                _error(
                    "CONTENT_READ_ERROR",
                    f'Cannot read content from spine item "{spine_item.id}": {exc}',
                    "Check file format and encoding",
                    location=location,
                )
            )
            continue

        if not content.strip():
            result.warnings.append(
                _warning(
                    "EMPTY_CONTENT_ITEM",
                    f'Spine item "{spine_item.id}" appears to be empty',
                    "Ensure all content items contain meaningful content",
                    location,
                )
            )
        elif len(content) > LARGE_CONTENT_THRESHOLD:
            result.warnings.append(
                _warning(
                    "LARGE_CONTENT_ITEM",
                    f'Spine item "{spine_item.id}" is very large ({len(content)} characters)',
                    "Consider splitting large content items",
                    location,
                )
            )


def declared_version(entries: list[MetadataEntry]) -> float | None:
    """Numeric package version from ``version`` or an ``EPUB x.y`` format entry."""

    mapping = metadata_mapping(entries)
    for value in mapping.get("version", []):
        match = _VERSION_NUMBER_RE.match(value.strip())
        if match:
            return float(match.group(1))
    for value in mapping.get("format", []):
        match = _FORMAT_VERSION_RE.search(value)
        if match:
            return float(match.group(1))
    return None


def _validate_version(entries: list[MetadataEntry], result: ValidationResult) -> None:
    version = declared_version(entries)
    if version is None:
        result.warnings.append(
            _warning(
                "UNKNOWN_EPUB_VERSION",
                "Could not determine EPUB version",
                "Specify EPUB version in metadata for better compatibility",
            )
        )
        return
    if version < MIN_EPUB_VERSION:
        result.warnings.append(
            _warning(
                "OUTDATED_EPUB_VERSION",
                f"EPUB version {version} is outdated",
                "Consider upgrading to EPUB 2.0 or later for better compatibility",
            )
        )


def validate_strict(
    package: _Package,
    result: ValidationResult,
    reader: ContentReader,
    *,
    max_spine_items: int = MAX_SPINE_ITEMS,
    max_manifest_items: int = MAX_MANIFEST_ITEMS,
) -> None:
    validate_standard(package, result, max_spine_items=max_spine_items, max_manifest_items=max_manifest_items)
    _validate_security(package.manifest, result)
    _validate_content_integrity(reader, package.spine, result)

    total_items = len(package.spine) + len(package.manifest)
    if total_items > MAX_TOTAL_ITEMS:
        result.warnings.append(
            _warning(
                "LARGE_EPUB_STRUCTURE",
                f"EPUB has {total_items} total items, which may impact performance",
                "Consider optimizing structure for better performance",
            )
        )
    _validate_version(package.metadata, result)


def _initial_metadata(file_size: int) -> dict[str, Any]:
    return {
        "file_size": file_size,
        "spine_item_count": 0,
        "manifest_item_count": 0,
        "has_navigation": False,
        "has_metadata": False,
        "epub_version": None,
    }


def parse_error_result(exc: DocumentParseError, *, metadata: dict[str, Any] | None = None) -> ValidationResult:
    """Report for a container that could not be opened or read."""

    return ValidationResult(
        errors=[_error("PARSE_ERROR", exc.message, INTEGRITY_FIX, Severity.CRITICAL)],
        metadata=metadata if metadata is not None else _initial_metadata(0),
    )


def validate_epub(
    reader: ContentReader,
    level: ValidationLevel | str = ValidationLevel.STANDARD,
    *,
    file_size: int = 0,
    max_spine_items: int = MAX_SPINE_ITEMS,
    max_manifest_items: int = MAX_MANIFEST_ITEMS,
) -> ValidationResult:
    """Validate the container behind ``reader`` at ``level``."""

    validation_level = ValidationLevel(level)
    result = ValidationResult(metadata=_initial_metadata(file_size))
    try:
        package = _Package(
            metadata=reader.get_metadata(),
            spine=reader.get_spine_items(),
            manifest=reader.get_manifest(),
        )
        version = declared_version(package.metadata)
        result.metadata.update(
            spine_item_count=len(package.spine),
            manifest_item_count=len(package.manifest),
            has_metadata=bool(package.metadata),
            has_navigation=any(item.is_navigation_document or item.is_ncx for item in package.manifest.values()),
            epub_version=str(version) if version is not None else None,
        )

        if validation_level is ValidationLevel.BASIC:
            validate_basic(package, result)
        elif validation_level is ValidationLevel.STANDARD:
            validate_standard(package, result, max_spine_items=max_spine_items, max_manifest_items=max_manifest_items)
        else:
            validate_strict(
                package, result, reader, max_spine_items=max_spine_items, max_manifest_items=max_manifest_items
            )
    except DocumentParseError as exc:
        logger.warning("EPUB validation failed to parse container: %s", exc)
        return parse_error_result(exc, metadata=result.metadata)
    except Exception as exc:
        logger.warning("EPUB validation failed: %s", exc)
        return ValidationResult(
            errors=[_error("UNKNOWN_ERROR", str(exc) or "Unknown error occurred", INTEGRITY_FIX, Severity.CRITICAL)],
            metadata=result.metadata,
        )

    logger.info(
        "Validated EPUB at %s level: errors=%s warnings=%s",
        validation_level.value,
        len(result.errors),
        len(result.warnings),
    )
    return result
