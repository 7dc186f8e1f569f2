from __future__ import annotations

import pytest

from docstruct.epub.reader import ManifestItem, MetadataEntry, SpineItem, TocEntry
from docstruct.epub.validation import ValidationLevel, declared_version, parse_error_result, validate_epub
from docstruct.structure.errors import DocumentParseError, UnitReadError
from docstruct.structure.models import Severity


class _PackageReader:
    def __init__(
        self,
        *,
        metadata: list[MetadataEntry] | None = None,
        spine: list[SpineItem] | None = None,
        manifest: dict[str, ManifestItem] | None = None,
        contents: dict[str, str] | None = None,
    ) -> None:
        self._metadata = metadata if metadata is not None else _metadata()
        self._spine = spine if spine is not None else [SpineItem(id="c1", href="text/c1.xhtml", media_type="application/xhtml+xml")]
        self._manifest = manifest if manifest is not None else _manifest()
        self._contents = contents if contents is not None else {"c1": "<p>Hello.</p>"}

    def get_metadata(self) -> list[MetadataEntry]:
        return self._metadata

    def get_spine_items(self) -> list[SpineItem]:
        return self._spine

    def get_manifest(self) -> dict[str, ManifestItem]:
        return self._manifest

    def read_content(self, unit_id: str, mode: str = "text") -> str:
        if unit_id not in self._contents:
            raise UnitReadError(unit_id, "Spine item not found in manifest")
        return self._contents[unit_id]

    def get_toc(self) -> list[TocEntry]:
        return []


class _BrokenReader(_PackageReader):
    def get_manifest(self) -> dict[str, ManifestItem]:
        raise RuntimeError("manifest exploded")


def _metadata(**overrides: str | None) -> list[MetadataEntry]:
    values = {
        "title": "Sample",
        "identifier": "urn:uuid:1",
        "language": "en",
        "creator": "Jane Doe",
        "date": "2024-01-01",
        "version": "3.0",
    }
    values.update(overrides)
    return [MetadataEntry(type=key, value=value) for key, value in values.items() if value is not None]


def _manifest(**extra: ManifestItem) -> dict[str, ManifestItem]:
    manifest = {
        "c1": ManifestItem(id="c1", href="text/c1.xhtml", media_type="application/xhtml+xml"),
        "nav": ManifestItem(id="nav", href="nav.xhtml", media_type="application/xhtml+xml", properties=["nav"]),
    }
    manifest.update(extra)
    return manifest


def _codes(items: list) -> list[str]:
    return [item.code for item in items]


def test_complete_package_is_valid_at_every_level() -> None:
    for level in ValidationLevel:
        result = validate_epub(_PackageReader(), level, file_size=1234)

        assert result.is_valid, level
        assert result.errors == []
        assert result.metadata["file_size"] == 1234
        assert result.metadata["spine_item_count"] == 1
        assert result.metadata["manifest_item_count"] == 2
        assert result.metadata["has_navigation"] is True
        assert result.metadata["epub_version"] == "3.0"
        assert result.metadata["title"] == "Sample"
        assert result.metadata["language"] == "en"


def test_missing_identifier_invalidates_basic_level() -> None:
    result = validate_epub(_PackageReader(metadata=_metadata(identifier=None)), "basic")

    assert not result.is_valid
    assert _codes(result.errors) == ["MISSING_IDENTIFIER"]
    assert result.errors[0].severity is Severity.ERROR


def test_missing_title_is_critical() -> None:
    result = validate_epub(_PackageReader(metadata=_metadata(title=None)), ValidationLevel.BASIC)

    assert not result.is_valid
    assert result.errors[0].code == "MISSING_TITLE"
    assert result.errors[0].severity is Severity.CRITICAL
    assert "title" not in result.metadata


def test_empty_package_reports_missing_components() -> None:
    result = validate_epub(_PackageReader(metadata=[], spine=[], manifest={}), "basic")

    assert _codes(result.errors) == ["MISSING_METADATA", "MISSING_SPINE", "MISSING_MANIFEST"]
    assert all(issue.severity is Severity.CRITICAL for issue in result.errors)


@pytest.mark.parametrize("language", ["english", "EN", "en_us"])
def test_invalid_language_codes(language: str) -> None:
    result = validate_epub(_PackageReader(metadata=_metadata(language=language)), "basic")

    assert "INVALID_LANGUAGE_CODE" in _codes(result.errors)
    assert not result.is_valid


def test_standard_warnings_do_not_invalidate() -> None:
    reader = _PackageReader(
        metadata=_metadata(creator=None, date="01/02/2024"),
        spine=[
            SpineItem(id="c1", href="text/c1.xhtml", media_type="application/xhtml+xml"),
            SpineItem(id="2bad id", href="images/plate.png", media_type="image/png"),
        ],
    )

    result = validate_epub(reader, "standard")

    assert result.is_valid
    assert _codes(result.errors) == ["INVALID_DATE_FORMAT"]
    assert result.errors[0].severity is Severity.WARNING
    assert {"MISSING_AUTHOR", "INVALID_SPINE_ITEM_ID", "UNEXPECTED_SPINE_ITEM_TYPE"} <= set(_codes(result.warnings))


def test_standard_requires_content_documents() -> None:
    manifest = {"img": ManifestItem(id="img", href="images/a.png", media_type="image/png")}

    result = validate_epub(_PackageReader(manifest=manifest), "standard")

    assert "NO_CONTENT_DOCUMENTS" in _codes(result.errors)
    assert "MISSING_NAVIGATION" in _codes(result.warnings)
    assert not result.is_valid


def test_spine_limit_is_configurable() -> None:
    spine = [SpineItem(id=f"c{index}", href=f"text/c{index}.xhtml") for index in range(3)]
    contents = {f"c{index}": "<p>x</p>" for index in range(3)}

    result = validate_epub(_PackageReader(spine=spine, contents=contents), "standard", max_spine_items=2)

    assert "TOO_MANY_SPINE_ITEMS" in _codes(result.errors)


@pytest.mark.parametrize("level", ["standard", "strict"])
def test_item_ceilings_apply_at_standard_and_strict(level: str) -> None:
    spine = [SpineItem(id=f"c{index}", href=f"text/c{index}.xhtml") for index in range(3)]
    contents = {f"c{index}": "<p>x</p>" for index in range(3)}
    reader = _PackageReader(spine=spine, contents=contents)

    result = validate_epub(reader, level, max_spine_items=2, max_manifest_items=1)

    assert "TOO_MANY_SPINE_ITEMS" in _codes(result.errors)
    assert "TOO_MANY_MANIFEST_ITEMS" in _codes(result.errors)
    assert not result.is_valid


def test_strict_reports_every_standard_error() -> None:
    spine = [SpineItem(id=f"c{index}", href=f"text/c{index}.xhtml") for index in range(3)]
    contents = {f"c{index}": "<p>x</p>" for index in range(3)}
    reader = _PackageReader(spine=spine, contents=contents)

    standard = validate_epub(reader, "standard", max_spine_items=2)
    strict = validate_epub(reader, "strict", max_spine_items=2)

    assert set(_codes(standard.errors)) <= set(_codes(strict.errors))


def test_strict_level_reads_content_and_flags_security() -> None:
    manifest = _manifest(
        js=ManifestItem(id="js", href="scripts/app.js", media_type="application/javascript"),
        remote=ManifestItem(id="remote", href="https://example.com/font.woff", media_type="font/woff"),
    )
    spine = [
        SpineItem(id="c1", href="text/c1.xhtml", media_type="application/xhtml+xml"),
        SpineItem(id="c2", href="text/c2.xhtml", media_type="application/xhtml+xml"),
        SpineItem(id="c3", href="text/c3.xhtml", media_type="application/xhtml+xml"),
    ]
    reader = _PackageReader(manifest=manifest, spine=spine, contents={"c1": "<p>ok</p>", "c2": "   "})

    result = validate_epub(reader, "strict")

    assert "CONTENT_READ_ERROR" in _codes(result.errors)
    assert not result.is_valid
    warnings = _codes(result.warnings)
    assert "POTENTIALLY_DANGEROUS_FILE" in warnings
    assert "EXTERNAL_RESOURCE" in warnings
    assert "EMPTY_CONTENT_ITEM" in warnings


def test_strict_level_warns_about_unknown_version() -> None:
    result = validate_epub(_PackageReader(metadata=_metadata(version=None)), "strict")

    assert "UNKNOWN_EPUB_VERSION" in _codes(result.warnings)
    assert result.is_valid


def test_declared_version_from_format_entry() -> None:
    assert declared_version([MetadataEntry(type="format", value="EPUB 2.0")]) == 2.0
    assert declared_version([MetadataEntry(type="version", value="3.0")]) == 3.0
    assert declared_version([]) is None


def test_reader_failure_becomes_single_critical_error() -> None:
    result = validate_epub(_BrokenReader(), "standard")

    assert _codes(result.errors) == ["UNKNOWN_ERROR"]
    assert result.errors[0].severity is Severity.CRITICAL
    assert "manifest exploded" in result.errors[0].message
    assert not result.is_valid


def test_parse_error_result_is_critical() -> None:
    result = parse_error_result(DocumentParseError("book.epub", "Failed to open EPUB container: bad zip"))

    assert not result.is_valid
    assert _codes(result.errors) == ["PARSE_ERROR"]
    assert result.errors[0].message == "Failed to open EPUB container: bad zip"
    assert result.metadata["spine_item_count"] == 0


def test_unknown_level_is_rejected() -> None:
    with pytest.raises(ValueError):
        validate_epub(_PackageReader(), "paranoid")
