"""EPUB version detection, feature support and compatibility fixes."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Callable

from docstruct.epub.reader import ContentReader, SpineItem, metadata_mapping
from docstruct.structure.config import ParseOptions
from docstruct.structure.models import CompatibilityAnalysis, DocumentMetadata, EpubVersion, TocItem
from docstruct.structure.normalization import normalize_whitespace, strip_html_and_clean, strip_tags, title_from_href

logger = logging.getLogger(__name__)

FEATURES = ("html5", "scripting", "audio_video", "fixed_layout", "media_overlays", "javascript", "svg", "css3")

FEATURE_MATRIX: dict[EpubVersion, dict[str, bool]] = {
    EpubVersion.EPUB_2_0: {name: name == "svg" for name in FEATURES},
    EpubVersion.EPUB_3_0: {name: True for name in FEATURES},
    EpubVersion.EPUB_3_1: {name: True for name in FEATURES},
    EpubVersion.EPUB_3_2: {name: True for name in FEATURES},
    EpubVersion.UNKNOWN: {name: False for name in FEATURES},
}

HTML5_INDICATORS = (
    "<audio",
    "<video",
    "<canvas",
    "<svg",
    "epub:type",
    "<section",
    "<article",
    "<nav",
    "<header",
    "<footer",
    "<aside",
    "<figure",
)

GENERIC_EPUB_SUPPORT = "generic_epub_support"
BASIC_CONTENT_PROCESSING = "basic_content_processing"
MEDIA_CONTENT_FILTERING = "media_content_filtering"
SCRIPT_REMOVAL = "script_removal"

_LEGACY_MARKERS = ("identifier", "title", "creator", "language")
_MODERN_MARKERS = ("modified", "source")
_MODERN_LIST_MARKERS = ("relation", "rights")


def parse_version_string(raw: str | None) -> EpubVersion:
    """Map a declared package version onto a known EPUB version."""

    value = (raw or "").strip().lower()
    if value.startswith("2."):
        return EpubVersion.EPUB_2_0
    if value.startswith("3.1"):
        return EpubVersion.EPUB_3_1
    if value.startswith("3.2"):
        return EpubVersion.EPUB_3_2
    if value in ("3", "3.0") or value.startswith("3."):
        return EpubVersion.EPUB_3_0
    return EpubVersion.UNKNOWN


def feature_support(version: EpubVersion) -> dict[str, bool]:
    return dict(FEATURE_MATRIX[version])


def has_html5_indicators(content: str) -> bool:
    lowered = content.lower()
    return any(indicator in lowered for indicator in HTML5_INDICATORS)


@dataclass(slots=True)
class VersionContext:
    """Lazily loaded reader data shared by the version detectors."""

    reader: ContentReader
    sample_size: int
    _metadata: dict[str, list[str]] | None = field(default=None, init=False)
    _spine: list[SpineItem] | None = field(default=None, init=False)

    @property
    def metadata(self) -> dict[str, list[str]]:
        if self._metadata is None:
            self._metadata = metadata_mapping(self.reader.get_metadata())
        return self._metadata

    @property
    def spine(self) -> list[SpineItem]:
        if self._spine is None:
            self._spine = self.reader.get_spine_items()
        return self._spine


Detector = Callable[[VersionContext], EpubVersion]


def detect_from_declared_version(context: VersionContext) -> EpubVersion:
    versions = context.metadata.get("version", [])
    return parse_version_string(versions[0]) if versions else EpubVersion.UNKNOWN


def detect_from_dublin_core(context: VersionContext) -> EpubVersion:
    metadata = context.metadata
    if any(metadata.get(key) for key in _MODERN_MARKERS):
        return EpubVersion.EPUB_3_0
    if any(len(metadata.get(key, [])) > 1 for key in _MODERN_LIST_MARKERS):
        return EpubVersion.EPUB_3_0
    if any(metadata.get(key) for key in _LEGACY_MARKERS):
        return EpubVersion.EPUB_2_0
    return EpubVersion.UNKNOWN


def _sample_has_html5(context: VersionContext) -> bool:
    for spine_item in context.spine[: context.sample_size]:
        if not spine_item.id:
            continue
        try:
            content = context.reader.read_content(spine_item.id, "text")
        except Exception as exc:
            logger.debug("Skipping unreadable sample %s: %s", spine_item.id, exc)
            continue
        if has_html5_indicators(content):
            return True
    return False


def detect_from_structure(context: VersionContext) -> EpubVersion:
    manifest = context.reader.get_manifest().values()
    if any(item.is_navigation_document for item in manifest):
        return EpubVersion.EPUB_3_0
    if any(item.is_ncx for item in manifest):
        return EpubVersion.EPUB_3_0 if _sample_has_html5(context) else EpubVersion.EPUB_2_0
    return EpubVersion.UNKNOWN


VERSION_DETECTORS: tuple[tuple[str, Detector], ...] = (
    ("metadata", detect_from_declared_version),
    ("metadata", detect_from_dublin_core),
    ("structure", detect_from_structure),
)


def detect_epub_version(
    reader: ContentReader,
    options: ParseOptions | None = None,
    detectors: tuple[tuple[str, Detector], ...] = VERSION_DETECTORS,
) -> tuple[EpubVersion, str | None]:
    """Run detectors in order; the first non-unknown answer wins."""

    settings = options or ParseOptions()
    context = VersionContext(reader=reader, sample_size=settings.sample_size_structure)
    for source, detector in detectors:
        try:
            version = detector(context)
        except Exception as exc:
            logger.warning("Version detection from %s failed: %s", source, exc)
            continue
        if version is not EpubVersion.UNKNOWN:
            if settings.log_compatibility_warnings:
                logger.info("EPUB version detected from %s: %s", source, version.value)
            return version, source
    return EpubVersion.UNKNOWN, None


def _add_once(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)


def _sample_epub2_content(
    reader: ContentReader,
    sample_size: int,
    warnings: list[str],
    fallbacks: list[str],
) -> None:
    try:
        spine = reader.get_spine_items()
    except Exception as exc:
        logger.warning("Failed to get spine items for content analysis: %s", exc)
        spine = []

    try:
        for spine_item in spine[:sample_size]:
            if not spine_item.id:
                continue
            try:
                content = reader.read_content(spine_item.id, "text")
            except Exception as exc:
                logger.debug("Skipping unreadable content sample %s: %s", spine_item.id, exc)
                continue
            if "<audio" in content or "<video" in content:
                _add_once(warnings, "Audio/Video content found in EPUB 2.0 - will be ignored")
                _add_once(fallbacks, MEDIA_CONTENT_FILTERING)
            if "<script" in content:
                _add_once(warnings, "JavaScript content found in EPUB 2.0 - will be stripped")
                _add_once(fallbacks, SCRIPT_REMOVAL)
    except Exception as exc:
        logger.warning("Content compatibility sampling failed: %s", exc)
        warnings.append("Failed to analyze content compatibility")


def analyze_compatibility(reader: ContentReader, options: ParseOptions | None = None) -> CompatibilityAnalysis:
    """Detect the version, gather warnings and the fallbacks they require.

    Never raises: any unexpected failure yields an ``UNKNOWN`` analysis whose
    only warning carries the ``UNKNOWN_ERROR:`` prefix.
    """

    settings = options or ParseOptions()
    try:
        version, _source = detect_epub_version(reader, settings)
        warnings: list[str] = []
        fallbacks: list[str] = []

        if version is EpubVersion.UNKNOWN:
            warnings.append("Unable to detect EPUB version, using fallback compatibility")
            fallbacks.append(GENERIC_EPUB_SUPPORT)
        elif version is EpubVersion.EPUB_2_0:
            warnings.append("EPUB 2.0 detected - limited feature support")
            fallbacks.append(BASIC_CONTENT_PROCESSING)
            _sample_epub2_content(reader, settings.sample_size_content, warnings, fallbacks)

        if settings.log_compatibility_warnings:
            for warning in warnings:
                logger.warning("EPUB compatibility: %s", warning)

        return CompatibilityAnalysis(
            detected_version=version,
            feature_support=feature_support(version),
            warnings=warnings,
            required_fallbacks=fallbacks if settings.enable_fallbacks else [],
            is_compatible=not settings.strict_mode or not warnings,
        )
    except Exception as exc:
        logger.warning("Compatibility analysis failed: %s", exc)
        return CompatibilityAnalysis(
            detected_version=EpubVersion.UNKNOWN,
            feature_support=feature_support(EpubVersion.UNKNOWN),
            warnings=[f"UNKNOWN_ERROR: {exc}"],
            required_fallbacks=[GENERIC_EPUB_SUPPORT] if settings.enable_fallbacks else [],
            is_compatible=not settings.strict_mode,
        )


def _clean_markup(value: str, fallbacks: list[str]) -> str:
    if SCRIPT_REMOVAL in fallbacks:
        value = strip_tags(value, ("script",))
    if MEDIA_CONTENT_FILTERING in fallbacks:
        value = strip_tags(value, ("audio", "video"))
    if BASIC_CONTENT_PROCESSING in fallbacks and "<" in value:
        value = strip_html_and_clean(value)
    return value


def apply_compatibility_fixes(metadata: DocumentMetadata, analysis: CompatibilityAnalysis) -> DocumentMetadata:
    """Return a copy of ``metadata`` with fallback fixes applied.

    Idempotent: applying the same analysis twice yields an equal value.
    """

    fallbacks = analysis.required_fallbacks
    if not fallbacks:
        return metadata

    def fix(value: str | None) -> str | None:
        return _clean_markup(value, fallbacks) if value else value

    custom = {key: fix(value) or "" for key, value in metadata.custom.items()}
    applied = set(filter(None, custom.get("compatibility_fixes", "").split(","))) | set(fallbacks)
    custom["compatibility_fixes"] = ",".join(sorted(applied))

    return replace(
        metadata,
        title=fix(metadata.title) or metadata.title,
        author=fix(metadata.author),
        publisher=fix(metadata.publisher),
        custom=custom,
    )


def _fix_toc_item(item: TocItem, fallbacks: list[str], ordinal: int) -> TocItem:
    title = normalize_whitespace(_clean_markup(item.title, fallbacks))
    if not title and GENERIC_EPUB_SUPPORT in fallbacks:
        title = title_from_href(item.href, ordinal)
    level = max(item.level, 1) if BASIC_CONTENT_PROCESSING in fallbacks else item.level
    children = [_fix_toc_item(child, fallbacks, index) for index, child in enumerate(item.children, start=1)]
    return replace(item, title=title or item.title, level=level, children=children)


def apply_compatibility_fixes_to_toc(toc: list[TocItem], analysis: CompatibilityAnalysis) -> list[TocItem]:
    """Return a fixed copy of the TOC tree; the input is left untouched."""

    fallbacks = analysis.required_fallbacks
    if not fallbacks:
        return list(toc)
    return [_fix_toc_item(item, fallbacks, ordinal) for ordinal, item in enumerate(toc, start=1)]
