"""Canonical data structures shared by all format parsers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class EpubVersion(str, Enum):
    EPUB_2_0 = "2.0"
    EPUB_3_0 = "3.0"
    EPUB_3_1 = "3.1"
    EPUB_3_2 = "3.2"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"


@dataclass(slots=True)
class CharRange:
    """Half-open character span into the reconstructed document text."""

    start: int = 0
    end: int = 0

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(slots=True)
class Sentence:
    """A sentence span, local to its paragraph's ``raw_text``."""

    text: str
    start_index: int
    end_index: int
    word_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Sentence":
        return cls(**data)


@dataclass(slots=True)
class Paragraph:
    """A speakable block of text split into sentences."""

    id: str
    sentences: list[Sentence] = field(default_factory=list)
    position: int = 0
    word_count: int = 0
    raw_text: str = ""
    include_in_audio: bool = True
    confidence: float = 0.0
    type: str = "text"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Paragraph":
        payload = dict(data)
        payload["sentences"] = [Sentence.from_dict(item) for item in payload.get("sentences", [])]
        return cls(**payload)


@dataclass(slots=True)
class Chapter:
    """One extracted content unit with its position in the document text."""

    id: str
    title: str
    level: int = 1
    paragraphs: list[Paragraph] = field(default_factory=list)
    position: int = 0
    char_range: CharRange = field(default_factory=CharRange)
    word_count: int = 0
    estimated_duration: float = 0.0
    confidence: float | None = None
    depth: int | None = None
    parent_id: str | None = None
    href: str | None = None

    @property
    def is_placeholder(self) -> bool:
        return not self.paragraphs and self.char_range.length == 0

    @property
    def text_length(self) -> int:
        return sum(len(paragraph.raw_text) for paragraph in self.paragraphs)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chapter":
        payload = dict(data)
        payload["paragraphs"] = [Paragraph.from_dict(item) for item in payload.get("paragraphs", [])]
        payload["char_range"] = CharRange(**payload.get("char_range", {}))
        return cls(**payload)


@dataclass(slots=True)
class TocItem:
    """Navigation entry; children are owned exclusively by their parent."""

    id: str
    title: str
    href: str
    level: int = 1
    children: list[TocItem] = field(default_factory=list)

    def walk(self) -> list[TocItem]:
        """Return this item followed by all descendants in document order."""

        items = [self]
        for child in self.children:
            items.extend(child.walk())
        return items

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TocItem":
        payload = dict(data)
        payload["children"] = [cls.from_dict(item) for item in payload.get("children", [])]
        return cls(**payload)


@dataclass(slots=True)
class DocumentMetadata:
    """Normalized metadata extracted from a source document."""

    title: str = "Untitled Document"
    author: str | None = None
    language: str | None = None
    publisher: str | None = None
    identifier: str | None = None
    date: str | None = None
    version: str | None = None
    format: str | None = None
    word_count: int = 0
    char_count: int = 0
    custom: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentMetadata":
        payload = dict(data)
        payload["custom"] = dict(payload.get("custom", {}))
        return cls(**payload)


@dataclass(slots=True)
class EmbeddedAsset:
    id: str
    href: str
    media_type: str
    type: str
    properties: list[str] = field(default_factory=list)
    original_id: str | None = None
    size: int = 0


@dataclass(slots=True)
class EmbeddedAssets:
    """Manifest resources grouped by media category."""

    images: list[EmbeddedAsset] = field(default_factory=list)
    audio: list[EmbeddedAsset] = field(default_factory=list)
    video: list[EmbeddedAsset] = field(default_factory=list)
    fonts: list[EmbeddedAsset] = field(default_factory=list)
    styles: list[EmbeddedAsset] = field(default_factory=list)
    other: list[EmbeddedAsset] = field(default_factory=list)

    def category(self, name: str) -> list[EmbeddedAsset]:
        return getattr(self, name)

    @property
    def total(self) -> int:
        return sum(len(bucket) for bucket in (self.images, self.audio, self.video, self.fonts, self.styles, self.other))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmbeddedAssets":
        return cls(**{name: [EmbeddedAsset(**item) for item in items] for name, items in data.items()})


@dataclass(slots=True)
class ProcessingMetrics:
    parse_start_time: str
    parse_end_time: str
    parse_duration_ms: float = 0.0
    source_length: int = 0
    processing_errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DocumentStatistics:
    total_paragraphs: int = 0
    total_sentences: int = 0
    total_words: int = 0
    estimated_reading_time: int = 0
    chapter_count: int = 0
    table_count: int = 0
    image_count: int = 0
    complexity: str = "simple"


@dataclass(slots=True)
class CompatibilityAnalysis:
    """Outcome of EPUB version detection and content sampling."""

    detected_version: EpubVersion
    feature_support: dict[str, bool] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    required_fallbacks: list[str] = field(default_factory=list)
    is_compatible: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "detected_version": self.detected_version.value,
            "feature_support": dict(self.feature_support),
            "warnings": list(self.warnings),
            "required_fallbacks": list(self.required_fallbacks),
            "is_compatible": self.is_compatible,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompatibilityAnalysis":
        payload = dict(data)
        payload["detected_version"] = EpubVersion(payload["detected_version"])
        return cls(**payload)


@dataclass(slots=True)
class ValidationIssue:
    """A validation error entry; ``severity`` decides whether it blocks validity."""

    code: str
    message: str
    severity: Severity
    fix: str
    location: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["severity"] = self.severity.value
        return payload


@dataclass(slots=True)
class ValidationWarning:
    code: str
    message: str
    suggestion: str
    location: str | None = None


@dataclass(slots=True)
class ValidationResult:
    """Layered structural report; built once per validation call."""

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not any(issue.severity in (Severity.CRITICAL, Severity.ERROR) for issue in self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [asdict(warning) for warning in self.warnings],
            "metadata": dict(self.metadata),
        }


@dataclass(slots=True)
class DocumentStructure:
    """Terminal output of the extraction pipeline."""

    metadata: DocumentMetadata
    chapters: list[Chapter]
    table_of_contents: list[TocItem]
    embedded_assets: EmbeddedAssets
    total_paragraphs: int
    total_sentences: int
    total_word_count: int
    total_chapters: int
    estimated_total_duration: float
    confidence: float
    processing_metrics: ProcessingMetrics
    statistics: DocumentStatistics = field(default_factory=DocumentStatistics)
    compatibility: CompatibilityAnalysis | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "metadata": asdict(self.metadata),
            "chapters": [asdict(chapter) for chapter in self.chapters],
            "table_of_contents": [asdict(item) for item in self.table_of_contents],
            "embedded_assets": asdict(self.embedded_assets),
            "total_paragraphs": self.total_paragraphs,
            "total_sentences": self.total_sentences,
            "total_word_count": self.total_word_count,
            "total_chapters": self.total_chapters,
            "estimated_total_duration": self.estimated_total_duration,
            "confidence": self.confidence,
            "processing_metrics": asdict(self.processing_metrics),
            "statistics": asdict(self.statistics),
            "compatibility": self.compatibility.to_dict() if self.compatibility else None,
        }
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentStructure":
        compatibility = data.get("compatibility")
        return cls(
            metadata=DocumentMetadata.from_dict(data["metadata"]),
            chapters=[Chapter.from_dict(item) for item in data.get("chapters", [])],
            table_of_contents=[TocItem.from_dict(item) for item in data.get("table_of_contents", [])],
            embedded_assets=EmbeddedAssets.from_dict(data.get("embedded_assets", {})),
            total_paragraphs=data["total_paragraphs"],
            total_sentences=data["total_sentences"],
            total_word_count=data["total_word_count"],
            total_chapters=data["total_chapters"],
            estimated_total_duration=data["estimated_total_duration"],
            confidence=data["confidence"],
            processing_metrics=ProcessingMetrics(**data["processing_metrics"]),
            statistics=DocumentStatistics(**data.get("statistics", {})),
            compatibility=CompatibilityAnalysis.from_dict(compatibility) if compatibility else None,
        )
