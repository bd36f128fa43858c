"""
Shared data model for the acquisition and extraction pipeline.

These dataclasses and enums flow between the escalator, the source
adapters, the orchestrator, validation and pattern learning.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class FetchMethod(str, Enum):
    """Acquisition methods, cheapest first."""

    STATIC = "static"
    BROWSERLESS = "browserless"
    BROWSERLESS_EXTENDED = "browserless-extended"
    INTERACTIVE = "interactive"


# Escalation order; the escalator only ever moves forward along this chain.
METHOD_CHAIN: tuple[FetchMethod, ...] = (
    FetchMethod.STATIC,
    FetchMethod.BROWSERLESS,
    FetchMethod.BROWSERLESS_EXTENDED,
    FetchMethod.INTERACTIVE,
)


class BlockerType(str, Enum):
    """Known anti-automation systems and failure classes."""

    CLOUDFLARE = "cloudflare"
    AKAMAI = "akamai"
    DATADOME = "datadome"
    PERIMETERX = "perimeterx"
    RATE_LIMIT = "rate-limit"
    HTTP2_ERROR = "http2-error"
    CONNECTION_ERROR = "connection-error"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class BlockerDetection:
    """Outcome of classifying a response or error."""

    is_blocked: bool
    blocker_type: BlockerType | None
    confidence: int
    message: str
    suggested_action: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "is_blocked": self.is_blocked,
            "blocker_type": self.blocker_type.value if self.blocker_type else None,
            "confidence": self.confidence,
            "message": self.message,
            "suggested_action": self.suggested_action,
        }


@dataclass
class ScrapingStrategy:
    """
    Page interactions needed before release notes become visible.

    Consumed by the interactive method: click `selectors` and
    `release_notes_selectors`, scroll `expand_selectors` into view,
    wait for `wait_for_selector`, run `custom_script`.
    """

    selectors: list[str] = field(default_factory=list)
    release_notes_selectors: list[str] = field(default_factory=list)
    expand_selectors: list[str] = field(default_factory=list)
    wait_for_selector: str | None = None
    wait_time_ms: int = 2000
    custom_script: str | None = None

    @property
    def is_empty(self) -> bool:
        """True when the strategy asks for no interaction at all."""
        return not (
            self.selectors
            or self.release_notes_selectors
            or self.expand_selectors
            or self.wait_for_selector
            or self.custom_script
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "selectors": list(self.selectors),
            "release_notes_selectors": list(self.release_notes_selectors),
            "expand_selectors": list(self.expand_selectors),
            "wait_for_selector": self.wait_for_selector,
            "wait_time_ms": self.wait_time_ms,
            "custom_script": self.custom_script,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "ScrapingStrategy":
        """Create from a stored dictionary, ignoring unknown keys."""
        if not data:
            return cls()

        def _str_list(key: str) -> list[str]:
            value = data.get(key) or []
            return [str(v) for v in value if isinstance(v, str) and v]

        wait_time = data.get("wait_time_ms", 2000)
        return cls(
            selectors=_str_list("selectors"),
            release_notes_selectors=_str_list("release_notes_selectors"),
            expand_selectors=_str_list("expand_selectors"),
            wait_for_selector=data.get("wait_for_selector") or None,
            wait_time_ms=wait_time if isinstance(wait_time, int) else 2000,
            custom_script=data.get("custom_script") or None,
        )


@dataclass
class FetchResponse:
    """Raw output of executing one acquisition method."""

    html: str
    status_code: int | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class AcquisitionAttempt:
    """One iteration of the retry loop. Diagnostic only."""

    url: str
    method: FetchMethod
    user_agent: str
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc))
    outcome: str = "pending"


@dataclass
class FetchResult:
    """Result of fetch-with-retry. Always returned, never raised."""

    content: str
    method: FetchMethod
    success: bool
    attempts: int
    blocker_detected: BlockerDetection | None = None
    attempt_log: list[AcquisitionAttempt] = field(default_factory=list)

    @property
    def methods_tried(self) -> list[FetchMethod]:
        """Methods in the order they were executed."""
        return [attempt.method for attempt in self.attempt_log]


class VersionType(str, Enum):
    """Release classification."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


@dataclass
class VersionEntry:
    """A single release. release_date is never guessed."""

    version: str
    release_date: str | None = None
    notes: str = ""
    type: VersionType = VersionType.PATCH

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "version": self.version,
            "release_date": self.release_date,
            "notes": self.notes,
            "type": self.type.value,
        }


@dataclass
class ExtractedInfo:
    """Authoritative output of one extraction run."""

    manufacturer: str
    category: str
    current_version: str | None = None
    release_date: str | None = None
    versions: list[VersionEntry] = field(default_factory=list)
    confidence: int | None = None
    product_name_found: bool | None = None
    validation_notes: str | None = None
    extraction_method: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "manufacturer": self.manufacturer,
            "category": self.category,
            "current_version": self.current_version,
            "release_date": self.release_date,
            "versions": [v.to_dict() for v in self.versions],
            "confidence": self.confidence,
            "product_name_found": self.product_name_found,
            "validation_notes": self.validation_notes,
            "extraction_method": self.extraction_method,
        }


@dataclass
class ValidationResult:
    """Advisory plausibility check of an extraction."""

    valid: bool
    confidence: int
    reason: str
    warnings: list[str] = field(default_factory=list)


@dataclass
class LearnedPattern:
    """Per-domain record of what acquisition strategy worked."""

    domain: str
    success_rate: int = 100
    last_successful: datetime | None = None
    strategy: ScrapingStrategy = field(default_factory=ScrapingStrategy)
    method: FetchMethod | None = None
    notes: str = ""


class AnomalyType(str, Enum):
    """Kinds of suspicious transitions between two extractions."""

    VERSION_DOWNGRADE = "version_downgrade"
    FORMAT_CHANGE = "format_change"
    MAJOR_VERSION_JUMP = "major_version_jump"
    SUSPICIOUS_DATE = "suspicious_date"
    CONFIDENCE_DROP = "confidence_drop"
    EXTRACTION_METHOD_CHANGE = "extraction_method_change"


class Severity(str, Enum):
    """Anomaly severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Anomaly:
    """A flagged transition. Surfaced to reviewers, never persisted."""

    type: AnomalyType
    severity: Severity
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VersionSnapshot:
    """The fields of an extraction that anomaly detection compares."""

    version: str | None
    release_date: str | None = None
    confidence: int | None = None
    extraction_method: str | None = None

    @classmethod
    def from_extracted(cls, info: ExtractedInfo) -> "VersionSnapshot":
        """Build a snapshot from an ExtractedInfo."""
        return cls(
            version=info.current_version,
            release_date=info.release_date,
            confidence=info.confidence,
            extraction_method=info.extraction_method,
        )
