"""
Defensive parsing of completion responses.

The completion service is asked for JSON but its output is treated as
untrusted: code fences are stripped, every field is optional and
type-checked, "null" strings become None, and release dates that are
not real calendar dates are dropped rather than guessed.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from version_vault.core.exceptions import CompletionParseError, MissingFieldError
from version_vault.core.models import ExtractedInfo, VersionEntry, VersionType
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = ("manufacturer", "category")

_FENCE = re.compile(r"^\s*```(?:json|JSON)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)
_ISO_DATE = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:[T ].*)?$")
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%m/%d/%Y",
)
_NULL_STRINGS = {"", "null", "none", "n/a", "unknown"}


@dataclass
class ParsedCompletion:
    """
    Typed view of one completion response.

    manufacturer and category are None only for versions-only
    responses (a bare array or an object holding just "versions").
    """

    manufacturer: str | None = None
    category: str | None = None
    current_version: str | None = None
    release_date: str | None = None
    versions: list[VersionEntry] = field(default_factory=list)
    confidence: int | None = None
    product_name_found: bool | None = None
    validation_notes: str | None = None

    def to_extracted(self, manufacturer: str, category: str) -> ExtractedInfo:
        """Build ExtractedInfo, using the given identity for missing fields."""
        return ExtractedInfo(
            manufacturer=self.manufacturer or manufacturer,
            category=self.category or category,
            current_version=self.current_version,
            release_date=self.release_date,
            versions=list(self.versions),
            confidence=self.confidence,
            product_name_found=self.product_name_found,
            validation_notes=self.validation_notes,
        )


def strip_code_fences(raw: str) -> str:
    match = _FENCE.match(raw or "")
    return match.group(1).strip() if match else (raw or "").strip()


def normalize_date(value: Any) -> str | None:
    """
    Return value as YYYY-MM-DD when it is a real calendar date, else None.

    >>> normalize_date("Nov 29, 2024")
    '2024-11-29'
    >>> normalize_date("2024-02-30") is None
    True
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.lower() in _NULL_STRINGS:
        return None

    iso = _ISO_DATE.match(text)
    if iso:
        text = iso.group(1)
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None


def _string(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return None if value.lower() in _NULL_STRINGS else value


def _confidence(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%")
        try:
            value = float(value)
        except ValueError:
            return None
    if isinstance(value, (int, float)):
        return max(0, min(100, round(value)))
    return None


def _flag(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def _notes(value: Any) -> str:
    if isinstance(value, list):
        return "\n".join(str(item).strip() for item in value if str(item).strip())
    return value.strip() if isinstance(value, str) else ""


def _version_type(value: Any) -> VersionType:
    if isinstance(value, str):
        try:
            return VersionType(value.strip().lower())
        except ValueError:
            pass
    return VersionType.PATCH


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def parse_version_entry(item: Any) -> VersionEntry | None:
    """One element of the versions array; None when it has no version."""
    if not isinstance(item, dict):
        return None
    version = _string(_first(item, "version", "versionNumber", "version_number"))
    if version is None:
        return None
    return VersionEntry(
        version=version,
        release_date=normalize_date(_first(item, "releaseDate", "release_date", "date")),
        notes=_notes(_first(item, "notes", "releaseNotes", "release_notes")),
        type=_version_type(item.get("type")),
    )


def _parse_versions(value: Any) -> list[VersionEntry]:
    if not isinstance(value, list):
        return []
    return [entry for entry in (parse_version_entry(item) for item in value) if entry]


def parse_completion(raw: str) -> ParsedCompletion:
    """
    Parse a completion response.

    Raises:
        CompletionParseError: If the response is not a JSON object or array
        MissingFieldError: If an object response lacks manufacturer or category
    """
    text = strip_code_fences(raw)
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise CompletionParseError(f"Completion is not valid JSON: {e}", raw=raw) from e

    if isinstance(payload, list):
        return ParsedCompletion(versions=_parse_versions(payload))
    if not isinstance(payload, dict):
        raise CompletionParseError("Completion JSON is neither an object nor an array", raw=raw)

    parsed = ParsedCompletion(
        manufacturer=_string(payload.get("manufacturer")),
        category=_string(payload.get("category")),
        current_version=_string(_first(payload, "currentVersion", "current_version")),
        release_date=normalize_date(_first(payload, "releaseDate", "release_date")),
        versions=_parse_versions(payload.get("versions")),
        confidence=_confidence(payload.get("confidence")),
        product_name_found=_flag(_first(payload, "productNameFound", "product_name_found")),
        validation_notes=_string(_first(payload, "validationNotes", "validation_notes")),
    )

    versions_only = set(payload) <= {"versions"}
    if versions_only:
        return parsed

    missing = [name for name in REQUIRED_FIELDS if getattr(parsed, name) is None]
    if missing:
        raise MissingFieldError(
            f"Completion missing required fields: {', '.join(missing)}",
            fields=missing,
            raw=raw,
        )
    logger.debug(f"Parsed completion with {len(parsed.versions)} versions")
    return parsed
