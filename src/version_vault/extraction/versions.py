"""
Version string utilities.

compare_versions is the one comparator for every ordering decision:
history sorting, current-version promotion and downgrade detection.
"""

import re
from urllib.parse import urlsplit

from version_vault.core.models import VersionEntry

_COMPARE_PREFIX = re.compile(r"^(?:version\s*|[vr])", re.IGNORECASE)
_NORMALIZE_PREFIX = re.compile(r"^(?:version|ver|release|v|r)[\s\-_]*(?=\d)", re.IGNORECASE)
_TRAILING_PARENTHETICALS = re.compile(r"(?:\s*\([^()]*\))+\s*$")
_LEADING_DIGITS = re.compile(r"\d+")
_BRANCH_SEGMENT = re.compile(r"^(\d+(?:\.\d+)*)\.x$", re.IGNORECASE)
_PRERELEASE = re.compile(r"^(alpha|beta|rc|preview|pre|dev|canary)", re.IGNORECASE)


def _strip_prefix(version: str) -> str:
    return _COMPARE_PREFIX.sub("", (version or "").strip(), count=1).strip()


def version_key(version: str) -> tuple[int, ...]:
    """
    Numeric parts of a version for ordering.

    Parts split on '.' and '-'; a part counts by its leading digits and
    is 0 when it has none. Trailing zeros are dropped so "1.0" and
    "1.0.0" compare equal.
    """
    parts = []
    for part in re.split(r"[.\-]", _strip_prefix(version)):
        digits = _LEADING_DIGITS.match(part.strip())
        parts.append(int(digits.group()) if digits else 0)
    while parts and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def compare_versions(a: str, b: str) -> int:
    """
    Compare two version strings.

    >>> compare_versions("19.1.3", "9.6.1")
    1

    Returns:
        -1 if a < b, 0 if equal, 1 if a > b
    """
    key_a, key_b = version_key(a), version_key(b)
    return (key_a > key_b) - (key_a < key_b)


def normalize_version(version: str, product_name: str | None = None) -> str:
    """
    Canonical form used to merge duplicates.

    Strips a product-name prefix ("cobra_v125", "Acme Widget 2.0"), a
    v/r/version prefix and trailing parenthetical platform qualifiers
    ("3.0.23 (Windows) (x64)"). Normalizing twice changes nothing.
    """
    normalized = (version or "").strip()
    if product_name:
        words = re.findall(r"[a-z0-9]+", product_name.lower())
        if words:
            name = r"[\s_\-]*".join(re.escape(word) for word in words)
            normalized = re.sub(
                rf"^{name}[\s_\-]*(?:version|ver|v)?[\s_\-]*(?=\d)",
                "", normalized, flags=re.IGNORECASE)
    normalized = _TRAILING_PARENTHETICALS.sub("", normalized)
    normalized = _NORMALIZE_PREFIX.sub("", normalized)
    return normalized.strip()


def sort_versions(entries: list[VersionEntry]) -> list[VersionEntry]:
    """Newest first; equal versions keep their input order."""
    return sorted(entries, key=lambda e: version_key(e.version), reverse=True)


def _earliest(a: str | None, b: str | None) -> str | None:
    if a and b:
        return min(a, b)
    return a or b


def deduplicate_versions(
    entries: list[VersionEntry],
    product_name: str | None = None,
) -> list[VersionEntry]:
    """
    Merge entries whose versions normalize identically.

    The merged entry carries the normalized version, the longer notes and
    the earliest known release date. First-seen order is kept.
    """
    merged: dict[str, VersionEntry] = {}
    for entry in entries:
        key = normalize_version(entry.version, product_name)
        if not key:
            continue
        existing = merged.get(key)
        if existing is None:
            merged[key] = VersionEntry(
                version=key,
                release_date=entry.release_date,
                notes=entry.notes,
                type=entry.type,
            )
            continue
        if len(entry.notes or "") > len(existing.notes or ""):
            existing.notes = entry.notes
        existing.release_date = _earliest(existing.release_date, entry.release_date)
    return list(merged.values())


def extract_branch_pattern(url: str | None) -> str | None:
    """
    The release-branch prefix a URL is pinned to.

    >>> extract_branch_pattern("https://github.com/acme/app/blob/3.0.x/CHANGELOG.md")
    '3.0'
    """
    if not url:
        return None
    for segment in urlsplit(url).path.split("/"):
        match = _BRANCH_SEGMENT.match(segment)
        if match:
            return match.group(1)
    return None


def filter_by_branch(entries: list[VersionEntry], url: str | None) -> list[VersionEntry]:
    """Drop entries outside the URL's release branch; no-op without one."""
    branch = extract_branch_pattern(url)
    if branch is None:
        return entries
    kept = []
    for entry in entries:
        version = normalize_version(entry.version)
        if version == branch or version.startswith(branch + "."):
            kept.append(entry)
    return kept


def get_version_format(version: str | None) -> str:
    """
    Shape of a version: digit runs become X, or YYYY for four or more.

    >>> get_version_format("2024.1")
    'YYYY.X'
    """
    if not version:
        return "UNKNOWN"
    cleaned = _strip_prefix(version)
    return re.sub(r"\d+", lambda m: "YYYY" if len(m.group()) >= 4 else "X", cleaned)


def major_version(version: str) -> int:
    """Leading numeric component, 0 when there is none."""
    first = re.split(r"[.\-]", _strip_prefix(version))[0]
    digits = _LEADING_DIGITS.match(first)
    return int(digits.group()) if digits else 0


def is_beta_version(version: str | None) -> bool:
    """True for prerelease tags such as 2.0-beta1 or 3.1_rc2."""
    if not version:
        return False
    parts = re.split(r"[-_]", _strip_prefix(version), maxsplit=1)
    return len(parts) == 2 and bool(_PRERELEASE.match(parts[1]))


def pick_current_version(
    entries: list[VersionEntry],
    product_name: str | None = None,
    skip_prereleases: bool = False,
) -> VersionEntry | None:
    """
    The release to report as current from a newest-first list.

    Without skip_prereleases this is simply the first entry. With it,
    prereleases are skipped unless the product itself is a beta
    channel ("Acme Widget Beta"), in which case stable releases are
    skipped instead. Falls back to the newest entry when nothing
    qualifies.
    """
    if not entries:
        return None
    if not skip_prereleases:
        return entries[0]
    wants_beta = "beta" in (product_name or "").lower()
    for entry in entries:
        if is_beta_version(entry.version) == wants_beta:
            return entry
    return entries[0]
