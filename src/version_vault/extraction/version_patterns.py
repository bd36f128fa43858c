"""
Known version formats for specific products.

Vendors that ship several products on one page (Blackmagic, Avid, MA
Lighting) make it easy to attach the wrong product's version. Each
known product gets a pattern that captures its version and a list of
sibling products whose presence makes a match worth double-checking.

Products without a known pattern can still be checked with the
generic patterns, which recognise the common version shapes.
"""

import re
from dataclasses import dataclass, field

from version_vault.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class VersionPattern:
    """
    How one product writes its version.

    Attributes:
        product_name: Display name of the product
        pattern: Regex whose first group is the version
        exclude_patterns: Sibling products that may be confused with this one
        notes: Free-form remarks about the format
    """

    product_name: str
    pattern: re.Pattern
    exclude_patterns: tuple[re.Pattern, ...] = ()
    notes: str = ""


@dataclass
class PatternMatch:
    """Version found by a pattern, with any reasons to distrust it."""

    version: str | None
    warnings: list[str] = field(default_factory=list)


def _pattern(product_name: str, regex: str, exclude: tuple[str, ...] = (), notes: str = "") -> VersionPattern:
    return VersionPattern(
        product_name=product_name,
        pattern=re.compile(regex, re.IGNORECASE),
        exclude_patterns=tuple(re.compile(p, re.IGNORECASE) for p in exclude),
        notes=notes,
    )


# Keyed by manufacturer key, then product key (see product_key)
MANUFACTURER_PATTERNS: dict[str, dict[str, VersionPattern]] = {
    "blackmagic-design": {
        "davinci-resolve": _pattern(
            "DaVinci Resolve",
            r"DaVinci\s+Resolve(?:\s+Studio)?\s+(\d+\.\d+(?:\.\d+)?)",
            (r"Fusion\s+Studio", r"ATEM", r"HyperDeck", r"UltraStudio"),
            "Shares release pages with the rest of the Blackmagic range",
        ),
        "fusion-studio": _pattern(
            "Fusion Studio",
            r"Fusion\s+Studio\s+(\d+\.\d+(?:\.\d+)?)",
            (r"DaVinci\s+Resolve", r"ATEM"),
            "Usually versioned in step with DaVinci Resolve",
        ),
        "atem-mini": _pattern(
            "ATEM Mini",
            r"ATEM\s+Mini.*?(\d+\.\d+(?:\.\d+)?)",
            (r"DaVinci", r"Fusion"),
            "Switcher firmware, versioned separately",
        ),
    },
    "figure53": {
        "qlab": _pattern("QLab", r"QLab\s+(?:version\s+)?(\d+\.\d+(?:\.\d+)?)"),
    },
    "avid": {
        "pro-tools": _pattern(
            "Pro Tools",
            r"Pro\s+Tools(?:\s+\|)?\s+(\d{4}\.\d+(?:\.\d+)?)",
            (r"Media\s+Composer", r"Sibelius", r"Venue"),
            "YYYY.N releases",
        ),
        "media-composer": _pattern(
            "Media Composer",
            r"Media\s+Composer(?:\s+\|)?\s+(\d{4}\.\d+(?:\.\d+)?)",
            (r"Pro\s+Tools", r"Sibelius"),
            "YYYY.N releases",
        ),
    },
    "disguise": {
        "disguise": _pattern(
            "disguise",
            r"(?:disguise|d3).*?(?:r|version\s+)?(\d+\.\d+(?:\.\d+)?)",
            notes="Formerly d3",
        ),
    },
    "resolume": {
        "resolume-arena": _pattern(
            "Resolume Arena", r"Resolume\s+Arena\s+(\d+\.\d+(?:\.\d+)?)", (r"Avenue",)),
        "resolume-avenue": _pattern(
            "Resolume Avenue", r"Resolume\s+Avenue\s+(\d+\.\d+(?:\.\d+)?)", (r"Arena",)),
    },
    "watchout": {
        "watchout": _pattern("WATCHOUT", r"WATCHOUT\s+(?:version\s+)?(\d+\.\d+(?:\.\d+)?)"),
    },
    "renewed-vision": {
        "propresenter": _pattern("ProPresenter", r"ProPresenter\s+(\d+(?:\.\d+)?(?:\.\d+)?)"),
    },
    "adobe": {
        "premiere-pro": _pattern(
            "Premiere Pro",
            r"Premiere\s+Pro(?:\s+CC)?\s+(?:version\s+)?(\d{4}|\d+\.\d+)",
            (r"After\s+Effects", r"Photoshop", r"Illustrator"),
            "Year or N.N releases",
        ),
        "after-effects": _pattern(
            "After Effects",
            r"After\s+Effects(?:\s+CC)?\s+(?:version\s+)?(\d{4}|\d+\.\d+)",
            (r"Premiere", r"Photoshop"),
            "Year or N.N releases",
        ),
    },
    "green-hippo": {
        "hippotizer": _pattern(
            "Hippotizer", r"Hippotizer.*?(?:v|version\s+)?(\d+\.\d+(?:\.\d+)?)"),
    },
    "etc": {
        "eos": _pattern(
            "EOS",
            r"EOS(?:\s+Family)?\s+(?:v|version\s+)?(\d+\.\d+(?:\.\d+)?)",
            (r"ColorSource", r"Gio"),
        ),
        "cobalt": _pattern(
            "Cobalt", r"Cobalt\s+(?:v|version\s+)?(\d+\.\d+(?:\.\d+)?)", (r"EOS",)),
    },
    "ma-lighting": {
        "grandma2": _pattern(
            "grandMA2",
            r"grandMA2\s+(?:software\s+)?(?:v|version\s+)?(\d+\.\d+(?:\.\d+)?)",
            (r"grandMA3",),
        ),
        "grandma3": _pattern(
            "grandMA3",
            r"grandMA3\s+(?:software\s+)?(?:v|version\s+)?(\d+\.\d+(?:\.\d+)?)",
            (r"grandMA2",),
        ),
    },
}

GENERIC_VERSION_PATTERNS = [
    re.compile(r"(?:version\s+)?v?(\d+\.\d+\.\d+)", re.IGNORECASE),
    re.compile(r"(?:version\s+)?v?(\d+\.\d+)", re.IGNORECASE),
    re.compile(r"(?:version\s+)?(\d{4}\.\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"r(\d+\.\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"build\s+(\d+)", re.IGNORECASE),
]


def product_key(name: str) -> str:
    """
    Lookup key for a manufacturer or product name.

    >>> product_key("Pro Tools | 2024")
    'pro-tools-2024'
    """
    return "-".join(re.findall(r"[a-z0-9]+", (name or "").lower()))


def get_manufacturer_patterns(manufacturer: str) -> dict[str, VersionPattern] | None:
    return MANUFACTURER_PATTERNS.get(product_key(manufacturer))


def get_pattern_for_product(manufacturer: str | None, product: str) -> VersionPattern | None:
    """
    Find the known pattern for a product.

    The manufacturer narrows the search when it is known; otherwise (or
    when it names no known vendor) every vendor is searched. A product
    key that extends a known one ("atem-mini-pro") uses that pattern.
    """
    key = product_key(product)
    if not key:
        return None

    vendor = get_manufacturer_patterns(manufacturer or "")
    candidates = [vendor] if vendor else list(MANUFACTURER_PATTERNS.values())

    for patterns in candidates:
        if key in patterns:
            return patterns[key]

    best: tuple[int, VersionPattern] | None = None
    for patterns in candidates:
        for known, pattern in patterns.items():
            if key.startswith(known + "-") and (best is None or len(known) > best[0]):
                best = (len(known), pattern)
    if best is None:
        return None
    logger.debug(f"Using the {best[1].product_name} version pattern for '{product}'")
    return best[1]


def extract_version_with_pattern(content: str, pattern: VersionPattern) -> PatternMatch:
    """
    Apply a product pattern to page text.

    Sibling products mentioned on the page do not prevent a match but
    are reported as warnings.
    """
    if not content:
        return PatternMatch(None, ["No content to search"])

    warnings = [
        f"Content mentions {excluded.pattern!r}; may be a different product"
        for excluded in pattern.exclude_patterns
        if excluded.search(content)
    ]

    match = pattern.pattern.search(content)
    if not match or not match.group(1):
        return PatternMatch(None, warnings)

    version = match.group(1).strip()
    if warnings:
        warnings.append(f"Version {version} found alongside other products; verify")
    return PatternMatch(version, warnings)


def extract_version_generic(content: str) -> str | None:
    """First version-shaped token in content, trying the strictest shapes first."""
    if not content:
        return None
    for pattern in GENERIC_VERSION_PATTERNS:
        match = pattern.search(content)
        if match and match.group(1):
            return match.group(1).strip()
    return None
