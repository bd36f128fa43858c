"""
Content windowing.

Reduces a large page to the regions around product mentions (or, when
enabled, around version headings) so the completion prompt stays within
budget and centred on the relevant text.
"""

import re
from dataclasses import dataclass

from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

SECTION_SEPARATOR = "\n\n--- SECTION ---\n\n"
MIN_PARTIAL_WINDOW = 500
# Version matches this close together describe the same release
VERSION_MATCH_GAP = 50

METHOD_PRODUCT_MENTIONS = "product_mentions"
METHOD_VERSION_FIRST = "version_first"
METHOD_FALLBACK = "fallback_first_chunk"

VARIANT_SUFFIXES: tuple[str, ...] = (
    "Mini", "Pro", "Max", "Studio", "Extreme", "Plus",
    "4K", "8K", "12K", "HD", "SDI", "HDMI",
    "AV", "2", "3", "4", "II", "III", "IV",
    "ISO", "Broadcast", "Production",
)

_MONTHS = "january|february|march|april|may|june|july|august|september|october|november|december"
VERSION_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\bversion\s+(\d+\.[\d.]+)", re.IGNORECASE),
    re.compile(r"\bv(\d+\.[\d.]+)", re.IGNORECASE),
    re.compile(r"\(version\s+(\d+\.[\d.]+)\)", re.IGNORECASE),
    re.compile(
        r"\b(\d{1,3}\.\d{1,3}(?:\.\d{1,3})?)\b"
        r"(?=\s*(?:release|update|changelog|notes|fixes|features|improvements))",
        re.IGNORECASE,
    ),
    re.compile(rf"\b(?:{_MONTHS})\s+\d{{4}}\s*\(version\s+(\d+\.[\d.]+)\)", re.IGNORECASE),
)


@dataclass
class Match:
    position: int
    term: str


@dataclass
class ContentWindow:
    """A slice of the source text centred on one match."""

    content: str
    start: int
    end: int
    matched_term: str


@dataclass
class SmartContent:
    """
    Windowed content ready for the completion prompt.

    Attributes:
        content: Joined windows, never longer than the requested budget
        found_product: Whether the product was located in the text
        method: product_mentions, version_first or fallback_first_chunk
    """

    content: str
    found_product: bool
    method: str


def product_variants(product_name: str) -> list[str]:
    """The base name followed by the name with each family suffix."""
    return [product_name] + [f"{product_name} {suffix}" for suffix in VARIANT_SUFFIXES]


def find_product_mentions(text: str, product_name: str) -> list[Match]:
    """
    Every case-insensitive occurrence of any variant, by position.

    Variants starting at the same position count once.
    """
    haystack = text.lower()
    matches: list[Match] = []
    for variant in product_variants(product_name):
        needle = variant.lower()
        start = haystack.find(needle)
        while start != -1:
            matches.append(Match(start, variant))
            start = haystack.find(needle, start + len(needle))

    matches.sort(key=lambda m: m.position)
    deduped: list[Match] = []
    for match in matches:
        if not deduped or deduped[-1].position != match.position:
            deduped.append(match)
    return deduped


def find_version_patterns(text: str) -> list[Match]:
    """Version headings by position, collapsing matches within 50 chars."""
    matches = [
        Match(found.start(), found.group(0))
        for pattern in VERSION_PATTERNS
        for found in pattern.finditer(text)
    ]
    matches.sort(key=lambda m: m.position)

    collapsed: list[Match] = []
    for match in matches:
        if collapsed and match.position - collapsed[-1].position <= VERSION_MATCH_GAP:
            continue
        collapsed.append(match)
    return collapsed


def extract_windows(
    text: str,
    matches: list[Match],
    window_size: int = 5000,
    max_windows: int = 5,
) -> list[ContentWindow]:
    """
    Cut a window around each of the first max_windows matches.

    Each window is centred on its match and slid to stay inside the
    text, so the matched term (or as much of it as window_size allows)
    is always inside the window.
    """
    windows = []
    for match in matches[:max_windows]:
        span = min(len(match.term), window_size)
        start = max(0, match.position - (window_size - span) // 2)
        end = min(len(text), start + window_size)
        start = max(0, min(start, end - window_size))
        windows.append(ContentWindow(text[start:end], start, end, match.term))
    return windows


def combine_windows(windows: list[ContentWindow], max_chars: int = 30000) -> str:
    """
    Join windows with section markers, staying within max_chars.

    A window that would overflow is cut to fit, and only kept when more
    than 500 characters of it survive.
    """
    combined = ""
    for window in windows:
        separator = SECTION_SEPARATOR if combined else ""
        if len(combined) + len(separator) + len(window.content) > max_chars:
            remaining = max_chars - len(combined) - len(separator)
            if remaining > MIN_PARTIAL_WINDOW or not combined:
                combined += separator + window.content[:max(remaining, 0)]
            break
        combined += separator + window.content
    return combined[:max_chars]


def find_version_sections(
    text: str,
    max_chars: int = 30000,
    window_size: int = 5000,
    max_windows: int = 5,
) -> SmartContent | None:
    """
    Window the text around version headings.

    Returns None when the text has no recognisable version heading.
    """
    matches = find_version_patterns(text or "")
    if not matches:
        return None
    windows = extract_windows(text, matches, min(window_size, max_chars), max_windows)
    logger.debug(f"Version-first windowing: {len(matches)} version headings")
    return SmartContent(
        content=combine_windows(windows, max_chars),
        found_product=False,
        method=METHOD_VERSION_FIRST,
    )


def extract_smart_content(
    full_text: str,
    product_name: str,
    max_chars: int = 30000,
    window_size: int = 5000,
    max_windows: int = 5,
    version_first: bool = False,
) -> SmartContent:
    """
    Reduce full_text to the parts most relevant to product_name.

    Windows never exceed max_chars and are anchored on their match, so
    found_product=True means the name is in the returned content. With
    no mention, or a budget too small to hold the name, the first
    max_chars characters are returned.

    Args:
        full_text: Page text
        product_name: Product to centre windows on
        max_chars: Output budget
        window_size: Width of each window
        max_windows: Mentions to window
        version_first: Prefer windows around version headings

    Returns:
        SmartContent describing the chosen method
    """
    text = full_text or ""
    max_chars = max(max_chars, 0)
    name = (product_name or "").strip()
    width = min(window_size, max_chars)

    mentions = find_product_mentions(text, name) if name else []

    if version_first:
        sections = find_version_sections(text, max_chars, window_size, max_windows)
        if sections is not None:
            sections.found_product = bool(mentions) and name.lower() in sections.content.lower()
            return sections

    if mentions and width >= len(name):
        windows = extract_windows(text, mentions, width, max_windows)
        content = combine_windows(windows, max_chars)
        logger.debug(
            f"Windowed '{name}': {len(mentions)} mentions, "
            f"{len(windows)} windows, {len(content)} chars")
        return SmartContent(content=content, found_product=True, method=METHOD_PRODUCT_MENTIONS)

    logger.debug(f"'{name}' not found in {len(text)} chars, using first chunk")
    return SmartContent(content=text[:max_chars], found_product=False, method=METHOD_FALLBACK)
