"""
Site layout quirks.

A few vendor layouts confuse the completion service in predictable
ways. Each correction is a LayoutQuirk registered against a URL
pattern, so adding one never touches the pipeline itself.
"""

import re
from collections.abc import Awaitable, Callable

from version_vault.core.exceptions import VersionVaultError
from version_vault.core.models import VersionEntry
from version_vault.extraction.versions import major_version
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

FetchText = Callable[[str], Awaitable[str]]

SECTION_MAX_CHARS = 2000
_VERSION_TOKEN = re.compile(r"\b\d+\.\d+(?:\.\d+)*\b")


def _mentions(notes: str, version: str) -> bool:
    return bool(re.search(rf"(?<![\d.]){re.escape(version)}(?![\d])", notes or ""))


class LayoutQuirk:
    """
    Base class for a site-specific correction.

    Subclasses implement apply(); matches() is driven by url_pattern.
    """

    name = "quirk"

    def __init__(self, url_pattern: str) -> None:
        self.url_pattern = re.compile(url_pattern, re.IGNORECASE)

    def matches(self, url: str) -> bool:
        return bool(self.url_pattern.search(url or ""))

    async def apply(self, versions: list[VersionEntry], fetch_text: FetchText) -> list[VersionEntry]:
        raise NotImplementedError


class NoteSwapQuirk(LayoutQuirk):
    """
    Swap notes between adjacent entries that were assigned each other's notes.

    Layouts that put the heading after its notes shift every note by one
    release. A pair is swapped when each entry's notes name the other
    entry's version but not its own.
    """

    name = "note_swap"

    async def apply(self, versions: list[VersionEntry], fetch_text: FetchText) -> list[VersionEntry]:
        i = 0
        while i < len(versions) - 1:
            first, second = versions[i], versions[i + 1]
            if (
                _mentions(first.notes, second.version)
                and not _mentions(first.notes, first.version)
                and _mentions(second.notes, first.version)
                and not _mentions(second.notes, second.version)
            ):
                first.notes, second.notes = second.notes, first.notes
                logger.debug(f"Swapped notes of {first.version} and {second.version}")
                i += 2
                continue
            i += 1
        return versions


def section_for(text: str, version_prefix: str) -> str:
    """
    Text from the first mention of version_prefix to the next version heading.

    Returns "" when the prefix doesn't occur.
    """
    match = re.search(rf"(?<![\d.]){re.escape(version_prefix)}", text)
    if not match:
        return ""
    start = match.start()
    for other in _VERSION_TOKEN.finditer(text, match.end()):
        if not other.group().startswith(version_prefix):
            return text[start:other.start()].strip()[:SECTION_MAX_CHARS]
    return text[start:start + SECTION_MAX_CHARS].strip()


class FamilyBackfillQuirk(LayoutQuirk):
    """
    Fill empty notes from a product-family page.

    Some vendors publish notes once per family release while the product
    page only lists version numbers. Entries without notes are grouped by
    major version; each group gets that major's section of the family page.

    Example:
        >>> quirk = FamilyBackfillQuirk(r"example\\.com/products/", "https://example.com/family")
    """

    name = "family_backfill"

    def __init__(self, url_pattern: str, family_url: str) -> None:
        super().__init__(url_pattern)
        self.family_url = family_url

    async def apply(self, versions: list[VersionEntry], fetch_text: FetchText) -> list[VersionEntry]:
        missing = [entry for entry in versions if not (entry.notes or "").strip()]
        if not missing:
            return versions

        try:
            family_text = await fetch_text(self.family_url)
        except VersionVaultError as e:
            logger.warning(f"Family page {self.family_url} unavailable: {e}")
            return versions

        groups: dict[int, list[VersionEntry]] = {}
        for entry in missing:
            groups.setdefault(major_version(entry.version), []).append(entry)

        for major, entries in groups.items():
            for entry in entries:
                notes = section_for(family_text, entry.version) or section_for(family_text, f"{major}.")
                if notes:
                    entry.notes = notes
        filled = sum(1 for entry in missing if entry.notes)
        logger.info(f"Backfilled notes for {filled}/{len(missing)} entries from {self.family_url}")
        return versions


class QuirkRegistry:
    """URL-pattern lookup of layout quirks, applied in registration order."""

    def __init__(self, quirks: list[LayoutQuirk] | None = None) -> None:
        self._quirks: list[LayoutQuirk] = list(quirks or [])

    def register(self, quirk: LayoutQuirk) -> None:
        self._quirks.append(quirk)

    def for_url(self, url: str) -> list[LayoutQuirk]:
        return [quirk for quirk in self._quirks if quirk.matches(url)]

    def __len__(self) -> int:
        return len(self._quirks)


async def apply_quirks(
    url: str,
    versions: list[VersionEntry],
    fetch_text: FetchText,
    registry: QuirkRegistry | None = None,
) -> list[VersionEntry]:
    """Run every quirk registered for url over versions."""
    if registry is None:
        return versions
    for quirk in registry.for_url(url):
        logger.debug(f"Applying {quirk.name} quirk to {url}")
        versions = await quirk.apply(versions, fetch_text)
    return versions
