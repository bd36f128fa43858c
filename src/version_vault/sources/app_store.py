"""
App-store version history extraction.

App store listing pages embed their full version history as JSON
inside script tags. When that payload is present it is more reliable
than any text heuristic, so the webpage adapter uses it directly.
"""

import json
import re
from collections.abc import Iterator
from typing import Any

from bs4 import BeautifulSoup

from version_vault.core.models import VersionEntry, VersionType
from version_vault.extraction.parsing import normalize_date
from version_vault.sources.text import normalize_lines
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

HISTORY_KEY = "versionHistory"
_HISTORY_MARKER = re.compile(r'"versionHistory"\s*:\s*\[')
_VERSION_KEYS = ("versionDisplay", "versionString", "version")
_NOTES_KEYS = ("releaseNotes", "notes")
_DATE_KEYS = ("releaseDate", "releaseTimestamp", "date")


def is_app_store_page(url: str, html: str) -> bool:
    """True when the page looks like an app-store listing with history JSON."""
    return "apps.apple.com" in url or HISTORY_KEY in html


def _walk_histories(node: Any) -> Iterator[list]:
    """Yield every list stored under a versionHistory key, at any depth."""
    if isinstance(node, dict):
        for key, value in node.items():
            if key == HISTORY_KEY and isinstance(value, list):
                yield value
            else:
                yield from _walk_histories(value)
    elif isinstance(node, list):
        for item in node:
            yield from _walk_histories(item)
    elif isinstance(node, str) and HISTORY_KEY in node:
        # Some stores double-encode their cache as a JSON string
        try:
            yield from _walk_histories(json.loads(node))
        except ValueError:
            return


def _script_payloads(html: str) -> Iterator[Any]:
    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script"):
        script_type = (script.get("type") or "").lower()
        if "json" not in script_type:
            continue
        raw = script.string or script.get_text()
        if not raw or HISTORY_KEY not in raw:
            continue
        try:
            yield json.loads(raw)
        except ValueError:
            logger.debug("Skipping unparsable JSON script block")


def _inline_histories(html: str) -> Iterator[list]:
    """Decode versionHistory arrays embedded in non-JSON script text."""
    decoder = json.JSONDecoder()
    for match in _HISTORY_MARKER.finditer(html):
        start = match.end() - 1
        try:
            value, _ = decoder.raw_decode(html, start)
        except ValueError:
            continue
        if isinstance(value, list):
            yield value


def _first(item: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return None


def _to_entry(item: Any) -> VersionEntry | None:
    if not isinstance(item, dict):
        return None
    version = _first(item, _VERSION_KEYS)
    if not isinstance(version, str) or not version.strip():
        return None

    release_date = normalize_date(_first(item, _DATE_KEYS))
    notes = _first(item, _NOTES_KEYS)
    return VersionEntry(
        version=version.strip(),
        release_date=release_date,
        notes=normalize_lines(notes) if isinstance(notes, str) else "",
        type=VersionType.PATCH,
    )


def extract_version_history(html: str) -> list[VersionEntry]:
    """
    Return the longest embedded version history on the page.

    Returns:
        Entries in page order (newest first on app-store pages), or an
        empty list when no usable history is embedded
    """
    if not html or HISTORY_KEY not in html:
        return []

    candidates: list[list] = list(_inline_histories(html))
    for payload in _script_payloads(html):
        candidates.extend(_walk_histories(payload))

    best: list[VersionEntry] = []
    for candidate in candidates:
        entries = [e for e in (_to_entry(item) for item in candidate) if e]
        if len(entries) > len(best):
            best = entries

    if best:
        logger.info(f"Found embedded version history with {len(best)} entries")
    return best


def format_version_history(entries: list[VersionEntry]) -> str:
    """Render entries as release blocks for the completion prompt."""
    blocks = []
    for entry in entries:
        header = f"Version {entry.version}"
        if entry.release_date:
            header += f" ({entry.release_date})"
        blocks.append(f"{header}\n{entry.notes}".strip())
    return "\n\n".join(blocks)
