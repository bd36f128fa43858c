"""
RSS 2.0 and Atom feed adapter.

Feeds are parsed with feedparser, which also copes with the broken
markup common in hand-rolled release feeds. Entry HTML is reduced to
text with BeautifulSoup before it reaches the prompt.
"""

import re
from dataclasses import dataclass
from typing import Any

import feedparser
import httpx

from version_vault.core.exceptions import FetchError
from version_vault.sources.base import SourceContent, SourceKind
from version_vault.sources.http import get_document
from version_vault.sources.text import html_to_text, truncate
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml"
RELEASE_SEPARATOR = "\n\n--- NEXT RELEASE ---\n\n"

_VERSION_PATTERNS = [
    re.compile(r"version\s+(\d+\.\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"v(\d+\.\d+(?:\.\d+)?)", re.IGNORECASE),
    re.compile(r"(\d+\.\d+(?:\.\d+)?)\s+(?:release|update)", re.IGNORECASE),
    re.compile(r"\b(\d+\.\d+(?:\.\d+)?)\b"),
]


@dataclass
class FeedEntry:
    """One release announcement from a feed."""

    title: str
    link: str
    date: str
    content: str
    version: str | None = None


def guess_version(text: str) -> str | None:
    """Pull the most likely version number out of a title."""
    for pattern in _VERSION_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return match.group(1)
    return None


def _entry_content(entry: Any) -> str:
    """Full content when the feed carries it, else the summary."""
    for content in entry.get("content") or []:
        value = content.get("value")
        if value:
            return value
    return entry.get("summary") or entry.get("description") or ""


def parse_feed(document: str | bytes, max_entries: int = 10) -> list[FeedEntry]:
    """
    Parse RSS or Atom into entries.

    Never raises; unusable input yields an empty list. Dates are kept
    as the feed wrote them.

    Args:
        document: Feed body, as text or raw bytes
        max_entries: Entries to keep, in document order
    """
    if isinstance(document, str):
        document = document.encode("utf-8")
    if not document or not document.strip():
        return []

    parsed = feedparser.parse(document)
    if parsed.bozo:
        logger.debug(f"Feed is not well-formed ({parsed.get('bozo_exception')}), parsed leniently")

    entries = []
    for entry in parsed.entries[:max_entries]:
        title = (entry.get("title") or "").strip()
        entries.append(FeedEntry(
            title=title,
            link=entry.get("link") or "",
            date=entry.get("published") or entry.get("updated") or "",
            content=_entry_content(entry),
            version=guess_version(title),
        ))
    return entries


def format_feed_for_extraction(entries: list[FeedEntry], entry_max_chars: int = 3000) -> str:
    """Render entries as numbered release blocks."""
    blocks = []
    for index, entry in enumerate(entries, start=1):
        content = truncate(html_to_text(entry.content), entry_max_chars)
        lines = [
            f"=== RELEASE {index}: {entry.title} ===",
            f"Date: {entry.date}",
            f"Link: {entry.link}",
        ]
        if entry.version:
            lines.append(f"Version: {entry.version}")
        blocks.append("\n".join(lines) + "\n\n" + content)
    return RELEASE_SEPARATOR.join(block.strip() for block in blocks)


async def fetch_feed(
    url: str,
    client: httpx.AsyncClient | None = None,
    max_entries: int = 10,
    entry_max_chars: int = 3000,
) -> SourceContent:
    """
    Fetch and format a release feed.

    A failed download or empty feed yields empty, unsuccessful content.
    """
    logger.info(f"Fetching feed: {url}")
    try:
        response = await get_document(url, client=client, accept=FEED_ACCEPT)
    except FetchError as e:
        logger.warning(f"Feed fetch failed for {url}: {e}")
        return SourceContent(url=url, kind=SourceKind.RSS, text="", method="rss", success=False)

    entries = parse_feed(response.content, max_entries)
    logger.info(f"Parsed {len(entries)} feed entries from {url}")
    if not entries:
        return SourceContent(url=url, kind=SourceKind.RSS, text="", method="rss", success=False)

    return SourceContent(
        url=url,
        kind=SourceKind.RSS,
        text=format_feed_for_extraction(entries, entry_max_chars),
        method="rss",
    )
