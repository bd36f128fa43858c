"""
Sitemap discovery.

Finds a site's sitemaps, walks them and ranks every listed URL by how
likely it is to be a release-notes page.
"""

import gzip
import re
import xml.etree.ElementTree as ET
import zlib
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlsplit

import httpx

from version_vault.core.exceptions import FetchError
from version_vault.sources.http import get_document, head_ok
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

SITEMAP_CANDIDATES = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap-index.xml")
SITEMAP_ACCEPT = "application/xml, text/xml, application/x-gzip"
MAX_INDEX_DEPTH = 3

HIGH_VALUE_KEYWORDS = (
    "release-notes", "release_notes", "releasenotes", "changelog", "change-log",
    "whatsnew", "whats-new", "updates", "version-history", "versions",
)
MEDIUM_VALUE_KEYWORDS = ("releases", "download", "downloads", "news", "announcements")
LOW_VALUE_KEYWORDS = ("blog", "update", "version")

_DATED_PATH = re.compile(r"/\d{4}/\d{2}/")
_ROBOTS_SITEMAP = re.compile(r"^\s*Sitemap:\s*(\S+)", re.IGNORECASE | re.MULTILINE)
_URL_BLOCK = re.compile(r"<url>(.*?)</url>", re.DOTALL)
_LOC = re.compile(r"<loc>\s*([^<]+?)\s*</loc>")
_LASTMOD = re.compile(r"<lastmod>\s*([^<]+?)\s*</lastmod>")
_PRIORITY = re.compile(r"<priority>\s*([^<]+?)\s*</priority>")


@dataclass
class SitemapUrl:
    """A sitemap entry with its release relevance."""

    loc: str
    lastmod: str | None = None
    priority: float | None = None
    relevance_score: int = 0


def _parse_lastmod(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def score_url(entry: SitemapUrl, now: datetime | None = None) -> int:
    """
    Score a URL for release relevance.

    High and medium keyword groups count once each; every low keyword
    counts. Priority, freshness and URL shape adjust the total.
    """
    now = now or datetime.now(timezone.utc)
    lowered = entry.loc.lower()
    score = 0

    if any(keyword in lowered for keyword in HIGH_VALUE_KEYWORDS):
        score += 100
    if any(keyword in lowered for keyword in MEDIUM_VALUE_KEYWORDS):
        score += 50
    score += 25 * sum(1 for keyword in LOW_VALUE_KEYWORDS if keyword in lowered)

    if entry.priority is not None and entry.priority >= 0.8:
        score += 20

    if entry.lastmod:
        modified = _parse_lastmod(entry.lastmod)
        if modified is not None and (now - modified).days < 180:
            score += 10

    if len(entry.loc) > 100:
        score -= 10
    if _DATED_PATH.search(entry.loc):
        score -= 30
    return score


def rank_release_urls(urls: list[SitemapUrl], now: datetime | None = None) -> list[SitemapUrl]:
    """Score urls in place and return the relevant ones, best first."""
    for entry in urls:
        entry.relevance_score = score_url(entry, now)
    relevant = [entry for entry in urls if entry.relevance_score > 0]
    relevant.sort(key=lambda entry: entry.relevance_score, reverse=True)
    return relevant


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> str | None:
    for child in element:
        if _local(child.tag) == name and child.text:
            return child.text.strip()
    return None


def _to_priority(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_sitemap_xml(xml: str) -> tuple[list[SitemapUrl], list[str]]:
    """
    Parse one sitemap document.

    Returns:
        (page URLs, child sitemap URLs). An index yields only children.
    """
    try:
        root = ET.fromstring(xml.strip())
    except ET.ParseError:
        if "<sitemapindex" in xml:
            return [], _LOC.findall(xml)
        urls = []
        for block in _URL_BLOCK.findall(xml):
            loc = _LOC.search(block)
            if not loc:
                continue
            lastmod = _LASTMOD.search(block)
            priority = _PRIORITY.search(block)
            urls.append(SitemapUrl(
                loc=loc.group(1),
                lastmod=lastmod.group(1) if lastmod else None,
                priority=_to_priority(priority.group(1) if priority else None),
            ))
        return urls, []

    if _local(root.tag) == "sitemapindex":
        children = [_child_text(node, "loc") for node in root if _local(node.tag) == "sitemap"]
        return [], [loc for loc in children if loc]

    urls = []
    for node in root:
        if _local(node.tag) != "url":
            continue
        loc = _child_text(node, "loc")
        if not loc:
            continue
        urls.append(SitemapUrl(
            loc=loc,
            lastmod=_child_text(node, "lastmod"),
            priority=_to_priority(_child_text(node, "priority")),
        ))
    return urls, []


class SitemapDiscovery:
    """
    Walks a site's sitemaps.

    Example:
        >>> discovery = SitemapDiscovery(client)
        >>> urls = await discovery.discover("https://example.com", max_urls=5)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        max_children: int = 5,
    ) -> None:
        self.client = client
        self.max_children = max_children

    async def find_sitemaps(self, site_url: str) -> list[str]:
        """Sitemap locations from well-known paths, else robots.txt."""
        parts = urlsplit(site_url)
        origin = f"{parts.scheme}://{parts.netloc}"

        found = [
            origin + path for path in SITEMAP_CANDIDATES
            if await head_ok(origin + path, client=self.client)
        ]
        if found:
            return found

        try:
            response = await get_document(f"{origin}/robots.txt", client=self.client)
        except FetchError:
            logger.debug(f"No robots.txt for {origin}")
            return []
        return _ROBOTS_SITEMAP.findall(response.text)

    async def read_sitemap(self, sitemap_url: str, depth: int = 0) -> list[SitemapUrl]:
        """
        Read one sitemap, expanding index children.

        Raises:
            FetchError: If the sitemap cannot be downloaded or is a
                corrupt gzip archive
        """
        response = await get_document(sitemap_url, client=self.client, accept=SITEMAP_ACCEPT)
        body = response.content
        if body[:2] == b"\x1f\x8b":
            try:
                body = gzip.decompress(body)
            except (OSError, EOFError, zlib.error) as e:
                raise FetchError(f"Corrupt gzip sitemap: {e}", url=sitemap_url) from e
        urls, children = parse_sitemap_xml(body.decode("utf-8", errors="replace"))

        if children and depth < MAX_INDEX_DEPTH:
            logger.debug(f"Sitemap index {sitemap_url} lists {len(children)} children")
            for child in children[:self.max_children]:
                try:
                    urls.extend(await self.read_sitemap(child, depth + 1))
                except FetchError as e:
                    logger.warning(f"Failed to read child sitemap {child}: {e}")
        return urls

    async def discover(self, site_url: str, max_urls: int = 5) -> list[SitemapUrl]:
        sitemaps = await self.find_sitemaps(site_url)
        if not sitemaps:
            logger.info(f"No sitemap found for {site_url}")
            return []

        collected: list[SitemapUrl] = []
        for sitemap in sitemaps:
            try:
                collected.extend(await self.read_sitemap(sitemap))
            except FetchError as e:
                logger.warning(f"Failed to read sitemap {sitemap}: {e}")

        ranked = rank_release_urls(collected)
        logger.info(
            f"Sitemap discovery for {site_url}: {len(collected)} URLs, "
            f"{len(ranked)} release-related")
        return ranked[:max_urls]


async def discover_release_urls(
    site_url: str,
    max_urls: int = 5,
    client: httpx.AsyncClient | None = None,
    max_children: int = 5,
) -> list[SitemapUrl]:
    """
    Rank a site's sitemap URLs by release relevance.

    Returns [] when no sitemap can be found or read.
    """
    if not urlsplit(site_url).netloc:
        logger.warning(f"Cannot discover sitemaps for invalid URL: {site_url}")
        return []
    return await SitemapDiscovery(client, max_children).discover(site_url, max_urls)
