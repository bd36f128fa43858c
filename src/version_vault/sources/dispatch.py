"""
Source dispatch: choose an adapter for a URL and run it.
"""

import re
from urllib.parse import urlsplit

import httpx

from version_vault.acquisition.escalator import FetchEscalator
from version_vault.config.settings import SourceSettings
from version_vault.core.models import FetchMethod, ScrapingStrategy
from version_vault.sources.base import SourceContent, SourceKind
from version_vault.sources.forum import ForumConfig, fetch_forum_release_notes, is_topic_url
from version_vault.sources.pdf import fetch_pdf_text, is_pdf_url
from version_vault.sources.plaintext import fetch_plaintext, is_plaintext_url
from version_vault.sources.rss import fetch_feed
from version_vault.sources.sitemap import discover_release_urls
from version_vault.sources.webpage import fetch_webpage_text
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

_FEED_PATH = re.compile(r"(/feed/?$|/rss/?$|/atom/?$|\.rss$|\.atom$|feed\.xml$|rss\.xml$|atom\.xml$)", re.IGNORECASE)
_FORUM_PATH = re.compile(r"(viewforum\.php|/forums?/|forumdisplay\.php)", re.IGNORECASE)


def detect_source_kind(url: str, declared: SourceKind | str | None = None) -> SourceKind:
    """
    Decide which adapter reads url.

    A declared kind always wins; otherwise the URL shape decides and
    anything unrecognised is a webpage.
    """
    if declared:
        return SourceKind(declared)

    path = urlsplit(url).path
    if is_pdf_url(url):
        return SourceKind.PDF
    if is_plaintext_url(url):
        return SourceKind.PLAINTEXT
    if _FEED_PATH.search(path):
        return SourceKind.RSS
    if is_topic_url(url) or _FORUM_PATH.search(path):
        return SourceKind.FORUM
    return SourceKind.WEBPAGE


async def acquire_source(
    url: str,
    kind: SourceKind,
    escalator: FetchEscalator,
    client: httpx.AsyncClient | None = None,
    settings: SourceSettings | None = None,
    strategy: ScrapingStrategy | None = None,
    starting_method: FetchMethod | None = None,
    forum_config: ForumConfig | None = None,
) -> SourceContent:
    """
    Run the adapter for kind.

    Sitemap sources discover the best release page of the site and read
    it as a webpage. Adapters report failure through
    SourceContent.success instead of raising.
    """
    settings = settings or SourceSettings()
    logger.debug(f"Acquiring {url} as {kind.value}")

    if kind == SourceKind.RSS:
        return await fetch_feed(
            url,
            client=client,
            max_entries=settings.rss_max_entries,
            entry_max_chars=settings.entry_max_chars,
        )
    if kind == SourceKind.FORUM:
        return await fetch_forum_release_notes(
            url,
            config=forum_config,
            client=client,
            max_topics=settings.forum_max_topics,
        )
    if kind == SourceKind.PDF:
        return await fetch_pdf_text(url, client=client)
    if kind == SourceKind.PLAINTEXT:
        return await fetch_plaintext(url, client=client)
    if kind == SourceKind.SITEMAP:
        candidates = await discover_release_urls(
            url,
            max_urls=settings.sitemap_max_urls,
            client=client,
            max_children=settings.sitemap_max_children,
        )
        if not candidates:
            return SourceContent(url=url, kind=kind, text="", method="sitemap", success=False)
        best = candidates[0].loc
        logger.info(f"Sitemap picked {best} (score {candidates[0].relevance_score}) for {url}")
        content = await fetch_webpage_text(
            best, escalator, strategy=strategy, starting_method=starting_method,
            min_region_chars=settings.min_region_chars)
        content.kind = SourceKind.SITEMAP
        content.url = best
        return content

    return await fetch_webpage_text(
        url, escalator, strategy=strategy, starting_method=starting_method,
        min_region_chars=settings.min_region_chars)
