"""
Plain-text adapter for raw repository files (CHANGELOG.md and friends).
"""

import re
from urllib.parse import urlsplit

import httpx

from version_vault.core.exceptions import FetchError
from version_vault.sources.base import SourceContent, SourceKind
from version_vault.sources.http import get_document
from version_vault.sources.text import normalize_lines
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

RAW_HOSTS = ("raw.githubusercontent.com",)
# Code hosts whose non-raw pages are rendered HTML (GitHub /blob/ views)
CODE_HOSTS = ("github.com", "www.github.com", "gitlab.com", "bitbucket.org")
_TEXT_SUFFIX = re.compile(r"\.(txt|md|markdown|rst)$", re.IGNORECASE)
_BITBUCKET_RAW = re.compile(r"^/[^/]+/[^/]+/raw/")


def is_repository_raw_url(url: str | None) -> bool:
    """True for raw files served by a code host (GitHub raw, GitLab /-/raw/, Bitbucket /raw/)."""
    if not url:
        return False
    parts = urlsplit(url)
    host = parts.netloc.lower()
    if host in RAW_HOSTS or "/-/raw/" in parts.path:
        return True
    return host == "bitbucket.org" and bool(_BITBUCKET_RAW.match(parts.path))


def is_plaintext_url(url: str) -> bool:
    """
    True for raw repository files and text files served as-is.

    A text extension alone is not enough on a code host, where anything
    but the raw view is an HTML page.
    """
    if is_repository_raw_url(url):
        return True
    parts = urlsplit(url)
    if parts.netloc.lower() in CODE_HOSTS:
        return False
    return bool(_TEXT_SUFFIX.search(parts.path))


async def fetch_plaintext(url: str, client: httpx.AsyncClient | None = None) -> SourceContent:
    """Fetch a raw text file; only whitespace is normalized."""
    try:
        response = await get_document(url, client=client, accept="text/plain, text/markdown, */*")
    except FetchError as e:
        logger.warning(f"Plaintext fetch failed for {url}: {e}")
        return SourceContent(url=url, kind=SourceKind.PLAINTEXT, text="", method="plaintext", success=False)

    return SourceContent(
        url=url,
        kind=SourceKind.PLAINTEXT,
        text=normalize_lines(response.text),
        method="plaintext",
    )
