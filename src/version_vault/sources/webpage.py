"""
Webpage source adapter.

Fetches a page through the escalator and reduces it to the text of its
largest release-relevant region. App-store listings short-circuit to
their embedded version history.
"""

from bs4 import BeautifulSoup

from version_vault.acquisition.escalator import FetchEscalator
from version_vault.core.models import FetchMethod, ScrapingStrategy
from version_vault.sources.app_store import (
    extract_version_history,
    format_version_history,
    is_app_store_page,
)
from version_vault.sources.base import SourceContent, SourceKind
from version_vault.sources.text import NOISE_TAGS, normalize_whitespace
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

# Candidate content regions, highest priority first. Priority only breaks
# ties; the largest region wins.
CONTENT_SELECTORS: list[str] = [
    # Help-centre and knowledge-base containers of frequently blocked vendors
    ".kb-article-content",
    ".kb_article",
    ".article-body",
    "#article-body",
    "[data-component=article]",
    # Wiki markup
    ".mw-parser-output",
    "#mw-content-text",
    ".wiki-content",
    # Release notes containers
    ".release-notes",
    "#release-notes",
    ".releasenotes",
    ".changelog",
    "#changelog",
    ".version-history",
    ".version-info",
    ".whats-new",
    # Generic semantic containers
    "main",
    "article",
    "[role=main]",
    ".content",
    ".main-content",
    "#content",
]

CHROME_TAGS = ["nav", "footer"]


class ContentRegionSelector:
    """
    Pick the largest matching content region of a page.

    Falls back to the whole body when no region exceeds min_chars.

    Example:
        >>> selector = ContentRegionSelector(min_chars=1000)
        >>> text, region = selector.select(html)
    """

    def __init__(
        self,
        selectors: list[str] | None = None,
        min_chars: int = 1000,
    ) -> None:
        self.selectors = selectors or CONTENT_SELECTORS
        self.min_chars = min_chars

    def select(self, html: str) -> tuple[str, str | None]:
        """
        Extract page text.

        Returns:
            (text, selector) where selector is None for the body fallback
        """
        if not html:
            return "", None

        soup = BeautifulSoup(html, "html.parser")
        for tag in soup.find_all(NOISE_TAGS + CHROME_TAGS):
            tag.decompose()

        best_text = ""
        best_selector: str | None = None
        for selector in self.selectors:
            for element in soup.select(selector):
                text = normalize_whitespace(element.get_text(" "))
                if len(text) > len(best_text):
                    best_text, best_selector = text, selector

        if len(best_text) > self.min_chars:
            return best_text, best_selector

        root = soup.body or soup
        return normalize_whitespace(root.get_text(" ")), None


def extract_page_text(url: str, html: str, min_region_chars: int = 1000) -> SourceContent:
    """
    Turn fetched HTML into SourceContent without fetching.

    Embedded app-store history wins over region heuristics.
    """
    if is_app_store_page(url, html):
        entries = extract_version_history(html)
        if entries:
            return SourceContent(
                url=url,
                kind=SourceKind.WEBPAGE,
                text=format_version_history(entries),
                method="app_store_json",
                versions=entries,
            )

    text, region = ContentRegionSelector(min_chars=min_region_chars).select(html)
    logger.debug(f"Selected region {region or 'body'} ({len(text)} chars) for {url}")
    return SourceContent(
        url=url,
        kind=SourceKind.WEBPAGE,
        text=text,
        method=region or "body",
    )


async def fetch_webpage_text(
    url: str,
    escalator: FetchEscalator,
    strategy: ScrapingStrategy | None = None,
    starting_method: FetchMethod | None = None,
    min_region_chars: int = 1000,
) -> SourceContent:
    """
    Fetch url with retries and extract its release-relevant text.

    A failed fetch still yields whatever text the last response had,
    flagged success=False.
    """
    result = await escalator.fetch_with_retry(
        url, strategy=strategy, starting_method=starting_method)

    content = extract_page_text(url, result.content, min_region_chars)
    content.fetch_result = result
    content.success = result.success
    if content.method != "app_store_json":
        content.method = result.method.value
    return content
