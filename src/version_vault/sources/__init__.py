"""
Source adapters for VersionVault.

Provides:
- Webpage region extraction with app-store history detection
- RSS/Atom feeds
- phpBB/Discourse/generic forums
- PDF documents
- Sitemap discovery
- Raw repository text files
"""

from version_vault.sources.base import SourceContent, SourceKind
from version_vault.sources.webpage import (
    CONTENT_SELECTORS,
    ContentRegionSelector,
    extract_page_text,
    fetch_webpage_text,
)
from version_vault.sources.app_store import (
    extract_version_history,
    format_version_history,
    is_app_store_page,
)
from version_vault.sources.rss import (
    FeedEntry,
    fetch_feed,
    format_feed_for_extraction,
    parse_feed,
)
from version_vault.sources.forum import (
    ForumConfig,
    ForumTopic,
    detect_forum_type,
    extract_topic_posts,
    fetch_forum_release_notes,
    filter_official_topics,
    is_topic_url,
    parse_forum_topics,
)
from version_vault.sources.pdf import extract_pdf_text, fetch_pdf_text, is_pdf_url
from version_vault.sources.sitemap import (
    SitemapDiscovery,
    SitemapUrl,
    discover_release_urls,
    parse_sitemap_xml,
    rank_release_urls,
    score_url,
)
from version_vault.sources.plaintext import (
    fetch_plaintext,
    is_plaintext_url,
    is_repository_raw_url,
)
from version_vault.sources.dispatch import acquire_source, detect_source_kind

__all__ = [
    "SourceContent",
    "SourceKind",
    # Webpage
    "CONTENT_SELECTORS",
    "ContentRegionSelector",
    "extract_page_text",
    "fetch_webpage_text",
    "extract_version_history",
    "format_version_history",
    "is_app_store_page",
    # Feeds
    "FeedEntry",
    "fetch_feed",
    "format_feed_for_extraction",
    "parse_feed",
    # Forums
    "ForumConfig",
    "ForumTopic",
    "detect_forum_type",
    "extract_topic_posts",
    "fetch_forum_release_notes",
    "filter_official_topics",
    "is_topic_url",
    "parse_forum_topics",
    # PDF
    "extract_pdf_text",
    "fetch_pdf_text",
    "is_pdf_url",
    # Sitemap
    "SitemapDiscovery",
    "SitemapUrl",
    "discover_release_urls",
    "parse_sitemap_xml",
    "rank_release_urls",
    "score_url",
    # Plaintext
    "fetch_plaintext",
    "is_plaintext_url",
    "is_repository_raw_url",
    # Dispatch
    "acquire_source",
    "detect_source_kind",
]
