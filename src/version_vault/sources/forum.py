"""
Forum source adapter.

Reads official release announcements from phpBB, Discourse and
generic forums: list the topics of an index page, keep the ones that
pass the configured filters, then collect the posts of each topic
newest first.
"""

import re
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup, Tag

from version_vault.acquisition.escalator import FetchEscalator
from version_vault.acquisition.identity import realistic_headers
from version_vault.core.exceptions import VersionVaultError
from version_vault.sources.base import SourceContent, SourceKind
from version_vault.sources.http import get_document
from version_vault.sources.text import decode_entities, normalize_whitespace, strip_tags, truncate
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

ForumType = Literal["phpbb", "discourse", "generic"]

MIN_POST_CHARS = 50
MAX_POSTS = 20
GENERIC_POST_CHARS = 5000
TOPIC_MAX_CHARS = 3000
POST_SEPARATOR = "\n\n--- NEXT POST ---\n\n"
RELEASE_SEPARATOR = "\n\n--- NEXT RELEASE ---\n\n"

_TOPIC_URL_PATTERNS = [
    re.compile(r"viewtopic\.php"),
    re.compile(r"/posts/t\d+"),
    re.compile(r"showthread\.php"),
    re.compile(r"/t/[^/]+/\d+"),
]
_UI_LINK_TITLES = re.compile(r"^(View|Post|Reply|Quote|Edit|Delete|Report)$", re.IGNORECASE)
_NAV_LINK_TITLES = re.compile(r"^(Home|Forum|Login|Register|Search|Profile)$", re.IGNORECASE)
_STICKY_CLASS = re.compile(r'class="[^"]*\b(sticky|announce|global-announce)\b[^"]*"', re.IGNORECASE)


@dataclass
class ForumConfig:
    """
    Which topics of a forum count as official release notes.

    Attributes:
        forum_type: Engine override; detected from the page when None
        sticky_only: Keep only pinned/announcement topics
        title_pattern: Case-insensitive regex topic titles must match
        official_author: Substring the topic author must contain
    """

    forum_type: ForumType | None = None
    sticky_only: bool = False
    title_pattern: str | None = None
    official_author: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ForumConfig":
        data = data or {}
        return cls(
            forum_type=data.get("forum_type") or data.get("forumType"),
            sticky_only=bool(data.get("sticky_only", data.get("stickyOnly", False))),
            title_pattern=data.get("title_pattern") or data.get("titlePattern"),
            official_author=data.get("official_author") or data.get("officialAuthor"),
        )


@dataclass
class ForumTopic:
    title: str
    link: str
    author: str = ""
    is_sticky: bool = False
    replies: int = 0


def is_topic_url(url: str) -> bool:
    """True when url points at a single topic rather than a forum index."""
    lowered = url.lower()
    return any(pattern.search(lowered) for pattern in _TOPIC_URL_PATTERNS)


def detect_forum_type(url: str, html: str) -> ForumType:
    if "viewforum.php" in url or "phpBB" in html or 'class="topiclist"' in html:
        return "phpbb"
    if "discourse" in html or 'class="topic-list"' in html:
        return "discourse"
    return "generic"


def absolute_url(link: str, base_url: str) -> str:
    """Resolve a topic link against the page it was found on."""
    return urljoin(base_url, decode_entities(link).strip())


# =============================================================================
# Topic listing
# =============================================================================


def _row_is_sticky(row: Tag) -> bool:
    classes = " ".join(row.get("class") or [])
    markup = str(row)
    return (
        any(marker in classes for marker in ("sticky", "announce"))
        or "icon_topic_pinned" in markup
        or "icon-announce" in markup
    )


def _parse_phpbb_topics_regex(html: str, base_url: str) -> list[ForumTopic]:
    patterns = [
        re.compile(r'<a\s+[^>]*class="[^"]*topictitle[^"]*"[^>]*href="([^"]+)"[^>]*>([^<]+)</a>', re.IGNORECASE),
        re.compile(r'<a\s+[^>]*href="([^"]*viewtopic[^"]+)"[^>]*>([^<]+)</a>', re.IGNORECASE),
    ]
    topics: list[ForumTopic] = []
    seen: set[str] = set()
    for pattern in patterns:
        for match in pattern.finditer(html):
            title = match.group(2).strip()
            if title in seen:
                continue
            seen.add(title)
            if len(title) < 5 or _UI_LINK_TITLES.match(title):
                continue
            context = html[max(0, match.start() - 500):match.start() + 500]
            topics.append(ForumTopic(
                title=title,
                link=absolute_url(match.group(1), base_url),
                is_sticky=bool(_STICKY_CLASS.search(context))
                or "icon_topic_pinned" in context
                or "icon-announce" in context,
            ))
    return topics


def parse_phpbb_topics(html: str, base_url: str) -> list[ForumTopic]:
    soup = BeautifulSoup(html, "html.parser")
    rows = soup.select(".topiclist .row") or soup.select(
        ".forumbg .topics li, .topiclist li, ul.topics li")
    if not rows:
        return _parse_phpbb_topics_regex(html, base_url)

    topics = []
    for row in rows:
        link = row.select_one(".topictitle, a.topictitle") or row.select_one('a[href*="viewtopic"]')
        if link is None:
            continue
        title = normalize_whitespace(link.get_text())
        if len(title) < 3:
            continue
        author = row.select_one(".topic-poster a, .username, .author")
        replies = row.select_one(".posts, .replies")
        replies_text = normalize_whitespace(replies.get_text()) if replies else ""
        topics.append(ForumTopic(
            title=title,
            link=absolute_url(link.get("href", ""), base_url),
            author=normalize_whitespace(author.get_text()) if author else "",
            is_sticky=_row_is_sticky(row),
            replies=int(replies_text) if replies_text.isdigit() else 0,
        ))
    return topics


def parse_discourse_topics(html: str, base_url: str) -> list[ForumTopic]:
    soup = BeautifulSoup(html, "html.parser")
    topics = []
    for row in soup.select(".topic-list-item"):
        link = row.select_one(".title a, .main-link a")
        if link is None:
            continue
        topics.append(ForumTopic(
            title=normalize_whitespace(link.get_text()),
            link=absolute_url(link.get("href", ""), base_url),
            is_sticky=row.select_one(".topic-statuses .pinned") is not None,
        ))
    return topics


def parse_generic_topics(html: str, base_url: str) -> list[ForumTopic]:
    soup = BeautifulSoup(html, "html.parser")
    topics = []
    for link in soup.find_all("a", href=True):
        title = normalize_whitespace(link.get_text())
        if len(title) < 5 or len(title) > 200 or _NAV_LINK_TITLES.match(title):
            continue
        topics.append(ForumTopic(title=title, link=absolute_url(link["href"], base_url)))
    return topics


def parse_forum_topics(html: str, forum_type: ForumType, base_url: str) -> list[ForumTopic]:
    if forum_type == "phpbb":
        return parse_phpbb_topics(html, base_url)
    if forum_type == "discourse":
        return parse_discourse_topics(html, base_url)
    return parse_generic_topics(html, base_url)


def filter_official_topics(topics: list[ForumTopic], config: ForumConfig) -> list[ForumTopic]:
    """
    Keep topics that pass every configured filter.

    An invalid title_pattern is ignored with a warning. Topics without a
    known author pass the author filter.
    """
    pattern = None
    if config.title_pattern:
        try:
            pattern = re.compile(config.title_pattern, re.IGNORECASE)
        except re.error:
            logger.warning(f"Invalid title pattern: {config.title_pattern}")

    kept = []
    for topic in topics:
        if config.sticky_only and not topic.is_sticky:
            continue
        if pattern is not None and not pattern.search(topic.title):
            continue
        if (
            config.official_author
            and topic.author
            and config.official_author.lower() not in topic.author.lower()
        ):
            continue
        kept.append(topic)
    return kept


# =============================================================================
# Post extraction
# =============================================================================


def _format_posts(posts: list[str]) -> str:
    # Changelog threads append new versions at the bottom
    newest_first = list(reversed(posts))[:MAX_POSTS]
    return POST_SEPARATOR.join(
        f"=== POST {i} ===\n{post}" for i, post in enumerate(newest_first, start=1))


def extract_topic_posts(html: str, forum_type: ForumType) -> str:
    """
    Collect the substantial posts of a topic page, newest first.

    Generic forums get the page text cut to 5000 chars instead.
    """
    if forum_type == "generic":
        return normalize_whitespace(strip_tags(html)[:GENERIC_POST_CHARS])

    soup = BeautifulSoup(html, "html.parser")
    selector = ".post .content, .postbody .content" if forum_type == "phpbb" else (
        ".topic-post .cooked, .post-stream .cooked")
    posts = [normalize_whitespace(el.get_text(" ")) for el in soup.select(selector)]

    if not posts and forum_type == "phpbb":
        blocks = re.findall(
            r'<div[^>]+class="[^"]*\bcontent\b[^"]*"[^>]*>(.*?)</div>',
            html, re.IGNORECASE | re.DOTALL)
        posts = [strip_tags(block) for block in blocks]

    posts = [post for post in posts if len(post) > MIN_POST_CHARS]
    logger.debug(f"Extracted {len(posts)} posts from {forum_type} topic")
    return _format_posts(posts) if posts else ""


def format_topics_for_extraction(topics: list[tuple[ForumTopic, str]]) -> str:
    blocks = [
        f"=== RELEASE {i}: {topic.title} ===\nLink: {topic.link}\n\n"
        f"{truncate(content, TOPIC_MAX_CHARS)}"
        for i, (topic, content) in enumerate(topics, start=1)
    ]
    return RELEASE_SEPARATOR.join(blocks)


# =============================================================================
# Adapter
# =============================================================================


async def _fetch_html(
    url: str,
    client: httpx.AsyncClient | None,
    escalator: FetchEscalator | None,
) -> str:
    if escalator is not None:
        result = await escalator.fetch_with_retry(url)
        return result.content
    headers = realistic_headers()
    headers["Accept-Encoding"] = "gzip, deflate"
    response = await get_document(url, client=client, headers=headers)
    return response.text


async def fetch_forum_release_notes(
    url: str,
    config: ForumConfig | None = None,
    client: httpx.AsyncClient | None = None,
    escalator: FetchEscalator | None = None,
    max_topics: int = 1,
) -> SourceContent:
    """
    Fetch release notes from a forum index or a single topic.

    Args:
        url: Forum index or topic URL
        config: Topic filters
        client: HTTP client for plain fetches
        escalator: When given, pages are fetched through it instead
        max_topics: Matching topics to read from an index

    Returns:
        SourceContent; empty and unsuccessful when nothing matched
    """
    config = config or ForumConfig()

    def empty() -> SourceContent:
        return SourceContent(url=url, kind=SourceKind.FORUM, text="", method="forum", success=False)

    try:
        html = await _fetch_html(url, client, escalator)
        forum_type = config.forum_type or detect_forum_type(url, html)
        logger.info(f"Reading {forum_type} forum: {url}")

        if is_topic_url(url):
            text = extract_topic_posts(html, forum_type)
            if not text:
                return empty()
            return SourceContent(url=url, kind=SourceKind.FORUM, text=text, method="forum")

        topics = parse_forum_topics(html, forum_type, url)
        official = filter_official_topics(topics, config)
        logger.info(f"Found {len(topics)} topics, {len(official)} after filtering")
        if not official:
            if topics:
                sample = ", ".join(t.title for t in topics[:3])
                logger.warning(f"No topics passed the filters; sample titles: {sample}")
            return empty()

        collected: list[tuple[ForumTopic, str]] = []
        for topic in official[:max_topics]:
            try:
                topic_html = await _fetch_html(topic.link, client, escalator)
            except VersionVaultError as e:
                logger.warning(f"Failed to fetch topic '{topic.title}': {e}")
                continue
            content = extract_topic_posts(topic_html, forum_type)
            if content:
                collected.append((topic, content))
    except VersionVaultError as e:
        logger.warning(f"Forum fetch failed for {url}: {e}")
        return empty()

    if not collected:
        return empty()
    return SourceContent(
        url=url,
        kind=SourceKind.FORUM,
        text=format_topics_for_extraction(collected),
        method="forum",
    )
