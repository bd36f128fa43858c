"""
Tests for the forum source adapter.
"""

import httpx
import pytest

from version_vault.sources import (
    ForumConfig,
    ForumTopic,
    detect_forum_type,
    extract_topic_posts,
    fetch_forum_release_notes,
    filter_official_topics,
    is_topic_url,
    parse_forum_topics,
)
from version_vault.sources.forum import POST_SEPARATOR
from tests.conftest import mock_client

INDEX_URL = "https://forum.acme.example/viewforum.php?f=2"
TOPIC_URL = "https://forum.acme.example/viewtopic.php?t=10&f=2"

PHPBB_INDEX = """<html><body>
<div class="forumbg">
<ul class="topiclist topics">
  <li class="row sticky">
    <dl><dt>
      <a href="./viewtopic.php?t=10&amp;f=2" class="topictitle">Acme Widget 4.2.1 released</a>
      by <span class="username">AcmeTeam</span>
    </dt><dd class="posts">3</dd></dl>
  </li>
  <li class="row">
    <dl><dt>
      <a href="./viewtopic.php?t=11&amp;f=2" class="topictitle">Help with DMX output</a>
      by <span class="username">someone</span>
    </dt><dd class="posts">12</dd></dl>
  </li>
</ul>
</div>
<p>Powered by phpBB</p>
</body></html>"""

PHPBB_TOPIC = """<html><body>
<div class="post"><div class="postbody"><div class="content">Acme Widget 4.2.0 is available with timeline markers and a new cue list editor.</div></div></div>
<div class="post"><div class="postbody"><div class="content">Thanks!</div></div></div>
<div class="post"><div class="postbody"><div class="content">Acme Widget 4.2.1 fixes a crash when importing large show files on Windows.</div></div></div>
<p>Powered by phpBB</p>
</body></html>"""

DISCOURSE_INDEX = """<html><body><div class="topic-list">
<div class="topic-list-item">
  <span class="topic-statuses"><span class="pinned"></span></span>
  <span class="title"><a href="/t/widget-4-2-released/55">Widget 4.2 released</a></span>
</div>
<div class="topic-list-item">
  <span class="title"><a href="/t/feature-ideas/56">Feature ideas</a></span>
</div>
</div></body></html>"""


def _html(body: str):
    return lambda request: httpx.Response(200, text=body)


class TestDetection:
    """Tests for forum type and topic URL detection."""

    def test_phpbb_by_url(self):
        assert detect_forum_type(INDEX_URL, "") == "phpbb"

    def test_discourse_by_markup(self):
        assert detect_forum_type("https://community.acme.example/", DISCOURSE_INDEX) == "discourse"

    def test_generic(self):
        assert detect_forum_type("https://acme.example/board", "<ul><li>x</li></ul>") == "generic"

    @pytest.mark.parametrize("url, expected", [
        (TOPIC_URL, True),
        ("https://community.acme.example/t/widget-4-2-released/55", True),
        ("https://acme.example/forum/posts/t1234/", True),
        (INDEX_URL, False),
    ])
    def test_is_topic_url(self, url, expected):
        assert is_topic_url(url) is expected


class TestTopicListing:
    """Tests for topic parsing and filtering."""

    def test_phpbb_topics(self):
        topics = parse_forum_topics(PHPBB_INDEX, "phpbb", INDEX_URL)

        assert len(topics) == 2
        first = topics[0]
        assert first.title == "Acme Widget 4.2.1 released"
        assert first.link == TOPIC_URL
        assert first.author == "AcmeTeam"
        assert first.is_sticky is True
        assert first.replies == 3
        assert topics[1].is_sticky is False

    def test_phpbb_regex_fallback(self):
        html = '<div class="sticky"><a href="viewtopic.php?t=5" class="topictitle">Version 3.0 notes</a></div>'

        topics = parse_forum_topics(html, "phpbb", INDEX_URL)

        assert [t.title for t in topics] == ["Version 3.0 notes"]
        assert topics[0].is_sticky is True
        assert topics[0].link == "https://forum.acme.example/viewtopic.php?t=5"

    def test_discourse_topics(self):
        topics = parse_forum_topics(DISCOURSE_INDEX, "discourse", "https://community.acme.example/latest")

        assert [t.is_sticky for t in topics] == [True, False]
        assert topics[0].link == "https://community.acme.example/t/widget-4-2-released/55"

    def test_generic_topics_skip_navigation(self):
        html = '<a href="/">Home</a><a href="/x">Hi</a><a href="/r/1">Release 1.0 is out</a>'

        topics = parse_forum_topics(html, "generic", "https://acme.example/board")

        assert [t.title for t in topics] == ["Release 1.0 is out"]

    def test_filters(self):
        topics = [
            ForumTopic("Acme Widget 4.2.1 released", "a", author="AcmeTeam", is_sticky=True),
            ForumTopic("Help with DMX output", "b", author="someone"),
            ForumTopic("Release 4.2.0", "c"),
        ]

        assert len(filter_official_topics(topics, ForumConfig(sticky_only=True))) == 1
        assert [t.link for t in filter_official_topics(topics, ForumConfig(title_pattern="releas"))] == ["a", "c"]
        assert [t.link for t in filter_official_topics(topics, ForumConfig(official_author="acmeteam"))] == ["a", "c"]
        assert len(filter_official_topics(topics, ForumConfig(title_pattern="(["))) == 3

    def test_config_from_camel_case(self):
        config = ForumConfig.from_dict({"forumType": "discourse", "stickyOnly": True, "titlePattern": "v\\d"})

        assert config.forum_type == "discourse"
        assert config.sticky_only is True
        assert config.title_pattern == "v\\d"


class TestTopicPosts:
    """Tests for post extraction."""

    def test_phpbb_posts_newest_first(self):
        text = extract_topic_posts(PHPBB_TOPIC, "phpbb")

        posts = text.split(POST_SEPARATOR)
        assert len(posts) == 2
        assert posts[0].startswith("=== POST 1 ===\nAcme Widget 4.2.1")
        assert "Thanks!" not in text

    def test_posts_capped_at_twenty(self):
        html = "".join(
            f'<div class="post"><div class="content">Acme Widget 1.{i}.0 adds another round of '
            f'fixes for cue playback.</div></div>'
            for i in range(25)
        )

        posts = extract_topic_posts(html, "phpbb").split(POST_SEPARATOR)

        assert len(posts) == 20
        assert posts[0].startswith("=== POST 1 ===\nAcme Widget 1.24.0 ")
        assert posts[-1].startswith("=== POST 20 ===\nAcme Widget 1.5.0 ")

    def test_discourse_posts(self):
        html = (
            '<div class="topic-post"><div class="cooked"><p>Widget 4.2 ships with a rewritten '
            'playback engine and lower latency.</p></div></div>'
        )

        text = extract_topic_posts(html, "discourse")

        assert "rewritten playback engine" in text

    def test_generic_page_text(self):
        text = extract_topic_posts("<div><b>Release</b> notes " + "y" * 6000 + "</div>", "generic")

        assert text.startswith("Release notes")
        assert len(text) <= 5000

    def test_no_substantial_posts(self):
        assert extract_topic_posts('<div class="post"><div class="content">+1</div></div>', "phpbb") == ""


class TestFetchForumReleaseNotes:
    """Tests for the forum adapter over a mock transport."""

    @pytest.mark.asyncio
    async def test_index_to_topic(self):
        routes = {INDEX_URL: _html(PHPBB_INDEX), TOPIC_URL: _html(PHPBB_TOPIC)}
        async with mock_client(routes) as client:
            content = await fetch_forum_release_notes(
                INDEX_URL, ForumConfig(sticky_only=True), client=client)

        assert content.success is True
        assert content.method == "forum"
        assert content.text.startswith("=== RELEASE 1: Acme Widget 4.2.1 released ===")
        assert "fixes a crash" in content.text

    @pytest.mark.asyncio
    async def test_topic_url_read_directly(self):
        async with mock_client({TOPIC_URL: _html(PHPBB_TOPIC)}) as client:
            content = await fetch_forum_release_notes(TOPIC_URL, client=client)

        assert content.text.startswith("=== POST 1 ===")

    @pytest.mark.asyncio
    async def test_nothing_matches(self):
        async with mock_client({INDEX_URL: _html(PHPBB_INDEX)}) as client:
            content = await fetch_forum_release_notes(
                INDEX_URL, ForumConfig(title_pattern="^Beta"), client=client)

        assert content.success is False
        assert content.text == ""

    @pytest.mark.asyncio
    async def test_index_unavailable(self):
        async with mock_client({}) as client:
            content = await fetch_forum_release_notes(INDEX_URL, client=client)

        assert content.success is False
