"""
Tests for PDF and plain-text adapters and source dispatch.
"""

from io import BytesIO

import httpx
import pytest
from pypdf import PdfWriter

from version_vault.config import SourceSettings
from version_vault.core.exceptions import SourceParseError
from version_vault.core.models import FetchMethod, FetchResponse
from version_vault.sources import (
    SourceKind,
    acquire_source,
    detect_source_kind,
    extract_pdf_text,
    fetch_pdf_text,
    fetch_plaintext,
    is_pdf_url,
    is_plaintext_url,
    is_repository_raw_url,
)
from tests.conftest import ScriptedFetcher, mock_client

RAW_CHANGELOG_URL = "https://raw.githubusercontent.com/acme/widget/main/CHANGELOG.md"

SITEMAP = """<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://acme.example/about</loc></url>
  <url><loc>https://acme.example/support/release-notes</loc></url>
</urlset>"""


def _blank_pdf(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def _respond(**kwargs):
    return lambda request: httpx.Response(200, **kwargs)


class TestPdf:
    """Tests for the PDF adapter."""

    def test_is_pdf_url(self):
        assert is_pdf_url("https://acme.example/docs/Notes.PDF?download=1")
        assert not is_pdf_url("https://acme.example/pdf-guide")

    def test_page_markers(self):
        assert extract_pdf_text(_blank_pdf(2)) == "--- PAGE 1 ---\n\n\n\n--- PAGE 2 ---"

    def test_invalid_bytes(self):
        with pytest.raises(SourceParseError) as exc_info:
            extract_pdf_text(b"this is not a pdf")

        assert exc_info.value.source_kind == "pdf"

    @pytest.mark.asyncio
    async def test_fetch(self):
        url = "https://acme.example/notes.pdf"
        async with mock_client({url: _respond(content=_blank_pdf())}) as client:
            content = await fetch_pdf_text(url, client=client)

        assert content.success is True
        assert content.kind == SourceKind.PDF
        assert content.text == "--- PAGE 1 ---"

    @pytest.mark.asyncio
    async def test_fetch_unreadable(self):
        url = "https://acme.example/notes.pdf"
        async with mock_client({url: _respond(content=b"<html>login</html>")}) as client:
            content = await fetch_pdf_text(url, client=client)

        assert content.success is False
        assert content.text == ""


class TestPlaintext:
    """Tests for raw repository files."""

    @pytest.mark.parametrize("url, expected", [
        (RAW_CHANGELOG_URL, True),
        ("https://gitlab.com/acme/widget/-/raw/main/CHANGELOG.md", True),
        ("https://bitbucket.org/acme/widget/raw/main/CHANGELOG.md", True),
        ("https://github.com/acme/widget/blob/main/CHANGELOG.md", False),
        ("https://bitbucket.org/acme/widget/src/main/CHANGELOG.md", False),
    ])
    def test_is_repository_raw_url(self, url, expected):
        assert is_repository_raw_url(url) is expected

    @pytest.mark.parametrize("url, expected", [
        ("https://acme.example/docs/HISTORY.rst", True),
        ("https://acme.example/downloads/readme.txt", True),
        ("https://acme.example/widget/changelog", False),
        ("https://acme.example/releases", False),
        ("https://github.com/acme/widget/blob/main/CHANGELOG.md", False),
    ])
    def test_is_plaintext_url(self, url, expected):
        assert is_plaintext_url(url) is expected

    @pytest.mark.asyncio
    async def test_fetch_normalizes_lines(self):
        body = "# Changelog\r\n\r\n\r\n\r\n## 4.2.1\r\n- Fix crash   \r\n"
        async with mock_client({RAW_CHANGELOG_URL: _respond(text=body)}) as client:
            content = await fetch_plaintext(RAW_CHANGELOG_URL, client=client)

        assert content.text == "# Changelog\n\n## 4.2.1\n- Fix crash"
        assert content.method == "plaintext"

    @pytest.mark.asyncio
    async def test_fetch_missing(self):
        async with mock_client({}) as client:
            content = await fetch_plaintext(RAW_CHANGELOG_URL, client=client)

        assert content.success is False


class TestDetectSourceKind:
    """Tests for URL-based adapter selection."""

    @pytest.mark.parametrize("url, expected", [
        ("https://acme.example/releases", SourceKind.WEBPAGE),
        ("https://acme.example/manual/release-notes.pdf", SourceKind.PDF),
        (RAW_CHANGELOG_URL, SourceKind.PLAINTEXT),
        ("https://acme.example/widget/changelog", SourceKind.WEBPAGE),
        ("https://github.com/acme/widget/blob/main/CHANGELOG.md", SourceKind.WEBPAGE),
        ("https://acme.example/feed", SourceKind.RSS),
        ("https://acme.example/blog/rss.xml", SourceKind.RSS),
        ("https://forum.acme.example/viewtopic.php?t=1", SourceKind.FORUM),
        ("https://acme.example/forums/announcements", SourceKind.FORUM),
    ])
    def test_from_url(self, url, expected):
        assert detect_source_kind(url) == expected

    def test_declared_kind_wins(self):
        assert detect_source_kind("https://acme.example/releases", "sitemap") == SourceKind.SITEMAP
        assert detect_source_kind("https://acme.example/x.pdf", SourceKind.WEBPAGE) == SourceKind.WEBPAGE

    def test_unknown_declared_kind(self):
        with pytest.raises(ValueError):
            detect_source_kind("https://acme.example/", "carrier-pigeon")


class TestAcquireSource:
    """Tests for acquire_source dispatch."""

    @pytest.mark.asyncio
    async def test_webpage_uses_escalator(self, make_escalator, release_page_html):
        fetcher = ScriptedFetcher(FetchResponse(release_page_html, 200))
        escalator = make_escalator({FetchMethod.STATIC: fetcher})

        content = await acquire_source("https://acme.example/releases", SourceKind.WEBPAGE, escalator)

        assert content.kind == SourceKind.WEBPAGE
        assert content.method == "static"
        assert fetcher.calls[0][0] == "https://acme.example/releases"

    @pytest.mark.asyncio
    async def test_plaintext_skips_escalator(self, make_escalator):
        fetcher = ScriptedFetcher(FetchResponse("unused", 200))
        escalator = make_escalator({FetchMethod.STATIC: fetcher})

        async with mock_client({RAW_CHANGELOG_URL: _respond(text="## 1.0\n- First")}) as client:
            content = await acquire_source(RAW_CHANGELOG_URL, SourceKind.PLAINTEXT, escalator, client=client)

        assert content.text == "## 1.0\n- First"
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_sitemap_reads_best_page(self, make_escalator, release_page_html):
        fetcher = ScriptedFetcher(FetchResponse(release_page_html, 200))
        escalator = make_escalator({FetchMethod.STATIC: fetcher})
        routes = {"https://acme.example/sitemap.xml": _respond(text=SITEMAP)}

        async with mock_client(routes) as client:
            content = await acquire_source(
                "https://acme.example/", SourceKind.SITEMAP, escalator, client=client,
                settings=SourceSettings())

        assert content.kind == SourceKind.SITEMAP
        assert content.url == "https://acme.example/support/release-notes"
        assert fetcher.calls[0][0] == "https://acme.example/support/release-notes"
        assert content.success is True

    @pytest.mark.asyncio
    async def test_sitemap_without_candidates(self, make_escalator):
        escalator = make_escalator({})

        async with mock_client({}) as client:
            content = await acquire_source("https://acme.example/", SourceKind.SITEMAP, escalator, client=client)

        assert content.success is False
        assert content.method == "sitemap"
