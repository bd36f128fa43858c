"""
Tests for webpage region extraction and app-store history.
"""

import json

import pytest

from version_vault.core.models import FetchMethod, FetchResponse
from version_vault.sources import (
    ContentRegionSelector,
    SourceKind,
    extract_page_text,
    extract_version_history,
    fetch_webpage_text,
    format_version_history,
    is_app_store_page,
)
from tests.conftest import ScriptedFetcher

APP_STORE_HTML = """<html><body>
<h1>Acme Remote</h1>
<script type="application/json" id="shoebox">{json}</script>
</body></html>"""


def _app_store_page(payload: dict) -> str:
    return APP_STORE_HTML.format(json=json.dumps(payload))


class TestContentRegionSelector:
    """Tests for largest-region selection."""

    def test_main_region_selected(self, release_page_html):
        content = extract_page_text("https://acme.example/releases", release_page_html)

        assert content.method == "main"
        assert content.kind == SourceKind.WEBPAGE
        assert "Acme Widget 4.2.1" in content.text
        assert "Copyright" not in content.text
        assert "Products" not in content.text

    def test_largest_region_wins(self):
        html = (
            "<div class='content'>" + "short " * 10 + "</div>"
            "<article>" + "long release text " * 100 + "</article>"
        )

        text, region = ContentRegionSelector(min_chars=100).select(html)

        assert region == "article"
        assert text.startswith("long release text")

    def test_small_page_uses_body(self):
        html = "<html><body><nav>Menu</nav><p>Version 1.0 is out.</p><script>var x = 1;</script></body></html>"

        content = extract_page_text("https://acme.example/", html)

        assert content.method == "body"
        assert content.text == "Version 1.0 is out."

    def test_empty_html(self):
        assert ContentRegionSelector().select("") == ("", None)


class TestAppStoreHistory:
    """Tests for embedded version history."""

    def test_extracts_history(self):
        html = _app_store_page({"data": {"attributes": {"versionHistory": [
            {"versionDisplay": "2.1", "releaseDate": "2024-05-01T00:00:00Z", "releaseNotes": "Fixes\n\n\n\nMore"},
            {"versionDisplay": "2.0", "releaseNotes": "New remote layout"},
            {"releaseNotes": "no version"},
        ]}}})

        entries = extract_version_history(html)

        assert [e.version for e in entries] == ["2.1", "2.0"]
        assert entries[0].release_date == "2024-05-01"
        assert entries[0].notes == "Fixes\n\nMore"
        assert entries[1].release_date is None

    def test_display_dates_normalized(self):
        html = _app_store_page({"versionHistory": [
            {"versionDisplay": "2.2", "releaseDate": "Nov 29, 2024"},
            {"versionDisplay": "2.1", "releaseDate": "Yesterday at noon"},
        ]})

        entries = extract_version_history(html)

        assert [e.release_date for e in entries] == ["2024-11-29", None]

    def test_double_encoded_cache(self):
        inner = json.dumps({"versionHistory": [{"versionString": "3.0"}, {"versionString": "2.9"}]})
        html = _app_store_page({"cache": inner})

        assert [e.version for e in extract_version_history(html)] == ["3.0", "2.9"]

    def test_no_history(self):
        assert extract_version_history("<html><body>Nothing here</body></html>") == []

    def test_page_detection(self):
        assert is_app_store_page("https://apps.apple.com/us/app/acme/id1", "")
        assert not is_app_store_page("https://acme.example/", "<html></html>")

    def test_app_store_short_circuits_region_selection(self):
        html = _app_store_page({"versionHistory": [
            {"versionDisplay": "2.1", "releaseDate": "2024-05-01", "releaseNotes": "Fixes"},
            {"versionDisplay": "2.0", "releaseNotes": "New"},
        ]})

        content = extract_page_text("https://apps.apple.com/us/app/acme/id1", html)

        assert content.method == "app_store_json"
        assert len(content.versions) == 2
        assert content.text == "Version 2.1 (2024-05-01)\nFixes\n\nVersion 2.0\nNew"

    def test_format_version_history_empty_notes(self):
        entries = extract_version_history(_app_store_page({"versionHistory": [{"version": "1.0"}]}))
        assert format_version_history(entries) == "Version 1.0"


class TestFetchWebpageText:
    """Tests for fetch_webpage_text over a scripted escalator."""

    @pytest.mark.asyncio
    async def test_success(self, make_escalator, release_page_html):
        escalator = make_escalator({FetchMethod.STATIC: ScriptedFetcher(FetchResponse(release_page_html, 200))})

        content = await fetch_webpage_text("https://acme.example/releases", escalator)

        assert content.success is True
        assert content.method == "static"
        assert content.fetch_result.attempts == 1
        assert "Acme Widget 4.2.0" in content.text

    @pytest.mark.asyncio
    async def test_failure_flagged(self, make_escalator):
        escalator = make_escalator(
            {FetchMethod.STATIC: ScriptedFetcher(FetchResponse("<h1>Access denied</h1>", 403))},
            max_attempts=2,
            escalate_methods=False,
        )

        content = await fetch_webpage_text("https://acme.example/releases", escalator)

        assert content.success is False
        assert content.text == "Access denied"
