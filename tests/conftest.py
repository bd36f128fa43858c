"""
Shared pytest fixtures for VersionVault tests.

Provides reusable fixtures for:
- Configuration and settings
- Database instances
- Scripted fetchers, completion services and HTTP transports
- Sample release pages
"""

import json
import tempfile
from pathlib import Path
from typing import Callable, Generator

import httpx
import pytest

from version_vault.acquisition import AttemptContext, FetchEscalator
from version_vault.config import EscalationSettings, Settings
from version_vault.core.models import FetchMethod, FetchResponse
from version_vault.storage import Database


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """
    Provide test settings with a temporary database and no backoff.
    """
    return Settings(
        storage={"database_path": str(temp_dir / "test.db")},
        escalation={"base_delay_ms": 0},
        batch={"delay_seconds": 0},
    )


@pytest.fixture
def database() -> Generator[Database, None, None]:
    """Provide a fresh in-memory database."""
    db = Database(":memory:")
    yield db
    db.close()


class ScriptedFetcher:
    """
    MethodFetcher that replays queued responses.

    Each queued item is a FetchResponse to return or an Exception to
    raise. When the queue runs dry the last item repeats.
    """

    def __init__(self, *responses: FetchResponse | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[str, AttemptContext]] = []

    async def fetch(self, url: str, context: AttemptContext) -> FetchResponse:
        self.calls.append((url, context))
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeCompletion:
    """CompletionService returning a fixed response and recording prompts."""

    def __init__(self, response: str | dict | list | Exception) -> None:
        self.response = response
        self.prompts: list[tuple[str, str]] = []

    async def complete(self, system: str, user: str) -> str:
        self.prompts.append((system, user))
        if isinstance(self.response, Exception):
            raise self.response
        if isinstance(self.response, str):
            return self.response
        return json.dumps(self.response)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_escalator(recording_sleep: RecordingSleep) -> Callable[..., FetchEscalator]:
    """Build an escalator over scripted fetchers keyed by method."""

    def _make(
        fetchers: dict[FetchMethod, ScriptedFetcher],
        **settings,
    ) -> FetchEscalator:
        return FetchEscalator(
            fetchers,
            EscalationSettings(**settings),
            sleep=recording_sleep,
        )

    return _make


def mock_client(routes: dict[str, httpx.Response | Callable[[httpx.Request], httpx.Response]]) -> httpx.AsyncClient:
    """
    AsyncClient answering from a URL -> response table.

    Unknown URLs get a 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        return route

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


RELEASE_NOTES_BODY = """
<h2>Acme Widget 4.2.1</h2>
<p>Released March 3, 2024. Fixes a crash when importing large show files and
improves DMX output timing on Windows and macOS.</p>
<h2>Acme Widget 4.2.0</h2>
<p>Released January 15, 2024. Adds timeline markers, a new cue list editor and
support for sixteen additional output universes.</p>
<h2>Acme Widget 4.1.0</h2>
<p>Released October 2, 2023. Introduces the remote control web interface and
improves media playback performance on integrated graphics.</p>
"""


@pytest.fixture
def release_page_html() -> str:
    """A release notes page long enough to pass the content checks."""
    filler = "<p>" + ("Acme Widget keeps your show running smoothly. " * 30) + "</p>"
    return f"""<!DOCTYPE html>
<html lang="en">
<head><title>Acme Widget Release Notes</title></head>
<body>
<nav><a href="/">Home</a> <a href="/products">Products</a></nav>
<main>
<h1>Release Notes</h1>
{RELEASE_NOTES_BODY}
{filler}
</main>
<footer>Copyright Acme Corp</footer>
</body>
</html>"""


@pytest.fixture
def cloudflare_challenge_html() -> str:
    """A 1500-character Cloudflare challenge page."""
    head = "<html><head><title>Just a moment...</title></head><body><h1>Checking your browser before accessing</h1>"
    tail = "</body></html>"
    padding = "x" * (1500 - len(head) - len(tail))
    return head + padding + tail
