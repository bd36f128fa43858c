"""
Tests for render options, the Browserless renderer and renderer-backed fetchers.

No browser is launched; the hosted renderer talks to a mock transport.
"""

import json

import httpx
import pytest

from version_vault.acquisition import AttemptContext, RendererFetcher, StaticFetcher, build_fetchers
from version_vault.browser import BrowserlessRenderer, Renderer, RenderOptions, build_render_options
from version_vault.config import BrowserlessSettings, EscalationSettings, Settings
from version_vault.core.exceptions import ConfigurationError, RenderError
from version_vault.core.models import (
    BlockerDetection,
    BlockerType,
    FetchMethod,
    FetchResponse,
    ScrapingStrategy,
)

URL = "https://acme.example/releases"


class FakeRenderer:
    """Renderer recording the options it was asked to use."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, RenderOptions]] = []

    async def render(self, url: str, options: RenderOptions) -> FetchResponse:
        self.calls.append((url, options))
        return FetchResponse("<html>rendered</html>", 200)


class TestBuildRenderOptions:
    """Tests for per-step render options."""

    def test_browserless_defaults(self):
        options = build_render_options(FetchMethod.BROWSERLESS, URL)

        assert options.wait_until == "networkidle2"
        assert options.timeout_ms == 30000
        assert options.strategy is None

    def test_extended(self):
        options = build_render_options(FetchMethod.BROWSERLESS_EXTENDED, URL)

        assert options.wait_until == "networkidle0"
        assert options.timeout_ms == 60000

    def test_cloudflare_gets_extended_wait(self):
        blocker = BlockerDetection(True, BlockerType.CLOUDFLARE, 95, "challenge")

        options = build_render_options(FetchMethod.BROWSERLESS, URL, last_blocker=blocker)

        assert options.wait_until == "networkidle0"

    def test_interactive_carries_strategy(self):
        strategy = ScrapingStrategy(selectors=["#more"])

        options = build_render_options(FetchMethod.INTERACTIVE, URL, strategy=strategy)

        assert options.strategy == strategy
        assert options.timeout_ms == 60000

    def test_interactive_without_strategy(self):
        assert build_render_options(FetchMethod.INTERACTIVE, URL).strategy == ScrapingStrategy()

    def test_host_hint(self):
        options = build_render_options(FetchMethod.BROWSERLESS, "https://support.zoom.com/hc/en/article?id=1")

        assert options.wait_for_selector is not None
        assert ".kb-article-content" in options.wait_for_selector
        assert options.settle_ms == 3000
        assert options.strategy is None


class TestBrowserlessRenderer:
    """Tests for the hosted renderer."""

    @pytest.mark.asyncio
    async def test_render(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, text="<html>ok</html>")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        renderer = BrowserlessRenderer("tok", base_url="https://browserless.example/", client=client)

        response = await renderer.render(URL, RenderOptions(
            wait_for_selector="main", headers={"User-Agent": "UA"}))

        assert response.html == "<html>ok</html>"
        assert seen["path"] == "/content"
        assert seen["params"]["token"] == "tok"
        assert seen["params"]["stealth"] == "true"
        assert seen["body"]["url"] == URL
        assert seen["body"]["gotoOptions"] == {"waitUntil": "networkidle2", "timeout": 30000}
        assert seen["body"]["waitForSelector"] == {"selector": "main", "timeout": 10000}
        assert seen["body"]["setExtraHTTPHeaders"] == {"User-Agent": "UA"}

    @pytest.mark.asyncio
    async def test_service_error(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda request: httpx.Response(500, text="boom")))
        renderer = BrowserlessRenderer("tok", client=client)

        with pytest.raises(RenderError) as exc_info:
            await renderer.render(URL, RenderOptions())

        assert exc_info.value.url == URL
        assert "500" in str(exc_info.value)

    def test_requires_key(self):
        with pytest.raises(ConfigurationError):
            BrowserlessRenderer("")

    def test_from_settings_missing_env(self, monkeypatch):
        monkeypatch.delenv("VV_BROWSERLESS_TEST", raising=False)

        with pytest.raises(ConfigurationError):
            BrowserlessRenderer.from_settings(BrowserlessSettings(api_key_env_var="VV_BROWSERLESS_TEST"))

    def test_satisfies_protocol(self):
        assert isinstance(BrowserlessRenderer("tok"), Renderer)


class TestRendererFetchers:
    """Tests for RendererFetcher and build_fetchers."""

    @pytest.mark.asyncio
    async def test_fetcher_passes_context(self):
        renderer = FakeRenderer()
        strategy = ScrapingStrategy(expand_selectors=[".release"])
        context = AttemptContext(
            method=FetchMethod.INTERACTIVE,
            attempt=3,
            user_agent="UA",
            headers={"User-Agent": "UA"},
            strategy=strategy,
        )

        response = await RendererFetcher(renderer).fetch(URL, context)

        assert response.html == "<html>rendered</html>"
        _, options = renderer.calls[0]
        assert options.strategy == strategy
        assert options.headers == {"User-Agent": "UA"}

    def test_static_only(self):
        fetchers = build_fetchers(Settings())

        assert list(fetchers) == [FetchMethod.STATIC]
        assert isinstance(fetchers[FetchMethod.STATIC], StaticFetcher)

    def test_remote_serves_browserless_steps(self):
        local, remote = FakeRenderer(), FakeRenderer()

        fetchers = build_fetchers(Settings(), local_renderer=local, remote_renderer=remote)

        assert fetchers[FetchMethod.BROWSERLESS].renderer is remote
        assert fetchers[FetchMethod.BROWSERLESS_EXTENDED].renderer is remote
        assert fetchers[FetchMethod.INTERACTIVE].renderer is local

    def test_local_only(self):
        local = FakeRenderer()

        fetchers = build_fetchers(Settings(), local_renderer=local)

        assert fetchers[FetchMethod.BROWSERLESS].renderer is local
        assert len(fetchers) == 4

    def test_throttle_takes_retry_after_cap(self):
        settings = Settings(escalation=EscalationSettings(max_retry_after_seconds=7.0))

        fetchers = build_fetchers(settings)

        assert fetchers[FetchMethod.STATIC].throttle.max_defer_seconds == 7.0
