"""
Method fetchers: one implementation per escalation step.

The escalator calls a MethodFetcher with the attempt's context and
gets back a raw FetchResponse. Static fetches go through httpx; the
browser steps delegate to a Renderer.
"""

from dataclasses import dataclass, field
from typing import Protocol

import httpx

from version_vault.browser.renderer import Renderer, build_render_options
from version_vault.config.settings import Settings
from version_vault.core.exceptions import FetchError
from version_vault.core.models import (
    BlockerDetection,
    FetchMethod,
    FetchResponse,
    ScrapingStrategy,
)
from version_vault.acquisition.rate_limiter import HostThrottle
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

# Statuses whose bodies are handed to blocker detection instead of raising
PASS_THROUGH_STATUSES = frozenset({403, 429, 503})


@dataclass(frozen=True)
class AttemptContext:
    """Everything a fetcher needs to know about the current attempt."""

    method: FetchMethod
    attempt: int
    user_agent: str
    headers: dict[str, str] = field(default_factory=dict)
    strategy: ScrapingStrategy | None = None
    last_blocker: BlockerDetection | None = None


class MethodFetcher(Protocol):
    """Executes one acquisition method."""

    async def fetch(self, url: str, context: AttemptContext) -> FetchResponse:
        ...


def _retry_after_seconds(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


class StaticFetcher:
    """
    Plain HTTP GET with realistic browser headers.

    Transport failures are re-labelled with the browser error codes
    blocker detection knows (ERR_CONNECTION, ERR_HTTP2_PROTOCOL_ERROR).
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 15.0,
        throttle: HostThrottle | None = None,
    ) -> None:
        self._client = client
        self.timeout_seconds = timeout_seconds
        self.throttle = throttle

    async def fetch(self, url: str, context: AttemptContext) -> FetchResponse:
        """
        Fetch url once.

        Raises:
            FetchError: On transport failure or an error status that is
                not a bot-protection candidate
        """
        headers = dict(context.headers)
        # httpx decodes brotli only when the optional codec is installed
        headers["Accept-Encoding"] = "gzip, deflate"

        if self.throttle is not None:
            await self.throttle.acquire(url)

        client = self._client or httpx.AsyncClient()
        try:
            response = await client.get(
                url,
                headers=headers,
                timeout=self.timeout_seconds,
                follow_redirects=True,
            )
        except httpx.TimeoutException as e:
            raise FetchError(f"Timeout fetching page: {e}", url=url, retry_after=5.0) from e
        except httpx.ConnectError as e:
            raise FetchError(f"ERR_CONNECTION: {e}", url=url) from e
        except httpx.RemoteProtocolError as e:
            raise FetchError(f"ERR_HTTP2_PROTOCOL_ERROR: {e}", url=url) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Request failed: {e}", url=url) from e
        finally:
            if self._client is None:
                await client.aclose()

        status = response.status_code
        if status == 429 and self.throttle is not None:
            retry_after = _retry_after_seconds(response.headers.get("retry-after"))
            if retry_after:
                self.throttle.defer(url, retry_after)

        if status >= 400 and status not in PASS_THROUGH_STATUSES:
            raise FetchError(f"HTTP {status}", url=url, status_code=status)

        return FetchResponse(
            html=response.text,
            status_code=status,
            headers=dict(response.headers),
        )


class RendererFetcher:
    """Adapts a Renderer to the MethodFetcher interface."""

    def __init__(self, renderer: Renderer) -> None:
        self.renderer = renderer

    async def fetch(self, url: str, context: AttemptContext) -> FetchResponse:
        options = build_render_options(
            context.method,
            url,
            headers=context.headers,
            strategy=context.strategy,
            last_blocker=context.last_blocker,
        )
        return await self.renderer.render(url, options)


def build_fetchers(
    settings: Settings,
    client: httpx.AsyncClient | None = None,
    local_renderer: Renderer | None = None,
    remote_renderer: Renderer | None = None,
) -> dict[FetchMethod, MethodFetcher]:
    """
    Register a fetcher per method from what is available.

    The hosted renderer, when given, serves both browserless steps;
    otherwise the local renderer does. Interactive always needs the
    local renderer. Methods without a fetcher fail their attempt and
    the escalator moves on.
    """
    throttle = HostThrottle(
        settings.escalation.politeness_delay_seconds,
        max_defer_seconds=settings.escalation.max_retry_after_seconds,
    )
    fetchers: dict[FetchMethod, MethodFetcher] = {
        FetchMethod.STATIC: StaticFetcher(
            client=client,
            timeout_seconds=settings.escalation.static_timeout_seconds,
            throttle=throttle,
        ),
    }

    browser_step = remote_renderer or local_renderer
    if browser_step is not None:
        fetchers[FetchMethod.BROWSERLESS] = RendererFetcher(browser_step)
        fetchers[FetchMethod.BROWSERLESS_EXTENDED] = RendererFetcher(browser_step)

    if local_renderer is not None:
        fetchers[FetchMethod.INTERACTIVE] = RendererFetcher(local_renderer)

    logger.debug(f"Registered fetchers: {[m.value for m in fetchers]}")
    return fetchers
