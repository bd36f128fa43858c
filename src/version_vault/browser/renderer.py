"""
Headless-browser boundary.

The pipeline depends only on the Renderer protocol: render a URL,
optionally run a small scripted interaction, return HTML or text.
Which backend does the rendering (local Playwright or a hosted
Browserless instance) is a deployment choice.
"""

from dataclasses import dataclass, field
from typing import Literal, Protocol, runtime_checkable

from version_vault.core.models import (
    BlockerDetection,
    BlockerType,
    FetchMethod,
    FetchResponse,
    ScrapingStrategy,
)

WaitUntil = Literal["networkidle0", "networkidle2", "load", "domcontentloaded"]

# Hosts whose pages render content late and need an explicit selector wait
WAIT_SELECTOR_HINTS: dict[str, str] = {
    # ServiceNow knowledge base (Angular lazy rendering)
    "support.zoom.com": (
        '.kb-article-content, .kb_article, article, [data-component="article"]'
    ),
}


@dataclass
class RenderOptions:
    """How a renderer should load and post-process a page."""

    wait_until: WaitUntil = "networkidle2"
    timeout_ms: int = 30000
    wait_for_selector: str | None = None
    selector_timeout_ms: int = 10000
    settle_ms: int = 0
    strategy: ScrapingStrategy | None = None
    headers: dict[str, str] = field(default_factory=dict)


@runtime_checkable
class Renderer(Protocol):
    """Anything that can turn a URL into rendered page content."""

    async def render(self, url: str, options: RenderOptions) -> FetchResponse:
        ...


def _host_hint(url: str) -> str | None:
    for host, selector in WAIT_SELECTOR_HINTS.items():
        if host in url:
            return selector
    return None


def build_render_options(
    method: FetchMethod,
    url: str,
    headers: dict[str, str] | None = None,
    strategy: ScrapingStrategy | None = None,
    last_blocker: BlockerDetection | None = None,
) -> RenderOptions:
    """
    Choose render options for one escalation step.

    browserless waits for network idle (two connections) for up to 30s;
    browserless-extended, or any step after a Cloudflare block, waits
    for full network idle for up to 60s. Interactive renders carry the
    strategy and always get the 60s budget.
    """
    headers = dict(headers or {})
    hint = _host_hint(url)

    if hint is not None:
        return RenderOptions(
            wait_until="networkidle2",
            timeout_ms=60000,
            wait_for_selector=hint,
            settle_ms=3000,
            strategy=strategy if method is FetchMethod.INTERACTIVE else None,
            headers=headers,
        )

    if method is FetchMethod.INTERACTIVE:
        return RenderOptions(
            wait_until="networkidle2",
            timeout_ms=60000,
            strategy=strategy or ScrapingStrategy(),
            headers=headers,
        )

    cloudflare = (
        last_blocker is not None
        and last_blocker.blocker_type is BlockerType.CLOUDFLARE
    )
    if method is FetchMethod.BROWSERLESS_EXTENDED or cloudflare:
        return RenderOptions(
            wait_until="networkidle0",
            timeout_ms=60000,
            headers=headers,
        )

    return RenderOptions(wait_until="networkidle2", timeout_ms=30000, headers=headers)
