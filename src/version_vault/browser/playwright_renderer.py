"""
Local Playwright renderer.

Implements the Renderer protocol on top of BrowserManager. Serves the
browserless and extended steps when no hosted service is configured,
and always serves the interactive step, which replays a
ScrapingStrategy (click, expand, wait, custom script) before capture.
"""

import html as html_lib

from version_vault.browser.actions import (
    click_all,
    scroll_all_into_view,
    visible_text,
    wait_for_selector_soft,
)
from version_vault.browser.manager import BrowserManager
from version_vault.browser.renderer import RenderOptions
from version_vault.core.exceptions import NavigationError, RenderError
from version_vault.core.models import FetchResponse
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

# Playwright has a single network-idle state
_WAIT_STATES = {
    "networkidle0": "networkidle",
    "networkidle2": "networkidle",
    "load": "load",
    "domcontentloaded": "domcontentloaded",
}

# The strategy's wait-for-selector gets more time than the generic hint
STRATEGY_SELECTOR_TIMEOUT_MS = 40000


class PlaywrightRenderer:
    """
    Render pages with a local browser.

    Example:
        >>> async with BrowserManager(settings.browser) as manager:
        ...     renderer = PlaywrightRenderer(manager)
        ...     response = await renderer.render(url, RenderOptions())
    """

    def __init__(self, manager: BrowserManager) -> None:
        self.manager = manager

    async def render(self, url: str, options: RenderOptions) -> FetchResponse:
        """
        Navigate, run interactions, and capture the page.

        Raises:
            NavigationError: If navigation fails; the message keeps the
                browser's net:: error code for blocker detection
            RenderError: If capture fails after navigation
        """
        if not self.manager.is_running:
            await self.manager.start()

        user_agent = options.headers.get("User-Agent")
        context = await self.manager.new_context(
            user_agent=user_agent,
            extra_headers=options.headers,
        )
        try:
            page = await context.new_page()
            try:
                response = await page.goto(
                    url,
                    wait_until=_WAIT_STATES.get(options.wait_until, "load"),
                    timeout=options.timeout_ms,
                )
            except Exception as e:
                message = str(e)
                if "timeout" in message.lower():
                    raise NavigationError(
                        f"Navigation timeout: {message}", url=url, retry_after=10.0
                    ) from e
                raise NavigationError(f"Navigation failed: {message}", url=url) from e

            status = response.status if response else None
            headers = dict(response.headers) if response else {}

            used_script = await self._interact(page, options)

            try:
                if used_script:
                    text = await visible_text(page)
                    body = f"<html><body>{html_lib.escape(text)}</body></html>"
                else:
                    body = await page.content()
            except Exception as e:
                raise RenderError(f"Failed to capture page: {e}", url=url) from e

            logger.debug(f"Rendered {url} ({len(body)} chars, status={status})")
            return FetchResponse(html=body, status_code=status, headers=headers)
        finally:
            await context.close()

    async def _interact(self, page, options: RenderOptions) -> bool:
        """
        Apply the options' waits and strategy.

        Returns:
            True if a custom script ran (the caller then captures text)
        """
        if options.wait_for_selector:
            await wait_for_selector_soft(
                page, options.wait_for_selector, options.selector_timeout_ms)

        strategy = options.strategy
        used_script = False

        if strategy is not None:
            if strategy.wait_for_selector:
                await wait_for_selector_soft(
                    page, strategy.wait_for_selector, STRATEGY_SELECTOR_TIMEOUT_MS)

            for selector in [*strategy.selectors, *strategy.release_notes_selectors]:
                clicks = await click_all(page, selector)
                logger.debug(f"Clicked {clicks} element(s) for {selector!r}")

            for selector in strategy.expand_selectors:
                await scroll_all_into_view(page, selector)

            if strategy.custom_script:
                try:
                    await page.evaluate(strategy.custom_script)
                    used_script = True
                except Exception as e:
                    logger.warning(f"Custom script failed: {e}")

            await page.wait_for_timeout(strategy.wait_time_ms)

        if options.settle_ms:
            await page.wait_for_timeout(options.settle_ms)

        return used_script
