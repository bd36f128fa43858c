"""
Page interaction helpers for interactive scraping.

Each helper swallows element-level failures and reports them through
its return value: a missing tab or accordion must not abort a render
that may still contain the release notes.
"""

from playwright.async_api import Page

from version_vault.utils.logging import get_logger

logger = get_logger(__name__)


async def wait_for_selector_soft(page: Page, selector: str, timeout_ms: int) -> bool:
    """
    Wait for a selector to appear.

    Returns:
        True if it appeared, False on timeout (the render continues)
    """
    try:
        await page.wait_for_selector(selector, timeout=timeout_ms)
        return True
    except Exception as e:
        logger.debug(f"Selector {selector!r} did not appear: {e}")
        return False


async def click_all(page: Page, selector: str, pause_ms: int = 500) -> int:
    """
    Click every element matching selector, pausing after each click.

    Returns:
        Number of successful clicks
    """
    clicked = 0
    try:
        elements = await page.query_selector_all(selector)
    except Exception as e:
        logger.debug(f"Invalid selector {selector!r}: {e}")
        return 0

    for element in elements:
        try:
            await element.click(timeout=5000)
            clicked += 1
            await page.wait_for_timeout(pause_ms)
        except Exception as e:
            logger.debug(f"Click failed for {selector!r}: {e}")

    return clicked


async def scroll_all_into_view(page: Page, selector: str) -> int:
    """Scroll each match of selector into view to trigger lazy loading."""
    scrolled = 0
    try:
        elements = await page.query_selector_all(selector)
    except Exception as e:
        logger.debug(f"Invalid selector {selector!r}: {e}")
        return 0

    for element in elements:
        try:
            await element.scroll_into_view_if_needed(timeout=5000)
            scrolled += 1
        except Exception as e:
            logger.debug(f"Scroll failed for {selector!r}: {e}")

    return scrolled


async def visible_text(page: Page) -> str:
    """Return document.body.innerText, or an empty string."""
    text = await page.evaluate(
        "() => document.body ? document.body.innerText : ''")
    return (text or "").strip()
