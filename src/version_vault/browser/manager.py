"""
Playwright browser lifecycle management.

Owns the Playwright driver and one browser process; hands out isolated
contexts configured with the identity chosen for each attempt.
"""

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Playwright,
)

from version_vault.config.settings import BrowserSettings
from version_vault.core.exceptions import BrowserError
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)


class BrowserManager:
    """
    Manages the Playwright browser used by the local renderer.

    Example:
        >>> async with BrowserManager(settings.browser) as manager:
        ...     context = await manager.new_context(user_agent=ua)
        ...     page = await context.new_page()
    """

    def __init__(self, settings: BrowserSettings) -> None:
        self.settings = settings
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    async def start(self) -> None:
        """
        Start Playwright and launch the configured browser engine.

        Raises:
            BrowserError: If the browser fails to launch
        """
        if self._browser is not None:
            return

        try:
            logger.info(
                f"Launching {self.settings.browser_type} "
                f"(headless={self.settings.headless})"
            )
            self._playwright = await async_playwright().start()
            engine = getattr(self._playwright, self.settings.browser_type)
            self._browser = await engine.launch(headless=self.settings.headless)
        except Exception as e:
            await self._cleanup()
            raise BrowserError(
                f"Failed to launch browser: {e}",
                details={"browser_type": self.settings.browser_type},
            ) from e

    async def stop(self) -> None:
        """Close the browser and the driver. Safe to call repeatedly."""
        await self._cleanup()

    async def _cleanup(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright: {e}")
            self._playwright = None

    async def new_context(
        self,
        user_agent: str | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> BrowserContext:
        """
        Create an isolated context with the given identity.

        Args:
            user_agent: User-Agent for this context
            extra_headers: Additional request headers (User-Agent is dropped,
                it is set through the context option instead)

        Raises:
            BrowserError: If the browser is not started or creation fails
        """
        if self._browser is None:
            raise BrowserError("Browser not started. Call start() first.")

        options: dict = {
            "viewport": {
                "width": self.settings.viewport_width,
                "height": self.settings.viewport_height,
            },
            "ignore_https_errors": self.settings.ignore_https_errors,
        }
        if user_agent:
            options["user_agent"] = user_agent
        if extra_headers:
            options["extra_http_headers"] = {
                k: v for k, v in extra_headers.items() if k.lower() != "user-agent"
            }

        try:
            context = await self._browser.new_context(**options)
        except Exception as e:
            raise BrowserError(f"Failed to create browser context: {e}") from e

        context.set_default_timeout(self.settings.timeout_ms)
        return context

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def __aenter__(self) -> "BrowserManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
