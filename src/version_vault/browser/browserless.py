"""
Hosted headless browser (Browserless) renderer.

Posts the target URL and goto options to the service's /content
endpoint and returns the rendered HTML. Interactive strategies are not
supported remotely; the interactive step is served by the local
Playwright renderer.
"""

import os

import httpx

from version_vault.browser.renderer import RenderOptions
from version_vault.config.settings import BrowserlessSettings
from version_vault.core.exceptions import ConfigurationError, RenderError
from version_vault.core.models import FetchResponse
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)


class BrowserlessRenderer:
    """
    Renderer backed by a Browserless /content endpoint.

    Example:
        >>> renderer = BrowserlessRenderer.from_settings(settings.browserless)
        >>> response = await renderer.render(url, RenderOptions(timeout_ms=30000))
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://chrome.browserless.io",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Browserless API key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client

    @classmethod
    def from_settings(cls, settings: BrowserlessSettings) -> "BrowserlessRenderer":
        """
        Build from settings, reading the token from the environment.

        Raises:
            ConfigurationError: If the token variable is unset
        """
        api_key = os.environ.get(settings.api_key_env_var, "")
        if not api_key:
            raise ConfigurationError(
                "Browserless API key not found in environment",
                details={"env_var": settings.api_key_env_var},
            )
        return cls(api_key=api_key, base_url=settings.base_url)

    def _payload(self, url: str, options: RenderOptions) -> dict:
        payload: dict = {
            "url": url,
            "gotoOptions": {
                "waitUntil": options.wait_until,
                "timeout": options.timeout_ms,
            },
        }
        if options.headers:
            payload["setExtraHTTPHeaders"] = options.headers
        if options.wait_for_selector:
            payload["waitForSelector"] = {
                "selector": options.wait_for_selector,
                "timeout": options.selector_timeout_ms,
            }
        return payload

    async def render(self, url: str, options: RenderOptions) -> FetchResponse:
        """
        Render url remotely.

        Raises:
            RenderError: On transport failure or a non-2xx service response
        """
        endpoint = f"{self.base_url}/content"
        params = {"token": self.api_key, "stealth": "true", "bestAttempt": "true"}
        # Leave headroom over the in-browser navigation timeout
        timeout = options.timeout_ms / 1000 + 15

        client = self._client or httpx.AsyncClient(timeout=timeout)
        try:
            response = await client.post(
                endpoint,
                params=params,
                json=self._payload(url, options),
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise RenderError(f"Browserless timeout: {e}", url=url) from e
        except httpx.HTTPError as e:
            raise RenderError(f"Browserless request failed: {e}", url=url) from e
        finally:
            if self._client is None:
                await client.aclose()

        if response.status_code >= 400:
            raise RenderError(
                f"Browserless error: {response.status_code} - {response.text[:200]}",
                url=url,
            )

        logger.debug(f"Browserless rendered {url} ({len(response.text)} chars)")
        return FetchResponse(html=response.text, status_code=200, headers={})
