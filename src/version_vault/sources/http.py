"""
Single-shot HTTP helpers for sources that don't need escalation.

Feeds, sitemaps, PDFs and raw repository files are served to bots
without protection, so one GET with an honest identity is enough.
"""

import httpx

from version_vault.acquisition.identity import FEED_USER_AGENT
from version_vault.core.exceptions import FetchError

DEFAULT_TIMEOUT = 15.0


async def get_document(
    url: str,
    client: httpx.AsyncClient | None = None,
    accept: str = "*/*",
    timeout: float = DEFAULT_TIMEOUT,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """
    GET url and return the response.

    headers, when given, replace the default feed identity.

    Raises:
        FetchError: On transport failure or any status >= 400
    """
    headers = headers or {"User-Agent": FEED_USER_AGENT, "Accept": accept}
    owned = client is None
    client = client or httpx.AsyncClient()
    try:
        response = await client.get(
            url, headers=headers, timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as e:
        raise FetchError(f"Request failed: {e}", url=url) from e
    finally:
        if owned:
            await client.aclose()

    if response.status_code >= 400:
        raise FetchError(
            f"HTTP {response.status_code}",
            url=url,
            status_code=response.status_code,
        )
    return response


async def head_ok(
    url: str,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> bool:
    """True when a HEAD request for url succeeds."""
    owned = client is None
    client = client or httpx.AsyncClient()
    try:
        response = await client.head(
            url,
            headers={"User-Agent": FEED_USER_AGENT},
            timeout=timeout,
            follow_redirects=True,
        )
    except httpx.HTTPError:
        return False
    finally:
        if owned:
            await client.aclose()
    return response.status_code < 400
