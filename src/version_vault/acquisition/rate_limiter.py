"""
Per-host request spacing.

Keeps a minimum delay between requests to the same host and honours
server Retry-After hints. Escalation backoff is handled by the
escalator itself; this only prevents hammering a host across requests.
"""

import asyncio
import time
from collections import defaultdict
from dataclasses import dataclass
from urllib.parse import urlparse

from version_vault.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class HostState:
    """
    Spacing state for one host.

    Attributes:
        last_request_time: Monotonic timestamp of the last request
        request_count: Requests made to this host
        backoff_until: Monotonic timestamp before which requests wait
    """

    last_request_time: float = 0.0
    request_count: int = 0
    backoff_until: float = 0.0


class HostThrottle:
    """
    Enforce a minimum delay between requests to the same host.

    Example:
        >>> throttle = HostThrottle(delay_seconds=1.0)
        >>> await throttle.acquire("https://example.com/releases")
        >>> throttle.defer("https://example.com/releases", retry_after=30)
    """

    def __init__(self, delay_seconds: float = 0.0, max_defer_seconds: float = 60.0) -> None:
        self.delay_seconds = delay_seconds
        self.max_defer_seconds = max_defer_seconds
        self._states: dict[str, HostState] = defaultdict(HostState)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @staticmethod
    def _host(url: str) -> str:
        return urlparse(url).netloc.lower() or "unknown"

    async def acquire(self, url: str) -> float:
        """
        Wait until a request to url's host is allowed.

        Callers for the same host queue behind each other; other hosts
        are never held up.

        Returns:
            Seconds waited
        """
        host = self._host(url)
        async with self._locks[host]:
            state = self._states[host]
            now = time.monotonic()
            wait_time = 0.0

            if state.backoff_until > now:
                wait_time = state.backoff_until - now

            since_last = now - state.last_request_time
            if state.request_count and since_last < self.delay_seconds:
                wait_time = max(wait_time, self.delay_seconds - since_last)

            if wait_time > 0:
                logger.debug(f"Throttling {host} for {wait_time:.2f}s")
                await asyncio.sleep(wait_time)

            state.last_request_time = time.monotonic()
            state.request_count += 1
            return wait_time

    def defer(self, url: str, retry_after: float) -> None:
        """
        Block the host until retry_after seconds from now.

        retry_after is clamped to max_defer_seconds.
        """
        host = self._host(url)
        retry_after = min(max(retry_after, 0.0), self.max_defer_seconds)
        state = self._states[host]
        state.backoff_until = max(state.backoff_until, time.monotonic() + retry_after)
        logger.info(f"Deferring {host} for {retry_after:.1f}s")

    def request_count(self, url: str) -> int:
        return self._states[self._host(url)].request_count
