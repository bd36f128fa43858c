"""
Browser identity rotation.

Supplies realistic User-Agent strings and the header set a real browser
sends on a top-level navigation, so static fetches look less automated.
"""

import random

USER_AGENTS: tuple[str, ...] = (
    # Chrome on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    # Chrome on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    # Firefox on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    # Firefox on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0",
    # Safari on macOS
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15",
    # Edge on Windows
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
)

# Identity used for feeds and sitemaps, where honesty is cheaper than disguise
FEED_USER_AGENT = "VersionVault/1.0 (+https://versionvault.dev)"


def random_user_agent(rng: random.Random | None = None) -> str:
    """Pick a User-Agent from the pool."""
    return (rng or random).choice(USER_AGENTS)


def realistic_headers(user_agent: str | None = None) -> dict[str, str]:
    """
    Build the header set of a browser's top-level document request.

    Args:
        user_agent: Identity to send. A random one when omitted.
    """
    return {
        "User-Agent": user_agent or random_user_agent(),
        "Accept": (
            "text/html,application/xhtml+xml,application/xml;q=0.9,"
            "image/avif,image/webp,image/apng,*/*;q=0.8,"
            "application/signed-exchange;v=b3;q=0.7"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Cache-Control": "max-age=0",
    }


class IdentityRotator:
    """
    Hands out a browser identity per attempt.

    Consecutive identities differ whenever the pool allows it.

    Example:
        >>> rotator = IdentityRotator(seed=7)
        >>> first = rotator.current
        >>> rotator.rotate() != first
        True
    """

    def __init__(
        self,
        pool: tuple[str, ...] = USER_AGENTS,
        seed: int | None = None,
    ) -> None:
        if not pool:
            raise ValueError("User-Agent pool must not be empty")
        self._pool = pool
        self._rng = random.Random(seed)
        self._current = self._rng.choice(self._pool)

    @property
    def current(self) -> str:
        """The identity in use."""
        return self._current

    def rotate(self) -> str:
        """Switch to a different identity and return it."""
        if len(self._pool) == 1:
            return self._current
        choices = [ua for ua in self._pool if ua != self._current]
        self._current = self._rng.choice(choices)
        return self._current

    def headers(self) -> dict[str, str]:
        """Realistic headers for the current identity."""
        return realistic_headers(self._current)
