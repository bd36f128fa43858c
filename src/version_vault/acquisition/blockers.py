"""
Bot-blocker detection.

Classifies a response body, status, headers or transport error as
blocked or not, and by which protection system. Checks run in a fixed
priority order and the first match wins. Body-only fingerprints count
as a block only for short pages, since long legitimate pages often
mention "cloudflare" or "forbidden" in passing.
"""

import re
from collections.abc import Mapping

from version_vault.core.models import BlockerDetection, BlockerType

# Bodies shorter than these are challenge-page sized
CHALLENGE_BODY_LIMIT = 2000
CAPTCHA_BODY_LIMIT = 3000

_CLOUDFLARE_PATTERNS = [
    re.compile(r"checking your browser", re.IGNORECASE),
    re.compile(r"cloudflare", re.IGNORECASE),
    re.compile(r"cf-browser-verification", re.IGNORECASE),
    re.compile(r"cf_clearance", re.IGNORECASE),
    re.compile(r"cf-challenge", re.IGNORECASE),
    re.compile(r"__cf_bm", re.IGNORECASE),
]
_CLOUDFLARE_CHALLENGE = re.compile(
    r"checking your browser|cf-challenge|cf-browser-verification",
    re.IGNORECASE,
)

_AKAMAI_PATTERNS = [
    re.compile(r"akamai", re.IGNORECASE),
    re.compile(r"reference #\d+\.\w+", re.IGNORECASE),
    re.compile(r"access denied", re.IGNORECASE),
]

_DATADOME_PATTERNS = [
    re.compile(r"datadome", re.IGNORECASE),
    re.compile(r"dd-request-id", re.IGNORECASE),
    re.compile(r"captcha-delivery", re.IGNORECASE),
]

_PERIMETERX_PATTERNS = [
    re.compile(r"perimeterx", re.IGNORECASE),
    re.compile(r"px-captcha", re.IGNORECASE),
    re.compile(r"_px\d+", re.IGNORECASE),
]

_GENERIC_PATTERNS = [
    re.compile(r"access denied", re.IGNORECASE),
    re.compile(r"forbidden", re.IGNORECASE),
    re.compile(r"blocked", re.IGNORECASE),
    re.compile(r"security check", re.IGNORECASE),
    re.compile(r"unusual traffic", re.IGNORECASE),
    re.compile(r"automated access", re.IGNORECASE),
]


def _any_match(patterns: list[re.Pattern], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def _has_header(headers: Mapping[str, str] | None, name: str) -> bool:
    if not headers:
        return False
    wanted = name.lower()
    return any(key.lower() == wanted for key in headers)


def not_blocked() -> BlockerDetection:
    """Detection for a clean response."""
    return BlockerDetection(
        is_blocked=False,
        blocker_type=None,
        confidence=0,
        message="No bot blocking detected",
        suggested_action="",
    )


def detect_bot_blocker(
    html: str,
    status_code: int | None = None,
    headers: Mapping[str, str] | None = None,
    error: str | None = None,
) -> BlockerDetection:
    """
    Classify a fetch outcome.

    Args:
        html: Response body, empty on the error path
        status_code: HTTP status if a response was received
        headers: Response headers (case-insensitive lookup)
        error: Transport or browser error text

    Returns:
        The first matching BlockerDetection, or a not-blocked detection
    """
    html = html or ""

    if error:
        if "ERR_HTTP2_PROTOCOL_ERROR" in error:
            return BlockerDetection(
                is_blocked=True,
                blocker_type=BlockerType.HTTP2_ERROR,
                confidence=90,
                message="HTTP/2 protocol error (often a bot-protection reset)",
                suggested_action="Retry with a headless browser",
            )
        if "ERR_CONNECTION" in error or "ECONNREFUSED" in error:
            return BlockerDetection(
                is_blocked=True,
                blocker_type=BlockerType.CONNECTION_ERROR,
                confidence=80,
                message="Connection refused or reset",
                suggested_action="Retry with a headless browser after a delay",
            )

    if status_code == 429:
        return BlockerDetection(
            is_blocked=True,
            blocker_type=BlockerType.RATE_LIMIT,
            confidence=100,
            message="Rate limited (HTTP 429)",
            suggested_action="Back off exponentially before retrying",
        )

    length = len(html)

    if _has_header(headers, "cf-ray") or _any_match(_CLOUDFLARE_PATTERNS, html):
        if _CLOUDFLARE_CHALLENGE.search(html) or length < CHALLENGE_BODY_LIMIT:
            return BlockerDetection(
                is_blocked=True,
                blocker_type=BlockerType.CLOUDFLARE,
                confidence=95,
                message="Cloudflare challenge page detected",
                suggested_action="Use a headless browser that waits for the JavaScript challenge",
            )

    if _any_match(_AKAMAI_PATTERNS, html) and length < CHALLENGE_BODY_LIMIT:
        return BlockerDetection(
            is_blocked=True,
            blocker_type=BlockerType.AKAMAI,
            confidence=85,
            message="Akamai Bot Manager block detected",
            suggested_action="Use a headless browser with realistic headers",
        )

    if _any_match(_DATADOME_PATTERNS, html) and length < CAPTCHA_BODY_LIMIT:
        return BlockerDetection(
            is_blocked=True,
            blocker_type=BlockerType.DATADOME,
            confidence=90,
            message="DataDome protection detected",
            suggested_action="Use an interactive browser session",
        )

    if _any_match(_PERIMETERX_PATTERNS, html) and length < CAPTCHA_BODY_LIMIT:
        return BlockerDetection(
            is_blocked=True,
            blocker_type=BlockerType.PERIMETERX,
            confidence=90,
            message="PerimeterX protection detected",
            suggested_action="Use an interactive browser session",
        )

    if _any_match(_GENERIC_PATTERNS, html) and length < CHALLENGE_BODY_LIMIT:
        return BlockerDetection(
            is_blocked=True,
            blocker_type=BlockerType.UNKNOWN,
            confidence=70,
            message="Generic access-denied page detected",
            suggested_action="Escalate to a headless browser",
        )

    return not_blocked()
