"""
Tests for bot-blocker detection and identity rotation.
"""

import asyncio

import pytest

from version_vault.acquisition import (
    HostThrottle,
    IdentityRotator,
    USER_AGENTS,
    detect_bot_blocker,
    realistic_headers,
)
from version_vault.core.models import BlockerType


class TestDetectBotBlocker:
    """Tests for detect_bot_blocker classification."""

    def test_cloudflare_challenge_with_cf_ray(self, cloudflare_challenge_html):
        """cf-ray header plus a challenge-sized body is a Cloudflare block."""
        assert len(cloudflare_challenge_html) == 1500

        detection = detect_bot_blocker(
            cloudflare_challenge_html, 403, {"CF-RAY": "8a1b2c3d4e5f-AMS"})

        assert detection.is_blocked is True
        assert detection.blocker_type == BlockerType.CLOUDFLARE
        assert detection.confidence == 95

    def test_cf_ray_on_long_page_not_blocked(self, release_page_html):
        """Sites behind Cloudflare serve real pages with cf-ray too."""
        assert len(release_page_html) > 2000

        detection = detect_bot_blocker(release_page_html, 200, {"cf-ray": "abc"})

        assert detection.is_blocked is False
        assert detection.confidence == 0

    def test_rate_limit(self):
        detection = detect_bot_blocker("", 429)

        assert detection.blocker_type == BlockerType.RATE_LIMIT
        assert detection.confidence == 100

    def test_error_precedes_status(self):
        """Network error text is checked before anything else."""
        detection = detect_bot_blocker("", 429, error="net::ERR_HTTP2_PROTOCOL_ERROR at page.goto")

        assert detection.blocker_type == BlockerType.HTTP2_ERROR

    def test_connection_error(self):
        detection = detect_bot_blocker("", error="connect ECONNREFUSED 10.0.0.1:443")

        assert detection.is_blocked is True
        assert detection.blocker_type == BlockerType.CONNECTION_ERROR

    def test_unrelated_error_not_blocked(self):
        assert detect_bot_blocker("", error="Timeout fetching page").is_blocked is False

    def test_akamai_short_page(self):
        html = "<html><body><h1>Access Denied</h1>Reference #18.5f2d1402.1700000000.1a2b3c</body></html>"

        detection = detect_bot_blocker(html, 403)

        assert detection.blocker_type == BlockerType.AKAMAI

    def test_datadome(self):
        html = "<html><script src='https://ct.captcha-delivery.com/c.js'></script></html>"

        assert detect_bot_blocker(html).blocker_type == BlockerType.DATADOME

    def test_perimeterx(self):
        html = "<div id='px-captcha'></div>"

        assert detect_bot_blocker(html).blocker_type == BlockerType.PERIMETERX

    def test_generic_short_forbidden(self):
        detection = detect_bot_blocker("<h1>403 Forbidden</h1>", 403)

        assert detection.blocker_type == BlockerType.UNKNOWN
        assert detection.confidence == 70

    def test_generic_text_on_long_page_ignored(self):
        """A long legitimate page mentioning 'blocked' is not a block page."""
        html = "<p>Fixed a bug where blocked cues were skipped.</p>" + "<p>Notes.</p>" * 300

        assert detect_bot_blocker(html, 200).is_blocked is False

    def test_empty_clean_response(self):
        detection = detect_bot_blocker("")

        assert detection.is_blocked is False
        assert detection.blocker_type is None
        assert detection.to_dict()["blocker_type"] is None


class TestIdentityRotator:
    """Tests for User-Agent rotation."""

    def test_rotate_changes_identity(self):
        rotator = IdentityRotator(seed=3)
        for _ in range(20):
            before = rotator.current
            assert rotator.rotate() != before

    def test_single_entry_pool(self):
        rotator = IdentityRotator(pool=("only-agent",))
        assert rotator.rotate() == "only-agent"

    def test_empty_pool_rejected(self):
        with pytest.raises(ValueError):
            IdentityRotator(pool=())

    def test_identities_come_from_pool(self):
        rotator = IdentityRotator(seed=1)
        assert rotator.current in USER_AGENTS
        assert rotator.rotate() in USER_AGENTS

    def test_realistic_headers(self):
        headers = realistic_headers("TestAgent/1.0")

        assert headers["User-Agent"] == "TestAgent/1.0"
        assert headers["Sec-Fetch-Mode"] == "navigate"
        assert "text/html" in headers["Accept"]


class TestHostThrottle:
    """Tests for per-host spacing."""

    @pytest.mark.asyncio
    async def test_first_request_not_delayed(self):
        throttle = HostThrottle(delay_seconds=5.0)

        waited = await throttle.acquire("https://example.com/a")

        assert waited == 0.0
        assert throttle.request_count("https://example.com/b") == 1

    @pytest.mark.asyncio
    async def test_hosts_tracked_separately(self):
        throttle = HostThrottle(delay_seconds=5.0)
        await throttle.acquire("https://one.example/")

        waited = await throttle.acquire("https://two.example/")

        assert waited == 0.0

    @pytest.mark.asyncio
    async def test_second_request_spaced(self, monkeypatch):
        throttle = HostThrottle(delay_seconds=0.5)
        slept: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            slept.append(seconds)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        await throttle.acquire("https://example.com/")
        await throttle.acquire("https://example.com/")

        assert len(slept) == 1
        assert 0 < slept[0] <= 0.5

    @pytest.mark.asyncio
    async def test_deferred_host_does_not_hold_up_others(self, monkeypatch):
        throttle = HostThrottle()
        started = asyncio.Event()
        release = asyncio.Event()

        async def blocking_sleep(seconds: float) -> None:
            started.set()
            await release.wait()

        monkeypatch.setattr(asyncio, "sleep", blocking_sleep)
        throttle.defer("https://slow.example/", 1.0)
        slow = asyncio.create_task(throttle.acquire("https://slow.example/"))
        await asyncio.wait_for(started.wait(), timeout=1.0)

        waited = await asyncio.wait_for(throttle.acquire("https://fast.example/"), timeout=1.0)

        assert waited == 0.0
        assert not slow.done()
        release.set()
        assert await slow > 0

    @pytest.mark.asyncio
    async def test_retry_after_clamped(self, monkeypatch):
        throttle = HostThrottle(max_defer_seconds=5.0)
        slept: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            slept.append(seconds)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        throttle.defer("https://example.com/", 86400)
        await throttle.acquire("https://example.com/")

        assert len(slept) == 1
        assert 0 < slept[0] <= 5.0
