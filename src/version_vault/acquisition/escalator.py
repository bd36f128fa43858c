"""
Fetch-with-retry and method escalation.

The retry loop is an explicit state machine. EscalationState records
the current method, the attempt number, the last detected blocker and
the last HTML seen; the pure helpers below compute every transition so
each one can be tested without network access.

Method order is fixed (static, browserless, browserless-extended,
interactive) and escalation only moves forward, one step at a time.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace

from version_vault.acquisition.blockers import detect_bot_blocker
from version_vault.acquisition.fetchers import AttemptContext, MethodFetcher
from version_vault.acquisition.identity import IdentityRotator, realistic_headers
from version_vault.config.settings import EscalationSettings
from version_vault.core.exceptions import FetchError, get_retry_delay
from version_vault.core.models import (
    METHOD_CHAIN,
    AcquisitionAttempt,
    BlockerDetection,
    FetchMethod,
    FetchResponse,
    FetchResult,
    ScrapingStrategy,
)
from version_vault.utils.logging import get_logger_with_context
from version_vault.utils.metrics import increment_blocked, increment_fetch_attempts

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class EscalationState:
    """Retry loop state carried between attempts."""

    method: FetchMethod
    attempt: int = 0
    last_blocker: BlockerDetection | None = None
    last_html: str = ""


def next_method(method: FetchMethod) -> FetchMethod | None:
    """The method after `method` in the chain, or None at the end."""
    index = METHOD_CHAIN.index(method)
    if index + 1 < len(METHOD_CHAIN):
        return METHOD_CHAIN[index + 1]
    return None


def escalate(state: EscalationState) -> EscalationState:
    """Advance one step along the chain; unchanged at the last method."""
    following = next_method(state.method)
    if following is None:
        return state
    return replace(state, method=following)


def backoff_delay_ms(attempt: int, base_delay_ms: int, max_delay_ms: int = 16000) -> int:
    """Exponential backoff: min(base * 2**attempt, cap)."""
    return min(base_delay_ms * (2 ** attempt), max_delay_ms)


class FetchEscalator:
    """
    Fetch a URL, escalating through acquisition methods until it works.

    Acquisition failures never raise: exhausted retries return a
    FetchResult with success=False, the last HTML obtained and the
    last blocker detected.

    Example:
        >>> escalator = FetchEscalator(build_fetchers(settings), settings.escalation)
        >>> result = await escalator.fetch_with_retry("https://vendor.example/releases")
        >>> result.success, result.method
        (True, <FetchMethod.STATIC: 'static'>)
    """

    def __init__(
        self,
        fetchers: Mapping[FetchMethod, MethodFetcher],
        settings: EscalationSettings | None = None,
        rotator: IdentityRotator | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.fetchers = dict(fetchers)
        self.settings = settings or EscalationSettings()
        self.rotator = rotator or IdentityRotator()
        self._sleep = sleep

    def _backoff_seconds(self, attempt: int) -> float:
        return backoff_delay_ms(
            attempt, self.settings.base_delay_ms, self.settings.max_delay_ms
        ) / 1000

    async def _execute(
        self,
        url: str,
        state: EscalationState,
        user_agent: str,
        strategy: ScrapingStrategy | None,
    ) -> FetchResponse:
        fetcher = self.fetchers.get(state.method)
        if fetcher is None:
            raise FetchError(
                f"No fetcher configured for method {state.method.value}", url=url)

        context = AttemptContext(
            method=state.method,
            attempt=state.attempt,
            user_agent=user_agent,
            headers=realistic_headers(user_agent),
            strategy=strategy,
            last_blocker=state.last_blocker,
        )
        return await fetcher.fetch(url, context)

    async def fetch_with_retry(
        self,
        url: str,
        strategy: ScrapingStrategy | None = None,
        starting_method: FetchMethod | None = None,
    ) -> FetchResult:
        """
        Fetch url with bounded retries and forward-only escalation.

        Args:
            url: Page to fetch
            strategy: Interactions for the interactive step
            starting_method: Skip cheaper methods known not to work

        Returns:
            FetchResult (never raises for acquisition failures)
        """
        cfg = self.settings
        log = get_logger_with_context(__name__, url=url)
        state = EscalationState(method=starting_method or FetchMethod.STATIC)
        attempt_log: list[AcquisitionAttempt] = []

        for attempt in range(cfg.max_attempts):
            state = replace(state, attempt=attempt)
            remaining = attempt + 1 < cfg.max_attempts

            if cfg.rotate_user_agent and attempt > 0:
                user_agent = self.rotator.rotate()
            else:
                user_agent = self.rotator.current

            record = AcquisitionAttempt(url=url, method=state.method, user_agent=user_agent)
            attempt_log.append(record)
            increment_fetch_attempts(state.method.value)
            log.debug(f"Attempt {attempt + 1}/{cfg.max_attempts} via {state.method.value}")

            try:
                response = await self._execute(url, state, user_agent, strategy)
            except Exception as e:
                record.outcome = "error"
                detection = detect_bot_blocker("", error=str(e))
                if detection.is_blocked:
                    state = replace(state, last_blocker=detection)
                    increment_blocked(detection.blocker_type.value)
                log.warning(f"{state.method.value} failed: {e}")

                if cfg.escalate_methods and remaining:
                    state = escalate(state)
                if remaining:
                    hinted = min(get_retry_delay(e, default=0.0), cfg.max_retry_after_seconds)
                    await self._sleep(max(self._backoff_seconds(attempt), hinted))
                continue

            html = response.html or ""
            detection = detect_bot_blocker(html, response.status_code, response.headers)

            if detection.is_blocked:
                record.outcome = f"blocked:{detection.blocker_type.value}"
                increment_blocked(detection.blocker_type.value)
                log.warning(
                    f"Blocked by {detection.blocker_type.value} "
                    f"(confidence {detection.confidence}) on {state.method.value}"
                )
                state = replace(state, last_blocker=detection, last_html=html)

                if not remaining:
                    return FetchResult(
                        content=html,
                        method=state.method,
                        success=False,
                        attempts=attempt + 1,
                        blocker_detected=detection,
                        attempt_log=attempt_log,
                    )

                if cfg.escalate_methods:
                    state = escalate(state)
                await self._sleep(self._backoff_seconds(attempt))
                continue

            if (
                len(html) < cfg.min_content_length
                and remaining
                and cfg.escalate_methods
                and next_method(state.method) is not None
            ):
                record.outcome = "low_content"
                log.info(
                    f"Only {len(html)} chars from {state.method.value}, escalating")
                state = replace(escalate(state), last_html=html)
                await self._sleep(self._backoff_seconds(attempt))
                continue

            record.outcome = "success"
            log.info(
                f"Fetched {len(html)} chars via {state.method.value} "
                f"after {attempt + 1} attempt(s)"
            )
            return FetchResult(
                content=html,
                method=state.method,
                success=True,
                attempts=attempt + 1,
                blocker_detected=None,
                attempt_log=attempt_log,
            )

        log.error(f"All {cfg.max_attempts} attempts failed")
        return FetchResult(
            content=state.last_html,
            method=state.method,
            success=False,
            attempts=cfg.max_attempts,
            blocker_detected=state.last_blocker,
            attempt_log=attempt_log,
        )
