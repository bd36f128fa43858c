"""
Per-domain pattern learning.

Remembers which acquisition strategy worked for a domain and how
reliably, so later extractions can start from it. Success rates are an
exponential moving average weighted 80/20 towards history.
"""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Protocol
from urllib.parse import urlsplit

from version_vault.core.models import FetchMethod, LearnedPattern, ScrapingStrategy
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

MIN_LEARN_CONFIDENCE = 70
MIN_SUCCESS_RATE = 60
HISTORY_WEIGHT = 0.8
COMMON_SELECTOR_SHARE = 0.5


class PatternStore(Protocol):
    """Persistence for learned patterns, keyed by domain."""

    def upsert(self, pattern: LearnedPattern) -> None:
        ...

    def get(self, domain: str) -> LearnedPattern | None:
        ...

    def list_all(self) -> list[LearnedPattern]:
        ...


class InMemoryPatternStore:
    """Dictionary-backed PatternStore."""

    def __init__(self, patterns: list[LearnedPattern] | None = None) -> None:
        self._patterns: dict[str, LearnedPattern] = {}
        for pattern in patterns or []:
            self.upsert(pattern)

    def upsert(self, pattern: LearnedPattern) -> None:
        self._patterns[pattern.domain] = pattern

    def get(self, domain: str) -> LearnedPattern | None:
        return self._patterns.get(domain)

    def list_all(self) -> list[LearnedPattern]:
        return sorted(self._patterns.values(), key=lambda p: p.success_rate, reverse=True)


def domain_of(url: str) -> str:
    """Hostname of url, or url itself when it is already a bare domain."""
    host = urlsplit(url).hostname
    if host:
        return host.lower()
    return url.strip().lower().split("/")[0]


def top_level_suffix(domain: str) -> str:
    return domain.rsplit(".", 1)[-1]


def _all_selectors(strategy: ScrapingStrategy) -> list[str]:
    return strategy.selectors + strategy.release_notes_selectors + strategy.expand_selectors


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


class PatternLearner:
    """
    Learn and recall acquisition strategies per domain.

    Example:
        >>> learner = PatternLearner(InMemoryPatternStore())
        >>> learner.learn_from_success(url, strategy, FetchMethod.INTERACTIVE, 92)
        >>> learner.suggest_strategy("https://other.example.com/news")
    """

    def __init__(self, store: PatternStore) -> None:
        self.store = store

    def learn_from_success(
        self,
        url: str,
        strategy: ScrapingStrategy | None,
        method: FetchMethod | None,
        confidence: int,
        product_name: str | None = None,
        now: datetime | None = None,
    ) -> LearnedPattern | None:
        """
        Record a strategy that produced a high-confidence extraction.

        A new domain starts at a 100% success rate; a known domain keeps
        its history and gets one successful attempt folded in.

        Returns:
            The stored pattern, or None when confidence is below 70
        """
        if confidence < MIN_LEARN_CONFIDENCE:
            return None

        now = now or datetime.now(timezone.utc)
        domain = domain_of(url)
        existing = self.store.get(domain)
        method_label = method.value if method else "unknown"
        notes = f"Learned from {product_name or domain} extraction ({method_label}, {confidence}% confidence)"

        if existing is None:
            pattern = LearnedPattern(
                domain=domain,
                success_rate=100,
                last_successful=now,
                strategy=strategy or ScrapingStrategy(),
                method=method,
                notes=notes,
            )
            logger.info(f"Learned new pattern for {domain} via {method_label}")
        else:
            pattern = LearnedPattern(
                domain=domain,
                success_rate=self._moving_average(existing.success_rate, True),
                last_successful=now,
                strategy=strategy if strategy is not None and not strategy.is_empty else existing.strategy,
                method=method or existing.method,
                notes=notes,
            )
        self.store.upsert(pattern)
        return pattern

    @staticmethod
    def _moving_average(rate: int, success: bool) -> int:
        return round(rate * HISTORY_WEIGHT + (100 if success else 0) * (1 - HISTORY_WEIGHT))

    def record_attempt(
        self,
        url: str,
        success: bool,
        now: datetime | None = None,
    ) -> LearnedPattern | None:
        """Fold one attempt into the domain's success rate, if it has a pattern."""
        domain = domain_of(url)
        pattern = self.store.get(domain)
        if pattern is None:
            return None

        pattern.success_rate = self._moving_average(pattern.success_rate, success)
        if success:
            pattern.last_successful = now or datetime.now(timezone.utc)
        self.store.upsert(pattern)
        logger.debug(f"Pattern for {domain} now at {pattern.success_rate}% success")
        return pattern

    def find_best_pattern(self, url: str) -> LearnedPattern | None:
        """Exact-domain pattern with a success rate above 60, if any."""
        pattern = self.store.get(domain_of(url))
        if pattern is not None and pattern.success_rate > MIN_SUCCESS_RATE:
            return pattern
        return None

    def suggest_strategy(self, url: str) -> ScrapingStrategy | None:
        """
        Strategy to try for url.

        Falls back to merging the strategies of reliable domains that
        share the top-level suffix, with duplicate selectors removed.
        """
        exact = self.find_best_pattern(url)
        if exact is not None:
            return exact.strategy

        suffix = top_level_suffix(domain_of(url))
        similar = [
            p for p in self.store.list_all()
            if p.domain.endswith(f".{suffix}") and p.success_rate > MIN_SUCCESS_RATE
        ]
        if not similar:
            return None

        merged = ScrapingStrategy()
        for pattern in similar:
            merged.selectors.extend(pattern.strategy.selectors)
            merged.release_notes_selectors.extend(pattern.strategy.release_notes_selectors)
            merged.expand_selectors.extend(pattern.strategy.expand_selectors)
        merged.selectors = _unique(merged.selectors)
        merged.release_notes_selectors = _unique(merged.release_notes_selectors)
        merged.expand_selectors = _unique(merged.expand_selectors)
        return merged

    def detect_common_patterns(self) -> dict[str, list[str]]:
        """Selectors used by at least half of the patterns sharing a top-level suffix."""
        groups: dict[str, list[LearnedPattern]] = defaultdict(list)
        for pattern in self.store.list_all():
            groups[top_level_suffix(pattern.domain)].append(pattern)

        common: dict[str, list[str]] = {}
        for suffix, patterns in groups.items():
            counts: dict[str, int] = defaultdict(int)
            for pattern in patterns:
                for selector in _unique(_all_selectors(pattern.strategy)):
                    counts[selector] += 1
            threshold = len(patterns) * COMMON_SELECTOR_SHARE
            shared = [selector for selector, count in counts.items() if count >= threshold]
            if shared:
                common[suffix] = shared
        return common
