"""
Acquisition module for VersionVault.

Provides:
- Bot-blocker detection
- Browser identity rotation
- Per-method fetchers (static HTTP, rendered)
- The fetch-with-retry escalator
"""

from version_vault.acquisition.blockers import detect_bot_blocker, not_blocked
from version_vault.acquisition.identity import (
    USER_AGENTS,
    FEED_USER_AGENT,
    IdentityRotator,
    random_user_agent,
    realistic_headers,
)
from version_vault.acquisition.rate_limiter import HostThrottle
from version_vault.acquisition.fetchers import (
    AttemptContext,
    MethodFetcher,
    StaticFetcher,
    RendererFetcher,
    build_fetchers,
)
from version_vault.acquisition.escalator import (
    EscalationState,
    FetchEscalator,
    backoff_delay_ms,
    escalate,
    next_method,
)

__all__ = [
    # Detection
    "detect_bot_blocker",
    "not_blocked",
    # Identity
    "USER_AGENTS",
    "FEED_USER_AGENT",
    "IdentityRotator",
    "random_user_agent",
    "realistic_headers",
    # Fetchers
    "HostThrottle",
    "AttemptContext",
    "MethodFetcher",
    "StaticFetcher",
    "RendererFetcher",
    "build_fetchers",
    # Escalation
    "EscalationState",
    "FetchEscalator",
    "backoff_delay_ms",
    "escalate",
    "next_method",
]
