"""
Pattern learning for VersionVault.
"""

from version_vault.patterns.learner import (
    InMemoryPatternStore,
    PatternLearner,
    PatternStore,
    domain_of,
)

__all__ = [
    "InMemoryPatternStore",
    "PatternLearner",
    "PatternStore",
    "domain_of",
]
