"""
Completion service boundary for VersionVault.
"""

from version_vault.llm.client import CompletionService, OpenAICompatibleClient

__all__ = [
    "CompletionService",
    "OpenAICompatibleClient",
]
