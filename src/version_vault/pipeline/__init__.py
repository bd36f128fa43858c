"""
Batch execution for VersionVault.
"""

from version_vault.pipeline.batch import BatchItemResult, BatchRunner

__all__ = [
    "BatchItemResult",
    "BatchRunner",
]
