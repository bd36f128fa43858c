"""
Extraction module for VersionVault.

Provides:
- Content windowing around product mentions
- Version comparison, normalization and deduplication
- Known per-product version formats
- Site layout quirks
- Completion prompt building and response parsing
"""

from version_vault.extraction.windowing import (
    SmartContent,
    extract_smart_content,
    find_product_mentions,
    find_version_patterns,
)
from version_vault.extraction.versions import (
    compare_versions,
    deduplicate_versions,
    extract_branch_pattern,
    filter_by_branch,
    get_version_format,
    is_beta_version,
    major_version,
    normalize_version,
    pick_current_version,
    sort_versions,
)
from version_vault.extraction.version_patterns import (
    MANUFACTURER_PATTERNS,
    VersionPattern,
    extract_version_generic,
    extract_version_with_pattern,
    get_pattern_for_product,
)
from version_vault.extraction.quirks import (
    FamilyBackfillQuirk,
    LayoutQuirk,
    NoteSwapQuirk,
    QuirkRegistry,
    apply_quirks,
)
from version_vault.extraction.parsing import ParsedCompletion, parse_completion
from version_vault.extraction.prompts import build_extraction_prompt

__all__ = [
    # Windowing
    "SmartContent",
    "extract_smart_content",
    "find_product_mentions",
    "find_version_patterns",
    # Versions
    "compare_versions",
    "deduplicate_versions",
    "extract_branch_pattern",
    "filter_by_branch",
    "get_version_format",
    "is_beta_version",
    "major_version",
    "normalize_version",
    "pick_current_version",
    "sort_versions",
    # Version patterns
    "MANUFACTURER_PATTERNS",
    "VersionPattern",
    "extract_version_generic",
    "extract_version_with_pattern",
    "get_pattern_for_product",
    # Quirks
    "FamilyBackfillQuirk",
    "LayoutQuirk",
    "NoteSwapQuirk",
    "QuirkRegistry",
    "apply_quirks",
    # Completion
    "ParsedCompletion",
    "parse_completion",
    "build_extraction_prompt",
]
