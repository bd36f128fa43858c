"""
Validation module for VersionVault.

Provides:
- Product/version plausibility checks
- Anomaly detection between consecutive extractions
"""

from version_vault.validation.validator import (
    name_version_distance,
    product_name_present,
    validate_extraction,
)
from version_vault.validation.anomalies import (
    detect_anomalies,
    detect_confidence_drop,
    detect_extraction_method_change,
    detect_format_change,
    detect_major_version_jump,
    detect_suspicious_date,
    detect_version_downgrade,
    format_anomalies,
    requires_manual_review,
)

__all__ = [
    # Validator
    "name_version_distance",
    "product_name_present",
    "validate_extraction",
    # Anomalies
    "detect_anomalies",
    "detect_confidence_drop",
    "detect_extraction_method_change",
    "detect_format_change",
    "detect_major_version_jump",
    "detect_suspicious_date",
    "detect_version_downgrade",
    "format_anomalies",
    "requires_manual_review",
]
