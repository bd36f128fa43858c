"""
Extraction validator.

Checks that an extracted version plausibly belongs to the target
product. The result is advisory: it annotates the extraction and never
blocks it.
"""

from version_vault.config.settings import ValidationSettings
from version_vault.core.models import ExtractedInfo, ValidationResult
from version_vault.sources.plaintext import is_repository_raw_url
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_AI_CONFIDENCE = 50
MAJOR_WORD_MIN_LENGTH = 4


def product_name_present(product_name: str, page_text: str) -> bool:
    """
    Whether the product is named in the text, case-insensitively.

    Multi-word names also match when every word longer than three
    characters appears somewhere ("DaVinci ... Resolve").
    """
    if not product_name or not page_text:
        return False
    name = product_name.lower().strip()
    text = page_text.lower()
    if name in text:
        return True

    words = name.split()
    if len(words) > 1:
        major_words = [w for w in words if len(w) >= MAJOR_WORD_MIN_LENGTH]
        return bool(major_words) and all(word in text for word in major_words)
    return False


def name_version_distance(product_name: str, version: str, page_text: str) -> int:
    """Characters between the first mentions of name and version, -1 if either is absent."""
    if not product_name or not version or not page_text:
        return -1
    text = page_text.lower()
    name_at = text.find(product_name.lower())
    version_at = text.find(version.lower())
    if name_at == -1 or version_at == -1:
        return -1
    return abs(name_at - version_at)


def validate_extraction(
    target_product: str,
    extracted: ExtractedInfo,
    page_text: str,
    source_url: str | None = None,
    settings: ValidationSettings | None = None,
) -> ValidationResult:
    """
    Score how likely the extracted version belongs to target_product.

    Args:
        target_product: Product name the extraction was for
        extracted: Completion output after post-processing
        page_text: Text the completion service saw
        source_url: Where the text came from; raw repository files are
            trusted to be about their own product
        settings: Distance and confidence thresholds

    Returns:
        ValidationResult; valid needs confidence >= 70 and no warnings
    """
    settings = settings or ValidationSettings()

    if not extracted.current_version:
        return ValidationResult(
            valid=True,
            confidence=100,
            reason="No version found - this is valid (version may not be on page)",
        )

    version = extracted.current_version
    official_file = is_repository_raw_url(source_url)

    if not product_name_present(target_product, page_text) and not official_file:
        logger.info(f"'{target_product}' not on page but version {version} was extracted")
        return ValidationResult(
            valid=False,
            confidence=0,
            reason=(
                f'Product name "{target_product}" not found on page, but version '
                f'"{version}" was extracted. Likely wrong product.'
            ),
            warnings=["Product name not found on page"],
        )

    warnings: list[str] = []
    confidence = extracted.confidence or DEFAULT_AI_CONFIDENCE

    distance = name_version_distance(target_product, version, page_text)
    if distance > settings.far_distance:
        warnings.append(
            f'Version "{version}" found {distance} characters away from product name. '
            "May be incorrect.")
        confidence = min(confidence, settings.far_confidence_cap)
    elif distance > settings.near_distance:
        warnings.append(f"Version found {distance} characters from product name (moderate distance)")
        confidence = min(confidence, settings.near_confidence_cap)

    if extracted.confidence and extracted.confidence < settings.min_valid_confidence:
        warnings.append(f"AI confidence below recommended threshold: {extracted.confidence}%")
        confidence = min(confidence, extracted.confidence)

    if extracted.product_name_found is False:
        warnings.append("AI reported product name not found in content")
        confidence = min(confidence, settings.product_missing_cap)

    valid = confidence >= settings.min_valid_confidence and not warnings
    return ValidationResult(
        valid=valid,
        confidence=confidence,
        reason="All validation checks passed" if valid else f"Validation concerns: {'; '.join(warnings)}",
        warnings=warnings,
    )
