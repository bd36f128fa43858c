"""
Anomaly detection between consecutive extractions.

Each check compares the current extraction with the previous stored
one for the same product and flags transitions that usually mean the
wrong product or page was read.
"""

from datetime import date, datetime, timezone

from version_vault.config.settings import AnomalySettings
from version_vault.core.models import Anomaly, AnomalyType, Severity, VersionSnapshot
from version_vault.extraction.versions import compare_versions, get_version_format, major_version
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

SEVERITY_MARKERS = {
    Severity.HIGH: "[HIGH]",
    Severity.MEDIUM: "[MEDIUM]",
    Severity.LOW: "[LOW]",
}


def detect_version_downgrade(current: str, previous: str) -> Anomaly | None:
    if compare_versions(current, previous) == -1:
        return Anomaly(
            type=AnomalyType.VERSION_DOWNGRADE,
            severity=Severity.HIGH,
            message=f"Version downgrade detected: {previous} → {current}",
            details={"current_version": current, "previous_version": previous},
        )
    return None


def detect_major_version_jump(current: str, previous: str, threshold: int = 5) -> Anomaly | None:
    current_major, previous_major = major_version(current), major_version(previous)
    jump = current_major - previous_major
    if jump >= threshold:
        return Anomaly(
            type=AnomalyType.MAJOR_VERSION_JUMP,
            severity=Severity.MEDIUM,
            message=f"Large version jump detected: {previous} → {current} ({jump} major versions)",
            details={
                "current_version": current,
                "previous_version": previous,
                "jump": jump,
                "current_major": current_major,
                "previous_major": previous_major,
            },
        )
    return None


def detect_format_change(current: str, previous: str) -> Anomaly | None:
    current_format, previous_format = get_version_format(current), get_version_format(previous)
    if current_format != previous_format:
        return Anomaly(
            type=AnomalyType.FORMAT_CHANGE,
            severity=Severity.MEDIUM,
            message=f"Version format changed: {previous_format} → {current_format}",
            details={
                "current_version": current,
                "previous_version": previous,
                "current_format": current_format,
                "previous_format": previous_format,
            },
        )
    return None


def detect_suspicious_date(
    release_date: str,
    now: datetime | None = None,
    future_days: int = 30,
    past_years: int = 5,
) -> Anomaly | None:
    """
    Flag release dates far in the future or very old.

    Unparseable dates are ignored.
    """
    try:
        released = date.fromisoformat(release_date[:10])
    except (TypeError, ValueError):
        return None
    today = (now or datetime.now(timezone.utc)).date()
    days_ahead = (released - today).days

    if days_ahead > future_days:
        return Anomaly(
            type=AnomalyType.SUSPICIOUS_DATE,
            severity=Severity.MEDIUM,
            message=f"Release date is {days_ahead} days in the future",
            details={"release_date": release_date, "days_in_future": days_ahead},
        )

    years_ago = -days_ahead / 365
    if days_ahead < 0 and years_ago > past_years:
        return Anomaly(
            type=AnomalyType.SUSPICIOUS_DATE,
            severity=Severity.LOW,
            message=f"Release date is {round(years_ago)} years old (may not be latest version)",
            details={"release_date": release_date, "years_ago": round(years_ago)},
        )
    return None


def detect_confidence_drop(current: int, previous: int, threshold: int = 30) -> Anomaly | None:
    drop = previous - current
    if drop >= threshold:
        return Anomaly(
            type=AnomalyType.CONFIDENCE_DROP,
            severity=Severity.MEDIUM,
            message=f"Confidence dropped significantly: {previous}% → {current}%",
            details={"current_confidence": current, "previous_confidence": previous, "drop": drop},
        )
    return None


def detect_extraction_method_change(current: str, previous: str) -> Anomaly | None:
    if current != previous:
        return Anomaly(
            type=AnomalyType.EXTRACTION_METHOD_CHANGE,
            severity=Severity.LOW,
            message=f"Extraction method changed: {previous} → {current}",
            details={"current_method": current, "previous_method": previous},
        )
    return None


def detect_anomalies(
    current: VersionSnapshot,
    previous: VersionSnapshot | None = None,
    settings: AnomalySettings | None = None,
    now: datetime | None = None,
) -> list[Anomaly]:
    """
    Run every check that the available data allows.

    Without a previous snapshot only the release-date check runs.
    Comparative checks skip fields missing on either side.

    Args:
        current: The extraction just made
        previous: The last stored extraction of the same product
        settings: Severity thresholds
        now: Reference time for date checks
    """
    settings = settings or AnomalySettings()
    checks: list[Anomaly | None] = []

    if current.release_date:
        checks.append(detect_suspicious_date(
            current.release_date,
            now=now,
            future_days=settings.future_date_days,
            past_years=settings.past_date_years,
        ))

    if previous is not None:
        if current.version and previous.version:
            checks.append(detect_version_downgrade(current.version, previous.version))
            checks.append(detect_major_version_jump(
                current.version, previous.version, settings.major_jump_threshold))
            checks.append(detect_format_change(current.version, previous.version))
        if current.confidence is not None and previous.confidence is not None:
            checks.append(detect_confidence_drop(
                current.confidence, previous.confidence, settings.confidence_drop_threshold))
        if current.extraction_method and previous.extraction_method:
            checks.append(detect_extraction_method_change(
                current.extraction_method, previous.extraction_method))

    anomalies = [anomaly for anomaly in checks if anomaly is not None]
    if anomalies:
        logger.info(f"Detected {len(anomalies)} anomalies for version {current.version}")
    return anomalies


def requires_manual_review(anomalies: list[Anomaly]) -> bool:
    """Any high-severity anomaly, or two or more medium ones."""
    if any(a.severity == Severity.HIGH for a in anomalies):
        return True
    return sum(1 for a in anomalies if a.severity == Severity.MEDIUM) >= 2


def format_anomalies(anomalies: list[Anomaly]) -> str:
    if not anomalies:
        return "No anomalies detected"
    return "\n".join(f"{SEVERITY_MARKERS[a.severity]} {a.message}" for a in anomalies)
