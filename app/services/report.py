from datetime import datetime
from app.schemas.audit import AuditResponse
from app.schemas.report import (
    AuditReport, Discrepancy, ReportDiscrepancies, ReportStatistics, ReportSummary,
)
from app.services.clock import as_utc, utcnow
from app.services.reconciliation import Reconciliation


def elapsed_seconds(audit: AuditResponse, now: datetime | None = None) -> float:
    end = audit.completed_at or now or utcnow()
    return max((as_utc(end) - as_utc(audit.started_at)).total_seconds(), 0.0)


def format_duration(seconds: float) -> str:
    minutes = int(seconds // 60)
    if minutes < 1:
        return "< 1m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if hours else f"{minutes}m"


def items_per_hour(counted: int, seconds: float) -> float:
    if counted == 0:
        return 0
    hours = seconds / 3600
    if hours < 0.01:
        return counted
    return round(counted / hours, 1)


def completion_rate(counted: int, expected: int) -> str:
    rate = counted / expected * 100 if expected > 0 else 0
    return f"{rate:.1f}%"


def average_time_per_item(counted: int, seconds: float) -> str:
    if counted == 0:
        return "0s"
    # Halves round up
    return f"{int(seconds / counted + 0.5)}s"


def compile_report(
    audit: AuditResponse,
    reconciliation: Reconciliation,
    total_expected: int,
    *,
    now: datetime | None = None,
) -> AuditReport:
    """Package a reconciliation and the audit's timing into the exported report shape.

    Never raises: an empty audit yields zeroed fields.
    """
    counted = reconciliation.total_counted
    seconds = elapsed_seconds(audit, now)
    missing = [
        Discrepancy(chromebook_id=cb.chromebook_id, expected_location=cb.location, condition_expected=cb.condition)
        for cb in reconciliation.missing
    ]
    return AuditReport(
        summary=ReportSummary(
            total_counted=counted,
            total_expected=total_expected,
            completion_rate=completion_rate(counted, total_expected),
            duration=format_duration(seconds),
            items_per_hour=items_per_hour(counted, seconds),
            average_time_per_item=average_time_per_item(counted, seconds),
        ),
        discrepancies=ReportDiscrepancies(
            missing=missing,
            extra=[],
            location_mismatches=reconciliation.location_mismatches,
            condition_mismatches=reconciliation.condition_mismatches,
        ),
        statistics=ReportStatistics(
            by_location=reconciliation.by_location,
            by_method=reconciliation.by_method,
            by_condition=reconciliation.by_condition,
            by_hour=reconciliation.by_hour,
        ),
    )
