"""Compare the expected inventory with what an audit actually counted."""
import logging
from collections import Counter
from collections.abc import Sequence
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel

from app.config import settings
from app.models.audit import ScanMethod
from app.schemas.audit import CountedItem
from app.schemas.chromebook import ChromebookResponse
from app.schemas.report import ConditionStats, Discrepancy, HourStats, LocationStats, MethodStats
from app.services.clock import as_utc

logger = logging.getLogger(__name__)


class Reconciliation(BaseModel):
    total_counted: int
    missing: list[ChromebookResponse]
    location_mismatches: list[Discrepancy]
    condition_mismatches: list[Discrepancy]
    by_location: list[LocationStats]
    by_method: MethodStats
    by_condition: list[ConditionStats]
    by_hour: list[HourStats]


def report_timezone() -> tzinfo:
    try:
        return ZoneInfo(settings.REPORT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown REPORT_TIMEZONE %r, falling back to UTC", settings.REPORT_TIMEZONE)
        return ZoneInfo("UTC")


def _percentage(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total > 0 else 0


def missing_items(inventory: Sequence[ChromebookResponse], counted: Sequence[CountedItem]) -> list[ChromebookResponse]:
    counted_ids = {item.chromebook_id for item in counted}
    return [cb for cb in inventory if cb.id not in counted_ids]


def location_mismatches(counted: Sequence[CountedItem]) -> list[Discrepancy]:
    return [
        Discrepancy(
            chromebook_id=item.display_id,
            expected_location=item.observed.expected_location,
            location_found=item.location_found,
        )
        for item in counted
        if item.observed.expected_location and item.location_found
        and item.observed.expected_location != item.location_found
    ]


def condition_mismatches(counted: Sequence[CountedItem]) -> list[Discrepancy]:
    return [
        Discrepancy(
            chromebook_id=item.display_id,
            condition_expected=item.observed.condition,
            condition_found=item.condition_found,
        )
        for item in counted
        if item.observed.condition and item.condition_found
        and item.observed.condition != item.condition_found
    ]


def stats_by_location(
    inventory: Sequence[ChromebookResponse], counted: Sequence[CountedItem], unspecified: str
) -> list[LocationStats]:
    expected = Counter(cb.location or unspecified for cb in inventory)
    found = Counter(item.effective_location or unspecified for item in counted)
    # dict keeps first-seen order: inventory locations, then locations only seen while counting
    locations = dict.fromkeys([*expected, *found])
    stats = [
        LocationStats(
            location=loc,
            counted=found[loc],
            expected=expected[loc],
            discrepancy=found[loc] - expected[loc],
        )
        for loc in locations
    ]
    return sorted(stats, key=lambda s: s.counted, reverse=True)


def stats_by_method(counted: Sequence[CountedItem]) -> MethodStats:
    total = len(counted)
    qr = sum(1 for item in counted if item.scan_method == ScanMethod.qr_code)
    manual = sum(1 for item in counted if item.scan_method == ScanMethod.manual_id)
    return MethodStats(
        qr_code=qr,
        manual=manual,
        percentage_qr=_percentage(qr, total),
        percentage_manual=_percentage(manual, total),
    )


def stats_by_condition(counted: Sequence[CountedItem], unspecified: str) -> list[ConditionStats]:
    total = len(counted)
    histogram = Counter(item.effective_condition or unspecified for item in counted)
    stats = [
        ConditionStats(condition=condition, count=count, percentage=_percentage(count, total))
        for condition, count in histogram.items()
    ]
    return sorted(stats, key=lambda s: s.count, reverse=True)


def stats_by_hour(counted: Sequence[CountedItem], tz: tzinfo) -> list[HourStats]:
    histogram = Counter(as_utc(item.counted_at).astimezone(tz).strftime("%H") for item in counted)
    cumulative = 0
    stats = []
    for hour in sorted(histogram):
        cumulative += histogram[hour]
        stats.append(HourStats(hour=hour, count=histogram[hour], cumulative=cumulative))
    return stats


def reconcile(
    inventory: Sequence[ChromebookResponse],
    counted: Sequence[CountedItem],
    *,
    unspecified: str | None = None,
    tz: tzinfo | None = None,
) -> Reconciliation:
    unspecified = settings.UNSPECIFIED_LABEL if unspecified is None else unspecified
    tz = report_timezone() if tz is None else tz
    return Reconciliation(
        total_counted=len(counted),
        missing=missing_items(inventory, counted),
        location_mismatches=location_mismatches(counted),
        condition_mismatches=condition_mismatches(counted),
        by_location=stats_by_location(inventory, counted, unspecified),
        by_method=stats_by_method(counted),
        by_condition=stats_by_condition(counted, unspecified),
        by_hour=stats_by_hour(counted, tz),
    )
