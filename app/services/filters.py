from collections.abc import Sequence
from app.schemas.audit import CountedItem
from app.schemas.filters import AuditFilters
from app.services.clock import as_utc


def _matches_search(item: CountedItem, needle: str) -> bool:
    observed = item.observed
    haystack = (observed.code, observed.model, observed.serial_number, observed.manufacturer)
    return any(value and needle in value.lower() for value in haystack)


def filter_items(items: Sequence[CountedItem], criteria: AuditFilters | None = None) -> list[CountedItem]:
    """Counted items that pass every criterion, in their original order."""
    if criteria is None:
        return list(items)

    result = list(items)
    if criteria.location:
        result = [i for i in result if i.effective_location == criteria.location]
    if criteria.scan_method != "all":
        result = [i for i in result if i.scan_method == criteria.scan_method]
    if criteria.search and criteria.search.strip():
        needle = criteria.search.strip().lower()
        result = [i for i in result if _matches_search(i, needle)]
    if criteria.date_range:
        start, end = criteria.date_range.start, criteria.date_range.end
        result = [i for i in result if start <= as_utc(i.counted_at) <= end]
    return result
