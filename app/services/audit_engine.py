"""Audit session manager.

One ``AuditEngine`` serves one operator. It is built over a record store,
loaded, used for a handful of calls and then dropped. Completing or deleting
the active audit disposes of its in-memory state.
"""
import logging
import threading
from collections import Counter
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from app.errors import AuditStateError, BusyError, DuplicateError, NotFoundError, ValidationError
from app.models.audit import AuditStatus, ScanMethod
from app.models.chromebook import ChromebookStatus
from app.schemas.audit import AuditResponse, CountedItem, Observation
from app.schemas.chromebook import ChromebookResponse, InventorySummary
from app.schemas.filters import AuditFilters
from app.schemas.report import AuditReport
from app.services.clock import as_utc, utcnow
from app.services.filters import filter_items
from app.services.reconciliation import missing_items, reconcile
from app.services.report import compile_report
from app.services.resolver import ChromebookResolver
from app.store import AUDIT_ITEMS, AUDITS, CHROMEBOOKS, RecordStore, Row

logger = logging.getLogger(__name__)


def snapshot(device: ChromebookResponse) -> Observation:
    return Observation(
        code=device.chromebook_id,
        model=device.model,
        manufacturer=device.manufacturer,
        serial_number=device.serial_number,
        expected_location=device.location,
        condition=device.condition,
        status=device.status,
    )


class AuditEngine:
    def __init__(self, store: RecordStore, operator: str, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.operator = operator
        self.clock = clock
        self.resolver = ChromebookResolver(store)
        self.inventory: list[ChromebookResponse] = []
        self.active: AuditResponse | None = None
        self.counted: list[CountedItem] = []
        self.filters = AuditFilters()
        self._lock = threading.Lock()

    # ── state ───────────────────────────────────────────────────────────────

    @property
    def is_processing(self) -> bool:
        return self._lock.locked()

    @property
    def total_expected(self) -> int:
        return len(self.inventory)

    @contextmanager
    def _processing(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise BusyError("Another operation is still being processed, try again")
        try:
            yield
        finally:
            self._lock.release()

    def _require_active(self) -> AuditResponse:
        if self.active is None:
            raise AuditStateError("No audit in progress")
        return self.active

    def _dispose(self) -> None:
        self.active = None
        self.counted = []
        self.filters = AuditFilters()

    def _find_item(self, item_id: int) -> CountedItem:
        for item in self.counted:
            if item.id == item_id:
                return item
        raise NotFoundError(f"Counted item {item_id} is not part of the active audit")

    # ── loading ─────────────────────────────────────────────────────────────

    def load(self) -> "AuditEngine":
        """Fetch the inventory, the operator's in-progress audit and its counted items."""
        self.inventory = self._fetch_inventory()
        self.active = self._find_in_progress()
        self.counted = self._fetch_counted(self.active.id) if self.active else []
        return self

    def _fetch_inventory(self) -> list[ChromebookResponse]:
        rows = self.store.select(CHROMEBOOKS, {"is_deprovisioned": False})
        return [ChromebookResponse.model_validate(row) for row in rows]

    def _find_in_progress(self) -> AuditResponse | None:
        rows = self.store.select(AUDITS, {"status": AuditStatus.in_progress.value, "created_by": self.operator})
        if not rows:
            return None
        return AuditResponse.model_validate(max(rows, key=lambda r: as_utc(r["started_at"])))

    def _fetch_counted(self, audit_id: int) -> list[CountedItem]:
        rows = self.store.select(AUDIT_ITEMS, {"audit_id": audit_id})
        devices = {cb.id: cb for cb in self.inventory}
        # Deprovisioned since counting: still shown, looked up by id
        unknown = {row["chromebook_id"] for row in rows} - devices.keys()
        if unknown:
            for row in self.store.select(CHROMEBOOKS, {"id": sorted(unknown)}):
                devices[row["id"]] = ChromebookResponse.model_validate(row)
        return [self._counted_item(row, devices.get(row["chromebook_id"])) for row in rows]

    @staticmethod
    def _counted_item(row: Row, device: ChromebookResponse | None) -> CountedItem:
        observed = Observation(
            code=device.chromebook_id if device else f"#{row['chromebook_id']}",
            model=device.model if device else None,
            manufacturer=device.manufacturer if device else None,
            serial_number=device.serial_number if device else None,
            expected_location=row["expected_location"],
            condition=row["condition_expected"],
            status=device.status if device else None,
        )
        return CountedItem(
            id=row["id"],
            audit_id=row["audit_id"],
            chromebook_id=row["chromebook_id"],
            counted_at=row["counted_at"],
            counted_by=row["counted_by"],
            scan_method=row["scan_method"],
            observed=observed,
            location_found=row["location_found"],
            condition_found=row["condition_found"],
            notes=row["notes"],
        )

    # ── lifecycle ───────────────────────────────────────────────────────────

    def start_audit(self, name: str) -> AuditResponse:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Audit name is required")

        with self._processing():
            existing = self._find_in_progress()
            if existing:
                if self.active is None or self.active.id != existing.id:
                    self.active = existing
                    self.counted = self._fetch_counted(existing.id)
                logger.info("Resuming audit #%s '%s' for %s", existing.id, existing.audit_name, self.operator)
                return existing

            inventory = self._fetch_inventory()
            row = self.store.insert(AUDITS, {
                "audit_name": name,
                "status": AuditStatus.in_progress.value,
                "started_at": self.clock(),
                "created_by": self.operator,
                "total_expected": len(inventory),
                "total_counted": 0,
            })
            self.inventory = inventory
            self.active = AuditResponse.model_validate(row)
            self.counted = []
            self.filters = AuditFilters()
            logger.info("Audit #%s '%s' started by %s, %d devices expected",
                        self.active.id, name, self.operator, len(inventory))
            return self.active

    def count_item(self, token: str, method: ScanMethod | str, notes: str | None = None) -> CountedItem:
        audit = self._require_active()
        try:
            method = ScanMethod(method)
        except ValueError:
            raise ValidationError(f"Unknown scan method '{method}'") from None

        with self._processing():
            device = self.resolver.resolve(token)
            if any(item.chromebook_id == device.id for item in self.counted):
                logger.info("Audit #%s: %s already counted", audit.id, device.chromebook_id)
                raise DuplicateError(f"Chromebook {device.chromebook_id} was already counted in this audit")

            # Found location/condition start out as the inventory values; only a correction changes them
            row = self.store.insert(AUDIT_ITEMS, {
                "audit_id": audit.id,
                "chromebook_id": device.id,
                "counted_at": self.clock(),
                "counted_by": self.operator,
                "scan_method": method.value,
                "expected_location": device.location,
                "location_found": device.location,
                "condition_expected": device.condition,
                "condition_found": device.condition,
                "notes": notes,
            })
            item = self._counted_item(row, device)
            self.counted = [*self.counted, item]
            logger.debug("Audit #%s: counted %s via %s", audit.id, device.chromebook_id, method.value)
            return item

    def remove_item(self, item_id: int) -> None:
        audit = self._require_active()
        with self._processing():
            item = self._find_item(item_id)
            self.store.delete(AUDIT_ITEMS, item_id)
            self.counted = [i for i in self.counted if i.id != item_id]
            logger.debug("Audit #%s: removed %s", audit.id, item.display_id)

    def update_item_location(self, item_id: int, location: str) -> CountedItem:
        return self.correct_item(item_id, location=location)

    def update_item_condition(self, item_id: int, condition: str) -> CountedItem:
        return self.correct_item(item_id, condition=condition)

    def correct_item(self, item_id: int, location: str | None = None, condition: str | None = None) -> CountedItem:
        """Correct found location and/or condition in one write. Every given value is checked first."""
        patch = {}
        for field, label, value in (("location_found", "Location", location), ("condition_found", "Condition", condition)):
            if value is None:
                continue
            value = value.strip()
            if not value:
                raise ValidationError(f"{label} is required")
            patch[field] = value
        if not patch:
            raise ValidationError("Nothing to correct")
        return self._correct(item_id, **patch)

    def _correct(self, item_id: int, **patch) -> CountedItem:
        self._require_active()
        with self._processing():
            item = self._find_item(item_id)
            self.store.update(AUDIT_ITEMS, item_id, patch)
            updated = item.model_copy(update=patch)
            self.counted = [updated if i.id == item_id else i for i in self.counted]
            return updated

    def complete_audit(self) -> AuditReport:
        audit = self._require_active()
        with self._processing():
            now = self.clock()
            summary = {
                "status": AuditStatus.completed.value,
                "completed_at": now,
                "total_counted": len(self.counted),
                "total_expected": self.total_expected,
            }
            report = self._compile(audit.model_copy(update=summary), self.counted, self.total_expected)
            self.store.update(AUDITS, audit.id, summary)
            self._dispose()
            logger.info("Audit #%s completed: %d/%d counted (%s)", audit.id, summary["total_counted"],
                        summary["total_expected"], report.summary.completion_rate)
            return report

    def cancel_audit(self) -> AuditResponse:
        audit = self._require_active()
        with self._processing():
            row = self.store.update(AUDITS, audit.id, {
                "status": AuditStatus.cancelled.value,
                "completed_at": self.clock(),
                "total_counted": len(self.counted),
            })
            self._dispose()
            logger.info("Audit #%s cancelled by %s", audit.id, self.operator)
            return AuditResponse.model_validate(row)

    def delete_audit(self, audit_id: int) -> None:
        with self._processing():
            if not self.store.select(AUDITS, {"id": audit_id}):
                raise NotFoundError(f"Audit {audit_id} not found")
            removed = self.store.delete(AUDIT_ITEMS, {"audit_id": audit_id})
            self.store.delete(AUDITS, audit_id)
            if self.active and self.active.id == audit_id:
                self._dispose()
            logger.info("Audit #%s deleted with %d counted items", audit_id, removed)

    # ── derived views ───────────────────────────────────────────────────────

    def _compile(
        self, audit: AuditResponse, counted: list[CountedItem], total_expected: int, now: datetime | None = None
    ) -> AuditReport:
        return compile_report(audit, reconcile(self.inventory, counted), total_expected, now=now or self.clock())

    def report(self, now: datetime | None = None) -> AuditReport:
        audit = self._require_active()
        return self._compile(audit, self.counted, self.total_expected, now)

    def missing_items(self) -> list[ChromebookResponse]:
        self._require_active()
        return missing_items(self.inventory, self.counted)

    def filtered_items(self, criteria: AuditFilters | None = None) -> list[CountedItem]:
        if criteria is not None:
            self.filters = criteria
        return filter_items(self.counted, self.filters)

    def list_audits(self, status: AuditStatus | str | None = None) -> list[AuditResponse]:
        filters = {"created_by": self.operator}
        if status:
            try:
                filters["status"] = AuditStatus(status).value
            except ValueError:
                raise ValidationError(f"Unknown audit status '{status}'") from None
        audits = [AuditResponse.model_validate(row) for row in self.store.select(AUDITS, filters)]
        return sorted(audits, key=lambda a: as_utc(a.completed_at or a.started_at), reverse=True)

    def audit_report(self, audit_id: int, now: datetime | None = None) -> AuditReport:
        """Recompute the report of any stored audit from its rows."""
        rows = self.store.select(AUDITS, {"id": audit_id})
        if not rows:
            raise NotFoundError(f"Audit {audit_id} not found")
        audit = AuditResponse.model_validate(rows[0])
        if self.active and self.active.id == audit.id:
            return self.report(now)
        expected = self.total_expected
        if audit.status == AuditStatus.completed and audit.total_expected is not None:
            expected = audit.total_expected
        return self._compile(audit, self._fetch_counted(audit.id), expected, now)

    def inventory_summary(self) -> InventorySummary:
        counts = Counter(cb.status.value for cb in self.inventory)
        return InventorySummary(
            total=len(self.inventory),
            by_status={status.value: counts.get(status.value, 0) for status in ChromebookStatus},
        )
