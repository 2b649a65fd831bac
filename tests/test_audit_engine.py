"""Audit session manager: lifecycle, counting rules, corrections and rollback on store failure."""
import pytest

from app.errors import (
    AuditStateError, BusyError, DuplicateError, NotFoundError, PersistenceError, ValidationError,
)
from app.models.audit import AuditStatus
from app.schemas.filters import AuditFilters
from app.services.audit_engine import AuditEngine
from app.store import AUDIT_ITEMS, AUDITS, SqlRecordStore


class FlakyStore(SqlRecordStore):
    """Fails the next write on the given collection."""

    def __init__(self, db):
        super().__init__(db)
        self.fail_on = None

    def _maybe_fail(self, collection):
        if self.fail_on == collection:
            self.fail_on = None
            raise PersistenceError("connection reset by peer")

    def insert(self, collection, row):
        self._maybe_fail(collection)
        return super().insert(collection, row)

    def update(self, collection, row_id, patch):
        self._maybe_fail(collection)
        return super().update(collection, row_id, patch)

    def delete(self, collection, target):
        self._maybe_fail(collection)
        return super().delete(collection, target)


@pytest.fixture
def devices(make_chromebook):
    return [
        make_chromebook("CHR001", location="Room 101", condition="good", serial_number="SN001"),
        make_chromebook("CHR002", location="Room 102", condition="excellent", patrimony_number="PAT002"),
        make_chromebook("CHR003", location="Room 101", condition="fair"),
    ]


@pytest.fixture
def flaky(db, clock, devices):
    store = FlakyStore(db)
    return store, AuditEngine(store, "teacher@school", clock=clock).load()


# ─── Lifecycle ────────────────────────────────────────────────────────────────

def test_start_audit(engine, devices, clock):
    audit = engine.start_audit("  Q1 stock-take ")
    assert audit.audit_name == "Q1 stock-take"
    assert audit.status == AuditStatus.in_progress
    assert audit.started_at == clock.now
    assert audit.total_expected == 3
    assert engine.active.id == audit.id
    assert engine.counted == []


def test_start_requires_name(engine, store):
    with pytest.raises(ValidationError):
        engine.start_audit("   ")
    assert store.select(AUDITS) == []


def test_start_resumes_existing(engine, store, clock, devices):
    first = engine.start_audit("Q1")
    engine.count_item("1", "qr_code")

    other = AuditEngine(store, "teacher@school", clock=clock).load()
    assert other.active.id == first.id
    assert other.start_audit("Q1 again").id == first.id
    assert len(other.counted) == 1
    assert len(store.select(AUDITS)) == 1


def test_operators_have_separate_audits(engine, store, clock, devices):
    mine = engine.start_audit("Mine")
    theirs = AuditEngine(store, "librarian", clock=clock).load().start_audit("Theirs")
    assert mine.id != theirs.id


def test_load_restores_counted_items(engine, store, clock, devices):
    engine.start_audit("Q1")
    engine.count_item("1", "qr_code")
    engine.count_item("PAT002", "manual_id")

    reloaded = AuditEngine(store, "teacher@school", clock=clock).load()
    assert [i.display_id for i in reloaded.counted] == ["CHR001", "CHR002"]
    assert reloaded.counted[0].observed.expected_location == "Room 101"


def test_complete_audit(engine, store, clock, devices):
    engine.start_audit("Q1")
    clock.advance(minutes=20)
    engine.count_item("1", "qr_code")
    clock.advance(minutes=40)

    report = engine.complete_audit()

    assert report.summary.total_counted == 1
    assert report.summary.total_expected == 3
    assert report.summary.completion_rate == "33.3%"
    assert report.summary.duration == "1h 0m"
    assert [m.chromebook_id for m in report.discrepancies.missing] == ["CHR002", "CHR003"]

    row = store.select(AUDITS)[0]
    assert row["status"] == "completed"
    assert row["completed_at"] == clock.now
    assert (row["total_counted"], row["total_expected"]) == (1, 3)
    assert engine.active is None
    assert engine.counted == []


def test_complete_empty_audit(engine, devices):
    engine.start_audit("Empty")
    report = engine.complete_audit()
    assert report.summary.total_counted == 0
    assert report.summary.completion_rate == "0.0%"
    assert report.summary.items_per_hour == 0
    assert len(report.discrepancies.missing) == 3
    assert report.discrepancies.location_mismatches == []
    assert report.discrepancies.condition_mismatches == []


def test_no_counting_after_completion(engine, devices):
    engine.start_audit("Q1")
    engine.complete_audit()
    with pytest.raises(AuditStateError):
        engine.count_item("1", "qr_code")
    with pytest.raises(AuditStateError):
        engine.complete_audit()


def test_cancel_audit(engine, store, devices):
    engine.start_audit("Q1")
    cancelled = engine.cancel_audit()
    assert cancelled.status == AuditStatus.cancelled
    assert engine.active is None
    assert store.select(AUDITS)[0]["status"] == "cancelled"


def test_delete_active_audit_cascades(engine, store, devices):
    audit = engine.start_audit("Q1")
    engine.count_item("1", "qr_code")
    engine.count_item("2", "qr_code")

    engine.delete_audit(audit.id)

    assert store.select(AUDITS) == []
    assert store.select(AUDIT_ITEMS) == []
    assert engine.active is None
    assert engine.counted == []


def test_delete_completed_audit_keeps_active(engine, devices):
    old = engine.start_audit("Old")
    engine.complete_audit()
    current = engine.start_audit("Current")

    engine.delete_audit(old.id)

    assert engine.active.id == current.id


def test_delete_unknown_audit(engine):
    with pytest.raises(NotFoundError):
        engine.delete_audit(12345)


# ─── Counting ─────────────────────────────────────────────────────────────────

def test_count_snapshots_inventory(engine, devices, clock):
    engine.start_audit("Q1")
    item = engine.count_item("chr002", "manual_id", notes="on the shelf")

    assert item.chromebook_id == devices[1].id
    assert item.display_id == "CHR002"
    assert item.counted_at == clock.now
    assert item.counted_by == "teacher@school"
    assert item.observed.expected_location == "Room 102"
    assert item.location_found == "Room 102"
    assert item.observed.condition == item.condition_found == "excellent"
    assert item.notes == "on the shelf"


def test_count_monotonic(engine, devices):
    engine.start_audit("Q1")
    for n, token in enumerate(["1", "PAT002", "CHR003"], start=1):
        engine.count_item(token, "qr_code")
        assert len(engine.counted) == n


def test_duplicate_count_rejected(engine, store, devices):
    engine.start_audit("Q1")
    engine.count_item("1", "qr_code")
    with pytest.raises(DuplicateError):
        engine.count_item("SN001", "manual_id")
    assert len(engine.counted) == 1
    assert len(store.select(AUDIT_ITEMS)) == 1


def test_unknown_token_is_not_fatal(engine, devices):
    engine.start_audit("Q1")
    with pytest.raises(NotFoundError):
        engine.count_item("999", "qr_code")
    assert engine.count_item("3", "qr_code").display_id == "CHR003"


def test_bad_scan_method(engine, store, devices):
    engine.start_audit("Q1")
    with pytest.raises(ValidationError):
        engine.count_item("1", "barcode")
    assert store.select(AUDIT_ITEMS) == []


def test_remove_item(engine, store, devices):
    engine.start_audit("Q1")
    item = engine.count_item("1", "qr_code")
    engine.remove_item(item.id)
    assert engine.counted == []
    assert store.select(AUDIT_ITEMS) == []
    # Can be counted again once removed
    engine.count_item("1", "qr_code")
    with pytest.raises(NotFoundError):
        engine.remove_item(item.id)


def test_location_correction_surfaces_mismatch(engine, store, devices):
    engine.start_audit("Q1")
    item = engine.count_item("2", "qr_code")

    corrected = engine.update_item_location(item.id, "Library")

    assert corrected.location_found == "Library"
    assert corrected.observed.expected_location == "Room 102"
    assert store.select(AUDIT_ITEMS)[0]["location_found"] == "Library"
    assert store.select(AUDIT_ITEMS)[0]["expected_location"] == "Room 102"
    mismatches = engine.report().discrepancies.location_mismatches
    assert [(m.chromebook_id, m.expected_location, m.location_found) for m in mismatches] == [
        ("CHR002", "Room 102", "Library"),
    ]


def test_condition_correction_surfaces_mismatch(engine, devices):
    engine.start_audit("Q1")
    item = engine.count_item("1", "qr_code")
    engine.update_item_condition(item.id, "damaged")
    issues = engine.report().discrepancies.condition_mismatches
    assert [(m.condition_expected, m.condition_found) for m in issues] == [("good", "damaged")]


def test_correction_checks_every_field_before_writing(engine, store, devices):
    engine.start_audit("Q1")
    item = engine.count_item("1", "qr_code")
    with pytest.raises(ValidationError):
        engine.correct_item(item.id, location="Library", condition="   ")
    assert engine.counted[0].location_found == "Room 101"
    assert store.select(AUDIT_ITEMS)[0]["location_found"] == "Room 101"

    corrected = engine.correct_item(item.id, location=" Library ", condition="damaged")
    assert (corrected.location_found, corrected.condition_found) == ("Library", "damaged")
    with pytest.raises(ValidationError):
        engine.correct_item(item.id)


def test_correction_requires_value(engine, devices):
    engine.start_audit("Q1")
    item = engine.count_item("1", "qr_code")
    with pytest.raises(ValidationError):
        engine.update_item_location(item.id, " ")
    with pytest.raises(NotFoundError):
        engine.update_item_location(999, "Library")


# ─── Store failures ───────────────────────────────────────────────────────────

def test_failed_insert_leaves_state_unchanged(flaky):
    store, engine = flaky
    engine.start_audit("Q1")
    store.fail_on = AUDIT_ITEMS
    with pytest.raises(PersistenceError):
        engine.count_item("1", "qr_code")
    assert engine.counted == []
    assert not engine.is_processing
    engine.count_item("1", "qr_code")
    assert len(engine.counted) == 1


def test_failed_update_keeps_old_location(flaky):
    store, engine = flaky
    engine.start_audit("Q1")
    item = engine.count_item("1", "qr_code")
    store.fail_on = AUDIT_ITEMS
    with pytest.raises(PersistenceError):
        engine.update_item_location(item.id, "Library")
    assert engine.counted[0].location_found == "Room 101"


def test_failed_completion_keeps_audit_active(flaky):
    store, engine = flaky
    audit = engine.start_audit("Q1")
    store.fail_on = AUDITS
    with pytest.raises(PersistenceError):
        engine.complete_audit()
    assert engine.active.id == audit.id
    assert store.select(AUDITS)[0]["status"] == "in_progress"


def test_reentrant_call_is_busy(db, clock, devices):
    class ReentrantStore(SqlRecordStore):
        engine = None

        def insert(self, collection, row):
            if collection == AUDIT_ITEMS:
                self.engine.count_item("2", "qr_code")
            return super().insert(collection, row)

    store = ReentrantStore(db)
    engine = store.engine = AuditEngine(store, "teacher@school", clock=clock).load()
    engine.start_audit("Q1")
    with pytest.raises(BusyError):
        engine.count_item("1", "qr_code")
    assert engine.counted == []


# ─── Derived views ────────────────────────────────────────────────────────────

def test_missing_items(engine, devices):
    engine.start_audit("Q1")
    engine.count_item("2", "qr_code")
    assert [cb.chromebook_id for cb in engine.missing_items()] == ["CHR001", "CHR003"]


def test_deprovisioned_devices_not_expected(engine, make_chromebook, devices):
    make_chromebook("CHR099", is_deprovisioned=True)
    audit = engine.start_audit("Q1")
    assert audit.total_expected == 3
    assert "CHR099" not in {cb.chromebook_id for cb in engine.missing_items()}


def test_filtered_items_remembers_criteria(engine, devices):
    engine.start_audit("Q1")
    engine.count_item("1", "qr_code")
    engine.count_item("2", "manual_id")
    engine.count_item("3", "qr_code")

    assert [i.display_id for i in engine.filtered_items(AuditFilters(scan_method="qr_code"))] == ["CHR001", "CHR003"]
    assert [i.display_id for i in engine.filtered_items()] == ["CHR001", "CHR003"]


def test_list_audits_newest_first(engine, clock, devices):
    first = engine.start_audit("First")
    engine.complete_audit()
    clock.advance(days=1)
    second = engine.start_audit("Second")
    engine.complete_audit()
    clock.advance(days=1)
    third = engine.start_audit("Third")

    assert [a.id for a in engine.list_audits()] == [third.id, second.id, first.id]
    assert [a.id for a in engine.list_audits("completed")] == [second.id, first.id]
    with pytest.raises(ValidationError):
        engine.list_audits("archived")


def test_audit_report_of_completed_audit(engine, clock, devices, make_chromebook):
    audit = engine.start_audit("Q1")
    engine.count_item("1", "qr_code")
    clock.advance(minutes=30)
    engine.complete_audit()
    make_chromebook("CHR004")
    engine.load()

    report = engine.audit_report(audit.id)

    assert report.summary.total_counted == 1
    assert report.summary.total_expected == 3
    assert report.summary.duration == "30m"


def test_inventory_summary(engine, make_chromebook):
    make_chromebook("CHR001", status="loaned")
    make_chromebook("CHR002", status="loaned")
    make_chromebook("CHR003")
    engine.load()
    summary = engine.inventory_summary()
    assert summary.total == 3
    assert summary.by_status["loaned"] == 2
    assert summary.by_status["available"] == 1
    assert summary.by_status["under_maintenance"] == 0
