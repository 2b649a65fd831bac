from datetime import datetime
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from app.models.audit import AuditStatus, ScanMethod
from app.schemas.audit import (
    ActiveAuditResponse, AuditCreate, AuditResponse, CountedItem, CountItemRequest, ItemCorrection,
)
from app.schemas.chromebook import ChromebookResponse
from app.schemas.filters import AuditFilters, DateRange
from app.schemas.pagination import Page
from app.schemas.report import AuditReport
from app.errors import AuditStateError, ValidationError
from app.routers.deps import get_engine
from app.services.audit_engine import AuditEngine

router = APIRouter(prefix="/api/audits", tags=["audits"])


@router.get("", response_model=Page[AuditResponse])
def list_audits(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    status: AuditStatus | None = Query(None),
    engine: AuditEngine = Depends(get_engine),
):
    return Page.from_rows(engine.list_audits(status), page, size)


@router.post("", response_model=AuditResponse, status_code=201)
def start_audit(data: AuditCreate, engine: AuditEngine = Depends(get_engine)):
    return engine.start_audit(data.name)


@router.get("/active", response_model=ActiveAuditResponse)
def get_active_audit(engine: AuditEngine = Depends(get_engine)):
    if engine.active is None:
        raise AuditStateError("No audit in progress")
    return ActiveAuditResponse(audit=engine.active, items=engine.counted, total_expected=engine.total_expected)


@router.get("/active/items", response_model=list[CountedItem])
def list_counted_items(
    location: str | None = Query(None),
    scan_method: str = Query("all"),
    search: str | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    engine: AuditEngine = Depends(get_engine),
):
    if scan_method not in ("all", *(m.value for m in ScanMethod)):
        raise ValidationError(f"Unknown scan method '{scan_method}'")
    if (start is None) != (end is None):
        raise ValidationError("A date range needs both start and end")
    criteria = AuditFilters(
        location=location or None,
        scan_method=scan_method,
        search=search,
        date_range=DateRange(start=start, end=end) if start and end else None,
    )
    return engine.filtered_items(criteria)


@router.post("/active/items", response_model=CountedItem, status_code=201)
def count_item(data: CountItemRequest, engine: AuditEngine = Depends(get_engine)):
    return engine.count_item(data.token, data.method, notes=data.notes)


@router.patch("/active/items/{item_id}", response_model=CountedItem)
def correct_item(item_id: int, data: ItemCorrection, engine: AuditEngine = Depends(get_engine)):
    return engine.correct_item(item_id, location=data.location_found, condition=data.condition_found)


@router.delete("/active/items/{item_id}", status_code=204)
def remove_item(item_id: int, engine: AuditEngine = Depends(get_engine)):
    engine.remove_item(item_id)
    return Response(status_code=204)


@router.get("/active/missing", response_model=list[ChromebookResponse])
def missing_items(engine: AuditEngine = Depends(get_engine)):
    return engine.missing_items()


@router.get("/active/report", response_model=AuditReport)
def active_report(engine: AuditEngine = Depends(get_engine)):
    return engine.report()


@router.post("/active/complete", response_model=AuditReport)
def complete_audit(engine: AuditEngine = Depends(get_engine)):
    return engine.complete_audit()


@router.post("/active/cancel", response_model=AuditResponse)
def cancel_audit(engine: AuditEngine = Depends(get_engine)):
    return engine.cancel_audit()


@router.get("/{audit_id}/report", response_model=AuditReport)
def audit_report(audit_id: int, engine: AuditEngine = Depends(get_engine)):
    return engine.audit_report(audit_id)


@router.delete("/{audit_id}", status_code=204)
def delete_audit(audit_id: int, engine: AuditEngine = Depends(get_engine)):
    engine.delete_audit(audit_id)
    return Response(status_code=204)
