from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.chromebook import ChromebookStatus
from app.schemas.chromebook import ChromebookResponse, InventorySummary
from app.schemas.pagination import Page
from app.routers.deps import get_engine
from app.services.audit_engine import AuditEngine
import app.services.chromebook_service as svc

router = APIRouter(prefix="/api/chromebooks", tags=["chromebooks"])


@router.get("", response_model=Page[ChromebookResponse])
def list_chromebooks(
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    search: str = Query(""),
    status: ChromebookStatus | None = Query(None),
    db: Session = Depends(get_db),
):
    return svc.get_chromebooks(db, page=page, size=size, search=search, status=status.value if status else "")


@router.get("/summary", response_model=InventorySummary)
def inventory_summary(engine: AuditEngine = Depends(get_engine)):
    return engine.inventory_summary()


@router.get("/{chromebook_pk}", response_model=ChromebookResponse)
def get_chromebook(chromebook_pk: int, db: Session = Depends(get_db)):
    return svc.get_chromebook(db, chromebook_pk)
