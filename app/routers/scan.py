from fastapi import APIRouter, Depends
from app.routers.deps import get_engine
from app.services.audit_engine import AuditEngine
from app.services.identifier import normalize

router = APIRouter(prefix="/api/scan", tags=["scan"])


@router.get("/resolve/{token}")
def resolve_token(token: str, engine: AuditEngine = Depends(get_engine)):
    """Look a scanned token up without counting it. Used by the scanner page."""
    chromebook = engine.resolver.resolve(token)

    audit_id = None
    audit_status = None
    if engine.active:
        audit_id = engine.active.id
        counted = any(item.chromebook_id == chromebook.id for item in engine.counted)
        audit_status = "counted" if counted else "not_counted"

    return {
        "token": token,
        "normalized": normalize(token),
        "id": chromebook.id,
        "chromebook_id": chromebook.chromebook_id,
        "model": chromebook.model,
        "manufacturer": chromebook.manufacturer,
        "location": chromebook.location,
        "condition": chromebook.condition,
        "status": chromebook.status.value,
        "audit_id": audit_id,
        "audit_status": audit_status,
    }
