from fastapi import Depends, Header
from sqlalchemy.orm import Session
from app.config import settings
from app.database import get_db
from app.services.audit_engine import AuditEngine
from app.store import SqlRecordStore


def get_operator(x_operator: str | None = Header(None)) -> str:
    return (x_operator or "").strip() or settings.DEFAULT_OPERATOR


def get_engine(db: Session = Depends(get_db), operator: str = Depends(get_operator)) -> AuditEngine:
    # Built and loaded per request, dropped with it
    return AuditEngine(SqlRecordStore(db), operator).load()
