"""Record store used by the audit engine.

The engine only talks to collections of plain dict rows. ``SqlRecordStore``
maps those collections onto the ORM models and a SQLAlchemy session.
"""
import enum
import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import NotFoundError, PersistenceError, ValidationError
from app.models.audit import AuditItem, InventoryAudit
from app.models.chromebook import Chromebook

logger = logging.getLogger(__name__)

CHROMEBOOKS = "chromebooks"
AUDITS = "inventory_audits"
AUDIT_ITEMS = "audit_items"

_COLLECTIONS = {
    CHROMEBOOKS: Chromebook,
    AUDITS: InventoryAudit,
    AUDIT_ITEMS: AuditItem,
}

Row = dict[str, Any]


class RecordStore(Protocol):
    def select(self, collection: str, filters: dict[str, Any] | None = None) -> list[Row]: ...

    def insert(self, collection: str, row: Row) -> Row: ...

    def update(self, collection: str, row_id: int, patch: Row) -> Row: ...

    def delete(self, collection: str, target: int | dict[str, Any]) -> int: ...


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    # SQLite drops tzinfo; every DateTime column here is stored as UTC
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlRecordStore:
    def __init__(self, db: Session):
        self.db = db

    def _model(self, collection: str):
        try:
            return _COLLECTIONS[collection]
        except KeyError:
            raise ValidationError(f"Unknown collection '{collection}'") from None

    def _column(self, model, name: str):
        if name not in model.__table__.columns:
            raise ValidationError(f"Unknown field '{name}' on {model.__tablename__}")
        return getattr(model, name)

    def _where(self, model, filters: dict[str, Any] | None) -> list:
        clauses = []
        for name, value in (filters or {}).items():
            column = self._column(model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == value)
        return clauses

    @staticmethod
    def _to_row(obj) -> Row:
        return {c.name: _plain(getattr(obj, c.name)) for c in obj.__table__.columns}

    def _fail(self, collection: str, action: str, exc: SQLAlchemyError):
        self.db.rollback()
        logger.warning("Store %s on %s failed: %s", action, collection, exc)
        raise PersistenceError(str(exc.orig) if getattr(exc, "orig", None) else str(exc)) from exc

    def select(self, collection: str, filters: dict[str, Any] | None = None) -> list[Row]:
        model = self._model(collection)
        query = select(model).where(*self._where(model, filters)).order_by(model.id)
        try:
            return [self._to_row(obj) for obj in self.db.scalars(query).all()]
        except SQLAlchemyError as exc:
            self._fail(collection, "select", exc)

    def get(self, collection: str, row_id: int) -> Row | None:
        model = self._model(collection)
        try:
            obj = self.db.get(model, row_id)
        except SQLAlchemyError as exc:
            self._fail(collection, "get", exc)
        return self._to_row(obj) if obj else None

    def insert(self, collection: str, row: Row) -> Row:
        model = self._model(collection)
        for name in row:
            self._column(model, name)
        obj = model(**row)
        try:
            self.db.add(obj)
            self.db.commit()
            self.db.refresh(obj)
        except SQLAlchemyError as exc:
            self._fail(collection, "insert", exc)
        return self._to_row(obj)

    def update(self, collection: str, row_id: int, patch: Row) -> Row:
        model = self._model(collection)
        for name in patch:
            self._column(model, name)
        try:
            obj = self.db.get(model, row_id)
            if obj is None:
                raise NotFoundError(f"Record {row_id} not found in {collection}")
            for name, value in patch.items():
                setattr(obj, name, value)
            self.db.commit()
            self.db.refresh(obj)
        except SQLAlchemyError as exc:
            self._fail(collection, "update", exc)
        return self._to_row(obj)

    def delete(self, collection: str, target: int | dict[str, Any]) -> int:
        model = self._model(collection)
        if isinstance(target, dict) and not target:
            raise ValidationError("Refusing to delete without a filter")
        try:
            if isinstance(target, dict):
                result = self.db.execute(
                    delete(model).where(*self._where(model, target)).execution_options(synchronize_session=False)
                )
                self.db.commit()
                return result.rowcount
            obj = self.db.get(model, target)
            if obj is None:
                raise NotFoundError(f"Record {target} not found in {collection}")
            self.db.delete(obj)
            self.db.commit()
            return 1
        except SQLAlchemyError as exc:
            self._fail(collection, "delete", exc)
