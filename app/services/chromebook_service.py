from sqlalchemy.orm import Session
from sqlalchemy import select, func
from fastapi import HTTPException
from app.models.chromebook import Chromebook
from app.schemas.pagination import Page


def get_chromebooks(db: Session, page: int = 1, size: int = 50, search: str = "", status: str = "") -> Page:
    query = select(Chromebook).where(Chromebook.is_deprovisioned == False)  # noqa: E712
    if search:
        query = query.where(
            Chromebook.chromebook_id.ilike(f"%{search}%")
            | Chromebook.model.ilike(f"%{search}%")
            | Chromebook.serial_number.ilike(f"%{search}%")
            | Chromebook.patrimony_number.ilike(f"%{search}%")
        )
    if status:
        query = query.where(Chromebook.status == status)
    total = db.scalar(select(func.count()).select_from(query.subquery()))
    chromebooks = db.scalars(query.order_by(Chromebook.chromebook_id).offset((page - 1) * size).limit(size)).all()
    return Page.build(chromebooks, total, page, size)


def get_chromebook(db: Session, chromebook_pk: int) -> Chromebook:
    chromebook = db.get(Chromebook, chromebook_pk)
    if not chromebook:
        raise HTTPException(status_code=404, detail="Chromebook not found")
    return chromebook
