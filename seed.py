"""Seed script: fills the DB with demo Chromebooks."""
import os
import sys

# Ensure we're in the project root
sys.path.insert(0, os.path.dirname(__file__))

from sqlalchemy.orm import Session
from app.database import Base, engine, SessionLocal
from app.models.chromebook import Chromebook, ChromebookStatus

CHROMEBOOKS = [
    # code, model, manufacturer, serial, patrimony, location, condition, status
    ("CHR001", "Chromebook Acer C733", "Acer", "SN001", "PAT001", "Room 101", "good", ChromebookStatus.available),
    ("CHR002", "Chromebook Lenovo 300e", "Lenovo", "SN002", "PAT002", "Room 102", "excellent", ChromebookStatus.loaned),
    ("CHR003", "Chromebook HP x360", "HP", "SN003", "PAT003", "Room 103", "fair", ChromebookStatus.fixed),
    ("CHR004", "Chromebook Acer C733", "Acer", "SN004", "PAT004", "Room 101", "good", ChromebookStatus.available),
    ("CHR005", "Chromebook Lenovo 300e", "Lenovo", "SN005", "PAT005", "Library", "good", ChromebookStatus.available),
    ("CHR006", "Chromebook Dell 3100", "Dell", "SN006", "PAT006", "Library", "damaged", ChromebookStatus.under_maintenance),
    ("CHR007", "Chromebook Dell 3100", "Dell", "SN007", "PAT007", None, "good", ChromebookStatus.out_of_service),
    ("CHR008", "Chromebook HP x360", "HP", "SN008", "PAT008", "Room 102", "excellent", ChromebookStatus.available),
]


def seed(db: Session) -> int:
    """Insert the demo devices that are not there yet. Returns how many were added."""
    existing_codes = {c for (c,) in db.query(Chromebook.chromebook_id).all()}
    added = 0
    for code, model, maker, serial, patrimony, location, condition, status in CHROMEBOOKS:
        if code in existing_codes:
            continue
        db.add(Chromebook(
            chromebook_id=code,
            model=model,
            manufacturer=maker,
            serial_number=serial,
            patrimony_number=patrimony,
            location=location,
            condition=condition,
            status=status.value,
        ))
        added += 1
    db.commit()
    return added


if __name__ == "__main__":
    os.makedirs("data", exist_ok=True)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        print(f"Seed done, {seed(session)} Chromebooks added")
    finally:
        session.close()
