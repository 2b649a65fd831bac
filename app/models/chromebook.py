import enum
from datetime import datetime, timezone
from sqlalchemy import String, Boolean, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class ChromebookStatus(str, enum.Enum):
    available = "available"
    loaned = "loaned"
    fixed = "fixed"                          # fixed in a classroom
    out_of_service = "out_of_service"
    under_maintenance = "under_maintenance"


class Chromebook(Base):
    __tablename__ = "chromebooks"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    chromebook_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    model: Mapped[str] = mapped_column(String(255), nullable=False)
    manufacturer: Mapped[str | None] = mapped_column(String(128), nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    patrimony_number: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    condition: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        SAEnum(ChromebookStatus, values_callable=lambda e: [x.value for x in e], native_enum=False),
        default=ChromebookStatus.available.value,
        nullable=False,
    )
    is_deprovisioned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    audit_items: Mapped[list["AuditItem"]] = relationship(back_populates="chromebook")
