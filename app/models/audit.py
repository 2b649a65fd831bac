import enum
from datetime import datetime, timezone
from sqlalchemy import ForeignKey, String, DateTime, Integer, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.database import Base


class AuditStatus(str, enum.Enum):
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class ScanMethod(str, enum.Enum):
    qr_code = "qr_code"
    manual_id = "manual_id"


class InventoryAudit(Base):
    __tablename__ = "inventory_audits"
    # Never reuse ids of deleted rows
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    audit_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        SAEnum(AuditStatus, values_callable=lambda e: [x.value for x in e], native_enum=False),
        default=AuditStatus.in_progress.value,
        nullable=False,
        index=True,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_expected: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_counted: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    items: Mapped[list["AuditItem"]] = relationship(back_populates="audit", cascade="all, delete-orphan")


class AuditItem(Base):
    __tablename__ = "audit_items"

    __table_args__ = (
        UniqueConstraint("audit_id", "chromebook_id", name="uq_audit_chromebook"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    audit_id: Mapped[int] = mapped_column(ForeignKey("inventory_audits.id"), nullable=False, index=True)
    chromebook_id: Mapped[int] = mapped_column(ForeignKey("chromebooks.id"), nullable=False, index=True)
    counted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    counted_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    scan_method: Mapped[str] = mapped_column(
        SAEnum(ScanMethod, values_callable=lambda e: [x.value for x in e], native_enum=False),
        nullable=False,
    )
    # Snapshot of the inventory row at count time
    expected_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    condition_expected: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Operator-correctable
    location_found: Mapped[str | None] = mapped_column(String(255), nullable=True)
    condition_found: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    audit: Mapped["InventoryAudit"] = relationship(back_populates="items")
    chromebook: Mapped["Chromebook"] = relationship(back_populates="audit_items")
