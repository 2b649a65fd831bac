from datetime import datetime
from pydantic import BaseModel, Field
from app.models.audit import AuditStatus, ScanMethod
from app.models.chromebook import ChromebookStatus


class AuditCreate(BaseModel):
    name: str = Field(..., max_length=255)


class AuditResponse(BaseModel):
    id: int
    audit_name: str
    status: AuditStatus
    started_at: datetime
    completed_at: datetime | None = None
    total_expected: int | None = None
    total_counted: int | None = None
    created_by: str
    notes: str | None = None

    model_config = {"from_attributes": True}


class Observation(BaseModel):
    """What the inventory said about a device at the moment it was counted."""

    code: str
    model: str | None = None
    manufacturer: str | None = None
    serial_number: str | None = None
    expected_location: str | None = None
    condition: str | None = None
    status: ChromebookStatus | None = None

    model_config = {"frozen": True}


class CountedItem(BaseModel):
    id: int
    audit_id: int
    chromebook_id: int
    counted_at: datetime
    counted_by: str | None = None
    scan_method: ScanMethod
    observed: Observation
    location_found: str | None = None
    condition_found: str | None = None
    notes: str | None = None

    @property
    def display_id(self) -> str:
        return self.observed.code

    @property
    def effective_location(self) -> str | None:
        return self.location_found or self.observed.expected_location

    @property
    def effective_condition(self) -> str | None:
        return self.condition_found or self.observed.condition


class CountItemRequest(BaseModel):
    token: str
    method: ScanMethod = ScanMethod.manual_id
    notes: str | None = None


class ItemCorrection(BaseModel):
    location_found: str | None = None
    condition_found: str | None = None


class ActiveAuditResponse(BaseModel):
    audit: AuditResponse
    items: list[CountedItem]
    total_expected: int
