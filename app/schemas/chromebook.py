from datetime import datetime
from pydantic import BaseModel, Field
from app.models.chromebook import ChromebookStatus


class ChromebookBase(BaseModel):
    chromebook_id: str = Field(..., min_length=1, max_length=64)
    model: str = Field(..., min_length=1, max_length=255)
    manufacturer: str | None = None
    serial_number: str | None = None
    patrimony_number: str | None = None
    location: str | None = None
    condition: str | None = None
    status: ChromebookStatus = ChromebookStatus.available
    is_deprovisioned: bool = False


class ChromebookResponse(ChromebookBase):
    """One inventory row. The audit engine reads these, never writes them."""

    id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class InventorySummary(BaseModel):
    total: int
    by_status: dict[str, int]
