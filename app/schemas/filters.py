from datetime import datetime
from typing import Literal
from pydantic import BaseModel, field_validator, model_validator
from app.errors import ValidationError
from app.services.clock import as_utc


class DateRange(BaseModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class AuditFilters(BaseModel):
    location: str | None = None
    scan_method: Literal["qr_code", "manual_id", "all"] = "all"
    search: str | None = None
    date_range: DateRange | None = None

    @model_validator(mode="after")
    def _check_range(self):
        # Raised as-is (not a ValueError) so it surfaces as an audit validation failure
        if self.date_range and self.date_range.start > self.date_range.end:
            raise ValidationError("Filter date range starts after it ends")
        return self
