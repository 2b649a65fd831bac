from app.schemas.chromebook import ChromebookResponse, InventorySummary
from app.schemas.audit import (
    AuditCreate, AuditResponse, ActiveAuditResponse, CountedItem, CountItemRequest, ItemCorrection, Observation,
)
from app.schemas.filters import AuditFilters, DateRange
from app.schemas.report import AuditReport, Discrepancy, LocationStats, MethodStats, ConditionStats, HourStats
from app.schemas.pagination import Page

__all__ = [
    "ChromebookResponse", "InventorySummary",
    "AuditCreate", "AuditResponse", "ActiveAuditResponse", "CountedItem", "CountItemRequest",
    "ItemCorrection", "Observation",
    "AuditFilters", "DateRange",
    "AuditReport", "Discrepancy", "LocationStats", "MethodStats", "ConditionStats", "HourStats",
    "Page",
]
