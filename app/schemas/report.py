from pydantic import BaseModel, ConfigDict, Field


class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Discrepancy(BaseModel):
    chromebook_id: str
    expected_location: str | None = None
    location_found: str | None = None
    condition_expected: str | None = None
    condition_found: str | None = None


class LocationStats(BaseModel):
    location: str
    counted: int
    expected: int
    discrepancy: int


class MethodStats(BaseModel):
    qr_code: int = 0
    manual: int = 0
    percentage_qr: float = 0
    percentage_manual: float = 0


class ConditionStats(BaseModel):
    condition: str
    count: int
    percentage: float


class HourStats(BaseModel):
    hour: str
    count: int
    cumulative: int


class ReportSummary(_Camel):
    total_counted: int = Field(alias="totalCounted")
    total_expected: int = Field(alias="totalExpected")
    completion_rate: str = Field(alias="completionRate")
    duration: str
    items_per_hour: float = Field(alias="itemsPerHour")
    average_time_per_item: str = Field(alias="averageTimePerItem")


class ReportDiscrepancies(_Camel):
    missing: list[Discrepancy]
    extra: list[Discrepancy] = []
    location_mismatches: list[Discrepancy] = Field(alias="locationMismatches")
    condition_mismatches: list[Discrepancy] = Field(alias="conditionMismatches")


class ReportStatistics(_Camel):
    by_location: list[LocationStats] = Field(alias="byLocation")
    by_method: MethodStats = Field(alias="byMethod")
    by_condition: list[ConditionStats] = Field(alias="byCondition")
    by_hour: list[HourStats] = Field(alias="byHour")


class AuditReport(BaseModel):
    """Everything an exporter needs to render an audit. Serialize with ``by_alias=True``."""

    summary: ReportSummary
    discrepancies: ReportDiscrepancies
    statistics: ReportStatistics
