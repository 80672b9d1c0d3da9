"""
Pydantic models for aggregates and API request/response schemas.
"""
from datetime import datetime
from typing import Any, Literal, Optional
from pydantic import BaseModel, Field


# ============================================================================
# ICP Configuration
# ============================================================================

class ICPRule(BaseModel):
    """One column test; rules in a config combine with logical AND."""
    column: str
    operator: Literal["equals", "contains", "in", "greater", "less"]
    value: str | float | list[str | float]


class ICPConfig(BaseModel):
    """How a row qualifies as an ideal-customer match."""
    mode: Literal["column", "threshold", "rules"] = "column"
    column_name: Optional[str] = None
    threshold: Optional[float] = None
    threshold_column: Optional[str] = None
    rules: list[ICPRule] = Field(default_factory=list)


# ============================================================================
# Dataset Description
# ============================================================================

class ColumnInfo(BaseModel):
    """Classification of a single column."""
    name: str
    type: str
    roles: list[str] = Field(default_factory=list)
    sample_values: list[Any] = Field(default_factory=list)


class GeographyInfo(BaseModel):
    """The geography profile selected for the dataset."""
    id: str
    display_name: str
    location_label: str
    region_label: str
    map_type: str
    regions: dict[str, list[str]] = Field(default_factory=dict)
    location_count: int = 0


class NumericRange(BaseModel):
    min: float = 0.0
    max: float = 0.0


class AvailableFilters(BaseModel):
    """Filter choices offered for the loaded dataset."""
    locations: list[str] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)
    column_values: dict[str, list[str]] = Field(default_factory=dict)
    numeric_ranges: dict[str, NumericRange] = Field(default_factory=dict)


# ============================================================================
# Aggregates
# ============================================================================

class TopItem(BaseModel):
    """One entry of a ranked breakdown."""
    name: str
    count: float = 0.0


class KPISet(BaseModel):
    """Headline totals and breakdowns for the filtered rows."""
    total_records: int = 0
    qualified_count: int = 0
    company_count: int = 0
    location_count: int = 0
    region_count: int = 0
    industry_breakdown: dict[str, int] = Field(default_factory=dict)
    segment_breakdown: dict[str, int] = Field(default_factory=dict)
    status_breakdown: dict[str, int] = Field(default_factory=dict)
    # Wide-format totals (sums of role columns)
    total_people: float = 0.0
    role_breakdown: dict[str, float] = Field(default_factory=dict)
    industry_totals: dict[str, float] = Field(default_factory=dict)
    location_totals: dict[str, float] = Field(default_factory=dict)
    region_totals: dict[str, float] = Field(default_factory=dict)
    avg_people_per_location: float = 0.0
    top_location: Optional[TopItem] = None
    bottom_location: Optional[TopItem] = None
    top_role: Optional[TopItem] = None
    top_industry: Optional[TopItem] = None


class LocationSummary(BaseModel):
    """Totals for one resolved location code."""
    code: str
    name: str
    region: Optional[str] = None
    total: float = 0.0
    percent_of_total: float = 0.0
    top_items: list[TopItem] = Field(default_factory=list)


class RoleMetadata(BaseModel):
    """Total headcount of one wide-format role column."""
    column_name: str
    industry: str
    total: float = 0.0
    percent_of_total: float = 0.0


class ValueCount(BaseModel):
    value: str
    count: int


class ColumnStatistics(BaseModel):
    """Summary statistics for one column of the filtered rows."""
    name: str
    type: str
    null_count: int = 0
    unique_count: int = 0
    # Numeric
    min: Optional[float] = None
    max: Optional[float] = None
    sum: Optional[float] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    # Categorical / location
    top_values: list[ValueCount] = Field(default_factory=list)
    # Date
    earliest: Optional[datetime] = None
    latest: Optional[datetime] = None
    span_days: Optional[int] = None


class ParetoPoint(BaseModel):
    role: str
    count: float
    cumulative: float
    cumulative_percent: float


class RegionCategoryRow(BaseModel):
    """Role totals for one region split by industry category."""
    region: str
    categories: dict[str, float] = Field(default_factory=dict)
    total: float = 0.0


# ============================================================================
# API Requests
# ============================================================================

class FilterRange(BaseModel):
    """Requested numeric bounds; a missing bound is open."""
    min: Optional[float] = None
    max: Optional[float] = None


class FilterRequest(BaseModel):
    """Declarative filter sent by the client."""
    locations: list[str] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    roles: list[str] = Field(default_factory=list)
    category_mode: Literal["AND", "OR"] = "AND"
    search_text: str = ""
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    column_values: dict[str, list[str]] = Field(default_factory=dict)
    numeric_ranges: dict[str, FilterRange] = Field(default_factory=dict)


class DatasetLoadRequest(BaseModel):
    """Request body for POST /dataset: rows already parsed from a spreadsheet."""
    file_name: str = "upload"
    rows: list[dict[str, Any]]


class KPIRequest(BaseModel):
    filters: FilterRequest = Field(default_factory=FilterRequest)
    icp: Optional[ICPConfig] = None


class LocationsRequest(BaseModel):
    """Request body for POST /locations and POST /export/locations."""
    filters: FilterRequest = Field(default_factory=FilterRequest)
    breakdown_column: Optional[str] = Field(
        default=None,
        description="Column ranked inside each location; defaults to role columns or the category field",
    )
    top_n: int = Field(default=3, ge=1, le=50)


class StatisticsRequest(BaseModel):
    filters: FilterRequest = Field(default_factory=FilterRequest)
    columns: list[str] = Field(default_factory=list, description="Columns to summarize; empty means all")


class AnalysisRequestBody(BaseModel):
    """Request body for POST /analysis-request."""
    analysis_type: Literal["insights", "recommendations", "predictions", "all"] = "all"
    filters: FilterRequest = Field(default_factory=FilterRequest)
    icp: Optional[ICPConfig] = None
    sample_cap: int = Field(default=50, ge=1, le=500)


# ============================================================================
# API Responses
# ============================================================================

class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""
    status: str = "ok"


class DatasetLoadResponse(BaseModel):
    dataset_id: str
    file_name: str
    row_count: int
    columns: list[ColumnInfo]
    geography: GeographyInfo


class ConfigResponse(BaseModel):
    """Response model for GET /config endpoint."""
    dataset_id: str
    file_name: str
    row_count: int
    columns: list[ColumnInfo]
    geography: GeographyInfo
    location_column: Optional[str] = None
    role_columns: list[str] = Field(default_factory=list)
    industry_categories: list[str] = Field(default_factory=list)
    icp: ICPConfig = Field(default_factory=ICPConfig)
    available_filters: AvailableFilters = Field(default_factory=AvailableFilters)


class LocationsResponse(BaseModel):
    summaries: list[LocationSummary]
    filtered_count: int = 0


class RolesResponse(BaseModel):
    roles: list[RoleMetadata]
    pareto: list[ParetoPoint] = Field(default_factory=list)
    region_categories: list[RegionCategoryRow] = Field(default_factory=list)


class StatisticsResponse(BaseModel):
    statistics: list[ColumnStatistics]


class ExportResponse(BaseModel):
    """Flat, column-labelled records ready for a CSV/XLSX writer."""
    headers: list[str]
    records: list[dict[str, Any]]


class AnalysisRequest(BaseModel):
    """Payload sent to the external AI-summary service."""
    dataset_id: str
    type: Literal["insights", "recommendations", "predictions", "all"] = "all"
    data_sample: list[dict[str, Any]] = Field(default_factory=list)
    filters: dict[str, Any] = Field(default_factory=dict)
    kpis: KPISet = Field(default_factory=KPISet)


class AnalysisResponse(BaseModel):
    """Service results, passed through to the client without interpretation."""
    success: bool = True
    results: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
