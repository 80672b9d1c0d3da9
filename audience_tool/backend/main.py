"""
FastAPI application for the audience analytics backend.
Loads spreadsheet rows and serves KPIs, location summaries, role rankings,
column statistics, export records and AI-summary requests for any filter.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Iterable

import pandas as pd
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from data_loader import (
    Dataset,
    IngestionError,
    available_filters,
    column_info,
    geography_info,
    get_data_store,
    load_data_file,
)
from export import (
    ROLE_HEADERS,
    location_headers,
    location_summaries_to_records,
    role_metadata_to_records,
)
from filters import FilterState, apply_filter, effective_roles, normalize_filters
from insights import build_analysis_request
from metrics import (
    compute_column_statistics,
    compute_kpis,
    compute_location_summaries,
    compute_pareto,
    compute_region_category_matrix,
    compute_role_metadata,
)
from models import (
    AnalysisRequest,
    AnalysisRequestBody,
    ConfigResponse,
    DatasetLoadRequest,
    DatasetLoadResponse,
    ExportResponse,
    FilterRequest,
    HealthResponse,
    ICPConfig,
    KPIRequest,
    KPISet,
    LocationsRequest,
    LocationsResponse,
    RolesResponse,
    StatisticsRequest,
    StatisticsResponse,
)
from normalizer import INDUSTRY_CATEGORIES


logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://localhost:8080",
]


def cors_origins() -> list[str]:
    raw = os.environ.get("AUDIENCE_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or DEFAULT_CORS_ORIGINS


# ============================================================================
# Application Lifecycle
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the configured data file on startup, if there is one."""
    data_path = os.environ.get("AUDIENCE_DATA_PATH")
    if not data_path:
        logger.info("AUDIENCE_DATA_PATH not set; waiting for POST /dataset")
    elif not Path(data_path).exists():
        logger.warning("Data file not found at %s; data endpoints return 503 until a dataset is loaded", data_path)
    else:
        try:
            load_data_file(data_path)
        except IngestionError:
            logger.exception("Could not load %s", data_path)
    yield


# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title="Audience Analytics API",
    description="Backend API for spreadsheet classification, geography normalization and audience aggregates",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Request Helpers
# ============================================================================

def require_dataset() -> Dataset:
    store = get_data_store()
    if not store.is_loaded:
        raise HTTPException(status_code=503, detail="Data not loaded.")
    return store.dataset


def _check_columns(dataset: Dataset, names: Iterable[str], context: str) -> None:
    known = set(dataset.column_names)
    unknown = [name for name in names if name not in known]
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown column(s) in {context}: {unknown}",
        )


def _check_icp(dataset: Dataset, icp: ICPConfig) -> None:
    names = [name for name in (icp.column_name, icp.threshold_column) if name]
    names.extend(rule.column for rule in icp.rules)
    _check_columns(dataset, names, "icp")


def resolve_filters(dataset: Dataset, request: FilterRequest) -> FilterState:
    _check_columns(dataset, request.column_values, "column_values")
    _check_columns(dataset, request.numeric_ranges, "numeric_ranges")
    return normalize_filters(request.model_dump())


def filtered_rows(dataset: Dataset, filter_state: FilterState) -> pd.DataFrame:
    return apply_filter(
        dataset.df,
        filter_state,
        dataset.profile,
        location_field=dataset.location_field,
        category_field=dataset.category_field,
        date_column=dataset.date_column,
    )


def _kpis(dataset: Dataset, filter_state: FilterState, icp: ICPConfig | None) -> tuple[KPISet, pd.DataFrame]:
    icp = icp or dataset.icp_config
    _check_icp(dataset, icp)
    df = filtered_rows(dataset, filter_state)
    kpis = compute_kpis(
        df,
        list(dataset.columns),
        dataset.profile,
        location_field=dataset.location_field,
        category_field=dataset.category_field,
        icp_config=icp,
        roles=effective_roles(filter_state, dataset.role_columns),
    )
    return kpis, df


def _location_summaries(dataset: Dataset, request: LocationsRequest):
    filter_state = resolve_filters(dataset, request.filters)
    if request.breakdown_column:
        _check_columns(dataset, [request.breakdown_column], "breakdown_column")
    df = filtered_rows(dataset, filter_state)
    if not dataset.location_field:
        return [], df

    if request.breakdown_column:
        value_columns, breakdown = None, request.breakdown_column
    elif dataset.role_columns:
        value_columns, breakdown = effective_roles(filter_state, dataset.role_columns), None
    else:
        value_columns, breakdown = None, dataset.category_field

    summaries = compute_location_summaries(
        df,
        dataset.profile,
        dataset.location_field,
        value_columns=value_columns,
        breakdown_column=breakdown,
        top_n=request.top_n,
    )
    return summaries, df


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Simple health check endpoint."""
    return HealthResponse(status="ok")


# ============================================================================
# Dataset & Configuration
# ============================================================================

@app.post("/dataset", response_model=DatasetLoadResponse)
async def load_dataset(request: DatasetLoadRequest):
    """Classify, detect and normalize uploaded rows; replaces the loaded dataset."""
    store = get_data_store()
    try:
        dataset = store.load_rows(request.rows, file_name=request.file_name)
    except IngestionError as exc:
        logger.exception("Dataset load failed for %s", request.file_name)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return DatasetLoadResponse(
        dataset_id=dataset.dataset_id,
        file_name=dataset.file_name,
        row_count=dataset.row_count,
        columns=[column_info(column) for column in dataset.columns],
        geography=geography_info(dataset.profile),
    )


@app.get("/config", response_model=ConfigResponse)
async def get_config():
    """
    Get the loaded dataset's classification, geography, ICP configuration
    and available filter choices.
    """
    dataset = require_dataset()
    return ConfigResponse(
        dataset_id=dataset.dataset_id,
        file_name=dataset.file_name,
        row_count=dataset.row_count,
        columns=[column_info(column) for column in dataset.columns],
        geography=geography_info(dataset.profile),
        location_column=dataset.location_column,
        role_columns=list(dataset.role_columns),
        industry_categories=list(INDUSTRY_CATEGORIES),
        icp=dataset.icp_config,
        available_filters=available_filters(dataset),
    )


# ============================================================================
# Aggregates
# ============================================================================

@app.post("/kpis", response_model=KPISet)
async def get_kpis(request: KPIRequest):
    dataset = require_dataset()
    filter_state = resolve_filters(dataset, request.filters)
    kpis, _ = _kpis(dataset, filter_state, request.icp)
    return kpis


@app.post("/locations", response_model=LocationsResponse)
async def get_locations(request: LocationsRequest):
    """Per-location totals, shares and top-N breakdowns for the filtered rows."""
    dataset = require_dataset()
    summaries, df = _location_summaries(dataset, request)
    return LocationsResponse(summaries=summaries, filtered_count=int(len(df)))


@app.post("/roles", response_model=RolesResponse)
async def get_roles(request: KPIRequest):
    """Role column totals with Pareto and region x category breakdowns."""
    dataset = require_dataset()
    filter_state = resolve_filters(dataset, request.filters)
    df = filtered_rows(dataset, filter_state)
    roles = effective_roles(filter_state, dataset.role_columns)

    metadata = compute_role_metadata(df, roles)
    region_categories = []
    if dataset.location_field:
        region_categories = compute_region_category_matrix(df, dataset.profile, dataset.location_field, roles)
    return RolesResponse(
        roles=metadata,
        pareto=compute_pareto({role.column_name: role.total for role in metadata}),
        region_categories=region_categories,
    )


@app.post("/statistics", response_model=StatisticsResponse)
async def get_statistics(request: StatisticsRequest):
    dataset = require_dataset()
    _check_columns(dataset, request.columns, "columns")
    filter_state = resolve_filters(dataset, request.filters)
    df = filtered_rows(dataset, filter_state)

    columns = list(dataset.columns)
    if request.columns:
        wanted = set(request.columns)
        columns = [column for column in columns if column.name in wanted]
    return StatisticsResponse(statistics=compute_column_statistics(df, columns))


# ============================================================================
# Export
# ============================================================================

@app.post("/export/locations", response_model=ExportResponse)
async def export_locations(request: LocationsRequest):
    dataset = require_dataset()
    summaries, _ = _location_summaries(dataset, request)
    return ExportResponse(
        headers=location_headers(request.top_n),
        records=location_summaries_to_records(summaries, top_n=request.top_n),
    )


@app.post("/export/roles", response_model=ExportResponse)
async def export_roles(request: KPIRequest):
    dataset = require_dataset()
    filter_state = resolve_filters(dataset, request.filters)
    df = filtered_rows(dataset, filter_state)
    metadata = compute_role_metadata(df, effective_roles(filter_state, dataset.role_columns))
    return ExportResponse(headers=ROLE_HEADERS, records=role_metadata_to_records(metadata))


# ============================================================================
# AI Summary
# ============================================================================

@app.post("/analysis-request", response_model=AnalysisRequest)
async def get_analysis_request(request: AnalysisRequestBody):
    """Build the request body for the external analysis service."""
    dataset = require_dataset()
    filter_state = resolve_filters(dataset, request.filters)
    kpis, df = _kpis(dataset, filter_state, request.icp)
    return build_analysis_request(
        dataset.dataset_id,
        request.analysis_type,
        df,
        filter_state,
        kpis,
        sample_cap=request.sample_cap,
    )


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=os.environ.get("AUDIENCE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
