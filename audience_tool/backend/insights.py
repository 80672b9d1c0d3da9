"""
Request builder for the external AI-summary service.
The core only shapes what is sent; the service's results are carried back
to the client as-is.
"""
import math
from typing import Any, Mapping

import pandas as pd

from column_classifier import is_blank
from data_loader import json_value
from filters import FilterState
from models import AnalysisRequest, AnalysisResponse, KPISet


# Rows of normalized data sent with each request
DEFAULT_SAMPLE_CAP = 50


def _cell(value: Any) -> Any:
    if is_blank(value):
        return None
    value = json_value(value)
    if isinstance(value, float) and math.isinf(value):
        return None
    return value


def sample_rows(df: pd.DataFrame, sample_cap: int = DEFAULT_SAMPLE_CAP) -> list[dict[str, Any]]:
    """First `sample_cap` rows as JSON-safe dicts (nulls become None)."""
    head = df.head(max(sample_cap, 0))
    return [
        {str(column): _cell(value) for column, value in row.items()}
        for row in head.to_dict(orient="records")
    ]


def build_analysis_request(
    dataset_id: str,
    analysis_type: str,
    df: pd.DataFrame,
    filter_state: FilterState,
    kpis: KPISet,
    sample_cap: int = DEFAULT_SAMPLE_CAP,
) -> AnalysisRequest:
    """
    Build the bounded request for the analysis service.

    Args:
        dataset_id: Identifier of the loaded dataset
        analysis_type: insights, recommendations, predictions or all
        df: Filtered, normalized rows
        filter_state: The active filter
        kpis: KPIs of the filtered rows
        sample_cap: Maximum number of rows included

    Returns:
        AnalysisRequest holding at most `sample_cap` rows
    """
    return AnalysisRequest(
        dataset_id=dataset_id,
        type=analysis_type,
        data_sample=sample_rows(df, sample_cap),
        filters=filter_state.to_dict(),
        kpis=kpis,
    )


def request_payload(request: AnalysisRequest) -> dict[str, Any]:
    """Wire body for the service, using its camelCase field names."""
    return {
        "datasetId": request.dataset_id,
        "type": request.type,
        "dataSample": request.data_sample,
        "filters": request.filters,
        "kpis": request.kpis.model_dump(mode="json"),
    }


def parse_analysis_response(payload: Mapping[str, Any]) -> AnalysisResponse:
    """Wrap a service reply without interpreting its results."""
    results = payload.get("results")
    if payload.get("success") and isinstance(results, dict):
        return AnalysisResponse(success=True, results=results)
    return AnalysisResponse(
        success=False,
        results=results if isinstance(results, dict) else {},
        error=str(payload.get("error") or "Analysis failed"),
    )
