import json

import pandas as pd
from filters import FilterState
from insights import build_analysis_request, parse_analysis_response, request_payload, sample_rows
from models import KPISet


def _frame(rows=80):
    return pd.DataFrame({
        "State": ["Texas"] * rows,
        "Budget": pd.array([float(i) if i % 2 else None for i in range(rows)], dtype="Float64"),
        "Signed": pd.to_datetime(["2024-01-01"] * (rows - 1) + [None]),
    })


def test_sample_is_capped_and_json_safe():
    request = build_analysis_request(
        "ds-1", "insights", _frame(), FilterState(locations=("TX",)), KPISet(total_records=80),
    )
    assert request.dataset_id == "ds-1"
    assert request.type == "insights"
    assert len(request.data_sample) == 50
    assert request.data_sample[0] == {"State": "Texas", "Budget": None, "Signed": "2024-01-01T00:00:00"}
    assert request.data_sample[1]["Budget"] == 1.0
    assert request.filters == {"locations": ["TX"]}
    assert request.kpis.total_records == 80
    json.dumps(request_payload(request))


def test_custom_cap_and_small_frames():
    assert len(sample_rows(_frame(), sample_cap=5)) == 5
    assert len(sample_rows(_frame(3))) == 3
    assert sample_rows(_frame().iloc[0:0]) == []


def test_payload_uses_service_field_names():
    request = build_analysis_request("ds-1", "all", _frame(2), FilterState(), KPISet())
    payload = request_payload(request)
    assert set(payload) == {"datasetId", "type", "dataSample", "filters", "kpis"}
    assert payload["filters"] == {}


def test_response_passes_results_through():
    results = {"insights": [{"title": "Texas leads", "confidence": "high"}]}
    response = parse_analysis_response({"success": True, "results": results})
    assert response.success
    assert response.results == results

    failed = parse_analysis_response({"success": False, "error": "Rate limit exceeded"})
    assert not failed.success
    assert failed.error == "Rate limit exceeded"
