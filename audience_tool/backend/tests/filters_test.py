from datetime import datetime

import pandas as pd
from filters import (
    FilterState,
    apply_filter,
    effective_locations,
    effective_roles,
    filter_mask,
    normalize_filters,
)
from geography import US_PROFILE
from normalizer import ENTERTAINMENT_CATEGORY, FASHION_CATEGORY, MUSIC_CATEGORY

ROLES = ["Tailor", "Composer", "Camera Operator", "Wardrobe Supervisor"]


def _frame():
    return pd.DataFrame({
        "State": ["Texas", "California", "NY", "Ohio", None],
        "State_normalized": ["TX", "CA", "NY", "OH", None],
        "Sector": ["Film studio", "Bridal shop", "Record label", "Film", "Tour"],
        "Sector_category": [
            ENTERTAINMENT_CATEGORY, FASHION_CATEGORY, ENTERTAINMENT_CATEGORY,
            ENTERTAINMENT_CATEGORY, MUSIC_CATEGORY,
        ],
        "Budget": pd.array([10.0, 20.0, None, 40.0, 50.0], dtype="Float64"),
        "Signed": pd.to_datetime(["2024-01-01", "2024-02-01", None, "2024-04-01", "2024-05-01"]),
        "Tier": ["A", "B", "A", "C", "B"],
    })


def _apply(filter_state):
    return apply_filter(
        _frame(), filter_state, US_PROFILE,
        location_field="State_normalized",
        category_field="Sector_category",
        date_column="Signed",
    )


def test_empty_filter_keeps_everything():
    state = FilterState()
    assert state.is_empty
    assert len(_apply(state)) == 5


def test_region_and_location_selection_union():
    state = FilterState(regions=("West",), locations=("NY",))
    assert effective_locations(state, US_PROFILE)[-1] == "NY"
    assert _apply(state)["State_normalized"].tolist() == ["CA", "NY"]


def test_category_filter_uses_category_field():
    result = _apply(FilterState(categories=(MUSIC_CATEGORY, FASHION_CATEGORY)))
    assert result["Sector"].tolist() == ["Bridal shop", "Tour"]


def test_column_values_and_numeric_ranges():
    result = _apply(FilterState(column_values={"Tier": ("A", "B")}, numeric_ranges={"Budget": (15.0, 45.0)}))
    # Null budget is not excluded by the numeric range
    assert result["State_normalized"].tolist() == ["CA", "NY"]


def test_date_range_keeps_undated_rows():
    state = FilterState(date_start=datetime(2024, 1, 15), date_end=datetime(2024, 4, 1))
    assert _apply(state)["State_normalized"].tolist() == ["CA", "NY", "OH"]


def test_search_text_is_case_insensitive():
    result = _apply(FilterState(search_text="LABEL"))
    assert result["Sector"].tolist() == ["Record label"]


def test_filter_does_not_mutate_and_preserves_order():
    frame = _frame()
    before = frame.copy()
    mask = filter_mask(frame, FilterState(locations=("OH", "TX")), US_PROFILE, "State_normalized")
    assert mask.tolist() == [True, False, False, True, False]
    pd.testing.assert_frame_equal(frame, before)


def test_empty_frame():
    result = apply_filter(_frame().iloc[0:0], FilterState(search_text="x"), US_PROFILE)
    assert result.empty


def test_effective_roles_modes():
    assert effective_roles(FilterState(), ROLES) == ROLES
    assert effective_roles(FilterState(categories=(FASHION_CATEGORY,)), ROLES) == ["Tailor", "Wardrobe Supervisor"]
    assert effective_roles(FilterState(roles=("Composer", "Ghost")), ROLES) == ["Composer"]

    both = dict(roles=("Composer", "Tailor"), categories=(FASHION_CATEGORY,))
    assert effective_roles(FilterState(category_mode="AND", **both), ROLES) == ["Tailor"]
    assert effective_roles(FilterState(category_mode="OR", **both), ROLES) == [
        "Composer", "Tailor", "Wardrobe Supervisor",
    ]


def test_normalize_filters_cleans_input():
    state = normalize_filters({
        "locations": ["TX", " TX ", "", None],
        "category_mode": "or",
        "search_text": "  film ",
        "column_values": {"Tier": ["A"], "Empty": []},
        "numeric_ranges": {"Budget": {"min": "10", "max": None}},
    })
    assert state.locations == ("TX",)
    assert state.category_mode == "OR"
    assert state.search_text == "film"
    assert state.column_values == {"Tier": ("A",)}
    assert state.numeric_ranges == {"Budget": (10.0, float("inf"))}
    assert state.to_dict()["locations"] == ["TX"]
    assert state.to_dict()["numeric_ranges"] == {"Budget": {"min": 10.0, "max": None}}
