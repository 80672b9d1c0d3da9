import pandas as pd
from column_classifier import Column, ColumnRole, ColumnType, classify_columns
from geography import US_PROFILE, detect
from normalizer import (
    DEFAULT_INDUSTRY_CATEGORY,
    ENTERTAINMENT_CATEGORY,
    FASHION_CATEGORY,
    MUSIC_CATEGORY,
    category_field,
    classify_industry,
    derived_fields,
    location_field,
    normalize,
)


def test_classify_industry_keyword_priority():
    assert classify_industry("Senior Fashion Stylist") == FASHION_CATEGORY
    assert classify_industry("Touring Sound Engineer") == MUSIC_CATEGORY
    assert classify_industry("Unit Production Manager") == ENTERTAINMENT_CATEGORY
    # Matches both lists; fashion is checked first
    assert classify_industry("Wardrobe Audio Tech") == FASHION_CATEGORY


def test_classify_industry_never_fails():
    assert classify_industry(None) == DEFAULT_INDUSTRY_CATEGORY
    assert classify_industry("") == DEFAULT_INDUSTRY_CATEGORY
    assert classify_industry(12) == DEFAULT_INDUSTRY_CATEGORY


def _columns():
    return [
        Column("Region Name", ColumnType.LOCATION, ColumnRole.LOCATION_PRIMARY),
        Column("Sector", ColumnType.TEXT, ColumnRole.INDUSTRY),
        Column("Budget", ColumnType.NUMBER),
        Column("Signed", ColumnType.DATE),
    ]


def _rows():
    return [
        {"Region Name": "texas", "Sector": "Bridal Fashion", "Budget": "$1,250.50", "Signed": "2024-01-05"},
        {"Region Name": "Atlantis", "Sector": "DJ services", "Budget": "N/A", "Signed": "soon"},
        {"Region Name": None, "Sector": None, "Budget": 3, "Signed": None},
    ]


def test_normalize_adds_derived_fields_and_coerces():
    df = normalize(_rows(), _columns(), US_PROFILE)

    assert len(df) == 3
    assert df[location_field("Region Name")].tolist() == ["TX", None, None]
    assert df[category_field("Sector")].tolist() == [
        FASHION_CATEGORY, MUSIC_CATEGORY, ENTERTAINMENT_CATEGORY,
    ]

    assert str(df["Budget"].dtype) == "Float64"
    assert df["Budget"].iloc[0] == 1250.5
    assert pd.isna(df["Budget"].iloc[1])
    assert df["Budget"].iloc[2] == 3.0

    assert df["Signed"].iloc[0] == pd.Timestamp("2024-01-05")
    assert pd.isna(df["Signed"].iloc[1])
    assert pd.isna(df["Signed"].iloc[2])


def test_normalize_keeps_unrecognized_location_source_value():
    df = normalize(_rows(), _columns(), US_PROFILE)
    assert df["Region Name"].tolist()[:2] == ["texas", "Atlantis"]


def test_normalize_does_not_mutate_input():
    rows = _rows()
    frame = pd.DataFrame(rows)
    before = frame.copy()
    normalize(frame, _columns(), US_PROFILE)
    pd.testing.assert_frame_equal(frame, before)
    assert rows[0]["Budget"] == "$1,250.50"


def test_normalize_is_idempotent():
    rows = [
        {"State": "California", "Count": "12", "Sector": "Film"},
        {"State": "ny", "Count": "$3", "Sector": "Music label"},
        {"State": "Ontario", "Count": "", "Sector": ""},
    ]
    columns = classify_columns(rows)
    profile = detect([row["State"] for row in rows])
    once = normalize(rows, columns, profile)
    twice = normalize(once[[column.name for column in columns]], columns, profile)
    pd.testing.assert_frame_equal(once, twice)


def test_derived_fields_listing():
    assert derived_fields(_columns()) == ["Region Name_normalized", "Sector_category"]
