import pandas as pd
import pytest
from data_loader import (
    DataStore,
    IngestionError,
    available_filters,
    build_dataset,
    choose_location_column,
    read_rows,
)
from column_classifier import classify_columns
from geography import CANADA_PROFILE, US_PROFILE, WORLD_PROFILE
from normalizer import FASHION_CATEGORY

ROWS = [
    {"Industry": "Bridal Fashion", "Province": "Ontario", "Company": "Acme", "ICP": "Y", "Tailor": 3, "Composer": 1},
    {"Industry": "Film", "Province": "Quebec", "Company": "Beta", "ICP": "N", "Tailor": 0, "Composer": 4},
    {"Industry": "Music", "Province": "BC", "Company": "Acme", "ICP": "Y", "Tailor": 2, "Composer": 2},
]


def test_build_dataset_runs_the_pipeline():
    dataset = build_dataset(ROWS, file_name="talent.csv")

    assert dataset.row_count == 3
    assert dataset.profile.id == "CA"
    # "Industry" also matches the "st" location keyword; the value scores decide
    assert dataset.location_column == "Province"
    assert dataset.location_field == "Province_normalized"
    assert dataset.df["Province_normalized"].tolist() == ["ON", "QC", "BC"]
    assert dataset.category_field == "Industry_category"
    assert dataset.df["Industry_category"].iloc[0] == FASHION_CATEGORY
    assert dataset.role_columns == ("Tailor", "Composer")
    assert dataset.icp_config.column_name == "ICP"
    assert dataset.dataset_id


def test_build_dataset_from_frame():
    dataset = build_dataset(pd.DataFrame(ROWS), dataset_id="fixed")
    assert dataset.dataset_id == "fixed"
    assert dataset.profile is CANADA_PROFILE


def test_generic_profile_without_location_matches():
    rows = [{"Region": "Zone A", "Count": 1}, {"Region": "Zone B", "Count": 2}]
    dataset = build_dataset(rows)
    assert dataset.profile.is_generic
    assert dataset.df["Region_normalized"].tolist() == ["Zone A", "Zone B"]


def test_no_location_column():
    dataset = build_dataset([{"Company": "Acme", "Revenue": 5}])
    assert dataset.location_column is None
    assert dataset.location_field is None
    assert dataset.profile.is_generic


def test_ingestion_errors():
    with pytest.raises(IngestionError):
        build_dataset([])
    with pytest.raises(IngestionError):
        build_dataset([{}, {}])


def test_choose_location_column_prefers_best_scoring_values():
    rows = [{"Lead Status": "Open", "State": "Texas"}, {"Lead Status": "Won", "State": "Ohio"}]
    columns = classify_columns(rows)
    assert choose_location_column(columns, rows).name == "State"


def test_read_rows_csv(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text(" State ,Budget\nTexas,\"$1,000\"\nOhio,N/A\n")
    rows = read_rows(path)
    assert rows == [{"State": "Texas", "Budget": "$1,000"}, {"State": "Ohio", "Budget": None}]

    store = DataStore()
    assert not store.is_loaded
    store.load_file(path)
    assert store.is_loaded
    assert store.row_count == 2
    assert store.dataset.profile is US_PROFILE
    assert store.dataset.file_name == "people.csv"


def test_read_rows_keeps_namibia_code(tmp_path):
    path = tmp_path / "countries.csv"
    path.write_text("Country,Count\nNamibia,1\nNA,2\nKenya,\n")
    rows = read_rows(path)
    assert [row["Country"] for row in rows] == ["Namibia", "NA", "Kenya"]
    assert rows[2]["Count"] is None

    dataset = build_dataset(rows)
    assert dataset.profile is WORLD_PROFILE
    assert dataset.df["Country_normalized"].tolist() == ["NA", "NA", "KE"]


def test_read_rows_rejects_bad_files(tmp_path):
    with pytest.raises(IngestionError):
        read_rows(tmp_path / "missing.csv")
    other = tmp_path / "notes.txt"
    other.write_text("hello")
    with pytest.raises(IngestionError):
        read_rows(other)


def test_available_filters():
    dataset = build_dataset(ROWS)
    filters = available_filters(dataset)
    assert filters.locations == ["BC", "ON", "QC"]
    assert filters.regions == list(CANADA_PROFILE.regions)
    assert filters.roles == ["Tailor", "Composer"]
    assert filters.column_values["Company"] == ["Acme", "Beta"]
