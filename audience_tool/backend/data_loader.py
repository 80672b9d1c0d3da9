"""
Dataset ingestion and the in-process dataset store.
Runs classification, geography detection and normalization over raw rows
and keeps the loaded dataset for the API layer.
"""
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence

import pandas as pd

from column_classifier import (
    Column,
    ColumnRole,
    ColumnType,
    LOCATION_ROLES,
    classify_columns,
    find_column,
    is_blank,
)
from geography import (
    BUILTIN_PROFILES,
    DETECTION_SAMPLE_SIZE,
    GeographyProfile,
    best_profile_score,
    detect,
)
from icp import default_icp_config
from metrics import get_numeric_range, get_unique_values
from models import AvailableFilters, ColumnInfo, GeographyInfo, ICPConfig, NumericRange
from normalizer import INDUSTRY_CATEGORIES, category_field, location_field, normalize


logger = logging.getLogger(__name__)

# Text columns with at most this many distinct values get a value filter
FILTER_VALUE_LIMIT = 50

# Values read as missing from files; "NA" stays a value (Namibia)
NA_VALUES = ["", "N/A", "n/a", "#N/A", "null", "NULL", "None", "nan", "NaN"]

SUPPORTED_SUFFIXES = {".csv", ".xlsx", ".xls"}


class IngestionError(ValueError):
    """A file or row set that cannot be turned into a dataset."""


# ============================================================================
# Dataset
# ============================================================================

@dataclass(frozen=True)
class Dataset:
    """A loaded, normalized dataset with its classification and geography."""
    dataset_id: str
    file_name: str
    columns: tuple[Column, ...]
    profile: GeographyProfile
    df: pd.DataFrame = field(compare=False, repr=False)
    location_column: Optional[str] = None
    role_columns: tuple[str, ...] = ()
    date_column: Optional[str] = None
    icp_config: ICPConfig = field(default_factory=ICPConfig)

    @property
    def row_count(self) -> int:
        return int(len(self.df))

    @property
    def location_field(self) -> Optional[str]:
        if self.location_column is None:
            return None
        return location_field(self.location_column)

    @property
    def category_field(self) -> Optional[str]:
        industry_column = find_column(self.columns, ColumnRole.INDUSTRY)
        if industry_column is None:
            return None
        return category_field(industry_column)

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None


def _column_values(rows: Sequence[Mapping[str, Any]], name: str, limit: int) -> list[Any]:
    values = []
    for row in rows:
        value = row.get(name)
        if is_blank(value):
            continue
        values.append(value)
        if len(values) >= limit:
            break
    return values


def choose_location_column(
    columns: Sequence[Column],
    rows: Sequence[Mapping[str, Any]],
    profiles: Iterable[GeographyProfile] = BUILTIN_PROFILES,
) -> Optional[Column]:
    """
    Pick the primary location column used for detection and summaries.

    Name keywords flag many columns, so among the primary location columns
    the one whose values best match a built-in profile wins. Ties go to
    the earliest column.
    """
    candidates = [column for column in columns if column.is_location_primary]
    if not candidates:
        return None

    profiles = tuple(profiles)
    best = candidates[0]
    best_score = -1.0
    for column in candidates:
        score = best_profile_score(_column_values(rows, column.name, DETECTION_SAMPLE_SIZE), profiles)
        if score > best_score:
            best = column
            best_score = score
    return best


def find_role_columns(columns: Iterable[Column]) -> list[str]:
    """Wide-format role columns: numeric columns that are not locations."""
    return [
        column.name
        for column in columns
        if column.type == ColumnType.NUMBER and not column.has(LOCATION_ROLES)
    ]


def _records(rows: Sequence[Mapping[str, Any]] | pd.DataFrame) -> list[dict[str, Any]]:
    if isinstance(rows, pd.DataFrame):
        frame = rows.astype(object).where(rows.notna(), None)
        return frame.to_dict(orient="records")
    return [dict(row) for row in rows]


def build_dataset(
    rows: Sequence[Mapping[str, Any]] | pd.DataFrame,
    file_name: str = "upload",
    profiles: Iterable[GeographyProfile] = BUILTIN_PROFILES,
    dataset_id: Optional[str] = None,
) -> Dataset:
    """
    Build a dataset from raw rows.

    Args:
        rows: Parsed rows as mappings (or a DataFrame)
        file_name: Name of the source file, kept for display
        profiles: Geography registry used for detection
        dataset_id: Identifier to assign; a new UUID when omitted

    Returns:
        The loaded Dataset

    Raises:
        IngestionError: If there are no rows or no columns
    """
    records = _records(rows)
    if not records:
        raise IngestionError(f"No rows found in '{file_name}'")

    profiles = tuple(profiles)
    columns = classify_columns(records, profiles)
    if not columns:
        raise IngestionError(f"No columns detected in '{file_name}'")

    location_column = choose_location_column(columns, records, profiles)
    if location_column is not None:
        profile = detect(_column_values(records, location_column.name, DETECTION_SAMPLE_SIZE), profiles)
    else:
        profile = detect([], profiles)

    df = normalize(records, columns, profile)
    date_column = find_date_column(columns)

    dataset = Dataset(
        dataset_id=dataset_id or str(uuid.uuid4()),
        file_name=file_name,
        columns=tuple(columns),
        profile=profile,
        df=df,
        location_column=location_column.name if location_column else None,
        role_columns=tuple(find_role_columns(columns)),
        date_column=date_column,
        icp_config=default_icp_config(columns),
    )
    logger.info(
        "Loaded %s: %d rows, %d columns, geography=%s, location column=%s",
        file_name, dataset.row_count, len(columns), profile.id, dataset.location_column,
    )
    return dataset


def find_date_column(columns: Iterable[Column]) -> Optional[str]:
    for column in columns:
        if column.type == ColumnType.DATE:
            return column.name
    return None


# ============================================================================
# File Reading
# ============================================================================

def read_rows(path: str | Path) -> list[dict[str, Any]]:
    """
    Read a CSV or Excel file into row mappings.

    Raises:
        IngestionError: If the file is missing, unsupported or unreadable
    """
    path = Path(path)
    if not path.exists():
        raise IngestionError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise IngestionError(f"Unsupported file type '{suffix}' for {path.name}")

    try:
        if suffix == ".csv":
            df = pd.read_csv(path, low_memory=False, keep_default_na=False, na_values=NA_VALUES)
        else:
            df = pd.read_excel(path, keep_default_na=False, na_values=NA_VALUES)
    except (OSError, ValueError, pd.errors.ParserError) as exc:
        raise IngestionError(f"Could not read {path.name}: {exc}") from exc

    df.columns = [str(name).strip() for name in df.columns]
    return _records(df)


# ============================================================================
# API Views
# ============================================================================

def column_info(column: Column) -> ColumnInfo:
    return ColumnInfo(
        name=column.name,
        type=column.type.value,
        roles=column.role_labels,
        sample_values=[json_value(value) for value in column.sample_values],
    )


def json_value(value: Any) -> Any:
    # Dates and numpy scalars are not JSON-serializable as-is
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "item"):
        return value.item()
    return value


def geography_info(profile: GeographyProfile) -> GeographyInfo:
    return GeographyInfo(
        id=profile.id,
        display_name=profile.display_name,
        location_label=profile.location_label,
        region_label=profile.region_label,
        map_type=profile.map_type,
        regions={region: list(codes) for region, codes in profile.regions.items()},
        location_count=len(profile.location_map),
    )


def available_filters(dataset: Dataset) -> AvailableFilters:
    """Filter choices derived from the full normalized dataset."""
    df = dataset.df
    filters = AvailableFilters(
        regions=list(dataset.profile.regions),
        categories=list(INDUSTRY_CATEGORIES),
        roles=list(dataset.role_columns),
    )
    if dataset.location_field:
        filters.locations = get_unique_values(df, dataset.location_field)

    for column in dataset.columns:
        if column.type == ColumnType.TEXT:
            values = get_unique_values(df, column.name)
            if 0 < len(values) <= FILTER_VALUE_LIMIT:
                filters.column_values[column.name] = values
        elif column.type == ColumnType.NUMBER and column.name not in dataset.role_columns:
            low, high = get_numeric_range(df, column.name)
            filters.numeric_ranges[column.name] = NumericRange(min=low, max=high)
    return filters


# ============================================================================
# Dataset Store
# ============================================================================

class DataStore:
    """
    Holds the currently loaded dataset for the API process.
    Loading replaces the previous dataset.
    """

    def __init__(self):
        self.dataset: Dataset | None = None

    @property
    def is_loaded(self) -> bool:
        return self.dataset is not None

    @property
    def row_count(self) -> int:
        return self.dataset.row_count if self.dataset is not None else 0

    def load_rows(
        self,
        rows: Sequence[Mapping[str, Any]] | pd.DataFrame,
        file_name: str = "upload",
        profiles: Iterable[GeographyProfile] = BUILTIN_PROFILES,
    ) -> Dataset:
        self.dataset = build_dataset(rows, file_name=file_name, profiles=profiles)
        return self.dataset

    def load_file(self, path: str | Path) -> Dataset:
        path = Path(path)
        logger.info("Loading data from %s", path)
        return self.load_rows(read_rows(path), file_name=path.name)

    def clear(self) -> None:
        self.dataset = None


# Global data store instance
data_store = DataStore()


def get_data_store() -> DataStore:
    """Get the global data store instance."""
    return data_store


def load_data_file(path: str | Path) -> DataStore:
    """Load a CSV/Excel file into the global store and return the store."""
    data_store.load_file(path)
    return data_store
