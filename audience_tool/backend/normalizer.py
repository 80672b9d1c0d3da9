"""
Value normalization.
Builds the typed, query-ready DataFrame from raw rows: numeric and date
coercion, canonical location codes, and industry categories.
"""
import logging
from typing import Iterable, Mapping, Sequence

import pandas as pd

from column_classifier import Column, ColumnRole, ColumnType, parse_date, parse_number
from geography import GeographyProfile, resolve_code


logger = logging.getLogger(__name__)

LOCATION_SUFFIX = "_normalized"
CATEGORY_SUFFIX = "_category"


# ============================================================================
# Industry Classification
# ============================================================================

FASHION_CATEGORY = "Fashion & Apparel"
MUSIC_CATEGORY = "Music & Audio"
ENTERTAINMENT_CATEGORY = "Movie & Entertainment"

# Checked in this order; the first list with a substring hit wins
INDUSTRY_CATEGORY_KEYWORDS = {
    FASHION_CATEGORY: [
        'Fashion', 'Apparel', 'Textile', 'Tailor', 'Dressmaker', 'Stylist', 'Model',
        'Runway', 'Merchandiser', 'Bridal', 'Jewelry', 'Swimwear', 'Activewear',
        'Costume', 'Wardrobe', 'Makeup', 'Hair',
    ],
    MUSIC_CATEGORY: [
        'Songwriter', 'Composer', 'Arranger', 'Musician', 'Vocal', 'Beat', 'Mixing',
        'Engineer', 'Pro Tools', 'MIDI', 'Tour', 'FOH', 'Backline', 'A&R',
        'Music Supervisor', 'Booking', 'Sync', 'Royalty', 'Podcast', 'DJ', 'Audio',
    ],
}

# Baseline category for values without a keyword hit
DEFAULT_INDUSTRY_CATEGORY = ENTERTAINMENT_CATEGORY

INDUSTRY_CATEGORIES = [ENTERTAINMENT_CATEGORY, MUSIC_CATEGORY, FASHION_CATEGORY]


def classify_industry(value: object) -> str:
    """
    Classify free text into one of the three industry categories.

    Fashion keywords are tested before Music keywords, so a value that
    matches both resolves to Fashion. Anything else, including blanks,
    falls back to the default category.
    """
    lower = "" if value is None else str(value).lower()
    for category, keywords in INDUSTRY_CATEGORY_KEYWORDS.items():
        for keyword in keywords:
            if keyword.lower() in lower:
                return category
    return DEFAULT_INDUSTRY_CATEGORY


# ============================================================================
# Derived Field Names
# ============================================================================

def location_field(column: Column | str) -> str:
    name = column.name if isinstance(column, Column) else column
    return f"{name}{LOCATION_SUFFIX}"


def category_field(column: Column | str) -> str:
    name = column.name if isinstance(column, Column) else column
    return f"{name}{CATEGORY_SUFFIX}"


def derived_fields(columns: Iterable[Column]) -> list[str]:
    """Names of every field normalization adds for these columns."""
    fields = []
    for column in columns:
        if column.is_location_primary:
            fields.append(location_field(column))
        if column.has(ColumnRole.INDUSTRY):
            fields.append(category_field(column))
    return fields


# ============================================================================
# Normalization
# ============================================================================

def _coerce_numbers(series: pd.Series) -> pd.Series:
    values = [parse_number(value) for value in series.tolist()]
    return pd.Series(pd.array(values, dtype="Float64"), index=series.index, name=series.name)


def _coerce_dates(series: pd.Series) -> pd.Series:
    values = [parse_date(value) for value in series.tolist()]
    return pd.Series(pd.to_datetime(values), index=series.index, name=series.name)


def normalize(
    rows: Sequence[Mapping[str, object]] | pd.DataFrame,
    columns: Sequence[Column],
    profile: GeographyProfile,
) -> pd.DataFrame:
    """
    Produce the normalized dataset.

    Args:
        rows: Raw rows (or a DataFrame of them)
        columns: Classification of every column
        profile: Geography profile used to resolve location values

    Returns:
        New DataFrame with coerced values plus one derived field per
        primary location column and per industry column. Row count is
        preserved and values that cannot be coerced become null.
    """
    if isinstance(rows, pd.DataFrame):
        df = rows.copy()
    else:
        df = pd.DataFrame.from_records(list(rows))
    df = df.reset_index(drop=True)
    for column in columns:
        if column.name not in df.columns:
            df[column.name] = None

    # Derived fields are computed from the source values before type coercion
    for column in columns:
        if column.is_location_primary:
            df[location_field(column)] = pd.Series(
                [resolve_code(value, profile) for value in df[column.name].tolist()],
                index=df.index,
                dtype=object,
            )
        if column.has(ColumnRole.INDUSTRY):
            df[category_field(column)] = pd.Series(
                [classify_industry(value) for value in df[column.name].tolist()],
                index=df.index,
                dtype=object,
            )

    unparsed: dict[str, int] = {}
    for column in columns:
        source = df[column.name]
        if column.type == ColumnType.NUMBER:
            coerced = _coerce_numbers(source)
        elif column.type == ColumnType.DATE:
            coerced = _coerce_dates(source)
        else:
            continue
        df[column.name] = coerced
        unparsed[column.name] = int(coerced.isna().sum() - source.isna().sum())

    failures = {name: count for name, count in unparsed.items() if count > 0}
    if failures:
        logger.info("Coerced unparsable values to null: %s", failures)
    return df
