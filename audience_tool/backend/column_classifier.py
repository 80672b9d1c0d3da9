"""
Column classification for arbitrary spreadsheet exports.
Infers each column's storage type and semantic roles from its name and a
sample of its values.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum, Flag, auto
from typing import Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from geography import BUILTIN_PROFILES, DETECTION_THRESHOLD, GeographyProfile, best_profile_score


# Rows inspected per column when classifying a whole dataset
CLASSIFY_SAMPLE_ROWS = 100

# Sample values kept on the Column for display
MAX_SAMPLE_VALUES = 5


# ============================================================================
# Column Types and Roles
# ============================================================================

class ColumnType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    LOCATION = "location"


class ColumnRole(Flag):
    NONE = 0
    LOCATION_PRIMARY = auto()
    LOCATION_CITY = auto()
    LOCATION_ZIP = auto()
    SCORE = auto()
    COMPANY = auto()
    STATUS = auto()
    INDUSTRY = auto()
    SEGMENT = auto()
    BUSINESS_MODEL = auto()


LOCATION_ROLES = ColumnRole.LOCATION_PRIMARY | ColumnRole.LOCATION_CITY | ColumnRole.LOCATION_ZIP

# Role pairs that must never be set together on one column
EXCLUSIVE_ROLES = (
    (ColumnRole.LOCATION_PRIMARY, ColumnRole.STATUS),
    (ColumnRole.SCORE, ColumnRole.SEGMENT),
)

ROLE_LABELS = {
    ColumnRole.LOCATION_PRIMARY: "location",
    ColumnRole.LOCATION_CITY: "city",
    ColumnRole.LOCATION_ZIP: "zip",
    ColumnRole.SCORE: "score",
    ColumnRole.COMPANY: "company",
    ColumnRole.STATUS: "status",
    ColumnRole.INDUSTRY: "industry",
    ColumnRole.SEGMENT: "segment",
    ColumnRole.BUSINESS_MODEL: "business_model",
}


@dataclass(frozen=True)
class Column:
    """A classified dataset column. Type and roles are fixed at construction."""
    name: str
    type: ColumnType
    roles: ColumnRole = ColumnRole.NONE
    sample_values: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "type", ColumnType(self.type))
        object.__setattr__(self, "sample_values", tuple(self.sample_values)[:MAX_SAMPLE_VALUES])
        for first, second in EXCLUSIVE_ROLES:
            if first in self.roles and second in self.roles:
                raise ValueError(
                    f"Column '{self.name}' cannot be both {ROLE_LABELS[first]} and {ROLE_LABELS[second]}"
                )

    def has(self, role: ColumnRole) -> bool:
        return bool(self.roles & role)

    @property
    def is_location_primary(self) -> bool:
        return self.has(ColumnRole.LOCATION_PRIMARY)

    @property
    def is_any_location(self) -> bool:
        return self.has(LOCATION_ROLES)

    @property
    def role_labels(self) -> list[str]:
        return [label for role, label in ROLE_LABELS.items() if role in self.roles]


# ============================================================================
# Keyword Tables
# ============================================================================

# Substring keywords matched against the lower-cased column name.
# NOTE: "st" is intentionally broad; it is what makes status columns read as locations.
LOCATION_KEYWORDS = ['state', 'st', 'region', 'province']
CITY_KEYWORDS = ['city', 'town', 'municipality']
ZIP_KEYWORDS = ['zip', 'postal', 'postcode', 'zipcode']
SCORE_KEYWORDS = ['icp', 'persona', 'tier', 'fit', 'score', 'ideal']
COMPANY_KEYWORDS = ['company', 'organization', 'org', 'business', 'employer', 'account']
STATUS_KEYWORDS = ['status', 'stage', 'phase', 'lead']
INDUSTRY_KEYWORDS = ['industry', 'sector', 'vertical', 'category', 'niche', 'segment']
SEGMENT_KEYWORDS = ['level', 'size', 'tier', 'segment', 'audience', 'target', 'market']
BUSINESS_MODEL_KEYWORDS = ['domain', 'type', 'model', 'b2b', 'b2c', 'channel']

DATE_PATTERNS = [
    re.compile(r'^\d{4}-\d{2}-\d{2}$'),
    re.compile(r'^\d{1,2}/\d{1,2}/\d{2,4}$'),
    re.compile(r'^\d{1,2}-\d{1,2}-\d{2,4}$'),
    re.compile(r'^[A-Za-z]+ \d{1,2}, \d{4}$'),
]

# strptime formats covering the DATE_PATTERNS grammar
DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%m-%d-%y",
    "%B %d, %Y",
    "%b %d, %Y",
]


# ============================================================================
# Value Helpers
# ============================================================================

def is_blank(value: object) -> bool:
    """True for None, NaN/NA/NaT and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_native_date(value: object) -> bool:
    return isinstance(value, (date, datetime, np.datetime64))


def is_native_bool(value: object) -> bool:
    return isinstance(value, (bool, np.bool_))


def is_native_number(value: object) -> bool:
    if is_native_bool(value):
        return False
    return isinstance(value, (int, float, np.integer, np.floating))


def is_date_string(value: str) -> bool:
    text = value.strip()
    return any(pattern.match(text) for pattern in DATE_PATTERNS)


def clean_numeric_string(value: str) -> str:
    """Strip currency symbols and thousands separators."""
    return value.replace("$", "").replace(",", "").strip()


def parse_number(value: object) -> float | None:
    """Parse a raw value as a float; None when it is not numeric."""
    if is_blank(value):
        return None
    if is_native_number(value):
        return float(value)
    if not isinstance(value, str):
        return None
    cleaned = clean_numeric_string(value)
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    if np.isnan(number) or np.isinf(number):
        return None
    return number


def is_numeric_string(value: str) -> bool:
    return parse_number(value) is not None


def parse_date(value: object) -> pd.Timestamp | None:
    """Parse a raw value with the supported date grammar; None if it does not parse."""
    if is_blank(value):
        return None
    if is_native_date(value):
        return pd.Timestamp(value)
    if not isinstance(value, str) or not is_date_string(value):
        return None
    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return pd.Timestamp(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def _name_matches(lower_name: str, keywords: Iterable[str]) -> bool:
    return any(keyword in lower_name for keyword in keywords)


# ============================================================================
# Classification
# ============================================================================

def infer_roles(
    column_name: str,
    non_blank_values: Sequence[object] = (),
    profiles: Iterable[GeographyProfile] = BUILTIN_PROFILES,
) -> ColumnRole:
    """
    Infer semantic roles from the column name and value sample.

    Location also activates when the values look like a known geography.
    Status is suppressed by location and segment is suppressed by score.
    """
    lower_name = column_name.lower()
    roles = ColumnRole.NONE

    is_location = _name_matches(lower_name, LOCATION_KEYWORDS)
    if not is_location and non_blank_values:
        is_location = best_profile_score(non_blank_values, profiles) >= DETECTION_THRESHOLD
    is_score = _name_matches(lower_name, SCORE_KEYWORDS)

    if is_location:
        roles |= ColumnRole.LOCATION_PRIMARY
    if _name_matches(lower_name, CITY_KEYWORDS):
        roles |= ColumnRole.LOCATION_CITY
    if _name_matches(lower_name, ZIP_KEYWORDS):
        roles |= ColumnRole.LOCATION_ZIP
    if is_score:
        roles |= ColumnRole.SCORE
    if _name_matches(lower_name, COMPANY_KEYWORDS):
        roles |= ColumnRole.COMPANY
    if _name_matches(lower_name, STATUS_KEYWORDS) and not is_location:
        roles |= ColumnRole.STATUS
    if _name_matches(lower_name, INDUSTRY_KEYWORDS):
        roles |= ColumnRole.INDUSTRY
    if _name_matches(lower_name, SEGMENT_KEYWORDS) and not is_score:
        roles |= ColumnRole.SEGMENT
    if _name_matches(lower_name, BUSINESS_MODEL_KEYWORDS):
        roles |= ColumnRole.BUSINESS_MODEL
    return roles


def infer_type(first_value: object, roles: ColumnRole) -> ColumnType:
    """Infer the storage type from the first non-empty sample value."""
    if first_value is None:
        return ColumnType.TEXT
    if is_native_date(first_value):
        return ColumnType.DATE
    if is_native_bool(first_value):
        return ColumnType.BOOLEAN
    if is_native_number(first_value):
        return ColumnType.NUMBER
    if isinstance(first_value, str):
        if is_date_string(first_value):
            return ColumnType.DATE
        if is_numeric_string(first_value):
            return ColumnType.NUMBER
        if roles & LOCATION_ROLES:
            return ColumnType.LOCATION
    return ColumnType.TEXT


def classify(
    column_name: str,
    sample_values: Iterable[object],
    profiles: Iterable[GeographyProfile] = BUILTIN_PROFILES,
) -> Column:
    """
    Classify one column.

    Args:
        column_name: Header as it appears in the source file
        sample_values: Raw values from the first rows of the column
        profiles: Geography profiles used for value-based location detection

    Returns:
        Column with type, roles and up to five sample values
    """
    non_blank = [value for value in sample_values if not is_blank(value)]
    roles = infer_roles(column_name, non_blank, profiles)
    column_type = infer_type(non_blank[0] if non_blank else None, roles)
    return Column(
        name=column_name,
        type=column_type,
        roles=roles,
        sample_values=tuple(non_blank[:MAX_SAMPLE_VALUES]),
    )


def column_names_in_order(rows: Sequence[Mapping[str, object]]) -> list[str]:
    """Column names in order of first appearance across rows."""
    names: dict[str, None] = {}
    for row in rows:
        for name in row.keys():
            names.setdefault(str(name), None)
    return list(names)


def classify_columns(
    rows: Sequence[Mapping[str, object]],
    profiles: Iterable[GeographyProfile] = BUILTIN_PROFILES,
    sample_rows: int = CLASSIFY_SAMPLE_ROWS,
) -> list[Column]:
    """Classify every column of a row set from its first `sample_rows` rows."""
    profiles = tuple(profiles)
    sample = list(rows[:sample_rows])
    return [
        classify(name, [row.get(name) for row in sample], profiles)
        for name in column_names_in_order(rows)
    ]


def find_columns(columns: Iterable[Column], role: ColumnRole) -> list[Column]:
    return [column for column in columns if column.has(role)]


def find_column(columns: Iterable[Column], role: ColumnRole) -> Column | None:
    for column in columns:
        if column.has(role):
            return column
    return None
