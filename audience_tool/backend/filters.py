"""
Filter state and row selection.
A filter never mutates the dataset; it yields a new, filtered DataFrame.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

import pandas as pd

from column_classifier import is_blank, parse_number
from geography import GeographyProfile, codes_for_regions
from normalizer import classify_industry


@dataclass(frozen=True)
class FilterState:
    locations: tuple[str, ...] = ()
    regions: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    category_mode: str = "AND"
    search_text: str = ""
    date_start: Optional[datetime] = None
    date_end: Optional[datetime] = None
    column_values: dict[str, tuple[str, ...]] = field(default_factory=dict)
    numeric_ranges: dict[str, tuple[float, float]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (
            self.locations or self.regions or self.categories or self.roles
            or self.search_text or self.date_start or self.date_end
            or self.column_values or self.numeric_ranges
        )

    def to_dict(self) -> dict:
        """JSON-friendly view of the active constraints."""
        out: dict = {}
        for name in ("locations", "regions", "categories", "roles"):
            values = getattr(self, name)
            if values:
                out[name] = list(values)
        if self.categories and self.roles:
            out["category_mode"] = self.category_mode
        if self.search_text:
            out["search_text"] = self.search_text
        if self.date_start or self.date_end:
            out["date_range"] = {
                "start": self.date_start.isoformat() if self.date_start else None,
                "end": self.date_end.isoformat() if self.date_end else None,
            }
        if self.column_values:
            out["column_values"] = {k: list(v) for k, v in self.column_values.items()}
        if self.numeric_ranges:
            out["numeric_ranges"] = {
                k: {"min": _bound(lo), "max": _bound(hi)} for k, (lo, hi) in self.numeric_ranges.items()
            }
        return out


def _bound(value: float) -> Optional[float]:
    return None if math.isinf(value) else value


def _clean_list(values: Optional[Iterable[object]]) -> tuple[str, ...]:
    if not values:
        return ()
    out: list[str] = []
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text and text not in out:
            out.append(text)
    return tuple(out)


def normalize_filters(raw: dict) -> FilterState:
    """Build a FilterState from a raw (JSON) dict, dropping blanks and duplicates."""
    mode = str(raw.get("category_mode") or "AND").upper()
    if mode not in ("AND", "OR"):
        mode = "AND"

    column_values = {
        str(column): _clean_list(values)
        for column, values in (raw.get("column_values") or {}).items()
        if _clean_list(values)
    }

    numeric_ranges: dict[str, tuple[float, float]] = {}
    for column, bounds in (raw.get("numeric_ranges") or {}).items():
        if not bounds:
            continue
        low = parse_number(bounds.get("min"))
        high = parse_number(bounds.get("max"))
        numeric_ranges[str(column)] = (
            low if low is not None else float("-inf"),
            high if high is not None else float("inf"),
        )

    return FilterState(
        locations=_clean_list(raw.get("locations")),
        regions=_clean_list(raw.get("regions")),
        categories=_clean_list(raw.get("categories")),
        roles=_clean_list(raw.get("roles")),
        category_mode=mode,
        search_text=(raw.get("search_text") or "").strip(),
        date_start=raw.get("date_start"),
        date_end=raw.get("date_end"),
        column_values=column_values,
        numeric_ranges=numeric_ranges,
    )


# ============================================================================
# Effective Selections
# ============================================================================

def effective_locations(filter_state: FilterState, profile: GeographyProfile) -> list[str]:
    """
    Locations selected directly or through a region.
    An empty list means no location constraint.
    """
    codes = codes_for_regions(filter_state.regions, profile)
    for code in filter_state.locations:
        if code not in codes:
            codes.append(code)
    return codes


def roles_by_category(role_columns: Iterable[str]) -> dict[str, list[str]]:
    by_category: dict[str, list[str]] = {}
    for role in role_columns:
        by_category.setdefault(classify_industry(role), []).append(role)
    return by_category


def effective_roles(filter_state: FilterState, role_columns: Iterable[str]) -> list[str]:
    """
    Role columns to aggregate under the filter.

    Category selection expands to the roles classified into those
    categories. When both roles and categories are selected, AND keeps the
    intersection and OR keeps the union. Nothing selected means every role.
    """
    role_columns = list(role_columns)
    if not filter_state.categories and not filter_state.roles:
        return role_columns

    by_category = roles_by_category(role_columns)
    category_roles: list[str] = []
    for category in filter_state.categories:
        category_roles.extend(by_category.get(category, []))

    known_roles = set(role_columns)
    selected_roles = [role for role in filter_state.roles if role in known_roles]

    if not filter_state.roles:
        return category_roles
    if not filter_state.categories:
        return selected_roles
    if filter_state.category_mode == "AND":
        return [role for role in selected_roles if role in category_roles]
    return list(dict.fromkeys(selected_roles + category_roles))


# ============================================================================
# Row Predicate
# ============================================================================

def _search_mask(df: pd.DataFrame, text: str) -> pd.Series:
    needle = text.lower()

    def row_contains(row) -> bool:
        for value in row:
            if not is_blank(value) and needle in str(value).lower():
                return True
        return False

    return df.apply(row_contains, axis=1).astype(bool)


def _in_range(value: object, low: float, high: float) -> bool:
    number = parse_number(value)
    # Non-numeric values are not excluded by a numeric range
    return number is None or low <= number <= high


def _naive(moment: datetime) -> pd.Timestamp:
    stamp = pd.Timestamp(moment)
    return stamp.tz_localize(None) if stamp.tzinfo is not None else stamp


def _date_mask(series: pd.Series, start: Optional[datetime], end: Optional[datetime]) -> pd.Series:
    dates = pd.to_datetime(series, errors="coerce")
    mask = pd.Series(True, index=series.index, dtype=bool)
    # Rows without a parsed date are never excluded by the range
    if start is not None:
        mask &= dates.isna() | (dates >= _naive(start))
    if end is not None:
        mask &= dates.isna() | (dates <= _naive(end))
    return mask


def filter_mask(
    df: pd.DataFrame,
    filter_state: FilterState,
    profile: GeographyProfile,
    location_field: Optional[str] = None,
    category_field: Optional[str] = None,
    date_column: Optional[str] = None,
) -> pd.Series:
    """Boolean membership of each row under the filter."""
    mask = pd.Series(True, index=df.index, dtype=bool)
    if df.empty:
        return mask

    locations = effective_locations(filter_state, profile)
    if locations and location_field and location_field in df.columns:
        mask &= df[location_field].isin(locations)

    if filter_state.categories and category_field and category_field in df.columns:
        mask &= df[category_field].isin(filter_state.categories)

    for column, allowed in filter_state.column_values.items():
        if column in df.columns:
            mask &= df[column].map(lambda v: "" if is_blank(v) else str(v)).isin(allowed)

    for column, (low, high) in filter_state.numeric_ranges.items():
        if column in df.columns:
            mask &= df[column].map(lambda v, low=low, high=high: _in_range(v, low, high)).astype(bool)

    if date_column and date_column in df.columns and (filter_state.date_start or filter_state.date_end):
        mask &= _date_mask(df[date_column], filter_state.date_start, filter_state.date_end)

    if filter_state.search_text:
        mask &= _search_mask(df, filter_state.search_text)

    return mask


def apply_filter(
    df: pd.DataFrame,
    filter_state: FilterState,
    profile: GeographyProfile,
    location_field: Optional[str] = None,
    category_field: Optional[str] = None,
    date_column: Optional[str] = None,
) -> pd.DataFrame:
    """Return the rows of `df` that satisfy the filter, in original order."""
    mask = filter_mask(df, filter_state, profile, location_field, category_field, date_column)
    return df.loc[mask].copy()
