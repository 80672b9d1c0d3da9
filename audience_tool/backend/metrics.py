"""
Aggregation over filtered rows.
Implements KPI totals, per-location summaries, role metadata, column
statistics, and the supplementary Pareto and region x category breakdowns.
"""
import math
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from column_classifier import Column, ColumnRole, ColumnType, find_column, is_blank
from geography import GeographyProfile, location_name, region_for_code
from icp import count_qualified
from models import (
    ColumnStatistics,
    ICPConfig,
    KPISet,
    LocationSummary,
    ParetoPoint,
    RegionCategoryRow,
    RoleMetadata,
    TopItem,
    ValueCount,
)
from normalizer import INDUSTRY_CATEGORIES, classify_industry


# Entries kept in per-location breakdowns
DEFAULT_TOP_N = 3

# Entries kept in categorical value tables
TOP_VALUES_LIMIT = 10

MS_PER_DAY = 1000 * 60 * 60 * 24


# ============================================================================
# Basic Helpers
# ============================================================================

def percent(part: float, whole: float) -> float:
    """part / whole * 100, with 0/0 (or any zero denominator) defined as 0."""
    if not whole:
        return 0.0
    return float(part) / float(whole) * 100.0


def ranked_counts(values: Iterable[object]) -> list[tuple[str, int]]:
    """
    Frequency table sorted by count descending.
    Ties keep first-seen order; blanks are skipped.
    """
    counts: dict[str, int] = {}
    for value in values:
        if is_blank(value):
            continue
        key = str(value)
        counts[key] = counts.get(key, 0) + 1
    return sorted(counts.items(), key=lambda item: -item[1])


def rank_totals(totals: dict[str, float]) -> list[tuple[str, float]]:
    """Sort an insertion-ordered dict of totals descending; ties keep insertion order."""
    return sorted(totals.items(), key=lambda item: -item[1])


def numeric_values(series: pd.Series) -> pd.Series:
    """Series coerced to float with nulls dropped."""
    return pd.to_numeric(series, errors="coerce").astype(float).dropna()


def median(values: list[float]) -> Optional[float]:
    """Median using the midpoint average for even-length inputs."""
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return float(ordered[mid])
    return (ordered[mid - 1] + ordered[mid]) / 2.0


def _role_sums(df: pd.DataFrame, roles: list[str]) -> pd.DataFrame:
    """Role columns as floats with nulls treated as zero."""
    present = [role for role in roles if role in df.columns]
    return pd.DataFrame(
        {role: pd.to_numeric(df[role], errors="coerce").astype(float).fillna(0.0) for role in present},
        index=df.index,
    )


# ============================================================================
# KPIs
# ============================================================================

def compute_kpis(
    df: pd.DataFrame,
    columns: list[Column],
    profile: GeographyProfile,
    location_field: Optional[str] = None,
    category_field: Optional[str] = None,
    icp_config: Optional[ICPConfig] = None,
    roles: Optional[list[str]] = None,
) -> KPISet:
    """
    Compute headline KPIs for the filtered rows.

    Args:
        df: Filtered, normalized rows
        columns: Column classification of the dataset
        profile: Selected geography profile
        location_field: Derived field holding location codes
        category_field: Derived field holding industry categories
        icp_config: Qualification rule; no rule means zero qualified rows
        roles: Wide-format role columns to total (already filter-resolved)

    Returns:
        KPISet; an empty frame yields zero/empty values throughout
    """
    kpis = KPISet(total_records=int(len(df)))
    if df.empty:
        return kpis

    kpis.qualified_count = count_qualified(df, icp_config)

    company_column = find_column(columns, ColumnRole.COMPANY)
    if company_column is not None and company_column.name in df.columns:
        companies = {str(v).strip() for v in df[company_column.name] if not is_blank(v)}
        kpis.company_count = len(companies)

    codes: list[str] = []
    if location_field and location_field in df.columns:
        codes = [code for code in df[location_field] if not is_blank(code)]
        kpis.location_count = len(set(codes))
        kpis.region_count = len({region_for_code(code, profile) for code in codes} - {None})

    if category_field and category_field in df.columns:
        kpis.industry_breakdown = dict(ranked_counts(df[category_field]))

    segment_column = find_column(columns, ColumnRole.SEGMENT)
    if segment_column is not None and segment_column.name in df.columns:
        kpis.segment_breakdown = dict(ranked_counts(df[segment_column.name]))

    status_column = find_column(columns, ColumnRole.STATUS)
    if status_column is not None and status_column.name in df.columns:
        statuses = ["Unknown" if is_blank(v) else v for v in df[status_column.name]]
        kpis.status_breakdown = dict(ranked_counts(statuses))

    if roles:
        _fill_role_kpis(kpis, df, profile, location_field, roles)
    return kpis


def _fill_role_kpis(
    kpis: KPISet,
    df: pd.DataFrame,
    profile: GeographyProfile,
    location_field: Optional[str],
    roles: list[str],
) -> None:
    sums = _role_sums(df, roles)
    role_breakdown = {role: float(sums[role].sum()) if role in sums else 0.0 for role in roles}
    kpis.role_breakdown = role_breakdown
    kpis.total_people = float(sum(role_breakdown.values()))

    industry_totals = {category: 0.0 for category in INDUSTRY_CATEGORIES}
    for role, total in role_breakdown.items():
        industry_totals[classify_industry(role)] += total
    kpis.industry_totals = industry_totals

    if location_field and location_field in df.columns:
        row_totals = sums.sum(axis=1) if not sums.empty else pd.Series(0.0, index=df.index)
        location_totals: dict[str, float] = {}
        region_totals: dict[str, float] = {region: 0.0 for region in profile.regions}
        for code, total in zip(df[location_field], row_totals):
            if is_blank(code):
                continue
            location_totals[code] = location_totals.get(code, 0.0) + float(total)
            region = region_for_code(code, profile)
            if region is not None:
                region_totals[region] += float(total)
        kpis.location_totals = location_totals
        kpis.region_totals = region_totals

        ranked_locations = rank_totals(location_totals)
        if ranked_locations:
            kpis.top_location = TopItem(name=ranked_locations[0][0], count=ranked_locations[0][1])
            kpis.bottom_location = TopItem(name=ranked_locations[-1][0], count=ranked_locations[-1][1])
            kpis.avg_people_per_location = float(round(kpis.total_people / len(location_totals)))

    ranked_roles = rank_totals(role_breakdown)
    if ranked_roles:
        kpis.top_role = TopItem(name=ranked_roles[0][0], count=ranked_roles[0][1])
    ranked_industries = rank_totals(industry_totals)
    kpis.top_industry = TopItem(name=ranked_industries[0][0], count=ranked_industries[0][1])


# ============================================================================
# Location Summaries
# ============================================================================

def compute_location_summaries(
    df: pd.DataFrame,
    profile: GeographyProfile,
    location_field: str,
    value_columns: Optional[list[str]] = None,
    breakdown_column: Optional[str] = None,
    top_n: int = DEFAULT_TOP_N,
) -> list[LocationSummary]:
    """
    Group rows by resolved location code.

    Without `value_columns` each row counts once and the top-N breakdown
    ranks the values of `breakdown_column`. With `value_columns` (wide
    format) the total is the sum of those columns and the breakdown ranks
    the columns themselves; an empty list gives every location a zero
    total. Rows without a resolved code are left out, and percentages are
    shares of the located total, so over a non-zero total they sum to 100.
    Summaries are ordered by total descending; ties and
    breakdown ties keep first-seen row order.
    """
    if df.empty or location_field not in df.columns:
        return []

    groups: dict[str, dict] = {}
    role_sums = _role_sums(df, value_columns) if value_columns is not None else None
    breakdown_values = (
        df[breakdown_column].tolist()
        if breakdown_column and breakdown_column in df.columns and value_columns is None
        else None
    )

    for position, code in enumerate(df[location_field].tolist()):
        if is_blank(code):
            continue
        group = groups.setdefault(code, {"total": 0.0, "items": {}})

        if role_sums is not None:
            row = role_sums.iloc[position]
            for role in role_sums.columns:
                value = float(row[role])
                group["total"] += value
                if value:
                    group["items"][role] = group["items"].get(role, 0.0) + value
        else:
            group["total"] += 1
            if breakdown_values is not None:
                item = breakdown_values[position]
                if not is_blank(item):
                    key = str(item)
                    group["items"][key] = group["items"].get(key, 0.0) + 1

    grand_total = sum(group["total"] for group in groups.values())
    summaries = []
    for code, group in groups.items():
        top_items = [
            TopItem(name=name, count=count)
            for name, count in rank_totals(group["items"])[:top_n]
        ]
        summaries.append(LocationSummary(
            code=code,
            name=location_name(code, profile),
            region=region_for_code(code, profile),
            total=group["total"],
            percent_of_total=percent(group["total"], grand_total),
            top_items=top_items,
        ))
    # sorted() is stable, so equal totals stay in first-seen order
    return sorted(summaries, key=lambda summary: -summary.total)


# ============================================================================
# Role Metadata
# ============================================================================

def compute_role_metadata(df: pd.DataFrame, role_columns: list[str]) -> list[RoleMetadata]:
    """
    Total each wide-format role column and classify it by name.
    Percentages are shares of the grand total across all role columns.
    """
    sums = _role_sums(df, role_columns)
    totals = {role: float(sums[role].sum()) if role in sums else 0.0 for role in role_columns}
    grand_total = sum(totals.values())
    metadata = [
        RoleMetadata(
            column_name=role,
            industry=classify_industry(role),
            total=total,
            percent_of_total=percent(total, grand_total),
        )
        for role, total in totals.items()
    ]
    return sorted(metadata, key=lambda role: -role.total)


# ============================================================================
# Column Statistics
# ============================================================================

def compute_column_statistics(df: pd.DataFrame, columns: list[Column]) -> list[ColumnStatistics]:
    """Per-column summaries matched to each column's type."""
    results = []
    for column in columns:
        series = df[column.name] if column.name in df.columns else pd.Series(dtype=object)
        non_blank = [value for value in series.tolist() if not is_blank(value)]
        stats = ColumnStatistics(
            name=column.name,
            type=column.type.value,
            null_count=len(series) - len(non_blank),
            unique_count=len({str(value) for value in non_blank}),
        )

        if column.type == ColumnType.NUMBER:
            numbers = numeric_values(series).tolist()
            if numbers:
                total = float(np.sum(numbers))
                stats.min = float(min(numbers))
                stats.max = float(max(numbers))
                stats.sum = total
                stats.mean = total / len(numbers)
                stats.median = median(numbers)

        elif column.type in (ColumnType.TEXT, ColumnType.LOCATION):
            stats.top_values = [
                ValueCount(value=value, count=count)
                for value, count in ranked_counts(non_blank)[:TOP_VALUES_LIMIT]
            ]

        elif column.type == ColumnType.DATE:
            dates = pd.to_datetime(series, errors="coerce").dropna()
            if not dates.empty:
                earliest = dates.min()
                latest = dates.max()
                stats.earliest = earliest.to_pydatetime()
                stats.latest = latest.to_pydatetime()
                elapsed_ms = (latest - earliest).total_seconds() * 1000
                stats.span_days = int(math.ceil(elapsed_ms / MS_PER_DAY))

        results.append(stats)
    return results


# ============================================================================
# Supplementary Breakdowns
# ============================================================================

def compute_pareto(role_totals: dict[str, float]) -> list[ParetoPoint]:
    """Cumulative share of roles ranked by total (80/20 view)."""
    ranked = rank_totals(role_totals)
    total = sum(count for _, count in ranked)
    cumulative = 0.0
    points = []
    for role, count in ranked:
        cumulative += count
        points.append(ParetoPoint(
            role=role,
            count=count,
            cumulative=cumulative,
            cumulative_percent=percent(cumulative, total),
        ))
    return points


def compute_region_category_matrix(
    df: pd.DataFrame,
    profile: GeographyProfile,
    location_field: str,
    roles: list[str],
) -> list[RegionCategoryRow]:
    """Role totals per region, split by the industry category of each role."""
    matrix = {
        region: {category: 0.0 for category in INDUSTRY_CATEGORIES}
        for region in profile.regions
    }
    if not df.empty and location_field in df.columns and roles:
        sums = _role_sums(df, roles)
        role_categories = {role: classify_industry(role) for role in sums.columns}
        for position, code in enumerate(df[location_field].tolist()):
            region = region_for_code(code, profile) if not is_blank(code) else None
            if region is None:
                continue
            row = sums.iloc[position]
            for role, category in role_categories.items():
                matrix[region][category] += float(row[role])

    return [
        RegionCategoryRow(region=region, categories=categories, total=sum(categories.values()))
        for region, categories in matrix.items()
    ]


def get_unique_values(df: pd.DataFrame, column: str) -> list[str]:
    """Sorted distinct non-blank values of a column, as strings."""
    if column not in df.columns:
        return []
    return sorted({str(value) for value in df[column] if not is_blank(value)})


def get_numeric_range(df: pd.DataFrame, column: str) -> tuple[float, float]:
    """(min, max) of a numeric column; (0, 0) when it has no numbers."""
    if column not in df.columns:
        return 0.0, 0.0
    numbers = numeric_values(df[column])
    if numbers.empty:
        return 0.0, 0.0
    return float(numbers.min()), float(numbers.max())
