"""
Flat export records.
Location summaries and role metadata as column-labelled rows ready for a
CSV/XLSX writer, plus the reader for location summary exports.
"""
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from column_classifier import is_blank, parse_number
from metrics import DEFAULT_TOP_N
from models import LocationSummary, RoleMetadata, TopItem


LOCATION_HEADERS = ["Location", "Code", "Region", "Total", "% of Total"]
ROLE_HEADERS = ["Role", "Industry", "Total", "% of Total"]

# Percentages are written with this many decimals
PERCENT_DECIMALS = 2


def top_item_headers(top_n: int = DEFAULT_TOP_N) -> list[str]:
    headers = []
    for rank in range(1, top_n + 1):
        headers.extend([f"Top {rank}", f"Top {rank} Count"])
    return headers


def location_headers(top_n: int = DEFAULT_TOP_N) -> list[str]:
    return LOCATION_HEADERS + top_item_headers(top_n)


def location_summaries_to_records(
    summaries: Iterable[LocationSummary],
    top_n: Optional[int] = None,
) -> list[dict[str, Any]]:
    """
    One record per location summary, in the given (rank) order.

    The top-N breakdown is spread over `Top k` / `Top k Count` columns; unused
    slots are left empty. `top_n` defaults to the longest breakdown, at
    least three.
    """
    summaries = list(summaries)
    if top_n is None:
        top_n = max([DEFAULT_TOP_N] + [len(summary.top_items) for summary in summaries])

    records = []
    for summary in summaries:
        record: dict[str, Any] = {
            "Location": summary.name,
            "Code": summary.code,
            "Region": summary.region or "",
            "Total": summary.total,
            "% of Total": round(summary.percent_of_total, PERCENT_DECIMALS),
        }
        for rank in range(1, top_n + 1):
            item = summary.top_items[rank - 1] if rank <= len(summary.top_items) else None
            record[f"Top {rank}"] = item.name if item else ""
            record[f"Top {rank} Count"] = item.count if item else None
        records.append(record)
    return records


def records_to_location_summaries(records: Iterable[Mapping[str, Any]]) -> list[LocationSummary]:
    """Rebuild location summaries from exported records, keeping record order."""
    summaries = []
    for record in records:
        top_items = []
        rank = 1
        while f"Top {rank}" in record:
            name = record.get(f"Top {rank}")
            if not is_blank(name):
                count = parse_number(record.get(f"Top {rank} Count"))
                top_items.append(TopItem(name=str(name), count=count or 0.0))
            rank += 1

        region = record.get("Region")
        summaries.append(LocationSummary(
            code=str(record["Code"]),
            name=str(record.get("Location") or record["Code"]),
            region=None if is_blank(region) else str(region),
            total=parse_number(record.get("Total")) or 0.0,
            percent_of_total=parse_number(record.get("% of Total")) or 0.0,
            top_items=top_items,
        ))
    return summaries


def role_metadata_to_records(roles: Iterable[RoleMetadata]) -> list[dict[str, Any]]:
    return [
        {
            "Role": role.column_name,
            "Industry": role.industry,
            "Total": role.total,
            "% of Total": round(role.percent_of_total, PERCENT_DECIMALS),
        }
        for role in roles
    ]


def records_to_frame(records: list[dict[str, Any]], headers: Optional[list[str]] = None) -> pd.DataFrame:
    """Tabular view of export records with columns in header order."""
    if headers is None:
        headers = list(records[0].keys()) if records else []
    return pd.DataFrame.from_records(records, columns=headers)
