"""
ICP (Ideal Customer Profile) qualification.
Evaluates the configured flag column, numeric threshold, or rule list
against normalized rows.
"""
from typing import Iterable, Mapping

import pandas as pd

from column_classifier import Column, ColumnRole, find_column, is_blank, parse_number
from models import ICPConfig, ICPRule


# Flag values that mark a row as qualified in column mode
TRUTHY_FLAGS = {"true", "yes", "1", "y"}


def is_truthy_flag(value: object) -> bool:
    if is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    number = parse_number(value)
    if number is not None and not isinstance(value, str):
        return number == 1
    return str(value).strip().lower() in TRUTHY_FLAGS


def _as_list(value: object) -> list:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _values_equal(value: object, literal: object) -> bool:
    left = parse_number(value)
    right = parse_number(literal)
    if left is not None and right is not None:
        return left == right
    return str(value).strip().lower() == str(literal).strip().lower()


def rule_matches(value: object, rule: ICPRule) -> bool:
    """Test one value against one rule. Blank values never match."""
    if is_blank(value):
        return False

    if rule.operator == "equals":
        return _values_equal(value, rule.value)
    if rule.operator == "in":
        return any(_values_equal(value, literal) for literal in _as_list(rule.value))
    if rule.operator == "contains":
        text = str(value).lower()
        return any(str(literal).lower() in text for literal in _as_list(rule.value))

    number = parse_number(value)
    literal = parse_number(rule.value) if not isinstance(rule.value, list) else None
    if number is None or literal is None:
        return False
    if rule.operator == "greater":
        return number > literal
    return number < literal


def _meets_threshold(value: object, threshold: float) -> bool:
    number = parse_number(value)
    return number is not None and number >= threshold


def row_qualifies(row: Mapping[str, object], config: ICPConfig | None) -> bool:
    """Evaluate the ICP configuration for a single row."""
    if config is None:
        return False

    if config.mode == "column":
        if not config.column_name:
            return False
        return is_truthy_flag(row.get(config.column_name))

    if config.mode == "threshold":
        if not config.threshold_column or config.threshold is None:
            return False
        return _meets_threshold(row.get(config.threshold_column), config.threshold)

    # An empty rule list qualifies nothing
    if not config.rules:
        return False
    return all(rule_matches(row.get(rule.column), rule) for rule in config.rules)


def qualifies_mask(df: pd.DataFrame, config: ICPConfig | None) -> pd.Series:
    """
    Boolean mask of qualifying rows.

    Missing columns or an incomplete configuration qualify no rows.
    """
    none = pd.Series(False, index=df.index, dtype=bool)
    if config is None or df.empty:
        return none

    if config.mode == "column":
        if not config.column_name or config.column_name not in df.columns:
            return none
        return df[config.column_name].map(is_truthy_flag).astype(bool)

    if config.mode == "threshold":
        column = config.threshold_column
        if not column or config.threshold is None or column not in df.columns:
            return none
        return df[column].map(lambda value: _meets_threshold(value, config.threshold)).astype(bool)

    if not config.rules:
        return none
    mask = pd.Series(True, index=df.index, dtype=bool)
    for rule in config.rules:
        if rule.column not in df.columns:
            return none
        mask &= df[rule.column].map(lambda value, rule=rule: rule_matches(value, rule)).astype(bool)
    return mask


def count_qualified(df: pd.DataFrame, config: ICPConfig | None) -> int:
    return int(qualifies_mask(df, config).sum())


def default_icp_config(columns: Iterable[Column]) -> ICPConfig:
    """Use the first score/ICP column as a qualification flag, if there is one."""
    score_column = find_column(columns, ColumnRole.SCORE)
    if score_column is None:
        return ICPConfig(mode="column")
    return ICPConfig(mode="column", column_name=score_column.name)
