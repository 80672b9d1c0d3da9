import pandas as pd
from column_classifier import Column, ColumnRole, ColumnType
from icp import count_qualified, default_icp_config, is_truthy_flag, qualifies_mask, row_qualifies, rule_matches
from models import ICPConfig, ICPRule


def _frame():
    return pd.DataFrame({
        "ICP": ["Yes", "no", "TRUE", None, "1"],
        "Fit Score": [90, 40, 75, None, 60],
        "Sector": ["Film", "Music", "Fashion", "Film", "Film"],
    })


def test_truthy_flags():
    assert is_truthy_flag("yes")
    assert is_truthy_flag(" Y ")
    assert is_truthy_flag(True)
    assert is_truthy_flag(1)
    assert not is_truthy_flag("no")
    assert not is_truthy_flag(None)
    assert not is_truthy_flag(0)


def test_column_mode():
    config = ICPConfig(mode="column", column_name="ICP")
    assert qualifies_mask(_frame(), config).tolist() == [True, False, True, False, True]
    assert count_qualified(_frame(), config) == 3


def test_threshold_mode():
    config = ICPConfig(mode="threshold", threshold_column="Fit Score", threshold=60)
    assert qualifies_mask(_frame(), config).tolist() == [True, False, True, False, True]


def test_rules_mode_combines_with_and():
    config = ICPConfig(
        mode="rules",
        rules=[
            ICPRule(column="Sector", operator="equals", value="film"),
            ICPRule(column="Fit Score", operator="greater", value=50),
        ],
    )
    assert qualifies_mask(_frame(), config).tolist() == [True, False, False, False, True]
    assert row_qualifies({"Sector": "Film", "Fit Score": 51}, config)
    assert not row_qualifies({"Sector": "Film", "Fit Score": 50}, config)


def test_rule_operators():
    assert rule_matches("Film & TV", ICPRule(column="x", operator="contains", value="tv"))
    assert rule_matches("Music", ICPRule(column="x", operator="in", value=["film", "music"]))
    assert rule_matches("10", ICPRule(column="x", operator="equals", value=10))
    assert rule_matches(5, ICPRule(column="x", operator="less", value="$6"))
    assert not rule_matches("abc", ICPRule(column="x", operator="greater", value=1))
    assert not rule_matches(None, ICPRule(column="x", operator="contains", value=""))


def test_incomplete_configs_qualify_nothing():
    frame = _frame()
    assert count_qualified(frame, None) == 0
    assert count_qualified(frame, ICPConfig(mode="column")) == 0
    assert count_qualified(frame, ICPConfig(mode="column", column_name="Missing")) == 0
    assert count_qualified(frame, ICPConfig(mode="threshold", threshold_column="Fit Score")) == 0
    assert count_qualified(frame, ICPConfig(mode="rules")) == 0
    assert count_qualified(frame.iloc[0:0], ICPConfig(mode="column", column_name="ICP")) == 0


def test_default_config_uses_first_score_column():
    columns = [
        Column("Company", ColumnType.TEXT, ColumnRole.COMPANY),
        Column("ICP", ColumnType.TEXT, ColumnRole.SCORE),
        Column("Fit Score", ColumnType.NUMBER, ColumnRole.SCORE),
    ]
    assert default_icp_config(columns) == ICPConfig(mode="column", column_name="ICP")
    assert default_icp_config(columns[:1]).column_name is None
