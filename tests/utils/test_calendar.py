from __future__ import annotations

import pandas as pd
import pytest

from tourism_impact.errors import ContractViolation
from tourism_impact.utils.calendar import (
    missing_months,
    month_from_parts,
    month_number,
    month_range,
    parse_month,
    shift_month,
)


def test_parse_month_normalizes_to_month_start() -> None:
    assert parse_month("2020-03-17") == pd.Timestamp("2020-03-01")
    assert parse_month(pd.Timestamp("2019-12-31 23:00")) == pd.Timestamp("2019-12-01")


def test_parse_month_rejects_garbage() -> None:
    with pytest.raises(ContractViolation, match="reason_code=invalid_timestamp"):
        parse_month("not-a-month")


@pytest.mark.parametrize(
    ("label", "expected"),
    [("January", 1), ("feb", 2), ("Sept.", 9), (" 12 ", 12), (7, 7), ("3.0", 3)],
)
def test_month_number_accepts_names_and_numbers(label: object, expected: int) -> None:
    assert month_number(label) == expected


def test_month_number_rejects_out_of_range() -> None:
    with pytest.raises(ContractViolation, match="reason_code=invalid_timestamp"):
        month_number(13)
    with pytest.raises(ContractViolation, match="reason_code=invalid_timestamp"):
        month_number("Smarch")


def test_month_from_parts_and_shift() -> None:
    month = month_from_parts("2019", "December")
    assert month == pd.Timestamp("2019-12-01")
    assert shift_month(month, months=1) == pd.Timestamp("2020-01-01")
    assert shift_month(month, months=-12) == pd.Timestamp("2018-12-01")


def test_month_range_and_missing_months() -> None:
    months = month_range("2020-01-15", periods=4)
    assert [ts.strftime("%Y-%m") for ts in months] == [
        "2020-01",
        "2020-02",
        "2020-03",
        "2020-04",
    ]
    gaps = missing_months(["2020-01-01", "2020-04-01", "2020-02-01"])
    assert gaps == [pd.Timestamp("2020-03-01")]
    assert missing_months(["2020-01-01"]) == []
