"""Canonical calendar helpers for month-keyed series."""

from __future__ import annotations

import calendar as _calendar
from typing import Iterable

import pandas as pd

from tourism_impact.errors import ContractViolation

_MONTH_NAMES: dict[str, int] = {
    **{name.lower(): idx for idx, name in enumerate(_calendar.month_name) if name},
    **{name.lower(): idx for idx, name in enumerate(_calendar.month_abbr) if name},
}


def parse_month(value: object, *, key: str = "month") -> pd.Timestamp:
    """Parse value into a month-start timestamp."""

    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as exc:
        raise ContractViolation(
            "invalid_timestamp",
            key=key,
            detail=f"{key} could not be parsed: {value!r}",
        ) from exc
    if pd.isna(ts):
        raise ContractViolation(
            "invalid_timestamp",
            key=key,
            detail=f"{key} could not be parsed",
        )
    return ts.to_period("M").to_timestamp(how="start")


def month_number(value: object, *, key: str = "month") -> int:
    """Resolve a numeric or English month label to 1..12."""

    if isinstance(value, str):
        token = value.strip().lower().rstrip(".")
        if token in _MONTH_NAMES:
            return int(_MONTH_NAMES[token])
        if token[:3] in _MONTH_NAMES:
            return int(_MONTH_NAMES[token[:3]])
    try:
        number = int(float(str(value).strip()))
    except (TypeError, ValueError) as exc:
        raise ContractViolation(
            "invalid_timestamp",
            key=key,
            detail=f"month label is neither a number nor a month name: {value!r}",
        ) from exc
    if number < 1 or number > 12:
        raise ContractViolation(
            "invalid_timestamp",
            key=key,
            detail=f"month number must be in 1..12; received={number}",
        )
    return number


def month_from_parts(year: object, month: object, *, key: str = "month") -> pd.Timestamp:
    """Build a month-start timestamp from year and month labels."""

    try:
        parsed_year = int(float(str(year).strip()))
    except (TypeError, ValueError) as exc:
        raise ContractViolation(
            "invalid_timestamp",
            key=key,
            detail=f"year is not numeric: {year!r}",
        ) from exc
    return pd.Timestamp(year=parsed_year, month=month_number(month, key=key), day=1)


def shift_month(month: object, *, months: int) -> pd.Timestamp:
    """Shift a month-start timestamp by integer month offsets."""

    anchor = parse_month(month)
    return (anchor.to_period("M") + int(months)).to_timestamp(how="start")


def month_range(start: object, *, periods: int) -> pd.DatetimeIndex:
    """Return ``periods`` consecutive month-start timestamps from ``start``."""

    if int(periods) < 0:
        raise ContractViolation(
            "invalid_model_policy",
            key="periods",
            detail="periods must be >= 0",
        )
    return pd.date_range(parse_month(start), periods=int(periods), freq="MS")


def missing_months(months: Iterable[object]) -> list[pd.Timestamp]:
    """Return month-start timestamps absent between the first and last month."""

    parsed = sorted({parse_month(value) for value in months})
    if len(parsed) < 2:
        return []
    expected = pd.date_range(parsed[0], parsed[-1], freq="MS")
    present = set(parsed)
    return [ts for ts in expected if ts not in present]
