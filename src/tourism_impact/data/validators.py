"""Data contract validators for month-keyed series."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from tourism_impact.errors import ContractViolation
from tourism_impact.utils.calendar import missing_months


def require_columns(frame: pd.DataFrame, required: Iterable[str], *, key: str) -> None:
    """Fail fast when required columns are missing."""

    missing = [name for name in required if name not in frame.columns]
    if missing:
        raise ContractViolation(
            "missing_column",
            key=key,
            detail=f"missing required columns: {','.join(sorted(missing))}",
        )


def ensure_monthly_series(
    frame: pd.DataFrame,
    *,
    month_col: str = "month",
    value_col: str = "value",
    key: str = "series",
    require_positive: bool = True,
) -> pd.DataFrame:
    """Validate a gap-free, unique, chronologically ordered monthly series."""

    require_columns(frame, (month_col, value_col), key=key)
    if frame.empty:
        raise ContractViolation(
            "insufficient_training_data",
            key=key,
            detail="monthly series is empty",
        )

    data = frame[[month_col, value_col]].copy()
    months = pd.to_datetime(data[month_col], errors="coerce")
    if months.isna().any():
        raise ContractViolation(
            "invalid_timestamp",
            key=f"{key}.{month_col}",
            detail="monthly series contains unparseable months",
        )
    data[month_col] = months.dt.to_period("M").dt.to_timestamp(how="start")

    values = pd.to_numeric(data[value_col], errors="coerce")
    invalid = data[values.isna() | ~np.isfinite(values.fillna(0.0))]
    if not invalid.empty:
        raise ContractViolation(
            "invalid_value",
            month=invalid.iloc[0][month_col],
            key=f"{key}.{value_col}",
            detail="monthly series values must be finite numbers",
        )
    data[value_col] = values.astype(float)
    if require_positive and (data[value_col] <= 0).any():
        offending = data[data[value_col] <= 0].iloc[0]
        raise ContractViolation(
            "invalid_value",
            month=offending[month_col],
            key=f"{key}.{value_col}",
            detail="values must be strictly positive to be log-transformed",
        )

    duplicated = data[data[month_col].duplicated(keep=False)]
    if not duplicated.empty:
        raise ContractViolation(
            "non_monotonic_series",
            month=duplicated.iloc[0][month_col],
            key=f"{key}.{month_col}",
            detail="month keys must be unique",
        )

    data = data.sort_values(month_col).reset_index(drop=True)
    gaps = missing_months(data[month_col])
    if gaps:
        raise ContractViolation(
            "missing_month",
            month=gaps[0],
            key=f"{key}.{month_col}",
            detail=f"monthly series has {len(gaps)} missing month(s)",
        )
    return data
