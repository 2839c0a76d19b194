"""Forecast error metrics used for candidate scoring."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from tourism_impact.data.validators import require_columns
from tourism_impact.errors import ContractViolation


def _as_numeric_series(values: pd.Series | np.ndarray, *, key: str) -> pd.Series:
    numeric = pd.to_numeric(pd.Series(np.asarray(values).reshape(-1)), errors="coerce")
    if numeric.isna().any():
        raise ContractViolation(
            "invalid_metric_payload",
            key=key,
            detail="metric inputs must be numeric and non-null",
        )
    return numeric.astype(float)


def _paired(y_true: object, y_pred: object) -> tuple[pd.Series, pd.Series]:
    true = _as_numeric_series(y_true, key="y_true")
    pred = _as_numeric_series(y_pred, key="y_pred")
    if len(true) != len(pred) or true.empty:
        raise ContractViolation(
            "invalid_metric_payload",
            key="y_pred",
            detail=f"metric inputs must be non-empty and aligned; true={len(true)} pred={len(pred)}",
        )
    return true, pred


def mean_absolute_error(y_true: pd.Series | np.ndarray, y_pred: pd.Series | np.ndarray) -> float:
    true, pred = _paired(y_true, y_pred)
    return float((true - pred).abs().mean())


def root_mean_squared_error(
    y_true: pd.Series | np.ndarray, y_pred: pd.Series | np.ndarray
) -> float:
    true, pred = _paired(y_true, y_pred)
    return float(np.sqrt(((true - pred) ** 2).mean()))


def score_point_forecasts(
    frame: pd.DataFrame,
    *,
    actual_col: str = "actual",
    forecast_col: str = "forecast",
    group_cols: list[str] | None = None,
) -> pd.DataFrame:
    """Compute MAE/RMSE scorecards, optionally per group."""

    require_columns(frame, (actual_col, forecast_col), key="point_forecast_frame")
    group_cols = group_cols or []

    def _compute(group: pd.DataFrame) -> dict[str, Any]:
        return {
            "mae": mean_absolute_error(group[actual_col], group[forecast_col]),
            "rmse": root_mean_squared_error(group[actual_col], group[forecast_col]),
            "n_obs": int(len(group)),
        }

    if group_cols:
        require_columns(frame, tuple(group_cols), key="group_cols")
        rows: list[dict[str, Any]] = []
        for keys, group in frame.groupby(group_cols, sort=True):
            metrics = _compute(group)
            if not isinstance(keys, tuple):
                keys = (keys,)
            for col_name, value in zip(group_cols, keys):
                metrics[col_name] = value
            rows.append(metrics)
        ordered_cols = group_cols + ["n_obs", "mae", "rmse"]
        return pd.DataFrame(rows).sort_values(group_cols).reset_index(drop=True)[ordered_cols]

    return pd.DataFrame([_compute(frame)])[["n_obs", "mae", "rmse"]]
