"""Run configuration loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import pandas as pd
import yaml

from tourism_impact.errors import ContractViolation

DEFAULT_IMPACT_CONFIG: dict[str, Any] = {
    "version": 1,
    "data": {
        "arrivals_path": "data/raw/international_arrivals.csv",
        "transactions_path": "data/raw/foreign_card_transactions.csv",
        "arrivals_columns": {
            "year": "year",
            "month": "month",
            "value": "trips",
        },
        "transactions_month_column": "month",
    },
    "split": {
        "validation_start": "2019-03-01",
        "test_start": "2020-03-01",
    },
    "model": {
        "engine": "statespace",
        "ar_orders": [1, 2],
        "selection_metric": "mae",
        "seasonal_period": 12,
        "n_samples": 1000,
        "random_seed": 42,
        "pymc_draws": 500,
        "pymc_tune": 500,
        "pymc_chains": 2,
    },
    "forecast": {
        "horizon": 6,
        "interval_level": 0.95,
    },
    "regression": {
        "window_start": "2017-01-01",
        "window_end": None,
        "propagate_uncertainty": False,
    },
    "report": {
        "root": "data/reports/impact",
        "charts": False,
        "png": False,
    },
}

ALLOWED_ENGINES = {"statespace", "pymc"}
ALLOWED_SELECTION_METRICS = {"mae", "rmse"}


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML document as a dictionary."""

    resolved = Path(path)
    if not resolved.exists():
        raise ContractViolation(
            "missing_source_file",
            key=str(resolved),
            detail="configuration file does not exist",
        )
    with resolved.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        raise ContractViolation(
            "invalid_yaml_root",
            key=str(path),
            detail="top-level YAML payload must be a mapping",
        )
    return dict(payload)


def _merge_dict(base: Mapping[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = dict(base)
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), Mapping):
            merged[key] = _merge_dict(base[key], value)
        else:
            merged[key] = value
    return merged


def _month_setting(value: Any, *, key: str) -> pd.Timestamp:
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        raise ContractViolation(
            "invalid_model_policy",
            key=key,
            detail=f"{key} must be a parseable month; received={value!r}",
        )
    return pd.Timestamp(ts).to_period("M").to_timestamp(how="start")


def _positive_int(value: Any, *, key: str, minimum: int = 1) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ContractViolation(
            "invalid_model_policy",
            key=key,
            detail=f"{key} must be an integer",
        ) from exc
    if parsed < minimum:
        raise ContractViolation(
            "invalid_model_policy",
            key=key,
            detail=f"{key} must be >= {minimum}",
        )
    return parsed


def validate_impact_config(config: Mapping[str, Any] | None) -> dict[str, Any]:
    """Validate and normalize the impact run configuration."""

    merged = _merge_dict(DEFAULT_IMPACT_CONFIG, config or {})

    data_cfg = dict(merged["data"])
    columns = dict(data_cfg.get("arrivals_columns", {}))
    for field_name in ("year", "month", "value"):
        if not str(columns.get(field_name, "")).strip():
            raise ContractViolation(
                "invalid_model_policy",
                key=f"data.arrivals_columns.{field_name}",
                detail="arrivals column names must be non-empty",
            )
    merged["data"] = {
        "arrivals_path": str(data_cfg["arrivals_path"]),
        "transactions_path": str(data_cfg["transactions_path"]),
        "arrivals_columns": {name: str(columns[name]) for name in ("year", "month", "value")},
        "transactions_month_column": str(data_cfg.get("transactions_month_column", "month")),
    }

    validation_start = _month_setting(
        merged["split"]["validation_start"], key="split.validation_start"
    )
    test_start = _month_setting(merged["split"]["test_start"], key="split.test_start")
    if validation_start >= test_start:
        raise ContractViolation(
            "invalid_model_policy",
            key="split",
            detail="validation_start must precede test_start",
        )
    merged["split"] = {
        "validation_start": validation_start,
        "test_start": test_start,
    }

    model = dict(merged["model"])
    engine = str(model.get("engine", "statespace")).strip().lower()
    if engine not in ALLOWED_ENGINES:
        raise ContractViolation(
            "invalid_model_policy",
            key="model.engine",
            detail=f"engine must be one of {sorted(ALLOWED_ENGINES)}",
        )
    raw_orders = model.get("ar_orders")
    if isinstance(raw_orders, (str, bytes)) or not hasattr(raw_orders, "__iter__"):
        raise ContractViolation(
            "invalid_model_policy",
            key="model.ar_orders",
            detail="ar_orders must be a list of integers",
        )
    ar_orders = sorted(
        {_positive_int(order, key="model.ar_orders") for order in raw_orders}
    )
    if len(ar_orders) < 2:
        raise ContractViolation(
            "invalid_model_policy",
            key="model.ar_orders",
            detail="at least two distinct autoregressive orders are required",
        )
    metric = str(model.get("selection_metric", "mae")).strip().lower()
    if metric not in ALLOWED_SELECTION_METRICS:
        raise ContractViolation(
            "invalid_model_policy",
            key="model.selection_metric",
            detail=f"selection_metric must be one of {sorted(ALLOWED_SELECTION_METRICS)}",
        )
    merged["model"] = {
        "engine": engine,
        "ar_orders": ar_orders,
        "selection_metric": metric,
        "seasonal_period": _positive_int(
            model.get("seasonal_period", 12), key="model.seasonal_period", minimum=2
        ),
        "n_samples": _positive_int(
            model.get("n_samples", 1000), key="model.n_samples", minimum=10
        ),
        "random_seed": int(model.get("random_seed", 42)),
        "pymc_draws": _positive_int(
            model.get("pymc_draws", 500), key="model.pymc_draws", minimum=100
        ),
        "pymc_tune": _positive_int(
            model.get("pymc_tune", 500), key="model.pymc_tune", minimum=100
        ),
        "pymc_chains": _positive_int(model.get("pymc_chains", 2), key="model.pymc_chains"),
    }

    horizon = _positive_int(merged["forecast"]["horizon"], key="forecast.horizon")
    level = float(merged["forecast"]["interval_level"])
    if level <= 0 or level > 1:
        raise ContractViolation(
            "invalid_model_policy",
            key="forecast.interval_level",
            detail="interval_level must be in the half-open interval (0, 1]",
        )
    merged["forecast"] = {"horizon": horizon, "interval_level": level}

    regression = dict(merged["regression"])
    window_start = _month_setting(
        regression.get("window_start"), key="regression.window_start"
    )
    raw_end = regression.get("window_end")
    if raw_end is None:
        window_end = (test_start.to_period("M") - 1).to_timestamp(how="start")
    else:
        window_end = _month_setting(raw_end, key="regression.window_end")
    if window_end < window_start:
        raise ContractViolation(
            "invalid_model_policy",
            key="regression.window_end",
            detail="window_end must not precede window_start",
        )
    if window_end >= test_start:
        raise ContractViolation(
            "invalid_model_policy",
            key="regression.window_end",
            detail="regression window must end before the pandemic test period",
        )
    merged["regression"] = {
        "window_start": window_start,
        "window_end": window_end,
        "propagate_uncertainty": bool(regression.get("propagate_uncertainty", False)),
    }

    report = dict(merged["report"])
    merged["report"] = {
        "root": str(report.get("root", "data/reports/impact")),
        "charts": bool(report.get("charts", False)),
        "png": bool(report.get("png", False)),
    }
    return merged


def load_impact_config(
    path: str | Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Load YAML config (when given), apply overrides and validate."""

    payload: dict[str, Any] = load_yaml(path) if path is not None else {}
    if overrides:
        payload = _merge_dict(payload, overrides)
    return validate_impact_config(payload)
