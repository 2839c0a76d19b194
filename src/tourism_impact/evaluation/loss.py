"""Counterfactual-minus-observed loss estimation with sample-based intervals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import pandas as pd

from tourism_impact.errors import ContractViolation


@dataclass(frozen=True)
class LossEstimate:
    """Per-period and total loss summaries on the natural scale."""

    by_period: pd.DataFrame
    total: dict[str, float]
    interval_level: float
    uncertainty: str

    def as_dict(self) -> dict[str, Any]:
        rows = self.by_period.copy()
        rows["month"] = pd.to_datetime(rows["month"]).dt.strftime("%Y-%m")
        return {
            "interval_level": self.interval_level,
            "uncertainty": self.uncertainty,
            "total": dict(self.total),
            "by_period": rows.to_dict(orient="records"),
        }


def interval_quantiles(level: float) -> tuple[float, float]:
    """Return the lower/upper quantiles of a central interval."""

    value = float(level)
    if value <= 0 or value > 1:
        raise ContractViolation(
            "invalid_model_policy",
            key="interval_level",
            detail="interval_level must be in the half-open interval (0, 1]",
        )
    lower = (1.0 - value) / 2.0
    return float(lower), float(1.0 - lower)


def summarize_samples(values: np.ndarray, *, level: float, axis: int = 0) -> dict[str, Any]:
    """Median and central interval of sample values along ``axis``."""

    lower_q, upper_q = interval_quantiles(level)
    array = np.asarray(values, dtype=float)
    return {
        "median": np.median(array, axis=axis),
        "lower": np.quantile(array, lower_q, axis=axis),
        "upper": np.quantile(array, upper_q, axis=axis),
    }


def loss_samples(forecast_samples: np.ndarray, observed: Sequence[float] | np.ndarray) -> np.ndarray:
    """Per-sample, per-period differences ``F[i, t] - O[t]``."""

    samples = np.asarray(forecast_samples, dtype=float)
    actual = np.asarray(observed, dtype=float).reshape(-1)
    if samples.ndim != 2 or samples.shape[0] < 1 or samples.shape[1] < 1:
        raise ContractViolation(
            "invalid_metric_payload",
            key="forecast_samples",
            detail="forecast samples must be a non-empty (n_samples, horizon) matrix",
        )
    if samples.shape[1] != actual.shape[0]:
        raise ContractViolation(
            "invalid_metric_payload",
            key="observed",
            detail=(
                "observed values must match the forecast horizon; "
                f"horizon={samples.shape[1]} observed={actual.shape[0]}"
            ),
        )
    if not np.isfinite(actual).all():
        raise ContractViolation(
            "invalid_metric_payload",
            key="observed",
            detail="observed values must be finite",
        )
    return samples - actual[None, :]


def estimate_sample_loss(
    forecast_samples: np.ndarray,
    observed: Sequence[float] | np.ndarray,
    *,
    months: Sequence[object],
    interval_level: float = 0.95,
) -> LossEstimate:
    """Summarize forecast-minus-observed losses from natural-scale samples.

    The total is summarized from the per-sample row sums, so its median and
    interval are quantiles of the summed trajectories rather than sums of the
    per-period quantiles.
    """

    diffs = loss_samples(forecast_samples, observed)
    if len(months) != diffs.shape[1]:
        raise ContractViolation(
            "invalid_metric_payload",
            key="months",
            detail="months must match the forecast horizon",
        )
    samples = np.asarray(forecast_samples, dtype=float)
    actual = np.asarray(observed, dtype=float).reshape(-1)

    per_period = summarize_samples(diffs, level=interval_level, axis=0)
    counterfactual = np.median(samples, axis=0)
    by_period = pd.DataFrame(
        {
            "month": pd.to_datetime(list(months)),
            "counterfactual_median": counterfactual,
            "observed": actual,
            "loss_median": per_period["median"],
            "loss_lower": per_period["lower"],
            "loss_upper": per_period["upper"],
        }
    )

    totals = diffs.sum(axis=1)
    total_summary = summarize_samples(totals, level=interval_level)
    counterfactual_total = float(np.median(samples.sum(axis=1)))
    total = {
        "loss_median": float(total_summary["median"]),
        "loss_lower": float(total_summary["lower"]),
        "loss_upper": float(total_summary["upper"]),
        "counterfactual_median": counterfactual_total,
        "observed": float(actual.sum()),
        "relative_loss": (
            float(total_summary["median"]) / counterfactual_total
            if counterfactual_total != 0
            else float("nan")
        ),
        "n_samples": float(diffs.shape[0]),
    }
    return LossEstimate(
        by_period=by_period,
        total=total,
        interval_level=float(interval_level),
        uncertainty="sampled",
    )


def estimate_point_loss(
    forecast: Sequence[float] | np.ndarray,
    baseline: Sequence[float] | np.ndarray,
    *,
    months: Sequence[object],
) -> LossEstimate:
    """Point-only forecast-minus-baseline loss; interval bounds equal the point."""

    point = np.asarray(forecast, dtype=float).reshape(1, -1)
    estimate = estimate_sample_loss(point, baseline, months=months, interval_level=1.0)
    total = dict(estimate.total)
    total.pop("n_samples", None)
    return LossEstimate(
        by_period=estimate.by_period,
        total=total,
        interval_level=1.0,
        uncertainty="point",
    )
