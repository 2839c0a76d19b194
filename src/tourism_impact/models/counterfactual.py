"""Counterfactual forecasting: candidate scoring, selection, refit and forecast."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
import pandas as pd

from tourism_impact.data.splits import SeriesSplit
from tourism_impact.data.target_transforms import to_log_scale
from tourism_impact.errors import ContractViolation
from tourism_impact.evaluation.metrics import score_point_forecasts
from tourism_impact.models.base import FittedModel, ForecastDistribution, StructuralModel
from tourism_impact.models.bsts import PyMCStructuralModel, StateSpaceStructuralModel
from tourism_impact.models.selection import SelectionDecision, select_model_by_metric

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CounterfactualResult:
    """Selected model, its validation scoreboard and the log-scale forecast."""

    selection: SelectionDecision
    scorecard: pd.DataFrame
    fitted: FittedModel
    distribution: ForecastDistribution
    diagnostics: dict[str, Any]


def build_structural_model(
    model_cfg: Mapping[str, Any],
    *,
    ar_order: int,
) -> StructuralModel:
    """Instantiate the configured engine for one autoregressive order."""

    engine = str(model_cfg.get("engine", "statespace"))
    common = {
        "ar_order": int(ar_order),
        "seasonal_period": int(model_cfg.get("seasonal_period", 12)),
        "n_samples": int(model_cfg.get("n_samples", 1000)),
        "random_seed": int(model_cfg.get("random_seed", 42)),
    }
    if engine == "statespace":
        return StateSpaceStructuralModel(**common)
    if engine == "pymc":
        return PyMCStructuralModel(
            **common,
            draws=int(model_cfg.get("pymc_draws", 500)),
            tune=int(model_cfg.get("pymc_tune", 500)),
            chains=int(model_cfg.get("pymc_chains", 2)),
        )
    raise ContractViolation(
        "invalid_model_policy",
        key="model.engine",
        detail=f"unsupported engine: {engine}",
    )


def log_frame(frame: pd.DataFrame, *, key: str) -> pd.DataFrame:
    """Return a ``month``/``value`` frame with log-transformed values."""

    return pd.DataFrame(
        {
            "month": frame["month"].to_numpy(),
            "value": to_log_scale(frame["value"], key=key),
        }
    )


def score_candidates(
    split: SeriesSplit,
    model_cfg: Mapping[str, Any],
) -> pd.DataFrame:
    """Fit every candidate on ``train`` and score it on ``validation`` (log scale)."""

    train = log_frame(split.train, key="train")
    actual = to_log_scale(split.validation["value"], key="validation")
    horizon = int(len(actual))

    rows: list[pd.DataFrame] = []
    converged: dict[int, bool] = {}
    for ar_order in model_cfg["ar_orders"]:
        model = build_structural_model(model_cfg, ar_order=int(ar_order))
        fitted = model.fit(train)
        forecast = model.forecast(fitted, horizon)
        converged[int(ar_order)] = bool(fitted.converged)
        rows.append(
            pd.DataFrame(
                {
                    "ar_order": int(ar_order),
                    "month": forecast.months,
                    "actual": actual,
                    "forecast": np.asarray(forecast.point, dtype=float),
                }
            )
        )
    scored = score_point_forecasts(
        pd.concat(rows, ignore_index=True),
        group_cols=["ar_order"],
    )
    scored["converged"] = scored["ar_order"].map(converged).astype(bool)
    for _, row in scored.iterrows():
        logger.info(
            "candidate AR(%d): validation mae=%.5f rmse=%.5f over %d months",
            int(row["ar_order"]),
            float(row["mae"]),
            float(row["rmse"]),
            int(row["n_obs"]),
        )
    return scored


def run_counterfactual_forecast(
    split: SeriesSplit,
    model_cfg: Mapping[str, Any],
    *,
    horizon: int,
) -> CounterfactualResult:
    """Select the AR order on validation MAE, refit on train+validation and forecast."""

    if int(horizon) < 1:
        raise ContractViolation(
            "invalid_model_policy",
            key="forecast.horizon",
            detail="horizon must be >= 1",
        )
    metric = str(model_cfg.get("selection_metric", "mae"))
    scorecard = score_candidates(split, model_cfg)
    decision = select_model_by_metric(
        scorecard,
        model_col="ar_order",
        metric_col=metric,
    )
    scorecard = scorecard.assign(selected=scorecard["ar_order"] == decision.selected_model)
    logger.info(
        "selected AR(%s) by validation %s=%.5f (%s)",
        decision.selected_model,
        metric,
        decision.selected_metric,
        decision.reason,
    )

    history = log_frame(split.history, key="history")
    model = build_structural_model(model_cfg, ar_order=int(decision.selected_model))
    fitted = model.fit(history)
    distribution = model.forecast(fitted, int(horizon))
    logger.info(
        "refit AR(%d) on %d months; forecasting %s..%s",
        fitted.ar_order,
        fitted.n_obs,
        distribution.months[0].strftime("%Y-%m"),
        distribution.months[-1].strftime("%Y-%m"),
    )

    diagnostics = {
        "engine": fitted.engine,
        "selected_ar_order": int(fitted.ar_order),
        "candidate_ar_orders": [int(order) for order in model_cfg["ar_orders"]],
        "selection": decision.as_dict(),
        "refit_observations": int(fitted.n_obs),
        "converged": bool(fitted.converged),
        "horizon": int(horizon),
        "n_samples": int(distribution.n_samples),
        "random_seed": int(model_cfg.get("random_seed", 42)),
        "params": dict(fitted.params),
    }
    return CounterfactualResult(
        selection=decision,
        scorecard=scorecard,
        fitted=fitted,
        distribution=distribution,
        diagnostics=diagnostics,
    )
