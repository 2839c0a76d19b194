"""End-to-end arrivals and transactions impact pipelines."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
import pandas as pd

from tourism_impact.config import validate_impact_config
from tourism_impact.data.loaders import (
    join_monthly_series,
    load_arrivals,
    load_transactions,
)
from tourism_impact.data.splits import SeriesSplit, split_series
from tourism_impact.data.validators import ensure_monthly_series
from tourism_impact.errors import ContractViolation
from tourism_impact.evaluation.loss import (
    LossEstimate,
    estimate_point_loss,
    estimate_sample_loss,
)
from tourism_impact.models.counterfactual import (
    CounterfactualResult,
    run_counterfactual_forecast,
)
from tourism_impact.models.regression import LogLogRegression, fit_log_log_regression

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArrivalsImpact:
    """Arrivals track output: split, selected model, forecast and lost arrivals."""

    series: pd.DataFrame
    split: SeriesSplit
    counterfactual: CounterfactualResult
    loss: LossEstimate

    def as_dict(self) -> dict[str, Any]:
        return {
            "split": self.split.as_dict(),
            "model": self.counterfactual.diagnostics,
            "loss": self.loss.as_dict(),
        }


@dataclass(frozen=True)
class TransactionsImpact:
    """Transactions track output: regression, per-month legs and lost volume."""

    joined: pd.DataFrame
    regression: LogLogRegression
    by_period: pd.DataFrame
    loss: LossEstimate

    def as_dict(self) -> dict[str, Any]:
        rows = self.by_period.copy()
        rows["month"] = pd.to_datetime(rows["month"]).dt.strftime("%Y-%m")
        rows = rows.astype(object).where(rows.notna(), None)
        return {
            "regression": self.regression.as_dict(),
            "by_period": rows.to_dict(orient="records"),
            "loss": self.loss.as_dict(),
        }


@dataclass(frozen=True)
class ImpactReport:
    """Full run output for both tracks."""

    config: dict[str, Any]
    arrivals: ArrivalsImpact
    transactions: TransactionsImpact | None

    def as_dict(self) -> dict[str, Any]:
        return {
            "config": self.config,
            "arrivals": self.arrivals.as_dict(),
            "transactions": None if self.transactions is None else self.transactions.as_dict(),
        }


def _observed_for_months(
    series: pd.DataFrame,
    months: pd.DatetimeIndex,
    *,
    key: str,
) -> np.ndarray:
    indexed = series.set_index("month")["value"]
    missing = [month for month in months if month not in indexed.index]
    if missing:
        raise ContractViolation(
            "insufficient_training_data",
            month=missing[0],
            key=key,
            detail=f"observed values are missing for {len(missing)} forecast month(s)",
        )
    return indexed.loc[list(months)].to_numpy(dtype=float)


def run_arrivals_pipeline(
    arrivals: pd.DataFrame,
    config: Mapping[str, Any],
) -> ArrivalsImpact:
    """Forecast counterfactual arrivals and estimate lost arrivals with intervals."""

    split = split_series(
        arrivals,
        validation_start=config["split"]["validation_start"],
        test_start=config["split"]["test_start"],
    )
    horizon = int(config["forecast"]["horizon"])
    counterfactual = run_counterfactual_forecast(split, config["model"], horizon=horizon)
    distribution = counterfactual.distribution
    observed = _observed_for_months(split.test, distribution.months, key="arrivals.test")

    natural = distribution.to_natural_scale()
    loss = estimate_sample_loss(
        natural.samples,
        observed,
        months=natural.months,
        interval_level=float(config["forecast"]["interval_level"]),
    )
    logger.info(
        "lost arrivals over %d months: median=%.0f [%.0f, %.0f]",
        horizon,
        loss.total["loss_median"],
        loss.total["loss_lower"],
        loss.total["loss_upper"],
    )
    return ArrivalsImpact(
        series=split.combined(),
        split=split,
        counterfactual=counterfactual,
        loss=loss,
    )


def run_transactions_pipeline(
    arrivals: pd.DataFrame,
    transactions: pd.DataFrame,
    arrivals_impact: ArrivalsImpact,
    config: Mapping[str, Any],
) -> TransactionsImpact:
    """Nowcast and counterfactually forecast card volume via the log-log regression.

    By default the loss is point-only: forecast volume from the per-month
    median of counterfactual log-arrivals minus the nowcast from actual
    arrivals. With ``regression.propagate_uncertainty`` the line is applied to
    every counterfactual sample trajectory instead.
    """

    transactions = ensure_monthly_series(transactions, key="transactions")
    joined = join_monthly_series(arrivals, transactions)
    regression_cfg = config["regression"]
    regression = fit_log_log_regression(
        joined,
        window_start=regression_cfg["window_start"],
        window_end=regression_cfg["window_end"],
    )

    distribution = arrivals_impact.counterfactual.distribution
    months = distribution.months
    actual_arrivals = _observed_for_months(
        arrivals_impact.series, months, key="arrivals.nowcast"
    )
    nowcast = regression.nowcast(actual_arrivals)
    counterfactual_log_arrivals = distribution.median()
    forecast = regression.forecast(counterfactual_log_arrivals)

    observed_volume = (
        transactions.set_index("month")["value"].reindex(months).to_numpy(dtype=float)
    )
    by_period = pd.DataFrame(
        {
            "month": months,
            "actual_arrivals": actual_arrivals,
            "counterfactual_arrivals": np.exp(counterfactual_log_arrivals),
            "nowcast_volume": nowcast,
            "forecast_volume": forecast,
            "observed_volume": observed_volume,
            "nowcast_error": observed_volume - nowcast,
        }
    )

    if bool(regression_cfg.get("propagate_uncertainty", False)):
        loss = estimate_sample_loss(
            regression.forecast(distribution.samples),
            nowcast,
            months=months,
            interval_level=float(config["forecast"]["interval_level"]),
        )
    else:
        loss = estimate_point_loss(forecast, nowcast, months=months)
    loss = LossEstimate(
        by_period=loss.by_period.rename(columns={"observed": "nowcast"}),
        total={
            ("nowcast" if name == "observed" else name): value
            for name, value in loss.total.items()
        },
        interval_level=loss.interval_level,
        uncertainty=loss.uncertainty,
    )
    logger.info(
        "lost transaction volume over %d months: %.2f (%s)",
        len(months),
        loss.total["loss_median"],
        loss.uncertainty,
    )
    return TransactionsImpact(
        joined=joined,
        regression=regression,
        by_period=by_period,
        loss=loss,
    )


def _serializable_config(config: Mapping[str, Any]) -> dict[str, Any]:
    def _convert(value: Any) -> Any:
        if isinstance(value, Mapping):
            return {key: _convert(item) for key, item in value.items()}
        if isinstance(value, list):
            return [_convert(item) for item in value]
        if isinstance(value, pd.Timestamp):
            return value.strftime("%Y-%m")
        return value

    return _convert(dict(config))


def run_impact_analysis(
    config: Mapping[str, Any] | None = None,
    *,
    arrivals: pd.DataFrame | None = None,
    transactions: pd.DataFrame | None = None,
    include_transactions: bool = True,
) -> ImpactReport:
    """Run both tracks; frames passed in override the configured CSV paths."""

    cfg = validate_impact_config(config)
    if arrivals is None:
        arrivals_series = load_arrivals(
            cfg["data"]["arrivals_path"],
            columns=cfg["data"]["arrivals_columns"],
        )
    elif {"month", "value"}.issubset(arrivals.columns):
        arrivals_series = arrivals
    else:
        arrivals_series = load_arrivals(arrivals, columns=cfg["data"]["arrivals_columns"])
    arrivals_impact = run_arrivals_pipeline(arrivals_series, cfg)

    transactions_impact: TransactionsImpact | None = None
    if include_transactions:
        if transactions is None:
            transactions = load_transactions(
                cfg["data"]["transactions_path"],
                month_column=cfg["data"]["transactions_month_column"],
            )
        elif not {"month", "value"}.issubset(transactions.columns):
            transactions = load_transactions(
                transactions,
                month_column=cfg["data"]["transactions_month_column"],
            )
        transactions_impact = run_transactions_pipeline(
            arrivals_impact.series,
            transactions,
            arrivals_impact,
            cfg,
        )

    return ImpactReport(
        config=_serializable_config(cfg),
        arrivals=arrivals_impact,
        transactions=transactions_impact,
    )
