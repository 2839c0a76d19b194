"""Log-log OLS bridge from arrivals to card-transaction volume."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.api as sm

from tourism_impact.data.target_transforms import to_log_scale
from tourism_impact.data.validators import require_columns
from tourism_impact.errors import ContractViolation
from tourism_impact.utils.calendar import parse_month

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogLogRegression:
    """Fitted ``log(volume) = intercept + slope * log(arrivals)`` line."""

    intercept: float
    slope: float
    r_squared: float
    n_obs: int
    window_start: pd.Timestamp
    window_end: pd.Timestamp

    def predict_log(self, log_arrivals: np.ndarray) -> np.ndarray:
        """Apply the line element-wise; accepts vectors or sample matrices."""

        values = np.asarray(log_arrivals, dtype=float)
        return self.intercept + self.slope * values

    def nowcast(self, arrivals: pd.Series | np.ndarray) -> np.ndarray:
        """Natural-scale volume implied by actually observed arrivals."""

        return np.exp(self.predict_log(to_log_scale(arrivals, key="nowcast_arrivals")))

    def forecast(self, log_arrivals: np.ndarray) -> np.ndarray:
        """Natural-scale volume implied by counterfactual log-arrivals."""

        return np.exp(self.predict_log(log_arrivals))

    def as_dict(self) -> dict[str, object]:
        return {
            "intercept": self.intercept,
            "slope": self.slope,
            "r_squared": self.r_squared,
            "n_obs": self.n_obs,
            "window_start": self.window_start.strftime("%Y-%m"),
            "window_end": self.window_end.strftime("%Y-%m"),
        }


def fit_log_log_regression(
    joined: pd.DataFrame,
    *,
    window_start: object,
    window_end: object,
    arrivals_col: str = "arrivals",
    volume_col: str = "volume",
) -> LogLogRegression:
    """Fit OLS of log(volume) on log(arrivals) over an inclusive month window."""

    require_columns(joined, ("month", arrivals_col, volume_col), key="joined_series")
    start = parse_month(window_start, key="regression.window_start")
    end = parse_month(window_end, key="regression.window_end")
    months = pd.to_datetime(joined["month"])
    window = joined[(months >= start) & (months <= end)]
    if len(window) < 3:
        raise ContractViolation(
            "insufficient_training_data",
            month=start,
            key="regression_window",
            detail=f"regression requires >= 3 joined months in window; received={len(window)}",
        )

    x = to_log_scale(window[arrivals_col], key=arrivals_col)
    y = to_log_scale(window[volume_col], key=volume_col)
    if float(np.ptp(x)) <= 1e-12:
        raise ContractViolation(
            "invalid_value",
            key=arrivals_col,
            detail="log-arrivals are constant over the regression window",
        )
    result = sm.OLS(y, sm.add_constant(x, has_constant="add")).fit()
    intercept, slope = (float(value) for value in np.asarray(result.params, dtype=float))
    regression = LogLogRegression(
        intercept=intercept,
        slope=slope,
        r_squared=float(result.rsquared),
        n_obs=int(len(window)),
        window_start=start,
        window_end=end,
    )
    logger.info(
        "fitted log-log regression on %d months: slope=%.4f r2=%.4f",
        regression.n_obs,
        regression.slope,
        regression.r_squared,
    )
    return regression
