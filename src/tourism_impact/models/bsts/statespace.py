"""Structural time-series engine backed by statsmodels ``UnobservedComponents``."""

from __future__ import annotations

import inspect
import logging
import warnings
from typing import Any

import numpy as np
import pandas as pd
from statsmodels.tsa.statespace.structural import UnobservedComponents

from tourism_impact.data.validators import ensure_monthly_series
from tourism_impact.errors import ContractViolation
from tourism_impact.models.base import FittedModel, ForecastDistribution

logger = logging.getLogger(__name__)


def _simulation_rng_kwargs(result: Any, rng: np.random.Generator) -> dict[str, Any]:
    """Pass the generator under the keyword the installed statsmodels accepts."""

    parameters = inspect.signature(result.simulate).parameters
    if "random_state" in parameters and "rng" not in parameters:
        return {"random_state": rng}
    return {"rng": rng}


class StateSpaceStructuralModel:
    """Local linear trend + stochastic seasonal + AR(p) state-space model.

    Forecast samples are simulated forward from the filtered state at the end
    of the sample, so they carry state and observation noise but not
    parameter uncertainty.
    """

    engine = "statespace"

    def __init__(
        self,
        *,
        ar_order: int,
        seasonal_period: int = 12,
        n_samples: int = 1000,
        random_seed: int = 42,
        maxiter: int = 500,
    ) -> None:
        if int(ar_order) < 1:
            raise ContractViolation(
                "invalid_model_policy",
                key="model.ar_orders",
                detail="autoregressive order must be >= 1",
            )
        self.ar_order = int(ar_order)
        self.seasonal_period = int(seasonal_period)
        self.n_samples = int(n_samples)
        self.random_seed = int(random_seed)
        self.maxiter = int(maxiter)

    def fit(self, series: pd.DataFrame) -> FittedModel:
        data = ensure_monthly_series(series, key="statespace_input", require_positive=False)
        min_obs = 2 * self.seasonal_period + self.ar_order
        if len(data) < min_obs:
            raise ContractViolation(
                "insufficient_training_data",
                key="statespace_input",
                detail=f"state-space fit requires >= {min_obs} observations; received={len(data)}",
            )
        endog = data["value"].to_numpy(dtype=float)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            model = UnobservedComponents(
                endog,
                level="local linear trend",
                seasonal=self.seasonal_period,
                stochastic_seasonal=True,
                autoregressive=self.ar_order,
            )
            result = model.fit(disp=False, maxiter=self.maxiter)

        retvals = getattr(result, "mle_retvals", None) or {}
        converged = bool(retvals.get("converged", True))
        params = {
            str(name): float(value)
            for name, value in zip(model.param_names, np.asarray(result.params, dtype=float))
        }
        if not converged:
            logger.warning(
                "statespace AR(%d) optimizer did not converge within %d iterations",
                self.ar_order,
                self.maxiter,
            )
        logger.info(
            "fitted statespace AR(%d) on %d months; llf=%.3f",
            self.ar_order,
            len(endog),
            float(result.llf),
        )
        return FittedModel(
            engine=self.engine,
            ar_order=self.ar_order,
            n_obs=int(len(endog)),
            last_month=pd.Timestamp(data["month"].iloc[-1]),
            handle=result,
            params=params,
            converged=converged,
        )

    def forecast(self, fitted: FittedModel, horizon: int) -> ForecastDistribution:
        steps = int(horizon)
        if steps < 1:
            raise ContractViolation(
                "invalid_model_policy",
                key="forecast.horizon",
                detail="horizon must be >= 1",
            )
        result = fitted.handle
        point = np.asarray(result.forecast(steps=steps), dtype=float).reshape(-1)
        rng = np.random.default_rng(self.random_seed)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            # initial states come from the same generator as the shocks
            initial_state = rng.multivariate_normal(
                np.asarray(result.predicted_state[:, -1], dtype=float),
                np.asarray(result.predicted_state_cov[:, :, -1], dtype=float),
                size=self.n_samples,
            ).T
            simulated = result.simulate(
                nsimulations=steps,
                anchor="end",
                repetitions=self.n_samples,
                initial_state=initial_state,
                **_simulation_rng_kwargs(result, rng),
            )
        samples = np.asarray(simulated, dtype=float).reshape(steps, -1).T
        return ForecastDistribution(
            months=fitted.forecast_months(steps),
            point=point,
            samples=samples,
            scale="log",
        )
