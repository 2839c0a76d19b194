"""PyMC-backed Bayesian structural time-series engine."""

from __future__ import annotations

import importlib
import logging
import os
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from tourism_impact.data.validators import ensure_monthly_series
from tourism_impact.errors import ContractViolation
from tourism_impact.models.base import FittedModel, ForecastDistribution

logger = logging.getLogger(__name__)

repo_root = Path(__file__).resolve().parents[4]


def _configure_cache_dirs() -> None:
    # ArviZ and PyTensor default to user-home caches that may be read-only.
    if "XDG_CACHE_HOME" not in os.environ:
        cache_root = repo_root / ".cache"
        cache_root.mkdir(parents=True, exist_ok=True)
        os.environ["XDG_CACHE_HOME"] = str(cache_root)
    flags = os.environ.get("PYTENSOR_FLAGS", "").strip()
    if "base_compiledir=" not in flags:
        pytensor_root = repo_root / ".pytensor"
        pytensor_root.mkdir(parents=True, exist_ok=True)
        entry = f"base_compiledir={pytensor_root}"
        os.environ["PYTENSOR_FLAGS"] = f"{flags},{entry}" if flags else entry


def _load_backend() -> tuple[Any, Any]:
    _configure_cache_dirs()
    try:
        az = importlib.import_module("arviz")
        pm = importlib.import_module("pymc")
    except ImportError as exc:
        raise ContractViolation(
            "missing_dependency",
            key="pymc",
            detail=(
                "PyMC engine requested but pymc/arviz are not installed; "
                "install the 'bayes' extra or switch model.engine to statespace"
            ),
        ) from exc
    return az, pm


class PyMCStructuralModel:
    """Bayesian level/slope random walks, monthly seasonal effects and AR(p) noise.

    Fitting draws the posterior with NUTS; forecasting rolls every retained
    posterior draw forward with fresh state and Student-t observation noise,
    so the sample matrix is a posterior-predictive distribution.
    """

    engine = "pymc"

    def __init__(
        self,
        *,
        ar_order: int,
        seasonal_period: int = 12,
        n_samples: int = 1000,
        random_seed: int = 42,
        draws: int = 500,
        tune: int = 500,
        chains: int = 2,
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
        self.draws = int(draws)
        self.tune = int(tune)
        self.chains = int(chains)

    def fit(self, series: pd.DataFrame) -> FittedModel:
        _, pm = _load_backend()
        data = ensure_monthly_series(series, key="pymc_input", require_positive=False)
        if len(data) < 24:
            raise ContractViolation(
                "insufficient_training_data",
                key="pymc_input",
                detail="PyMC structural engine requires at least 24 observations",
            )
        y = data["value"].to_numpy(dtype=float)
        n_obs = int(len(y))
        mean = float(np.mean(y))
        std = float(np.std(y))
        if std <= 1e-12:
            std = 1.0
        y_scaled = (y - mean) / std
        x = np.arange(n_obs, dtype=float)
        season_idx = np.arange(n_obs, dtype=int) % self.seasonal_period
        p = self.ar_order

        with pm.Model():
            sigma_level = pm.HalfNormal("sigma_level", sigma=0.25)
            sigma_slope = pm.HalfNormal("sigma_slope", sigma=0.1)
            level = pm.GaussianRandomWalk(
                "level",
                sigma=sigma_level,
                init_dist=pm.Normal.dist(0.0, 1.0),
                shape=n_obs,
            )
            slope = pm.GaussianRandomWalk(
                "slope",
                sigma=sigma_slope,
                init_dist=pm.Normal.dist(0.0, 0.1),
                shape=n_obs,
            )
            seasonal = pm.ZeroSumNormal(
                "seasonal", sigma=0.5, shape=self.seasonal_period
            )
            rho = pm.Normal("rho", mu=0.0, sigma=0.5, shape=p)
            sigma_ar = pm.HalfNormal("sigma_ar", sigma=0.2)
            ar_state = pm.AR(
                "ar_state",
                rho=rho,
                sigma=sigma_ar,
                ar_order=p,
                init_dist=pm.Normal.dist(0.0, 0.2),
                shape=n_obs,
            )
            sigma = pm.HalfNormal("sigma", sigma=0.5)
            nu = pm.Exponential("nu_minus_two", lam=1.0) + 2.0
            mu = level + slope * x + seasonal[season_idx] + ar_state
            pm.StudentT("y_obs", nu=nu, mu=mu, sigma=sigma, observed=y_scaled)
            idata = pm.sample(
                draws=self.draws,
                tune=self.tune,
                chains=self.chains,
                cores=1,
                target_accept=0.9,
                progressbar=False,
                return_inferencedata=True,
                random_seed=self.random_seed,
            )

        posterior = idata.posterior
        handle = {
            "level": posterior["level"].values.reshape(-1, n_obs)[:, -1],
            "slope": posterior["slope"].values.reshape(-1, n_obs)[:, -1],
            "seasonal": posterior["seasonal"].values.reshape(-1, self.seasonal_period),
            "rho": posterior["rho"].values.reshape(-1, p),
            "ar_tail": posterior["ar_state"].values.reshape(-1, n_obs)[:, -p:],
            "sigma_level": posterior["sigma_level"].values.reshape(-1),
            "sigma_slope": posterior["sigma_slope"].values.reshape(-1),
            "sigma_ar": posterior["sigma_ar"].values.reshape(-1),
            "sigma": posterior["sigma"].values.reshape(-1),
            "nu": posterior["nu_minus_two"].values.reshape(-1) + 2.0,
            "center": mean,
            "scale": std,
            "n_obs": n_obs,
            "idata": idata,
        }
        params = {
            "center": mean,
            "scale": std,
            "sigma_mean": float(np.mean(handle["sigma"]) * std),
            "nu_mean": float(np.mean(handle["nu"])),
            **{f"rho_{idx + 1}": float(np.mean(handle["rho"][:, idx])) for idx in range(p)},
        }
        logger.info(
            "sampled pymc AR(%d) posterior: %d draws x %d chains on %d months",
            p,
            self.draws,
            self.chains,
            n_obs,
        )
        return FittedModel(
            engine=self.engine,
            ar_order=p,
            n_obs=n_obs,
            last_month=pd.Timestamp(data["month"].iloc[-1]),
            handle=handle,
            params=params,
        )

    def forecast(self, fitted: FittedModel, horizon: int) -> ForecastDistribution:
        steps = int(horizon)
        if steps < 1:
            raise ContractViolation(
                "invalid_model_policy",
                key="forecast.horizon",
                detail="horizon must be >= 1",
            )
        state = fitted.handle
        rng = np.random.default_rng(self.random_seed)
        total_draws = int(len(state["sigma"]))
        picks = rng.choice(
            total_draws,
            size=self.n_samples,
            replace=self.n_samples > total_draws,
        )

        level = state["level"][picks].copy()
        slope = state["slope"][picks].copy()
        seasonal = state["seasonal"][picks]
        rho = state["rho"][picks]
        ar_hist = state["ar_tail"][picks].copy()
        sigma_level = state["sigma_level"][picks]
        sigma_slope = state["sigma_slope"][picks]
        sigma_ar = state["sigma_ar"][picks]
        sigma = np.maximum(state["sigma"][picks], 1e-6)
        nu = np.maximum(state["nu"][picks], 2.01)
        n_obs = int(state["n_obs"])

        samples = np.empty((self.n_samples, steps), dtype=float)
        for step in range(1, steps + 1):
            level = level + rng.normal(0.0, sigma_level)
            slope = slope + rng.normal(0.0, sigma_slope)
            # rho[:, j] multiplies the value j+1 periods back
            ar_next = (rho * ar_hist[:, ::-1]).sum(axis=1) + rng.normal(0.0, sigma_ar)
            ar_hist = np.concatenate([ar_hist[:, 1:], ar_next[:, None]], axis=1)
            season = seasonal[:, (n_obs - 1 + step) % self.seasonal_period]
            mu = level + slope * float(n_obs - 1 + step) + season + ar_next
            samples[:, step - 1] = mu + rng.standard_t(df=nu) * sigma

        samples = samples * float(state["scale"]) + float(state["center"])
        return ForecastDistribution(
            months=fitted.forecast_months(steps),
            point=np.mean(samples, axis=0),
            samples=samples,
            scale="log",
        )
