from __future__ import annotations

import importlib
import importlib.util
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from tests.helpers.synthetic_tourism import synthetic_arrivals
from tourism_impact.errors import ContractViolation
from tourism_impact.models.base import FittedModel
from tourism_impact.models.bsts import PyMCStructuralModel

_HAS_PYMC = importlib.util.find_spec("pymc") is not None


def _isolate_caches(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("PYTENSOR_FLAGS", f"base_compiledir={tmp_path / 'pytensor'}")


def _flat_posterior(draws: int, *, ar_order: int = 2) -> dict[str, object]:
    return {
        "level": np.ones(draws),
        "slope": np.zeros(draws),
        "seasonal": np.zeros((draws, 12)),
        "rho": np.zeros((draws, ar_order)),
        "ar_tail": np.zeros((draws, ar_order)),
        "sigma_level": np.zeros(draws),
        "sigma_slope": np.zeros(draws),
        "sigma_ar": np.zeros(draws),
        "sigma": np.zeros(draws),
        "nu": np.full(draws, 5.0),
        "center": 10.0,
        "scale": 2.0,
        "n_obs": 60,
    }


def _fitted(handle: dict[str, object], *, ar_order: int = 2) -> FittedModel:
    return FittedModel(
        engine="pymc",
        ar_order=ar_order,
        n_obs=60,
        last_month=pd.Timestamp("2020-02-01"),
        handle=handle,
    )


def test_pymc_engine_reports_missing_dependency(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    _isolate_caches(monkeypatch, tmp_path)
    real_import = importlib.import_module

    def _fake_import(name: str, *args: object, **kwargs: object):
        if name in {"pymc", "arviz"}:
            raise ImportError(f"No module named {name}")
        return real_import(name, *args, **kwargs)

    monkeypatch.setattr(importlib, "import_module", _fake_import)
    series = synthetic_arrivals(end="2019-02-01")
    with pytest.raises(ContractViolation, match="reason_code=missing_dependency"):
        PyMCStructuralModel(ar_order=1).fit(series)


def test_pymc_forecast_rolls_posterior_state_forward() -> None:
    model = PyMCStructuralModel(ar_order=2, n_samples=50, random_seed=3)
    distribution = model.forecast(_fitted(_flat_posterior(20)), 4)

    assert distribution.samples.shape == (50, 4)
    assert distribution.months[0] == pd.Timestamp("2020-03-01")
    # level 1 on the standardized scale maps back to center + scale
    assert np.allclose(distribution.samples, 12.0, atol=1e-3)


def test_pymc_forecast_applies_ar_recursion() -> None:
    posterior = _flat_posterior(10, ar_order=1)
    posterior["level"] = np.zeros(10)
    posterior["rho"] = np.full((10, 1), 0.5)
    posterior["ar_tail"] = np.full((10, 1), 1.0)
    model = PyMCStructuralModel(ar_order=1, n_samples=10, random_seed=1)
    distribution = model.forecast(_fitted(posterior, ar_order=1), 3)

    expected = 10.0 + 2.0 * np.array([0.5, 0.25, 0.125])
    assert np.allclose(distribution.median(), expected, atol=1e-3)


def test_pymc_forecast_is_seed_reproducible() -> None:
    posterior = _flat_posterior(30)
    posterior["sigma"] = np.full(30, 0.1)
    fitted = _fitted(posterior)
    first = PyMCStructuralModel(ar_order=2, n_samples=40, random_seed=9).forecast(fitted, 3)
    second = PyMCStructuralModel(ar_order=2, n_samples=40, random_seed=9).forecast(fitted, 3)
    assert np.array_equal(first.samples, second.samples)


@pytest.mark.skipif(not _HAS_PYMC, reason="pymc is not installed")
def test_pymc_engine_samples_posterior_predictive(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    _isolate_caches(monkeypatch, tmp_path)
    series = synthetic_arrivals(start="2015-01-01", end="2019-02-01")
    series = series.assign(value=np.log(series["value"]))
    model = PyMCStructuralModel(
        ar_order=1,
        n_samples=100,
        random_seed=4,
        draws=100,
        tune=100,
        chains=1,
    )
    fitted = model.fit(series)
    distribution = model.forecast(fitted, 3)

    assert fitted.params["scale"] > 0
    assert distribution.samples.shape == (100, 3)
    assert np.isfinite(distribution.samples).all()
