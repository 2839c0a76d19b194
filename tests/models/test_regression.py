from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from tourism_impact.errors import ContractViolation
from tourism_impact.models.regression import fit_log_log_regression


def _joined(intercept: float = 1.5, slope: float = 0.7) -> pd.DataFrame:
    months = pd.date_range("2017-01-01", "2020-08-01", freq="MS")
    arrivals = np.exp(10.0 + 0.5 * np.sin(np.arange(len(months)) / 2.0))
    volume = np.exp(intercept + slope * np.log(arrivals))
    return pd.DataFrame({"month": months, "arrivals": arrivals, "volume": volume})


def test_regression_recovers_exact_log_log_line() -> None:
    regression = fit_log_log_regression(
        _joined(), window_start="2017-01-01", window_end="2020-02-01"
    )
    assert regression.slope == pytest.approx(0.7, abs=1e-8)
    assert regression.intercept == pytest.approx(1.5, abs=1e-6)
    assert regression.r_squared == pytest.approx(1.0)
    assert regression.n_obs == 38
    assert regression.as_dict()["window_end"] == "2020-02"


def test_window_is_inclusive_and_excludes_later_months() -> None:
    joined = _joined()
    # a pandemic-era outlier after the window must not move the line
    joined.loc[joined["month"] >= "2020-03-01", "volume"] = 1.0
    regression = fit_log_log_regression(
        joined, window_start="2019-01-01", window_end="2020-02-01"
    )
    assert regression.n_obs == 14
    assert regression.slope == pytest.approx(0.7, abs=1e-8)


def test_nowcast_and_forecast_agree_on_identical_arrivals() -> None:
    regression = fit_log_log_regression(
        _joined(), window_start="2017-01-01", window_end="2020-02-01"
    )
    arrivals = np.array([20000.0, 25000.0, 30000.0])
    nowcast = regression.nowcast(arrivals)
    forecast = regression.forecast(np.log(arrivals))
    assert np.allclose(nowcast - forecast, 0.0)
    assert nowcast[0] == pytest.approx(np.exp(1.5) * 20000.0**0.7)


def test_forecast_applies_line_to_sample_matrices() -> None:
    regression = fit_log_log_regression(
        _joined(), window_start="2017-01-01", window_end="2020-02-01"
    )
    samples = np.log(np.full((5, 3), 1000.0))
    assert regression.forecast(samples).shape == (5, 3)


def test_regression_requires_enough_window_months() -> None:
    with pytest.raises(ContractViolation, match="reason_code=insufficient_training_data"):
        fit_log_log_regression(_joined(), window_start="2020-01-01", window_end="2020-02-01")


def test_regression_rejects_constant_arrivals() -> None:
    joined = _joined()
    joined["arrivals"] = 5000.0
    with pytest.raises(ContractViolation, match="reason_code=invalid_value"):
        fit_log_log_regression(joined, window_start="2017-01-01", window_end="2020-02-01")
