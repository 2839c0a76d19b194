from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from tourism_impact.errors import ContractViolation
from tourism_impact.models.base import ForecastDistribution

MONTHS = pd.date_range("2020-03-01", periods=2, freq="MS")


def test_to_natural_scale_exponentiates_point_and_samples() -> None:
    distribution = ForecastDistribution(
        months=MONTHS,
        point=np.log([100.0, 200.0]),
        samples=np.log([[90.0, 180.0], [110.0, 220.0]]),
    )
    natural = distribution.to_natural_scale()

    assert natural.scale == "natural"
    assert np.allclose(natural.point, [100.0, 200.0])
    assert np.allclose(natural.samples, [[90.0, 180.0], [110.0, 220.0]])
    assert natural.to_natural_scale() is natural


def test_forecast_frame_reports_median_and_band() -> None:
    distribution = ForecastDistribution(
        months=MONTHS,
        point=np.array([1.0, 2.0]),
        samples=np.array([[0.0, 1.0], [1.0, 2.0], [2.0, 3.0]]),
    )
    frame = distribution.to_frame()
    assert list(frame.columns) == ["month", "point", "median", "lower_95", "upper_95"]
    assert frame["median"].tolist() == [1.0, 2.0]
    assert (frame["lower_95"] <= frame["median"]).all()


def test_distribution_rejects_width_mismatch() -> None:
    with pytest.raises(ContractViolation, match="reason_code=invalid_metric_payload"):
        ForecastDistribution(
            months=MONTHS,
            point=np.array([1.0, 2.0]),
            samples=np.ones((3, 3)),
        )
