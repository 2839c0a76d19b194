"""Model capability contracts shared by the counterfactual engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np
import pandas as pd

from tourism_impact.data.target_transforms import to_natural_scale
from tourism_impact.errors import ContractViolation
from tourism_impact.utils.calendar import month_range, shift_month


@dataclass(frozen=True)
class FittedModel:
    """Opaque handle returned by ``StructuralModel.fit``."""

    engine: str
    ar_order: int
    n_obs: int
    last_month: pd.Timestamp
    handle: Any
    params: dict[str, float] = field(default_factory=dict)
    converged: bool = True

    def forecast_months(self, horizon: int) -> pd.DatetimeIndex:
        return month_range(shift_month(self.last_month, months=1), periods=int(horizon))


@dataclass(frozen=True)
class ForecastDistribution:
    """Sampled forecast trajectories (samples x periods) with a point path."""

    months: pd.DatetimeIndex
    point: np.ndarray
    samples: np.ndarray
    scale: str = "log"

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples, dtype=float)
        point = np.asarray(self.point, dtype=float)
        if samples.ndim != 2 or samples.shape[0] < 1:
            raise ContractViolation(
                "invalid_metric_payload",
                key="forecast.samples",
                detail="samples must be a non-empty (n_samples, horizon) matrix",
            )
        if samples.shape[1] != len(self.months) or point.shape != (len(self.months),):
            raise ContractViolation(
                "invalid_metric_payload",
                key="forecast.months",
                detail=(
                    "samples/point width must match forecast months; "
                    f"samples={samples.shape} point={point.shape} months={len(self.months)}"
                ),
            )
        if not np.isfinite(samples).all():
            raise ContractViolation(
                "invalid_metric_payload",
                key="forecast.samples",
                detail="forecast samples must be finite",
            )

    @property
    def horizon(self) -> int:
        return int(len(self.months))

    @property
    def n_samples(self) -> int:
        return int(np.asarray(self.samples).shape[0])

    def median(self) -> np.ndarray:
        return np.median(np.asarray(self.samples, dtype=float), axis=0)

    def to_natural_scale(self) -> "ForecastDistribution":
        """Exponentiate every sample before any downstream differencing."""

        if self.scale == "natural":
            return self
        return ForecastDistribution(
            months=self.months,
            point=to_natural_scale(self.point),
            samples=to_natural_scale(self.samples),
            scale="natural",
        )

    def to_frame(self) -> pd.DataFrame:
        samples = np.asarray(self.samples, dtype=float)
        return pd.DataFrame(
            {
                "month": self.months,
                "point": np.asarray(self.point, dtype=float),
                "median": np.median(samples, axis=0),
                "lower_95": np.quantile(samples, 0.025, axis=0),
                "upper_95": np.quantile(samples, 0.975, axis=0),
            }
        )


class StructuralModel(Protocol):
    """Swappable time-series technique behind the counterfactual step."""

    engine: str
    ar_order: int

    def fit(self, series: pd.DataFrame) -> FittedModel:
        ...

    def forecast(self, fitted: FittedModel, horizon: int) -> ForecastDistribution:
        ...
