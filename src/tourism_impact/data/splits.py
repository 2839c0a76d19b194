"""Date-based train/validation/test partitioning of monthly series."""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from tourism_impact.data.validators import ensure_monthly_series
from tourism_impact.errors import ContractViolation
from tourism_impact.utils.calendar import parse_month


@dataclass(frozen=True)
class SeriesSplit:
    """Contiguous, non-overlapping partitions of one monthly series."""

    train: pd.DataFrame
    validation: pd.DataFrame
    test: pd.DataFrame

    @property
    def history(self) -> pd.DataFrame:
        """Training and validation months concatenated in order."""

        return pd.concat([self.train, self.validation], ignore_index=True)

    def combined(self) -> pd.DataFrame:
        """Reconstruct the full series from its partitions."""

        return pd.concat([self.train, self.validation, self.test], ignore_index=True)

    def as_dict(self) -> dict[str, object]:
        def _bounds(frame: pd.DataFrame) -> dict[str, object]:
            if frame.empty:
                return {"rows": 0, "first_month": None, "last_month": None}
            return {
                "rows": int(len(frame)),
                "first_month": frame["month"].iloc[0].strftime("%Y-%m"),
                "last_month": frame["month"].iloc[-1].strftime("%Y-%m"),
            }

        return {
            "train": _bounds(self.train),
            "validation": _bounds(self.validation),
            "test": _bounds(self.test),
        }


def split_series(
    frame: pd.DataFrame,
    *,
    validation_start: object,
    test_start: object,
    min_train: int = 24,
) -> SeriesSplit:
    """Split a monthly series at two cutoff months.

    ``train`` holds months before ``validation_start``, ``validation`` months
    from ``validation_start`` up to (excluding) ``test_start`` and ``test``
    every month from ``test_start`` onward.
    """

    series = ensure_monthly_series(frame, key="split_input")
    validation_month = parse_month(validation_start, key="validation_start")
    test_month = parse_month(test_start, key="test_start")
    if validation_month >= test_month:
        raise ContractViolation(
            "invalid_model_policy",
            key="split",
            detail="validation_start must precede test_start",
        )

    train = series[series["month"] < validation_month].reset_index(drop=True)
    validation = series[
        (series["month"] >= validation_month) & (series["month"] < test_month)
    ].reset_index(drop=True)
    test = series[series["month"] >= test_month].reset_index(drop=True)

    if len(train) < int(min_train):
        raise ContractViolation(
            "insufficient_training_data",
            month=validation_month,
            key="split.train",
            detail=f"training partition requires >= {int(min_train)} months; received={len(train)}",
        )
    if validation.empty:
        raise ContractViolation(
            "insufficient_training_data",
            month=validation_month,
            key="split.validation",
            detail="validation partition is empty",
        )
    return SeriesSplit(train=train, validation=validation, test=test)
