from __future__ import annotations

import pandas as pd
import pytest

from tests.helpers.synthetic_tourism import synthetic_arrivals
from tourism_impact.data.splits import split_series
from tourism_impact.errors import ContractViolation


def test_split_partitions_are_contiguous_disjoint_and_exhaustive() -> None:
    series = synthetic_arrivals()
    split = split_series(series, validation_start="2019-03-01", test_start="2020-03-01")

    assert split.train["month"].max() < split.validation["month"].min()
    assert split.validation["month"].max() < split.test["month"].min()
    assert split.train["month"].iloc[-1] == pd.Timestamp("2019-02-01")
    assert split.validation["month"].iloc[0] == pd.Timestamp("2019-03-01")
    assert split.test["month"].iloc[0] == pd.Timestamp("2020-03-01")
    assert len(split.validation) == 12
    assert len(split.test) == 6

    combined = split.combined()
    assert len(combined) == len(series)
    assert (combined["month"].to_numpy() == series["month"].to_numpy()).all()
    assert len(split.history) == len(split.train) + len(split.validation)


def test_split_summary_reports_bounds() -> None:
    split = split_series(
        synthetic_arrivals(), validation_start="2019-03-01", test_start="2020-03-01"
    )
    summary = split.as_dict()
    assert summary["validation"] == {
        "rows": 12,
        "first_month": "2019-03",
        "last_month": "2020-02",
    }
    assert summary["test"]["last_month"] == "2020-08"


def test_split_rejects_short_training_history() -> None:
    series = synthetic_arrivals(start="2018-01-01")
    with pytest.raises(ContractViolation, match="reason_code=insufficient_training_data"):
        split_series(series, validation_start="2019-03-01", test_start="2020-03-01")


def test_split_rejects_inverted_cutoffs() -> None:
    with pytest.raises(ContractViolation, match="reason_code=invalid_model_policy"):
        split_series(
            synthetic_arrivals(),
            validation_start="2020-03-01",
            test_start="2019-03-01",
        )
