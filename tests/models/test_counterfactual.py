from __future__ import annotations

import pandas as pd
import pytest

from tests.helpers.synthetic_tourism import synthetic_arrivals
from tourism_impact.config import validate_impact_config
from tourism_impact.data.splits import split_series
from tourism_impact.errors import ContractViolation
from tourism_impact.models.bsts import PyMCStructuralModel, StateSpaceStructuralModel
from tourism_impact.models.counterfactual import (
    build_structural_model,
    run_counterfactual_forecast,
    score_candidates,
)


def _split():
    return split_series(
        synthetic_arrivals(), validation_start="2019-03-01", test_start="2020-03-01"
    )


def _model_cfg(**overrides: object) -> dict[str, object]:
    return validate_impact_config({"model": {"n_samples": 200, **overrides}})["model"]


def test_build_structural_model_dispatches_engine() -> None:
    assert isinstance(build_structural_model(_model_cfg(), ar_order=2), StateSpaceStructuralModel)
    pymc_model = build_structural_model(_model_cfg(engine="pymc"), ar_order=1)
    assert isinstance(pymc_model, PyMCStructuralModel)
    assert pymc_model.draws == 500
    with pytest.raises(ContractViolation, match="reason_code=invalid_model_policy"):
        build_structural_model({"engine": "prophet"}, ar_order=1)


def test_score_candidates_scores_every_order_on_validation() -> None:
    scorecard = score_candidates(_split(), _model_cfg(ar_orders=[1, 2, 3]))
    assert scorecard["ar_order"].tolist() == [1, 2, 3]
    assert scorecard["n_obs"].tolist() == [12, 12, 12]
    assert scorecard["converged"].dtype == bool
    assert (scorecard["mae"] >= 0).all()
    assert (scorecard["rmse"] >= scorecard["mae"]).all()


def test_counterfactual_selects_refits_and_forecasts_test_window() -> None:
    result = run_counterfactual_forecast(_split(), _model_cfg(), horizon=6)

    scorecard = result.scorecard
    assert int(scorecard["selected"].sum()) == 1
    best = scorecard.sort_values(["mae", "ar_order"]).iloc[0]
    assert int(scorecard.loc[scorecard["selected"], "ar_order"].iloc[0]) == int(best["ar_order"])
    assert result.fitted.ar_order == result.selection.selected_model

    # refit covers train + validation
    assert result.fitted.n_obs == 98
    assert result.fitted.last_month == pd.Timestamp("2020-02-01")
    assert result.distribution.scale == "log"
    assert result.distribution.samples.shape == (200, 6)
    assert result.distribution.months[0] == pd.Timestamp("2020-03-01")
    assert result.diagnostics["candidate_ar_orders"] == [1, 2]
    assert isinstance(result.diagnostics["converged"], bool)
    assert result.diagnostics["selected_ar_order"] == result.fitted.ar_order


def test_counterfactual_rejects_non_positive_horizon() -> None:
    with pytest.raises(ContractViolation, match="reason_code=invalid_model_policy"):
        run_counterfactual_forecast(_split(), _model_cfg(), horizon=0)
