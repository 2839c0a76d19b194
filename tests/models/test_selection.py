from __future__ import annotations

import pandas as pd
import pytest

from tourism_impact.errors import ContractViolation
from tourism_impact.models.selection import select_model_by_metric


def test_selects_lowest_validation_mae() -> None:
    scorecard = pd.DataFrame({"ar_order": [1, 2, 3], "mae": [0.08, 0.05, 0.07]})
    decision = select_model_by_metric(scorecard)
    assert decision.selected_model == 2
    assert decision.selected_metric == pytest.approx(0.05)
    assert decision.reason == "selected_by_mae"


def test_tie_keeps_lower_autoregressive_order() -> None:
    scorecard = pd.DataFrame({"ar_order": [2, 1], "mae": [0.05, 0.05]})
    decision = select_model_by_metric(scorecard)
    assert decision.selected_model == 1
    assert decision.reason == "selected_by_mae:tie_broken_by_ar_order"
    assert isinstance(decision.as_dict()["selected_model"], int)


def test_selection_rejects_non_numeric_metric() -> None:
    scorecard = pd.DataFrame({"ar_order": [1, 2], "mae": ["a", 0.1]})
    with pytest.raises(ContractViolation, match="reason_code=invalid_metric_payload"):
        select_model_by_metric(scorecard)


def test_selection_rejects_empty_scorecard() -> None:
    scorecard = pd.DataFrame({"ar_order": [], "mae": []})
    with pytest.raises(ContractViolation, match="reason_code=invalid_metric_payload"):
        select_model_by_metric(scorecard)
