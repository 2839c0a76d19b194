"""Validation-window model selection between counterfactual candidates."""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from tourism_impact.data.validators import require_columns
from tourism_impact.errors import ContractViolation


@dataclass(frozen=True)
class SelectionDecision:
    """Selection outcome for a candidate scoreboard."""

    selected_model: object
    selected_metric: float
    metric_name: str
    reason: str

    def as_dict(self) -> dict[str, object]:
        return {
            "selected_model": self.selected_model,
            "selected_metric": self.selected_metric,
            "metric_name": self.metric_name,
            "reason": self.reason,
        }


def select_model_by_metric(
    metrics_frame: pd.DataFrame,
    *,
    model_col: str = "ar_order",
    metric_col: str = "mae",
    maximize: bool = False,
) -> SelectionDecision:
    """Select a candidate from a metric scoreboard.

    Ties on the metric resolve to the smallest ``model_col`` value, so equal
    validation errors keep the more parsimonious autoregressive order.
    """

    require_columns(metrics_frame, (model_col, metric_col), key="metrics_frame")
    if metrics_frame.empty:
        raise ContractViolation(
            "invalid_metric_payload",
            key="metrics_frame",
            detail="selection requires at least one scored candidate",
        )

    score = metrics_frame[[model_col, metric_col]].copy()
    score[metric_col] = pd.to_numeric(score[metric_col], errors="coerce")
    if score[metric_col].isna().any():
        raise ContractViolation(
            "invalid_metric_payload",
            key=metric_col,
            detail="metric values must be numeric",
        )

    score = score.sort_values(
        [metric_col, model_col], ascending=[not maximize, True]
    ).reset_index(drop=True)
    best_metric = float(score[metric_col].iloc[0])
    tied = int((score[metric_col] == best_metric).sum())
    reason = f"selected_by_{metric_col}"
    if tied > 1:
        reason = f"{reason}:tie_broken_by_{model_col}"
    selected = score[model_col].iloc[0]
    if hasattr(selected, "item"):
        selected = selected.item()
    return SelectionDecision(
        selected_model=selected,
        selected_metric=best_metric,
        metric_name=metric_col,
        reason=reason,
    )
