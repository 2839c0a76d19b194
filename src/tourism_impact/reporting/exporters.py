"""Artifact exporters for impact runs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import pandas as pd

from tourism_impact.data.validators import require_columns
from tourism_impact.errors import ContractViolation
from tourism_impact.pipeline import ImpactReport


def _ensure_output_dir(path: str | Path) -> Path:
    output_dir = Path(path)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def _write_json(path: Path, payload: Mapping[str, Any]) -> Path:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(dict(payload), handle, sort_keys=True, indent=2, default=str)
    return path


def _write_monthly_csv(frame: pd.DataFrame, path: Path) -> Path:
    require_columns(frame, ("month",), key=path.name)
    data = frame.copy()
    data["month"] = pd.to_datetime(data["month"]).dt.strftime("%Y-%m")
    data.sort_values("month").reset_index(drop=True).to_csv(path, index=False)
    return path


def export_impact_report(
    report: ImpactReport,
    output_dir: str | Path,
) -> dict[str, Path]:
    """Write per-track CSV/JSON artifacts plus the full run summary."""

    base = _ensure_output_dir(output_dir)
    arrivals = report.arrivals
    paths: dict[str, Path] = {}

    paths["arrivals_history"] = _write_monthly_csv(
        arrivals.series[["month", "value"]],
        base / "arrivals_history.csv",
    )
    paths["arrivals_model_selection"] = base / "arrivals_model_selection.csv"
    arrivals.counterfactual.scorecard.sort_values("ar_order").to_csv(
        paths["arrivals_model_selection"],
        index=False,
    )
    paths["arrivals_forecast"] = _write_monthly_csv(
        arrivals.counterfactual.distribution.to_natural_scale().to_frame(),
        base / "arrivals_forecast.csv",
    )
    paths["arrivals_loss_by_month"] = _write_monthly_csv(
        arrivals.loss.by_period,
        base / "arrivals_loss_by_month.csv",
    )
    paths["arrivals_loss_summary"] = _write_json(
        base / "arrivals_loss_summary.json",
        {
            "interval_level": arrivals.loss.interval_level,
            "uncertainty": arrivals.loss.uncertainty,
            "total": arrivals.loss.total,
            "model": arrivals.counterfactual.diagnostics,
        },
    )

    transactions = report.transactions
    if transactions is not None:
        paths["transactions_by_month"] = _write_monthly_csv(
            transactions.by_period,
            base / "transactions_by_month.csv",
        )
        paths["transactions_loss_by_month"] = _write_monthly_csv(
            transactions.loss.by_period,
            base / "transactions_loss_by_month.csv",
        )
        paths["transactions_loss_summary"] = _write_json(
            base / "transactions_loss_summary.json",
            {
                "interval_level": transactions.loss.interval_level,
                "uncertainty": transactions.loss.uncertainty,
                "total": transactions.loss.total,
            },
        )
        paths["regression_summary"] = _write_json(
            base / "regression_summary.json",
            transactions.regression.as_dict(),
        )

    paths["impact_report"] = _write_json(base / "impact_report.json", report.as_dict())
    return paths


def load_impact_summary(output_dir: str | Path) -> dict[str, Any]:
    """Read back the run summary written by ``export_impact_report``."""

    path = Path(output_dir) / "impact_report.json"
    if not path.exists():
        raise ContractViolation(
            "missing_source_file",
            key=str(path),
            detail="expected impact_report.json in report root",
        )
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ContractViolation(
            "invalid_report_payload",
            key=str(path),
            detail="impact report must be a JSON object",
        )
    return payload
