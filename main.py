#!/usr/bin/env python3
"""Estimate lost international arrivals and card-transaction volume for Georgia."""

# ruff: noqa: E402

from __future__ import annotations

import argparse
from dataclasses import asdict
import json
import logging
from pathlib import Path
import sys
from typing import Any

ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tourism_impact.config import load_impact_config
from tourism_impact.errors import ContractViolation
from tourism_impact.pipeline import run_impact_analysis
from tourism_impact.reporting.exporters import export_impact_report

logger = logging.getLogger("tourism_impact")

DEFAULT_CONFIG_PATH = ROOT / "configs" / "impact.yaml"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        default=None,
        help="YAML run configuration (default: configs/impact.yaml when present).",
    )
    parser.add_argument(
        "--arrivals",
        default=None,
        help="Arrivals CSV (year, month, trips); overrides data.arrivals_path.",
    )
    parser.add_argument(
        "--transactions",
        default=None,
        help="Wide month-by-year transactions CSV; overrides data.transactions_path.",
    )
    parser.add_argument(
        "--report-root",
        default=None,
        help="Output report directory; overrides report.root.",
    )
    parser.add_argument(
        "--engine",
        choices=["statespace", "pymc"],
        default=None,
        help="Counterfactual model engine; overrides model.engine.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for forecast sampling; overrides model.random_seed.",
    )
    parser.add_argument(
        "--skip-transactions",
        action="store_true",
        help="Run only the arrivals track.",
    )
    parser.add_argument(
        "--charts",
        action="store_true",
        help="Render Plotly charts under <report-root>/charts.",
    )
    parser.add_argument(
        "--png",
        action="store_true",
        help="Also write PNG charts (requires kaleido).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level.",
    )
    return parser


def _overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.arrivals is not None:
        overrides.setdefault("data", {})["arrivals_path"] = args.arrivals
    if args.transactions is not None:
        overrides.setdefault("data", {})["transactions_path"] = args.transactions
    if args.report_root is not None:
        overrides.setdefault("report", {})["root"] = args.report_root
    if args.engine is not None:
        overrides.setdefault("model", {})["engine"] = args.engine
    if args.seed is not None:
        overrides.setdefault("model", {})["random_seed"] = int(args.seed)
    if args.charts:
        overrides.setdefault("report", {})["charts"] = True
    if args.png:
        overrides.setdefault("report", {})["png"] = True
    return overrides


def _resolve_config_path(value: str | None) -> Path | None:
    if value is not None:
        return Path(value)
    return DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = load_impact_config(
            _resolve_config_path(args.config),
            overrides=_overrides_from_args(args),
        )
        report = run_impact_analysis(
            cfg,
            include_transactions=not args.skip_transactions,
        )
        paths = export_impact_report(report, cfg["report"]["root"])
    except ContractViolation as exc:
        logger.error("impact run failed: %s", exc)
        print(json.dumps({"error": str(exc), **asdict(exc.context)}, default=str, sort_keys=True))
        return 2

    charts: dict[str, Any] | None = None
    if cfg["report"]["charts"]:
        from ops.viz.generate_impact_charts import generate_impact_charts

        charts = generate_impact_charts(
            report_root=cfg["report"]["root"],
            write_png=bool(cfg["report"]["png"]),
        )

    arrivals_total = report.arrivals.loss.total
    summary: dict[str, Any] = {
        "report_root": str(cfg["report"]["root"]),
        "artifacts": len(paths),
        "selected_ar_order": int(report.arrivals.counterfactual.fitted.ar_order),
        "lost_arrivals": {
            "median": arrivals_total["loss_median"],
            "lower": arrivals_total["loss_lower"],
            "upper": arrivals_total["loss_upper"],
        },
        "charts_enabled": charts is not None,
    }
    if report.transactions is not None:
        summary["lost_transaction_volume"] = report.transactions.loss.total["loss_median"]

    print(f"Impact run complete; artifacts in {cfg['report']['root']}")
    print(json.dumps(summary, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
