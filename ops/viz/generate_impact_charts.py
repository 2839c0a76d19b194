#!/usr/bin/env python3
"""Generate Plotly charts for impact run artifacts using the Coconut palette."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any

import pandas as pd
import pypalettes  # type: ignore[import-untyped]
import plotly.graph_objects as go  # type: ignore[import-untyped]


def _load_coconut_palette(*, min_len: int = 6) -> list[str]:
    raw = pypalettes.load_palette("Coconut", keep_first_n=6)
    base = [str(color)[:7] for color in raw]
    if len(base) >= min_len:
        return base[:min_len]
    repeats = (min_len + len(base) - 1) // len(base)
    return (base * repeats)[:min_len]


_COCONUT_COLORS = _load_coconut_palette()


def _ensure_dir(path: str | Path) -> Path:
    resolved = Path(path)
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved


def _load_monthly_csv(path: Path) -> pd.DataFrame:
    if not path.exists():
        return pd.DataFrame()
    frame = pd.read_csv(path)
    if "month" in frame.columns:
        frame["month"] = pd.to_datetime(frame["month"], errors="coerce")
        frame = frame.dropna(subset=["month"]).sort_values("month")
    return frame.reset_index(drop=True)


def _rgba(hex_color: str, alpha: float) -> str:
    value = hex_color.lstrip("#")
    red, green, blue = (int(value[idx : idx + 2], 16) for idx in (0, 2, 4))
    return f"rgba({red},{green},{blue},{alpha})"


def _empty_annotation(fig: go.Figure, text: str) -> None:
    fig.add_annotation(
        text=text,
        xref="paper",
        yref="paper",
        x=0.5,
        y=0.5,
        showarrow=False,
        font={"size": 16},
    )


def _write_figure(
    fig: go.Figure,
    output_path: Path,
    *,
    title: str,
    x_title: str,
    y_title: str,
    write_png: bool = False,
) -> list[Path]:
    fig.update_layout(
        colorway=_COCONUT_COLORS,
        template="plotly_white",
        title={"text": title, "x": 0.02},
        hovermode="x unified",
        xaxis_title=x_title,
        yaxis_title=y_title,
        legend={
            "orientation": "h",
            "yanchor": "bottom",
            "y": 1.02,
            "x": 0.0,
            "traceorder": "normal",
        },
        margin={"l": 70, "r": 30, "t": 70, "b": 60},
    )
    fig.update_xaxes(showgrid=True, gridcolor="#e5e7eb")
    fig.update_yaxes(showgrid=True, gridcolor="#e5e7eb")
    fig.write_html(
        output_path,
        include_plotlyjs="cdn",
        full_html=True,
        div_id=output_path.stem,
    )
    written = [output_path]
    if write_png:
        png_path = output_path.with_suffix(".png")
        fig.write_image(png_path, format="png", scale=2, width=1600, height=900)
        written.append(png_path)
    return written


def _plot_arrivals_counterfactual(
    history: pd.DataFrame,
    forecast: pd.DataFrame,
    output_path: Path,
    *,
    write_png: bool,
) -> list[Path]:
    fig = go.Figure()
    if history.empty or forecast.empty:
        _empty_annotation(fig, "No arrivals forecast available")
    else:
        band_color = _COCONUT_COLORS[1]
        fig.add_trace(
            go.Scatter(
                x=history["month"],
                y=history["value"],
                mode="lines",
                name="Actual arrivals",
                line={"width": 2.0, "color": _COCONUT_COLORS[0]},
            )
        )
        fig.add_trace(
            go.Scatter(
                x=pd.concat([forecast["month"], forecast["month"][::-1]]),
                y=pd.concat([forecast["upper_95"], forecast["lower_95"][::-1]]),
                fill="toself",
                fillcolor=_rgba(band_color, 0.2),
                line={"width": 0},
                hoverinfo="skip",
                name="95% interval",
            )
        )
        fig.add_trace(
            go.Scatter(
                x=forecast["month"],
                y=forecast["median"],
                mode="lines+markers",
                name="Counterfactual median",
                line={"width": 2.5, "color": band_color, "dash": "dash"},
                marker={"size": 7},
            )
        )
    return _write_figure(
        fig,
        output_path,
        title="International Arrivals: Actual vs No-Pandemic Counterfactual",
        x_title="Month",
        y_title="Arrivals",
        write_png=write_png,
    )


def _plot_loss_by_month(
    frame: pd.DataFrame,
    output_path: Path,
    *,
    title: str,
    y_title: str,
    write_png: bool,
) -> list[Path]:
    fig = go.Figure()
    if frame.empty:
        _empty_annotation(fig, "No loss estimates available")
    else:
        color = _COCONUT_COLORS[2]
        fig.add_trace(
            go.Bar(
                x=frame["month"],
                y=frame["loss_median"],
                name="Median loss",
                marker={"color": color},
                error_y={
                    "type": "data",
                    "array": (frame["loss_upper"] - frame["loss_median"]).clip(lower=0),
                    "arrayminus": (frame["loss_median"] - frame["loss_lower"]).clip(lower=0),
                    "thickness": 1,
                    "width": 4,
                    "color": _COCONUT_COLORS[0],
                },
            )
        )
    return _write_figure(
        fig,
        output_path,
        title=title,
        x_title="Month",
        y_title=y_title,
        write_png=write_png,
    )


def _plot_transactions(
    frame: pd.DataFrame,
    output_path: Path,
    *,
    write_png: bool,
) -> list[Path]:
    fig = go.Figure()
    if frame.empty:
        _empty_annotation(fig, "No transactions estimates available")
    else:
        series = (
            ("forecast_volume", "Counterfactual forecast", "dash"),
            ("nowcast_volume", "Nowcast from actual arrivals", "solid"),
            ("observed_volume", "Observed volume", "dot"),
        )
        for idx, (column, label, dash) in enumerate(series):
            if column not in frame.columns or frame[column].isna().all():
                continue
            fig.add_trace(
                go.Scatter(
                    x=frame["month"],
                    y=frame[column],
                    mode="lines+markers",
                    name=label,
                    line={"width": 2.5, "color": _COCONUT_COLORS[idx], "dash": dash},
                    marker={"size": 7},
                )
            )
    return _write_figure(
        fig,
        output_path,
        title="Foreign Card Transactions: Forecast vs Nowcast",
        x_title="Month",
        y_title="Transaction Volume",
        write_png=write_png,
    )


def generate_impact_charts(
    *,
    report_root: str | Path = "data/reports/impact",
    output_dir: str | Path | None = None,
    write_png: bool = False,
) -> dict[str, Any]:
    """Render HTML (and optionally PNG) charts from exported impact artifacts."""

    report_path = Path(report_root)
    out = _ensure_dir(output_dir if output_dir is not None else report_path / "charts")

    history = _load_monthly_csv(report_path / "arrivals_history.csv")
    forecast = _load_monthly_csv(report_path / "arrivals_forecast.csv")
    arrivals_loss = _load_monthly_csv(report_path / "arrivals_loss_by_month.csv")
    transactions = _load_monthly_csv(report_path / "transactions_by_month.csv")

    generated: dict[str, list[str]] = {}

    def _register(name: str, paths: list[Path]) -> None:
        generated[name] = [str(path) for path in paths]

    _register(
        "arrivals_counterfactual",
        _plot_arrivals_counterfactual(
            history,
            forecast,
            out / "arrivals_counterfactual.html",
            write_png=write_png,
        ),
    )
    _register(
        "arrivals_loss_by_month",
        _plot_loss_by_month(
            arrivals_loss,
            out / "arrivals_loss_by_month.html",
            title="Lost International Arrivals by Month",
            y_title="Lost Arrivals",
            write_png=write_png,
        ),
    )
    _register(
        "transactions_forecast_vs_nowcast",
        _plot_transactions(
            transactions,
            out / "transactions_forecast_vs_nowcast.html",
            write_png=write_png,
        ),
    )

    summary: dict[str, Any] = {
        "generated_at_utc": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
        "report_root": str(report_path),
        "output_dir": str(out),
        "generated": generated,
        "dataset_rows": {
            "arrivals_history": int(len(history)),
            "arrivals_forecast": int(len(forecast)),
            "arrivals_loss_by_month": int(len(arrivals_loss)),
            "transactions_by_month": int(len(transactions)),
        },
    }
    (out / "charts_summary.json").write_text(
        json.dumps(summary, sort_keys=True, indent=2),
        encoding="utf-8",
    )
    return summary


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--report-root",
        default="data/reports/impact",
        help="Directory holding exported impact artifacts.",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Chart output directory (default: <report-root>/charts).",
    )
    parser.add_argument(
        "--png",
        action="store_true",
        help="Also write PNG images (requires kaleido).",
    )
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    summary = generate_impact_charts(
        report_root=args.report_root,
        output_dir=args.output_dir,
        write_png=bool(args.png),
    )
    print(json.dumps({"output_dir": summary["output_dir"], "charts": len(summary["generated"])}, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
