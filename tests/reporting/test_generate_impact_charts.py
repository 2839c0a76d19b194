from __future__ import annotations

import json
from pathlib import Path

from ops.viz.generate_impact_charts import generate_impact_charts


def _write_csv(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_charts_render_html_from_exported_artifacts(tmp_path: Path) -> None:
    report_root = tmp_path / "impact"
    _write_csv(
        report_root / "arrivals_history.csv",
        "month,value\n2020-01,1000\n2020-02,1100\n2020-03,120\n2020-04,90\n",
    )
    _write_csv(
        report_root / "arrivals_forecast.csv",
        "month,point,median,lower_95,upper_95\n"
        "2020-03,1200,1190,1000,1400\n"
        "2020-04,1300,1290,1050,1500\n",
    )
    _write_csv(
        report_root / "arrivals_loss_by_month.csv",
        "month,counterfactual_median,observed,loss_median,loss_lower,loss_upper\n"
        "2020-03,1190,120,1070,880,1280\n"
        "2020-04,1290,90,1200,960,1410\n",
    )
    _write_csv(
        report_root / "transactions_by_month.csv",
        "month,actual_arrivals,counterfactual_arrivals,nowcast_volume,forecast_volume,"
        "observed_volume,nowcast_error\n"
        "2020-03,120,1190,10.5,70.1,11.0,0.5\n"
        "2020-04,90,1290,8.2,75.3,,\n",
    )

    summary = generate_impact_charts(report_root=report_root)

    charts_dir = report_root / "charts"
    assert summary["output_dir"] == str(charts_dir)
    assert set(summary["generated"]) == {
        "arrivals_counterfactual",
        "arrivals_loss_by_month",
        "transactions_forecast_vs_nowcast",
    }
    for paths in summary["generated"].values():
        assert len(paths) == 1
        assert paths[0].endswith(".html")
        assert Path(paths[0]).exists()
    assert summary["dataset_rows"]["arrivals_history"] == 4
    written = json.loads((charts_dir / "charts_summary.json").read_text(encoding="utf-8"))
    assert written["generated"] == summary["generated"]


def test_charts_tolerate_missing_artifacts(tmp_path: Path) -> None:
    output_dir = tmp_path / "charts"
    summary = generate_impact_charts(report_root=tmp_path / "empty", output_dir=output_dir)
    assert summary["dataset_rows"] == {
        "arrivals_history": 0,
        "arrivals_forecast": 0,
        "arrivals_loss_by_month": 0,
        "transactions_by_month": 0,
    }
    assert (output_dir / "arrivals_counterfactual.html").exists()
    assert (output_dir / "transactions_forecast_vs_nowcast.html").exists()
