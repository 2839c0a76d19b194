from __future__ import annotations

import json
from pathlib import Path

import pytest

import main as cli


def test_explicit_missing_config_aborts_with_source_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    typo = tmp_path / "typo.yaml"
    exit_code = cli.main(
        [
            "--config",
            str(typo),
            "--arrivals",
            str(tmp_path / "none.csv"),
            "--report-root",
            str(tmp_path / "reports"),
        ]
    )

    assert exit_code == 2
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["reason_code"] == "missing_source_file"
    assert payload["key"] == str(typo)
    assert not (tmp_path / "reports").exists()


def test_config_defaults_to_shipped_file_only_when_not_given(tmp_path: Path) -> None:
    assert cli._resolve_config_path(None) == cli.DEFAULT_CONFIG_PATH
    assert cli.DEFAULT_CONFIG_PATH.exists()
    explicit = tmp_path / "other.yaml"
    assert cli._resolve_config_path(str(explicit)) == explicit


def test_explicit_config_is_applied(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = tmp_path / "impact.yaml"
    config.write_text("forecast:\n  interval_level: 1.5\n", encoding="utf-8")
    exit_code = cli.main(["--config", str(config)])

    assert exit_code == 2
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["reason_code"] == "invalid_model_policy"
    assert payload["key"] == "forecast.interval_level"
