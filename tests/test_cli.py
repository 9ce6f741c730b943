import argparse
import json

import pytest

import run_ledger


def test_json_output(ledger_dir, tmp_path, capsys):
    code = run_ledger.main(
        ["--input-dir", str(ledger_dir), "--output-dir", str(tmp_path / "out"), "--json"]
    )

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["metadata"]["headline"]["as_of"] == "2020-01-03"
    assert (tmp_path / "out" / "mydaily.csv").exists()


def test_table_output_with_overrides(ledger_dir, tmp_path, capsys):
    code = run_ledger.main(
        [
            "--input-dir", str(ledger_dir),
            "--output-dir", str(tmp_path / "out"),
            "--cash-fix", "100",
            "--workers", "2",
            "--no-export",
        ]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "Portfolio: $2,507.00 | 2020-01-03" in out
    assert "Daily Performance" in out
    assert "Allocation by Category" in out
    assert not (tmp_path / "out").exists()


def test_yaml_config_is_overridden_by_flags(ledger_dir, tmp_path):
    config_path = tmp_path / "ledger.yaml"
    config_path.write_text(f"input_dir: {ledger_dir}\ncash_fix: 5\nexport: false\n")
    args = argparse.Namespace(
        config=str(config_path),
        input_dir=None,
        output_dir=None,
        cash_fix=-1.0,
        workers=None,
        daily_export="daily.csv",
        no_export=False,
    )

    cfg = run_ledger.build_report_config(args)

    assert cfg.input_dir == ledger_dir
    assert cfg.cash_fix == pytest.approx(-1.0)
    assert cfg.export is False
    assert cfg.files["daily_export"] == "daily.csv"
    assert run_ledger.main(["--config", str(config_path), "--cash-fix", "-1"]) == 0


def test_missing_inputs_exit_nonzero(tmp_path, capsys):
    code = run_ledger.main(["--input-dir", str(tmp_path), "--no-export"])

    assert code == 1
    assert "❌" in capsys.readouterr().err
