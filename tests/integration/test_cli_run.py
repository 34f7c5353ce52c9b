from __future__ import annotations

import json
from pathlib import Path

import pytest

from finops_import.cli import main as cli_main
from finops_import.excel.reader import read_cell_matrix
from finops_import.excel.templates import TEMPLATE_COLUMNS, build_template_matrix
from finops_import.models import ImportType

"""End-to-end CLI runs against real .xlsx workbooks (live rate refresh disabled by config)."""


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch):
    for name in ("FINOPS_USER_ID", "FINOPS_RATES_URL", "FINOPS_LIVE_RATES"):
        monkeypatch.delenv(name, raising=False)


def test_cli_no_files_success(write_config, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=0/0 success=0 failed=0 valid_rows=0 error_rows=0 unmatched=0" in out


def test_cli_clean_run(write_config, temp_workdir: Path, make_workbook, capsys):
    data = temp_workdir / "data"
    make_workbook(data / "transactions.xlsx", build_template_matrix("transactions"))
    make_workbook(
        data / "timesheets.xlsx",
        [TEMPLATE_COLUMNS[ImportType.TIMESHEETS], ["Jane Doe", "Acme Corp", "2024-01", 20, 2, 4, "submitted"]],
    )

    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    summary = out.strip().splitlines()[-1]
    assert summary.startswith("SUMMARY files=2/2 success=2 failed=0 valid_rows=4 error_rows=0 unmatched=0 elapsed_sec=")

    rec = json.loads((temp_workdir / "out" / "timesheets.timesheets.jsonl").read_text(encoding="utf-8"))
    assert rec["total_days_worked"] == 22.5
    assert rec["internal_cost_base"] == pytest.approx(2430.0)
    assert rec["user_id"] == "user-1"


def test_cli_partial_failure_exit_code(write_config, temp_workdir: Path, make_workbook, capsys):
    data = temp_workdir / "data"
    make_workbook(
        data / "partners.xlsx",
        [TEMPLATE_COLUMNS[ImportType.PARTNERS], ["Ann", "ann@example.com", 50, "Partner", "active"], ["", "x", 0, "", ""]],
    )
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 2
    assert "WARN partners.xlsx [Sheet1] Row 3: Name is required" in out
    assert "error_rows=1" in out
    logs = list((temp_workdir / "logs").glob("errors-*.log"))
    assert len(logs) == 1


def test_cli_missing_config(temp_workdir: Path, capsys):
    code = cli_main(["--config", "config/missing.yml"])
    assert code == 1
    assert "ERROR config: config file not found" in capsys.readouterr().out


def test_cli_directory_missing(write_config, temp_workdir: Path, capsys):
    text = write_config.read_text(encoding="utf-8").replace("./data", "./missing_dir")
    write_config.write_text(text, encoding="utf-8")
    code = cli_main([])
    assert code == 1
    assert "ERROR directory not found:" in capsys.readouterr().out


def test_cli_env_file_overrides_user(write_config, temp_workdir: Path, make_workbook, monkeypatch):
    # .env は既存の環境変数より優先される (teardown で元に戻す)
    monkeypatch.setenv("FINOPS_USER_ID", "shell-user")
    (temp_workdir / ".env").write_text("FINOPS_USER_ID=from-dotenv\n", encoding="utf-8")
    make_workbook(temp_workdir / "data" / "subscriptions.xlsx", build_template_matrix("subscriptions"))
    assert cli_main([]) == 0
    first = (temp_workdir / "out" / "subscriptions.subscriptions.jsonl").read_text(encoding="utf-8").splitlines()[0]
    assert json.loads(first)["user_id"] == "from-dotenv"


def test_cli_write_template(temp_workdir: Path, capsys):
    target = temp_workdir / "templates" / "timesheets.xlsx"
    code = cli_main(["--write-template", "timesheets", "--output", str(target)])
    assert code == 0
    _, matrix = read_cell_matrix(target)
    assert matrix[0] == TEMPLATE_COLUMNS[ImportType.TIMESHEETS]
    assert "template written" in capsys.readouterr().out


def test_cli_write_template_requires_output(temp_workdir: Path, capsys):
    assert cli_main(["--write-template", "partners"]) == 1
    assert "requires --output" in capsys.readouterr().out


def test_cli_inspect_data(write_config, temp_workdir: Path, make_workbook, capsys):
    make_workbook(temp_workdir / "data" / "partners.xlsx", build_template_matrix("partners"))
    code = cli_main(["--inspect-data"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: partners.xlsx" in out
    assert "SHEET: Sheet1" in out
    assert "SUMMARY" not in out


def test_cli_debug_mode(write_config, capsys):
    assert cli_main(["--debug"]) == 0
    assert "DEBUG debug mode enabled" in capsys.readouterr().out
