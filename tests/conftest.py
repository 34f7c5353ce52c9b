# Shared pytest fixtures
from __future__ import annotations

import logging
import tempfile
from pathlib import Path

import pandas as pd
import pytest

from finops_import.logging.init import APP_LOGGER_NAME, reset_logging
from finops_import.models import Assignment, AssignmentStatus, Currency


@pytest.fixture(autouse=True)
def _clean_app_logger():
    """Each test starts with an unconfigured application logger (caplog sees its records)."""
    reset_logging()
    app = logging.getLogger(APP_LOGGER_NAME)
    for h in app.handlers[:]:
        app.removeHandler(h)
    app.propagate = True
    app.setLevel(logging.NOTSET)
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
output_directory: ./out
user_id: user-1
assignments_file: ./config/assignments.yml
file_types:
  "transactions*.xlsx": transactions
  "subscriptions*.xlsx": subscriptions
  "partners*.xlsx": partners
  "timesheets*.xlsx": timesheets
currency:
  base: USD
  live_refresh: false
"""


@pytest.fixture()
def sample_assignments_yaml() -> str:
    return """assignments:
  - id: asg-1
    contractor_id: c-1
    contractor_name: Jane Doe
    customer_id: k-1
    customer_name: Acme Corp
    internal_day_rate: 100
    internal_currency: EUR
    external_day_rate: 200
    external_currency: USD
    status: active
    start_date: 2024-01-01
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str, sample_assignments_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    (temp_workdir / "config" / "assignments.yml").write_text(sample_assignments_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_workbook():
    """Write a single-sheet .xlsx from a list of rows (first row = header)."""
    def _make(path: Path, rows: list[list[object]], sheet: str = "Sheet1") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
        return path
    return _make


@pytest.fixture()
def acme_assignment() -> Assignment:
    return Assignment(
        id="asg-1",
        contractor_id="c-1",
        contractor_name="Jane Doe",
        customer_id="k-1",
        customer_name="Acme Corp",
        internal_day_rate=100.0,
        internal_currency=Currency.EUR,
        external_day_rate=200.0,
        external_currency=Currency.USD,
        status=AssignmentStatus.ACTIVE,
    )
