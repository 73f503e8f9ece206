"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner
from meterbill import cli as cli_module
from meterbill.cli import cli
from rich.console import Console

HEADER = "MPRN,Meter Serial Number,Read Value,Read Type,Read Date and End Time\n"


@pytest.fixture
def runner(monkeypatch):
    for var in ("METERBILL_CSV", "METERBILL_DAYS", "METERBILL_CONFIG"):
        monkeypatch.delenv(var, raising=False)
    # Wide consoles so table cells are never truncated
    monkeypatch.setattr(cli_module, "console", Console(width=200))
    monkeypatch.setattr(cli_module, "err_console", Console(stderr=True, width=200))
    return CliRunner()


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "HDF.csv"
    path.write_text(
        HEADER
        + "10308375697,34996871,2.0,Active Import Interval (kW),08-01-2024 03:30\n"
        + "10308375697,34996871,1.0,Active Export Interval (kW),08-01-2024 03:30\n"
    )
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "plans.yaml"
    path.write_text(
        """
plans:
  - name: home-electric-14
    kind: flat
    import_rate: 0.3895
    discount: 0.14
    export_rate: 0.21
    standing_charge_per_year: 272.61
  - name: free-sundays
    kind: weekday
    discount: 0.25
    export_rate: 0.185
    standing_charge_per_year: 299.62
    rates:
      free: {start: "09:00", end: "18:00"}
      peak: {start: "17:00", end: "19:00", rate: 0.5258}
      night: {start: "23:00", end: "08:00", rate: 0.2684}
      day: 0.4178
"""
    )
    return path


def test_bill_json(runner, csv_file, config_file):
    result = runner.invoke(
        cli,
        ["--config", str(config_file), "bill", "--csv", str(csv_file), "--days", "1", "--json"],
    )
    assert result.exit_code == 0, result.output

    bills = json.loads(result.output)
    assert [b["plan"] for b in bills] == ["home-electric-14", "free-sundays"]
    flat = bills[0]
    assert flat["final"]["kind"] == "debit"
    assert flat["final"]["amount"] == pytest.approx(0.3895 * 0.86 * 2.0 - 0.21 + 272.61 / 365)


def test_bill_table(runner, csv_file, config_file):
    result = runner.invoke(
        cli, ["--config", str(config_file), "bill", "--csv", str(csv_file), "--days", "1"]
    )
    assert result.exit_code == 0, result.output
    assert "home-electric-14" in result.output
    assert "free-sundays" in result.output
    assert "Cheapest plan" in result.output


def test_bill_single_plan(runner, csv_file, config_file):
    result = runner.invoke(
        cli,
        [
            "--config",
            str(config_file),
            "bill",
            "--csv",
            str(csv_file),
            "--days",
            "1",
            "--plan",
            "free-sundays",
            "--json",
        ],
    )
    assert result.exit_code == 0, result.output
    assert [b["plan"] for b in json.loads(result.output)] == ["free-sundays"]


def test_bill_unknown_plan(runner, csv_file, config_file):
    result = runner.invoke(
        cli,
        [
            "--config",
            str(config_file),
            "bill",
            "--csv",
            str(csv_file),
            "--days",
            "1",
            "--plan",
            "nope",
        ],
    )
    assert result.exit_code == 1
    assert "Unknown plan" in result.output


def test_bill_reports_skipped_rows_and_period_mismatch(runner, tmp_path, config_file):
    path = tmp_path / "bad.csv"
    path.write_text(
        HEADER
        + "10308375697,34996871,2.0,Active Import Interval (kW),08-01-2024 03:30\n"
        + "10308375697,34996871,2.0,Active Import Interval (kW),not a date\n"
    )
    result = runner.invoke(
        cli, ["--config", str(config_file), "bill", "--csv", str(path), "--days", "30"]
    )
    assert result.exit_code == 0, result.output
    assert "Skipped 1 unparseable row(s)" in result.output
    assert "Billing period is 30 days" in result.output


def test_bill_requires_days(runner, csv_file):
    result = runner.invoke(cli, ["bill", "--csv", str(csv_file)])
    assert result.exit_code != 0
    assert "--days" in result.output


def test_bill_days_from_environment(runner, csv_file, config_file):
    result = runner.invoke(
        cli,
        ["--config", str(config_file), "bill", "--json"],
        env={"METERBILL_CSV": str(csv_file), "METERBILL_DAYS": "1"},
    )
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)[0]["days"] == 1.0


def test_plans(runner, config_file):
    result = runner.invoke(cli, ["--config", str(config_file), "plans"])
    assert result.exit_code == 0, result.output
    assert "home-electric-14" in result.output
    assert "weekday" in result.output


def test_readings(runner, csv_file):
    result = runner.invoke(cli, ["readings", "--csv", str(csv_file)])
    assert result.exit_code == 0, result.output
    assert "2.000 kWh" in result.output
    assert "1.000 kWh" in result.output


def test_bill_invalid_plan_config(runner, csv_file, tmp_path):
    """Test a plan with an out-of-range discount is reported, not a traceback."""
    config = tmp_path / "bad_plans.yaml"
    config.write_text(
        """
plans:
  - name: too-generous
    kind: flat
    import_rate: 0.3
    discount: 1.5
    export_rate: 0.2
    standing_charge_per_year: 100
"""
    )
    result = runner.invoke(
        cli, ["--config", str(config), "bill", "--csv", str(csv_file), "--days", "1"]
    )
    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "discount must be between 0 and 1" in result.output
