"""Tests for the command-line interface."""

from __future__ import annotations

import json

import pytest
from loguru import logger
from typer.testing import CliRunner

from santepublique.data.vaccination_dashboard.cli import app
from santepublique.data.vaccination_dashboard.constants import (
    DEPARTMENTAL_COVERAGE_FILE,
    FLU_DEPARTMENTAL_FILE,
)

runner = CliRunner()


@pytest.fixture(autouse=True)
def detach_logging():
    """Drop the stderr sink the CLI installs inside the runner."""
    yield
    logger.remove()


class TestCli:
    """Tests for the vaccination-dashboard commands."""

    def test_info(self):
        result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        assert "grippe-vaccination" in result.output
        assert "flu-surveillance" in result.output

    def test_years(self, dataset_dir):
        result = runner.invoke(app, ["--data-source", str(dataset_dir), "years"])

        assert result.exit_code == 0
        assert "2021" in result.output
        assert "2023" in result.output

    def test_log_file(self, dataset_dir, tmp_path):
        """--log-file records debug messages even without -v."""
        log_file = tmp_path / "refresh.log"
        result = runner.invoke(
            app,
            ["-d", str(dataset_dir), "--log-file", str(log_file), "years"],
        )
        logger.remove()

        assert result.exit_code == 0
        content = log_file.read_text(encoding="utf-8")
        assert "Available years" in content
        assert "DEBUG" in content

    def test_departments_table(self, dataset_dir):
        result = runner.invoke(
            app,
            [
                "-d",
                str(dataset_dir),
                "departments",
                "-t",
                "hpv-vaccination",
                "-y",
                "2023",
                "--top",
                "3",
            ],
        )

        assert result.exit_code == 0
        assert "Département 12" in result.output
        assert "Département 01" not in result.output

    def test_departments_output_file(self, dataset_dir, tmp_path):
        output = tmp_path / "grippe.json"
        result = runner.invoke(
            app,
            [
                "-d",
                str(dataset_dir),
                "departments",
                "-y",
                "2023",
                "--output",
                str(output),
            ],
        )

        assert result.exit_code == 0
        records = json.loads(output.read_text(encoding="utf-8"))
        assert len(records) == 12
        assert records[0]["ranking"] == 1
        assert records[0]["vaccinationCoverage"] == 62.0
        assert "fluActivity" not in records[0]

    def test_unknown_data_type(self, dataset_dir):
        result = runner.invoke(
            app, ["-d", str(dataset_dir), "departments", "-t", "rougeole"]
        )

        assert result.exit_code == 2
        assert "Unknown data type" in result.output

    def test_aggregate(self, dataset_dir):
        result = runner.invoke(
            app, ["-d", str(dataset_dir), "aggregate", "-t", "grippe-vaccination"]
        )

        assert result.exit_code == 0
        assert "France (moyenne 2019-2023)" in result.output

    def test_audit_fails_on_missing_files(self, dataset_dir):
        result = runner.invoke(app, ["-d", str(dataset_dir), "audit"])

        assert result.exit_code == 1
        assert DEPARTMENTAL_COVERAGE_FILE in result.output

    def test_inspect(self, dataset_dir):
        path = dataset_dir / DEPARTMENTAL_COVERAGE_FILE
        result = runner.invoke(app, ["inspect", str(path)])

        assert result.exit_code == 0
        assert "departmental_coverage" in result.output
        assert "15 kept / 15 read" in result.output

    def test_inspect_flu_file(self, dataset_dir):
        path = dataset_dir / FLU_DEPARTMENTAL_FILE
        result = runner.invoke(app, ["inspect", str(path)])

        assert result.exit_code == 0
        assert "flu_departmental" in result.output

    def test_inspect_unknown_format(self, tmp_path):
        path = tmp_path / "other.csv"
        path.write_text("foo,bar\n1,2\n", encoding="utf-8")

        result = runner.invoke(app, ["inspect", str(path)])

        assert result.exit_code == 1
