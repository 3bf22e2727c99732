"""Tests for data-quality validation."""

from __future__ import annotations

from santepublique.data.vaccination_dashboard import schemas
from santepublique.data.vaccination_dashboard.constants import (
    DEPARTMENTAL_COVERAGE_COLUMNS,
    FLU_DEPARTMENTAL_COLUMNS,
)
from santepublique.data.vaccination_dashboard.transformers import (
    transform_departmental_coverage,
    transform_flu_departmental,
)
from santepublique.data.vaccination_dashboard.validation import (
    source_error_indicator,
    to_indicator,
    validate_dataset,
)


class TestValidateDataset:
    """Tests for validate_dataset."""

    def test_clean_coverage_is_valid(self, make_rows):
        rows = make_rows(
            DEPARTMENTAL_COVERAGE_COLUMNS,
            [
                {
                    "year": 2023,
                    "department_code": "01",
                    "department_name": "Département 01",
                    "flu_65_plus": 55,
                },
            ],
        )
        df, report = transform_departmental_coverage(rows)

        results = validate_dataset(df, schemas.DEPARTMENTAL_COVERAGE, report)

        assert results["is_valid"]
        assert results["errors"] == []
        assert results["warnings"] == []
        assert results["stats"]["record_count"] == 1
        assert results["stats"]["min_year"] == 2023

    def test_empty_dataset_is_error(self):
        df, report = transform_departmental_coverage([])

        results = validate_dataset(df, schemas.DEPARTMENTAL_COVERAGE, report)

        assert not results["is_valid"]
        assert "No data found" in results["errors"][0]

    def test_coverage_warnings(self, make_rows):
        """Out-of-range coverage and implausible years are warnings."""
        rows = make_rows(
            DEPARTMENTAL_COVERAGE_COLUMNS,
            [
                {
                    "year": 2005,
                    "department_code": "01",
                    "department_name": "Département 01",
                    "flu_65_plus": 55,
                },
                {
                    "year": 2023,
                    "department_code": "02",
                    "department_name": "Département 02",
                    "flu_65_plus": 120,
                },
            ],
        )
        df, report = transform_departmental_coverage(rows)

        results = validate_dataset(df, schemas.DEPARTMENTAL_COVERAGE, report)

        assert results["is_valid"]
        assert any("outside 0-100%" in w for w in results["warnings"])
        assert any("outside 2010-2030" in w for w in results["warnings"])

    def test_flu_warnings(self, make_rows):
        """Aberrant rates and missing dates are warnings."""
        rows = make_rows(
            FLU_DEPARTMENTAL_COLUMNS,
            [
                {
                    "week_start": "2023-12-11",
                    "department_code": "75",
                    "department_name": "Département 75",
                    "sos_rate": 60000,
                },
                {
                    "week_start": "2023-12-11",
                    "department_code": "13",
                    "department_name": "Département 13",
                    "urgency_rate": -1,
                },
                {
                    "week_start": "n/a",
                    "department_code": "69",
                    "department_name": "Département 69",
                    "urgency_rate": 10,
                },
            ],
        )
        df, report = transform_flu_departmental(rows)

        results = validate_dataset(df, schemas.FLU_DEPARTMENTAL, report)

        assert "2 rows with aberrant flu rates" in results["warnings"]
        assert "1 rows with missing dates" in results["warnings"]


class TestIndicators:
    """Tests for data-quality indicators."""

    def test_statuses(self):
        base = {"errors": [], "warnings": [], "stats": {"record_count": 3}}

        assert to_indicator("a.csv", base).status == "success"
        assert to_indicator("a.csv", {**base, "warnings": ["w"]}).status == "warning"
        indicator = to_indicator("a.csv", {**base, "errors": ["e"], "warnings": ["w"]})
        assert indicator.status == "error"
        assert indicator.message == "e"
        assert indicator.record_count == 3

    def test_source_error(self):
        indicator = source_error_indicator("a.csv", OSError("not found"))

        assert indicator.status == "error"
        assert indicator.record_count == 0
        assert "not found" in indicator.message
