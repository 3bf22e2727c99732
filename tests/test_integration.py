"""Integration tests against the published CSV files.

These tests need a data directory (or base URL) holding the real source
files and are skipped by default. Run with:

    VACCINATION_DATA_SOURCE=public/data \\
        uv run python -m pytest tests/ -v --run-integration -m integration
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from santepublique.data.vaccination_dashboard.constants import (
    DEPARTMENTAL_COVERAGE_FILE,
    FLU_DEPARTMENTAL_FILE,
    NATIONAL_CODE,
    NATIONAL_COVERAGE_FILE,
)
from santepublique.data.vaccination_dashboard.models import VACCINATION_TYPES, DataType
from santepublique.data.vaccination_dashboard.service import DashboardDataService

pytestmark = pytest.mark.integration

DATA_SOURCE = os.environ.get("VACCINATION_DATA_SOURCE", "data")

REQUIRED_FILES = [
    DEPARTMENTAL_COVERAGE_FILE,
    NATIONAL_COVERAGE_FILE,
    FLU_DEPARTMENTAL_FILE,
]


# ---------------------------------------------------------------------------
# Module-scoped fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def service():
    """Service over the real files."""
    if not DATA_SOURCE.startswith(("http://", "https://")):
        for fname in REQUIRED_FILES:
            if not (Path(DATA_SOURCE) / fname).exists():
                pytest.skip(f"Missing data file: {fname}")
    return DashboardDataService(DATA_SOURCE)


@pytest.fixture(scope="module")
def years(service):
    return asyncio.run(service.get_available_years())


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_available_years_sorted(years):
    """Years are ascending and plausible."""
    assert years == sorted(years)
    assert all(2000 <= year <= 2030 for year in years)


@pytest.mark.parametrize("data_type", VACCINATION_TYPES, ids=lambda t: t.value)
def test_vaccination_ranking_invariants(service, years, data_type):
    """Coverage is within 0-100 and sorted descending for every year."""
    for year in years:
        records = asyncio.run(service.generate_department_data(data_type, year))
        values = [r.primary_metric for r in records]

        assert all(0 <= v <= 100 for v in values)
        assert all(a >= b for a, b in zip(values, values[1:]))
        assert all(0 <= r.percentile <= 100 for r in records)
        if records:
            assert records[0].percentile == 100


def test_sparse_results_fall_back_to_national(service, years):
    """A vaccination result is either >= 10 departments or one national record."""
    for year in years:
        records = asyncio.run(
            service.generate_department_data(DataType.GRIPPE_VACCINATION, year)
        )
        if len(records) < 10 and records:
            assert [r.code for r in records] == [NATIONAL_CODE]


def test_flu_ranking_ascending(service, years):
    records = asyncio.run(
        service.generate_department_data(DataType.FLU_SURVEILLANCE, years[-1])
    )
    values = [r.primary_metric for r in records]

    assert all(a <= b for a, b in zip(values, values[1:]))
    assert all(r.flu_detail is not None for r in records)


def test_audit_core_files(service):
    """The departmental coverage file loads without errors."""
    indicators, _ = asyncio.run(service.audit())
    by_file = {i.file_name: i for i in indicators}

    assert by_file[DEPARTMENTAL_COVERAGE_FILE].status != "error"
    assert by_file[DEPARTMENTAL_COVERAGE_FILE].record_count > 1000
