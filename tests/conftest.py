"""Pytest configuration and fixtures."""

import pytest

from santepublique.data.vaccination_dashboard.constants import (
    CAMPAIGN_COLUMNS,
    DEPARTMENTAL_COVERAGE_COLUMNS,
    FLU_DEPARTMENTAL_COLUMNS,
    NATIONAL_COVERAGE_COLUMNS,
)


def pytest_addoption(parser):
    """Add --run-integration CLI option."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (reads the published CSV files)",
    )


def pytest_collection_modifyitems(config, items):
    """Auto-skip integration tests unless --run-integration is passed."""
    if not config.getoption("--run-integration"):
        skip_marker = pytest.mark.skip(reason="need --run-integration to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_marker)


def _quote(value: str) -> str:
    return f'"{value}"' if "," in value else value


def render_csv(columns: dict[str, str], rows: list[dict]) -> str:
    """Render rows keyed by logical field as CSV text with the source headers."""
    lines = [",".join(_quote(column) for column in columns.values())]
    for row in rows:
        lines.append(",".join(_quote(str(row.get(field, ""))) for field in columns))
    return "\n".join(lines) + "\n"


@pytest.fixture
def make_rows():
    """Factory: logical-field rows -> parsed CSV rows keyed by source header."""

    def _make(columns: dict[str, str], rows: list[dict]) -> list[dict[str, str]]:
        return [
            {column: str(row.get(field, "")) for field, column in columns.items()}
            for row in rows
        ]

    return _make


@pytest.fixture
def data_dir(tmp_path):
    """Empty data source directory."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def write_csv(data_dir):
    """Factory: write a CSV file into the data directory."""

    def _write(file_name: str, columns: dict[str, str], rows: list[dict]):
        path = data_dir / file_name
        path.write_text(render_csv(columns, rows), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def departmental_coverage_rows():
    """12 departments in 2023, 3 departments in 2022."""
    rows = [
        {
            "year": 2023,
            "department_code": f"{i:02d}",
            "department_name": f"Département {i:02d}",
            "region": "Région test",
            "region_code": "84",
            "flu_65_plus": 50 + i,
            "flu_under_65_at_risk": 30 + i,
            "hpv_girls_1_dose_15": 45 + i,
            "hpv_girls_2_doses_16": 40 + i,
            "hpv_boys_1_dose_15": 20 + i,
            "covid_65_plus": 70 + i,
            "meningococcus_c_10_14": 20 + i,
        }
        for i in range(1, 13)
    ]
    rows += [
        {
            "year": 2022,
            "department_code": f"{i:02d}",
            "department_name": f"Département {i:02d}",
            "flu_65_plus": 48 + i,
        }
        for i in range(1, 4)
    ]
    return rows


@pytest.fixture
def national_coverage_rows():
    """National coverage, without a 2021 row."""
    return [
        {"year": 2019, "flu_65_plus": 52.0, "flu_under_65_at_risk": 29.7},
        {"year": 2020, "flu_65_plus": 59.9, "flu_under_65_at_risk": 38.7},
        {
            "year": 2022,
            "flu_65_plus": 56.2,
            "flu_under_65_at_risk": 31.0,
            "hpv_girls_2_doses_16": 37.4,
        },
        {
            "year": 2023,
            "flu_65_plus": 54.0,
            "flu_under_65_at_risk": 25.8,
            "hpv_girls_2_doses_16": 44.7,
        },
    ]


@pytest.fixture
def flu_departmental_rows():
    """Weekly flu activity for three departments, plus 2022 for Paris."""

    def week(dept, name, start, label, urgency, sos=0, age="Tous âges"):
        return {
            "week_start": start,
            "week": label,
            "department_code": dept,
            "department_name": name,
            "age_class": age,
            "urgency_rate": urgency,
            "hospitalization_rate": urgency / 10,
            "sos_rate": sos,
            "region": "Test",
            "region_code": "11",
        }

    return [
        week("75", "Paris", "2022-12-12", "2022-S50", 50),
        week("75", "Paris", "2023-12-11", "2023-S50", 100),
        week("75", "Paris", "2023-12-18", "2023-S51", 120),
        week("13", "Bouches-du-Rhône", "2023-12-11", "2023-S50", 80),
        week("13", "Bouches-du-Rhône", "2023-12-18", "2023-S51", 60),
        week("69", "Rhône", "2023-12-11", "2023-S50", 30),
        week("69", "Rhône", "2023-12-18", "2023-S51", 30),
    ]


@pytest.fixture
def campaign_rows_2021():
    return [
        {
            "campaign": "2021-2022",
            "date": "2021-10-18",
            "variable": "POURCENTAGE",
            "value": 52.6,
            "target": "65 ans et plus",
        },
        {
            "campaign": "2021-2022",
            "date": "2021-10-18",
            "variable": "DOSES",
            "value": 125000,
            "target": "",
        },
    ]


@pytest.fixture
def dataset_dir(
    data_dir,
    write_csv,
    departmental_coverage_rows,
    national_coverage_rows,
    flu_departmental_rows,
    campaign_rows_2021,
):
    """Data directory with the main source files."""
    from santepublique.data.vaccination_dashboard import constants

    write_csv(
        constants.DEPARTMENTAL_COVERAGE_FILE,
        DEPARTMENTAL_COVERAGE_COLUMNS,
        departmental_coverage_rows,
    )
    write_csv(
        constants.NATIONAL_COVERAGE_FILE,
        NATIONAL_COVERAGE_COLUMNS,
        national_coverage_rows,
    )
    write_csv(
        constants.FLU_DEPARTMENTAL_FILE,
        FLU_DEPARTMENTAL_COLUMNS,
        flu_departmental_rows,
    )
    write_csv("campagne-2021.csv", CAMPAIGN_COLUMNS, campaign_rows_2021)
    return data_dir
