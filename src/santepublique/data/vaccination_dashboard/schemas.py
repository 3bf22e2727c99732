"""Declarative schemas for the source CSV files.

Each schema maps logical field names to the literal column headers of one
dataset, lists the fields a row cannot do without, and types the numeric
fields. Header validation happens once per file, before any row is read.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from loguru import logger

from santepublique.data.vaccination_dashboard.constants import (
    CAMPAIGN_COLUMNS,
    CAMPAIGN_COVERAGE_COLUMNS,
    COVERAGE_INDICATOR_COLUMNS,
    DEPARTMENTAL_COVERAGE_COLUMNS,
    DOSES_ACTS_COLUMNS,
    FLU_DEPARTMENTAL_COLUMNS,
    FLU_NATIONAL_COLUMNS,
    FLU_RATE_COLUMNS,
    FLU_REGIONAL_COLUMNS,
    NATIONAL_COVERAGE_COLUMNS,
    REGIONAL_COVERAGE_COLUMNS,
)

# Numeric field kinds
PERCENTAGE = "percentage"  # coverage, must lie in [0, 100]
RATE = "rate"  # per 100k inhabitants
COUNT = "count"

# How the row year is obtained
YEAR_INT = "int"  # integer column ("Année")
YEAR_DATE = "date"  # extracted from a date string
YEAR_FILE = "file"  # supplied by the caller (one file per year)


class SchemaError(ValueError):
    """A source file does not carry the columns its schema requires."""


@dataclass(frozen=True)
class CsvSchema:
    """Column contract of one source dataset."""

    name: str
    columns: dict[str, str]
    mandatory: tuple[str, ...]
    numeric: dict[str, str] = field(default_factory=dict)
    year_field: str | None = None
    year_format: str = YEAR_FILE
    # Vaccination files encode "not measured" as 0; surveillance files
    # report genuine zero activity.
    retain_zero_observations: bool = True

    def source(self, logical: str) -> str:
        """Return the literal column header for a logical field."""
        return self.columns[logical]

    def missing_columns(self, header: Sequence[str]) -> list[str]:
        """Mandatory columns absent from the header."""
        present = set(header)
        return [
            self.columns[f] for f in self.mandatory if self.columns[f] not in present
        ]

    def missing_optional_columns(self, header: Sequence[str]) -> list[str]:
        """Optional columns absent from the header."""
        present = set(header)
        return [
            column
            for logical, column in self.columns.items()
            if logical not in self.mandatory and column not in present
        ]

    def validate_header(
        self, header: Sequence[str], *, strict: bool = False
    ) -> list[str]:
        """Check a file header against this schema.

        Args:
            header: Column names of the file's first line
            strict: Also fail on missing optional columns

        Returns:
            Missing optional columns (they read as empty values)

        Raises:
            SchemaError: If a mandatory column (or, in strict mode, any
                column) is missing
        """
        missing = self.missing_columns(header)
        if missing:
            raise SchemaError(f"{self.name}: missing mandatory columns {missing}")

        optional = self.missing_optional_columns(header)
        if optional:
            if strict:
                raise SchemaError(f"{self.name}: missing columns {optional}")
            logger.warning("{}: missing optional columns {}", self.name, optional)
        return optional


_COVERAGE_NUMERIC = {field: PERCENTAGE for field in COVERAGE_INDICATOR_COLUMNS}
_FLU_NUMERIC = {field: RATE for field in FLU_RATE_COLUMNS}

DEPARTMENTAL_COVERAGE = CsvSchema(
    name="departmental_coverage",
    columns=DEPARTMENTAL_COVERAGE_COLUMNS,
    mandatory=("year", "department_code", "department_name"),
    numeric=_COVERAGE_NUMERIC,
    year_field="year",
    year_format=YEAR_INT,
    retain_zero_observations=False,
)

NATIONAL_COVERAGE = CsvSchema(
    name="national_coverage",
    columns=NATIONAL_COVERAGE_COLUMNS,
    mandatory=("year",),
    numeric=_COVERAGE_NUMERIC,
    year_field="year",
    year_format=YEAR_INT,
    retain_zero_observations=False,
)

REGIONAL_COVERAGE = CsvSchema(
    name="regional_coverage",
    columns=REGIONAL_COVERAGE_COLUMNS,
    mandatory=("year", "region"),
    numeric=_COVERAGE_NUMERIC,
    year_field="year",
    year_format=YEAR_INT,
    retain_zero_observations=False,
)

FLU_NATIONAL = CsvSchema(
    name="flu_national",
    columns=FLU_NATIONAL_COLUMNS,
    mandatory=("week_start",),
    numeric=_FLU_NUMERIC,
    year_field="week_start",
    year_format=YEAR_DATE,
)

FLU_DEPARTMENTAL = CsvSchema(
    name="flu_departmental",
    columns=FLU_DEPARTMENTAL_COLUMNS,
    mandatory=("week_start", "department_code", "department_name"),
    numeric=_FLU_NUMERIC,
    year_field="week_start",
    year_format=YEAR_DATE,
)

FLU_REGIONAL = CsvSchema(
    name="flu_regional",
    columns=FLU_REGIONAL_COLUMNS,
    mandatory=("week_start", "region"),
    numeric=_FLU_NUMERIC,
    year_field="week_start",
    year_format=YEAR_DATE,
)

CAMPAIGN = CsvSchema(
    name="campaign",
    columns=CAMPAIGN_COLUMNS,
    mandatory=("variable",),
    numeric={"value": COUNT},
    year_field="campaign",
    year_format=YEAR_DATE,
)

CAMPAIGN_COVERAGE = CsvSchema(
    name="campaign_coverage",
    columns=CAMPAIGN_COVERAGE_COLUMNS,
    mandatory=("region",),
    numeric={"value": COUNT},
)

DOSES_ACTS = CsvSchema(
    name="doses_acts",
    columns=DOSES_ACTS_COLUMNS,
    mandatory=("campaign",),
    numeric={"value": COUNT},
    year_field="campaign",
    year_format=YEAR_DATE,
)

SCHEMAS = {
    schema.name: schema
    for schema in (
        DEPARTMENTAL_COVERAGE,
        NATIONAL_COVERAGE,
        REGIONAL_COVERAGE,
        FLU_NATIONAL,
        FLU_DEPARTMENTAL,
        FLU_REGIONAL,
        CAMPAIGN,
        CAMPAIGN_COVERAGE,
        DOSES_ACTS,
    )
}


def detect_schema(header: Sequence[str], file_name: str = "") -> CsvSchema:
    """Guess the schema of an arbitrary file from its header.

    Args:
        header: Column names of the file's first line
        file_name: File name, used to tell national files apart

    Returns:
        The matching schema

    Raises:
        SchemaError: If no schema matches
    """
    lowered = [column.lower() for column in header]
    joined = " | ".join(lowered)
    name = file_name.lower()

    if "taux de passages aux urgences pour grippe" in joined:
        if "département code" in lowered:
            return FLU_DEPARTMENTAL
        if "région" in lowered:
            return FLU_REGIONAL
        return FLU_NATIONAL
    if "hpv" in joined:
        if "département code" in lowered:
            return DEPARTMENTAL_COVERAGE
        if "région" in lowered:
            return REGIONAL_COVERAGE
        if "france" in name or "national" in name or "année" in lowered:
            return NATIONAL_COVERAGE
    if "campagne" in lowered:
        return DOSES_ACTS if "jour" in lowered else CAMPAIGN
    if "groupe" in lowered and "region" in lowered:
        return CAMPAIGN_COVERAGE

    raise SchemaError(f"Unrecognized file format: {file_name or header[:3]}")
