"""Turn parsed CSV rows into typed DataFrames.

Every transformer is driven by a CsvSchema and records what it had to fix
in a CoercionReport:
- rows missing a mandatory field are dropped
- blank numeric cells read as 0, non-numeric ones read as 0 and are counted
- percentages outside [0, 100] are discarded
- zero observations are discarded for datasets that encode "not measured"
  as 0
- unparseable dates fall back to DEFAULT_YEAR
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

import pandas as pd
from loguru import logger

from santepublique.data.vaccination_dashboard import schemas
from santepublique.data.vaccination_dashboard.constants import (
    DEFAULT_YEAR,
    PERCENTAGE_RANGE,
)
from santepublique.data.vaccination_dashboard.schemas import (
    PERCENTAGE,
    YEAR_DATE,
    YEAR_INT,
    CsvSchema,
)


class DataQualityError(ValueError):
    """Raised in strict mode when a file needed repairs."""


@dataclass
class CoercionReport:
    """Counts of the repairs applied while transforming one file."""

    dataset: str
    rows_read: int = 0
    rows_kept: int = 0
    dropped_rows: int = 0
    blank_fields: int = 0
    invalid_fields: int = 0
    out_of_range_fields: int = 0
    discarded_zeros: int = 0
    year_fallbacks: int = 0
    missing_columns: list[str] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        """Repairs that indicate malformed data.

        Blank cells and discarded zeros are ordinary "not measured" values
        and are not counted as issues.
        """
        return (
            self.dropped_rows
            + self.invalid_fields
            + self.out_of_range_fields
            + self.year_fallbacks
            + len(self.missing_columns)
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def log_summary(self) -> None:
        if self.issue_count:
            logger.warning(
                "{}: kept {}/{} rows ({} dropped, {} invalid, {} out of range, "
                "{} year fallbacks)",
                self.dataset,
                self.rows_kept,
                self.rows_read,
                self.dropped_rows,
                self.invalid_fields,
                self.out_of_range_fields,
                self.year_fallbacks,
            )
        else:
            logger.debug(
                "{}: kept {}/{} rows", self.dataset, self.rows_kept, self.rows_read
            )

    def raise_if_dirty(self) -> None:
        """Raise DataQualityError if any malformed data was repaired."""
        if self.issue_count:
            raise DataQualityError(
                f"{self.dataset}: {self.dropped_rows} dropped rows, "
                f"{self.invalid_fields} invalid fields, "
                f"{self.out_of_range_fields} out-of-range fields, "
                f"{self.year_fallbacks} year fallbacks, "
                f"missing columns {self.missing_columns}"
            )


# -----------------------------------------------------------------------------
# Value parsing
# -----------------------------------------------------------------------------


def parse_number(value: str | None) -> float | None:
    """Parse a number regardless of locale ("12.5", "12,5", "1 234")."""
    if value is None:
        return None
    text = str(value).strip().replace(" ", "").replace(",", ".")
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def parse_year(value: str | None) -> int | None:
    """Parse an integer year column."""
    number = parse_number(value)
    if number is None or number != int(number):
        return None
    return int(number)


def _four_digit_year(part: str) -> int | None:
    token = part.strip()[:4]
    if len(token) == 4 and token.isdigit():
        return int(token)
    return None


def extract_year(
    date_text: str | None, report: CoercionReport | None = None
) -> int:
    """Extract the year of a date string.

    Supports "YYYY-MM-DD" (also "YYYY-YYYY" campaign labels) and
    "DD/MM/YYYY". Anything else falls back to DEFAULT_YEAR, counted in the
    report when one is given.
    """
    text = (date_text or "").strip()
    year = None
    if "-" in text:
        year = _four_digit_year(text.split("-")[0])
    if year is None and "/" in text:
        parts = text.split("/")
        if len(parts) >= 3:
            year = _four_digit_year(parts[2])
    if year is None:
        logger.debug("Unparseable date {!r}, using {}", text, DEFAULT_YEAR)
        if report is not None:
            report.year_fallbacks += 1
        return DEFAULT_YEAR
    return year


def coerce_metric(
    raw: str | None,
    kind: str,
    report: CoercionReport,
    *,
    retain_zero: bool = True,
) -> float | None:
    """Coerce one numeric cell, returning None when it must be discarded."""
    value = parse_number(raw)
    if value is None:
        if raw is not None and raw.strip():
            report.invalid_fields += 1
        else:
            report.blank_fields += 1
        value = 0.0

    if kind == PERCENTAGE:
        low, high = PERCENTAGE_RANGE
        if not low <= value <= high:
            report.out_of_range_fields += 1
            return None

    if value == 0 and not retain_zero:
        report.discarded_zeros += 1
        return None
    return value


# -----------------------------------------------------------------------------
# Transformers
# -----------------------------------------------------------------------------


def transform_rows(
    rows: Iterable[Mapping[str, str]],
    schema: CsvSchema,
    *,
    year: int | None = None,
    strict: bool = False,
    report: CoercionReport | None = None,
) -> tuple[pd.DataFrame, CoercionReport]:
    """Transform parsed rows according to a schema.

    Args:
        rows: Parsed CSV rows ({header: value})
        schema: Column contract of the dataset
        year: Year of the whole file, for schemas without a year column
        strict: Fail on missing optional columns and on any repaired value
        report: Report to accumulate into (a new one by default)

    Returns:
        (DataFrame with one column per logical field plus row_id and year,
        CoercionReport)

    Raises:
        SchemaError: If the header lacks mandatory columns
        DataQualityError: In strict mode, if any value needed repair
    """
    report = report or CoercionReport(dataset=schema.name)
    records = []
    header_checked = False

    for row_id, row in enumerate(rows):
        if not header_checked:
            report.missing_columns = schema.validate_header(list(row), strict=strict)
            header_checked = True

        report.rows_read += 1
        record = _transform_row(row, row_id, schema, year, report)
        if record is None:
            report.dropped_rows += 1
            continue
        records.append(record)

    report.rows_kept = len(records)
    report.log_summary()
    if strict:
        report.raise_if_dirty()
    return to_frame(records, schema), report


def _transform_row(
    row: Mapping[str, str],
    row_id: int,
    schema: CsvSchema,
    file_year: int | None,
    report: CoercionReport,
) -> dict[str, Any] | None:
    for logical in schema.mandatory:
        if not (row.get(schema.source(logical)) or "").strip():
            return None

    if schema.year_format == YEAR_INT:
        row_year = parse_year(row.get(schema.source(schema.year_field)))
        if row_year is None:
            return None
    elif schema.year_format == YEAR_DATE:
        row_year = extract_year(row.get(schema.source(schema.year_field)), report)
    else:
        row_year = file_year

    record: dict[str, Any] = {"row_id": row_id, "year": row_year}
    for logical, column in schema.columns.items():
        if logical == "year":
            continue
        raw = row.get(column)
        kind = schema.numeric.get(logical)
        if kind is None:
            record[logical] = (raw or "").strip()
        else:
            record[logical] = coerce_metric(
                raw,
                kind,
                report,
                retain_zero=schema.retain_zero_observations,
            )
    return record


def to_frame(records: list[dict[str, Any]], schema: CsvSchema) -> pd.DataFrame:
    """Build a DataFrame with stable dtypes, even when empty."""
    columns = ["row_id", "year"] + [c for c in schema.columns if c != "year"]
    df = pd.DataFrame(records, columns=columns)
    dtypes: dict[str, str] = {"row_id": "int64", "year": "Int64"}
    for logical in schema.columns:
        if logical == "year":
            continue
        dtypes[logical] = "float64" if logical in schema.numeric else "object"
    return df.astype(dtypes)


def transform_departmental_coverage(rows, **kwargs):
    """Departmental coverage, one row per department and year."""
    return transform_rows(rows, schemas.DEPARTMENTAL_COVERAGE, **kwargs)


def transform_national_coverage(rows, **kwargs):
    """National coverage, one row per year."""
    return transform_rows(rows, schemas.NATIONAL_COVERAGE, **kwargs)


def transform_regional_coverage(rows, **kwargs):
    return transform_rows(rows, schemas.REGIONAL_COVERAGE, **kwargs)


def transform_flu_departmental(rows, **kwargs):
    """Weekly flu surveillance by department and age class."""
    return transform_rows(rows, schemas.FLU_DEPARTMENTAL, **kwargs)


def transform_flu_national(rows, **kwargs):
    return transform_rows(rows, schemas.FLU_NATIONAL, **kwargs)


def transform_flu_regional(rows, **kwargs):
    return transform_rows(rows, schemas.FLU_REGIONAL, **kwargs)


def transform_campaign(rows, **kwargs):
    """Flu vaccination campaign indicators (one file per year)."""
    return transform_rows(rows, schemas.CAMPAIGN, **kwargs)


def transform_campaign_coverage(rows, **kwargs):
    return transform_rows(rows, schemas.CAMPAIGN_COVERAGE, **kwargs)


def transform_doses_acts(rows, **kwargs):
    return transform_rows(rows, schemas.DOSES_ACTS, **kwargs)


TRANSFORMERS = {
    schemas.DEPARTMENTAL_COVERAGE.name: transform_departmental_coverage,
    schemas.NATIONAL_COVERAGE.name: transform_national_coverage,
    schemas.REGIONAL_COVERAGE.name: transform_regional_coverage,
    schemas.FLU_DEPARTMENTAL.name: transform_flu_departmental,
    schemas.FLU_NATIONAL.name: transform_flu_national,
    schemas.FLU_REGIONAL.name: transform_flu_regional,
    schemas.CAMPAIGN.name: transform_campaign,
    schemas.CAMPAIGN_COVERAGE.name: transform_campaign_coverage,
    schemas.DOSES_ACTS.name: transform_doses_acts,
}
