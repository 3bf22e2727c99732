"""Data-quality checks on transformed source files."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pandas as pd

from santepublique.data.vaccination_dashboard import schemas
from santepublique.data.vaccination_dashboard.constants import (
    FLU_RATE_MAX,
    FLU_SOS_RATE_MAX,
    VALID_YEAR_RANGE,
)
from santepublique.data.vaccination_dashboard.models import DataQualityIndicator
from santepublique.data.vaccination_dashboard.schemas import CsvSchema
from santepublique.data.vaccination_dashboard.transformers import CoercionReport

_COVERAGE_SCHEMAS = {
    schemas.DEPARTMENTAL_COVERAGE.name,
    schemas.NATIONAL_COVERAGE.name,
    schemas.REGIONAL_COVERAGE.name,
}
_FLU_SCHEMAS = {
    schemas.FLU_DEPARTMENTAL.name,
    schemas.FLU_NATIONAL.name,
    schemas.FLU_REGIONAL.name,
}


def validate_dataset(
    df: pd.DataFrame, schema: CsvSchema, report: CoercionReport
) -> dict[str, Any]:
    """Validate one transformed file.

    Args:
        df: Output of the schema's transformer
        schema: Schema the file was read with
        report: Repairs applied by the transformer

    Returns:
        Dict with is_valid, errors, warnings and stats
    """
    results: dict[str, Any] = {
        "is_valid": True,
        "errors": [],
        "warnings": [],
        "stats": {"record_count": len(df), **report.as_dict()},
    }

    if df.empty:
        results["errors"].append(f"No data found in {schema.name}")
        results["is_valid"] = False
        return results

    if report.missing_columns:
        results["warnings"].append(f"Missing columns: {report.missing_columns}")
    if report.dropped_rows:
        results["warnings"].append(
            f"{report.dropped_rows} rows without {', '.join(schema.mandatory)}"
        )
    if report.invalid_fields:
        results["warnings"].append(f"{report.invalid_fields} non-numeric values")
    if report.year_fallbacks:
        results["warnings"].append(f"{report.year_fallbacks} rows with missing dates")

    if schema.name in _COVERAGE_SCHEMAS:
        if report.out_of_range_fields:
            results["warnings"].append(
                f"{report.out_of_range_fields} coverage values outside 0-100%"
            )
        _check_years(df, results)
    elif schema.name in _FLU_SCHEMAS:
        _check_flu_rates(df, results)
    elif "value" in df.columns:
        negative = int((df["value"] < 0).sum())
        if negative:
            results["warnings"].append(f"{negative} negative values")

    return results


def to_indicator(
    file_name: str, results: dict[str, Any], checked_at: datetime | None = None
) -> DataQualityIndicator:
    """Summarize a validation result for the data-quality panel."""
    if results["errors"]:
        status, message = "error", "; ".join(results["errors"])
    elif results["warnings"]:
        status, message = "warning", "; ".join(results["warnings"])
    else:
        status, message = "success", "Data loaded"
    return DataQualityIndicator(
        file_name=file_name,
        status=status,
        message=message,
        record_count=int(results["stats"].get("record_count", 0)),
        checked_at=checked_at or datetime.now(),
    )


def source_error_indicator(file_name: str, error: Exception) -> DataQualityIndicator:
    """Indicator of a file that could not be fetched or parsed."""
    return DataQualityIndicator(
        file_name=file_name,
        status="error",
        message=str(error),
        record_count=0,
        checked_at=datetime.now(),
    )


def _check_years(df: pd.DataFrame, results: dict[str, Any]) -> None:
    low, high = VALID_YEAR_RANGE
    years = df["year"].dropna()
    outside = int(((years < low) | (years > high)).sum())
    if outside:
        results["warnings"].append(f"{outside} rows with years outside {low}-{high}")
    if not years.empty:
        results["stats"]["min_year"] = int(years.min())
        results["stats"]["max_year"] = int(years.max())


def _check_flu_rates(df: pd.DataFrame, results: dict[str, Any]) -> None:
    aberrant = (
        (df["urgency_rate"] < 0)
        | (df["urgency_rate"] > FLU_RATE_MAX)
        | (df["hospitalization_rate"] < 0)
        | (df["hospitalization_rate"] > FLU_RATE_MAX)
        | (df["sos_rate"] < 0)
        | (df["sos_rate"] > FLU_SOS_RATE_MAX)
    )
    count = int(aberrant.sum())
    if count:
        results["warnings"].append(f"{count} rows with aberrant flu rates")
