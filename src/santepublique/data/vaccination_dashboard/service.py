"""Dashboard data service: the entry point of the presentation layer.

Loads the source files for a (data type, year) selection, runs the
aggregation pipeline and returns ranked department records. Available
years and the population lookup are computed once per process and kept in
a DashboardCache; department data is recomputed on each request.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pandas as pd
from loguru import logger

from santepublique.data.vaccination_dashboard import schemas
from santepublique.data.vaccination_dashboard.cache import DashboardCache
from santepublique.data.vaccination_dashboard.constants import (
    ALL_YEARS,
    CAMPAIGN_COVERAGE_FILE_PATTERN,
    CAMPAIGN_FILE_PATTERN,
    CAMPAIGN_PERCENTAGE_VARIABLE,
    CAMPAIGN_UNDER_65_RATIO,
    CAMPAIGN_YEARS,
    DEFAULT_AVAILABLE_YEARS,
    DEFAULT_YEAR,
    DEPARTMENTAL_COVERAGE_FILE,
    DOSES_ACTS_FILE_PATTERN,
    FALLBACK_THRESHOLD,
    FETCH_TIMEOUT,
    FLU_DEPARTMENTAL_FILE,
    FLU_NATIONAL_FILE,
    FLU_REGIONAL_FILE,
    MIN_VALID_YEAR,
    NATIONAL_AVERAGE_NAME,
    NATIONAL_CAMPAIGN_NAME,
    NATIONAL_COVERAGE_FILE,
    NATIONAL_NAME,
    RECENT_YEARS,
    REGIONAL_COVERAGE_FILE,
)
from santepublique.data.vaccination_dashboard.csv_parser import iter_csv_rows
from santepublique.data.vaccination_dashboard.metrics import MetricSpec, get_metric
from santepublique.data.vaccination_dashboard.models import (
    DataQualityIndicator,
    DataType,
    DepartmentRecord,
)
from santepublique.data.vaccination_dashboard.pipeline import AggregationPipeline
from santepublique.data.vaccination_dashboard.schemas import CsvSchema, SchemaError
from santepublique.data.vaccination_dashboard.sources import CsvSource, SourceError
from santepublique.data.vaccination_dashboard.transformers import (
    CoercionReport,
    to_frame,
    transform_rows,
)
from santepublique.data.vaccination_dashboard.validation import (
    source_error_indicator,
    to_indicator,
    validate_dataset,
)


class DashboardDataService:
    """Serve department data for the dashboard.

    Args:
        data_source: Directory or base URL holding the CSV files
        strict: Raise on fetch failures, schema mismatches and repaired
            values instead of logging them
        fallback_threshold: Minimum departments with data before a
            vaccination result is replaced by the national value
        recent_years: Window of the multi-year national average
        timeout: HTTP timeout in seconds
        cache: Shared metadata cache (a private one by default)

    Example:
        service = DashboardDataService("data")
        records = await service.generate_department_data("hpv-vaccination", 2023)
    """

    def __init__(
        self,
        data_source: str = "data",
        *,
        strict: bool = False,
        fallback_threshold: int = FALLBACK_THRESHOLD,
        recent_years: int = RECENT_YEARS,
        timeout: int = FETCH_TIMEOUT,
        cache: DashboardCache | None = None,
    ) -> None:
        self.source = CsvSource(data_source, timeout=timeout)
        self.strict = strict
        self.fallback_threshold = fallback_threshold
        self.recent_years = recent_years
        self.cache = cache or DashboardCache()

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    async def get_available_years(self) -> list[int]:
        """Years with data, ascending. Computed once, then served from cache."""
        if self.cache.available_years is not None:
            return list(self.cache.available_years)

        coverage, *campaigns = await asyncio.gather(
            self._load(DEPARTMENTAL_COVERAGE_FILE, schemas.DEPARTMENTAL_COVERAGE),
            *(
                self._load(
                    CAMPAIGN_FILE_PATTERN.format(year=year),
                    schemas.CAMPAIGN,
                    optional=True,
                )
                for year in CAMPAIGN_YEARS
            ),
        )
        coverage_df = coverage[0]
        self._remember_population(coverage_df)

        years = {
            int(year)
            for year in coverage_df["year"].dropna().unique()
            if year >= MIN_VALID_YEAR
        }
        years.update(
            year for year, (df, _) in zip(CAMPAIGN_YEARS, campaigns) if not df.empty
        )

        if not years:
            logger.warning(
                "No year found in source files, using {}", DEFAULT_AVAILABLE_YEARS
            )
            years = set(DEFAULT_AVAILABLE_YEARS)

        self.cache.store_years(sorted(years))
        logger.info("Available years: {}", self.cache.available_years)
        return list(self.cache.available_years)

    async def generate_department_data(
        self,
        data_type: DataType | str,
        year: int | str | None = None,
    ) -> list[DepartmentRecord]:
        """Ranked department records for one data type and year.

        Args:
            data_type: Dashboard data type (e.g. "grippe-vaccination")
            year: Calendar year, "all" for every year, None for DEFAULT_YEAR

        Returns:
            Records ordered by ranking. Vaccination results with fewer than
            ``fallback_threshold`` departments are replaced by a single
            national record.

        Raises:
            ValueError: If the data type or year is not recognized
        """
        data_type = DataType.parse(data_type)
        metric = get_metric(data_type)
        target_year = normalize_year(year)

        if data_type.is_vaccination:
            records = await self._vaccination_departments(metric, target_year)
        else:
            records = await self._flu_departments(metric, target_year)

        logger.info(
            "{} ({}): {} records",
            data_type.value,
            target_year if target_year is not None else ALL_YEARS,
            len(records),
        )
        return records

    async def generate_aggregated_data(
        self, data_type: DataType | str
    ) -> list[DepartmentRecord]:
        """Multi-year view of a data type.

        Vaccination types return one national record averaged over the most
        recent years with a national value. Flu surveillance returns the
        department list over all years.
        """
        data_type = DataType.parse(data_type)
        metric = get_metric(data_type)

        if not data_type.is_vaccination:
            return await self.generate_department_data(data_type, ALL_YEARS)

        national, _ = await self._load(
            NATIONAL_COVERAGE_FILE, schemas.NATIONAL_COVERAGE
        )
        window = self._recent_window(national, metric.national_column)
        if not window.empty:
            record = await asyncio.to_thread(
                self._aggregate_national, metric, window, NATIONAL_AVERAGE_NAME
            )
            if record is not None:
                return [record]

        logger.warning(
            "No national {} value, falling back to {} department data",
            data_type.value,
            DEFAULT_YEAR,
        )
        return await self.generate_department_data(data_type, DEFAULT_YEAR)

    async def audit(
        self,
    ) -> tuple[list[DataQualityIndicator], dict[str, dict[str, Any]]]:
        """Load and validate every known source file.

        Never raises on bad files: each file gets an indicator.

        Returns:
            (indicators, validation results by file name)
        """
        targets: list[tuple[str, CsvSchema, int | None, bool]] = [
            (DEPARTMENTAL_COVERAGE_FILE, schemas.DEPARTMENTAL_COVERAGE, None, False),
            (NATIONAL_COVERAGE_FILE, schemas.NATIONAL_COVERAGE, None, False),
            (REGIONAL_COVERAGE_FILE, schemas.REGIONAL_COVERAGE, None, False),
            (FLU_DEPARTMENTAL_FILE, schemas.FLU_DEPARTMENTAL, None, False),
            (FLU_NATIONAL_FILE, schemas.FLU_NATIONAL, None, False),
            (FLU_REGIONAL_FILE, schemas.FLU_REGIONAL, None, False),
        ]
        for year in CAMPAIGN_YEARS:
            targets += [
                (CAMPAIGN_FILE_PATTERN.format(year=year), schemas.CAMPAIGN, year, True),
                (
                    CAMPAIGN_COVERAGE_FILE_PATTERN.format(year=year),
                    schemas.CAMPAIGN_COVERAGE,
                    year,
                    True,
                ),
                (
                    DOSES_ACTS_FILE_PATTERN.format(year=year),
                    schemas.DOSES_ACTS,
                    year,
                    True,
                ),
            ]

        audited = await asyncio.gather(
            *(self._audit_file(*target) for target in targets)
        )
        indicators = [indicator for indicator, _ in audited]
        results = {
            indicator.file_name: result for indicator, result in audited
        }
        return indicators, results

    async def reload(self) -> list[int]:
        """Drop cached metadata and recompute it."""
        self.invalidate()
        return await self.get_available_years()

    def invalidate(self) -> None:
        logger.debug("Invalidating dashboard cache")
        self.cache.invalidate()

    # -------------------------------------------------------------------------
    # Private helpers
    # -------------------------------------------------------------------------

    async def _load(
        self,
        file_name: str,
        schema: CsvSchema,
        *,
        year: int | None = None,
        optional: bool = False,
    ) -> tuple[pd.DataFrame, CoercionReport]:
        """Fetch and transform one file.

        A file that cannot be fetched or does not match its schema
        contributes zero rows, unless the service is strict. Optional files
        (one per campaign year) are expected to be missing sometimes.
        """
        try:
            text = await self.source.fetch(file_name)
            return await asyncio.to_thread(self._transform, text, schema, year)
        except (SourceError, SchemaError) as e:
            if self.strict and not optional:
                raise
            if optional:
                logger.debug("Skipping {}: {}", file_name, e)
            else:
                logger.warning("Could not load {}: {}", file_name, e)
            return transform_rows([], schema, year=year)

    def _transform(
        self, text: str, schema: CsvSchema, year: int | None
    ) -> tuple[pd.DataFrame, CoercionReport]:
        return transform_rows(
            iter_csv_rows(text), schema, year=year, strict=self.strict
        )

    async def _population(self) -> dict[str, int]:
        if self.cache.population is None:
            coverage, _ = await self._load(
                DEPARTMENTAL_COVERAGE_FILE, schemas.DEPARTMENTAL_COVERAGE
            )
            self._remember_population(coverage)
        return dict(self.cache.population)

    def _remember_population(self, coverage: pd.DataFrame) -> None:
        if self.cache.population is None:
            codes = [c for c in coverage["department_code"].unique() if c]
            self.cache.store_population(codes)

    async def _vaccination_departments(
        self, metric: MetricSpec, year: int | None
    ) -> list[DepartmentRecord]:
        (rows, _), (national, _) = await asyncio.gather(
            self._load(DEPARTMENTAL_COVERAGE_FILE, schemas.DEPARTMENTAL_COVERAGE),
            self._load(NATIONAL_COVERAGE_FILE, schemas.NATIONAL_COVERAGE),
        )
        self._remember_population(rows)

        national_name = NATIONAL_NAME
        if (
            year is not None
            and metric.data_type is DataType.GRIPPE_VACCINATION
            and not _has_value(national, metric.national_column, year)
        ):
            campaign = await self._campaign_national(year)
            if campaign is not None:
                national, national_name = campaign, NATIONAL_CAMPAIGN_NAME

        return await asyncio.to_thread(
            self._aggregate,
            metric,
            rows,
            year,
            national=national,
            national_name=national_name,
            population=dict(self.cache.population),
        )

    async def _flu_departments(
        self, metric: MetricSpec, year: int | None
    ) -> list[DepartmentRecord]:
        (rows, _), population = await asyncio.gather(
            self._load(FLU_DEPARTMENTAL_FILE, schemas.FLU_DEPARTMENTAL),
            self._population(),
        )
        return await asyncio.to_thread(
            self._aggregate, metric, rows, year, population=population
        )

    async def _campaign_national(self, year: int) -> pd.DataFrame | None:
        """National flu-vaccination rows estimated from the campaign file.

        The campaign file only publishes the 65+ percentage; the <65 at-risk
        coverage is estimated as a fixed share of it.
        """
        campaign, _ = await self._load(
            CAMPAIGN_FILE_PATTERN.format(year=year), schemas.CAMPAIGN, optional=True
        )
        values = campaign.loc[
            campaign["variable"] == CAMPAIGN_PERCENTAGE_VARIABLE, "value"
        ].dropna()
        values = values[(values > 0) & (values <= 100)]
        if values.empty:
            logger.debug("No campaign percentage for {}", year)
            return None

        percentage = float(values.iloc[0])
        record = {
            "row_id": 0,
            "year": year,
            "flu_65_plus": percentage,
            "flu_under_65_at_risk": percentage * CAMPAIGN_UNDER_65_RATIO,
        }
        return to_frame([record], schemas.NATIONAL_COVERAGE)

    def _recent_window(self, national: pd.DataFrame, column: str) -> pd.DataFrame:
        """National rows of the most recent years carrying a value."""
        valid = national.dropna(subset=[column])
        if valid.empty:
            return valid
        last = int(valid["year"].max())
        return valid[valid["year"] > last - self.recent_years]

    def _aggregate(
        self, metric: MetricSpec, rows: pd.DataFrame, year: int | None, **kwargs
    ) -> list[DepartmentRecord]:
        pipeline = AggregationPipeline(metric, self.fallback_threshold)
        try:
            return pipeline.run(rows, year, **kwargs)
        finally:
            pipeline.close()

    def _aggregate_national(
        self, metric: MetricSpec, national: pd.DataFrame, name: str
    ) -> DepartmentRecord | None:
        pipeline = AggregationPipeline(metric, self.fallback_threshold)
        try:
            return pipeline.national_record(national, None, name=name)
        finally:
            pipeline.close()

    async def _audit_file(
        self, file_name: str, schema: CsvSchema, year: int | None, optional: bool
    ) -> tuple[DataQualityIndicator, dict[str, Any]]:
        try:
            text = await self.source.fetch(file_name)
            df, report = await asyncio.to_thread(
                transform_rows, iter_csv_rows(text), schema, year=year
            )
        except (SourceError, SchemaError) as e:
            indicator = source_error_indicator(file_name, e)
            if optional and isinstance(e, SourceError):
                indicator = DataQualityIndicator(
                    file_name=file_name,
                    status="warning",
                    message="File not available",
                    record_count=0,
                    checked_at=indicator.checked_at,
                )
            result = {
                "is_valid": False,
                "errors": [str(e)],
                "warnings": [],
                "stats": {},
            }
            return indicator, result

        result = validate_dataset(df, schema, report)
        return to_indicator(file_name, result), result


def normalize_year(year: int | str | None) -> int | None:
    """Turn a year selection into a calendar year, None meaning all years.

    Raises:
        ValueError: If the selection is neither a year nor "all"
    """
    if year is None:
        return DEFAULT_YEAR
    if isinstance(year, str):
        if year.strip().lower() == ALL_YEARS:
            return None
        if not year.strip().isdigit():
            raise ValueError(f"Invalid year {year!r}: expected a year or 'all'")
        return int(year)
    return int(year)


def _has_value(df: pd.DataFrame, column: str, year: int) -> bool:
    """Whether any row of the given year carries a value in column."""
    matches = (df["year"] == year).fillna(False) & df[column].notna()
    return bool(matches.any())
