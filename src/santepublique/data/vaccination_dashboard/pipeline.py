"""DuckDB-based aggregation of source rows into ranked department records.

For one data type and year the pipeline:
1. registers the transformed rows and keeps the requested year
2. averages every metric per department, each over its own observations
3. replaces sparse results by a single national record when the data type
   allows it
4. adds flu-surveillance details (weekly trend, seasonal comparison)
5. ranks departments and computes their percentile
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import duckdb
import pandas as pd
from loguru import logger

from santepublique.data.vaccination_dashboard import sql
from santepublique.data.vaccination_dashboard.constants import (
    FALLBACK_THRESHOLD,
    NATIONAL_CODE,
    NATIONAL_NAME,
    NATIONAL_POPULATION,
    PLACEHOLDER_POPULATION,
    TREND_THRESHOLD,
)
from santepublique.data.vaccination_dashboard.metrics import MetricSpec
from santepublique.data.vaccination_dashboard.models import (
    DepartmentRecord,
    FluDetail,
    FluTrend,
)

_FLU_DETAIL_COLUMNS = ",\n    w.weekly_trend,\n    s.seasonal_comparison"
_FLU_DETAIL_JOINS = (
    "LEFT JOIN weekly_trend w ON r.department_code = w.department_code\n"
    "LEFT JOIN seasonal_comparison s ON r.department_code = s.department_code"
)


class AggregationPipeline:
    """Aggregate, rank and finalize department records for one data type.

    Example:
        pipeline = AggregationPipeline(get_metric("grippe-vaccination"))
        records = pipeline.run(coverage_df, 2023, national=national_df)
    """

    def __init__(
        self,
        metric: MetricSpec,
        fallback_threshold: int = FALLBACK_THRESHOLD,
    ) -> None:
        self.metric = metric
        self.fallback_threshold = fallback_threshold
        self.conn = duckdb.connect()

        # (label, alias, expression) of every averaged value column
        self._age_columns = [
            (label, f"age_{i}", expr)
            for i, (label, expr) in enumerate(metric.age_groups.items())
        ]
        self._breakdown_columns = [
            (label, f"breakdown_{i}", expr)
            for i, (label, expr) in enumerate(metric.breakdown.items())
        ]

    def run(
        self,
        rows: pd.DataFrame,
        year: int | None = None,
        *,
        national: pd.DataFrame | None = None,
        national_name: str = NATIONAL_NAME,
        population: Mapping[str, int] | None = None,
    ) -> list[DepartmentRecord]:
        """Produce the ranked department list.

        Args:
            rows: Transformed departmental rows (all years)
            year: Year to keep, None for all years
            national: Transformed national rows, used when fewer than
                ``fallback_threshold`` departments have data
            national_name: Display name of the national record; may use
                {year}, {first} and {last}
            population: Department code -> population estimate

        Returns:
            Records ordered by ranking
        """
        population = population or {}
        self._register_dataframe("source_rows_df", rows)
        self._execute(sql.REGISTER_SOURCE_ROWS.format(columns=_typed_columns(rows)))
        self._execute(
            sql.FILTER_DEPARTMENT_ROWS.format(
                year_filter=f"AND year = {int(year)}" if year is not None else ""
            )
        )
        self._execute(
            sql.CREATE_DEPARTMENT_AGGREGATES.format(
                primary=self.metric.primary,
                value_columns=self._value_columns(),
            )
        )

        departments = self._fetchone(sql.COUNT_DEPARTMENTS)
        logger.debug(
            "{} ({}): {} departments with data",
            self.metric.data_type.value,
            year if year is not None else "all years",
            departments,
        )

        if (
            self.metric.national_fallback
            and departments < self.fallback_threshold
            and national is not None
        ):
            record = self.national_record(national, year, name=national_name)
            if record is not None:
                logger.info(
                    "Only {} departments with {} data for {}, using national value",
                    departments,
                    self.metric.data_type.value,
                    year,
                )
                return [record]
            logger.warning(
                "No national {} value for {}, keeping {} departments",
                self.metric.data_type.value,
                year,
                departments,
            )

        detail_columns = detail_joins = ""
        if self.metric.is_flu_surveillance:
            self._create_flu_details(year)
            detail_columns, detail_joins = _FLU_DETAIL_COLUMNS, _FLU_DETAIL_JOINS

        direction = "DESC" if self.metric.higher_is_better else "ASC"
        self._execute(sql.RANK_DEPARTMENTS.format(direction=direction))
        ranked = self._execute(
            sql.SELECT_RANKED_DEPARTMENTS.format(
                detail_columns=detail_columns, detail_joins=detail_joins
            )
        ).df()

        return [
            self._to_record(row, year, population)
            for row in ranked.to_dict("records")
        ]

    def national_record(
        self,
        national: pd.DataFrame,
        year: int | None = None,
        *,
        name: str = NATIONAL_NAME,
    ) -> DepartmentRecord | None:
        """Average national rows into the "FR" pseudo-department.

        Args:
            national: Transformed national rows
            year: Year to keep, None to average every row given
            name: Display name; may use {year}, {first} and {last}

        Returns:
            The national record, or None if no row carries the metric
        """
        self._register_dataframe("national_rows_df", national)
        self._execute(
            sql.REGISTER_NATIONAL_ROWS.format(columns=_typed_columns(national))
        )
        result = (
            self._execute(
                sql.COMPUTE_NATIONAL_AVERAGE.format(
                    primary=self.metric.primary,
                    value_columns=self._value_columns(),
                    where_clause=(
                        f"WHERE year = {int(year)}" if year is not None else ""
                    ),
                )
            )
            .df()
            .iloc[0]
            .to_dict()
        )
        if not result["observations"]:
            return None

        return DepartmentRecord(
            code=NATIONAL_CODE,
            name=name.format(
                year=year,
                first=_as_int(result["first_year"]),
                last=_as_int(result["last_year"]),
            ),
            data_type=self.metric.data_type,
            primary_metric=float(result["primary_metric"]),
            population=NATIONAL_POPULATION,
            year=year,
            age_group_breakdown=self._age_groups(result),
            vaccine_type_breakdown=self._vaccine_types(result),
            ranking=1,
            percentile=100,
        )

    def close(self) -> None:
        self.conn.close()

    # -------------------------------------------------------------------------
    # Private helpers
    # -------------------------------------------------------------------------

    def _execute(self, query: str) -> duckdb.DuckDBPyConnection:
        """Execute SQL query."""
        return self.conn.execute(query)

    def _fetchone(self, query: str) -> Any:
        """Execute query and return first value."""
        return self.conn.execute(query).fetchone()[0]

    def _register_dataframe(self, name: str, df: pd.DataFrame) -> None:
        """Register DataFrame as DuckDB table."""
        self.conn.register(name, df)

    def _value_columns(self) -> str:
        """Build the AVG() column list of the age-group and breakdown values."""
        return "".join(
            f",\n    AVG({expr}) AS {alias}"
            for _, alias, expr in self._age_columns + self._breakdown_columns
        )

    def _create_flu_details(self, year: int | None) -> None:
        """Create the weekly_trend and seasonal_comparison tables."""
        self._execute(
            sql.CREATE_WEEKLY_TREND.format(
                primary=self.metric.primary, threshold=TREND_THRESHOLD
            )
        )
        if year is None:
            self._execute(sql.CREATE_EMPTY_SEASONAL_COMPARISON)
        else:
            self._execute(
                sql.CREATE_SEASONAL_COMPARISON.format(
                    primary=self.metric.primary, previous_year=int(year) - 1
                )
            )

    def _age_groups(self, row: dict[str, Any]) -> dict[str, float]:
        return {
            label: _as_float(row[alias]) or 0.0
            for label, alias, _ in self._age_columns
        }

    def _breakdown(self, row: dict[str, Any]) -> dict[str, float]:
        """Breakdown values with at least one observation."""
        values = {
            label: _as_float(row[alias]) for label, alias, _ in self._breakdown_columns
        }
        return {label: value for label, value in values.items() if value is not None}

    def _vaccine_types(self, row: dict[str, Any]) -> dict[str, float] | None:
        if not self.metric.data_type.is_vaccination:
            return None
        return self._breakdown(row)

    def _flu_detail(self, row: dict[str, Any]) -> FluDetail | None:
        if not self.metric.is_flu_surveillance:
            return None
        rates = self._breakdown(row)
        trend = row.get("weekly_trend")
        return FluDetail(
            urgency_visits=rates.get("urgency_visits", 0.0),
            hospitalizations=rates.get("hospitalizations", 0.0),
            sos_consultations=rates.get("sos_consultations", 0.0),
            weekly_trend=FluTrend(trend) if isinstance(trend, str) else FluTrend.STABLE,
            seasonal_comparison=_as_float(row.get("seasonal_comparison")) or 0.0,
        )

    def _to_record(
        self,
        row: dict[str, Any],
        year: int | None,
        population: Mapping[str, int],
    ) -> DepartmentRecord:
        code = row["department_code"]
        return DepartmentRecord(
            code=code,
            name=row["department_name"] or code,
            data_type=self.metric.data_type,
            primary_metric=float(row["primary_metric"]),
            population=population.get(code, PLACEHOLDER_POPULATION),
            year=year,
            age_group_breakdown=self._age_groups(row),
            vaccine_type_breakdown=self._vaccine_types(row),
            flu_detail=self._flu_detail(row),
            ranking=int(row["ranking"]),
            percentile=int(row["percentile"]),
        )


def _typed_columns(df: pd.DataFrame) -> str:
    """Build a SELECT list that pins each column's SQL type.

    NaN in float columns becomes NULL so that AVG/COUNT skip it.
    """
    columns = []
    for name, dtype in df.dtypes.items():
        if name == "row_id":
            columns.append("CAST(row_id AS BIGINT) AS row_id")
        elif name == "year":
            columns.append("CAST(year AS INTEGER) AS year")
        elif pd.api.types.is_float_dtype(dtype):
            columns.append(
                f"CASE WHEN isnan(CAST({name} AS DOUBLE)) THEN NULL "
                f"ELSE CAST({name} AS DOUBLE) END AS {name}"
            )
        else:
            columns.append(f"COALESCE(CAST({name} AS VARCHAR), '') AS {name}")
    return ",\n    ".join(columns)


def _as_float(value: Any) -> float | None:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _as_int(value: Any) -> int | None:
    if value is None or pd.isna(value):
        return None
    return int(value)
