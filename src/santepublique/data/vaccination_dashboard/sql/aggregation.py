"""Source registration, per-department aggregation and ranking templates."""

__all__ = [
    "COMPUTE_NATIONAL_AVERAGE",
    "COUNT_DEPARTMENTS",
    "CREATE_DEPARTMENT_AGGREGATES",
    "FILTER_DEPARTMENT_ROWS",
    "RANK_DEPARTMENTS",
    "REGISTER_NATIONAL_ROWS",
    "REGISTER_SOURCE_ROWS",
    "SELECT_RANKED_DEPARTMENTS",
]

# Placeholders: {columns} = typed column list built from the DataFrame dtypes
REGISTER_SOURCE_ROWS = (
    "CREATE OR REPLACE TABLE source_rows AS SELECT {columns} FROM source_rows_df"
)
REGISTER_NATIONAL_ROWS = (
    "CREATE OR REPLACE TABLE national_rows AS SELECT {columns} FROM national_rows_df"
)

FILTER_DEPARTMENT_ROWS = """
CREATE OR REPLACE TABLE department_rows AS
SELECT *
FROM source_rows
WHERE department_code <> ''
{year_filter}
"""

# AVG and COUNT skip NULLs, so every value column is averaged over its own
# observations. Departments without a single primary observation are
# dropped by the HAVING clause.
# Placeholders: {primary} = primary metric expression,
# {value_columns} = ",\n    AVG(expr) AS alias" per breakdown column.
CREATE_DEPARTMENT_AGGREGATES = """
CREATE OR REPLACE TABLE department_aggregates AS
SELECT
    department_code,
    arg_min(department_name, row_id) AS department_name,
    MIN(row_id) AS first_seen,
    AVG({primary}) AS primary_metric,
    COUNT({primary}) AS observations{value_columns}
FROM department_rows
GROUP BY department_code
HAVING COUNT({primary}) > 0
"""

COUNT_DEPARTMENTS = "SELECT COUNT(*) FROM department_aggregates"

# Ties keep the order in which departments first appear in the source.
# Placeholders: {direction} = DESC (coverage) or ASC (flu activity)
RANK_DEPARTMENTS = """
CREATE OR REPLACE TABLE department_ranking AS
SELECT
    *,
    ROW_NUMBER() OVER (ORDER BY primary_metric {direction}, first_seen) AS ranking,
    COUNT(*) OVER () AS total
FROM department_aggregates
"""

# percentile = round(((N - rank_index) / N) * 100), rank_index 0-based
# Placeholders: {detail_columns}, {detail_joins} = flu surveillance extras
SELECT_RANKED_DEPARTMENTS = """
SELECT
    r.*,
    CAST(
        ROUND(((r.total - (r.ranking - 1)) / CAST(r.total AS DOUBLE)) * 100)
        AS INTEGER
    ) AS percentile{detail_columns}
FROM department_ranking r
{detail_joins}
ORDER BY r.ranking
"""

# Placeholders: {primary}, {value_columns}, {where_clause}
COMPUTE_NATIONAL_AVERAGE = """
SELECT
    AVG({primary}) AS primary_metric,
    COUNT({primary}) AS observations,
    MIN(year) AS first_year,
    MAX(year) AS last_year{value_columns}
FROM national_rows
{where_clause}
"""
