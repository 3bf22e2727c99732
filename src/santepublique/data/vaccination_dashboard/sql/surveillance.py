"""Flu-surveillance detail templates (weekly trend, seasonal comparison)."""

__all__ = [
    "CREATE_EMPTY_SEASONAL_COMPARISON",
    "CREATE_SEASONAL_COMPARISON",
    "CREATE_WEEKLY_TREND",
]

# Compares each department's activity over its two most recent weeks.
# Weeks are ordered by their start date (ISO or DD/MM/YYYY), the week
# label only breaking ties between rows without a parseable date.
# Placeholders: {primary}, {threshold} = relative change for up/down
CREATE_WEEKLY_TREND = """
CREATE OR REPLACE TABLE weekly_trend AS
WITH dated AS (
    SELECT
        *,
        COALESCE(
            TRY_CAST(week_start AS DATE),
            CAST(TRY_STRPTIME(week_start, '%d/%m/%Y') AS DATE)
        ) AS week_date
    FROM department_rows
),
weekly AS (
    SELECT
        department_code,
        week_date,
        week,
        AVG({primary}) AS activity
    FROM dated
    GROUP BY department_code, week_date, week
),
ordered AS (
    SELECT
        department_code,
        activity,
        ROW_NUMBER() OVER (
            PARTITION BY department_code
            ORDER BY week_date DESC NULLS LAST, week DESC
        ) AS recency
    FROM weekly
    WHERE activity IS NOT NULL
),
paired AS (
    SELECT
        department_code,
        MAX(CASE WHEN recency = 1 THEN activity END) AS latest,
        MAX(CASE WHEN recency = 2 THEN activity END) AS previous
    FROM ordered
    WHERE recency <= 2
    GROUP BY department_code
)
SELECT
    department_code,
    CASE
        WHEN previous IS NULL THEN 'stable'
        WHEN previous = 0 THEN CASE WHEN latest > 0 THEN 'up' ELSE 'stable' END
        WHEN (latest - previous) / previous > {threshold} THEN 'up'
        WHEN (latest - previous) / previous < -{threshold} THEN 'down'
        ELSE 'stable'
    END AS weekly_trend
FROM paired
"""

# Percent change of the selected year's mean activity against the previous
# year, over all source rows. 0 when the previous year has no activity.
# Placeholders: {primary}, {previous_year}
CREATE_SEASONAL_COMPARISON = """
CREATE OR REPLACE TABLE seasonal_comparison AS
WITH previous AS (
    SELECT department_code, AVG({primary}) AS activity
    FROM source_rows
    WHERE year = {previous_year} AND department_code <> ''
    GROUP BY department_code
)
SELECT
    a.department_code,
    CASE
        WHEN p.activity IS NULL OR p.activity = 0 THEN 0.0
        ELSE (a.primary_metric - p.activity) / p.activity * 100
    END AS seasonal_comparison
FROM department_aggregates a
LEFT JOIN previous p ON a.department_code = p.department_code
"""

CREATE_EMPTY_SEASONAL_COMPARISON = """
CREATE OR REPLACE TABLE seasonal_comparison AS
SELECT department_code, 0.0 AS seasonal_comparison
FROM department_aggregates
"""
