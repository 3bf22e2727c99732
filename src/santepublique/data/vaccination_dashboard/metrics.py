"""Metric definitions: how each data type reads the source rows.

Expressions are DuckDB SQL over the columns produced by the transformers.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from santepublique.data.vaccination_dashboard.constants import (
    COVERAGE_INDICATOR_COLUMNS,
    FLU_AGE_CLASS_65_PLUS,
    FLU_AGE_CLASS_ALL,
    SOS_WEIGHT,
)
from santepublique.data.vaccination_dashboard.models import DataType

FLU_ACTIVITY = f"urgency_rate + {SOS_WEIGHT} * sos_rate"


@dataclass(frozen=True)
class MetricSpec:
    """Aggregation recipe for one data type.

    Attributes:
        data_type: Data type this recipe serves
        primary: Expression of the primary metric
        age_groups: Age-group label -> expression
        breakdown: Breakdown label -> expression (vaccine types for
            vaccination, surveillance rates for flu)
        higher_is_better: Rank descending (coverage) or ascending (activity)
        national_fallback: Replace sparse results by a national record
        national_column: National coverage column of the primary metric
    """

    data_type: DataType
    primary: str
    age_groups: dict[str, str] = field(default_factory=dict)
    breakdown: dict[str, str] = field(default_factory=dict)
    higher_is_better: bool = True
    national_fallback: bool = False
    national_column: str | None = None

    @property
    def is_flu_surveillance(self) -> bool:
        return self.data_type is DataType.FLU_SURVEILLANCE


_VACCINE_TYPES = {name: name for name in COVERAGE_INDICATOR_COLUMNS}


def _vaccination(data_type, primary, age_groups):
    return MetricSpec(
        data_type=data_type,
        primary=primary,
        age_groups=age_groups,
        breakdown=_VACCINE_TYPES,
        higher_is_better=True,
        national_fallback=True,
        national_column=primary,
    )


METRICS = {
    DataType.GRIPPE_VACCINATION: _vaccination(
        DataType.GRIPPE_VACCINATION,
        "flu_65_plus",
        {"65+": "flu_65_plus", "<65": "flu_under_65_at_risk"},
    ),
    DataType.HPV_VACCINATION: _vaccination(
        DataType.HPV_VACCINATION,
        "hpv_girls_2_doses_16",
        {"girls_15": "hpv_girls_1_dose_15", "boys_15": "hpv_boys_1_dose_15"},
    ),
    DataType.COVID_VACCINATION: _vaccination(
        DataType.COVID_VACCINATION,
        "covid_65_plus",
        {"65+": "covid_65_plus"},
    ),
    DataType.MENINGOCOQUE_VACCINATION: _vaccination(
        DataType.MENINGOCOQUE_VACCINATION,
        "meningococcus_c_10_14",
        {
            "10-14": "meningococcus_c_10_14",
            "15-19": "meningococcus_c_15_19",
            "20-24": "meningococcus_c_20_24",
        },
    ),
    DataType.FLU_SURVEILLANCE: MetricSpec(
        data_type=DataType.FLU_SURVEILLANCE,
        primary=FLU_ACTIVITY,
        age_groups={
            "65+": (
                f"CASE WHEN age_class = '{FLU_AGE_CLASS_65_PLUS}' "
                f"THEN {FLU_ACTIVITY} END"
            ),
            "<65": (
                f"CASE WHEN age_class NOT IN ('', '{FLU_AGE_CLASS_ALL}', "
                f"'{FLU_AGE_CLASS_65_PLUS}') THEN {FLU_ACTIVITY} END"
            ),
        },
        breakdown={
            "urgency_visits": "urgency_rate",
            "hospitalizations": "hospitalization_rate",
            "sos_consultations": "sos_rate",
        },
        higher_is_better=False,
    ),
}


def get_metric(data_type: DataType | str) -> MetricSpec:
    """Return the metric recipe of a data type (ValueError if unknown)."""
    return METRICS[DataType.parse(data_type)]
