"""Domain records produced by the aggregation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from santepublique.data.vaccination_dashboard.constants import (
    COVERAGE_INDICATOR_COLUMNS,
    DATA_TYPE_CATALOGUE,
    PLACEHOLDER_POPULATION,
)


class DataType(str, Enum):
    """Dashboard data selections."""

    GRIPPE_VACCINATION = "grippe-vaccination"
    HPV_VACCINATION = "hpv-vaccination"
    COVID_VACCINATION = "covid-vaccination"
    MENINGOCOQUE_VACCINATION = "meningocoque-vaccination"
    FLU_SURVEILLANCE = "flu-surveillance"

    @property
    def is_vaccination(self) -> bool:
        return self is not DataType.FLU_SURVEILLANCE

    @property
    def info(self) -> dict[str, Any]:
        return DATA_TYPE_CATALOGUE[self.value]

    @classmethod
    def parse(cls, value: str | DataType) -> DataType:
        """Return the DataType for a string, raising ValueError on unknown types."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            expected = ", ".join(t.value for t in cls)
            raise ValueError(
                f"Unknown data type {value!r}. Expected one of: {expected}"
            ) from None


VACCINATION_TYPES = [t for t in DataType if t.is_vaccination]


class FluTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


@dataclass
class FluDetail:
    """Flu-surveillance detail for one department."""

    urgency_visits: float = 0.0
    hospitalizations: float = 0.0
    sos_consultations: float = 0.0
    weekly_trend: FluTrend = FluTrend.STABLE
    seasonal_comparison: float = 0.0  # % change vs previous year


@dataclass
class DepartmentRecord:
    """One department (or the national pseudo-department) for one request.

    ``primary_metric`` is a coverage percentage for vaccination data types
    and a flu-activity rate (per 100k) for flu surveillance. ``ranking`` and
    ``percentile`` are relative to the result set they were computed over.
    """

    code: str
    name: str
    data_type: DataType
    primary_metric: float
    population: int = PLACEHOLDER_POPULATION
    year: int | None = None
    age_group_breakdown: dict[str, float] = field(default_factory=dict)
    vaccine_type_breakdown: dict[str, float] | None = None
    flu_detail: FluDetail | None = None
    ranking: int | None = None
    percentile: int | None = None

    @property
    def vaccination_coverage(self) -> float | None:
        return self.primary_metric if self.data_type.is_vaccination else None

    @property
    def flu_activity(self) -> float | None:
        return None if self.data_type.is_vaccination else self.primary_metric

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the field names the dashboard front-end consumes."""
        result: dict[str, Any] = {
            "code": self.code,
            "name": self.name,
            "population": self.population,
        }
        if self.data_type.is_vaccination:
            result["vaccinationCoverage"] = self.primary_metric
        else:
            result["fluActivity"] = self.primary_metric
        if self.year is not None:
            result["year"] = self.year
        result["ageGroups"] = dict(self.age_group_breakdown)
        if self.vaccine_type_breakdown is not None:
            # keyed by the published indicator labels
            result["vaccineTypes"] = {
                COVERAGE_INDICATOR_COLUMNS.get(name, name): value
                for name, value in self.vaccine_type_breakdown.items()
            }
        if self.flu_detail is not None:
            result["fluDetails"] = {
                "urgencyVisits": self.flu_detail.urgency_visits,
                "hospitalizations": self.flu_detail.hospitalizations,
                "sosConsultations": self.flu_detail.sos_consultations,
                "weeklyTrend": self.flu_detail.weekly_trend.value,
                "seasonalComparison": self.flu_detail.seasonal_comparison,
            }
        result["ranking"] = self.ranking
        result["percentile"] = self.percentile
        return result


@dataclass(frozen=True)
class DataQualityIndicator:
    """Load status of one source file, as shown by the data-quality panel."""

    file_name: str
    status: str  # "success" | "warning" | "error"
    message: str
    record_count: int
    checked_at: datetime
