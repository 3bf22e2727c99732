"""French vaccination coverage and flu surveillance data, by department."""

from santepublique.data.vaccination_dashboard.cache import DashboardCache
from santepublique.data.vaccination_dashboard.csv_parser import parse_csv
from santepublique.data.vaccination_dashboard.logging import configure_logging
from santepublique.data.vaccination_dashboard.models import (
    DataQualityIndicator,
    DataType,
    DepartmentRecord,
    FluDetail,
    FluTrend,
)
from santepublique.data.vaccination_dashboard.pipeline import AggregationPipeline
from santepublique.data.vaccination_dashboard.service import DashboardDataService

__all__ = [
    "AggregationPipeline",
    "DashboardCache",
    "DashboardDataService",
    "DataQualityIndicator",
    "DataType",
    "DepartmentRecord",
    "FluDetail",
    "FluTrend",
    "configure_logging",
    "parse_csv",
]
