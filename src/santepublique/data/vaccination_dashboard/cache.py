"""Process-wide metadata shared by every dashboard request."""

from __future__ import annotations

from datetime import datetime

from santepublique.data.vaccination_dashboard.constants import (
    NATIONAL_CODE,
    NATIONAL_POPULATION,
    PLACEHOLDER_POPULATION,
)


class DashboardCache:
    """Available years and population lookup, computed once per process.

    Departmental data is never cached: it is recomputed on each request.
    """

    def __init__(self) -> None:
        self.available_years: list[int] | None = None
        self.population: dict[str, int] | None = None
        self.loaded_at: datetime | None = None

    @property
    def is_loaded(self) -> bool:
        return self.available_years is not None and self.population is not None

    def store_years(self, years: list[int]) -> None:
        self.available_years = sorted(years)
        self.loaded_at = datetime.now()

    def store_population(self, department_codes: list[str]) -> None:
        """Build the population lookup from the department codes seen."""
        self.population = {code: PLACEHOLDER_POPULATION for code in department_codes}
        self.population[NATIONAL_CODE] = NATIONAL_POPULATION
        self.loaded_at = datetime.now()

    def population_for(self, code: str) -> int:
        if code == NATIONAL_CODE:
            return NATIONAL_POPULATION
        return (self.population or {}).get(code, PLACEHOLDER_POPULATION)

    def invalidate(self) -> None:
        """Forget everything; the next request reloads."""
        self.available_years = None
        self.population = None
        self.loaded_at = None
