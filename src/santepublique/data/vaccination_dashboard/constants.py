"""Constants for the vaccination and flu-surveillance dashboard."""

# Source files (relative to the data source root: a directory or a base URL)
# Campaign files exist one per year, the other datasets are multi-year.
CAMPAIGN_FILE_PATTERN = "campagne-{year}.csv"
CAMPAIGN_COVERAGE_FILE_PATTERN = "couverture-{year}.csv"
DOSES_ACTS_FILE_PATTERN = "doses-actes-{year}.csv"
CAMPAIGN_YEARS = (2021, 2022, 2023, 2024)

DEPARTMENTAL_COVERAGE_FILE = (
    "couvertures-vaccinales-des-adolescent-et-adultes-departement.csv"
)
NATIONAL_COVERAGE_FILE = (
    "couvertures-vaccinales-des-adolescents-et-adultes-depuis-2011-france.csv"
)
REGIONAL_COVERAGE_FILE = (
    "couvertures-vaccinales-des-adolescents-et-adultes-depuis-2011-region.csv"
)
FLU_NATIONAL_FILE = "grippe-passages-aux-urgences-et-actes-sos-medecins-france.csv"
FLU_DEPARTMENTAL_FILE = (
    "grippe-passages-aux-urgences-et-actes-sos-medecins-departement.csv"
)
FLU_REGIONAL_FILE = "grippe-passages-urgences-et-actes-sos-medecin_reg.csv"

# HTTP timeout for remote data sources (seconds)
FETCH_TIMEOUT = 30

# Year handling
DEFAULT_YEAR = 2024  # used when a date string cannot be parsed
ALL_YEARS = "all"
DEFAULT_AVAILABLE_YEARS = [2021, 2022, 2023, 2024]
MIN_VALID_YEAR = 2000
VALID_YEAR_RANGE = (2010, 2030)  # data-quality audit bounds

# Population lookup (no authoritative source is joined)
PLACEHOLDER_POPULATION = 200_000
NATIONAL_POPULATION = 68_000_000

# National pseudo-department
NATIONAL_CODE = "FR"
NATIONAL_NAME = "France (données nationales)"
NATIONAL_CAMPAIGN_NAME = "France (campagne {year})"
NATIONAL_AVERAGE_NAME = "France (moyenne {first}-{last})"

# Aggregation policy
FALLBACK_THRESHOLD = 10  # min departments with usable data before national fallback
RECENT_YEARS = 5  # window of the multi-year national vaccination average
PERCENTAGE_RANGE = (0.0, 100.0)

# Flu activity = urgency rate + SOS_WEIGHT * SOS Médecins rate
SOS_WEIGHT = 0.1
# Relative week-over-week change beyond which the weekly trend is up/down
TREND_THRESHOLD = 0.05

# Campaign files only publish one percentage; the <65 at-risk coverage is
# estimated from it
CAMPAIGN_PERCENTAGE_VARIABLE = "POURCENTAGE"
CAMPAIGN_UNDER_65_RATIO = 0.3

# Flu age classes ("Classe d'âge" values)
FLU_AGE_CLASS_65_PLUS = "65 ans ou plus"
FLU_AGE_CLASS_ALL = "Tous âges"

# Aberrant-rate thresholds for the flu data-quality audit (per 100k)
FLU_RATE_MAX = 10_000  # urgency visits, hospitalizations
FLU_SOS_RATE_MAX = 50_000

# -----------------------------------------------------------------------------
# Column schemas: logical field -> literal source column
# -----------------------------------------------------------------------------

# Coverage indicators shared by departmental, regional and national files
COVERAGE_INDICATOR_COLUMNS = {
    "hpv_girls_1_dose_15": "HPV filles 1 dose à 15 ans",
    "hpv_girls_2_doses_16": "HPV filles 2 doses à 16 ans",
    "hpv_boys_1_dose_15": "HPV garçons 1 dose à 15 ans",
    "hpv_boys_2_doses_16": "HPV garçons 2 doses à 16 ans",
    "meningococcus_c_10_14": "Méningocoque C 10-14 ans",
    "meningococcus_c_15_19": "Méningocoque C 15-19 ans",
    "meningococcus_c_20_24": "Méningocoque C 20-24 ans",
    "flu_under_65_at_risk": "Grippe moins de 65 ans à risque",
    "flu_65_plus": "Grippe 65 ans et plus",
    "flu_65_74": "Grippe 65-74 ans",
    "flu_75_plus": "Grippe 75 ans et plus",
    "covid_65_plus": "Covid-19 65 ans et plus",
}

DEPARTMENTAL_COVERAGE_COLUMNS = {
    "year": "Année",
    "department_code": "Département Code",
    "department_name": "Département",
    "region": "Région",
    "region_code": "Région Code",
    **COVERAGE_INDICATOR_COLUMNS,
}

NATIONAL_COVERAGE_COLUMNS = {
    "year": "Année",
    **COVERAGE_INDICATOR_COLUMNS,
}

REGIONAL_COVERAGE_COLUMNS = {
    "year": "Année",
    "region": "Région",
    "region_code": "Code région",
    **COVERAGE_INDICATOR_COLUMNS,
}

# Weekly flu surveillance (SurSaUD: emergency visits + SOS Médecins)
FLU_RATE_COLUMNS = {
    "urgency_rate": "Taux de passages aux urgences pour grippe",
    "hospitalization_rate": (
        "Taux d'hospitalisations après passages aux urgences pour grippe"
    ),
    "sos_rate": "Taux d'actes médicaux SOS médecins pour grippe",
}

FLU_NATIONAL_COLUMNS = {
    "week_start": "1er jour de la semaine",
    "week": "Semaine",
    "age_class": "Classe d'âge",
    **FLU_RATE_COLUMNS,
}

FLU_DEPARTMENTAL_COLUMNS = {
    "week_start": "1er jour de la semaine",
    "week": "Semaine",
    "department_code": "Département Code",
    "department_name": "Département",
    "age_class": "Classe d'âge",
    **FLU_RATE_COLUMNS,
    "region": "Région",
    "region_code": "Région Code",
}

FLU_REGIONAL_COLUMNS = {
    "week_start": "1er jour de la semaine",
    "week": "Semaine",
    "age_class": "Classe d'âge",
    **FLU_RATE_COLUMNS,
    "region": "Région",
    "region_code": "Région Code",
}

# Flu vaccination campaign files (IQVIA pharmacy panel)
CAMPAIGN_COLUMNS = {
    "campaign": "campagne",
    "date": "date",
    "variable": "variable",
    "value": "valeur",
    "target": "cible",
}

CAMPAIGN_COVERAGE_COLUMNS = {
    "region": "region",
    "code": "code",
    "variable": "variable",
    "group": "groupe",
    "value": "valeur",
}

DOSES_ACTS_COLUMNS = {
    "campaign": "campagne",
    "date": "date",
    "day": "jour",
    "variable": "variable",
    "group": "groupe",
    "value": "valeur",
}

# -----------------------------------------------------------------------------
# Data-type catalogue (display metadata for the presentation layer)
# -----------------------------------------------------------------------------

DATA_TYPE_CATALOGUE = {
    "grippe-vaccination": {
        "name": "Vaccination Grippe",
        "description": "Vaccination antigrippale saisonnière",
        "target_population": "65 ans et plus + personnes à risque",
        "objective": 75,
        "unit": "%",
    },
    "hpv-vaccination": {
        "name": "Vaccination HPV",
        "description": "Vaccination contre le papillomavirus humain",
        "target_population": "Adolescents 11-14 ans (filles et garçons)",
        "objective": 60,
        "unit": "%",
    },
    "covid-vaccination": {
        "name": "Vaccination COVID-19",
        "description": "Vaccination contre le SARS-CoV-2",
        "target_population": "Population générale 12 ans et plus",
        "objective": 80,
        "unit": "%",
    },
    "meningocoque-vaccination": {
        "name": "Vaccination Méningocoque",
        "description": "Vaccination contre les méningites à méningocoque C",
        "target_population": "Nourrissons et jeunes adultes",
        "objective": 70,
        "unit": "%",
    },
    "flu-surveillance": {
        "name": "Surveillance Grippe",
        "description": "Surveillance épidémiologique des cas de grippe",
        "target_population": "Cas de grippe diagnostiqués",
        "objective": 50,  # epidemic threshold, not a vaccination objective
        "unit": "/100k",
    },
}
