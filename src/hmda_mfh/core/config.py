# -*- coding: utf-8 -*-
"""
Configuration management for the HMDA manufactured-housing pipeline.

This module handles path configuration, environment variable setup, and the
constant tables (column lists, census variable maps, vintage rules) shared by
the pipeline stages. Stages receive an explicit :class:`PipelineConfig`
rather than reading module globals directly.
"""

# Import Packages
import math
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal

from decouple import config

# Specific Data Folders
# Note: __file__.parent.parent.parent.parent goes from src/hmda_mfh/core/ back to project root
PROJECT_DIR = Path(config("PROJECT_DIR", default=Path(__file__).parent.parent.parent.parent))
DATA_DIR = Path(config("DATA_DIR", default=PROJECT_DIR / "data"))
RAW_DIR = Path(config("HMDA_RAW_DIR", default=DATA_DIR / "hmda"))
DERIVED_DIR = Path(config("DERIVED_DIR", default=PROJECT_DIR / "derived"))
CROSSWALK_DIR = Path(config("CROSSWALK_DIR", default=PROJECT_DIR / "crosswalk"))
RESULTS_DIR = Path(config("RESULTS_DIR", default=PROJECT_DIR / "results"))


# ============================================================================
# Geography Constants
# ============================================================================

# Fixed widths of canonical identifiers by level
GEOID_WIDTHS = {
    "state": (2,),
    "county": (3,),
    "tract": (6,),
    "block": (3, 4),
    "county_geoid": (5,),
    "tract_geoid": (11,),
}

# Tract boundary vintage all geographies are harmonized to
TARGET_VINTAGE = 2010

# States and DC only (drops PR and territories)
MAX_STATE_FIPS = 56

# NHGIS crosswalk files, keyed by source vintage
CROSSWALK_FILES = {
    1990: ("nhgis_tr1990_tr2010", "tr1990ge"),
    2000: ("nhgis_tr2000_tr2010", "tr2000ge"),
    2020: ("nhgis_tr2020_tr2010", "tr2020ge"),
}


# ============================================================================
# HMDA Constants
# ============================================================================

# Loan record key (pre-2018 HMDA has no universal loan identifier)
LOAN_KEY_COLUMNS = ["sequence_number", "respondent_id", "agency_code"]

# Columns kept from the raw LAR files
HMDA_KEEP_COLUMNS = [
    "sequence_number",
    "year",
    # loan characteristics
    "loan_type",
    "loan_amount",
    # geography
    "state_code",
    "county_code",
    "census_tract",
    "is_urban",
    # lender characteristics
    "agency_code",
    "respondent_id",
    "purchaser_type",
    # applicant characteristics
    "income",
    "applicant_race_1",
    "applicant_sex",
    "co_applicant_race_1",
    "co_applicant_sex",
]

HMDA_INTEGER_COLUMNS = [
    "year",
    "loan_type",
    "loan_purpose",
    "action_taken",
    "occupancy_type",
    "loan_amount",
    "income",
    "agency_code",
    "purchaser_type",
    "property_type",
    "applicant_race_1",
    "applicant_sex",
    "co_applicant_race_1",
    "co_applicant_sex",
]

# First year in which HMDA reports property type (manufactured = 2)
PROPERTY_TYPE_FIRST_YEAR = 2004

# Years in which the public file has no usable sequence number
NO_SEQUENCE_NUMBER_YEARS = (2017,)


# ============================================================================
# Census Constants
# ============================================================================

# ACS 5-year variable codes -> pipeline names
ACS_VARIABLES = {
    "B25024_010E": "mfh_tot",  # mobile homes
    "B25024_001E": "housing_units_tot",  # total housing units
    "B25024_002E": "sfd_tot",  # single family detached
    "B25080_007E": "mfh_value_tot",  # aggregate value for mobile homes
    "B25080_001E": "oo_value_tot",  # aggregate value for all housing
    "B25032_011E": "mfh_oo_tot",  # mobile homes (owner-occupied)
    "B25033_002E": "oo_tot",  # total housing units (owner-occupied)
    "B19013_001E": "inc_hh_median",  # median household income
}

# 2000 decennial census SF3 variable codes -> pipeline names
SF3_VARIABLES = {
    "H030001": "housing_units_tot",
    "H030010": "mfh_tot",
    "H030002": "sfd_tot",
    "H032011": "oo_tot",
    "H032003": "mfh_oo_tot",
    "H079007": "mfh_value_tot",
    "H079001": "oo_value_tot",
    "HCT012001": "inc_hh_median",
}

COVARIATE_COLUMNS = sorted(set(ACS_VARIABLES.values()))


# ============================================================================
# Feature Constants
# ============================================================================

# Nominal dollar columns deflated to CPI base-year dollars
NOMINAL_COLUMNS = ["income", "loan_amount", "mfh_value_tot", "oo_value_tot"]

LOAN_BIN_BREAKS = [0, 20000, 50000, 100000, 200000, math.inf]

SELECTED_FEATURES = [
    # loan characteristics
    "loan_type",
    "loan_amount",
    "loan_to_income",
    # geography
    "is_urban",
    "rural_loan",
    "oo_value_avg",
    "mfh_value_avg",
    "mfh_pct",
    "sfd_pct",
    "mfh_oo_pct",
    "tr2010ge",
    "countyfp",
    "loan_to_value",
    "loan_to_mfh_value",
    # lender characteristics
    "agency_code",
    "respondent_id",
    "purchaser_type",
    "lender_avg_loan",
    "lender_loan_count",
    "lender_avg_inc",
    "property_type_imp",
    "loan_bin",
    # applicant characteristics
    "income",
    "income_to_local",
    "applicant_race_1",
    "applicant_sex",
    "co_applicant_race_1",
    "co_applicant_sex",
]

NUMERIC_FEATURES = [
    "loan_amount",
    "loan_to_income",
    "oo_value_avg",
    "mfh_value_avg",
    "sfd_pct",
    "mfh_oo_pct",
    "mfh_pct",
    "loan_to_value",
    "lender_avg_loan",
    "lender_loan_count",
    "lender_avg_inc",
    "income",
    "income_to_local",
    "rural_loan",
]

CATEGORICAL_FEATURES = [x for x in SELECTED_FEATURES if x not in NUMERIC_FEATURES]

LABEL_COLUMN = "is_manufactured"

LIGHTGBM_PARAMS = {
    "objective": "binary",
    "metric": "auc",
    "learning_rate": 0.05,
    "num_leaves": 31,
    "feature_fraction": 0.8,
    "bagging_fraction": 0.8,
    "max_depth": -1,
    "min_data_in_leaf": 20,
    "max_bin": 3000,
    "cat_smooth": 10,
}


# ============================================================================
# Column Rename Dictionary (Legacy -> Pipeline Names)
# ============================================================================

RENAME_DICTIONARY = {
    # 2007-2017 CFPB files
    "as_of_year": "year",
    "activity_year": "year",
    "applicant_income_000s": "income",
    "loan_amount_000s": "loan_amount",
    "census_tract_number": "census_tract",
    "owner_occupancy": "occupancy_type",
    # Pre-2007 openICPSR files
    "occupancy": "occupancy_type",
    "msa_md": "msamd",
}


# ============================================================================
# Vintage Rules
# ============================================================================


def tract_vintage_for_year(year: int) -> int:
    """Return the tract boundary vintage used by HMDA in a given year.

    Parameters
    ----------
    year : int
        HMDA activity year.

    Returns
    -------
    int
        1990, 2000, 2010 or 2020.
    """
    if 1990 <= year <= 2002:
        return 1990
    elif 2003 <= year <= 2011:
        return 2000
    elif 2012 <= year <= 2021:
        return 2010
    elif 2022 <= year <= 2023:
        return 2020
    raise ValueError(f"Data year not supported: {year}")


def census_decade_for_year(year: int) -> int:
    """Return the covariate decade matched to loans from a given year."""
    if 1990 <= year <= 1999:
        return 1990  # 2000 decennial census
    elif 2000 <= year <= 2009:
        return 2000  # 2009 ACS
    elif 2010 <= year <= 2023:
        return 2010  # 2019 ACS
    raise ValueError(f"No census decade for year: {year}")


def census_decade_for_table(table_year: int) -> int:
    """Decade a census table describes (2000 SF3 -> 1990, 2009 ACS -> 2000)."""
    return math.ceil(table_year / 10) * 10 - 10


def census_vintage_for_table(table_year: int) -> int:
    """Tract boundaries used by a census table (2000 tracts through 2009)."""
    return 2000 if table_year <= 2009 else 2010


# ============================================================================
# Pipeline Configuration
# ============================================================================


@dataclass(frozen=True)
class PipelineConfig:
    """Explicit settings passed into every pipeline stage.

    Defaults come from the decouple-backed module constants, so a bare
    ``PipelineConfig()`` honours ``.env`` / environment overrides.
    """

    data_dir: Path = DATA_DIR
    raw_dir: Path = RAW_DIR
    derived_dir: Path = DERIVED_DIR
    crosswalk_dir: Path = CROSSWALK_DIR
    results_dir: Path = RESULTS_DIR
    target_vintage: int = TARGET_VINTAGE
    cpi_base_year: int = 2010
    nominal_columns: tuple[str, ...] = tuple(NOMINAL_COLUMNS)
    loan_bin_breaks: tuple[float, ...] = tuple(LOAN_BIN_BREAKS)
    build_years: range = range(1990, 2018)
    lender_years: range = range(1993, 2004)
    train_years: range = range(2004, 2014)
    valid_years: range = range(2014, 2016)
    test_years: range = range(2016, 2018)
    history_years: range = range(1990, 2018)
    census_tables: tuple[tuple[str, int], ...] = (("acs", 2009), ("acs", 2019), ("sf3", 2000))
    model_file: str = "mfh-classifier.txt"
    levels_file: str = "mfh-classifier-levels.json"
    num_boost_round: int = 500
    early_stopping_rounds: int = 50
    lightgbm_params: dict[str, Any] = field(default_factory=lambda: dict(LIGHTGBM_PARAMS))
    output_format: Literal["parquet", "csv"] = "parquet"

    @classmethod
    def from_env(cls, **overrides: Any) -> "PipelineConfig":
        """Build a config from environment defaults with keyword overrides."""
        return replace(cls(), **overrides)

    @property
    def model_path(self) -> Path:
        return self.derived_dir / self.model_file

    @property
    def levels_path(self) -> Path:
        return self.derived_dir / self.levels_file

    def loans_path(self, year: int) -> Path:
        """Filtered HMDA file for a year (output of the import stage)."""
        return self.raw_dir / f"hmda_{year}.{self.output_format}"

    def built_path(self, year: int) -> Path:
        """Enriched loan-level file for a year (output of the build stage)."""
        return self.derived_dir / f"hmda_{year}.{self.output_format}"

    def get_stage_dir(
        self,
        stage: Literal["acs", "sf3", "tables", "plots"],
    ) -> Path:
        """Return the folder for a census source or a results subfolder.

        Parameters
        ----------
        stage : {"acs", "sf3", "tables", "plots"}
            Census extract family or results subfolder.

        Returns
        -------
        Path
            The target directory path.
        """
        if stage in ("acs", "sf3"):
            return self.derived_dir / stage
        return self.results_dir / stage
