"""
Core HMDA Manufactured-Housing Functionality
============================================

This module contains the pipeline stages that turn raw HMDA, census and
lender inputs into a loan-level dataset with an imputed manufactured-housing
flag.

Modules
-------
- config: Configuration, path management and vintage rules
- errors: Data integrity exceptions
- diagnostics: Match-rate accounting for each stage
- import_data: HMDA, census and CPI readers
- lenders: HUD manufactured-home lender list
- crosswalk: NHGIS tract crosswalk resolution
- merge: Covariate, lender and price-index merges
- features: Derived loan and tract features
- model: LightGBM classifier training and imputation
- workflows: End-to-end orchestration
"""

# Import configuration constants first; utils modules depend on them
from .config import (
    # Path configuration
    PROJECT_DIR,
    DATA_DIR,
    RAW_DIR,
    DERIVED_DIR,
    CROSSWALK_DIR,
    RESULTS_DIR,
    PipelineConfig,
    # Vintage rules
    TARGET_VINTAGE,
    tract_vintage_for_year,
    census_decade_for_year,
    census_decade_for_table,
    census_vintage_for_table,
    # Column lists
    COVARIATE_COLUMNS,
    SELECTED_FEATURES,
    NUMERIC_FEATURES,
    CATEGORICAL_FEATURES,
)
from .errors import DataIntegrityError, GeoIDError
from .diagnostics import StageDiagnostics

# Import stage functions
from .import_data import (
    filter_home_purchase_loans,
    import_hmda_year,
    prepare_census_table,
    load_census_tables,
    prepare_cpi,
    load_cpi,
)
from .lenders import (
    combine_lender_sheets,
    load_manufactured_lenders,
    unique_lender_keys,
)
from .crosswalk import (
    load_crosswalk,
    load_crosswalks,
    resolve_crosswalk,
    apply_crosswalk,
)
from .merge import (
    harmonize_census_tracts,
    county_medians,
    merge_covariates,
    merge_lenders,
    merge_price_index,
)
from .features import (
    safe_ratio,
    loan_bin_expr,
    derive_features,
)

__all__ = [
    # Path configuration
    "PROJECT_DIR",
    "DATA_DIR",
    "RAW_DIR",
    "DERIVED_DIR",
    "CROSSWALK_DIR",
    "RESULTS_DIR",
    "PipelineConfig",
    # Vintage rules
    "TARGET_VINTAGE",
    "tract_vintage_for_year",
    "census_decade_for_year",
    "census_decade_for_table",
    "census_vintage_for_table",
    # Column lists
    "COVARIATE_COLUMNS",
    "SELECTED_FEATURES",
    "NUMERIC_FEATURES",
    "CATEGORICAL_FEATURES",
    # Errors and diagnostics
    "DataIntegrityError",
    "GeoIDError",
    "StageDiagnostics",
    # Import functions
    "filter_home_purchase_loans",
    "import_hmda_year",
    "prepare_census_table",
    "load_census_tables",
    "prepare_cpi",
    "load_cpi",
    # Lender list
    "combine_lender_sheets",
    "load_manufactured_lenders",
    "unique_lender_keys",
    # Crosswalk
    "load_crosswalk",
    "load_crosswalks",
    "resolve_crosswalk",
    "apply_crosswalk",
    # Merges
    "harmonize_census_tracts",
    "county_medians",
    "merge_covariates",
    "merge_lenders",
    "merge_price_index",
    # Features
    "safe_ratio",
    "loan_bin_expr",
    "derive_features",
]
