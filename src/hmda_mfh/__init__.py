"""
HMDA Manufactured Housing
=========================

Tools for imputing manufactured-housing status of historical HMDA
home-purchase loans (1990-2017) for research.

HMDA only reports property type from 2004. This package provides
functionality for:
- Filtering yearly LAR files to originated home-purchase loans
- Harmonising census tracts of every vintage to 2010 boundaries
- Merging tract covariates (with county-median fallback), the HUD
  manufactured-lender list and CPI deflators onto loans
- Deriving loan, lender and tract features
- Training a LightGBM classifier on 2004-2017 and imputing 1990-2003

Main Modules
------------
- core: Pipeline stages, classifier and workflows
- utils: Identifier, I/O, cleaning and summary helpers
- cli: The ``hmda-mfh`` command-line interface

Example Usage
-------------
>>> from hmda_mfh import PipelineConfig, build_workflow, train_workflow
>>> config = PipelineConfig()
>>> build_workflow(config, years=range(1990, 2018))
>>> train_workflow(config)

For detailed examples, see the examples/ directory in the repository.

Notes
-----
All tract identifiers are 11-digit strings on 2010 boundaries after the
build stage. Loans whose tract cannot be matched take the median
covariates of their county; loans matched by neither are dropped, and the
share at each level is logged.
"""

__version__ = "0.1.0"
__author__ = "Jonathan E. Becker"

# core is imported before utils: utils modules read core.config
from .core import (
    PipelineConfig,
    DataIntegrityError,
    GeoIDError,
    StageDiagnostics,
    tract_vintage_for_year,
    census_decade_for_year,
    resolve_crosswalk,
    apply_crosswalk,
    harmonize_census_tracts,
    county_medians,
    merge_covariates,
    merge_lenders,
    merge_price_index,
    derive_features,
)
from .core.workflows import (
    import_hmda_workflow,
    import_lenders_workflow,
    build_workflow,
    train_workflow,
    impute_workflow,
    summarize_workflow,
)
from .utils import (
    normalize_geoid,
    normalize_geoid_column,
    add_geoid_columns,
    replace_na_like_values,
    coerce_numeric_columns,
    add_identity_keys,
    deduplicate_records,
    assert_unique_keys,
)

__all__ = [
    "__version__",
    "__author__",
    # Configuration, errors, diagnostics
    "PipelineConfig",
    "DataIntegrityError",
    "GeoIDError",
    "StageDiagnostics",
    "tract_vintage_for_year",
    "census_decade_for_year",
    # Stages
    "normalize_geoid",
    "normalize_geoid_column",
    "add_geoid_columns",
    "resolve_crosswalk",
    "apply_crosswalk",
    "harmonize_census_tracts",
    "county_medians",
    "merge_covariates",
    "merge_lenders",
    "merge_price_index",
    "derive_features",
    # Workflows
    "import_hmda_workflow",
    "import_lenders_workflow",
    "build_workflow",
    "train_workflow",
    "impute_workflow",
    "summarize_workflow",
    # Utilities
    "replace_na_like_values",
    "coerce_numeric_columns",
    "add_identity_keys",
    "deduplicate_records",
    "assert_unique_keys",
]
