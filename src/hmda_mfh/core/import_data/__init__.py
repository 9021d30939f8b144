"""
Source Data Import Functions
============================

Readers that turn the raw inputs of the pipeline into standardised tables.

Modules
-------
- hmda: yearly HMDA LAR files filtered to home-purchase loans (1990-2017)
- census: ACS and SF3 tract covariates
- cpi: BLS consumer price index, annualised and rebased

Example Usage
-------------
>>> from hmda_mfh.core.import_data import import_hmda_year, load_census_tables
>>> import_hmda_year(PipelineConfig(), 1995)
>>> census = load_census_tables(PipelineConfig())
"""

from .hmda import (
    filter_home_purchase_loans,
    find_raw_hmda_file,
    import_hmda_year,
)
from .census import (
    prepare_census_table,
    load_census_tables,
)
from .cpi import (
    prepare_cpi,
    load_cpi,
)

__all__ = [
    # HMDA loans
    "filter_home_purchase_loans",
    "find_raw_hmda_file",
    "import_hmda_year",
    # Census covariates
    "prepare_census_table",
    "load_census_tables",
    # Price index
    "prepare_cpi",
    "load_cpi",
]
