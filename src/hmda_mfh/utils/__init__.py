"""
Utility Functions for HMDA Manufactured-Housing Processing
==========================================================

Helper functions shared by the pipeline stages: identifier normalisation,
schema handling, file I/O, cleaning and summary tables.

Modules
-------
- geo: fixed-width FIPS identifiers (state, county, tract, block)
- schema: column renaming across HMDA vintages
- io: delimited/zipped/parquet readers and writers
- cleaning: NA handling, numeric coercion, median fills
- identity: loan keys, respondent ids, uniqueness checks
- summary: descriptive statistics by property type
"""

from .geo import (
    normalize_geoid,
    geoid_expr,
    normalize_geoid_column,
    add_geoid_columns,
)
from .schema import (
    rename_hmda_columns,
)
from .io import (
    should_process_output,
    get_delimiter,
    read_delimited,
    read_table,
    write_table,
)
from .cleaning import (
    replace_na_like_values,
    coerce_numeric_columns,
    negative_to_null,
    fill_group_median,
)
from .identity import (
    add_identity_keys,
    respondent_id_expr,
    assert_unique_keys,
    deduplicate_records,
)
from .summary import (
    summarize_by_property_type,
    format_summary_table,
    save_summary_table,
)

__all__ = [
    # Geography
    "normalize_geoid",
    "geoid_expr",
    "normalize_geoid_column",
    "add_geoid_columns",

    # Schema and file handling
    "rename_hmda_columns",
    "should_process_output",
    "get_delimiter",
    "read_delimited",
    "read_table",
    "write_table",

    # Data cleaning
    "replace_na_like_values",
    "coerce_numeric_columns",
    "negative_to_null",
    "fill_group_median",

    # Key utilities
    "add_identity_keys",
    "respondent_id_expr",
    "assert_unique_keys",
    "deduplicate_records",

    # Summary tables
    "summarize_by_property_type",
    "format_summary_table",
    "save_summary_table",
]
