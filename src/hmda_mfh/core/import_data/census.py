"""
Census Tract Covariate Import
=============================

Load tract-level housing and income covariates extracted from the American
Community Survey (ACS 5-year, 2009 and 2019) and the 2000 decennial census
Summary File 3 (SF3), one file per state.

Key Characteristics:
- Variable codes (``B25024_010E``, ``H030010``, ...) are renamed to pipeline
  names (``mfh_tot``, ``housing_units_tot``, ...)
- Negative API sentinels are treated as missing
- ACS gaps are filled with the county median of the same table
- Tract ids are normalised (4-digit tracts widened to 6 digits) and combined
  into 11-digit ids
- Each table is tagged with the decade it describes and its tract vintage
"""

import logging
from typing import Literal

import polars as pl

from ..config import (
    ACS_VARIABLES,
    COVARIATE_COLUMNS,
    SF3_VARIABLES,
    PipelineConfig,
    census_decade_for_table,
    census_vintage_for_table,
)
from ..diagnostics import StageDiagnostics
from ...utils.cleaning import coerce_numeric_columns, fill_group_median, negative_to_null
from ...utils.geo import normalize_geoid_column
from ...utils.io import read_table
from ...utils.schema import rename_hmda_columns

logger = logging.getLogger(__name__)


def prepare_census_table(
    raw: pl.DataFrame,
    source: Literal["acs", "sf3"],
    table_year: int,
) -> tuple[pl.DataFrame, StageDiagnostics]:
    """Standardise one census extract.

    Parameters
    ----------
    raw : pl.DataFrame
        Extract with ``state``, ``county``, ``tract`` columns and either the
        census variable codes or the pipeline names.
    source : {"acs", "sf3"}
        Census product; selects the variable map and whether county-median
        filling applies.
    table_year : int
        Census year of the extract (2000, 2009, 2019).

    Returns
    -------
    tuple[pl.DataFrame, StageDiagnostics]
        Columns ``census_tract``, ``countyfp``, ``decade``, ``vintage`` and
        the covariates, plus the count of rows rejected for malformed ids.
    """
    variable_map = ACS_VARIABLES if source == "acs" else SF3_VARIABLES
    df = rename_hmda_columns(raw, variable_map)

    missing = [c for c in ["state", "county", "tract", *COVARIATE_COLUMNS] if c not in df.columns]
    if missing:
        raise ValueError(f"{source} {table_year} extract is missing columns: {missing}")

    df = coerce_numeric_columns(df, COVARIATE_COLUMNS)
    df = negative_to_null(df, COVARIATE_COLUMNS)
    if source == "acs":
        df = fill_group_median(df, COVARIATE_COLUMNS, by=["state", "county"])

    n_input = df.height
    rejected = 0
    for column, level in (("state", "state"), ("county", "county"), ("tract", "tract")):
        df, diag = normalize_geoid_column(df, column, level, stage=f"{source} {table_year} {column}")
        rejected += diag.rejected

    df = df.select(
        (pl.col("state") + pl.col("county") + pl.col("tract")).alias("census_tract"),
        (pl.col("state") + pl.col("county")).alias("countyfp"),
        pl.lit(census_decade_for_table(table_year), dtype=pl.Int64).alias("decade"),
        pl.lit(census_vintage_for_table(table_year), dtype=pl.Int64).alias("vintage"),
        *COVARIATE_COLUMNS,
    )
    return df, StageDiagnostics(
        stage=f"{source} {table_year} tracts", input_rows=n_input, rejected=rejected
    )


def load_census_tables(config: PipelineConfig) -> pl.DataFrame:
    """Read and stack every configured census extract.

    Files are expected at ``<derived>/<source>/<source>_tract_<year>_<state>.csv``.
    """
    frames = []
    for source, table_year in config.census_tables:
        folder = config.get_stage_dir(source)
        files = sorted(folder.glob(f"{source}_tract_{table_year}_*.csv"))
        if not files:
            raise FileNotFoundError(
                f"No {source} {table_year} tract files found in {folder}."
            )
        raw = pl.concat([read_table(file) for file in files], how="diagonal")
        df, diagnostics = prepare_census_table(raw, source, table_year)
        diagnostics.log()
        frames.append(df)

    census = pl.concat(frames, how="vertical")
    logger.info("Loaded census covariates for %d tract-years", census.height)
    return census


__all__ = [
    "prepare_census_table",
    "load_census_tables",
]
