"""
HMDA Loan Import (1990-2017)

This module filters the yearly HMDA Loan/Application Register (LAR) files to
originated home-purchase loans for owner-occupied units and keeps the columns
used downstream, writing one file per year.

Sources:
- 1990-2006: openICPSR historical LAR archives (``HMDA_LAR_<year>.zip``)
- 2007-2017: CFPB nationwide originated-records files
  (``hmda_<year>_nationwide_originated-records_codes.zip``)

Key Characteristics:
- Legacy column names are mapped to one naming scheme (see RENAME_DICTIONARY)
- HMDA does not report property type (manufactured = 2) until 2004
- Loan amounts and incomes stay in thousands of dollars
- The loan key (sequence_number, respondent_id, agency_code) must be unique,
  except in 2017 when the public file carries no sequence number
"""

import logging
from pathlib import Path

import polars as pl

from ..config import (
    HMDA_INTEGER_COLUMNS,
    HMDA_KEEP_COLUMNS,
    LOAN_KEY_COLUMNS,
    NO_SEQUENCE_NUMBER_YEARS,
    PROPERTY_TYPE_FIRST_YEAR,
    PipelineConfig,
)
from ..diagnostics import StageDiagnostics
from ...utils.cleaning import coerce_numeric_columns, replace_na_like_values
from ...utils.identity import assert_unique_keys
from ...utils.io import read_delimited, should_process_output, write_table
from ...utils.schema import rename_hmda_columns

logger = logging.getLogger(__name__)


def filter_home_purchase_loans(
    raw: pl.DataFrame,
    year: int,
) -> tuple[pl.DataFrame, StageDiagnostics]:
    """Keep originated, owner-occupied home-purchase loans with complete amounts.

    Parameters
    ----------
    raw : pl.DataFrame
        One year of LAR records, all columns as strings.
    year : int
        Activity year of the records.

    Returns
    -------
    tuple[pl.DataFrame, StageDiagnostics]
        Filtered records restricted to the analysis columns, and the count
        of filtered-out rows.

    Raises
    ------
    DataIntegrityError
        If the loan key is duplicated.
    """
    df = rename_hmda_columns(raw)
    df = replace_na_like_values(df, df.columns)
    if "year" not in df.columns:
        df = df.with_columns(pl.lit(year, dtype=pl.Int64).alias("year"))

    if year not in NO_SEQUENCE_NUMBER_YEARS:
        assert_unique_keys(df, LOAN_KEY_COLUMNS, label=f"HMDA {year} loan records")

    if "msamd" not in df.columns:
        raise ValueError(f"HMDA {year} records have no MSA/MD column")

    df = coerce_numeric_columns(df, HMDA_INTEGER_COLUMNS, dtype=pl.Int64)
    df = df.filter(
        (pl.col("loan_purpose") == 1)  # home purchases
        & (pl.col("action_taken") == 1)  # loan originated
        & (pl.col("occupancy_type") == 1)  # owner-occupied
        & pl.col("income").is_not_null()
        & pl.col("loan_amount").is_not_null()
        & pl.col("state_code").is_not_null()
    )
    df = df.with_columns(pl.col("msamd").is_not_null().alias("is_urban"))

    keep = list(HMDA_KEEP_COLUMNS)
    if year >= PROPERTY_TYPE_FIRST_YEAR:
        keep.append("property_type")  # mfh indicator
    missing = [c for c in keep if c not in df.columns]
    if missing:
        raise ValueError(f"HMDA {year} records are missing columns: {missing}")

    out = df.select(keep)
    diagnostics = StageDiagnostics(
        stage=f"{year} HMDA home-purchase filter",
        input_rows=raw.height,
        dropped=raw.height - out.height,
    )
    return out, diagnostics


def find_raw_hmda_file(raw_dir: Path, year: int) -> Path:
    """Locate the raw LAR archive for a year."""
    candidates = [
        raw_dir / f"HMDA_LAR_{year}.zip",
        raw_dir / f"hmda_{year}_nationwide_originated-records_codes.zip",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    raise FileNotFoundError(
        f"HMDA file for year {year} not found in {raw_dir}. Download the LAR archive first."
    )


def import_hmda_year(config: PipelineConfig, year: int, replace: bool = False) -> Path | None:
    """Filter one year of raw HMDA data and save it.

    Returns the output path, or None when the output already exists and
    ``replace`` is False.
    """
    save_file = config.loans_path(year)
    if not should_process_output(save_file, replace):
        logger.debug("Skipping existing HMDA file: %s", save_file)
        return None

    logger.info("Processing HMDA data for year %s", year)
    raw = read_delimited(find_raw_hmda_file(config.raw_dir, year))
    df, diagnostics = filter_home_purchase_loans(raw, year)
    diagnostics.log()
    return write_table(df, save_file)


__all__ = [
    "filter_home_purchase_loans",
    "find_raw_hmda_file",
    "import_hmda_year",
]
