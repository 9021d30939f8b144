"""
Consumer Price Index Import
===========================

Load the BLS CPI-U workbook (one row per year, one column per month) and
turn it into an annual price index relative to a base year, used to
deflate nominal dollar amounts.
"""

import logging
from pathlib import Path

import pandas as pd
import polars as pl

from ..config import PipelineConfig
from ..errors import DataIntegrityError

logger = logging.getLogger(__name__)

# Summary columns in the BLS workbook that are not monthly values
CPI_SUMMARY_COLUMNS = ["Annual", "HALF1", "HALF2"]


def prepare_cpi(table: pd.DataFrame, base_year: int = 2010) -> pl.DataFrame:
    """Average monthly CPI values by year and index them to ``base_year``.

    Parameters
    ----------
    table : pd.DataFrame
        BLS layout: a ``Year`` column and one column per month. ``Annual``
        and half-year columns are ignored.
    base_year : int, default 2010
        Year whose index value is 1.

    Returns
    -------
    pl.DataFrame
        Columns ``year`` (Int64) and ``cpi_index`` (Float64).
    """
    df = table.drop(columns=CPI_SUMMARY_COLUMNS, errors="ignore")
    df = df.melt(id_vars="Year", var_name="Month", value_name="value")
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    annual = df.groupby("Year", as_index=False)["value"].mean()

    cpi = pl.from_pandas(annual).select(
        pl.col("Year").cast(pl.Int64).alias("year"),
        pl.col("value").cast(pl.Float64).alias("cpi_index"),
    )
    base = cpi.filter(pl.col("year") == base_year)
    if base.height != 1 or base["cpi_index"][0] is None:
        raise DataIntegrityError(f"CPI table has no value for base year {base_year}")
    return cpi.with_columns(pl.col("cpi_index") / base["cpi_index"][0]).sort("year")


def load_cpi(config: PipelineConfig) -> pl.DataFrame:
    """Read the most recent CPI workbook from ``<crosswalk>/cpi``."""
    cpi_files = sorted((config.crosswalk_dir / "cpi").glob("*.xlsx"))
    if not cpi_files:
        raise FileNotFoundError(
            f"CPI data not found in {config.crosswalk_dir / 'cpi'}. Download the BLS CPI-U workbook first."
        )
    cpi_file: Path = cpi_files[-1]
    logger.info("Loading CPI data from: %s", cpi_file.name)
    table = pd.read_excel(cpi_file, skiprows=11, engine="openpyxl")
    return prepare_cpi(table, base_year=config.cpi_base_year)


__all__ = [
    "prepare_cpi",
    "load_cpi",
]
