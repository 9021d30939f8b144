"""
Manufactured-Home Lender List
=============================

Functions to combine HUD's yearly list of lenders specialising in
manufactured-home lending (the subprime/manufactured-home lender workbook,
one sheet per year 1993-2003) into one table keyed by HMDA respondent.

https://archives.huduser.gov/portal/datasets/manu.html
"""

import logging
import warnings
from pathlib import Path
from typing import Iterable

import pandas as pd
import polars as pl

from ..config import PipelineConfig
from ...utils.identity import assert_unique_keys, deduplicate_records, respondent_id_expr


logger = logging.getLogger(__name__)

LENDER_WORKBOOK = "subprime_2006_distributed.xls"

# HUD specialty flag: 1 = subprime, 2 = manufactured housing
MANUFACTURED_FLAG = 2


def _read_lender_sheets(workbook: Path, years: Iterable[int]) -> dict[int, pd.DataFrame]:
    """Read one sheet per year from the HUD workbook."""
    if not workbook.exists():
        raise FileNotFoundError(
            f"Lender workbook not found: {workbook}. Download it from HUD User first."
        )
    return {
        year: pd.read_excel(workbook, sheet_name=str(year), skiprows=2)
        for year in years
    }


def combine_lender_sheets(sheets: dict[int, pd.DataFrame]) -> pl.DataFrame:
    """Stack yearly sheets into one manufactured-home lender table.

    - Keeps rows flagged as manufactured-housing specialists (``MH == 2``)
    - Names each lender by its lower-cased name in the last year it appears
    - Checks that (respondent_id, year) is unique

    Returns
    -------
    pl.DataFrame
        Columns ``respondent_id``, ``IDD``, ``agency_code``, ``name``, ``year``.
    """
    frames = []
    for year, sheet in sheets.items():
        df_year = sheet.loc[sheet["MH"] == MANUFACTURED_FLAG].drop(columns=["MH"])
        df_year = df_year.assign(year=year)
        frames.append(df_year)
    df = pd.concat(frames, ignore_index=True)

    df["last_year"] = df.groupby("ID")["year"].transform("max")
    df_last = df.loc[df["year"] == df["last_year"], ["ID", "NAME"]]
    df_last = df_last.assign(name=df_last["NAME"].str.lower()).drop(columns=["NAME"])
    df = df.merge(df_last, on="ID", how="left")

    out = pl.from_pandas(
        df[["ID", "IDD", "CODE", "name", "year"]].astype({"ID": str, "IDD": str})
    ).select(
        respondent_id_expr("ID").alias("respondent_id"),
        pl.col("IDD"),
        pl.col("CODE").cast(pl.Int64, strict=False).alias("agency_code"),
        pl.col("name"),
        pl.col("year").cast(pl.Int64),
    )

    # sanity checks
    assert_unique_keys(out, ["respondent_id", "year"], label="manufactured lender ID/year combinations")
    if out.select(["name", "year"]).n_unique() != out.height:
        warnings.warn(
            "There are duplicate name/year combinations in manufactured lenders data.",
            stacklevel=2,
        )

    logger.info("Combined %d manufactured-lender records for %d lenders", out.height, out["respondent_id"].n_unique())
    return out


def load_manufactured_lenders(config: PipelineConfig, workbook: Path | None = None) -> pl.DataFrame:
    """Read the HUD workbook for the configured years and combine the sheets."""
    workbook = config.data_dir / LENDER_WORKBOOK if workbook is None else Path(workbook)
    sheets = _read_lender_sheets(workbook, config.lender_years)
    return combine_lender_sheets(sheets)


def unique_lender_keys(lenders: pl.DataFrame) -> pl.DataFrame:
    """Collapse the lender-year table to one row per (agency_code, respondent_id)."""
    out, dropped = deduplicate_records(
        lenders.select(["agency_code", "respondent_id", "name"]),
        keep="first",
        subset=["agency_code", "respondent_id", "name"],
    )
    logger.debug("Collapsed %d lender-year rows", dropped)
    assert_unique_keys(out, ["agency_code", "respondent_id"], label="manufactured lenders")
    return out


__all__ = [
    "combine_lender_sheets",
    "load_manufactured_lenders",
    "unique_lender_keys",
]
