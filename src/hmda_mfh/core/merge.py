"""
Multi-Source Merge Stages
=========================

Join loan records with tract covariates, the manufactured-lender list and the
price index. Every function returns a new frame and never modifies its
inputs.

Covariates are attached in two tiers:

1. exact match on (2010 tract id, decade);
2. for loans without an exact match, the county median of each covariate
   over all tracts of the county in that decade;
3. loans matched by neither tier are dropped and counted.

The share of loans in each tier is logged for every year processed.
"""

import logging
from typing import Sequence

import polars as pl

from .config import COVARIATE_COLUMNS, TARGET_VINTAGE
from .crosswalk import apply_crosswalk
from .diagnostics import StageDiagnostics
from .errors import DataIntegrityError
from ..utils.identity import assert_unique_keys


logger = logging.getLogger(__name__)

TRACT_KEY = "tr2010ge"
COUNTY_KEY = "countyfp"
DECADE_KEY = "decade"


def _median_columns(columns: Sequence[str]) -> list[str]:
    return [column for column in columns if "median" in column]


def harmonize_census_tracts(
    census: pl.DataFrame,
    mapping: pl.DataFrame | None,
    target_vintage: int = TARGET_VINTAGE,
    covariate_columns: Sequence[str] = tuple(COVARIATE_COLUMNS),
) -> tuple[pl.DataFrame, StageDiagnostics]:
    """Re-express census covariates on target-vintage tracts.

    Each census table is mapped through the resolved crosswalk for its own
    tract vintage (identity for target-vintage tables). Tracts without a
    mapping are dropped. Rows landing on the same (target tract, decade) are
    aggregated: count columns are summed and ``*median*`` columns take the
    median.

    Returns
    -------
    tuple[pl.DataFrame, StageDiagnostics]
        One row per (``tr2010ge``, ``decade``) with ``countyfp`` and the
        covariates, plus the mapping match rate.
    """
    frames = []
    n_matched = 0
    for vintage in sorted(census["vintage"].unique().to_list()):
        part = census.filter(pl.col("vintage") == vintage)
        mapped, diag = apply_crosswalk(
            part,
            mapping,
            source_vintage=vintage,
            target_vintage=target_vintage,
            geoid_col="census_tract",
            out_col=TRACT_KEY,
            stage=f"census {vintage} tracts to {target_vintage} tracts",
        )
        n_matched += diag.primary_matched
        frames.append(mapped)

    mapped = pl.concat(frames, how="vertical")
    unmatched = mapped.filter(pl.col(TRACT_KEY).is_null()).height
    mapped = mapped.filter(pl.col(TRACT_KEY).is_not_null())

    medians = _median_columns(covariate_columns)
    counts = [column for column in covariate_columns if column not in medians]
    out = (
        mapped.group_by([TRACT_KEY, DECADE_KEY])
        .agg(
            [pl.col(column).sum() for column in counts]
            + [pl.col(column).median() for column in medians]
        )
        .with_columns(pl.col(TRACT_KEY).str.slice(0, 5).alias(COUNTY_KEY))
        .select([TRACT_KEY, DECADE_KEY, COUNTY_KEY, *covariate_columns])
        .sort([TRACT_KEY, DECADE_KEY])
    )

    diagnostics = StageDiagnostics(
        stage=f"census tracts to {target_vintage} tracts",
        input_rows=census.height,
        primary_matched=n_matched,
        dropped=unmatched,
    )
    diagnostics.log()
    return out, diagnostics


def county_medians(
    covariates: pl.DataFrame,
    covariate_columns: Sequence[str] = tuple(COVARIATE_COLUMNS),
) -> pl.DataFrame:
    """Median of each covariate across the tracts of a county, per decade."""
    return (
        covariates.group_by([COUNTY_KEY, DECADE_KEY])
        .agg([pl.col(column).cast(pl.Float64).median() for column in covariate_columns])
        .sort([COUNTY_KEY, DECADE_KEY])
    )


def merge_covariates(
    loans: pl.DataFrame,
    covariates: pl.DataFrame,
    county_covariates: pl.DataFrame | None = None,
    covariate_columns: Sequence[str] = tuple(COVARIATE_COLUMNS),
    stage: str = "census covariates",
) -> tuple[pl.DataFrame, StageDiagnostics]:
    """Attach covariates by exact tract, falling back to county medians.

    Parameters
    ----------
    loans : pl.DataFrame
        Records with ``tr2010ge`` (may be null), ``countyfp`` and ``decade``.
    covariates : pl.DataFrame
        Tract covariates keyed by (``tr2010ge``, ``decade``).
    county_covariates : pl.DataFrame, optional
        County fallback keyed by (``countyfp``, ``decade``). Defaults to
        :func:`county_medians` of ``covariates``.
    covariate_columns : sequence of str
        Columns to attach.
    stage : str
        Label used in the diagnostics.

    Returns
    -------
    tuple[pl.DataFrame, StageDiagnostics]
        Matched loans with the covariates and a ``covariate_level`` column
        (``"tract"`` or ``"county"``), and the per-tier counts. Loans
        matched by neither tier are not in the output.

    Raises
    ------
    DataIntegrityError
        If either covariate table has duplicate keys.
    """
    covariate_columns = list(covariate_columns)
    if county_covariates is None:
        county_covariates = county_medians(covariates, covariate_columns)

    assert_unique_keys(covariates, [TRACT_KEY, DECADE_KEY], label="tract covariate rows")
    assert_unique_keys(county_covariates, [COUNTY_KEY, DECADE_KEY], label="county covariate rows")

    clashing = [column for column in covariate_columns if column in loans.columns]
    base = loans.drop(clashing)

    tract_table = covariates.select(
        [TRACT_KEY, DECADE_KEY, *covariate_columns]
    ).with_columns(pl.lit("tract").alias("covariate_level"))
    joined = base.join(tract_table, on=[TRACT_KEY, DECADE_KEY], how="left")
    primary = joined.filter(pl.col("covariate_level").is_not_null())
    rest = joined.filter(pl.col("covariate_level").is_null()).select(base.columns)

    county_table = county_covariates.select(
        [COUNTY_KEY, DECADE_KEY, *covariate_columns]
    ).with_columns(pl.lit("county").alias("covariate_level"))
    fallback = rest.join(county_table, on=[COUNTY_KEY, DECADE_KEY], how="left")
    unmatched = fallback.filter(pl.col("covariate_level").is_null()).height
    fallback = fallback.filter(pl.col("covariate_level").is_not_null())

    out = pl.concat(
        [primary, fallback.select(primary.columns)],
        how="vertical_relaxed",
    )

    diagnostics = StageDiagnostics(
        stage=stage,
        input_rows=loans.height,
        primary_matched=primary.height,
        fallback_matched=fallback.height,
        dropped=unmatched,
    )
    diagnostics.log()
    if unmatched:
        logger.warning("%s: dropped %d loans with no tract or county covariates", stage, unmatched)
    return out, diagnostics


def merge_lenders(
    loans: pl.DataFrame,
    lender_keys: pl.DataFrame,
    stage: str = "manufactured lenders",
) -> tuple[pl.DataFrame, StageDiagnostics]:
    """Flag loans made by listed manufactured-home lenders.

    Adds ``property_type_imp``: 2 (manufactured) when the loan's
    (agency_code, respondent_id) is on the lender list, 1 otherwise.
    """
    assert_unique_keys(lender_keys, ["agency_code", "respondent_id"], label="manufactured lenders")
    flags = lender_keys.select(
        pl.col("agency_code").cast(pl.Int64),
        pl.col("respondent_id").cast(pl.String),
        pl.lit(True).alias("_listed"),
    )
    out = (
        loans.join(flags, on=["agency_code", "respondent_id"], how="left")
        .with_columns(
            pl.when(pl.col("_listed").is_not_null()).then(2).otherwise(1).alias("property_type_imp")
        )
        .drop("_listed")
    )
    diagnostics = StageDiagnostics(
        stage=stage,
        input_rows=loans.height,
        primary_matched=out.filter(pl.col("property_type_imp") == 2).height,
    )
    diagnostics.log()
    return out, diagnostics


def merge_price_index(
    loans: pl.DataFrame,
    cpi: pl.DataFrame,
    nominal_columns: Sequence[str],
) -> pl.DataFrame:
    """Deflate nominal dollar columns to base-year dollars.

    Raises
    ------
    DataIntegrityError
        If a loan year has no price index.
    """
    assert_unique_keys(cpi, ["year"], label="CPI years")
    years = loans.select(pl.col("year").unique()).to_series()
    missing = sorted(set(years.to_list()) - set(cpi["year"].to_list()))
    if missing:
        raise DataIntegrityError(f"No CPI value for years: {missing}")

    columns = [column for column in nominal_columns if column in loans.columns]
    return (
        loans.join(cpi.select(["year", "cpi_index"]), on="year", how="left")
        .with_columns([(pl.col(column) / pl.col("cpi_index")).alias(column) for column in columns])
        .drop("cpi_index")
    )


__all__ = [
    "harmonize_census_tracts",
    "county_medians",
    "merge_covariates",
    "merge_lenders",
    "merge_price_index",
]
