"""
HMDA Manufactured-Housing Workflows
===================================

High-level orchestration functions for the pipeline stages.

These functions combine the import, merge, feature and model operations
into complete workflows. They are designed to be used both
programmatically and via the CLI.

Functions
---------
- import_hmda_workflow: Filter raw LAR archives to home-purchase loans
- import_lenders_workflow: Combine the HUD manufactured-lender workbook
- build_workflow: Enrich loans with lenders, tract covariates and CPI
- train_workflow: Train and evaluate the property-type classifier
- impute_workflow: Predict property type for every year
- summarize_workflow: Descriptive statistics by property type

Example Usage
-------------
>>> from hmda_mfh.core.config import PipelineConfig
>>> from hmda_mfh.core.workflows import build_workflow, train_workflow

>>> config = PipelineConfig()
>>> results = build_workflow(config, years=range(1995, 2000))
>>> print(results)
{1995: True, 1996: True, 1997: True, 1998: True, 1999: True}

>>> train_workflow(config)
"""

import logging
from typing import Iterable

import polars as pl

from .config import (
    HMDA_INTEGER_COLUMNS,
    PipelineConfig,
    census_decade_for_year,
    tract_vintage_for_year,
)
from .crosswalk import apply_crosswalk, load_crosswalks, resolve_crosswalk
from .diagnostics import StageDiagnostics
from .features import derive_features
from .import_data import import_hmda_year, load_census_tables, load_cpi
from .lenders import load_manufactured_lenders, unique_lender_keys
from .merge import (
    county_medians,
    harmonize_census_tracts,
    merge_covariates,
    merge_lenders,
    merge_price_index,
)
from .model import load_built_years, run_imputation, run_training
from ..utils.cleaning import coerce_numeric_columns
from ..utils.geo import add_geoid_columns
from ..utils.identity import respondent_id_expr
from ..utils.io import read_table, should_process_output, write_table
from ..utils.summary import save_summary_table

logger = logging.getLogger(__name__)


def _banner(title: str) -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def _log_results(results: dict[int, bool]) -> None:
    logger.info("")
    _banner("Workflow Summary")
    for year, success in results.items():
        logger.info("%s %s: %s", "✅" if success else "❌", year, "Success" if success else "Failed")
    logger.info("")


def import_hmda_workflow(
    config: PipelineConfig,
    years: Iterable[int] | None = None,
    replace: bool = False,
) -> dict[int, bool]:
    """
    Filter raw HMDA LAR archives to originated home-purchase loans.

    Parameters
    ----------
    config : PipelineConfig
        Pipeline settings (raw folder, output format).
    years : Iterable[int] | None, optional
        Years to import. Defaults to ``config.build_years``.
    replace : bool, default False
        Whether to replace existing files (True) or skip them (False)

    Returns
    -------
    dict[int, bool]
        Success status per year. Processing continues past failed years.
    """
    years = list(config.build_years if years is None else years)

    _banner("HMDA Import Workflow")
    logger.info("Years: %s-%s", min(years), max(years))
    logger.info("Source: %s", config.raw_dir)
    logger.info("Replace existing: %s", replace)
    logger.info("")

    results = {}
    for year in years:
        try:
            import_hmda_year(config, year, replace=replace)
            results[year] = True
        except (FileNotFoundError, ValueError) as e:
            logger.error("❌ HMDA %s failed: %s", year, e)
            results[year] = False

    _log_results(results)
    return results


def import_lenders_workflow(config: PipelineConfig, replace: bool = False) -> pl.DataFrame:
    """Combine the HUD lender workbook and save it as ``derived/mfh_lenders``."""
    _banner("Manufactured Lender Import Workflow")
    save_file = config.derived_dir / f"mfh_lenders.{config.output_format}"
    if not should_process_output(save_file, replace):
        logger.info("Using existing lender list: %s", save_file)
        return read_table(save_file)

    lenders = load_manufactured_lenders(config)
    write_table(lenders, save_file)
    return lenders


def prepare_tract_covariates(
    config: PipelineConfig,
    mapping: pl.DataFrame,
) -> tuple[pl.DataFrame, pl.DataFrame]:
    """Load census tables and harmonise them to target-vintage tracts.

    Returns
    -------
    tuple[pl.DataFrame, pl.DataFrame]
        Tract covariates keyed by (tr2010ge, decade) and county medians
        keyed by (countyfp, decade).
    """
    census = load_census_tables(config)
    covariates, _ = harmonize_census_tracts(census, mapping, target_vintage=config.target_vintage)
    return covariates, county_medians(covariates)


def build_year(
    loans: pl.DataFrame,
    year: int,
    config: PipelineConfig,
    mapping: pl.DataFrame,
    covariates: pl.DataFrame,
    county_covariates: pl.DataFrame,
    lender_keys: pl.DataFrame,
    cpi: pl.DataFrame,
) -> tuple[pl.DataFrame, list[StageDiagnostics]]:
    """Run the merge and feature stages on one year of filtered loans.

    Stages, in order: geography normalisation, lender flag, tract
    conversion to the target vintage, covariate merge with county fallback,
    CPI deflation and feature derivation.
    """
    diagnostics = []

    # CSV outputs of the import stage come back as strings
    loans = coerce_numeric_columns(loans, HMDA_INTEGER_COLUMNS, dtype=pl.Int64)
    if loans.schema.get("is_urban") == pl.String:
        loans = loans.with_columns((pl.col("is_urban").str.to_lowercase() == "true").alias("is_urban"))
    df, diag = add_geoid_columns(loans)
    diagnostics.append(diag)
    diag.log()

    df = df.with_columns(
        respondent_id_expr("respondent_id"),
        pl.col("agency_code").cast(pl.Int64, strict=False),
    )
    df, diag = merge_lenders(df, lender_keys, stage=f"{year} manufactured lenders")
    diagnostics.append(diag)

    df, diag = apply_crosswalk(
        df,
        mapping,
        source_vintage=tract_vintage_for_year(year),
        target_vintage=config.target_vintage,
        stage=f"{year} tracts to {config.target_vintage} tracts",
    )
    diagnostics.append(diag)

    df = df.with_columns(pl.lit(census_decade_for_year(year), dtype=pl.Int64).alias("decade"))
    df, diag = merge_covariates(df, covariates, county_covariates, stage=f"{year} census covariates")
    diagnostics.append(diag)

    df = merge_price_index(df, cpi, config.nominal_columns)
    df = derive_features(df, config.loan_bin_breaks)
    return df, diagnostics


def build_workflow(
    config: PipelineConfig,
    years: Iterable[int] | None = None,
    replace: bool = False,
) -> dict[int, bool]:
    """
    Build the enriched loan-level file for each year.

    Shared inputs (crosswalk mapping, tract covariates, lender list, CPI)
    are loaded once; loans are processed one year at a time.

    Parameters
    ----------
    config : PipelineConfig
        Pipeline settings.
    years : Iterable[int] | None, optional
        Years to build. Defaults to ``config.build_years``.
    replace : bool, default False
        Whether to replace existing files (True) or skip them (False)

    Returns
    -------
    dict[int, bool]
        True for each year written. Integrity errors stop the workflow.

    Notes
    -----
    - Input: ``<raw>/hmda_<year>.<fmt>`` from :func:`import_hmda_workflow`
    - Output: ``<derived>/hmda_<year>.<fmt>``
    """
    years = list(config.build_years if years is None else years)
    pending = [year for year in years if should_process_output(config.built_path(year), replace)]

    _banner("HMDA Build Workflow")
    logger.info("Years: %s-%s", min(years), max(years))
    logger.info("Years to build: %d (skipping %d existing)", len(pending), len(years) - len(pending))
    logger.info("Replace existing: %s", replace)
    logger.info("")

    results = {year: True for year in years if year not in pending}
    if not pending:
        return results

    logger.info("Step 1: Loading shared inputs")
    logger.info("-" * 60)
    # NHGIS tables carry zero-weight edges for tracts with no housing units
    mapping = resolve_crosswalk(load_crosswalks(config), allow_unmapped=True)
    covariates, county_covariates = prepare_tract_covariates(config, mapping)
    lender_keys = unique_lender_keys(import_lenders_workflow(config))
    cpi = load_cpi(config)
    logger.info("")

    logger.info("Step 2: Building loan years")
    logger.info("-" * 60)
    for year in pending:
        logger.info("Processing %s...", year)
        loans = read_table(config.loans_path(year))
        df, _ = build_year(
            loans, year, config, mapping, covariates, county_covariates, lender_keys, cpi
        )
        write_table(df, config.built_path(year))
        results[year] = True

    _log_results(results)
    return results


def train_workflow(config: PipelineConfig, retrain: bool = False) -> pl.DataFrame:
    """Train (or reload) the classifier and write the metrics table."""
    _banner("Manufactured Housing Classifier")
    logger.info("Train years: %s-%s", min(config.train_years), max(config.train_years))
    logger.info("Validation years: %s-%s", min(config.valid_years), max(config.valid_years))
    logger.info("Test years: %s-%s", min(config.test_years), max(config.test_years))
    logger.info("")
    return run_training(config, retrain=retrain)


def impute_workflow(config: PipelineConfig, years: Iterable[int] | None = None) -> pl.DataFrame:
    """Predict manufactured-housing probabilities for every built year."""
    years = list(config.history_years if years is None else years)
    _banner("Manufactured Housing Imputation")
    logger.info("Years: %s-%s", min(years), max(years))
    logger.info("")
    return run_imputation(config, years)


def summarize_workflow(config: PipelineConfig, years: Iterable[int] | None = None) -> None:
    """Write summary statistics by property type for the labelled years."""
    years = list(config.train_years if years is None else years)
    _banner("Summary Statistics")
    df = load_built_years(config, years)
    save_file = config.get_stage_dir("tables") / "summary_stats.csv"
    table = save_summary_table(df, save_file)
    logger.info("\n%s", table.to_string(index=False))


__all__ = [
    "import_hmda_workflow",
    "import_lenders_workflow",
    "prepare_tract_covariates",
    "build_year",
    "build_workflow",
    "train_workflow",
    "impute_workflow",
    "summarize_workflow",
]
