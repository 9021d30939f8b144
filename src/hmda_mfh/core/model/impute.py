"""
Property-Type Imputation
========================

Apply the trained classifier to every loan, including the pre-2004 years
in which HMDA does not report property type, and write one file of
predicted probabilities covering the whole history.
"""

import logging
from typing import Iterable

import lightgbm as lgb
import polars as pl

from ..config import LOAN_KEY_COLUMNS, NO_SEQUENCE_NUMBER_YEARS, PipelineConfig
from .prepare import load_levels, prepare_features
from .train import load_built_year
from ...utils.identity import add_identity_keys, deduplicate_records
from ...utils.io import write_table


logger = logging.getLogger(__name__)

# Columns carried next to the prediction
IMPUTATION_COLUMNS = [
    "sequence_number",
    "respondent_id",
    "agency_code",
    "loan_amount",
    "income",
    "state_code",
    "county_code",
    "year",
]


def load_model(config: PipelineConfig) -> tuple[lgb.Booster, dict[str, list[str]]]:
    """Load the saved booster and its categorical levels."""
    if not config.model_path.exists():
        raise FileNotFoundError(f"Model not found: {config.model_path}. Train the classifier first.")
    booster = lgb.Booster(model_file=str(config.model_path))
    levels = load_levels(config.levels_path)
    logger.info("Model loaded from file: %s", config.model_path)
    return booster, levels


def impute_property_type(
    df: pl.DataFrame,
    booster: lgb.Booster,
    levels: dict[str, list[str]],
) -> pl.DataFrame:
    """Predict the manufactured-housing probability of each loan.

    Returns
    -------
    pl.DataFrame
        The identifying loan columns plus ``is_mfh_pred`` in [0, 1].
    """
    features = prepare_features(df, levels)
    predictions = booster.predict(features)
    columns = [column for column in IMPUTATION_COLUMNS if column in df.columns]
    return df.select(columns).with_columns(pl.Series("is_mfh_pred", predictions, dtype=pl.Float64))


def run_imputation(config: PipelineConfig, years: Iterable[int] | None = None) -> pl.DataFrame:
    """Impute property type for each built year and write the stacked result.

    Duplicate loan keys within a year (repeated rows in the public files)
    are dropped before writing. Output goes to
    ``derived/hmda-mfh-imputed.<format>``.
    """
    years = config.history_years if years is None else years
    booster, levels = load_model(config)

    frames = []
    for year in years:
        loans = load_built_year(config, year)
        imputed = impute_property_type(loans, booster, levels)
        if year not in NO_SEQUENCE_NUMBER_YEARS:
            imputed = add_identity_keys(imputed, LOAN_KEY_COLUMNS)
            imputed, dropped = deduplicate_records(imputed, keep="first")
            if dropped:
                logger.warning("Year %s: dropped %d duplicate loan records", year, dropped)
            imputed = imputed.drop("hmda_record_key")
        logger.info(
            "Year %s: %d loans, mean predicted manufactured share %.4f",
            year,
            imputed.height,
            imputed["is_mfh_pred"].mean() if imputed.height else float("nan"),
        )
        frames.append(imputed)

    out = pl.concat(frames, how="vertical_relaxed")
    out_path = config.derived_dir / f"hmda-mfh-imputed.{config.output_format}"
    write_table(out, out_path)
    return out


__all__ = [
    "IMPUTATION_COLUMNS",
    "load_model",
    "impute_property_type",
    "run_imputation",
]
