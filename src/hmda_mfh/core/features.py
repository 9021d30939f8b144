"""
Feature derivation for merged loan records (Polars).

All ratios go through :func:`safe_ratio`: a zero or missing denominator
gives a missing value, never an error, infinity or zero.
"""

import math
from typing import Sequence

import polars as pl

from .config import LOAN_BIN_BREAKS, PROPERTY_TYPE_FIRST_YEAR


def safe_ratio(numerator: str | pl.Expr, denominator: str | pl.Expr) -> pl.Expr:
    """``numerator / denominator``, null when the denominator is zero or null."""
    num = pl.col(numerator) if isinstance(numerator, str) else numerator
    den = pl.col(denominator) if isinstance(denominator, str) else denominator
    num = num.cast(pl.Float64)
    den = den.cast(pl.Float64)
    return pl.when(den.is_null() | (den == 0)).then(None).otherwise(num / den)


def _format_break(value: float) -> str:
    return "Inf" if math.isinf(value) else f"{value:g}"


def loan_bin_expr(column: str = "loan_amount", breaks: Sequence[float] = LOAN_BIN_BREAKS) -> pl.Expr:
    """Right-closed interval label, e.g. ``"(0,20000]"``; null outside the breaks."""
    breaks = list(breaks)
    expr = None
    for lower, upper in zip(breaks[:-1], breaks[1:]):
        label = f"({_format_break(lower)},{_format_break(upper)}]"
        condition = (pl.col(column) > lower) & (pl.col(column) <= upper)
        if expr is None:
            expr = pl.when(condition).then(pl.lit(label))
        else:
            expr = expr.when(condition).then(pl.lit(label))
    return expr.otherwise(None).alias("loan_bin")


def derive_features(
    df: pl.DataFrame,
    loan_bin_breaks: Sequence[float] = LOAN_BIN_BREAKS,
) -> pl.DataFrame:
    """Add average values, ratios, shares, lender aggregates and the label.

    Expects the merged loan columns (``loan_amount``, ``income``,
    ``respondent_id``, ``is_urban``, ``year``) and the census covariates.
    ``is_manufactured`` is only defined from 2004, when HMDA starts
    reporting property type.
    """
    out = df.with_columns(
        safe_ratio("oo_value_tot", "oo_tot").alias("oo_value_avg"),
        safe_ratio("mfh_value_tot", "mfh_tot").alias("mfh_value_avg"),
        safe_ratio("loan_amount", "income").alias("loan_to_income"),
        safe_ratio("income", "inc_hh_median").alias("income_to_local"),
        safe_ratio("mfh_tot", "housing_units_tot").alias("mfh_pct"),
        safe_ratio("sfd_tot", "housing_units_tot").alias("sfd_pct"),
        safe_ratio("mfh_oo_tot", "mfh_tot").alias("mfh_oo_pct"),
    )
    out = out.with_columns(
        safe_ratio("loan_amount", "oo_value_avg").alias("loan_to_value"),
        safe_ratio("loan_amount", "mfh_value_avg").alias("loan_to_mfh_value"),
    )

    if "property_type" in out.columns:
        out = out.with_columns(
            pl.when(pl.col("year") < PROPERTY_TYPE_FIRST_YEAR)
            .then(None)
            .when(pl.col("property_type").is_null())
            .then(None)
            .otherwise((pl.col("property_type") == 2).cast(pl.Int64))
            .alias("is_manufactured")
        )
    else:
        out = out.with_columns(pl.lit(None, dtype=pl.Int64).alias("is_manufactured"))

    return out.with_columns(
        loan_bin_expr("loan_amount", loan_bin_breaks),
        pl.col("loan_amount").mean().over("respondent_id").alias("lender_avg_loan"),
        pl.len().over("respondent_id").cast(pl.Int64).alias("lender_loan_count"),
        pl.col("income").mean().over("respondent_id").alias("lender_avg_inc"),
        (pl.col("loan_amount") * (1 - pl.col("is_urban").cast(pl.Int64))).alias("rural_loan"),
    )


__all__ = [
    "safe_ratio",
    "loan_bin_expr",
    "derive_features",
]
