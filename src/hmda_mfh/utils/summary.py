"""
Summary Statistics
==================

Descriptive tables comparing manufactured and site-built home-purchase
loans in the years where HMDA reports property type.

Main Functions:
- summarize_by_property_type: mean, standard deviation and count of key
  features for each value of ``is_manufactured``
- format_summary_table: "mean (sd)" presentation table

Notes:
- Rows without a property-type label are excluded
- Statistics ignore missing values feature by feature
"""

import logging
from pathlib import Path
from typing import Sequence

import pandas as pd
import polars as pl


logger = logging.getLogger(__name__)


SUMMARY_FEATURES = [
    "loan_amount",
    "income",
    "is_urban",
    "mfh_pct",
    "loan_to_income",
]

SUMMARY_LABELS = {
    "loan_amount": "Loan amount ($000s)",
    "income": "Income ($000s)",
    "is_urban": "Urban (in MSA)",
    "mfh_pct": "Tract manufactured share",
    "loan_to_income": "Loan-to-income",
}


def summarize_by_property_type(
    df: pl.DataFrame,
    features: Sequence[str] = tuple(SUMMARY_FEATURES),
    group_col: str = "is_manufactured",
) -> pd.DataFrame:
    """Mean, standard deviation and count of each feature by property type.

    Parameters
    ----------
    df : pl.DataFrame
        Built loan records.
    features : sequence of str
        Columns to summarise.
    group_col : str
        Binary label column.

    Returns
    -------
    pd.DataFrame
        One row per feature with ``mean_<g>``, ``sd_<g>``, ``n_<g>`` columns
        for each group value.
    """
    features = [feature for feature in features if feature in df.columns]
    labelled = df.filter(pl.col(group_col).is_not_null())

    long = (
        labelled.select([group_col, *[pl.col(f).cast(pl.Float64) for f in features]])
        .to_pandas()
        .melt(id_vars=group_col, var_name="feature", value_name="value")
    )
    stats = (
        long.groupby(["feature", group_col])["value"]
        .agg(mean="mean", sd="std", n="count")
        .reset_index()
    )
    wide = stats.pivot(index="feature", columns=group_col, values=["mean", "sd", "n"])
    wide.columns = [f"{stat}_{int(group)}" for stat, group in wide.columns]
    return wide.reindex(features).reset_index()


def format_summary_table(stats: pd.DataFrame, digits: int = 3) -> pd.DataFrame:
    """Present each group as a "mean (sd)" column with readable row labels."""
    groups = sorted(int(c.split("_")[1]) for c in stats.columns if c.startswith("mean_"))
    table = pd.DataFrame({"Variable": stats["feature"].map(lambda x: SUMMARY_LABELS.get(x, x))})
    for group in groups:
        name = "Manufactured" if group == 1 else "Site-built"
        table[name] = [
            f"{m:.{digits}f} ({s:.{digits}f})"
            for m, s in zip(stats[f"mean_{group}"], stats[f"sd_{group}"])
        ]
        table[f"N ({name})"] = stats[f"n_{group}"].astype("int64").to_numpy()
    return table


def save_summary_table(df: pl.DataFrame, save_file: Path) -> pd.DataFrame:
    """Summarise, format and write the table as CSV."""
    table = format_summary_table(summarize_by_property_type(df))
    save_file.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(save_file, index=False)
    logger.info("Saved summary statistics to %s", save_file)
    return table


__all__ = [
    "SUMMARY_FEATURES",
    "summarize_by_property_type",
    "format_summary_table",
    "save_summary_table",
]
