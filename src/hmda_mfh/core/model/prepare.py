"""
Classifier input preparation: categorical encoding and missing-value fills.

Categorical features are encoded as 0-based integer codes over the levels
seen in the training years; values not seen in training become missing,
which LightGBM routes like any other missing value. Missing numeric
features are filled with the median of the same state.
"""

import json
import logging
from pathlib import Path
from typing import Sequence

import pandas as pd
import polars as pl

from ..config import CATEGORICAL_FEATURES, NUMERIC_FEATURES
from ...utils.cleaning import fill_group_median


logger = logging.getLogger(__name__)


def fit_category_levels(
    train: pl.DataFrame,
    categorical_features: Sequence[str] = tuple(CATEGORICAL_FEATURES),
) -> dict[str, list[str]]:
    """Sorted distinct non-null values of each categorical feature, as strings."""
    levels = {}
    for column in categorical_features:
        values = train.select(pl.col(column).cast(pl.String).drop_nulls().unique().sort()).to_series()
        levels[column] = values.to_list()
    return levels


def encode_categoricals(df: pl.DataFrame, levels: dict[str, list[str]]) -> pl.DataFrame:
    """Replace categorical values with their 0-based code in ``levels``."""
    return df.with_columns(
        [
            pl.col(column)
            .cast(pl.String)
            .replace_strict(values, list(range(len(values))), default=None, return_dtype=pl.Int64)
            .alias(column)
            for column, values in levels.items()
        ]
    )


def prepare_features(
    df: pl.DataFrame,
    levels: dict[str, list[str]],
    numeric_features: Sequence[str] = tuple(NUMERIC_FEATURES),
    state_col: str = "state_code",
) -> pd.DataFrame:
    """Build the LightGBM feature matrix (categoricals first, then numerics)."""
    categorical_features = list(levels)
    feature_names = categorical_features + list(numeric_features)
    missing = [c for c in feature_names + [state_col] if c not in df.columns]
    if missing:
        raise ValueError(f"Feature columns missing from input: {missing}")

    out = encode_categoricals(df, levels)
    out = out.with_columns([pl.col(column).cast(pl.Float64) for column in numeric_features])
    out = fill_group_median(out, numeric_features, by=[state_col])
    return out.select(feature_names).to_pandas()


def save_levels(levels: dict[str, list[str]], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(levels, f, indent=2)
    logger.info("Saved categorical levels to %s", path)


def load_levels(path: Path) -> dict[str, list[str]]:
    if not path.exists():
        raise FileNotFoundError(f"Categorical levels not found: {path}. Train the classifier first.")
    with open(path, "r") as f:
        return json.load(f)


__all__ = [
    "fit_category_levels",
    "encode_categoricals",
    "prepare_features",
    "save_levels",
    "load_levels",
]
