"""
Manufactured-Housing Classifier Training
========================================

Train a LightGBM binary classifier on the years in which HMDA reports
property type, validate on later years for early stopping, and report
performance on held-out test years.

Year splits (defaults in PipelineConfig):
- Train: 2004-2013
- Validation: 2014-2015
- Test: 2016-2017

Performance is reported at the threshold maximising Youden's J
statistic (sensitivity + specificity - 1) on each split.
"""

import logging
from typing import Any, Iterable

import lightgbm as lgb
import numpy as np
import pandas as pd
import polars as pl
from sklearn.metrics import confusion_matrix, roc_auc_score, roc_curve

from ..config import (
    COVARIATE_COLUMNS,
    HMDA_INTEGER_COLUMNS,
    LABEL_COLUMN,
    NUMERIC_FEATURES,
    PipelineConfig,
)
from .prepare import fit_category_levels, prepare_features, save_levels
from ...utils.cleaning import coerce_numeric_columns
from ...utils.io import read_table, write_table


logger = logging.getLogger(__name__)


# Built columns restored after a CSV round trip (parquet keeps its dtypes)
BUILT_INTEGER_COLUMNS = [
    column for column in [*HMDA_INTEGER_COLUMNS, LABEL_COLUMN] if column not in NUMERIC_FEATURES
]
BUILT_FLOAT_COLUMNS = [*NUMERIC_FEATURES, *COVARIATE_COLUMNS]


def load_built_year(config: PipelineConfig, year: int) -> pl.DataFrame:
    """Read one enriched loan file with numeric columns restored."""
    df = read_table(config.built_path(year))
    df = coerce_numeric_columns(df, BUILT_INTEGER_COLUMNS, dtype=pl.Int64)
    df = coerce_numeric_columns(df, BUILT_FLOAT_COLUMNS)
    if df.schema.get("is_urban") == pl.String:
        df = df.with_columns((pl.col("is_urban").str.to_lowercase() == "true").alias("is_urban"))
    return df


def load_built_years(config: PipelineConfig, years: Iterable[int]) -> pl.DataFrame:
    """Stack the enriched loan files for a set of years."""
    frames = [load_built_year(config, year) for year in years]
    if not frames:
        raise ValueError("No years requested")
    return pl.concat(frames, how="diagonal_relaxed")


def labelled_rows(df: pl.DataFrame, label: str = LABEL_COLUMN) -> pl.DataFrame:
    """Drop rows without a property-type label."""
    out = df.filter(pl.col(label).is_not_null())
    if out.height != df.height:
        logger.info("Dropped %d rows without a %s label", df.height - out.height, label)
    return out


def train_classifier(
    train_x: pd.DataFrame,
    train_y: np.ndarray,
    valid_x: pd.DataFrame,
    valid_y: np.ndarray,
    categorical_features: list[str],
    params: dict[str, Any],
    num_boost_round: int = 500,
    early_stopping_rounds: int = 50,
) -> lgb.Booster:
    """Fit LightGBM with early stopping on the validation split.

    ``scale_pos_weight`` is set to the negative/positive ratio of the
    training labels.
    """
    n_pos = int((train_y == 1).sum())
    if n_pos == 0:
        raise ValueError("Training data has no positive labels")
    params = dict(params)
    params["scale_pos_weight"] = float((train_y == 0).sum()) / n_pos
    params.setdefault("verbosity", -1)

    train_data = lgb.Dataset(train_x, label=train_y, categorical_feature=categorical_features)
    valid_data = lgb.Dataset(
        valid_x, label=valid_y, categorical_feature=categorical_features, reference=train_data
    )

    return lgb.train(
        params,
        train_data,
        num_boost_round=num_boost_round,
        valid_sets=[valid_data],
        valid_names=["valid"],
        callbacks=[
            lgb.early_stopping(stopping_rounds=early_stopping_rounds, verbose=False),
            lgb.log_evaluation(period=50),
        ],
    )


def _safe_divide(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else float("nan")


def evaluate_performance(
    predictions: np.ndarray,
    actual: np.ndarray,
    dataset_name: str,
) -> dict[str, Any]:
    """AUC and confusion-matrix metrics at the Youden-optimal threshold.

    Returns
    -------
    dict
        ``dataset``, ``auc``, ``accuracy``, ``sensitivity``, ``specificity``,
        ``precision``, ``f1``, ``threshold``.
    """
    fpr, tpr, thresholds = roc_curve(actual, predictions)
    optimal_idx = int(np.argmax(tpr - fpr))
    threshold = float(min(thresholds[optimal_idx], 1.0))

    binary_preds = (predictions >= threshold).astype(int)
    tn, fp, fn, tp = confusion_matrix(actual, binary_preds, labels=[0, 1]).ravel()

    sensitivity = _safe_divide(tp, tp + fn)
    precision = _safe_divide(tp, tp + fp)
    return {
        "dataset": dataset_name,
        "auc": float(roc_auc_score(actual, predictions)),
        "accuracy": _safe_divide(tp + tn, tn + fp + fn + tp),
        "sensitivity": sensitivity,
        "specificity": _safe_divide(tn, tn + fp),
        "precision": precision,
        "f1": _safe_divide(2 * precision * sensitivity, precision + sensitivity),
        "threshold": threshold,
    }


def metrics_table(metrics: list[dict[str, Any]]) -> pl.DataFrame:
    """Rounded metrics table for reporting."""
    return pl.DataFrame(metrics).select(
        pl.col("dataset").alias("Dataset"),
        pl.col("auc").round(3).alias("AUC"),
        pl.col("accuracy").round(3).alias("Accuracy"),
        pl.col("sensitivity").round(3).alias("Sensitivity"),
        pl.col("specificity").round(3).alias("Specificity"),
        pl.col("precision").round(3).alias("Precision"),
        pl.col("f1").round(3).alias("F1"),
    )


def log_feature_importance(booster: lgb.Booster, top_n: int = 15) -> pl.DataFrame:
    """Log and return gain-based feature importance."""
    importance = pl.DataFrame(
        {
            "feature": booster.feature_name(),
            "gain": booster.feature_importance(importance_type="gain"),
            "split": booster.feature_importance(importance_type="split"),
        }
    ).sort("gain", descending=True)
    logger.info("Top %d features by gain:\n%s", top_n, importance.head(top_n))
    return importance


def run_training(config: PipelineConfig, retrain: bool = False) -> pl.DataFrame:
    """Train (or reload) the classifier and evaluate it on every split.

    Saves the model text file and categorical levels to the derived folder
    and the metrics table to ``results/tables/model_metrics.csv``.

    Returns
    -------
    pl.DataFrame
        The metrics table.
    """
    splits = {
        f"Train ({min(config.train_years)}-{max(config.train_years)})": config.train_years,
        f"Validation ({min(config.valid_years)}-{max(config.valid_years)})": config.valid_years,
        f"Test ({min(config.test_years)}-{max(config.test_years)})": config.test_years,
    }
    frames = {name: labelled_rows(load_built_years(config, years)) for name, years in splits.items()}
    train_name, valid_name, _ = list(splits)

    logger.info("Base rates for manufactured housing loans:")
    for name, df in frames.items():
        logger.info("%s: %.3f%%", name, 100 * df[LABEL_COLUMN].mean())

    levels = fit_category_levels(frames[train_name])
    matrices = {name: prepare_features(df, levels) for name, df in frames.items()}
    labels = {name: df[LABEL_COLUMN].to_numpy() for name, df in frames.items()}
    categorical_features = list(levels)

    if config.model_path.exists() and not retrain:
        booster = lgb.Booster(model_file=str(config.model_path))
        logger.info("Model loaded from file: %s", config.model_path)
    else:
        booster = train_classifier(
            matrices[train_name],
            labels[train_name],
            matrices[valid_name],
            labels[valid_name],
            categorical_features,
            config.lightgbm_params,
            num_boost_round=config.num_boost_round,
            early_stopping_rounds=config.early_stopping_rounds,
        )
        config.model_path.parent.mkdir(parents=True, exist_ok=True)
        booster.save_model(str(config.model_path))
        logger.info("Saved model to %s", config.model_path)
    save_levels(levels, config.levels_path)

    metrics = [
        evaluate_performance(booster.predict(matrices[name]), labels[name], name)
        for name in splits
    ]
    table = metrics_table(metrics)
    logger.info("Model performance:\n%s", table)
    write_table(table, config.get_stage_dir("tables") / "model_metrics.csv")

    log_feature_importance(booster)
    return table


__all__ = [
    "BUILT_INTEGER_COLUMNS",
    "BUILT_FLOAT_COLUMNS",
    "load_built_year",
    "load_built_years",
    "labelled_rows",
    "train_classifier",
    "evaluate_performance",
    "metrics_table",
    "log_feature_importance",
    "run_training",
]
