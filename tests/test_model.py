"""Tests for classifier preparation, training, evaluation and imputation."""

import numpy as np
import polars as pl
import pytest

from hmda_mfh import PipelineConfig
from hmda_mfh.core.config import CATEGORICAL_FEATURES, LIGHTGBM_PARAMS, NUMERIC_FEATURES
from hmda_mfh.core.model import (
    IMPUTATION_COLUMNS,
    encode_categoricals,
    evaluate_performance,
    fit_category_levels,
    impute_property_type,
    load_built_years,
    load_levels,
    metrics_table,
    prepare_features,
    save_levels,
    train_classifier,
)
from hmda_mfh.utils.io import write_table


def _loans(n=400, seed=0):
    rng = np.random.default_rng(seed)
    label = rng.integers(0, 2, n)
    data = {column: rng.normal(size=n) for column in NUMERIC_FEATURES}
    data["loan_amount"] = np.where(label == 1, rng.uniform(10, 60, n), rng.uniform(80, 300, n))
    for column in CATEGORICAL_FEATURES:
        data[column] = rng.integers(1, 4, n).astype(str)
    data["property_type_imp"] = np.where(label == 1, "2", "1")
    data["state_code"] = rng.choice(["01", "06"], n)
    data["county_code"] = rng.choice(["001", "037"], n)
    data["sequence_number"] = np.arange(n).astype(str)
    data["year"] = np.full(n, 2005)
    data["is_manufactured"] = label
    return pl.DataFrame(data)


def test_fit_and_encode_categoricals_unseen_is_missing():
    train = pl.DataFrame({"loan_type": ["2", "1", None, "2"]})
    levels = fit_category_levels(train, ["loan_type"])
    assert levels == {"loan_type": ["1", "2"]}

    encoded = encode_categoricals(pl.DataFrame({"loan_type": ["2", "9", None]}), levels)
    assert encoded["loan_type"].to_list() == [1, None, None]


def test_prepare_features_fills_numeric_with_state_median():
    df = _loans(n=6).with_columns(
        pl.Series("state_code", ["01", "01", "01", "06", "06", "06"]),
        pl.Series("income", [1.0, 3.0, None, 10.0, None, None]),
    )
    levels = fit_category_levels(df)
    matrix = prepare_features(df, levels)

    assert list(matrix.columns) == list(levels) + NUMERIC_FEATURES
    assert matrix["income"].tolist() == [1.0, 3.0, 2.0, 10.0, 10.0, 10.0]


def test_prepare_features_requires_all_columns():
    df = _loans(n=5).drop("income")
    with pytest.raises(ValueError, match="income"):
        prepare_features(df, fit_category_levels(df))


def test_levels_round_trip(tmp_path):
    levels = {"loan_type": ["1", "2"]}
    save_levels(levels, tmp_path / "levels.json")
    assert load_levels(tmp_path / "levels.json") == levels
    with pytest.raises(FileNotFoundError):
        load_levels(tmp_path / "missing.json")


def test_evaluate_performance_youden_threshold():
    metrics = evaluate_performance(np.array([0.1, 0.2, 0.8, 0.9]), np.array([0, 0, 1, 1]), "Test")
    assert metrics["auc"] == 1.0
    assert 0.2 < metrics["threshold"] <= 0.8
    assert metrics["accuracy"] == 1.0
    assert metrics["sensitivity"] == 1.0
    assert metrics["specificity"] == 1.0
    assert metrics["f1"] == 1.0

    table = metrics_table([metrics])
    assert table.columns == ["Dataset", "AUC", "Accuracy", "Sensitivity", "Specificity", "Precision", "F1"]


def test_train_classifier_and_impute():
    train, valid = _loans(seed=1), _loans(seed=2)
    levels = fit_category_levels(train)
    booster = train_classifier(
        prepare_features(train, levels),
        train["is_manufactured"].to_numpy(),
        prepare_features(valid, levels),
        valid["is_manufactured"].to_numpy(),
        list(levels),
        dict(LIGHTGBM_PARAMS, max_bin=255),
        num_boost_round=50,
        early_stopping_rounds=10,
    )

    test = _loans(seed=3)
    predictions = booster.predict(prepare_features(test, levels))
    metrics = evaluate_performance(predictions, test["is_manufactured"].to_numpy(), "Test")
    assert metrics["auc"] > 0.9

    imputed = impute_property_type(test.drop("is_manufactured"), booster, levels)
    assert imputed.height == test.height
    assert "is_mfh_pred" in imputed.columns
    assert set(imputed.columns) - {"is_mfh_pred"} <= set(IMPUTATION_COLUMNS)
    assert imputed["is_mfh_pred"].is_between(0, 1).all()


def test_train_classifier_needs_positive_labels():
    train = _loans(n=50).with_columns(pl.lit(0).alias("is_manufactured"))
    levels = fit_category_levels(train)
    matrix = prepare_features(train, levels)
    with pytest.raises(ValueError, match="positive"):
        train_classifier(matrix, train["is_manufactured"].to_numpy(), matrix, np.zeros(50), list(levels), LIGHTGBM_PARAMS)


def test_load_built_years_restores_dtypes_from_csv(tmp_path):
    config = PipelineConfig(derived_dir=tmp_path, output_format="csv")
    built = _loans(n=20).with_columns(pl.lit(True).alias("is_urban"))
    write_table(built, config.built_path(2005))

    loaded = load_built_years(config, [2005])
    assert loaded.schema["is_manufactured"] == pl.Int64
    assert loaded["is_manufactured"].sum() == built["is_manufactured"].sum()
    assert loaded.schema["loan_amount"] == pl.Float64
    assert loaded.schema["is_urban"] == pl.Boolean
    assert loaded["state_code"].to_list() == built["state_code"].to_list()

    levels = fit_category_levels(loaded)
    matrix = prepare_features(loaded, levels)
    assert matrix.shape == (20, len(levels) + len(NUMERIC_FEATURES))
