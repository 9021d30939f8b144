"""
Manufactured-housing classifier: feature preparation, training and imputation.
"""

from .prepare import (
    fit_category_levels,
    encode_categoricals,
    prepare_features,
    save_levels,
    load_levels,
)
from .train import (
    load_built_year,
    load_built_years,
    labelled_rows,
    train_classifier,
    evaluate_performance,
    metrics_table,
    log_feature_importance,
    run_training,
)
from .impute import (
    IMPUTATION_COLUMNS,
    load_model,
    impute_property_type,
    run_imputation,
)

__all__ = [
    "fit_category_levels",
    "encode_categoricals",
    "prepare_features",
    "save_levels",
    "load_levels",
    "load_built_year",
    "load_built_years",
    "labelled_rows",
    "train_classifier",
    "evaluate_performance",
    "metrics_table",
    "log_feature_importance",
    "run_training",
    "IMPUTATION_COLUMNS",
    "load_model",
    "impute_property_type",
    "run_imputation",
]
