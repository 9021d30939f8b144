"""
Example: Train the Classifier and Impute Property Type
======================================================

This example trains the LightGBM manufactured-housing classifier on the
years where HMDA reports property type, then predicts property type for
every year from 1990 to 2017.

Before running:
1. Build the enriched loan files (see 01_example_build_workflow.py)

Usage:
    python examples/02_example_train_and_impute.py

Alternatively, you can use the CLI:
    hmda-mfh train
    hmda-mfh impute
"""

import logging

import polars as pl

from hmda_mfh import PipelineConfig, impute_workflow, summarize_workflow, train_workflow


def main():
    """Train, evaluate and impute."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    config = PipelineConfig()

    summarize_workflow(config)
    metrics = train_workflow(config, retrain=False)
    print(metrics)

    imputed = impute_workflow(config)
    print(
        imputed.group_by("year")
        .agg(pl.col("is_mfh_pred").mean().alias("mean_pred"), pl.len().alias("loans"))
        .sort("year")
    )


if __name__ == "__main__":
    main()
