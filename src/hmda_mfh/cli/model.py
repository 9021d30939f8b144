"""
Model Commands CLI
==================

Command-line interface for training the manufactured-housing classifier,
imputing property type and writing summary statistics.
"""

import argparse
import logging

from ..core.config import PipelineConfig
from ..core.workflows import impute_workflow, summarize_workflow, train_workflow
from .data import parse_year_range

logger = logging.getLogger(__name__)


def configure_train_parser(parser: argparse.ArgumentParser) -> None:
    """Configure the train subcommand parser."""
    parser.description = """
Train the LightGBM property-type classifier on 2004-2013, validate on
2014-2015 and report performance on 2016-2017. A saved model is reused
unless --retrain is given.

Examples:
  hmda-mfh train
  hmda-mfh train --retrain
    """
    parser.add_argument(
        "--retrain",
        action="store_true",
        help="Train a new model even if a saved model exists",
    )


def configure_impute_parser(parser: argparse.ArgumentParser) -> None:
    """Configure the impute subcommand parser."""
    parser.description = """
Apply the saved classifier to every built year and write the stacked
predictions.

Examples:
  hmda-mfh impute
  hmda-mfh impute --years 1990-2003
    """
    parser.add_argument(
        "--years",
        type=str,
        default=None,
        help="Year range to impute (default: 1990-2017)",
    )


def configure_summarize_parser(parser: argparse.ArgumentParser) -> None:
    """Configure the summarize subcommand parser."""
    parser.description = """
Write mean (sd) of key loan and tract features by property type for the
years in which HMDA reports property type.

Examples:
  hmda-mfh summarize
  hmda-mfh summarize --years 2004-2017
    """
    parser.add_argument(
        "--years",
        type=str,
        default=None,
        help="Year range to summarise (default: 2004-2013)",
    )


def handle_train_command(args: argparse.Namespace) -> int:
    """Handle the train command."""
    train_workflow(PipelineConfig.from_env(), retrain=args.retrain)
    return 0


def handle_impute_command(args: argparse.Namespace) -> int:
    """Handle the impute command."""
    years = parse_year_range(args.years) if args.years else None
    impute_workflow(PipelineConfig.from_env(), years=years)
    return 0


def handle_summarize_command(args: argparse.Namespace) -> int:
    """Handle the summarize command."""
    years = parse_year_range(args.years) if args.years else None
    summarize_workflow(PipelineConfig.from_env(), years=years)
    return 0
