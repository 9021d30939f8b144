"""
Data Commands CLI
=================

Command-line interface for importing HMDA and lender data and building the
enriched loan files.
"""

import argparse
import logging

from ..core.config import PipelineConfig
from ..core.workflows import (
    build_workflow,
    import_hmda_workflow,
    import_lenders_workflow,
)

logger = logging.getLogger(__name__)


def parse_year_range(year_str: str) -> range:
    """
    Parse year range string into a range object.

    Parameters
    ----------
    year_str : str
        Year range string (e.g., "1990-2017" or "2004")

    Returns
    -------
    range
        Range object representing the years

    Raises
    ------
    ValueError
        If the year string format is invalid
    """
    if "-" in year_str:
        parts = year_str.split("-")
        if len(parts) != 2:
            raise ValueError(
                f"Invalid year range: {year_str}. "
                "Expected format: 'START-END' (e.g., '1990-2017')"
            )
        try:
            start_year = int(parts[0])
            end_year = int(parts[1])
        except ValueError:
            raise ValueError(
                f"Invalid year range: {year_str}. Years must be integers."
            )

        if start_year > end_year:
            raise ValueError(
                f"Invalid year range: {year_str}. Start year must be <= end year."
            )

        return range(start_year, end_year + 1)
    else:
        try:
            year = int(year_str)
        except ValueError:
            raise ValueError(f"Invalid year: {year_str}. Expected integer or range.")

        return range(year, year + 1)


def _add_years_argument(parser: argparse.ArgumentParser, default_help: str) -> None:
    parser.add_argument(
        "--years",
        type=str,
        default=None,
        help=f"Year range (e.g., '1990-2017' or '2004'; default: {default_help})",
    )


def _add_replace_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Replace existing files (default: skip existing)",
    )


def configure_import_hmda_parser(parser: argparse.ArgumentParser) -> None:
    """Configure the import-hmda subcommand parser."""
    parser.description = """
Filter raw HMDA LAR archives (1990-2017) to originated, owner-occupied
home-purchase loans and save one file per year.

Examples:
  hmda-mfh import-hmda --years 1990-2017
  hmda-mfh import-hmda --years 2004 --replace
    """
    _add_years_argument(parser, "1990-2017")
    _add_replace_argument(parser)


def configure_import_lenders_parser(parser: argparse.ArgumentParser) -> None:
    """Configure the import-lenders subcommand parser."""
    parser.description = """
Combine the HUD manufactured-home lender workbook (1993-2003 sheets) into
one lender table.

Examples:
  hmda-mfh import-lenders
  hmda-mfh import-lenders --replace
    """
    _add_replace_argument(parser)


def configure_build_parser(parser: argparse.ArgumentParser) -> None:
    """Configure the build subcommand parser."""
    parser.description = """
Enrich filtered loans with the manufactured-lender flag, 2010-tract census
covariates (county-median fallback), CPI-deflated amounts and derived
features.

Examples:
  hmda-mfh build --years 1990-2017
  hmda-mfh build --years 1995 --replace --format csv
    """
    _add_years_argument(parser, "1990-2017")
    _add_replace_argument(parser)
    parser.add_argument(
        "--format",
        choices=["parquet", "csv"],
        default="parquet",
        help="Output file format (default: parquet)",
    )


def handle_import_hmda_command(args: argparse.Namespace) -> int:
    """
    Handle the import-hmda command.

    Returns
    -------
    int
        Exit code (0 for success, non-zero if any year failed)
    """
    years = parse_year_range(args.years) if args.years else None
    results = import_hmda_workflow(PipelineConfig.from_env(), years=years, replace=args.replace)
    if not all(results.values()):
        logger.warning("Some years failed to process")
        return 1
    return 0


def handle_import_lenders_command(args: argparse.Namespace) -> int:
    """Handle the import-lenders command."""
    import_lenders_workflow(PipelineConfig.from_env(), replace=args.replace)
    return 0


def handle_build_command(args: argparse.Namespace) -> int:
    """Handle the build command."""
    years = parse_year_range(args.years) if args.years else None
    config = PipelineConfig.from_env(output_format=args.format)
    results = build_workflow(config, years=years, replace=args.replace)
    return 0 if all(results.values()) else 1
