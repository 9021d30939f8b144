"""
HMDA Manufactured-Housing CLI
=============================

Command-line interface for the manufactured-housing imputation pipeline.

Commands
--------
- hmda-mfh import-hmda: Filter raw LAR archives to home-purchase loans
- hmda-mfh import-lenders: Combine the HUD manufactured-lender workbook
- hmda-mfh build: Merge lenders, census covariates and CPI; derive features
- hmda-mfh train: Train and evaluate the property-type classifier
- hmda-mfh impute: Predict property type for 1990-2017
- hmda-mfh summarize: Summary statistics by property type

Example Usage
-------------
# Import and build 1990-2017
$ hmda-mfh import-hmda --years 1990-2017
$ hmda-mfh import-lenders
$ hmda-mfh build --years 1990-2017

# Train and impute
$ hmda-mfh train
$ hmda-mfh impute

For detailed help on each command:
$ hmda-mfh build --help
"""

import argparse
import logging
import sys
from typing import Sequence

from .data import (
    configure_build_parser,
    configure_import_hmda_parser,
    configure_import_lenders_parser,
    handle_build_command,
    handle_import_hmda_command,
    handle_import_lenders_command,
)
from .model import (
    configure_impute_parser,
    configure_summarize_parser,
    configure_train_parser,
    handle_impute_command,
    handle_summarize_command,
    handle_train_command,
)

# (name, help, configure, handle)
COMMANDS = [
    ("import-hmda", "Filter raw HMDA files to home-purchase loans", configure_import_hmda_parser, handle_import_hmda_command),
    ("import-lenders", "Combine the HUD manufactured-lender list", configure_import_lenders_parser, handle_import_lenders_command),
    ("build", "Build enriched loan files", configure_build_parser, handle_build_command),
    ("train", "Train the property-type classifier", configure_train_parser, handle_train_command),
    ("impute", "Impute property type for all years", configure_impute_parser, handle_impute_command),
    ("summarize", "Summary statistics by property type", configure_summarize_parser, handle_summarize_command),
]


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with every subcommand configured."""
    parser = argparse.ArgumentParser(
        prog="hmda-mfh",
        description="HMDA manufactured-housing imputation pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Filter raw HMDA files
  hmda-mfh import-hmda --years 1990-2017

  # Build enriched loan files
  hmda-mfh build --years 1990-2017

  # Train the classifier and impute property type
  hmda-mfh train
  hmda-mfh impute
        """,
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging level (default: INFO)",
    )

    # Create subcommands
    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        help="Command to execute",
    )
    for name, help_text, configure, handle in COMMANDS:
        subparser = subparsers.add_parser(
            name,
            help=help_text,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        configure(subparser)
        subparser.set_defaults(handler=handle)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entry point for the hmda-mfh CLI.

    Parameters
    ----------
    argv : Sequence[str] | None, optional
        Command line arguments. If None, uses sys.argv[1:]

    Returns
    -------
    int
        Exit code (0 for success, non-zero for failure)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    # Execute command
    try:
        return args.handler(args)
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user", file=sys.stderr)
        return 130
    except Exception as e:
        logging.error(f"Command failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
