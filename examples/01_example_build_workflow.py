"""
Example: Import and Build HMDA Loan Files
========================================

This example filters the raw HMDA LAR archives to home-purchase loans and
builds the enriched loan-level files used by the classifier.

The build includes:
1. Normalising state, county and tract identifiers
2. Flagging loans from listed manufactured-home lenders
3. Converting tracts to 2010 boundaries and merging census covariates
   (county medians where the tract has no covariates)
4. Deflating dollar amounts to 2010 dollars and deriving features

Before running:
1. Place the raw LAR archives in the folder named by HMDA_RAW_DIR
2. Place the NHGIS crosswalks and the BLS CPI workbook under CROSSWALK_DIR
3. Place the census tract extracts under DERIVED_DIR/acs and DERIVED_DIR/sf3

Usage:
    python examples/01_example_build_workflow.py

Alternatively, you can use the CLI:
    hmda-mfh import-hmda --years 1990-2017
    hmda-mfh build --years 1990-2017
"""

import logging

from hmda_mfh import PipelineConfig, build_workflow, import_hmda_workflow


def main():
    """Main workflow for importing and building HMDA loan files."""

    # Set up logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    logger = logging.getLogger(__name__)
    logger.info("Starting HMDA build workflow")

    # Define years to process (adjust as needed)
    config = PipelineConfig.from_env(build_years=range(1990, 2018))

    import_results = import_hmda_workflow(config, replace=False)
    if not all(import_results.values()):
        logger.warning("Some years failed to import; building the rest")

    years = [year for year, success in import_results.items() if success]
    build_workflow(config, years=years, replace=False)


if __name__ == "__main__":
    main()
