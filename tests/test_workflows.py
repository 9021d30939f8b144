"""End-to-end tests for one build year and the summary table."""

import polars as pl

from hmda_mfh import PipelineConfig, census_decade_for_year, tract_vintage_for_year
from hmda_mfh.core.config import COVARIATE_COLUMNS, census_decade_for_table
from hmda_mfh.core.workflows import build_year
from hmda_mfh.utils.summary import format_summary_table, summarize_by_property_type


def test_vintage_rules():
    assert tract_vintage_for_year(1995) == 1990
    assert tract_vintage_for_year(2002) == 1990
    assert tract_vintage_for_year(2003) == 2000
    assert tract_vintage_for_year(2012) == 2010
    assert tract_vintage_for_year(2022) == 2020
    assert census_decade_for_year(1999) == 1990
    assert census_decade_for_year(2005) == 2000
    assert census_decade_for_year(2017) == 2010
    assert census_decade_for_table(2000) == 1990
    assert census_decade_for_table(2019) == 2010


def test_pipeline_config_paths(tmp_path):
    config = PipelineConfig.from_env(derived_dir=tmp_path, output_format="csv")
    assert config.built_path(1995) == tmp_path / "hmda_1995.csv"
    assert config.model_path == tmp_path / "mfh-classifier.txt"
    assert config.get_stage_dir("acs") == tmp_path / "acs"


def _covariates(tracts, decade):
    return pl.DataFrame(
        {
            "tr2010ge": tracts,
            "decade": [decade] * len(tracts),
            "countyfp": [t[:5] for t in tracts],
            **{column: [100.0] * len(tracts) for column in COVARIATE_COLUMNS},
        }
    )


def test_build_year_1995_end_to_end():
    loans = pl.DataFrame(
        {
            "sequence_number": ["1", "2", "3"],
            "year": [1995, 1995, 1995],
            "loan_type": [1, 1, 1],
            "loan_amount": [50, 40, 30],
            "state_code": ["6", "6", "6"],
            "county_code": ["37", "37", "59"],
            "census_tract": ["1011.00", "2000.00", None],
            "is_urban": [True, True, False],
            "agency_code": [1, 2, 1],
            "respondent_id": ["0000012345", "77", "12345"],
            "purchaser_type": [0, 0, 0],
            "income": [25, 20, 15],
            "applicant_race_1": [5, 5, 5],
            "applicant_sex": [1, 1, 2],
            "co_applicant_race_1": [8, 8, 8],
            "co_applicant_sex": [5, 5, 5],
        }
    )
    mapping = pl.DataFrame(
        {
            "source_geoid": ["06037101100"],
            "source_vintage": [1990],
            "target_geoid": ["06037101110"],
            "target_vintage": [2010],
        }
    )
    covariates = _covariates(["06037101110", "06037200000"], 1990)
    county = covariates.group_by(["countyfp", "decade"]).agg(
        [pl.col(column).median() for column in COVARIATE_COLUMNS]
    )
    lenders = pl.DataFrame({"agency_code": [1], "respondent_id": ["12345"], "name": ["green tree"]})
    cpi = pl.DataFrame({"year": [1995], "cpi_index": [0.5]})

    result, diagnostics = build_year(
        loans, 1995, PipelineConfig(), mapping, covariates, county, lenders, cpi
    )
    result = result.sort("sequence_number")

    # loan 2 has an unmapped 1990 tract and falls back to its county;
    # loan 3 has no tract and no county covariates
    assert result["sequence_number"].to_list() == ["1", "2"]
    assert result["tr2010ge"].to_list() == ["06037101110", None]
    assert result["covariate_level"].to_list() == ["tract", "county"]
    assert result["property_type_imp"].to_list() == [2, 1]
    assert result["loan_amount"].to_list() == [100.0, 80.0]
    assert result["loan_to_income"].to_list() == [2.0, 2.0]
    assert result["is_manufactured"].null_count() == 2
    assert result["decade"].unique().to_list() == [1990]
    assert diagnostics[-1].dropped == 1


def test_summary_table_by_property_type():
    df = pl.DataFrame(
        {
            "is_manufactured": [1, 1, 0, 0, None],
            "loan_amount": [30.0, 50.0, 100.0, 200.0, 5.0],
            "income": [20.0, 40.0, 60.0, 80.0, 5.0],
            "is_urban": [False, True, True, True, True],
        }
    )
    stats = summarize_by_property_type(df)
    row = stats.set_index("feature").loc["loan_amount"]
    assert row["mean_1"] == 40.0
    assert row["mean_0"] == 150.0
    assert row["n_1"] == 2

    table = format_summary_table(stats, digits=1)
    assert table.loc[0, "Manufactured"] == "40.0 (14.1)"
    assert list(table["Variable"])[:2] == ["Loan amount ($000s)", "Income ($000s)"]
