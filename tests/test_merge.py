"""Tests for covariate, lender and price-index merges."""

import polars as pl
import pytest

from hmda_mfh import (
    DataIntegrityError,
    county_medians,
    harmonize_census_tracts,
    merge_covariates,
    merge_lenders,
    merge_price_index,
)

COLUMNS = ["inc_hh_median", "mfh_tot"]


def _covariates():
    return pl.DataFrame(
        {
            "tr2010ge": ["06037123456", "06037000100", "06037000200", "06059000100"],
            "decade": [2010, 2010, 2010, 2010],
            "countyfp": ["06037", "06037", "06037", "06059"],
            "inc_hh_median": [50000, 10, 30, 99],
            "mfh_tot": [7, 1, 3, 9],
        }
    )


def test_exact_tract_match_keeps_values_and_unmatched_loan_is_counted():
    loans = pl.DataFrame(
        {
            "loan_id": [1, 2],
            "tr2010ge": ["06037123456", "06037999999"],
            "countyfp": ["06037", "06037"],
            "decade": [2010, 2010],
        }
    )
    covariates = _covariates().filter(pl.col("tr2010ge") == "06037123456")
    county = pl.DataFrame(
        {"countyfp": ["06059"], "decade": [2010], "inc_hh_median": [1.0], "mfh_tot": [1.0]}
    )

    result, diag = merge_covariates(loans, covariates, county, covariate_columns=COLUMNS)

    assert result["loan_id"].to_list() == [1]
    assert result["inc_hh_median"][0] == 50000
    assert result["mfh_tot"][0] == 7
    assert result["covariate_level"][0] == "tract"
    assert diag.primary_matched == 1
    assert diag.fallback_matched == 0
    assert diag.dropped == 1


def test_county_fallback_uses_median_of_county_tracts():
    loans = pl.DataFrame(
        {
            "loan_id": [1, 2],
            "tr2010ge": ["06037000300", None],
            "countyfp": ["06037", "06059"],
            "decade": [2010, 2010],
        }
    )
    covariates = _covariates().filter(pl.col("tr2010ge") != "06037123456")

    result, diag = merge_covariates(loans, covariates, covariate_columns=COLUMNS)
    result = result.sort("loan_id")

    assert result["inc_hh_median"].to_list() == [20.0, 99.0]
    assert result["mfh_tot"].to_list() == [2.0, 9.0]
    assert result["covariate_level"].to_list() == ["county", "county"]
    assert diag.fallback_matched == 2
    assert diag.fallback_match_rate == 100.0


def test_merge_covariates_never_duplicates_loans():
    loans = pl.DataFrame(
        {
            "loan_id": [1, 2, 3],
            "tr2010ge": ["06037000100", "06037000300", "06037000100"],
            "countyfp": ["06037", "06037", "06037"],
            "decade": [2010, 2010, 2010],
        }
    )
    result, diag = merge_covariates(loans, _covariates(), covariate_columns=COLUMNS)
    assert sorted(result["loan_id"].to_list()) == [1, 2, 3]
    assert diag.primary_matched + diag.fallback_matched + diag.dropped == loans.height


def test_merge_covariates_matches_on_decade():
    loans = pl.DataFrame(
        {"tr2010ge": ["06037000100"], "countyfp": ["06037"], "decade": [2000]}
    )
    result, diag = merge_covariates(loans, _covariates(), covariate_columns=COLUMNS)
    assert result.height == 0
    assert diag.dropped == 1


def test_duplicate_covariate_keys_are_fatal():
    covariates = pl.concat([_covariates(), _covariates().head(1)])
    loans = pl.DataFrame({"tr2010ge": ["06037123456"], "countyfp": ["06037"], "decade": [2010]})
    with pytest.raises(DataIntegrityError, match="06037123456"):
        merge_covariates(loans, covariates, covariate_columns=COLUMNS)


def test_county_medians_by_county_and_decade():
    medians = county_medians(_covariates(), COLUMNS)
    row = medians.filter(pl.col("countyfp") == "06037").row(0, named=True)
    assert row["inc_hh_median"] == 30.0
    assert row["mfh_tot"] == 3.0


def test_harmonize_census_tracts_aggregates_to_target_tracts():
    census = pl.DataFrame(
        {
            "census_tract": ["01001020100", "01001020200", "01001020300", "01001020150"],
            "countyfp": ["01001"] * 4,
            "decade": [2000, 2000, 2000, 2010],
            "vintage": [2000, 2000, 2000, 2010],
            "inc_hh_median": [100, 200, 1, 400],
            "mfh_tot": [10, 5, 1, 4],
        }
    )
    mapping = pl.DataFrame(
        {
            "source_geoid": ["01001020100", "01001020200"],
            "source_vintage": [2000, 2000],
            "target_geoid": ["01001020150", "01001020150"],
            "target_vintage": [2010, 2010],
        }
    )

    result, diag = harmonize_census_tracts(census, mapping, covariate_columns=COLUMNS)

    assert result.select(["tr2010ge", "decade"]).rows() == [
        ("01001020150", 2000),
        ("01001020150", 2010),
    ]
    assert result["mfh_tot"].to_list() == [15, 4]
    assert result["inc_hh_median"].to_list() == [150.0, 400.0]
    assert result["countyfp"].to_list() == ["01001", "01001"]
    assert diag.dropped == 1


def test_merge_lenders_flags_listed_lenders():
    loans = pl.DataFrame(
        {"agency_code": [1, 1, 2], "respondent_id": ["123", "456", "123"], "loan_id": [1, 2, 3]}
    )
    lenders = pl.DataFrame({"agency_code": [1], "respondent_id": ["123"], "name": ["acme homes"]})

    result, diag = merge_lenders(loans, lenders)
    result = result.sort("loan_id")

    assert result["property_type_imp"].to_list() == [2, 1, 1]
    assert result.height == loans.height
    assert diag.primary_matched == 1


def test_merge_price_index_deflates_nominal_columns():
    loans = pl.DataFrame({"year": [2000, 2010], "income": [50.0, 60.0], "loan_id": [1, 2]})
    cpi = pl.DataFrame({"year": [2000, 2010], "cpi_index": [0.8, 1.0]})

    result = merge_price_index(loans, cpi, ["income", "loan_amount"]).sort("loan_id")

    assert result["income"].to_list() == pytest.approx([62.5, 60.0])
    assert "cpi_index" not in result.columns


def test_merge_price_index_missing_year_is_fatal():
    loans = pl.DataFrame({"year": [1999], "income": [50.0]})
    cpi = pl.DataFrame({"year": [2010], "cpi_index": [1.0]})
    with pytest.raises(DataIntegrityError, match="1999"):
        merge_price_index(loans, cpi, ["income"])
