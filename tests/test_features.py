"""Tests for derived loan and tract features."""

import math

import polars as pl

from hmda_mfh import derive_features
from hmda_mfh.core.features import loan_bin_expr, safe_ratio


def _merged_loans():
    return pl.DataFrame(
        {
            "year": [2005, 2005, 1995],
            "respondent_id": ["A", "A", "B"],
            "loan_amount": [100.0, 50.0, 30.0],
            "income": [0.0, 25.0, None],
            "is_urban": [True, False, False],
            "property_type": [2, 1, None],
            "oo_value_tot": [1000.0, 1000.0, 0.0],
            "oo_tot": [10.0, 10.0, 0.0],
            "mfh_value_tot": [500.0, 500.0, 100.0],
            "mfh_tot": [5.0, 5.0, 0.0],
            "mfh_oo_tot": [4.0, 4.0, 0.0],
            "sfd_tot": [80.0, 80.0, 50.0],
            "housing_units_tot": [100.0, 100.0, 0.0],
            "inc_hh_median": [50.0, 50.0, 40.0],
        }
    )


def test_loan_to_income_with_zero_income_is_missing():
    result = derive_features(_merged_loans())
    assert result["loan_to_income"][0] is None
    assert result["loan_to_income"][1] == 2.0


def test_ratios_never_produce_infinity():
    result = derive_features(_merged_loans())
    for column in ["oo_value_avg", "mfh_pct", "sfd_pct", "loan_to_value", "loan_to_mfh_value"]:
        values = result[column].drop_nulls().to_list()
        assert not any(math.isinf(v) for v in values)
    assert result["mfh_pct"].to_list() == [0.05, 0.05, None]
    assert result["loan_to_value"].to_list() == [1.0, 0.5, None]


def test_is_manufactured_only_defined_from_2004():
    result = derive_features(_merged_loans())
    assert result["is_manufactured"].to_list() == [1, 0, None]


def test_lender_aggregates_and_rural_loan():
    result = derive_features(_merged_loans())
    assert result["lender_loan_count"].to_list() == [2, 2, 1]
    assert result["lender_avg_loan"].to_list() == [75.0, 75.0, 30.0]
    assert result["rural_loan"].to_list() == [0.0, 50.0, 30.0]


def test_is_manufactured_missing_without_property_type():
    df = _merged_loans().drop("property_type")
    result = derive_features(df)
    assert result["is_manufactured"].null_count() == df.height


def test_loan_bin_labels():
    df = pl.DataFrame({"loan_amount": [10.0, 20000.0, 250000.0, 0.0]})
    result = df.select(loan_bin_expr("loan_amount"))
    assert result["loan_bin"].to_list() == ["(0,20000]", "(0,20000]", "(200000,Inf]", None]


def test_safe_ratio_handles_null_and_zero():
    df = pl.DataFrame({"num": [1.0, 1.0, None], "den": [0.0, None, 2.0]})
    result = df.select(safe_ratio("num", "den").alias("ratio"))
    assert result["ratio"].to_list() == [None, None, None]
