"""Tests for fixed-width geographic identifier normalisation."""

import polars as pl
import pytest

from hmda_mfh import GeoIDError, add_geoid_columns, normalize_geoid, normalize_geoid_column


@pytest.mark.parametrize(
    ("level", "value", "expected"),
    [
        ("state", 6, "06"),
        ("state", "6", "06"),
        ("county", 37, "037"),
        ("county", "037", "037"),
        ("county_geoid", 6037, "06037"),
        ("block", "12", "012"),
        ("block", "123", "123"),
        ("block", "1234", "1234"),
        ("tract", "1234", "123400"),
        ("tract", "950902", "950902"),
        ("tract", "9509.02", "950902"),
        ("tract", 9509.02, "950902"),
        ("tract", 101, "010100"),
        ("tract", 1234, "123400"),
        ("tract_geoid", "010010201", "01001020100"),
        ("tract_geoid", "06037101110", "06037101110"),
        ("tract_geoid", 6037101110, "06037101110"),
    ],
)
def test_normalize_geoid_pads_to_level_width(level, value, expected):
    assert normalize_geoid(level, value) == expected


@pytest.mark.parametrize(
    ("level", "canonical"),
    [
        ("state", "06"),
        ("county", "037"),
        ("county_geoid", "06037"),
        ("tract", "950902"),
        ("tract", "010100"),
        ("block", "123"),
        ("block", "0123"),
        ("tract_geoid", "06037101110"),
    ],
)
def test_normalize_geoid_leaves_canonical_codes_unchanged(level, canonical):
    assert normalize_geoid(level, canonical) == canonical
    assert normalize_geoid(level, normalize_geoid(level, canonical)) == canonical

    df = pl.DataFrame({"code": [canonical]})
    result, diag = normalize_geoid_column(df, "code", level)
    assert result["code"].to_list() == [canonical]
    assert diag.rejected == 0


@pytest.mark.parametrize("value", [1234, 1234.0, "1234", "1234.00"])
def test_normalize_geoid_tract_number_forms_agree(value):
    assert normalize_geoid("tract", value) == "123400"


@pytest.mark.parametrize(
    ("level", "value"),
    [
        ("state", "AB"),
        ("state", 123),
        ("state", None),
        ("county", "12.5"),
        ("tract", "12345"),
        ("tract", "1234567"),
        ("tract", "12a4"),
        ("tract_geoid", "0600101"),
    ],
)
def test_normalize_geoid_rejects_malformed_codes(level, value):
    with pytest.raises(GeoIDError):
        normalize_geoid(level, value)


def test_normalize_geoid_rejects_unknown_level():
    with pytest.raises(ValueError):
        normalize_geoid("zip", "20500")


def test_normalize_geoid_column_rejects_and_counts():
    df = pl.DataFrame({"county_code": ["1", "x", None, "059"]})
    result, diag = normalize_geoid_column(df, "county_code", "county")
    assert result["county_code"].to_list() == ["001", "059"]
    assert diag.rejected == 2
    assert diag.output_rows == 2


def test_normalize_geoid_column_allow_missing_keeps_nulls():
    df = pl.DataFrame({"census_tract": ["1234", None, "12"]})
    result, diag = normalize_geoid_column(df, "census_tract", "tract", allow_missing=True)
    assert result["census_tract"].to_list() == ["123400", None]
    assert diag.rejected == 1


def test_normalize_geoid_column_float_tracts():
    df = pl.DataFrame({"census_tract": [9509.02, 101.0]})
    result, _ = normalize_geoid_column(df, "census_tract", "tract")
    assert result["census_tract"].to_list() == ["950902", "010100"]


def test_normalize_geoid_column_strict_names_value():
    df = pl.DataFrame({"tr1990ge": ["01001020100", "0100"]})
    with pytest.raises(GeoIDError, match="0100"):
        normalize_geoid_column(df, "tr1990ge", "tract_geoid", strict=True)


def test_add_geoid_columns_builds_tract_and_county_ids():
    df = pl.DataFrame(
        {
            "state_code": ["6", "6", "72", "XX"],
            "county_code": ["37", "37", "1", "1"],
            "census_tract": ["1011.10", None, "1234", "1234"],
        }
    )
    result, diag = add_geoid_columns(df)
    assert result["census_tract"].to_list() == ["06037101110", None]
    assert result["countyfp"].to_list() == ["06037", "06037"]
    assert diag.rejected == 1
    assert diag.dropped == 1


def test_normalize_geoid_column_numeric_tracts_agree():
    ints = pl.DataFrame({"census_tract": [101, 9509]})
    floats = pl.DataFrame({"census_tract": [101.0, 9509.0]})
    int_result, _ = normalize_geoid_column(ints, "census_tract", "tract")
    float_result, _ = normalize_geoid_column(floats, "census_tract", "tract")
    assert int_result["census_tract"].to_list() == ["010100", "950900"]
    assert float_result["census_tract"].to_list() == int_result["census_tract"].to_list()
