"""Tests for NHGIS tract crosswalk resolution."""

import polars as pl
import pytest

from hmda_mfh import DataIntegrityError, apply_crosswalk, resolve_crosswalk
from hmda_mfh.core.crosswalk import load_crosswalk


def _edges(rows):
    return pl.DataFrame(
        rows,
        schema=["source_geoid", "source_vintage", "target_geoid", "target_vintage", "weight"],
        orient="row",
    )


def test_resolve_crosswalk_picks_max_weight():
    edges = _edges(
        [
            ("01001020100", 2000, "01001020100", 2010, 0.3),
            ("01001020100", 2000, "01001020200", 2010, 0.7),
            ("01001020300", 2000, "01001020300", 2010, 1.0),
        ]
    )
    mapping = resolve_crosswalk(edges)
    assert mapping["target_geoid"].to_list() == ["01001020200", "01001020300"]


def test_resolve_crosswalk_ties_go_to_smallest_target():
    edges = _edges(
        [
            ("01001020100", 2000, "01001020900", 2010, 0.5),
            ("01001020100", 2000, "01001020500", 2010, 0.5),
        ]
    )
    mapping = resolve_crosswalk(edges)
    assert mapping.height == 1
    assert mapping["target_geoid"][0] == "01001020500"


def test_resolve_crosswalk_skips_zero_weight_edges():
    edges = _edges(
        [
            ("01001020100", 1990, "01001020100", 2010, 0.0),
            ("01001020100", 1990, "01001020900", 2010, 0.2),
        ]
    )
    mapping = resolve_crosswalk(edges)
    assert mapping["source_geoid"].to_list() == ["01001020100"]
    assert mapping["target_geoid"].to_list() == ["01001020900"]


def test_resolve_crosswalk_source_without_target_is_fatal():
    edges = _edges(
        [
            ("01001020100", 1990, "01001020900", 2010, 0.2),
            ("01001029900", 1990, "01001029900", 2010, 0.0),
        ]
    )
    with pytest.raises(DataIntegrityError, match="01001029900"):
        resolve_crosswalk(edges)


def test_resolve_crosswalk_allow_unmapped_drops_zero_weight_sources(caplog):
    edges = _edges(
        [
            ("01001020100", 1990, "01001020900", 2010, 0.2),
            ("01001029900", 1990, "01001029900", 2010, 0.0),
        ]
    )
    with caplog.at_level("WARNING", logger="hmda_mfh.core.crosswalk"):
        mapping = resolve_crosswalk(edges, allow_unmapped=True)
    assert mapping["source_geoid"].to_list() == ["01001020100"]
    assert "01001029900" in caplog.text


def test_resolve_crosswalk_keeps_vintages_apart():
    edges = _edges(
        [
            ("01001020100", 1990, "01001020100", 2010, 1.0),
            ("01001020100", 2000, "01001020200", 2010, 1.0),
        ]
    )
    mapping = resolve_crosswalk(edges).sort("source_vintage")
    assert mapping["target_geoid"].to_list() == ["01001020100", "01001020200"]


def test_resolve_crosswalk_duplicate_edges_are_fatal():
    edges = _edges(
        [
            ("01001020100", 2000, "01001020200", 2010, 0.6),
            ("01001020100", 2000, "01001020200", 2010, 0.6),
        ]
    )
    with pytest.raises(DataIntegrityError, match="01001020100"):
        resolve_crosswalk(edges)


def test_resolve_crosswalk_rejects_weight_above_one():
    edges = _edges([("01001020100", 2000, "01001020200", 2010, 1.5)])
    with pytest.raises(DataIntegrityError, match="01001020100"):
        resolve_crosswalk(edges)


def test_apply_crosswalk_identity_for_target_vintage():
    df = pl.DataFrame({"census_tract": ["06037101110", None]})
    result, diag = apply_crosswalk(df, None, source_vintage=2010)
    assert result["tr2010ge"].to_list() == ["06037101110", None]
    assert diag.primary_matched == 1
    assert diag.input_rows == 1


def test_apply_crosswalk_keeps_unmatched_rows():
    mapping = pl.DataFrame(
        {
            "source_geoid": ["06037101100"],
            "source_vintage": [2000],
            "target_geoid": ["06037101110"],
            "target_vintage": [2010],
        }
    )
    df = pl.DataFrame({"census_tract": ["06037101100", "06037999900"], "loan": [1, 2]})
    result, diag = apply_crosswalk(df, mapping, source_vintage=2000)
    result = result.sort("loan")
    assert result["tr2010ge"].to_list() == ["06037101110", None]
    assert diag.primary_match_rate == 50.0


def test_load_crosswalk_widens_1990_ids(tmp_path):
    path = tmp_path / "nhgis_tr1990_tr2010.csv"
    path.write_text(
        "tr1990ge,tr2010ge,wt_hu\n"
        "010010201,01001020100,0.9\n"
        "01001020200,01001020200,1.0\n"
    )
    edges = load_crosswalk(path, source_vintage=1990, source_col="tr1990ge")
    assert edges["source_geoid"].to_list() == ["01001020100", "01001020200"]
    assert edges["weight"].to_list() == [0.9, 1.0]
    assert edges["source_vintage"].unique().to_list() == [1990]
