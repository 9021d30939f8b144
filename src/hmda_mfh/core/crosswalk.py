"""
Tract Crosswalk Resolution
==========================

Collapse the weighted many-to-many NHGIS tract correspondences into a
single-valued mapping usable as a join key, and apply it to records.

Each crosswalk edge carries the share of the source tract's housing units
(``wt_hu``) falling inside a target tract. Resolution keeps, for every
(source tract, source vintage), the positive-weight edge with the largest
weight; equal-weight ties go to the lexicographically smallest target id.
The tie-break only makes the result reproducible, it says nothing about
which target really holds more housing.

Example Usage
-------------
>>> from hmda_mfh.core.crosswalk import load_crosswalks, resolve_crosswalk
>>> edges = load_crosswalks(PipelineConfig())
>>> mapping = resolve_crosswalk(edges)
"""

import logging
from pathlib import Path

import polars as pl

from .config import CROSSWALK_FILES, TARGET_VINTAGE, PipelineConfig
from .diagnostics import StageDiagnostics
from .errors import DataIntegrityError
from ..utils.geo import normalize_geoid_column
from ..utils.io import read_table


logger = logging.getLogger(__name__)

EDGE_COLUMNS = ["source_geoid", "source_vintage", "target_geoid", "target_vintage", "weight"]
MAPPING_COLUMNS = ["source_geoid", "source_vintage", "target_geoid", "target_vintage"]

# Allowed rounding slack above a weight of 1
WEIGHT_TOLERANCE = 1e-6


def load_crosswalk(
    path: Path | str,
    source_vintage: int,
    source_col: str,
    target_col: str = "tr2010ge",
    weight_col: str = "wt_hu",
    target_vintage: int = TARGET_VINTAGE,
) -> pl.DataFrame:
    """Read one NHGIS tract crosswalk file into the standard edge layout.

    Parameters
    ----------
    path : Path | str
        CSV or parquet crosswalk file.
    source_vintage : int
        Tract vintage of ``source_col``.
    source_col, target_col, weight_col : str
        NHGIS column names (e.g. ``tr1990ge``, ``tr2010ge``, ``wt_hu``).
    target_vintage : int, default 2010
        Tract vintage of ``target_col``.

    Returns
    -------
    pl.DataFrame
        Columns ``source_geoid``, ``source_vintage``, ``target_geoid``,
        ``target_vintage``, ``weight``.

    Raises
    ------
    GeoIDError
        If any tract id cannot be brought to 11 digits. 1990 ids stored
        with 9 digits are widened first.
    """
    df = read_table(path)
    missing = [c for c in (source_col, target_col, weight_col) if c not in df.columns]
    if missing:
        raise ValueError(f"Crosswalk {path} is missing columns: {missing}")

    df = df.select(
        pl.col(source_col).cast(pl.String).alias("source_geoid"),
        pl.lit(source_vintage, dtype=pl.Int64).alias("source_vintage"),
        pl.col(target_col).cast(pl.String).alias("target_geoid"),
        pl.lit(target_vintage, dtype=pl.Int64).alias("target_vintage"),
        pl.col(weight_col).cast(pl.Float64, strict=False).alias("weight"),
    )
    for column in ("source_geoid", "target_geoid"):
        df, _ = normalize_geoid_column(
            df, column, "tract_geoid", strict=True, stage=f"crosswalk {source_vintage} {column}"
        )
    logger.info("Loaded %d crosswalk edges (%s -> %s) from %s", df.height, source_vintage, target_vintage, Path(path).name)
    return df


def load_crosswalks(config: PipelineConfig) -> pl.DataFrame:
    """Load and stack every configured NHGIS crosswalk."""
    frames = []
    for source_vintage, (name, source_col) in CROSSWALK_FILES.items():
        path = config.crosswalk_dir / name / f"{name}.csv"
        frames.append(
            load_crosswalk(path, source_vintage, source_col, target_vintage=config.target_vintage)
        )
    return pl.concat(frames, how="vertical")


def resolve_crosswalk(edges: pl.DataFrame, allow_unmapped: bool = False) -> pl.DataFrame:
    """Select one target tract per (source tract, source vintage).

    1. Group edges by (source_geoid, source_vintage).
    2. Discard edges with weight <= 0 (or missing).
    3. Keep the edge(s) with the group's maximum weight.
    4. Break ties with the lexicographically smallest target_geoid.
    5. Require exactly one edge per group.

    Parameters
    ----------
    edges : pl.DataFrame
        Crosswalk edges in the :func:`load_crosswalk` layout.
    allow_unmapped : bool, default False
        Leave sources whose edges all have zero weight (tracts with no
        housing units) out of the mapping with a warning instead of
        failing.

    Raises
    ------
    DataIntegrityError
        If a weight exceeds 1, if a source still has more than one target
        after tie-breaking (duplicate edges), or if a source has no
        positive-weight edge and ``allow_unmapped`` is False.
    """
    missing = [c for c in EDGE_COLUMNS if c not in edges.columns]
    if missing:
        raise ValueError(f"Crosswalk edges are missing columns: {missing}")

    group = ["source_geoid", "source_vintage"]

    too_heavy = edges.filter(pl.col("weight") > 1 + WEIGHT_TOLERANCE)
    if too_heavy.height:
        row = too_heavy.row(0, named=True)
        raise DataIntegrityError(
            f"Crosswalk weight {row['weight']} outside [0, 1] for source tract "
            f"{row['source_geoid']} (vintage {row['source_vintage']})"
        )

    positive = edges.filter(pl.col("weight") > 0)
    best = positive.filter(pl.col("weight") == pl.col("weight").max().over(group))
    best = best.filter(pl.col("target_geoid") == pl.col("target_geoid").min().over(group))

    ambiguous = best.group_by(group).len().filter(pl.col("len") > 1).sort(group)
    if ambiguous.height:
        row = ambiguous.row(0, named=True)
        raise DataIntegrityError(
            f"Multiple tracts match source tract {row['source_geoid']} "
            f"(vintage {row['source_vintage']}): {row['len']} edges remain after tie-breaking; "
            f"{ambiguous.height} source tracts affected"
        )

    unresolved = (
        edges.select(group).unique().join(best.select(group), on=group, how="anti").sort(group)
    )
    if unresolved.height:
        row = unresolved.row(0, named=True)
        if not allow_unmapped:
            raise DataIntegrityError(
                f"No crosswalk target for source tract {row['source_geoid']} "
                f"(vintage {row['source_vintage']}): every edge has zero weight; "
                f"{unresolved.height} source tracts affected"
            )
        logger.warning(
            "%d source tracts have no positive-weight crosswalk edge (e.g. %s, vintage %s)",
            unresolved.height,
            row["source_geoid"],
            row["source_vintage"],
        )

    logger.info("Resolved %d source tracts to a single target tract", best.height)
    return best.select(MAPPING_COLUMNS).sort(group)


def apply_crosswalk(
    df: pl.DataFrame,
    mapping: pl.DataFrame | None,
    source_vintage: int,
    target_vintage: int = TARGET_VINTAGE,
    geoid_col: str = "census_tract",
    out_col: str = "tr2010ge",
    stage: str = "tract conversion",
) -> tuple[pl.DataFrame, StageDiagnostics]:
    """Attach the target-vintage tract id to each record.

    When source and target vintage coincide the id is copied unchanged and
    ``mapping`` is not consulted. Records without a mapping keep a null
    ``out_col``; nothing is dropped here.
    """
    if source_vintage == target_vintage:
        out = df.with_columns(pl.col(geoid_col).alias(out_col))
    else:
        if mapping is None:
            raise ValueError(f"A crosswalk mapping is required for vintage {source_vintage}")
        lookup = mapping.filter(
            (pl.col("source_vintage") == source_vintage)
            & (pl.col("target_vintage") == target_vintage)
        ).select(
            pl.col("source_geoid").alias(geoid_col),
            pl.col("target_geoid").alias(out_col),
        )
        if lookup.height == 0:
            raise ValueError(f"No crosswalk from {source_vintage} to {target_vintage} tracts")
        out = df.join(lookup, on=geoid_col, how="left")

    with_tract = out.filter(pl.col(geoid_col).is_not_null())
    diagnostics = StageDiagnostics(
        stage=stage,
        input_rows=with_tract.height,
        primary_matched=with_tract.filter(pl.col(out_col).is_not_null()).height,
    )
    diagnostics.log()
    return out, diagnostics


__all__ = [
    "load_crosswalk",
    "load_crosswalks",
    "resolve_crosswalk",
    "apply_crosswalk",
]
