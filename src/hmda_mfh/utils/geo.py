"""
Geographic identifier helpers (canonical fixed-width FIPS codes).

State, county, tract and block codes arrive as numbers with their leading
zeros stripped, as legacy ``####.##`` tract strings, or as 4-digit tract
codes. Every code is brought to the fixed width of its level before it is
used as a join key:

- state: 2 digits
- county: 3 digits (5 for the combined state+county id)
- tract: 6 digits (11 for the combined state+county+tract id)
- block: 3 or 4 digits

Four-digit tracts (and 9-digit combined tract ids) are right-extended with
"00"; this is how the census stored tracts without a suffix.
"""

import logging
from typing import Any, Literal

import polars as pl

from ..core.config import GEOID_WIDTHS, MAX_STATE_FIPS
from ..core.diagnostics import StageDiagnostics
from ..core.errors import GeoIDError


logger = logging.getLogger(__name__)

GeoLevel = Literal["state", "county", "tract", "block", "county_geoid", "tract_geoid"]

# Widths that are widened by appending "00"
_WIDENED_WIDTHS = {"tract": 4, "tract_geoid": 9}


def _level_widths(level: str) -> tuple[int, ...]:
    try:
        return GEOID_WIDTHS[level]
    except KeyError:
        raise ValueError(f"Unknown geography level: {level}") from None


def normalize_geoid(level: GeoLevel, value: Any) -> str:
    """Return the canonical fixed-width identifier for one code.

    Parameters
    ----------
    level : {"state", "county", "tract", "block", "county_geoid", "tract_geoid"}
        Geography level of ``value``.
    value : int, float or str
        Raw code. Integers are treated as codes whose leading zeros were
        stripped. At the tract level every number (int, float or dotted
        string) is a legacy ``####.##`` tract number (``9509.02`` ->
        ``950902``, ``101`` -> ``010100``). Digit strings shorter than the
        level's width are zero-padded except at the tract levels, where only
        the 4-digit (9-digit combined) widening applies. Canonical codes are
        returned unchanged.

    Returns
    -------
    str
        Zero-padded identifier of the level's fixed width.

    Raises
    ------
    GeoIDError
        If the value is missing, non-numeric, or has the wrong width after
        padding.
    """
    widths = _level_widths(level)
    # Codes already at a valid width are left alone
    pad_to = min(widths)
    if value is None or isinstance(value, bool):
        raise GeoIDError(f"Missing or invalid {level} code: {value!r}")

    if isinstance(value, (int, float)) and value < 0:
        raise GeoIDError(f"Negative {level} code: {value!r}")

    if isinstance(value, float):
        if value != value:
            raise GeoIDError(f"Missing {level} code")
        if level == "tract":
            code = str(int(round(value * 100))).zfill(6)
        elif value.is_integer():
            code = str(int(value)).zfill(pad_to)
        else:
            raise GeoIDError(f"Non-integral {level} code: {value!r}")
    elif isinstance(value, int):
        if level == "tract":
            code = str(value * 100).zfill(6)
        else:
            code = str(value).zfill(pad_to)
    else:
        code = str(value).strip()
        if level == "tract" and "." in code:
            try:
                code = str(int(round(float(code) * 100))).zfill(6)
            except ValueError:
                raise GeoIDError(f"Malformed tract code: {value!r}") from None
        elif level not in _WIDENED_WIDTHS and code.isdigit():
            code = code.zfill(pad_to)

    if level in _WIDENED_WIDTHS and len(code) == _WIDENED_WIDTHS[level]:
        code = code + "00"

    if not code.isdigit() or len(code) not in widths:
        raise GeoIDError(
            f"Malformed {level} code {value!r}: expected {' or '.join(map(str, widths))} digits"
        )
    return code


def geoid_expr(column: str, level: GeoLevel, dtype: pl.DataType | None = None) -> pl.Expr:
    """Polars expression normalising a column; invalid codes become null.

    ``dtype`` is the column's current dtype. Numeric tract columns are
    treated as ``####.##`` tract numbers, other numeric columns are
    zero-padded, and string columns follow the same rules as
    :func:`normalize_geoid`.
    """
    widths = _level_widths(level)
    pad_to = min(widths)
    col = pl.col(column)
    numeric = dtype is not None and (dtype.is_integer() or dtype.is_float())

    if numeric and level == "tract":
        code = (
            col.cast(pl.Float64)
            .mul(100)
            .round(0)
            .cast(pl.Int64, strict=False)
            .cast(pl.String)
            .str.zfill(6)
        )
    elif dtype is not None and dtype.is_integer():
        code = col.cast(pl.String).str.zfill(pad_to)
    elif dtype is not None and dtype.is_float():
        code = (
            pl.when(col == col.floor())
            .then(col.cast(pl.Int64, strict=False).cast(pl.String).str.zfill(pad_to))
            .otherwise(None)
        )
    else:
        code = col.cast(pl.String).str.strip_chars()
        if level == "tract":
            code = (
                pl.when(code.str.contains(".", literal=True))
                .then(
                    code.cast(pl.Float64, strict=False)
                    .mul(100)
                    .round(0)
                    .cast(pl.Int64, strict=False)
                    .cast(pl.String)
                    .str.zfill(6)
                )
                .otherwise(code)
            )
        elif level != "tract_geoid":
            code = (
                pl.when(code.str.contains(r"^\d+$"))
                .then(code.str.zfill(pad_to))
                .otherwise(code)
            )

    if level in _WIDENED_WIDTHS:
        code = (
            pl.when(code.str.len_chars() == _WIDENED_WIDTHS[level])
            .then(code + pl.lit("00"))
            .otherwise(code)
        )

    valid = code.str.contains(r"^\d+$") & code.str.len_chars().is_in(list(widths))
    return pl.when(valid).then(code).otherwise(None).alias(column)


def normalize_geoid_column(
    df: pl.DataFrame,
    column: str,
    level: GeoLevel,
    allow_missing: bool = False,
    strict: bool = False,
    stage: str | None = None,
) -> tuple[pl.DataFrame, StageDiagnostics]:
    """Normalise one identifier column, rejecting rows that cannot be fixed.

    Parameters
    ----------
    df : pl.DataFrame
        Input records.
    column : str
        Identifier column to normalise.
    level : str
        Geography level (see :data:`GEOID_WIDTHS`).
    allow_missing : bool, default False
        Keep rows whose identifier is null (they stay null). Otherwise null
        identifiers are rejected like malformed ones.
    strict : bool, default False
        Raise :class:`GeoIDError` on the first malformed identifier instead
        of rejecting rows.
    stage : str, optional
        Name used in the diagnostics.

    Returns
    -------
    tuple[pl.DataFrame, StageDiagnostics]
        New frame without rejected rows, and the rejection count.
    """
    stage = stage or f"normalize {column}"
    out = df.with_columns(
        pl.col(column).alias("_raw_geoid"),
        geoid_expr(column, level, df.schema[column]),
    )

    bad = pl.col(column).is_null()
    if allow_missing:
        bad = bad & pl.col("_raw_geoid").is_not_null()
    rejected = out.filter(bad)

    if rejected.height and strict:
        raise GeoIDError(
            f"{stage}: malformed {level} identifier {rejected['_raw_geoid'][0]!r} "
            f"({rejected.height} of {df.height} rows)"
        )

    out = out.filter(~bad).drop("_raw_geoid")
    diagnostics = StageDiagnostics(stage=stage, input_rows=df.height, rejected=rejected.height)
    if rejected.height:
        logger.warning(
            "%s: rejected %d of %d rows with malformed %s identifiers (e.g. %r)",
            stage,
            rejected.height,
            df.height,
            level,
            rejected["_raw_geoid"][0],
        )
    return out, diagnostics


def add_geoid_columns(
    df: pl.DataFrame,
    state_col: str = "state_code",
    county_col: str = "county_code",
    tract_col: str = "census_tract",
    tract_level: Literal["tract", "tract_geoid"] = "tract",
) -> tuple[pl.DataFrame, StageDiagnostics]:
    """Normalise loan geography and build the combined identifiers.

    Adds ``countyfp`` (5-digit state+county) and rewrites ``tract_col`` as
    the 11-digit tract id. Rows with malformed state or county codes, or
    outside the 50 states and DC, are rejected; a missing tract is allowed
    (the loan can still match at the county level).

    When ``tract_level`` is ``"tract_geoid"`` the tract column already holds
    the combined id and state/county are taken from it.
    """
    n_input = df.height
    rejected = 0

    if tract_level == "tract_geoid":
        out, diag = normalize_geoid_column(df, tract_col, "tract_geoid", allow_missing=False)
        rejected += diag.rejected
        out = out.with_columns(
            pl.col(tract_col).str.slice(0, 2).alias(state_col),
            pl.col(tract_col).str.slice(2, 3).alias(county_col),
        )
    else:
        out = df
        for column, level in ((state_col, "state"), (county_col, "county")):
            out, diag = normalize_geoid_column(out, column, level)
            rejected += diag.rejected
        out, diag = normalize_geoid_column(out, tract_col, "tract", allow_missing=True)
        rejected += diag.rejected
        out = out.with_columns(
            pl.when(pl.col(tract_col).is_not_null())
            .then(pl.col(state_col) + pl.col(county_col) + pl.col(tract_col))
            .otherwise(None)
            .alias(tract_col)
        )

    before = out.height
    out = out.filter(pl.col(state_col).cast(pl.Int64) <= MAX_STATE_FIPS)
    outside = before - out.height
    if outside:
        logger.info("Dropped %d rows outside the 50 states and DC", outside)

    out = out.with_columns((pl.col(state_col) + pl.col(county_col)).alias("countyfp"))
    diagnostics = StageDiagnostics(
        stage="normalize loan geography",
        input_rows=n_input,
        dropped=outside,
        rejected=rejected,
    )
    return out, diagnostics


__all__ = [
    "normalize_geoid",
    "geoid_expr",
    "normalize_geoid_column",
    "add_geoid_columns",
]
