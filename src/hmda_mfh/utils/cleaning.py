"""
Cleaning utilities (Polars): NA handling, numeric coercion, median fills.
"""

from typing import Sequence
import polars as pl


def replace_na_like_values(
    df: pl.DataFrame,
    columns: Sequence[str],
    na_like: Sequence[str] = ("NA", "N/A", "", "NA   ", "nan"),
) -> pl.DataFrame:
    columns_to_update = [
        column for column in columns if column in df.columns and df.schema[column] == pl.String
    ]
    if not columns_to_update:
        return df.clone()
    replacements = list(na_like)
    return df.with_columns(
        [
            pl.col(column).str.strip_chars().replace(replacements, [None] * len(replacements)).alias(column)
            for column in columns_to_update
        ]
    )


def coerce_numeric_columns(
    df: pl.DataFrame,
    numeric_columns: Sequence[str],
    dtype: type[pl.DataType] = pl.Float64,
) -> pl.DataFrame:
    """Cast columns to a numeric dtype; unparseable values become null."""
    columns_to_update = [column for column in numeric_columns if column in df.columns]
    if not columns_to_update:
        return df.clone()
    if dtype in (pl.Int64, pl.Int32):
        # "1.0"-style strings need a float hop before the integer cast
        exprs = [
            pl.col(column).cast(pl.Float64, strict=False).cast(dtype, strict=False).alias(column)
            for column in columns_to_update
        ]
    else:
        exprs = [pl.col(column).cast(dtype, strict=False).alias(column) for column in columns_to_update]
    return df.with_columns(exprs)


def negative_to_null(df: pl.DataFrame, columns: Sequence[str]) -> pl.DataFrame:
    """Replace negative values with null.

    The census API reports suppressed or unavailable estimates with large
    negative sentinels (e.g. -666666666).
    """
    columns_to_update = [column for column in columns if column in df.columns]
    return df.with_columns(
        [
            pl.when(pl.col(column) < 0).then(None).otherwise(pl.col(column)).alias(column)
            for column in columns_to_update
        ]
    )


def fill_group_median(
    df: pl.DataFrame,
    columns: Sequence[str],
    by: Sequence[str],
) -> pl.DataFrame:
    """Fill nulls with the median of the same column within each group.

    Groups whose values are all null stay null.
    """
    columns_to_update = [column for column in columns if column in df.columns]
    if not columns_to_update:
        return df.clone()
    return df.with_columns(
        [
            pl.col(column).fill_null(pl.col(column).median().over(list(by))).alias(column)
            for column in columns_to_update
        ]
    )


__all__ = [
    "replace_na_like_values",
    "coerce_numeric_columns",
    "negative_to_null",
    "fill_group_median",
]
