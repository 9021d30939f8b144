"""
Identity/key and record utilities (Polars).
"""

from typing import Sequence
import polars as pl

from ..core.config import LOAN_KEY_COLUMNS
from ..core.errors import DataIntegrityError


def add_identity_keys(
    df: pl.DataFrame,
    key_columns: Sequence[str] = tuple(LOAN_KEY_COLUMNS),
) -> pl.DataFrame:
    """Construct a stable HMDA loan record key (Polars).

    Pre-2018 HMDA identifies a loan by respondent, agency and sequence
    number; the key is their ``||``-joined string form.
    """
    out = df.clone()
    for column in key_columns:
        if column not in out.columns:
            out = out.with_columns(pl.lit(None, dtype=pl.String).alias(column))
    parts = []
    for i, column in enumerate(key_columns):
        if i:
            parts.append(pl.lit("||"))
        parts.append(pl.col(column).cast(pl.String).str.strip_chars().fill_null(""))
    return out.with_columns(pl.concat_str(parts).alias("hmda_record_key"))


def respondent_id_expr(column: str = "respondent_id") -> pl.Expr:
    """Normalise HMDA respondent ids so list and LAR ids compare equal.

    Strips whitespace, a trailing ``.0`` left by spreadsheet readers, and
    leading zeros of all-digit ids (``"0000012345"`` -> ``"12345"``).
    """
    code = pl.col(column).cast(pl.String).str.strip_chars().str.replace(r"\.0$", "")
    return (
        pl.when(code.str.contains(r"^\d+$"))
        .then(code.str.strip_chars_start("0").replace("", "0"))
        .otherwise(code)
        .alias(column)
    )


def assert_unique_keys(
    df: pl.DataFrame,
    key_columns: Sequence[str],
    label: str = "records",
) -> None:
    """Raise if any key combination appears more than once.

    Raises
    ------
    DataIntegrityError
        With the row count, the unique-key count and one offending key.
    """
    key_columns = list(key_columns)
    n_unique = df.select(key_columns).n_unique() if df.height else 0
    if n_unique != df.height:
        duplicated = (
            df.group_by(key_columns)
            .len()
            .filter(pl.col("len") > 1)
            .sort(key_columns)
            .row(0, named=True)
        )
        example = {column: duplicated[column] for column in key_columns}
        raise DataIntegrityError(
            f"Duplicate {label}: {df.height} rows but {n_unique} unique "
            f"({', '.join(key_columns)}) keys; e.g. {example} appears {duplicated['len']} times"
        )


def deduplicate_records(
    df: pl.DataFrame,
    keep: str = "last",
    subset: Sequence[str] | None = None,
) -> tuple[pl.DataFrame, int]:
    """Drop duplicate rows by key or subset (Polars).

    Returns the deduplicated frame and the number of rows dropped.
    """
    if subset is None and "hmda_record_key" not in df.columns:
        raise ValueError("Run add_identity_keys() before deduplication.")
    dedupe_subset = list(subset) if subset is not None else ["hmda_record_key"]
    out = df.unique(subset=dedupe_subset, keep=keep, maintain_order=True)
    return out, df.height - out.height


__all__ = [
    "add_identity_keys",
    "respondent_id_expr",
    "assert_unique_keys",
    "deduplicate_records",
]
