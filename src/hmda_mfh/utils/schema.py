"""
Schema utilities: column renaming and standardization.
"""

import logging

import polars as pl

from ..core.config import RENAME_DICTIONARY


logger = logging.getLogger(__name__)


def rename_hmda_columns(df: pl.DataFrame, rename_map: dict[str, str] | None = None) -> pl.DataFrame:
    """Standardize HMDA column names across file vintages.

    Only columns present in the frame are renamed, and a legacy name is
    skipped when its target already exists.
    """
    rename_map = RENAME_DICTIONARY if rename_map is None else rename_map
    existing_renames = {
        old: new
        for old, new in rename_map.items()
        if old in df.columns and new not in df.columns
    }
    if existing_renames:
        logger.debug("Renaming %d columns: %s", len(existing_renames), existing_renames)
    return df.rename(existing_renames)


__all__ = [
    "rename_hmda_columns",
]
