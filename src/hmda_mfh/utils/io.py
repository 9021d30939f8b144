"""
Input/Output utilities (delimiters, zipped text files, parquet/CSV tables).
"""

import io
import logging
import zipfile
from csv import Sniffer
from pathlib import Path

import polars as pl


logger = logging.getLogger(__name__)


def should_process_output(path: Path, replace: bool) -> bool:
    """Return True when the target path should be generated.

    Parameters
    ----------
    path : Path
        Target output file path
    replace : bool
        Whether to replace existing files

    Returns
    -------
    bool
        True if file should be processed
    """
    return replace or not path.exists()


def get_delimiter(file_path: Path | str, bytes: int = 4096) -> str:
    """Determine the delimiter used in a delimited text file."""
    sniffer = Sniffer()
    data = io.open(file_path, mode="r", encoding="latin-1").read(bytes)
    return sniffer.sniff(data, delimiters=",|\t").delimiter


def _sniff_bytes(data: bytes) -> str:
    sample = data[:16000].decode("latin-1")
    return Sniffer().sniff(sample, delimiters=",|\t").delimiter


def read_delimited(path: Path | str) -> pl.DataFrame:
    """Read a delimited text file (or the first text member of a zip) as strings.

    All columns are loaded as ``pl.String`` so identifiers keep their
    leading zeros; numeric casts happen in the stages.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if path.suffix.lower() == ".zip":
        with zipfile.ZipFile(path) as z:
            members = [
                x for x in z.namelist() if (x.endswith(".txt") or x.endswith(".csv")) and "/" not in x
            ]
            if not members:
                raise FileNotFoundError(f"No delimited file inside archive: {path}")
            logger.info("Reading %s from %s", members[0], path.name)
            data = z.read(members[0])
        return pl.read_csv(
            data,
            separator=_sniff_bytes(data),
            infer_schema=False,
            encoding="utf8-lossy",
        )

    return pl.read_csv(
        path,
        separator=get_delimiter(path, bytes=16000),
        infer_schema=False,
        encoding="utf8-lossy",
    )


def read_table(path: Path | str) -> pl.DataFrame:
    """Read a parquet file, or a delimited file with string columns."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if path.suffix.lower() == ".parquet":
        return pl.read_parquet(path)
    return read_delimited(path)


def write_table(df: pl.DataFrame, path: Path | str) -> Path:
    """Write a frame as parquet or CSV depending on the file suffix."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".parquet":
        df.write_parquet(path)
    else:
        df.write_csv(path)
    logger.info("Saved %d rows to %s", df.height, path)
    return path


__all__ = [
    "should_process_output",
    "get_delimiter",
    "read_delimited",
    "read_table",
    "write_table",
]
