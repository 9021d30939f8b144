"""
Lender Lists
============

Administrative lender lists merged onto HMDA records.

Modules
-------
- manufactured: HUD list of manufactured-home lenders (1993-2003)
"""

from .manufactured import (
    combine_lender_sheets,
    load_manufactured_lenders,
    unique_lender_keys,
)

__all__ = [
    "combine_lender_sheets",
    "load_manufactured_lenders",
    "unique_lender_keys",
]
