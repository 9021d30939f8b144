"""
Exceptions raised when pipeline inputs violate integrity constraints.
"""


class DataIntegrityError(ValueError):
    """A stage input breaks an invariant the pipeline cannot recover from.

    Raised for malformed identifiers in strict mode, ambiguous crosswalk
    resolution, duplicate keys where uniqueness is required, and missing
    price-index years. The message always names the offending key.
    """


class GeoIDError(DataIntegrityError):
    """A geographic identifier cannot be brought to its canonical width."""


__all__ = [
    "DataIntegrityError",
    "GeoIDError",
]
