"""
Match-rate and row-drop diagnostics emitted by each pipeline stage.
"""

import logging
from dataclasses import dataclass


logger = logging.getLogger(__name__)


def _percent(numerator: int, denominator: int) -> float | None:
    if denominator == 0:
        return None
    return 100 * numerator / denominator


@dataclass(frozen=True)
class StageDiagnostics:
    """Row accounting for one stage run.

    ``input_rows`` = ``primary_matched`` + ``fallback_matched`` + ``dropped``
    for merge stages. Normalisation stages only fill ``rejected``.
    """

    stage: str
    input_rows: int
    primary_matched: int = 0
    fallback_matched: int = 0
    dropped: int = 0
    rejected: int = 0

    @property
    def output_rows(self) -> int:
        return self.input_rows - self.dropped - self.rejected

    @property
    def primary_match_rate(self) -> float | None:
        """Percent of input rows matched on the exact key."""
        return _percent(self.primary_matched, self.input_rows)

    @property
    def fallback_match_rate(self) -> float | None:
        """Percent of rows unmatched on the exact key that the fallback recovered."""
        return _percent(self.fallback_matched, self.input_rows - self.primary_matched)

    def log(self, level: int = logging.INFO) -> None:
        """Write the match and drop rates for this stage to the log."""
        primary = self.primary_match_rate
        fallback = self.fallback_match_rate
        logger.log(
            level,
            "%s: %d rows in, %d out | primary match rate: %s | fallback match rate: %s | dropped: %d | rejected: %d",
            self.stage,
            self.input_rows,
            self.output_rows,
            "n/a" if primary is None else f"{primary:.2f}%",
            "n/a" if fallback is None else f"{fallback:.2f}%",
            self.dropped,
            self.rejected,
        )


__all__ = [
    "StageDiagnostics",
]
