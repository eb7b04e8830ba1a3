"""Detection of filers reporting whole dollars instead of thousands."""
from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import statistics
from typing import List, Optional, Sequence

from .models import VALUE_UNIT, HoldingRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_SCALE_THRESHOLD = 4.0


@dataclass(frozen=True)
class NormalizationResult:
    records: List[HoldingRecord]
    scale_applied: bool
    median_ratio: Optional[float]


class ScaleNormalizer:
    """Rescales a snapshot's values when they look like whole dollars.

    Values in an information table are meant to be thousands, which puts the implied
    value-per-share of ordinary securities well below a few units. A filer that
    reports whole dollars instead shows ratios in the hundreds or thousands. The
    decision is made once per snapshot from the median ratio and applied to every
    record, never to a single row.
    """

    def __init__(self, threshold: float = DEFAULT_SCALE_THRESHOLD) -> None:
        self.threshold = threshold

    @staticmethod
    def median_ratio(records: Sequence[HoldingRecord]) -> Optional[float]:
        ratios = [record.reported_value / record.shares for record in records if record.shares > 0]
        if not ratios:
            return None
        return statistics.median(ratios)

    def should_rescale(self, records: Sequence[HoldingRecord]) -> bool:
        median = self.median_ratio(records)
        return median is not None and median > self.threshold

    def normalize(self, records: Sequence[HoldingRecord]) -> NormalizationResult:
        median = self.median_ratio(records)
        if median is None:
            LOGGER.debug("No positive share counts; leaving values unscaled")
            return NormalizationResult(list(records), False, None)

        LOGGER.debug("Median value/share ratio %.3f (threshold %.1f)", median, self.threshold)
        if median <= self.threshold:
            return NormalizationResult(list(records), False, median)

        LOGGER.info("Values look like whole dollars (median ratio %.3f); dividing by %d", median, VALUE_UNIT)
        return NormalizationResult(rescale(records), True, median)


def rescale(records: Sequence[HoldingRecord]) -> List[HoldingRecord]:
    return [replace(record, reported_value=record.reported_value / VALUE_UNIT) for record in records]


__all__ = ["ScaleNormalizer", "NormalizationResult", "DEFAULT_SCALE_THRESHOLD", "rescale"]
