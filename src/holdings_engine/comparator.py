"""Period-over-period comparison of one entity's snapshots."""
from __future__ import annotations

import logging
from typing import Dict, List

from .models import ComparisonResult, DiffRecord, HoldingRecord, Snapshot

LOGGER = logging.getLogger(__name__)


def percent_change(shares_current: float, shares_previous: float, *, held_before: bool = True) -> float:
    """Percentage share change; new positions are +100 and full exits -100.

    ``held_before`` says whether the previous snapshot listed the security at all.
    A listed position that drops to zero shares is an exit even if its previous
    share count was reported as zero.
    """

    if held_before and shares_current == 0:
        return -100.0
    if shares_previous > 0:
        return (shares_current - shares_previous) / shares_previous * 100
    return 100.0 if shares_current > 0 else 0.0


def _diff(reference: HoldingRecord, current: HoldingRecord | None, previous: HoldingRecord | None) -> DiffRecord:
    shares_current = current.shares if current else 0.0
    shares_previous = previous.shares if previous else 0.0
    if current is None:
        percent = -100.0
    else:
        percent = percent_change(shares_current, shares_previous, held_before=previous is not None)
    return DiffRecord(
        security_key=reference.security_key,
        issuer_name=reference.issuer_name,
        security_id=reference.security_id,
        shares_current=shares_current,
        shares_previous=shares_previous,
        share_delta=shares_current - shares_previous,
        percent_delta=percent,
        current_value=current.reported_value if current else 0.0,
        previous_value=previous.reported_value if previous else 0.0,
    )


class SnapshotComparator:
    """Keyed diff of two snapshots with closed-position detection."""

    def __init__(self, top_n: int = 5) -> None:
        self.top_n = top_n

    def diff(self, current: Snapshot, previous: Snapshot) -> List[DiffRecord]:
        """Return one record per security key present in either snapshot.

        Records are sorted by current value, largest first. Keys only present in
        ``previous`` are positions closed between the two filings.
        """

        remaining: Dict[str, HoldingRecord] = dict(previous.records)
        changes: List[DiffRecord] = []
        for key, record in current.records.items():
            changes.append(_diff(record, record, remaining.pop(key, None)))

        closed = [_diff(record, None, record) for record in remaining.values()]
        if closed:
            LOGGER.debug("%d positions closed since %s", len(closed), previous.filing_date)
        changes.extend(closed)
        changes.sort(key=lambda change: change.current_value, reverse=True)
        return changes

    def compare(self, current: Snapshot, previous: Snapshot) -> ComparisonResult:
        return ComparisonResult(
            entity_id=current.entity_id,
            current=current,
            previous=previous,
            changes=tuple(self.diff(current, previous)),
            top_n=self.top_n,
        )


__all__ = ["SnapshotComparator", "percent_change"]
