"""Holdings overlap between two entities."""
from __future__ import annotations

import logging
from typing import List

from .models import OverlapRecord, OverlapSummary, Snapshot

LOGGER = logging.getLogger(__name__)


class OverlapAnalyzer:
    """Intersects two snapshots by security key.

    Shared positions are ranked by combined value: two filers independently
    concentrating capital in the same security. Only counts of the exclusive
    positions are reported.
    """

    def overlap(self, snapshot_a: Snapshot, snapshot_b: Snapshot) -> OverlapSummary:
        records: List[OverlapRecord] = []
        exclusive_a = 0
        for key, holding_a in snapshot_a.records.items():
            holding_b = snapshot_b.records.get(key)
            if holding_b is None:
                exclusive_a += 1
                continue
            records.append(
                OverlapRecord(
                    issuer_name=holding_a.issuer_name,
                    security_id=holding_a.security_id,
                    value_entity_a=holding_a.reported_value,
                    value_entity_b=holding_b.reported_value,
                    shares_entity_a=holding_a.shares,
                    shares_entity_b=holding_b.shares,
                    combined_value=holding_a.reported_value + holding_b.reported_value,
                )
            )
        exclusive_b = sum(1 for key in snapshot_b.records if key not in snapshot_a.records)

        records.sort(key=lambda record: record.combined_value, reverse=True)
        LOGGER.debug(
            "Overlap %s/%s: %d shared, %d only in A, %d only in B",
            snapshot_a.entity_id,
            snapshot_b.entity_id,
            len(records),
            exclusive_a,
            exclusive_b,
        )
        return OverlapSummary(
            exclusive_count_a=exclusive_a,
            exclusive_count_b=exclusive_b,
            overlap_records=tuple(records),
            total_holdings_a=len(snapshot_a.records),
            total_holdings_b=len(snapshot_b.records),
            overlap_value_a=sum(record.value_entity_a for record in records),
            overlap_value_b=sum(record.value_entity_b for record in records),
        )


__all__ = ["OverlapAnalyzer"]
