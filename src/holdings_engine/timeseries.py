"""Multi-period history of a single holding."""
from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .deadline import Deadline
from .errors import DeadlineExceeded, HoldingsEngineError
from .models import VALUE_UNIT, FilingRef, HoldingDescriptor, HoldingRecord, TimeSeriesPoint
from .pipeline import SnapshotBuilder

LOGGER = logging.getLogger(__name__)

MAX_SNAPSHOTS = 8


def matches(record: HoldingRecord, descriptor: HoldingDescriptor) -> bool:
    """Issuer name contains the keyword, or the security identifier is equal."""

    if descriptor.keyword and descriptor.keyword in record.issuer_name.upper():
        return True
    return bool(descriptor.security_id) and record.security_id == descriptor.security_id


def summarize(rows: Iterable[HoldingRecord], descriptor: HoldingDescriptor, filing: FilingRef) -> TimeSeriesPoint:
    """Sum the matching share and principal rows of one snapshot.

    Option rows (``putCall`` set) report notional exposure and are left out.
    """

    shares = 0.0
    value = 0.0
    for row in rows:
        if not matches(row, descriptor) or row.is_derivative:
            continue
        shares += row.shares
        value += row.reported_value
    price = value * VALUE_UNIT / shares if shares > 0 else 0.0
    return TimeSeriesPoint(filing.filing_date, shares, value, price, filing.accession_id)


class TimeSeriesAssembler:
    """Tracks one holding across up to :data:`MAX_SNAPSHOTS` filings.

    Each filing runs through the snapshot pipeline on its own; a failure for one
    filing yields a zero-valued point for that date instead of aborting the series.
    """

    def __init__(self, builder: SnapshotBuilder, max_workers: int = 4) -> None:
        self.builder = builder
        self.max_workers = max(1, max_workers)

    def observe(
        self,
        entity_id: str,
        descriptor: HoldingDescriptor,
        filing: FilingRef,
        deadline: Optional[Deadline] = None,
    ) -> TimeSeriesPoint:
        try:
            snapshot = self.builder.build(entity_id, filing, deadline=deadline, require_rows=True)
        except DeadlineExceeded:
            raise
        except HoldingsEngineError as exc:
            LOGGER.warning("No data for %s filed %s: %s", entity_id, filing.filing_date, exc)
            return TimeSeriesPoint.empty(filing.filing_date, filing.accession_id)
        except Exception:
            LOGGER.exception("Unexpected failure building %s filed %s", entity_id, filing.filing_date)
            return TimeSeriesPoint.empty(filing.filing_date, filing.accession_id)
        return summarize(snapshot.rows, descriptor, filing)

    def track(
        self,
        entity_id: str,
        descriptor: HoldingDescriptor,
        filings: Sequence[FilingRef],
        deadline: Optional[Deadline] = None,
    ) -> List[TimeSeriesPoint]:
        """Return one point per filing, oldest first.

        When ``deadline`` elapses, filings not yet observed are left out and the
        partial series is returned.
        """

        filings = list(filings)[:MAX_SNAPSHOTS]
        if not filings:
            return []

        pool = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(filings)),
            thread_name_prefix="holding-history",
        )
        try:
            futures: Dict[Future, FilingRef] = {
                pool.submit(self.observe, entity_id, descriptor, filing, deadline): filing
                for filing in filings
            }
            done, pending = wait(futures, timeout=deadline.remaining() if deadline else None)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        if pending:
            LOGGER.warning(
                "Deadline reached for %s; skipping %d of %d filings",
                entity_id,
                len(pending),
                len(filings),
            )

        points: List[TimeSeriesPoint] = []
        for future in done:
            try:
                points.append(future.result())
            except DeadlineExceeded:
                LOGGER.info("Skipped %s filed %s after deadline", entity_id, futures[future].filing_date)
        points.sort(key=lambda point: point.filing_date)
        return points


__all__ = ["TimeSeriesAssembler", "MAX_SNAPSHOTS", "matches", "summarize"]
