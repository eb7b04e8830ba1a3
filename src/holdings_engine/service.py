"""Function level entry points used by the API and the command line."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging
from typing import List, Optional, Tuple

from sqlalchemy.engine import Engine

from .comparator import SnapshotComparator
from .config import Settings
from .deadline import Deadline
from .errors import EntityNotFound, HoldingsEngineError, InsufficientHistory
from .filings import comparison_pair, select_filings
from .models import (
    ComparisonResult,
    FilingRef,
    HoldingDescriptor,
    OverlapSummary,
    Snapshot,
    TimeSeriesPoint,
)
from .normalizer import ScaleNormalizer
from .overlap import OverlapAnalyzer
from .pipeline import SnapshotBuilder
from .resolver import DocumentResolver
from .sources.base import FilingSource
from .store import find_holders, quarter_label, save_snapshot
from .timeseries import TimeSeriesAssembler

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlapReport:
    query_a: str
    query_b: str
    snapshot_a: Snapshot
    snapshot_b: Snapshot
    summary: OverlapSummary


@dataclass(frozen=True)
class HoldingHistory:
    entity_id: str
    descriptor: HoldingDescriptor
    points: List[TimeSeriesPoint]


@dataclass(frozen=True)
class HoldersReport:
    ticker: str
    company_name: str
    holders: List[dict[str, object]]


class HoldingsService:
    """Wires the snapshot pipeline to the analyses exposed to callers."""

    def __init__(self, settings: Settings, source: FilingSource, db_engine: Optional[Engine] = None) -> None:
        self.settings = settings
        self.source = source
        self.db_engine = db_engine
        resolver = DocumentResolver(source, request_timeout=settings.request_timeout)
        self.builder = SnapshotBuilder(resolver, normalizer=ScaleNormalizer(settings.scale_threshold))
        self.comparator = SnapshotComparator()
        self.analyzer = OverlapAnalyzer()
        self.assembler = TimeSeriesAssembler(self.builder, max_workers=settings.max_workers)

    def _deadline(self) -> Deadline:
        return Deadline(self.settings.deadline)

    def _history(self, query: str) -> Tuple[str, List[FilingRef]]:
        entity_id = self.source.resolve_entity_id(query)
        LOGGER.info("Resolved %s to %s", query, entity_id)
        return entity_id, self.source.list_filing_history(entity_id)

    def latest_snapshot(self, query: str, deadline: Optional[Deadline] = None) -> Snapshot:
        entity_id, history = self._history(query)
        latest = select_filings(history, self.settings.form_type, limit=1)
        if not latest:
            raise InsufficientHistory(entity_id, self.settings.form_type, 0, required=1)
        return self.builder.build(entity_id, latest[0], deadline=deadline)

    def compare(self, query: str, mode: str = "qoq") -> ComparisonResult:
        """Diff the entity's current filing against the prior one."""

        entity_id, history = self._history(query)
        current, previous = comparison_pair(
            entity_id,
            history,
            self.settings.form_type,
            mode=mode,
            window_days=self.settings.same_period_window_days,
        )
        LOGGER.info(
            "Comparing %s filings %s (%s) and %s (%s)",
            entity_id,
            current.accession_id,
            current.filing_date,
            previous.accession_id,
            previous.filing_date,
        )
        deadline = self._deadline()
        with ThreadPoolExecutor(max_workers=2) as pool:
            current_future = pool.submit(self.builder.build, entity_id, current, deadline=deadline)
            previous_future = pool.submit(self.builder.build, entity_id, previous, deadline=deadline)
            return self.comparator.compare(current_future.result(), previous_future.result())

    def overlap(self, query_a: str, query_b: str) -> OverlapReport:
        """Intersect the latest holdings of two entities."""

        deadline = self._deadline()
        with ThreadPoolExecutor(max_workers=2) as pool:
            future_a = pool.submit(self.latest_snapshot, query_a, deadline)
            future_b = pool.submit(self.latest_snapshot, query_b, deadline)
            snapshot_a, snapshot_b = future_a.result(), future_b.result()
        summary = self.analyzer.overlap(snapshot_a, snapshot_b)
        return OverlapReport(query_a, query_b, snapshot_a, snapshot_b, summary)

    def track(
        self,
        query: str,
        issuer_name: Optional[str] = None,
        security_id: Optional[str] = None,
    ) -> HoldingHistory:
        """Follow one holding through the entity's recent filings."""

        descriptor = HoldingDescriptor.from_issuer(issuer_name, security_id)
        entity_id, history = self._history(query)
        filings = select_filings(history, self.settings.form_type, limit=self.settings.history_depth)
        LOGGER.info(
            "Tracking %s (keyword %r, id %s) across %d filings of %s",
            issuer_name,
            descriptor.keyword,
            descriptor.security_id,
            len(filings),
            entity_id,
        )
        points = self.assembler.track(entity_id, descriptor, filings, deadline=self._deadline())
        return HoldingHistory(entity_id, descriptor, points)

    def ingest(self, query: str, fund_name: Optional[str] = None) -> int:
        """Store the entity's latest snapshot for reverse lookups."""

        if self.db_engine is None:
            raise HoldingsEngineError("No database configured")
        entity_id, history = self._history(query)
        latest = select_filings(history, self.settings.form_type, limit=1)
        if not latest:
            raise InsufficientHistory(entity_id, self.settings.form_type, 0, required=1)
        snapshot = self.builder.build(entity_id, latest[0], deadline=self._deadline())
        return save_snapshot(
            self.db_engine,
            snapshot,
            fund_name or query.upper(),
            quarter=quarter_label(latest[0].report_date),
        )

    def reverse_lookup(self, ticker: str, limit: int = 100) -> HoldersReport:
        """Find stored funds holding the company behind ``ticker``."""

        if self.db_engine is None:
            raise HoldingsEngineError("No database configured")
        company_name = self.source.company_name(ticker)
        # Stored issuer names are upper-cased and unpunctuated, so match on the first word.
        words = (company_name or "").upper().replace(".", "").split()
        if not words:
            raise EntityNotFound(ticker)
        keyword = words[0]
        LOGGER.info("Searching holders of %s (%s) by keyword %s", ticker, company_name, keyword)
        return HoldersReport(ticker.upper(), company_name, find_holders(self.db_engine, keyword, limit=limit))


__all__ = ["HoldingsService", "OverlapReport", "HoldingHistory", "HoldersReport"]
