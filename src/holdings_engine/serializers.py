"""JSON friendly representations of analysis results."""
from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Iterable

from .models import ComparisonResult, DiffRecord, Snapshot
from .sectors import sector_breakdown
from .service import HoldersReport, HoldingHistory, OverlapReport

MAX_OVERLAP_ROWS = 50


def _plain(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _changes(changes: Iterable[DiffRecord]) -> list[dict[str, Any]]:
    return [_plain(asdict(change)) for change in changes]


def snapshot_summary(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "entity_id": snapshot.entity_id,
        "accession_id": snapshot.accession_id,
        "filing_date": snapshot.filing_date.isoformat(),
        "document_url": snapshot.document_url,
        "scale_applied": snapshot.scale_applied,
        "total_holdings": len(snapshot),
        "total_value": snapshot.total_value,
    }


def comparison_payload(result: ComparisonResult) -> dict[str, Any]:
    return {
        "entity_id": result.entity_id,
        "current": snapshot_summary(result.current),
        "previous": snapshot_summary(result.previous),
        "top_holdings": _changes(result.top_holdings),
        "top_buys": _changes(result.top_buys),
        "top_sells": _changes(result.top_sells),
        "all_changes": _changes(result.changes),
        "sectors": [
            {"sector": sector, "value": value}
            for sector, value in sector_breakdown(result.current.records.values())
        ],
    }


def overlap_payload(report: OverlapReport) -> dict[str, Any]:
    summary = report.summary
    return {
        "fund_a": {
            "query": report.query_a,
            **snapshot_summary(report.snapshot_a),
            "exclusive_count": summary.exclusive_count_a,
            "overlap_value": summary.overlap_value_a,
        },
        "fund_b": {
            "query": report.query_b,
            **snapshot_summary(report.snapshot_b),
            "exclusive_count": summary.exclusive_count_b,
            "overlap_value": summary.overlap_value_b,
        },
        "overlap": {
            "count": summary.overlap_count,
            "holdings": [_plain(asdict(record)) for record in summary.overlap_records[:MAX_OVERLAP_ROWS]],
        },
    }


def history_payload(history: HoldingHistory) -> dict[str, Any]:
    return {
        "entity_id": history.entity_id,
        "holding": history.descriptor.issuer_name or history.descriptor.security_id,
        "keyword": history.descriptor.keyword,
        "security_id": history.descriptor.security_id,
        "history": [_plain(asdict(point)) for point in history.points],
    }


def holders_payload(report: HoldersReport) -> dict[str, Any]:
    return {
        "ticker": report.ticker,
        "company_name": report.company_name,
        "match_count": len(report.holders),
        "funds": [_plain(holder) for holder in report.holders],
    }


__all__ = [
    "comparison_payload",
    "overlap_payload",
    "history_payload",
    "holders_payload",
    "snapshot_summary",
]
