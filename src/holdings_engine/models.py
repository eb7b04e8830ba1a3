"""Domain models representing institutional holdings data."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

# Monetary amounts in an information table are reported in thousands.
VALUE_UNIT = 1000


class PositionType(str, Enum):
    """Whether a row counts shares or principal amount."""

    SHARE = "SH"
    PRINCIPAL = "PRN"

    @classmethod
    def from_code(cls, code: str | None) -> "PositionType":
        """Map an ``sshPrnamtType`` value, defaulting to shares."""

        if code and code.strip().upper() == cls.PRINCIPAL.value:
            return cls.PRINCIPAL
        return cls.SHARE


@dataclass(frozen=True, slots=True)
class FilingRef:
    """One entry of an entity's filing history."""

    accession_id: str
    filing_date: date
    form_type: str
    primary_document: str
    report_date: Optional[date] = None


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """A file listed in an accession's directory manifest."""

    name: str
    type: str = ""
    size: Optional[int] = None


@dataclass(frozen=True, slots=True)
class HoldingRecord:
    """A single security position reported in one filing."""

    issuer_name: str
    security_id: Optional[str]
    reported_value: float
    shares: float
    position_type: PositionType = PositionType.SHARE
    title_of_class: Optional[str] = None
    put_call: Optional[str] = None

    @property
    def security_key(self) -> str:
        return self.security_id or self.issuer_name

    @property
    def is_derivative(self) -> bool:
        return bool(self.put_call)


@dataclass(frozen=True)
class Snapshot:
    """The aggregated, normalized holding set of one entity at one filing."""

    entity_id: str
    filing_date: date
    accession_id: str
    records: Mapping[str, HoldingRecord]
    scale_applied: bool = False
    document_url: Optional[str] = None
    rows: Tuple[HoldingRecord, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "records", MappingProxyType(dict(self.records)))
        object.__setattr__(self, "rows", tuple(self.rows))

    @property
    def total_value(self) -> float:
        return sum(record.reported_value for record in self.records.values())

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True, slots=True)
class DiffRecord:
    """One row of a period-over-period comparison."""

    security_key: str
    issuer_name: str
    security_id: Optional[str]
    shares_current: float
    shares_previous: float
    share_delta: float
    percent_delta: float
    current_value: float
    previous_value: float = 0.0


@dataclass(frozen=True)
class ComparisonResult:
    """Keyed diff between two snapshots of the same entity."""

    entity_id: str
    current: Snapshot
    previous: Snapshot
    changes: Tuple[DiffRecord, ...]
    top_n: int = 5

    @property
    def top_holdings(self) -> list[DiffRecord]:
        return list(self.changes[: self.top_n])

    @property
    def top_buys(self) -> list[DiffRecord]:
        buys = [change for change in self.changes if change.share_delta > 0]
        buys.sort(key=lambda change: change.share_delta, reverse=True)
        return buys[: self.top_n]

    @property
    def top_sells(self) -> list[DiffRecord]:
        sells = [change for change in self.changes if change.share_delta < 0]
        sells.sort(key=lambda change: change.share_delta)
        return sells[: self.top_n]


@dataclass(frozen=True, slots=True)
class OverlapRecord:
    """A security held by both compared entities."""

    issuer_name: str
    security_id: Optional[str]
    value_entity_a: float
    value_entity_b: float
    shares_entity_a: float
    shares_entity_b: float
    combined_value: float


@dataclass(frozen=True)
class OverlapSummary:
    """Intersection of two entities' holdings plus exclusive counts."""

    exclusive_count_a: int
    exclusive_count_b: int
    overlap_records: Tuple[OverlapRecord, ...]
    total_holdings_a: int = 0
    total_holdings_b: int = 0
    overlap_value_a: float = 0.0
    overlap_value_b: float = 0.0

    @property
    def overlap_count(self) -> int:
        return len(self.overlap_records)


@dataclass(frozen=True, slots=True)
class TimeSeriesPoint:
    """One snapshot's observation of a tracked holding."""

    filing_date: date
    shares: float
    value: float
    implied_price_per_share: float
    accession_id: Optional[str] = None

    @classmethod
    def empty(cls, filing_date: date, accession_id: str | None = None) -> "TimeSeriesPoint":
        return cls(filing_date, 0.0, 0.0, 0.0, accession_id)


@dataclass(frozen=True, slots=True)
class HoldingDescriptor:
    """Identity of the holding tracked across snapshots."""

    keyword: str
    security_id: Optional[str] = None
    issuer_name: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_issuer(cls, issuer_name: str | None, security_id: str | None = None) -> "HoldingDescriptor":
        """Derive the match keyword from the first word of ``issuer_name``."""

        words = (issuer_name or "").upper().split()
        keyword = words[0] if words else ""
        security_id = (security_id or "").strip().upper() or None
        if not keyword and not security_id:
            raise ValueError("An issuer name or security identifier is required")
        return cls(keyword=keyword, security_id=security_id, issuer_name=issuer_name)


__all__ = [
    "VALUE_UNIT",
    "PositionType",
    "FilingRef",
    "ManifestEntry",
    "HoldingRecord",
    "Snapshot",
    "DiffRecord",
    "ComparisonResult",
    "OverlapRecord",
    "OverlapSummary",
    "TimeSeriesPoint",
    "HoldingDescriptor",
]
