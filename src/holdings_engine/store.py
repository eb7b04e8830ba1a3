"""Database persistence of snapshots for reverse lookups."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine

from .models import Snapshot

metadata = MetaData()

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


funds = Table(
    "funds",
    metadata,
    Column("cik", String(10), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("created_at", DateTime, nullable=False, default=_utcnow),
    Column("updated_at", DateTime, nullable=False, default=_utcnow, onupdate=_utcnow),
)

filings = Table(
    "filings",
    metadata,
    Column("accession_number", String(25), primary_key=True),
    Column("cik", ForeignKey("funds.cik", ondelete="CASCADE"), nullable=False),
    Column("filing_date", Date, nullable=False),
    Column("quarter", String(8), nullable=True),
    Column("scale_applied", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=False, default=_utcnow),
)

holdings = Table(
    "holdings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "accession_number",
        ForeignKey("filings.accession_number", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("issuer", String(255), nullable=False),
    Column("cusip", String(12), nullable=True),
    Column("value", Float, nullable=False),
    Column("shares", Float, nullable=False),
    Index("idx_holdings_issuer", "issuer"),
    Index("idx_holdings_cusip", "cusip"),
)


def create_db_engine(database_url: str) -> Engine:
    """Create a SQLAlchemy engine."""

    LOGGER.debug("Creating database engine")
    return create_engine(database_url, future=True, pool_pre_ping=True)


@contextmanager
def session(engine: Engine) -> Iterator[Connection]:
    """Provide a transactional scope around a series of operations."""

    with engine.begin() as conn:
        yield conn


def ensure_schema(engine: Engine) -> None:
    """Create tables if they do not exist."""

    LOGGER.debug("Ensuring database schema is present")
    metadata.create_all(engine)


def quarter_label(period: Optional[date]) -> Optional[str]:
    """``2024-Q4`` style label for a report period."""

    if period is None:
        return None
    return f"{period.year}-Q{(period.month - 1) // 3 + 1}"


def _upsert_fund(conn: Connection, cik: str, name: str) -> None:
    exists = conn.execute(select(funds.c.cik).where(funds.c.cik == cik)).first()
    if exists is None:
        conn.execute(insert(funds).values(cik=cik, name=name))
    else:
        conn.execute(update(funds).where(funds.c.cik == cik).values(name=name))


def save_snapshot(engine: Engine, snapshot: Snapshot, fund_name: str, quarter: Optional[str] = None) -> int:
    """Persist ``snapshot`` and return the number of holdings written.

    A snapshot whose accession is already stored is skipped, so repeated ingestion
    runs never duplicate rows.
    """

    with session(engine) as conn:
        stored = conn.execute(
            select(filings.c.accession_number).where(filings.c.accession_number == snapshot.accession_id)
        ).first()
        if stored is not None:
            LOGGER.info("Accession %s already stored; skipping", snapshot.accession_id)
            return 0

        _upsert_fund(conn, snapshot.entity_id, fund_name)
        conn.execute(
            insert(filings).values(
                accession_number=snapshot.accession_id,
                cik=snapshot.entity_id,
                filing_date=snapshot.filing_date,
                quarter=quarter,
                scale_applied=int(snapshot.scale_applied),
            )
        )
        rows = [
            {
                "accession_number": snapshot.accession_id,
                "issuer": record.issuer_name,
                "cusip": record.security_id,
                "value": record.reported_value,
                "shares": record.shares,
            }
            for record in snapshot.records.values()
        ]
        if rows:
            conn.execute(insert(holdings), rows)
    LOGGER.info("Stored %d holdings for %s (%s)", len(rows), fund_name, snapshot.accession_id)
    return len(rows)


def find_holders(engine: Engine, keyword: str, limit: int = 100) -> list[dict[str, object]]:
    """Return the latest stored position of every fund holding an issuer like ``keyword``."""

    pattern = f"%{keyword.upper()}%"
    stmt = (
        select(
            funds.c.name.label("fund_name"),
            funds.c.cik,
            holdings.c.issuer,
            holdings.c.cusip,
            holdings.c.value,
            holdings.c.shares,
            filings.c.filing_date,
            filings.c.quarter,
        )
        .select_from(
            holdings.join(filings, holdings.c.accession_number == filings.c.accession_number).join(
                funds, filings.c.cik == funds.c.cik
            )
        )
        .where(holdings.c.issuer.like(pattern))
        .order_by(filings.c.filing_date.desc(), holdings.c.value.desc())
    )
    with engine.connect() as conn:
        rows = conn.execute(stmt).all()

    latest: dict[str, dict[str, object]] = {}
    for row in rows:
        data = dict(row._mapping)
        latest.setdefault(data["cik"], data)
    ranked = sorted(latest.values(), key=lambda data: data["value"], reverse=True)
    return ranked[:limit]


__all__ = [
    "create_db_engine",
    "ensure_schema",
    "save_snapshot",
    "find_holders",
    "quarter_label",
    "metadata",
    "funds",
    "filings",
    "holdings",
]
