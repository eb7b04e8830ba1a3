"""Command line entry point for institutional holdings analyses."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Iterable, Optional

from .config import Settings
from .errors import HoldingsEngineError
from .serializers import comparison_payload, history_payload, holders_payload, overlap_payload
from .service import HoldingsService
from .sources import create_source
from .store import create_db_engine, ensure_schema

LOGGER = logging.getLogger(__name__)


def build_service(settings: Settings, with_store: bool = False) -> HoldingsService:
    db_engine = None
    if with_store:
        db_engine = create_db_engine(settings.database_url)
        ensure_schema(db_engine)
    return HoldingsService(settings, create_source(settings), db_engine=db_engine)


def run_command(options: argparse.Namespace, service: HoldingsService) -> Any:
    """Execute the selected subcommand and return its JSON payload."""

    if options.command == "compare":
        return comparison_payload(service.compare(options.ticker, mode=options.mode))
    if options.command == "overlap":
        return overlap_payload(service.overlap(options.ticker_a, options.ticker_b))
    if options.command == "history":
        return history_payload(service.track(options.ticker, issuer_name=options.issuer, security_id=options.cusip))
    if options.command == "ingest":
        results = {}
        for ticker in options.tickers:
            try:
                results[ticker] = service.ingest(ticker)
            except HoldingsEngineError as exc:
                LOGGER.error("Failed to ingest %s: %s", ticker, exc)
                results[ticker] = None
        return {"stored": results}
    if options.command == "holders":
        return holders_payload(service.reverse_lookup(options.ticker, limit=options.limit))
    raise ValueError(f"Unknown command {options.command!r}")


def parse_args(args: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging output",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    compare = commands.add_parser("compare", help="Diff an entity's latest filing against a prior one")
    compare.add_argument("ticker")
    compare.add_argument("--mode", choices=("qoq", "yoy"), default="qoq")

    overlap = commands.add_parser("overlap", help="Holdings shared by two entities")
    overlap.add_argument("ticker_a")
    overlap.add_argument("ticker_b")

    history = commands.add_parser("history", help="Track one holding across recent filings")
    history.add_argument("ticker")
    history.add_argument("--issuer")
    history.add_argument("--cusip")

    ingest = commands.add_parser("ingest", help="Store latest snapshots for reverse lookups")
    ingest.add_argument("tickers", nargs="+")

    holders = commands.add_parser("holders", help="Stored entities holding a company")
    holders.add_argument("ticker")
    holders.add_argument("--limit", type=int, default=100)

    options = parser.parse_args(args=args)
    if options.command == "history" and not (options.issuer or options.cusip):
        parser.error("history requires --issuer or --cusip")
    return options


def main(argv: Iterable[str] | None = None) -> Optional[int]:
    options = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if options.verbose else logging.INFO)
    settings = Settings.load()
    service = build_service(settings, with_store=options.command in ("ingest", "holders"))
    try:
        payload = run_command(options, service)
    except HoldingsEngineError as exc:
        LOGGER.error("%s failed: %s", options.command, exc)
        return 1
    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
