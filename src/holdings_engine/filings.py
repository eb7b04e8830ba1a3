"""Selection of the accessions an analysis runs on."""
from __future__ import annotations

from datetime import date
import logging
from typing import Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .errors import InsufficientHistory
from .models import FilingRef

LOGGER = logging.getLogger(__name__)

COMPARISON_MODES = ("qoq", "yoy")


def select_filings(history: Iterable[FilingRef], form_type: str, limit: Optional[int] = None) -> List[FilingRef]:
    """Return filings whose form type matches exactly, in listing order (newest first).

    Amendments such as ``13F-HR/A`` are a different form type and are not selected.
    """

    selected: List[FilingRef] = []
    for filing in history:
        if filing.form_type != form_type:
            continue
        selected.append(filing)
        if limit is not None and len(selected) >= limit:
            break
    return selected


def find_filing_near(
    history: Iterable[FilingRef],
    form_type: str,
    target: date,
    window_days: int,
) -> Optional[FilingRef]:
    """Return the filing closest to ``target`` if it falls within ``window_days``."""

    best: Optional[FilingRef] = None
    best_gap: Optional[int] = None
    for filing in select_filings(history, form_type):
        gap = abs((filing.filing_date - target).days)
        if best_gap is None or gap < best_gap:
            best, best_gap = filing, gap
    if best is None or best_gap is None or best_gap > window_days:
        return None
    return best


def comparison_pair(
    entity_id: str,
    history: List[FilingRef],
    form_type: str,
    mode: str = "qoq",
    window_days: int = 30,
) -> Tuple[FilingRef, FilingRef]:
    """Pick the (current, previous) filings to compare.

    ``qoq`` compares the two latest filings; ``yoy`` compares the latest with the
    filing closest to one year earlier.
    """

    if mode not in COMPARISON_MODES:
        raise ValueError(f"Unknown comparison mode: {mode}")

    if mode == "qoq":
        latest = select_filings(history, form_type, limit=2)
        if len(latest) < 2:
            raise InsufficientHistory(entity_id, form_type, len(latest))
        return latest[0], latest[1]

    latest = select_filings(history, form_type, limit=1)
    if not latest:
        raise InsufficientHistory(entity_id, form_type, 0)
    current = latest[0]
    target = current.filing_date - relativedelta(years=1)
    previous = find_filing_near(history, form_type, target, window_days)
    if previous is None or previous.accession_id == current.accession_id:
        LOGGER.info("No %s filing for %s within %d days of %s", form_type, entity_id, window_days, target)
        raise InsufficientHistory(entity_id, form_type, 1)
    return current, previous


__all__ = ["select_filings", "find_filing_near", "comparison_pair", "COMPARISON_MODES"]
