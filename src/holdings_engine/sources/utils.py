"""Utility helpers for parsing repository payloads."""
from __future__ import annotations

import re
from datetime import date
from typing import Optional

from dateutil import parser

NON_NUMERIC = re.compile(r"[^0-9.\-]")
CIK_PATTERN = re.compile(r"^\d{1,10}$")


def parse_float(value: str | None) -> float:
    """Parse a reported number, tolerating separators. Unparsable input gives 0."""

    if not value:
        return 0.0
    cleaned = value.strip().replace(",", "")
    try:
        return float(cleaned)
    except ValueError:
        cleaned = NON_NUMERIC.sub("", cleaned)
        try:
            return float(cleaned) if cleaned else 0.0
        except ValueError:
            return 0.0


def parse_int(value: str | None) -> Optional[int]:
    """Parse a human readable integer value."""

    if not value:
        return None
    cleaned = re.sub(r"[^0-9]", "", value)
    return int(cleaned) if cleaned else None


def parse_date(value: str | None) -> Optional[date]:
    """Parse an ISO-style filing date using dateutil."""

    if not value:
        return None
    try:
        return parser.parse(value).date()
    except (ValueError, OverflowError):
        return None


def pad_cik(value: str | int) -> str:
    """Zero-pad a filer identifier to ten digits."""

    return str(value).strip().zfill(10)


def is_cik(value: str) -> bool:
    return bool(CIK_PATTERN.match(value.strip()))


def accession_folder(accession_id: str) -> str:
    """Return the accession identifier without dashes, as used in archive paths."""

    return accession_id.replace("-", "")


__all__ = [
    "parse_float",
    "parse_int",
    "parse_date",
    "pad_cik",
    "is_cik",
    "accession_folder",
]
