"""Coarse sector classification of issuer names."""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Tuple

from .models import HoldingRecord

OTHER = "Other"

SECTOR_MAP: Mapping[str, str] = {
    "APPLE INC": "Technology",
    "MICROSOFT CORP": "Technology",
    "AMAZON COM INC": "Consumer Cyclical",
    "NVIDIA CORP": "Technology",
    "ALPHABET INC": "Technology",
    "META PLATFORMS INC": "Technology",
    "TESLA INC": "Consumer Cyclical",
    "BERKSHIRE HATHAWAY INC": "Financial Services",
    "JPMORGAN CHASE & CO": "Financial Services",
    "VISA INC": "Financial Services",
    "JOHNSON & JOHNSON": "Healthcare",
    "WALMART INC": "Consumer Defensive",
    "PROCTER & GAMBLE CO": "Consumer Defensive",
    "MASTERCARD INC": "Financial Services",
    "EXXON MOBIL CORP": "Energy",
    "CHEVRON CORP": "Energy",
    "HOME DEPOT INC": "Consumer Cyclical",
    "ABBVIE INC": "Healthcare",
    "MERCK & CO INC": "Healthcare",
    "COSTCO WHOLESALE CORP": "Consumer Defensive",
    "ADOBE INC": "Technology",
    "SALESFORCE INC": "Technology",
    "DISNEY WALT CO": "Communication Services",
    "CISCO SYSTEMS INC": "Technology",
    "NETFLIX INC": "Communication Services",
    "INTEL CORP": "Technology",
    "COCA COLA CO": "Consumer Defensive",
    "PEPSICO INC": "Consumer Defensive",
    "BANK OF AMERICA CORP": "Financial Services",
    "WELLS FARGO & CO": "Financial Services",
    "MCDONALDS CORP": "Consumer Cyclical",
    "NIKE INC": "Consumer Cyclical",
    "ELI LILLY & CO": "Healthcare",
    "BROADCOM INC": "Technology",
    "ORACLE CORP": "Technology",
    "UNITEDHEALTH GROUP INC": "Healthcare",
    "PFIZER INC": "Healthcare",
    "ABBOTT LABORATORIES": "Healthcare",
    "THERMO FISHER SCIENTIFIC": "Healthcare",
    "COMCAST CORP": "Communication Services",
    "VERIZON COMMUNICATIONS": "Communication Services",
    "AT&T INC": "Communication Services",
    "NEXTERA ENERGY INC": "Utilities",
    "UNION PACIFIC CORP": "Industrials",
    "BOEING CO": "Industrials",
    "GENERAL ELECTRIC": "Industrials",
    "UBER TECHNOLOGIES": "Technology",
    "AIRBNB": "Consumer Cyclical",
    "PALANTIR": "Technology",
    "SNOWFLAKE": "Technology",
    "BLOCK INC": "Financial Services",
    "PAYPAL": "Financial Services",
    "SPDR S&P 500 ETF TRUST": "ETF",
    "INVESCO QQQ TRUST": "ETF",
    "VANGUARD": "ETF",
    "ISHARES": "ETF",
}

# Checked in order after the table lookup.
KEYWORD_SECTORS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("ETF", "ISHARES", "VANGUARD", "SPDR", "TRUST"), "ETF"),
    (("PHARMA", "THERAPEUTICS", "MEDICAL", "HEALTH"), "Healthcare"),
    (("TECHNOLOGIES", "SYSTEMS", "SOFTWARE", "SEMICONDUCTOR"), "Technology"),
    (("ENERGY", "OIL", "GAS", "PETROLEUM"), "Energy"),
    (("BANK", "FINANCIAL", "CAPITAL", "INVESTMENT"), "Financial Services"),
    (("AIRLINES", "MOTORS", "AUTOMOTIVE"), "Consumer Cyclical"),
)

_PUNCTUATION = re.compile(r"[.,]")


def classify_sector(issuer_name: str) -> str:
    name = _PUNCTUATION.sub("", issuer_name.upper()).strip()
    if not name:
        return OTHER
    if name in SECTOR_MAP:
        return SECTOR_MAP[name]
    for key, sector in SECTOR_MAP.items():
        if key in name or name in key:
            return sector
    for keywords, sector in KEYWORD_SECTORS:
        if any(keyword in name for keyword in keywords):
            return sector
    return OTHER


def sector_breakdown(records: Iterable[HoldingRecord]) -> List[Tuple[str, float]]:
    """Total value per sector, largest first."""

    totals: Dict[str, float] = {}
    for record in records:
        sector = classify_sector(record.issuer_name)
        totals[sector] = totals.get(sector, 0.0) + record.reported_value
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)


__all__ = ["classify_sector", "sector_breakdown", "SECTOR_MAP", "OTHER"]
