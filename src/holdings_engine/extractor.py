"""Parsing of information table documents into holding records."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from lxml import etree

from .errors import ParseFailure
from .models import HoldingRecord, PositionType
from .sources.utils import parse_float

LOGGER = logging.getLogger(__name__)

UNKNOWN_ISSUER = "UNKNOWN"

Element = etree._Element
RowStrategy = Callable[[Element], Optional[List[Element]]]


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True, remove_comments=True)


def parse_document(content: bytes, url: str = "<memory>") -> Element:
    """Parse XML bytes and strip namespaces so tags read as local names."""

    if not content or not content.strip():
        raise ParseFailure(url, "empty document")
    try:
        root = etree.fromstring(content, parser=_parser())
    except etree.XMLSyntaxError as exc:
        raise ParseFailure(url, str(exc)) from exc

    for element in root.iter():
        if isinstance(element.tag, str):
            element.tag = etree.QName(element).localname
    etree.cleanup_namespaces(root)
    return root


def _child(node: Optional[Element], tag: str) -> Optional[Element]:
    if node is None:
        return None
    return node if node.tag == tag else node.find(tag)


def direct_table_rows(root: Element) -> Optional[List[Element]]:
    """``informationTable/infoTable``"""

    table = _child(root, "informationTable")
    return None if table is None else table.findall("infoTable")


def submission_table_rows(root: Element) -> Optional[List[Element]]:
    """``edgarSubmission/formData/informationTable/infoTable``"""

    submission = _child(root, "edgarSubmission")
    if submission is None:
        return None
    table = submission.find("formData/informationTable")
    return None if table is None else table.findall("infoTable")


ROW_STRATEGIES: Sequence[RowStrategy] = (direct_table_rows, submission_table_rows)


def find_rows(root: Optional[Element], strategies: Sequence[RowStrategy] = ROW_STRATEGIES) -> Optional[List[Element]]:
    """Return the rows of the first strategy that locates an information table."""

    if root is None:
        return None
    for strategy in strategies:
        rows = strategy(root)
        if rows is not None:
            return rows
    return None


def has_information_table(root: Element) -> bool:
    return find_rows(root) is not None


def has_rows(root: Element) -> bool:
    return bool(find_rows(root))


def _text(node: Element, path: str) -> Optional[str]:
    found = node.find(path)
    if found is None or found.text is None:
        return None
    return found.text.strip() or None


def parse_row(row: Element) -> HoldingRecord:
    """Read one ``infoTable`` element, defaulting missing fields."""

    security_id = _text(row, "cusip")
    put_call = _text(row, "putCall")
    return HoldingRecord(
        issuer_name=(_text(row, "nameOfIssuer") or UNKNOWN_ISSUER).upper(),
        security_id=security_id.upper() if security_id else None,
        reported_value=parse_float(_text(row, "value")),
        shares=parse_float(_text(row, "shrsOrPrnAmt/sshPrnamt")),
        position_type=PositionType.from_code(_text(row, "shrsOrPrnAmt/sshPrnamtType")),
        title_of_class=_text(row, "titleOfClass"),
        put_call=put_call.upper() if put_call else None,
    )


def aggregate(records: Iterable[HoldingRecord]) -> List[HoldingRecord]:
    """Sum value and shares of rows sharing a security key, keeping first-seen order."""

    merged: Dict[str, HoldingRecord] = {}
    for record in records:
        existing = merged.get(record.security_key)
        if existing is None:
            merged[record.security_key] = record
            continue
        merged[record.security_key] = HoldingRecord(
            issuer_name=existing.issuer_name,
            security_id=existing.security_id,
            reported_value=existing.reported_value + record.reported_value,
            shares=existing.shares + record.shares,
            position_type=existing.position_type,
            title_of_class=existing.title_of_class,
            put_call=existing.put_call if existing.put_call == record.put_call else None,
        )
    return list(merged.values())


class HoldingsExtractor:
    """Turns a parsed information table into holding records."""

    def __init__(self, strategies: Sequence[RowStrategy] = ROW_STRATEGIES) -> None:
        self.strategies = tuple(strategies)

    def rows(self, root: Optional[Element]) -> List[HoldingRecord]:
        """Return every source row as a record, without aggregation."""

        elements = find_rows(root, self.strategies) or []
        records = [parse_row(element) for element in elements]
        LOGGER.debug("Extracted %d information table rows", len(records))
        return records

    def extract(self, root: Optional[Element]) -> List[HoldingRecord]:
        """Return records aggregated by security key."""

        return aggregate(self.rows(root))


__all__ = [
    "HoldingsExtractor",
    "ROW_STRATEGIES",
    "aggregate",
    "direct_table_rows",
    "find_rows",
    "has_information_table",
    "has_rows",
    "parse_document",
    "parse_row",
    "submission_table_rows",
]
