"""In-memory filing source and information table builders for tests."""
from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Union

from holdings_engine.errors import DocumentNotFound, EntityNotFound
from holdings_engine.models import FilingRef, HoldingRecord, ManifestEntry, Snapshot
from holdings_engine.sources.base import FilingSource

NAMESPACE = "http://www.sec.gov/edgar/document/thirteenf/informationtable"


def row_xml(
    issuer: Optional[str] = None,
    cusip: Optional[str] = None,
    value: Union[str, float, None] = None,
    shares: Union[str, float, None] = None,
    share_type: Optional[str] = "SH",
    put_call: Optional[str] = None,
) -> str:
    parts = ["<infoTable>"]
    if issuer is not None:
        parts.append(f"<nameOfIssuer>{issuer}</nameOfIssuer>")
    parts.append("<titleOfClass>COM</titleOfClass>")
    if cusip is not None:
        parts.append(f"<cusip>{cusip}</cusip>")
    if value is not None:
        parts.append(f"<value>{value}</value>")
    if shares is not None or share_type is not None:
        parts.append("<shrsOrPrnAmt>")
        if shares is not None:
            parts.append(f"<sshPrnamt>{shares}</sshPrnamt>")
        if share_type is not None:
            parts.append(f"<sshPrnamtType>{share_type}</sshPrnamtType>")
        parts.append("</shrsOrPrnAmt>")
    if put_call is not None:
        parts.append(f"<putCall>{put_call}</putCall>")
    parts.append("</infoTable>")
    return "".join(parts)


def info_table_xml(rows: Sequence[str], *, wrapped: bool = False, namespaced: bool = True) -> bytes:
    """Build an information table document, optionally inside a submission wrapper."""

    xmlns = f' xmlns="{NAMESPACE}"' if namespaced else ""
    table = f"<informationTable{xmlns}>{''.join(rows)}</informationTable>"
    if wrapped:
        table = f"<edgarSubmission><headerData/><formData>{table}</formData></edgarSubmission>"
    return f'<?xml version="1.0" encoding="UTF-8"?>{table}'.encode()


COVER_PAGE = (
    b'<?xml version="1.0"?><edgarSubmission xmlns="http://www.sec.gov/edgar/thirteenffiler">'
    b"<headerData><submissionType>13F-HR</submissionType></headerData>"
    b"<formData><coverPage><reportCalendarOrQuarter>12-31-2024</reportCalendarOrQuarter></coverPage>"
    b"</formData></edgarSubmission>"
)


def record(issuer: str, shares: float, value: float, cusip: Optional[str] = None, **extra) -> HoldingRecord:
    return HoldingRecord(issuer_name=issuer, security_id=cusip, reported_value=value, shares=shares, **extra)


def snapshot(records: Sequence[HoldingRecord], entity_id: str = "0000000001", filed: date = date(2024, 11, 14)) -> Snapshot:
    return Snapshot(
        entity_id=entity_id,
        filing_date=filed,
        accession_id=f"{entity_id}-24-{filed.toordinal()}",
        records={item.security_key: item for item in records},
    )


def quarterly_filings(count: int, latest: date = date(2024, 11, 14), form_type: str = "13F-HR") -> List[FilingRef]:
    """``count`` filings roughly one quarter apart, newest first."""

    return [
        FilingRef(
            accession_id=f"0000950123-24-{index:06d}",
            filing_date=latest - timedelta(days=91 * index),
            form_type=form_type,
            primary_document="primary_doc.xml",
        )
        for index in range(count)
    ]


class FakeSource(FilingSource):
    """Filing source backed by dictionaries; values may be exceptions to raise."""

    def __init__(self) -> None:
        self.entities: Dict[str, str] = {}
        self.names: Dict[str, str] = {}
        self.histories: Dict[str, Union[List[FilingRef], Exception]] = {}
        self.documents: Dict[str, Union[bytes, Exception]] = {}
        self.manifests: Dict[str, Union[List[ManifestEntry], Exception]] = {}
        self.fetched: List[str] = []

    def add_entity(self, query: str, entity_id: str, filings: List[FilingRef], name: Optional[str] = None) -> None:
        self.entities[query.upper()] = entity_id
        self.histories[entity_id] = filings
        if name:
            self.names[query.upper()] = name

    def add_document(
        self, entity_id: str, filing: FilingRef, content: Union[bytes, Exception], name: Optional[str] = None
    ) -> str:
        url = self.document_url(entity_id, filing.accession_id, name or filing.primary_document)
        self.documents[url] = content
        return url

    def resolve_entity_id(self, query: str) -> str:
        if query.isdigit():
            return query.zfill(10)
        try:
            return self.entities[query.upper()]
        except KeyError:
            raise EntityNotFound(query) from None

    def list_filing_history(self, entity_id: str) -> List[FilingRef]:
        history = self.histories.get(entity_id, [])
        if isinstance(history, Exception):
            raise history
        return list(history)

    def fetch_document(self, url: str, timeout: Optional[float] = None) -> bytes:
        self.fetched.append(url)
        content = self.documents.get(url)
        if content is None:
            raise DocumentNotFound(url, "HTTP 404")
        if isinstance(content, Exception):
            raise content
        return content

    def fetch_directory_manifest(
        self, entity_id: str, accession_id: str, timeout: Optional[float] = None
    ) -> List[ManifestEntry]:
        manifest = self.manifests.get(accession_id)
        if manifest is None:
            raise DocumentNotFound(f"mem://{entity_id}/{accession_id}/index.json", "HTTP 404")
        if isinstance(manifest, Exception):
            raise manifest
        return list(manifest)

    def document_url(self, entity_id: str, accession_id: str, document_name: str) -> str:
        return f"mem://{entity_id}/{accession_id}/{document_name}"

    def company_name(self, ticker: str) -> Optional[str]:
        return self.names.get(ticker.upper())
