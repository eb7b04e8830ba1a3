"""EDGAR filing repository implementation."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Iterable, List, Optional

import requests
from bs4 import BeautifulSoup

from ..config import Settings
from ..errors import (
    DocumentNotFound,
    EntityNotFound,
    FetchError,
    ParseFailure,
    TransientFetchError,
)
from ..models import FilingRef, ManifestEntry
from .base import FilingSource
from .utils import accession_folder, is_cik, pad_cik, parse_date, parse_int

LOGGER = logging.getLogger(__name__)

RETRIABLE_STATUS = {429, 500, 502, 503, 504}
TRANSIENT_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


class EdgarSource(FilingSource):
    """Client for the EDGAR archives, submissions and company ticker endpoints."""

    def __init__(
        self,
        settings: Settings,
        session: requests.Session | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        # The origin rejects anonymous clients; every request must identify itself.
        self.session.headers.update(
            {"User-Agent": settings.user_agent, "Accept-Encoding": "gzip, deflate"}
        )
        self._sleep = sleep
        self._throttle_lock = threading.Lock()
        self._last_request = 0.0
        self._tickers_lock = threading.Lock()
        self._tickers: Optional[List[dict[str, Any]]] = None

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _throttle(self) -> None:
        with self._throttle_lock:
            gap = time.monotonic() - self._last_request
            if gap < self.settings.min_request_interval:
                self._sleep(self.settings.min_request_interval - gap)
            self._last_request = time.monotonic()

    def _request(self, url: str, timeout: Optional[float] = None, stream: bool = False) -> requests.Response:
        """GET ``url``, retrying transport failures, 429 and 5xx responses."""

        timeout = timeout or self.settings.request_timeout
        reason = "no attempt made"
        for attempt in range(1, self.settings.max_attempts + 1):
            self._throttle()
            try:
                response = self.session.get(url, timeout=timeout, stream=stream)
            except TRANSIENT_ERRORS as exc:
                reason = f"{type(exc).__name__}: {exc}"
            except requests.RequestException as exc:
                # Redirect loops, malformed URLs and the like will not improve on retry.
                raise FetchError(url, f"{type(exc).__name__}: {exc}") from exc
            else:
                if response.status_code < 400:
                    return response
                response.close()
                if response.status_code not in RETRIABLE_STATUS:
                    raise DocumentNotFound(url, f"HTTP {response.status_code}")
                reason = f"HTTP {response.status_code}"

            LOGGER.warning(
                "Request for %s failed (%s), attempt %d/%d",
                url,
                reason,
                attempt,
                self.settings.max_attempts,
            )
            if attempt < self.settings.max_attempts:
                self._sleep(self.settings.retry_backoff * (2 ** (attempt - 1)))
        raise TransientFetchError(url, reason)

    def _get_json(self, url: str, timeout: Optional[float] = None) -> Any:
        response = self._request(url, timeout=timeout)
        try:
            return response.json()
        except ValueError as exc:
            raise ParseFailure(url, "invalid JSON") from exc

    # ------------------------------------------------------------------
    # Entity resolution
    # ------------------------------------------------------------------

    def _company_tickers(self) -> List[dict[str, Any]]:
        with self._tickers_lock:
            if self._tickers is None:
                payload = self._get_json(self.settings.tickers_url)
                entries = payload.values() if isinstance(payload, dict) else payload
                self._tickers = [entry for entry in entries if isinstance(entry, dict)]
                LOGGER.debug("Loaded %d company tickers", len(self._tickers))
            return self._tickers

    def resolve_entity_id(self, query: str) -> str:
        query = (query or "").strip()
        if not query:
            raise EntityNotFound(query)
        if is_cik(query):
            return pad_cik(query)

        try:
            entry = match_ticker(self._company_tickers(), query)
        except (FetchError, ParseFailure) as exc:
            LOGGER.warning("Company ticker lookup failed, trying bulk lookup file: %s", exc)
            entry = None
        if entry is not None:
            return pad_cik(entry["cik_str"])

        cik = self._search_cik_lookup(query)
        if cik is None:
            raise EntityNotFound(query)
        return cik

    def _search_cik_lookup(self, query: str) -> Optional[str]:
        """Stream the bulk ``NAME:CIK:`` lookup file for filers without a ticker."""

        LOGGER.info("Searching bulk CIK lookup file for %s", query)
        target = query.upper()
        try:
            response = self._request(self.settings.cik_lookup_url, stream=True)
        except FetchError as exc:
            LOGGER.error("Bulk CIK lookup unavailable: %s", exc)
            return None
        with response:
            return find_in_cik_lookup(response.iter_lines(decode_unicode=True), target)

    def company_name(self, ticker: str) -> Optional[str]:
        wanted = ticker.strip().upper()
        for entry in self._company_tickers():
            if str(entry.get("ticker", "")).upper() == wanted:
                return entry.get("title")
        return None

    # ------------------------------------------------------------------
    # Filing history and documents
    # ------------------------------------------------------------------

    def list_filing_history(self, entity_id: str) -> List[FilingRef]:
        url = f"{self.settings.submissions_url}/CIK{pad_cik(entity_id)}.json"
        payload = self._get_json(url)
        if not isinstance(payload, dict):
            raise ParseFailure(url, "unexpected submissions payload")
        recent = (payload.get("filings") or {}).get("recent") or {}
        filings = parse_recent_filings(recent)
        LOGGER.debug("Loaded %d filings for %s", len(filings), entity_id)
        return filings

    def _accession_base(self, entity_id: str, accession_id: str) -> str:
        return f"{self.settings.archives_url}/{int(entity_id)}/{accession_folder(accession_id)}"

    def document_url(self, entity_id: str, accession_id: str, document_name: str) -> str:
        return f"{self._accession_base(entity_id, accession_id)}/{document_name}"

    def fetch_document(self, url: str, timeout: Optional[float] = None) -> bytes:
        LOGGER.debug("Fetching %s", url)
        return self._request(url, timeout=timeout).content

    def fetch_directory_manifest(
        self, entity_id: str, accession_id: str, timeout: Optional[float] = None
    ) -> List[ManifestEntry]:
        base = self._accession_base(entity_id, accession_id)
        try:
            entries = parse_index_json(self._get_json(f"{base}/index.json", timeout=timeout))
        except (FetchError, ParseFailure) as exc:
            LOGGER.warning("index.json unavailable for %s (%s), trying HTML index", accession_id, exc)
            entries = []

        if entries:
            return entries

        response = self._request(f"{base}/{accession_id}-index.htm", timeout=timeout)
        return parse_index_page(response.text)


def match_ticker(entries: Iterable[dict[str, Any]], query: str) -> Optional[dict[str, Any]]:
    """Pick the company ticker entry for ``query``.

    Exact ticker match wins (``BRK.A`` also matches ``BRK-A``), then an exact
    case-insensitive title, then the shortest title containing the query.
    """

    entries = list(entries)
    upper = query.upper()
    normalized = upper.replace(".", "-")
    lower = query.lower()

    for entry in entries:
        if str(entry.get("ticker", "")).upper() in (upper, normalized):
            return entry
    for entry in entries:
        if str(entry.get("title", "")).lower() == lower:
            return entry
    contains = [entry for entry in entries if lower in str(entry.get("title", "")).lower()]
    if contains:
        return min(contains, key=lambda entry: len(str(entry.get("title", ""))))
    return None


def find_in_cik_lookup(lines: Iterable[str], target: str) -> Optional[str]:
    """Return the CIK of the first ``NAME:CIK:`` line whose name contains ``target``."""

    for line in lines:
        if not line or target not in line:
            continue
        name, _, cik = line.strip().rstrip(":").rpartition(":")
        if target in name and cik.strip().isdigit():
            LOGGER.info("Matched %s -> %s in bulk lookup file", name, cik)
            return pad_cik(cik.strip())
    return None


def parse_index_json(payload: Any) -> List[ManifestEntry]:
    """Read the file listing of an accession's ``index.json``; unexpected shapes give no entries."""

    directory = payload.get("directory") if isinstance(payload, dict) else None
    items = directory.get("item") if isinstance(directory, dict) else None
    if not isinstance(items, list):
        return []
    return [
        ManifestEntry(
            name=str(item["name"]),
            type=str(item.get("type") or ""),
            size=parse_int(str(item.get("size") or "")),
        )
        for item in items
        if isinstance(item, dict) and item.get("name")
    ]


def parse_recent_filings(recent: dict[str, list]) -> List[FilingRef]:
    """Zip the parallel arrays of a submissions payload into filing references."""

    accessions = recent.get("accessionNumber") or []
    forms = recent.get("form") or []
    dates = recent.get("filingDate") or []
    documents = recent.get("primaryDocument") or []
    report_dates = recent.get("reportDate") or []

    filings: List[FilingRef] = []
    for index, accession in enumerate(accessions):
        filing_date = parse_date(dates[index] if index < len(dates) else None)
        if filing_date is None:
            LOGGER.debug("Skipping %s without a filing date", accession)
            continue
        filings.append(
            FilingRef(
                accession_id=accession,
                filing_date=filing_date,
                form_type=forms[index] if index < len(forms) else "",
                primary_document=documents[index] if index < len(documents) else "",
                report_date=parse_date(report_dates[index] if index < len(report_dates) else None),
            )
        )
    return filings


def parse_index_page(html: str) -> List[ManifestEntry]:
    """Read the document table of an accession's HTML index page."""

    soup = BeautifulSoup(html, "html.parser")
    entries: List[ManifestEntry] = []
    for table in soup.find_all("table"):
        header = [th.get_text(strip=True).lower() for th in table.find_all("th")]
        if "document" not in header or "type" not in header:
            continue
        doc_idx = header.index("document")
        type_idx = header.index("type")
        size_idx = header.index("size") if "size" in header else None
        for row in table.find_all("tr"):
            cells = row.find_all("td")
            if len(cells) <= max(doc_idx, type_idx):
                continue
            anchor = cells[doc_idx].find("a", href=True)
            name = cells[doc_idx].get_text(strip=True)
            if anchor is not None:
                name = anchor["href"].rstrip("/").rsplit("/", 1)[-1] or name
            if not name:
                continue
            size = None
            if size_idx is not None and len(cells) > size_idx:
                size = parse_int(cells[size_idx].get_text(strip=True))
            entries.append(
                ManifestEntry(name=name, type=cells[type_idx].get_text(strip=True), size=size)
            )
    return entries


__all__ = [
    "EdgarSource",
    "match_ticker",
    "find_in_cik_lookup",
    "parse_index_json",
    "parse_recent_filings",
    "parse_index_page",
]
