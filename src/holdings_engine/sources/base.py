"""Base class for filing repositories."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import FilingRef, ManifestEntry


class FilingSource(ABC):
    """Abstract repository that resolves filers and serves their documents."""

    @abstractmethod
    def resolve_entity_id(self, query: str) -> str:
        """Return the stable identifier for a ticker, name or raw identifier.

        Raises :class:`~holdings_engine.errors.EntityNotFound` when nothing matches.
        """

    @abstractmethod
    def list_filing_history(self, entity_id: str) -> List[FilingRef]:
        """Return the entity's filings, newest first."""

    @abstractmethod
    def fetch_document(self, url: str, timeout: Optional[float] = None) -> bytes:
        """Return the raw bytes at ``url``.

        Raises :class:`~holdings_engine.errors.DocumentNotFound` or
        :class:`~holdings_engine.errors.TransientFetchError`.
        """

    @abstractmethod
    def fetch_directory_manifest(
        self, entity_id: str, accession_id: str, timeout: Optional[float] = None
    ) -> List[ManifestEntry]:
        """Return the files listed in an accession's directory."""

    @abstractmethod
    def document_url(self, entity_id: str, accession_id: str, document_name: str) -> str:
        """Build the canonical URL of a document inside an accession."""

    def company_name(self, ticker: str) -> Optional[str]:
        """Return the registered name for ``ticker`` if the source knows it."""

        return None


__all__ = ["FilingSource"]
