"""Exception hierarchy for the holdings engine."""
from __future__ import annotations


class HoldingsEngineError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(HoldingsEngineError):
    """Raised when settings cannot be loaded."""


class EntityNotFound(HoldingsEngineError):
    """Raised when a query does not map to a filer identifier."""

    def __init__(self, query: str) -> None:
        super().__init__(f"No filer found for {query!r}")
        self.query = query


class FetchError(HoldingsEngineError):
    """Raised when a document could not be retrieved from the origin."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason


class DocumentNotFound(FetchError):
    """The origin answered with a non-retriable client error."""


class TransientFetchError(FetchError):
    """Transport failure that persisted through every retry attempt."""


class DeadlineExceeded(HoldingsEngineError):
    """The caller supplied deadline elapsed before the work could start."""


class ResolutionFailure(HoldingsEngineError):
    """No information table document could be located for an accession."""

    def __init__(self, entity_id: str, accession_id: str, reason: str) -> None:
        super().__init__(f"Could not resolve information table for {entity_id}/{accession_id}: {reason}")
        self.entity_id = entity_id
        self.accession_id = accession_id


class ParseFailure(HoldingsEngineError):
    """Fetched bytes were not well-formed XML."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Could not parse {url}: {reason}")
        self.url = url


class InsufficientHistory(HoldingsEngineError):
    """Fewer qualifying filings exist than the comparison requires."""

    def __init__(self, entity_id: str, form_type: str, found: int, required: int = 2) -> None:
        super().__init__(
            f"Need at least {required} {form_type} filings for {entity_id}, found {found}"
        )
        self.entity_id = entity_id
        self.form_type = form_type
        self.found = found


__all__ = [
    "HoldingsEngineError",
    "ConfigurationError",
    "EntityNotFound",
    "FetchError",
    "DocumentNotFound",
    "TransientFetchError",
    "DeadlineExceeded",
    "ResolutionFailure",
    "ParseFailure",
    "InsufficientHistory",
]
