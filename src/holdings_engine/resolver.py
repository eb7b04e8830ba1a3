"""Location of the information table document within an accession."""
from __future__ import annotations

from dataclasses import dataclass
import logging
import posixpath
from typing import Callable, Optional, Sequence, Tuple

from .deadline import Deadline, request_timeout
from .errors import FetchError, ParseFailure, ResolutionFailure
from .extractor import Element, has_information_table, parse_document
from .models import ManifestEntry
from .sources.base import FilingSource

LOGGER = logging.getLogger(__name__)

COVER_PAGE_NAME = "primary_doc.xml"

ManifestRule = Callable[[ManifestEntry, str], bool]
DocumentCheck = Callable[[Element], bool]


@dataclass(frozen=True)
class ResolvedDocument:
    url: str
    root: Element
    from_manifest: bool = False


def declared_information_table(entry: ManifestEntry, primary_document: str) -> bool:
    return "INFORMATION TABLE" in entry.type.upper()


def named_information_table(entry: ManifestEntry, primary_document: str) -> bool:
    name = entry.name.lower()
    return "xml" in name and ("information" in name or "infotable" in name)


def any_other_xml(entry: ManifestEntry, primary_document: str) -> bool:
    # Some filers number the table arbitrarily, e.g. 46994.xml.
    name = entry.name.lower()
    if not name.endswith(".xml") or "xsl" in name:
        return False
    primary = primary_document.lower()
    return name not in (primary, posixpath.basename(primary), COVER_PAGE_NAME)


MANIFEST_RULES: Sequence[Tuple[str, ManifestRule]] = (
    ("declared information table", declared_information_table),
    ("information table file name", named_information_table),
    ("other xml document", any_other_xml),
)


def select_candidate(
    entries: Sequence[ManifestEntry],
    primary_document: str,
    rules: Sequence[Tuple[str, ManifestRule]] = MANIFEST_RULES,
) -> Optional[ManifestEntry]:
    """Return the first manifest entry matched by the highest priority rule."""

    for label, rule in rules:
        for entry in entries:
            if rule(entry, primary_document):
                LOGGER.debug("Manifest rule %r matched %s", label, entry.name)
                return entry
    return None


class DocumentResolver:
    """Finds and parses the machine readable holdings table of an accession."""

    def __init__(
        self,
        source: FilingSource,
        *,
        request_timeout: float = 30.0,
        rules: Sequence[Tuple[str, ManifestRule]] = MANIFEST_RULES,
    ) -> None:
        self.source = source
        self.request_timeout = request_timeout
        self.rules = tuple(rules)

    def _fetch_and_parse(self, url: str, deadline: Optional[Deadline]) -> Element:
        content = self.source.fetch_document(url, timeout=request_timeout(deadline, self.request_timeout))
        return parse_document(content, url)

    def resolve(
        self,
        entity_id: str,
        accession_id: str,
        primary_document: str,
        *,
        accept: DocumentCheck = has_information_table,
        deadline: Optional[Deadline] = None,
    ) -> ResolvedDocument:
        """Return the information table of ``accession_id``.

        The primary document is tried first. If it cannot be fetched or parsed, or
        ``accept`` rejects it (by default: no information table node, i.e. a cover
        page), the accession's directory manifest is searched once with
        :data:`MANIFEST_RULES`. Raises :class:`ResolutionFailure` when no candidate
        exists and :class:`ParseFailure` when the candidate is not well-formed.
        """

        if primary_document:
            url = self.source.document_url(entity_id, accession_id, primary_document)
            try:
                root = self._fetch_and_parse(url, deadline)
            except (FetchError, ParseFailure) as exc:
                LOGGER.info("Primary document unusable for %s (%s)", accession_id, exc)
            else:
                if accept(root):
                    return ResolvedDocument(url, root)
                LOGGER.info("Primary document of %s is a cover page; searching manifest", accession_id)

        try:
            entries = self.source.fetch_directory_manifest(
                entity_id,
                accession_id,
                timeout=request_timeout(deadline, self.request_timeout),
            )
        except (FetchError, ParseFailure) as exc:
            raise ResolutionFailure(entity_id, accession_id, f"manifest unavailable ({exc})") from exc

        candidate = select_candidate(entries, primary_document, self.rules)
        if candidate is None:
            LOGGER.warning("No information table candidate among %d manifest entries for %s", len(entries), accession_id)
            raise ResolutionFailure(entity_id, accession_id, "no candidate document in manifest")

        url = self.source.document_url(entity_id, accession_id, candidate.name)
        LOGGER.info("Using %s as information table for %s", candidate.name, accession_id)
        try:
            root = self._fetch_and_parse(url, deadline)
        except FetchError as exc:
            raise ResolutionFailure(entity_id, accession_id, f"candidate fetch failed ({exc})") from exc
        return ResolvedDocument(url, root, from_manifest=True)


__all__ = [
    "DocumentResolver",
    "ResolvedDocument",
    "MANIFEST_RULES",
    "select_candidate",
    "declared_information_table",
    "named_information_table",
    "any_other_xml",
]
