"""Resolve, extract, aggregate and normalize one accession into a snapshot."""
from __future__ import annotations

import logging
from typing import Optional

from .deadline import Deadline
from .extractor import HoldingsExtractor, aggregate, has_information_table, has_rows
from .models import FilingRef, Snapshot
from .normalizer import ScaleNormalizer, rescale
from .resolver import DocumentResolver

LOGGER = logging.getLogger(__name__)


class SnapshotBuilder:
    """Runs the per-accession pipeline. Steps are strictly sequential."""

    def __init__(
        self,
        resolver: DocumentResolver,
        extractor: Optional[HoldingsExtractor] = None,
        normalizer: Optional[ScaleNormalizer] = None,
    ) -> None:
        self.resolver = resolver
        self.extractor = extractor or HoldingsExtractor()
        self.normalizer = normalizer or ScaleNormalizer()

    def build(
        self,
        entity_id: str,
        filing: FilingRef,
        *,
        deadline: Optional[Deadline] = None,
        require_rows: bool = False,
    ) -> Snapshot:
        """Build the snapshot of ``filing``.

        ``require_rows`` makes a primary document whose table has no rows fall back
        to the manifest search as well, not only a missing table.
        """

        document = self.resolver.resolve(
            entity_id,
            filing.accession_id,
            filing.primary_document,
            accept=has_rows if require_rows else has_information_table,
            deadline=deadline,
        )
        rows = self.extractor.rows(document.root)
        result = self.normalizer.normalize(aggregate(rows))
        if result.scale_applied:
            rows = rescale(rows)

        LOGGER.debug(
            "Built snapshot %s/%s: %d rows, %d positions, scale applied=%s",
            entity_id,
            filing.accession_id,
            len(rows),
            len(result.records),
            result.scale_applied,
        )
        return Snapshot(
            entity_id=entity_id,
            filing_date=filing.filing_date,
            accession_id=filing.accession_id,
            records={record.security_key: record for record in result.records},
            scale_applied=result.scale_applied,
            document_url=document.url,
            rows=tuple(rows),
        )


__all__ = ["SnapshotBuilder"]
