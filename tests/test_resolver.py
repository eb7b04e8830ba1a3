"""Tests for locating the information table of an accession."""
from __future__ import annotations

from datetime import date

import pytest

from holdings_engine.deadline import Deadline
from holdings_engine.errors import DeadlineExceeded, ParseFailure, ResolutionFailure, TransientFetchError
from holdings_engine.extractor import find_rows, has_rows
from holdings_engine.models import FilingRef, ManifestEntry
from holdings_engine.resolver import (
    DocumentResolver,
    any_other_xml,
    declared_information_table,
    named_information_table,
    select_candidate,
)

from tests.builders import COVER_PAGE, info_table_xml, row_xml

ENTITY = "0001067983"
FILING = FilingRef("0000950123-24-011775", date(2024, 11, 14), "13F-HR", "primary_doc.xml")
TABLE = info_table_xml([row_xml("Apple Inc", "037833100", "100", "1000")])


@pytest.fixture
def resolver(fake_source):
    return DocumentResolver(fake_source, request_timeout=5.0)


def _resolve(resolver, **kwargs):
    return resolver.resolve(ENTITY, FILING.accession_id, FILING.primary_document, **kwargs)


def test_declared_type_rule():
    assert declared_information_table(ManifestEntry("46994.xml", "INFORMATION TABLE"), "primary_doc.xml")
    assert declared_information_table(ManifestEntry("x.xml", "Information Table"), "primary_doc.xml")
    assert not declared_information_table(ManifestEntry("x.xml", "13F-HR"), "primary_doc.xml")


def test_file_name_rule():
    assert named_information_table(ManifestEntry("form13fInfoTable.xml"), "primary_doc.xml")
    assert named_information_table(ManifestEntry("information_table.xml"), "primary_doc.xml")
    assert not named_information_table(ManifestEntry("infotable.htm"), "primary_doc.xml")


def test_any_other_xml_rule():
    assert any_other_xml(ManifestEntry("46994.xml"), "primary_doc.xml")
    assert not any_other_xml(ManifestEntry("primary_doc.xml"), "xslForm13F_X02/primary_doc.xml")
    assert not any_other_xml(ManifestEntry("cover.xml"), "cover.xml")
    assert not any_other_xml(ManifestEntry("xslForm13F.xml"), "primary_doc.xml")
    assert not any_other_xml(ManifestEntry("report.txt"), "primary_doc.xml")


def test_rules_are_tried_in_priority_order():
    entries = [
        ManifestEntry("12345.xml"),
        ManifestEntry("form13fInfoTable.xml"),
        ManifestEntry("odd_name.xml", "INFORMATION TABLE"),
    ]

    assert select_candidate(entries, "primary_doc.xml").name == "odd_name.xml"
    assert select_candidate(entries[:2], "primary_doc.xml").name == "form13fInfoTable.xml"
    assert select_candidate(entries[:1], "primary_doc.xml").name == "12345.xml"
    assert select_candidate([ManifestEntry("primary_doc.xml")], "primary_doc.xml") is None


def test_primary_document_with_table_is_used(resolver, fake_source):
    url = fake_source.add_document(ENTITY, FILING, TABLE)

    resolved = _resolve(resolver)

    assert resolved.url == url
    assert not resolved.from_manifest
    assert len(find_rows(resolved.root)) == 1


def test_cover_page_falls_back_to_manifest(resolver, fake_source):
    fake_source.add_document(ENTITY, FILING, COVER_PAGE)
    fake_source.manifests[FILING.accession_id] = [
        ManifestEntry("primary_doc.xml", "13F-HR"),
        ManifestEntry("46994.xml", "INFORMATION TABLE"),
    ]
    url = fake_source.add_document(ENTITY, FILING, TABLE, name="46994.xml")

    resolved = _resolve(resolver)

    assert resolved.url == url
    assert resolved.from_manifest


def test_missing_primary_falls_back_to_manifest(resolver, fake_source):
    fake_source.manifests[FILING.accession_id] = [ManifestEntry("infotable.xml")]
    url = fake_source.add_document(ENTITY, FILING, TABLE, name="infotable.xml")

    assert _resolve(resolver).url == url


def test_empty_table_accepted_unless_rows_required(resolver, fake_source):
    fake_source.add_document(ENTITY, FILING, info_table_xml([]))
    fake_source.manifests[FILING.accession_id] = [ManifestEntry("infotable.xml")]
    fallback = fake_source.add_document(ENTITY, FILING, TABLE, name="infotable.xml")

    assert not _resolve(resolver).from_manifest
    assert _resolve(resolver, accept=has_rows).url == fallback


def test_no_candidate_raises(resolver, fake_source):
    fake_source.add_document(ENTITY, FILING, COVER_PAGE)
    fake_source.manifests[FILING.accession_id] = [ManifestEntry("primary_doc.xml"), ManifestEntry("index.htm")]

    with pytest.raises(ResolutionFailure):
        _resolve(resolver)


def test_manifest_unavailable_raises(resolver, fake_source):
    fake_source.add_document(ENTITY, FILING, COVER_PAGE)
    fake_source.manifests[FILING.accession_id] = TransientFetchError("mem://index.json", "HTTP 503")

    with pytest.raises(ResolutionFailure):
        _resolve(resolver)


def test_candidate_fetch_failure_raises(resolver, fake_source):
    fake_source.manifests[FILING.accession_id] = [ManifestEntry("infotable.xml")]

    with pytest.raises(ResolutionFailure):
        _resolve(resolver)


def test_malformed_candidate_raises_parse_failure(resolver, fake_source):
    fake_source.manifests[FILING.accession_id] = [ManifestEntry("infotable.xml")]
    fake_source.add_document(ENTITY, FILING, b"<informationTable>", name="infotable.xml")

    with pytest.raises(ParseFailure):
        _resolve(resolver)


def test_expired_deadline_stops_before_fetching(resolver, fake_source):
    fake_source.add_document(ENTITY, FILING, TABLE)
    expired = Deadline(0.0, clock=lambda: 100.0)

    with pytest.raises(DeadlineExceeded):
        _resolve(resolver, deadline=expired)
    assert fake_source.fetched == []
