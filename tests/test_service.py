"""End-to-end tests of the service layer over an in-memory source."""
from __future__ import annotations

import pytest

from holdings_engine.errors import EntityNotFound, HoldingsEngineError, InsufficientHistory, ResolutionFailure
from holdings_engine.service import HoldingsService
from holdings_engine.store import create_db_engine, ensure_schema

from tests.builders import FakeSource, info_table_xml, quarterly_filings, row_xml

BERKSHIRE = "0001067983"
SCION = "0001649339"


def populate(source: FakeSource) -> None:
    berkshire = quarterly_filings(3)
    source.add_entity("BRK-B", BERKSHIRE, berkshire, name="BERKSHIRE HATHAWAY INC")
    source.add_document(
        BERKSHIRE,
        berkshire[0],
        info_table_xml(
            [
                row_xml("Apple Inc", "037833100", "69900", "300000"),
                row_xml("Bank of America Corp", "060505104", "31700", "800000"),
                row_xml("Chevron Corp", "166764100", "17400", "118000"),
            ]
        ),
    )
    source.add_document(
        BERKSHIRE,
        berkshire[1],
        info_table_xml(
            [
                row_xml("Apple Inc", "037833100", "84200", "400000"),
                row_xml("Bank of America Corp", "060505104", "41100", "1000000"),
                row_xml("Paramount Global", "92556H206", "600", "60000"),
            ]
        ),
    )
    source.add_document(
        BERKSHIRE,
        berkshire[2],
        info_table_xml([row_xml("Apple Inc", "037833100", "135000", "790000")]),
    )

    scion = quarterly_filings(1)
    source.add_entity("SCION", SCION, scion)
    source.add_document(
        SCION,
        scion[0],
        info_table_xml(
            [
                row_xml("Apple Inc", "037833100", "5000", "22000"),
                row_xml("Estee Lauder Cos Inc", "518439104", "4000", "60000"),
            ],
            wrapped=True,
        ),
    )
    source.names["AAPL"] = "Apple Inc."


@pytest.fixture
def service(settings, fake_source):
    populate(fake_source)
    return HoldingsService(settings, fake_source)


def test_compare_quarter_over_quarter(service):
    result = service.compare("brk-b")

    assert result.entity_id == BERKSHIRE
    changes = {change.issuer_name: change for change in result.changes}
    assert set(changes) == {"APPLE INC", "BANK OF AMERICA CORP", "CHEVRON CORP", "PARAMOUNT GLOBAL"}
    assert changes["APPLE INC"].share_delta == -100000
    assert changes["CHEVRON CORP"].percent_delta == 100.0
    assert changes["PARAMOUNT GLOBAL"].percent_delta == -100.0
    assert result.top_holdings[0].issuer_name == "APPLE INC"


def test_compare_requires_two_filings(service):
    with pytest.raises(InsufficientHistory):
        service.compare("SCION")


def test_compare_unknown_entity(service):
    with pytest.raises(EntityNotFound):
        service.compare("NOPE")


def test_compare_fails_when_a_snapshot_cannot_be_built(service, fake_source):
    filing = fake_source.histories[BERKSHIRE][1]
    del fake_source.documents[fake_source.document_url(BERKSHIRE, filing.accession_id, filing.primary_document)]

    with pytest.raises(ResolutionFailure):
        service.compare("BRK-B")


def test_overlap(service):
    report = service.overlap("BRK-B", "SCION")

    assert report.snapshot_a.entity_id == BERKSHIRE
    assert report.snapshot_b.entity_id == SCION
    assert report.summary.overlap_count == 1
    assert report.summary.overlap_records[0].security_id == "037833100"
    assert report.summary.exclusive_count_a == 2
    assert report.summary.exclusive_count_b == 1


def test_track(service):
    history = service.track("BRK-B", issuer_name="Apple Inc")

    assert history.entity_id == BERKSHIRE
    assert [point.shares for point in history.points] == [790000, 400000, 300000]


def test_track_requires_descriptor(service):
    with pytest.raises(ValueError):
        service.track("BRK-B")


def test_store_operations_need_a_database(service):
    with pytest.raises(HoldingsEngineError):
        service.ingest("BRK-B")
    with pytest.raises(HoldingsEngineError):
        service.reverse_lookup("AAPL")


def test_ingest_and_reverse_lookup(settings, fake_source):
    populate(fake_source)
    engine = create_db_engine("sqlite://")
    ensure_schema(engine)
    service = HoldingsService(settings, fake_source, db_engine=engine)

    assert service.ingest("BRK-B", fund_name="BERKSHIRE HATHAWAY") == 3
    assert service.ingest("BRK-B") == 0
    assert service.ingest("SCION") == 2

    report = service.reverse_lookup("aapl")

    assert report.ticker == "AAPL"
    assert report.company_name == "Apple Inc."
    assert [holder["fund_name"] for holder in report.holders] == ["BERKSHIRE HATHAWAY", "SCION"]
    with pytest.raises(EntityNotFound):
        service.reverse_lookup("ZZZZ")
    engine.dispose()


@pytest.mark.parametrize("title", ["", "   ", "..."])
def test_reverse_lookup_with_unusable_company_name(settings, fake_source, title):
    fake_source.names["DOTS"] = title
    engine = create_db_engine("sqlite://")
    ensure_schema(engine)
    service = HoldingsService(settings, fake_source, db_engine=engine)

    with pytest.raises(EntityNotFound):
        service.reverse_lookup("DOTS")
    engine.dispose()
