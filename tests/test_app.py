"""Tests for the JSON API."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from holdings_engine.app import app, get_service
from holdings_engine.errors import TransientFetchError
from holdings_engine.service import HoldingsService
from holdings_engine.store import create_db_engine, ensure_schema

from tests.test_service import BERKSHIRE, populate


@pytest.fixture
def db_engine(tmp_path):
    # Endpoints run in worker threads, so the database must outlive a single connection.
    engine = create_db_engine(f"sqlite:///{tmp_path / 'holdings.db'}")
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def service(settings, fake_source, db_engine):
    populate(fake_source)
    return HoldingsService(settings, fake_source, db_engine=db_engine)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthz(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_whale_tracker(client):
    response = client.post("/api/whale-tracker", json={"ticker": "BRK-B"})

    assert response.status_code == 200
    body = response.json()
    assert body["entity_id"] == BERKSHIRE
    assert body["current"]["total_holdings"] == 3
    assert body["current"]["filing_date"] == "2024-11-14"
    assert len(body["all_changes"]) == 4
    assert body["top_sells"][0]["issuer_name"] == "BANK OF AMERICA CORP"
    assert {sector["sector"] for sector in body["sectors"]} == {"Technology", "Financial Services", "Energy"}


def test_whale_tracker_rejects_unknown_mode(client):
    response = client.post("/api/whale-tracker", json={"ticker": "BRK-B", "mode": "monthly"})

    assert response.status_code == 422


def test_whale_tracker_missing_history(client):
    response = client.post("/api/whale-tracker", json={"ticker": "SCION"})

    assert response.status_code == 404
    assert "13F-HR" in response.json()["error"]


def test_unknown_ticker_is_not_found(client):
    response = client.post("/api/whale-tracker", json={"ticker": "NOPE"})

    assert response.status_code == 404
    assert "NOPE" in response.json()["error"]


def test_origin_failure_is_bad_gateway(client, fake_source):
    fake_source.histories[BERKSHIRE] = TransientFetchError("https://data.sec.gov/submissions/x.json", "HTTP 503")

    response = client.post("/api/whale-tracker", json={"ticker": "BRK-B"})

    assert response.status_code == 502


def test_whale_cluster(client):
    response = client.post("/api/whale-cluster", json={"ticker1": "BRK-B", "ticker2": "SCION"})

    assert response.status_code == 200
    body = response.json()
    assert body["fund_a"]["query"] == "BRK-B"
    assert body["fund_a"]["exclusive_count"] == 2
    assert body["fund_b"]["exclusive_count"] == 1
    assert body["overlap"]["count"] == 1
    assert body["overlap"]["holdings"][0]["issuer_name"] == "APPLE INC"


def test_whale_history(client):
    response = client.post(
        "/api/whale-history",
        json={"ticker": "BRK-B", "holdingInfo": {"issuer": "Apple Inc", "cusip": "037833100"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["keyword"] == "APPLE"
    assert [point["shares"] for point in body["history"]] == [790000, 400000, 300000]
    assert body["history"][0]["filing_date"] < body["history"][-1]["filing_date"]


def test_whale_history_requires_a_holding(client):
    response = client.post("/api/whale-history", json={"ticker": "BRK-B", "holdingInfo": {}})

    assert response.status_code == 400


def test_reverse_lookup(client, service):
    service.ingest("BRK-B")

    response = client.post("/api/whale-reverse-lookup", json={"ticker": "AAPL"})

    assert response.status_code == 200
    body = response.json()
    assert body["company_name"] == "Apple Inc."
    assert body["match_count"] == 1
    assert body["funds"][0]["cik"] == BERKSHIRE
