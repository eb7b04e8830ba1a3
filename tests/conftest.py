"""Shared fixtures."""
from __future__ import annotations

import pytest

from holdings_engine.config import Settings

from tests.builders import FakeSource


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def settings() -> Settings:
    return Settings(min_request_interval=0.0, retry_backoff=0.0, database_url="sqlite://")
