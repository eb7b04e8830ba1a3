"""Tests for logging configuration."""
from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from holdings_engine import logging_utils
from holdings_engine.logging_utils import LOG_FORMAT, configure_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    level = root.level
    marker = logging.NullHandler()
    root.addHandler(marker)
    yield root
    root.removeHandler(marker)
    root.setLevel(level)


@pytest.fixture
def basic_config(monkeypatch):
    mock = MagicMock()
    monkeypatch.setattr(logging_utils.logging, "basicConfig", mock)
    return mock


def test_explicit_level(root_logger, basic_config):
    configure_logging("debug", force=True)

    basic_config.assert_called_once_with(level=logging.DEBUG, format=LOG_FORMAT, force=True)


def test_level_from_environment(root_logger, basic_config, monkeypatch):
    monkeypatch.setenv("HOLDINGS_ENGINE_LOG_LEVEL", "WARNING")

    configure_logging(force=True)

    basic_config.assert_called_once_with(level=logging.WARNING, format=LOG_FORMAT, force=True)


def test_unknown_level_falls_back_to_info(root_logger, basic_config):
    configure_logging("chatty", force=True)

    basic_config.assert_called_once_with(level=logging.INFO, format=LOG_FORMAT, force=True)


def test_existing_handlers_only_change_level(root_logger, basic_config):
    configure_logging(logging.ERROR)

    basic_config.assert_not_called()
    assert root_logger.level == logging.ERROR
