"""Filing repository clients."""
from __future__ import annotations

import logging

import requests

from ..config import Settings
from .base import FilingSource
from .edgar import EdgarSource

LOGGER = logging.getLogger(__name__)


def create_source(settings: Settings, session: requests.Session | None = None) -> FilingSource:
    """Instantiate the repository client described by ``settings``."""

    LOGGER.debug("Using EDGAR source at %s", settings.archives_url)
    return EdgarSource(settings, session=session)


__all__ = ["create_source", "FilingSource", "EdgarSource"]
