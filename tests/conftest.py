# tests/conftest.py

"""Shared pytest fixtures for all tests."""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture(autouse=True)
def no_network() -> Generator[MagicMock, None, None]:
    """Replace the scraper HTTP session so no test reaches the network.

    Tests that need a response patch the session themselves or assign
    a mock to ``scraper.session``.
    """
    with patch(
        "src.scrapers.base_scraper.curl_requests.Session"
    ) as mock_session_cls:
        mock_session_cls.return_value.get.side_effect = RuntimeError(
            "network disabled in tests"
        )
        yield mock_session_cls
