"""
Pytest configuration and fixtures for index-writer.

Provides cross-platform event loop configuration and test utilities.
"""

import asyncio
import sys

import pytest

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture
def mock_host():
    """Backend URL used by unit tests (never contacted)."""
    return "http://es.test:9200"


@pytest.fixture
def mock_index():
    return "users"


@pytest.fixture
def mock_config(mock_host, mock_index):
    """Client configuration for es_client.new_client()."""
    return {
        "host": mock_host,
        "index": mock_index,
        "type": "user",
        "timeout": 5.0,
    }
