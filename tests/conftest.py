"""
Pytest configuration and shared fixtures.
"""

import os

# Settings are read once at import; give the test run usable defaults
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test_key")
os.environ.setdefault("CLINIC_TIMEZONE", "Asia/Singapore")
os.environ.setdefault("ENVIRONMENT", "test")

from unittest.mock import AsyncMock, MagicMock

import pytest

from notifications.notifier import Notifier
from tests.fakes import FakeClinicDB
from utils.request_client import RequestTelemetry, ResilientRequestClient


@pytest.fixture
def fake_db():
    """In-memory clinic database."""
    return FakeClinicDB()


@pytest.fixture
def mock_notifier():
    """Notifier with awaitable mocked methods."""
    return AsyncMock(spec=Notifier)


@pytest.fixture
def request_client():
    """Request client with short timeouts for tests."""
    return ResilientRequestClient(
        telemetry=RequestTelemetry(show_delay=0.05),
        timeout=0.5,
        max_attempts=3,
    )


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table
