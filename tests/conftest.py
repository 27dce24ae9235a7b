#!/usr/bin/env python3
"""
Pytest configuration and shared fixtures.
Settings are read once at import time, so the test environment is set up
before anything from inkgest is imported.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_CRON_SECRET = "test_cron_secret"

TEST_ENV = {
    'APP_ENV': 'testing',
    'DATABASE_URL': TEST_DATABASE_URL,  # in-memory SQLite, never Postgres
    'CRON_SECRET': TEST_CRON_SECRET,
    'APP_URL': 'https://studio.test',
    'GOOGLE_CALENDAR_ENABLED': 'false',
    'WHATSAPP_ACCESS_TOKEN': '',
    'RESEND_API_KEY': '',
    'LOG_LEVEL': 'WARNING',
}
os.environ.update(TEST_ENV)
os.environ.pop('INKGEST_API_KEY', None)

from tests.mocks.record_store import (  # noqa: E402
    FakeNotificationSender,
    InMemoryReminderStore,
    make_appointment,
)

NOW = datetime(2025, 10, 20, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Keep test environment variables in place for every test"""
    with patch.dict(os.environ, TEST_ENV):
        yield


@pytest.fixture
def now():
    """Fixed 'current time' used by the reminder engine clock"""
    return NOW


@pytest.fixture
def record_store(now):
    """Empty in-memory reminder store"""
    return InMemoryReminderStore(clock=lambda: now)


@pytest.fixture
def sender():
    """Notification sender that records messages instead of sending them"""
    return FakeNotificationSender()


@pytest.fixture
def appointment(record_store, now):
    """Scheduled appointment three days ahead, stored in the record store"""
    return record_store.add_appointment(make_appointment(now + timedelta(days=3)))


@pytest.fixture
def mock_google_calendar():
    """Mock Google Calendar calls made by the appointment service"""
    with patch('inkgest.services.appointments.create_calendar_event') as mock_create, \
         patch('inkgest.services.appointments.update_calendar_event') as mock_update, \
         patch('inkgest.services.appointments.delete_calendar_event') as mock_delete:
        mock_create.return_value = None
        mock_update.return_value = None
        mock_delete.return_value = True
        yield {"create": mock_create, "update": mock_update, "delete": mock_delete}


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies")
    config.addinivalue_line("markers", "integration: Tests that touch a real (SQLite) database")
    config.addinivalue_line("markers", "smoke: Quick validation tests")
