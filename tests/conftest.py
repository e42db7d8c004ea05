"""Pytest configuration and shared fixtures for proxysentry tests.

This module provides an auto-use fixture that keeps the model
configuration from the developer's environment out of the tests, plus
factories for Cloudflare One log lines and normalized records.
"""

import json
import time
from datetime import UTC, datetime

import pytest

from proxysentry.models import NormalizedRecord


MODEL_ENV_VARS = [
    'PROXYSENTRY_API_KEY',
    'OPENAI_API_KEY',
    'PROXYSENTRY_API_BASE',
    'PROXYSENTRY_MODEL',
    'PROXYSENTRY_MODEL_TIMEOUT',
    'PROXYSENTRY_MAX_TOKENS',
    'PROXYSENTRY_AI_ENABLED',
    'PROXYSENTRY_LOG_LEVEL',
]


@pytest.fixture(autouse=True)
def isolate_model_environment(monkeypatch):
    """Auto-use fixture that removes model settings from the environment.

    Without this a developer's OPENAI_API_KEY would make tests reach the
    network.
    """
    for key in MODEL_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def cloudflare_entry():
    """Factory for a decoded Cloudflare One log entry with overrides.

    Pass a field with value None to drop it from the entry.
    """

    def make(**overrides) -> dict:
        entry = {
            'EdgeStartTimestamp': '2024-01-15T10:05:00Z',
            'ClientIP': '203.0.113.7',
            'ClientRequestHost': 'example.com',
            'ClientRequestURI': '/index.html',
            'ClientRequestMethod': 'GET',
            'ClientRequestProtocol': 'https',
            'OriginResponseStatus': 200,
            'EdgeResponseStatus': 200,
            'EdgeResponseBytes': 5120,
            'OriginIP': '198.51.100.20',
            'UserAgent': 'Mozilla/5.0 (X11; Linux x86_64)',
            'ClientCountry': 'us',
            'ClientASN': 64500,
            'Action': 'allow',
            'PolicyName': 'default',
        }
        for key, value in overrides.items():
            if value is None:
                entry.pop(key, None)
            else:
                entry[key] = value
        return entry

    return make


@pytest.fixture
def cloudflare_line(cloudflare_entry):
    """Factory for one JSON-encoded Cloudflare One log line."""

    def make(**overrides) -> str:
        return json.dumps(cloudflare_entry(**overrides))

    return make


@pytest.fixture
def make_record():
    """Factory for NormalizedRecord with sensible defaults."""

    def make(
        source_ip: str | None = '10.0.0.1',
        user_agent: str | None = 'Mozilla/5.0',
        status_code: int | None = 200,
        timestamp: datetime | None = datetime(2024, 1, 15, 10, 5, tzinfo=UTC),
        url: str | None = 'https://example.com/',
        **fields,
    ) -> NormalizedRecord:
        return NormalizedRecord(
            source_ip=source_ip,
            user_agent=user_agent,
            status_code=status_code,
            timestamp=timestamp,
            url=url,
            raw_data=fields.pop('raw_data', '{}'),
            **fields,
        )

    return make


@pytest.fixture
def non_utc_local_time(monkeypatch):
    """Run the test with the process local timezone set away from UTC."""
    if not hasattr(time, 'tzset'):
        pytest.skip('time.tzset is not available on this platform')
    monkeypatch.setenv('TZ', 'America/New_York')
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
