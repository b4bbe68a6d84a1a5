"""Shared pytest fixtures for the Brussels Events Radar test suite."""

from datetime import datetime, timezone

import httpx
import pytest

from ingestion.base import BaseProvider, FetchOutcome, FetchStatus
from ingestion.config import Settings
from ingestion.models import CanonicalEvent


def make_settings(**overrides) -> Settings:
    values = {
        "TICKETMASTER_API_KEY": "tm-key",
        "EVENTBRITE_API_KEY": "eb-token",
        "MEETUP_API_KEY": "mu-key",
        "FACEBOOK_API_KEY": "fb-token",
        "BRUSSELS_OPEN_DATA_API_KEY": "",
        "ENABLED_PROVIDERS": "",
        "REQUEST_TIMEOUT": 5.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def mock_client():
    """Return a factory building an AsyncClient that serves canned JSON."""

    def _mock_client(payload=None, status_code=200, handler=None) -> httpx.AsyncClient:
        requests: list[httpx.Request] = []

        def _default(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(status_code, json=payload)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler or _default))
        client.requests = requests  # type: ignore[attr-defined]
        return client

    return _mock_client


@pytest.fixture
def create_event():
    """Return a function that creates CanonicalEvent objects with sensible defaults.

    Example:
        event = create_event(title="My Event", source_url="https://x/1")
    """

    def _create_event(**kwargs) -> CanonicalEvent:
        defaults = {
            "title": "Test Event",
            "description": "",
            "date": datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc),
            "location": "Grand Place, Brussels",
            "category": "cultural",
            "organizer": "Test Organizer",
            "source": "ticketmaster",
            "source_url": "https://example.com/event/1",
            "latitude": 50.8467,
            "longitude": 4.3525,
        }
        defaults.update(kwargs)
        return CanonicalEvent(**defaults)

    return _create_event


class StaticProvider(BaseProvider):
    """Provider stub returning fixed events, or raising *error* if given."""

    name = "static"

    def __init__(self, settings, events=(), error=None, label="static"):
        super().__init__(settings)
        self.name = label
        self._events = list(events)
        self._error = error

    async def fetch(self, window):
        if self._error is not None:
            raise self._error
        return list(self._events)


class RaisingProvider(StaticProvider):
    """Breaks the never-raise contract to exercise the aggregator's guard."""

    async def fetch_events(self):
        self.last_outcome = FetchOutcome(self.name, FetchStatus.OK)
        raise RuntimeError("boom")
