"""Abstract provider client with httpx, a hard timeout, and a registry."""

from __future__ import annotations

import abc
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Sequence
from zoneinfo import ZoneInfo

import httpx
from pydantic import ValidationError

from ingestion.config import OPTIONAL_CREDENTIALS, Settings
from ingestion.errors import ProviderFetchError, ProviderNotConfigured
from ingestion.models import CanonicalEvent
from ingestion.observability import log

#: Length of the query window, counted from the start of a fetch.
WINDOW = timedelta(days=7)


class FetchStatus(str, Enum):
    OK = "ok"
    NOT_CONFIGURED = "not_configured"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchOutcome:
    provider: str
    status: FetchStatus
    count: int = 0
    reason: str | None = None


@dataclass(frozen=True)
class QueryWindow:
    """Region and date window fixed at the moment a fetch starts."""

    lat: float
    lng: float
    radius_km: float
    start: datetime
    end: datetime


class BaseProvider(abc.ABC):
    """Abstract provider client that all event sources must subclass."""

    #: Unique source identifier, e.g. "ticketmaster".
    name: str = ""

    #: Upstream page size; a fuller page than this is not requested.
    page_size: int = 100

    def __init__(
        self, settings: Settings, client: httpx.AsyncClient | None = None
    ) -> None:
        if not self.name:
            raise ValueError("Provider subclass must set 'name'")
        self.settings = settings
        self.tz = ZoneInfo(settings.timezone)
        self._client = client
        self._owns_client = client is None
        self.last_outcome: FetchOutcome | None = None

    @property
    def channel(self) -> str:
        return f"{self.name.replace('_', '-')}-api"

    @property
    def requires_credential(self) -> bool:
        return self.name not in OPTIONAL_CREDENTIALS

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.settings.user_agent},
                follow_redirects=True,
                timeout=self.settings.request_timeout,
            )
            self._owns_client = True
        return self._client

    async def get_json(self, url: str, **kwargs: object) -> object:
        """GET *url* once and decode the JSON body.

        Any transport, status or decoding problem becomes a ProviderFetchError.
        """
        client = self._ensure_client()
        log(f"GET {url}", "api-client", logging.DEBUG)
        try:
            resp = await client.get(url, **kwargs)  # type: ignore[arg-type]
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:200]
            raise ProviderFetchError(
                self.name, f"API Error ({exc.response.status_code}): {body}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise ProviderFetchError(self.name, f"request timed out: {url}") from exc
        except httpx.TransportError as exc:
            raise ProviderFetchError(self.name, f"transport error: {exc}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            raise ProviderFetchError(self.name, "response is not valid JSON") from exc

    # ------------------------------------------------------------------
    # Fetch contract
    # ------------------------------------------------------------------

    def credential(self) -> str | None:
        """Return the configured key, raising ProviderNotConfigured if required."""
        key = self.settings.get_credential(self.name)
        if key is None:
            if self.requires_credential:
                raise ProviderNotConfigured(self.name)
            log(f"{self.name} API key not found, continuing without it", "api-config")
        return key

    def query_window(self, now: datetime | None = None) -> QueryWindow:
        start = now or datetime.now(timezone.utc)
        lat, lng, radius = self.settings.get_region_center()
        return QueryWindow(lat, lng, radius, start, start + WINDOW)

    @abc.abstractmethod
    async def fetch(self, window: QueryWindow) -> list[CanonicalEvent]:
        """Call the upstream API and return mapped events."""

    def build_event(self, **fields: object) -> CanonicalEvent | None:
        """Validate a mapped record, dropping it (with a log line) if invalid."""
        start, end = fields.get("date"), fields.get("end_date")
        if isinstance(start, datetime) and isinstance(end, datetime) and end < start:
            fields["end_date"] = None
        try:
            return CanonicalEvent(source=self.name, **fields)
        except ValidationError as exc:
            log(
                f"Dropping record {fields.get('title')!r}: {exc.error_count()} invalid field(s)",
                self.channel,
                logging.DEBUG,
            )
            return None

    def parse_records(
        self,
        records: Sequence[object],
        parse: Callable[[dict], CanonicalEvent | None],
    ) -> list[CanonicalEvent]:
        """Map each raw record with *parse*, skipping records of unexpected shape."""
        events: list[CanonicalEvent] = []
        for index, record in enumerate(records):
            try:
                event = parse(record)  # type: ignore[arg-type]
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                log(
                    f"Skipping malformed record #{index}: {type(exc).__name__}: {exc}",
                    self.channel,
                    logging.WARNING,
                )
                continue
            if event:
                events.append(event)
        return events

    def note_truncation(self, returned: int, total: int | None = None) -> None:
        suffix = f" of {total}" if total is not None else ""
        log(
            f"Only the first page was read ({returned}{suffix} records); "
            "further pages are not fetched",
            self.channel,
            logging.WARNING,
        )

    async def fetch_events(self) -> list[CanonicalEvent]:
        """Fetch this provider's events. Never raises.

        The outcome of the call is kept on ``last_outcome``.
        """
        log(f"Fetching events from {self.name}...", self.channel)
        try:
            window = self.query_window()
            events = await asyncio.wait_for(
                self.fetch(window), timeout=self.settings.request_timeout
            )
        except ProviderNotConfigured as exc:
            log(str(exc), self.channel)
            self.last_outcome = FetchOutcome(self.name, FetchStatus.NOT_CONFIGURED)
            return []
        except asyncio.TimeoutError:
            reason = f"timed out after {self.settings.request_timeout:g}s"
            return self._failed(reason)
        except ProviderFetchError as exc:
            return self._failed(exc.reason)
        except Exception as exc:  # noqa: BLE001
            return self._failed(f"{type(exc).__name__}: {exc}")
        finally:
            await self.aclose()

        log(f"Retrieved {len(events)} events from {self.name}", self.channel)
        self.last_outcome = FetchOutcome(self.name, FetchStatus.OK, len(events))
        return events

    def _failed(self, reason: str) -> list[CanonicalEvent]:
        log(f"Error fetching from {self.name}: {reason}", self.channel, logging.ERROR)
        self.last_outcome = FetchOutcome(self.name, FetchStatus.FAILED, reason=reason)
        return []

    async def aclose(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------

_registry: dict[str, type[BaseProvider]] = {}


def register(cls: type[BaseProvider]) -> type[BaseProvider]:
    """Class decorator that registers a provider by its *name*."""
    _registry[cls.name] = cls
    return cls


def get_providers() -> dict[str, type[BaseProvider]]:
    """Return a copy of the provider registry."""
    return dict(_registry)


def get_provider(name: str) -> type[BaseProvider]:
    """Look up a registered provider by name."""
    try:
        return _registry[name]
    except KeyError:
        raise KeyError(f"Unknown provider: {name!r}. Available: {list(_registry)}")


def build_providers(
    settings: Settings,
    names: Sequence[str] | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[BaseProvider]:
    """Instantiate the providers selected by *names* or by configuration."""
    import ingestion.sources  # noqa: F401  (populates the registry)

    selected = list(names) if names else settings.provider_names() or list(_registry)
    return [get_provider(name)(settings, client=client) for name in selected]
