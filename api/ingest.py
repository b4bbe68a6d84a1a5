"""Ingestion cycle: fetch from providers, skip known listings, store the rest."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from api.database import EventStore
from api.filters import apply_filter
from ingestion.aggregator import AggregateResult, Aggregator
from ingestion.config import Settings
from ingestion.errors import EventValidationError
from ingestion.models import CanonicalEvent, EventFilter, PersistedEvent
from ingestion.observability import log


@dataclass(frozen=True)
class IngestReport:
    fetched: int
    inserted: int
    skipped: int
    degraded: bool = False


def is_duplicate(event: CanonicalEvent, known_keys: set[tuple[str, str]]) -> bool:
    """An event is a duplicate iff its non-empty ``(source, source_url)`` is known."""
    key = event.source_key
    return key is not None and key in known_keys


def select_new_events(
    fetched: Iterable[CanonicalEvent], existing: Iterable[CanonicalEvent]
) -> tuple[list[CanonicalEvent], int]:
    """Split *fetched* into events to insert and a count of skipped duplicates.

    Events without a source URL are always new. A source key repeated within
    *fetched* is kept once.
    """
    known = {e.source_key for e in existing if e.source_key is not None}
    new: list[CanonicalEvent] = []
    skipped = 0
    for event in fetched:
        if is_duplicate(event, known):
            skipped += 1
            continue
        if event.source_key is not None:
            known.add(event.source_key)
        new.append(event)
    return new, skipped


class IngestionService:
    """Ties the aggregator, the dedup gate and the store together.

    Two overlapping ``ingest`` calls can both pass the dedup check for the
    same listing; callers that may trigger cycles concurrently must serialize
    them (the FastAPI app does, with a lock).
    """

    def __init__(self, store: EventStore, aggregator: Aggregator, settings: Settings) -> None:
        self.store = store
        self.aggregator = aggregator
        self.tz = ZoneInfo(settings.timezone)

    async def ingest(self) -> IngestReport:
        existing = await self.store.list_all()

        try:
            result = await self.aggregator.collect()
        except Exception as exc:  # noqa: BLE001
            log(
                f"Aggregation failed, serving stored events only: {exc}",
                "ingest",
                logging.ERROR,
            )
            return IngestReport(fetched=0, inserted=0, skipped=0, degraded=True)

        degraded = self._log_degradation(result)
        new_events, skipped = select_new_events(result.events, existing)
        for event in new_events:
            await self.store.create(event)

        log(
            f"Ingested {len(new_events)} new event(s), skipped {skipped} duplicate(s)",
            "ingest",
        )
        return IngestReport(
            fetched=len(result.events),
            inserted=len(new_events),
            skipped=skipped,
            degraded=degraded,
        )

    @staticmethod
    def _log_degradation(result: AggregateResult) -> bool:
        if result.all_failed:
            log(
                "All providers failed; falling back to stored events",
                "ingest",
                logging.WARNING,
            )
            return True
        return False

    async def trigger_ingestion_and_list(
        self, event_filter: EventFilter | None = None
    ) -> list[PersistedEvent]:
        """Run one ingestion cycle and return the filtered persisted set."""
        await self.ingest()
        events = await self.store.list_all()
        return apply_filter(events, event_filter, self.tz)

    async def get_by_id(self, event_id: int) -> PersistedEvent | None:
        return await self.store.get(event_id)

    async def create_manual(
        self, candidate: CanonicalEvent | Mapping[str, object]
    ) -> PersistedEvent:
        """Validate and store a hand-submitted event.

        Raises EventValidationError naming the offending fields.
        """
        if not isinstance(candidate, CanonicalEvent):
            try:
                candidate = CanonicalEvent.model_validate(dict(candidate))
            except ValidationError as exc:
                raise EventValidationError(exc.errors(include_url=False)) from exc
        return await self.store.create(candidate)
