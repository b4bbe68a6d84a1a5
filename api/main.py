"""Brussels Events Radar API."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import date as date_type

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ingestion.aggregator import Aggregator
from ingestion.base import build_providers
from ingestion.config import Settings, get_settings
from ingestion.errors import EventValidationError, StoreUnavailableError
from ingestion.models import DateScope, EventFilter
from ingestion.observability import configure_logging

from .database import EventStore, SqliteEventStore
from .ingest import IngestionService


def create_app(
    settings: Settings | None = None,
    store: EventStore | None = None,
    aggregator: Aggregator | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    store = store or SqliteEventStore(settings.db_path)
    aggregator = aggregator or Aggregator(build_providers(settings))
    service = IngestionService(store, aggregator, settings)
    # Ingestion cycles must not overlap: the dedup check is not atomic.
    ingest_lock = asyncio.Lock()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        await store.init()
        yield

    app = FastAPI(title="Brussels Events Radar", version="0.1.0", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable(request: Request, exc: StoreUnavailableError):
        return JSONResponse(status_code=503, content={"message": "Event store unavailable"})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/events")
    async def list_events(
        category: str | None = None,
        date: DateScope | None = None,
        day: date_type | None = None,
    ):
        """Refresh from providers, then list events matching the filter.

        *category* is an event category or "all".
        """
        try:
            event_filter = EventFilter(category=category, date=date, day=day)
        except ValidationError as exc:
            raise HTTPException(
                status_code=422, detail=exc.errors(include_url=False, include_context=False)
            )
        async with ingest_lock:
            events = await service.trigger_ingestion_and_list(event_filter)
        return [e.to_json() for e in events]

    @app.get("/api/events/{event_id}")
    async def get_event(event_id: str):
        """Get a single event by ID."""
        try:
            key = int(event_id)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid event ID")
        event = await service.get_by_id(key)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event.to_json()

    @app.post("/api/events", status_code=201)
    async def create_event(payload: dict = Body(...)):
        """Create an event from a manual submission."""
        try:
            event = await service.create_manual(payload)
        except EventValidationError as exc:
            errors = [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                for e in exc.errors
            ]
            return JSONResponse(
                status_code=400,
                content={"message": "Invalid event data", "fields": exc.fields, "errors": errors},
            )
        return event.to_json()

    @app.get("/api/providers")
    async def list_providers():
        """Configured providers and the outcome of their latest fetch."""
        providers = []
        for provider in aggregator.providers:
            outcome = provider.last_outcome
            providers.append(
                {
                    "name": provider.name,
                    "configured": not provider.requires_credential
                    or settings.get_credential(provider.name) is not None,
                    "status": outcome.status.value if outcome else None,
                    "count": outcome.count if outcome else 0,
                    "reason": outcome.reason if outcome else None,
                }
            )
        return providers

    return app


app = create_app()
