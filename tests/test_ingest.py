from datetime import datetime, timedelta, timezone

import pytest

from conftest import StaticProvider
from api.database import MemoryEventStore
from api.ingest import IngestionService, select_new_events
from ingestion.aggregator import Aggregator
from ingestion.errors import EventValidationError
from ingestion.models import EventCategory, EventFilter
from ingestion.sources.brussels_open_data import BrusselsOpenDataProvider


def make_service(settings, *providers):
    store = MemoryEventStore()
    return IngestionService(store, Aggregator(list(providers)), settings), store


@pytest.mark.asyncio
async def test_same_source_key_persisted_once(settings, create_event):
    event = create_event(source="ticketmaster", source_url="https://x/1")
    service, store = make_service(settings, StaticProvider(settings, [event]))

    first = await service.ingest()
    second = await service.ingest()

    assert (first.inserted, second.inserted, second.skipped) == (1, 0, 1)
    assert len(await store.list_all()) == 1


@pytest.mark.asyncio
async def test_same_url_different_source_is_not_a_duplicate(settings, create_event):
    events = [
        create_event(source="ticketmaster", source_url="https://x/1"),
        create_event(source="eventbrite", source_url="https://x/1"),
    ]
    service, store = make_service(settings, StaticProvider(settings, events))

    await service.ingest()

    assert len(await store.list_all()) == 2


@pytest.mark.asyncio
async def test_events_without_source_url_are_always_new(settings, create_event):
    event = create_event(source_url=None)
    service, store = make_service(settings, StaticProvider(settings, [event]))

    await service.ingest()
    await service.ingest()

    assert len(await store.list_all()) == 2


def test_repeated_key_within_one_batch_is_kept_once(create_event):
    a = create_event(title="first", source_url="https://x/1")
    b = create_event(title="second", source_url="https://x/1")

    new, skipped = select_new_events([a, b], existing=[])

    assert [e.title for e in new] == ["first"]
    assert skipped == 1


@pytest.mark.asyncio
async def test_all_providers_failing_serves_stored_events(settings, create_event):
    service, store = make_service(
        settings, StaticProvider(settings, error=RuntimeError("down"), label="down")
    )
    await store.create(create_event(title="Already stored"))

    report = await service.ingest()
    events = await service.trigger_ingestion_and_list()

    assert report.degraded
    assert [e.title for e in events] == ["Already stored"]


@pytest.mark.asyncio
async def test_jazz_festival_end_to_end(settings, mock_client):
    payload = {
        "total_count": 1,
        "records": [
            {
                "record": {
                    "id": "jazz-1",
                    "fields": {
                        "title": "Jazz Festival",
                        "start_date": "2026-10-24T20:00:00",
                        "event_type": "jazz",
                        "geo_point_2d": [4.35, 50.85],
                    },
                }
            }
        ],
    }
    provider = BrusselsOpenDataProvider(settings, client=mock_client(payload))
    service, _ = make_service(settings, provider)

    persisted = await service.trigger_ingestion_and_list()

    assert len(persisted) == 1
    assert persisted[0].id == 1
    assert persisted[0].category is EventCategory.MUSIC
    assert persisted[0].latitude == pytest.approx(50.85)
    assert persisted[0].longitude == pytest.approx(4.35)


@pytest.mark.asyncio
async def test_listing_applies_filter(settings, create_event):
    now = datetime.now(timezone.utc)
    events = [
        create_event(title="Concert", category="music", source_url="https://x/1", date=now),
        create_event(title="Expo", category="art", source_url="https://x/2", date=now),
        create_event(
            title="Later gig",
            category="music",
            source_url="https://x/3",
            date=now + timedelta(days=30),
        ),
    ]
    service, _ = make_service(settings, StaticProvider(settings, events))

    music = await service.trigger_ingestion_and_list(EventFilter(category="music"))
    everything = await service.trigger_ingestion_and_list(EventFilter(category="all"))

    assert {e.title for e in music} == {"Concert", "Later gig"}
    assert len(everything) == 3


@pytest.mark.asyncio
async def test_get_by_id(settings, create_event):
    service, store = make_service(settings)
    stored = await store.create(create_event())

    assert await service.get_by_id(stored.id) == stored
    assert await service.get_by_id(999) is None


@pytest.mark.asyncio
async def test_create_manual_accepts_camel_case_payload(settings):
    service, store = make_service(settings)
    payload = {
        "title": "Open mic",
        "description": "Bring your guitar",
        "date": "2026-10-30T20:00:00+01:00",
        "location": "Rue du Marché au Charbon 10, Brussels",
        "category": "music",
        "imageUrl": "",
        "organizer": "Bar Toto",
        "source": "meetup",
        "sourceUrl": "https://example.com/open-mic",
        "latitude": 50.846,
        "longitude": 4.349,
    }

    event = await service.create_manual(payload)

    assert event.id == 1
    assert event.source_url == "https://example.com/open-mic"
    assert await store.get(1) == event


@pytest.mark.asyncio
async def test_create_manual_reports_offending_fields(settings):
    service, store = make_service(settings)
    payload = {
        "title": "  ",
        "date": "2026-10-30T20:00:00+01:00",
        "location": "Brussels",
        "category": "opera",
        "source": "myspace",
        "latitude": 95.0,
        "longitude": 4.35,
    }

    with pytest.raises(EventValidationError) as info:
        await service.create_manual(payload)

    assert {"title", "category", "source", "latitude"} <= set(info.value.fields)
    assert await store.list_all() == []
