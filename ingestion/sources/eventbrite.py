"""Eventbrite events via the v3 REST API."""

from __future__ import annotations

from ingestion.base import BaseProvider, QueryWindow, register
from ingestion.models import CanonicalEvent
from ingestion.normalize import (
    build_location,
    clean_text,
    combine_category_fields,
    extract_city,
    map_category,
    normalize_coordinates,
    parse_datetime,
    short_description,
)

_ENDPOINT = "https://www.eventbriteapi.com/v3/events/search/"
_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@register
class EventbriteProvider(BaseProvider):
    name = "eventbrite"
    page_size = 50

    async def fetch(self, window: QueryWindow) -> list[CanonicalEvent]:
        token = self.credential()
        params = {
            "location.latitude": window.lat,
            "location.longitude": window.lng,
            "location.within": f"{window.radius_km:g}km",
            "start_date.range_start": window.start.strftime(_TIME_FORMAT),
            "start_date.range_end": window.end.strftime(_TIME_FORMAT),
            "expand": "venue,organizer,category,subcategory,logo",
            "page_size": self.page_size,
        }
        headers = {"Authorization": f"Bearer {token}"}

        data = await self.get_json(_ENDPOINT, params=params, headers=headers)
        if not isinstance(data, dict):
            return []

        items = data.get("events") or []
        pagination = data.get("pagination") or {}
        if pagination.get("has_more_items"):
            self.note_truncation(len(items), pagination.get("object_count"))

        return self.parse_records(items, self._parse_event)

    def _parse_event(self, item: dict) -> CanonicalEvent | None:
        title = ((item.get("name") or {}).get("text") or "").strip()
        if not title:
            return None

        start_time = parse_datetime((item.get("start") or {}).get("utc"), self.tz)
        if start_time is None:
            return None
        end_time = parse_datetime((item.get("end") or {}).get("utc"), self.tz)

        venue = item.get("venue") or {}
        addr = venue.get("address") or {}
        location = build_location(
            [
                addr.get("address_1"),
                addr.get("city"),
                addr.get("postal_code"),
                addr.get("region"),
                addr.get("country"),
            ],
            self.settings.region_label,
        )
        longitude, latitude = normalize_coordinates(
            venue.get("latitude"), venue.get("longitude")
        )

        raw_category = combine_category_fields(
            (item.get("category") or {}).get("name"),
            (item.get("subcategory") or {}).get("name"),
        )

        description = item.get("description") or {}
        text = clean_text(description.get("text") or description.get("html"))
        organizer = item.get("organizer") or {}

        return self.build_event(
            title=title,
            description=short_description(text),
            long_description=text or None,
            date=start_time,
            end_date=end_time,
            location=location,
            venue=venue.get("name"),
            category=map_category(raw_category),
            image_url=(item.get("logo") or {}).get("url") or "",
            organizer=organizer.get("name") or "Eventbrite Event",
            organizer_image_url=(organizer.get("logo") or {}).get("url"),
            source_url=item.get("url"),
            latitude=latitude,
            longitude=longitude,
            # Paid tickets or publicly listed
            featured=not item.get("is_free", False) or bool(item.get("listed")),
            city=extract_city(location),
        )
