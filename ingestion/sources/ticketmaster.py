"""Ticketmaster events via the Discovery API v2."""

from __future__ import annotations

from ingestion.base import BaseProvider, QueryWindow, register
from ingestion.models import CanonicalEvent
from ingestion.normalize import (
    build_location,
    clean_text,
    combine_category_fields,
    combine_local,
    extract_city,
    map_category,
    normalize_coordinates,
    parse_datetime,
    pick_image,
    short_description,
)

_ENDPOINT = "https://app.ticketmaster.com/discovery/v2/events.json"
_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@register
class TicketmasterProvider(BaseProvider):
    name = "ticketmaster"
    page_size = 100

    async def fetch(self, window: QueryWindow) -> list[CanonicalEvent]:
        api_key = self.credential()
        params = {
            "apikey": api_key,
            "latlong": f"{window.lat},{window.lng}",
            "radius": f"{window.radius_km:g}",
            "unit": "km",
            "startDateTime": window.start.strftime(_TIME_FORMAT),
            "endDateTime": window.end.strftime(_TIME_FORMAT),
            "size": self.page_size,
            "sort": "date,asc",
        }

        data = await self.get_json(_ENDPOINT, params=params)
        if not isinstance(data, dict):
            return []

        items = (data.get("_embedded") or {}).get("events") or []
        page_info = data.get("page") or {}
        if page_info.get("totalPages", 0) > 1:
            self.note_truncation(len(items), page_info.get("totalElements"))

        return self.parse_records(items, self._parse_event)

    def _parse_event(self, item: dict) -> CanonicalEvent | None:
        title = (item.get("name") or "").strip()
        if not title:
            return None

        start_obj = (item.get("dates") or {}).get("start") or {}
        start_time = parse_datetime(start_obj.get("dateTime"), self.tz)
        if start_time is None:
            # Fall back to local date, evening by default
            start_time = combine_local(
                start_obj.get("localDate"), start_obj.get("localTime"), self.tz
            )
        if start_time is None:
            return None

        end_obj = (item.get("dates") or {}).get("end") or {}
        end_time = parse_datetime(end_obj.get("dateTime"), self.tz)

        # Venue info
        venue_name = None
        address_parts: list[str | None] = []
        lat = lng = None
        venues = (item.get("_embedded") or {}).get("venues") or []
        if venues:
            v = venues[0]
            venue_name = v.get("name")
            address_parts = [
                (v.get("address") or {}).get("line1"),
                (v.get("city") or {}).get("name"),
                v.get("postalCode"),
                (v.get("state") or {}).get("name"),
                (v.get("country") or {}).get("name"),
            ]
            geo = v.get("location") or {}
            lat, lng = geo.get("latitude"), geo.get("longitude")
        location = build_location(address_parts, self.settings.region_label)
        longitude, latitude = normalize_coordinates(lat, lng)

        # Category from classifications
        raw_category = ""
        classifications = item.get("classifications") or []
        if classifications:
            c = classifications[0]
            raw_category = combine_category_fields(
                (c.get("segment") or {}).get("name"),
                (c.get("genre") or {}).get("name"),
                (c.get("subGenre") or {}).get("name"),
            )

        text = clean_text(item.get("info") or item.get("pleaseNote"))
        status = ((item.get("dates") or {}).get("status") or {}).get("code")
        rank = item.get("rank") or 0

        return self.build_event(
            title=title,
            description=short_description(text),
            long_description=text or None,
            date=start_time,
            end_date=end_time,
            location=location,
            venue=venue_name,
            category=map_category(raw_category),
            image_url=pick_image(item.get("images")),
            organizer=(item.get("promoter") or {}).get("name") or "Ticketmaster Event",
            source_url=item.get("url"),
            latitude=latitude,
            longitude=longitude,
            # On sale now, or ranked by Ticketmaster
            featured=status == "onsale" or rank > 0,
            city=extract_city(location),
        )
