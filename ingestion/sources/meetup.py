"""Meetup events via the find/upcoming_events API."""

from __future__ import annotations

from datetime import timedelta

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
    short_description,
)

_ENDPOINT = "https://api.meetup.com/find/upcoming_events"
_KM_PER_MILE = 1.609344
# Meetup wants naive local timestamps for the date range.
_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


@register
class MeetupProvider(BaseProvider):
    name = "meetup"
    page_size = 50

    async def fetch(self, window: QueryWindow) -> list[CanonicalEvent]:
        api_key = self.credential()
        params = {
            "key": api_key,
            "sign": "true",
            "photo-host": "public",
            "lat": window.lat,
            "lon": window.lng,
            "radius": round(window.radius_km / _KM_PER_MILE, 1),
            "start_date_range": window.start.astimezone(self.tz).strftime(_TIME_FORMAT),
            "end_date_range": window.end.astimezone(self.tz).strftime(_TIME_FORMAT),
            "page": self.page_size,
        }

        data = await self.get_json(_ENDPOINT, params=params)
        if not isinstance(data, dict):
            return []

        items = data.get("events") or []
        if len(items) >= self.page_size:
            self.note_truncation(len(items))

        return self.parse_records(items, self._parse_event)

    def _parse_event(self, item: dict) -> CanonicalEvent | None:
        title = (item.get("name") or "").strip()
        if not title:
            return None

        start_time = parse_datetime(item.get("time"), self.tz) or combine_local(
            item.get("local_date"), item.get("local_time"), self.tz
        )
        if start_time is None:
            return None

        end_time = None
        duration = item.get("duration")
        if isinstance(duration, (int, float)) and duration > 0:
            end_time = start_time + timedelta(milliseconds=duration)

        venue = item.get("venue") or {}
        location = build_location(
            [
                venue.get("address_1"),
                venue.get("city"),
                venue.get("zip"),
                venue.get("state"),
                venue.get("localized_country_name") or venue.get("country"),
            ],
            self.settings.region_label,
        )
        longitude, latitude = normalize_coordinates(venue.get("lat"), venue.get("lon"))

        group = item.get("group") or {}
        raw_category = combine_category_fields(
            (group.get("category") or {}).get("name"),
        )

        photo = item.get("featured_photo") or {}
        text = clean_text(item.get("description"))

        return self.build_event(
            title=title,
            description=short_description(text),
            long_description=text or None,
            date=start_time,
            end_date=end_time,
            location=location,
            venue=venue.get("name"),
            category=map_category(raw_category),
            image_url=photo.get("highres_link") or photo.get("photo_link") or "",
            organizer=group.get("name") or "Meetup Group",
            source_url=item.get("link"),
            latitude=latitude,
            longitude=longitude,
            # Enough RSVPs to count as popular
            featured=(item.get("yes_rsvp_count") or 0) > 20,
            city=extract_city(location),
        )
