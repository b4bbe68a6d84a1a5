"""Facebook events via the Graph API search endpoint."""

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

_ENDPOINT = "https://graph.facebook.com/v16.0/search"
_FIELDS = (
    "id,name,description,start_time,end_time,category,place,cover,"
    "attending_count,interested_count,owner"
)


@register
class FacebookProvider(BaseProvider):
    name = "facebook"
    page_size = 50

    async def fetch(self, window: QueryWindow) -> list[CanonicalEvent]:
        token = self.credential()
        params = {
            "type": "event",
            "q": self.settings.region_label.split(",")[0],
            "center": f"{window.lat},{window.lng}",
            "distance": int(window.radius_km * 1000),
            "since": int(window.start.timestamp()),
            "until": int(window.end.timestamp()),
            "fields": _FIELDS,
            "limit": self.page_size,
            "access_token": token,
        }

        data = await self.get_json(_ENDPOINT, params=params)
        if not isinstance(data, dict):
            return []

        items = data.get("data") or []
        if (data.get("paging") or {}).get("next"):
            self.note_truncation(len(items))

        return self.parse_records(items, self._parse_event)

    def _parse_event(self, item: dict) -> CanonicalEvent | None:
        title = (item.get("name") or "").strip()
        if not title:
            return None

        start_time = parse_datetime(item.get("start_time"), self.tz)
        if start_time is None:
            return None
        end_time = parse_datetime(item.get("end_time"), self.tz)

        place = item.get("place") or {}
        loc = place.get("location") or {}
        location = build_location(
            [loc.get("street"), loc.get("city"), loc.get("zip"), None, loc.get("country")],
            self.settings.region_label,
        )
        longitude, latitude = normalize_coordinates(
            loc.get("latitude"), loc.get("longitude")
        )

        event_id = item.get("id")
        text = clean_text(item.get("description"))

        return self.build_event(
            title=title,
            description=short_description(text),
            long_description=text or None,
            date=start_time,
            end_date=end_time,
            location=location,
            venue=place.get("name"),
            category=map_category(combine_category_fields(item.get("category"))),
            image_url=(item.get("cover") or {}).get("source") or "",
            organizer=(item.get("owner") or {}).get("name") or "Facebook Event",
            source_url=f"https://facebook.com/events/{event_id}" if event_id else None,
            latitude=latitude,
            longitude=longitude,
            # Attendance / interest thresholds
            featured=(item.get("attending_count") or 0) > 50
            or (item.get("interested_count") or 0) > 100,
            city=extract_city(location),
        )
