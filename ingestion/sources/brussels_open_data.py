"""Brussels cultural events via the opendata.brussels.be Explore API v2."""

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

_ENDPOINT = "https://opendata.brussels.be/api/v2/catalog/datasets/cultural-events/records"
_RECORD_URL = "https://opendata.brussels.be/explore/dataset/cultural-events/record/{}"


@register
class BrusselsOpenDataProvider(BaseProvider):
    name = "brussels_open_data"
    page_size = 100

    async def fetch(self, window: QueryWindow) -> list[CanonicalEvent]:
        # Optional: a key only raises the rate limit.
        api_key = self.credential()
        start = window.start.astimezone(self.tz).date().isoformat()
        end = window.end.astimezone(self.tz).date().isoformat()
        params = {
            "where": f"start_date >= '{start}' AND start_date <= '{end}'",
            "limit": self.page_size,
            "timezone": self.settings.timezone,
        }
        if api_key:
            params["apikey"] = api_key

        data = await self.get_json(_ENDPOINT, params=params)
        if not isinstance(data, dict):
            return []

        records = data.get("records") or []
        total = data.get("total_count")
        if isinstance(total, int) and total > len(records):
            self.note_truncation(len(records), total)

        return self.parse_records(records, self._parse_record)

    @staticmethod
    def _fields(record: dict) -> tuple[str | None, dict]:
        # v2 nests the payload as record.fields; older exports are flat.
        inner = record.get("record") if isinstance(record.get("record"), dict) else record
        record_id = inner.get("id") or inner.get("record_id") or record.get("record_id")
        return record_id, inner.get("fields") or {}

    def _coordinates(self, fields: dict) -> tuple[float, float]:
        """Return ``(longitude, latitude)`` from whichever geo field is present."""
        geo = fields.get("geo_point_2d")
        if isinstance(geo, dict):
            return normalize_coordinates(geo.get("lat"), geo.get("lon"))
        if isinstance(geo, (list, tuple)) and len(geo) == 2:
            # Array order differs between exports; let the swap check decide.
            return normalize_coordinates(geo[0], geo[1])
        return normalize_coordinates(fields.get("latitude"), fields.get("longitude"))

    def _parse_record(self, record: dict) -> CanonicalEvent | None:
        record_id, fields = self._fields(record)

        title = (fields.get("title") or "").strip()
        if not title:
            return None
        start_time = parse_datetime(fields.get("start_date"), self.tz)
        if start_time is None:
            return None
        end_time = parse_datetime(fields.get("end_date"), self.tz)

        location = build_location(
            [fields.get("address"), fields.get("municipality"), fields.get("zip_code")],
            self.settings.region_label,
        )
        longitude, latitude = self._coordinates(fields)

        raw_category = combine_category_fields(fields.get("event_type"), fields.get("theme"))
        text = clean_text(fields.get("description"))
        long_text = clean_text(fields.get("long_description")) or text

        source_url = fields.get("url") or (
            _RECORD_URL.format(record_id) if record_id else None
        )

        return self.build_event(
            title=title,
            description=short_description(text),
            long_description=long_text or None,
            date=start_time,
            end_date=end_time,
            location=location,
            venue=fields.get("location_name"),
            category=map_category(raw_category),
            image_url=fields.get("image_url") or fields.get("thumbnail_url") or "",
            organizer=fields.get("organizer") or "Brussels Open Data",
            source_url=source_url,
            latitude=latitude,
            longitude=longitude,
            # Flagged by the city's editors
            featured=fields.get("featured") is True or fields.get("highlight") is True,
            city=extract_city(location),
        )
