"""Pure helpers that turn raw provider fields into canonical values."""

from __future__ import annotations

import math
from datetime import datetime, time, timezone
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from ingestion.models import BelgianCity, EventCategory

EARTH_RADIUS_KM = 6371.0

# Neutral fallback point (central Brussels) as (latitude, longitude).
DEFAULT_POINT = (50.85045, 4.34878)

# Default start time when a provider only gives a calendar date.
DEFAULT_START_TIME = time(19, 0)

# Ordered: the first rule containing a matching trigger wins.
CATEGORY_RULES: list[tuple[EventCategory, tuple[str, ...]]] = [
    (
        EventCategory.MUSIC,
        (
            "music", "concert", "festival", "performance", "gig", "dj",
            "jazz", "rock", "pop", "classical", "opera",
        ),
    ),
    (
        EventCategory.ART,
        ("art", "exhibition", "gallery", "museum", "visual", "painting", "sculpture"),
    ),
    (
        EventCategory.FOOD,
        (
            "food", "drink", "dinner", "tasting", "restaurant", "cuisine",
            "gastronomy", "culinary",
        ),
    ),
    (
        EventCategory.SPORTS,
        ("sports", "sport", "fitness", "match", "game", "running", "race", "athletic"),
    ),
    (
        EventCategory.NIGHTLIFE,
        ("nightlife", "party", "club", "bar", "pub", "disco"),
    ),
    (
        EventCategory.CULTURAL,
        ("cultural", "heritage", "history", "tour", "workshop", "lecture", "talk"),
    ),
    (
        EventCategory.THEATER,
        (
            "theater", "theatre", "play", "drama", "comedy", "acting",
            "performance art", "stage",
        ),
    ),
]

# English / French / Dutch spellings.
CITY_NAMES: dict[str, BelgianCity] = {
    "brussels": BelgianCity.BRUSSELS,
    "bruxelles": BelgianCity.BRUSSELS,
    "brussel": BelgianCity.BRUSSELS,
    "antwerp": BelgianCity.ANTWERP,
    "antwerpen": BelgianCity.ANTWERP,
    "anvers": BelgianCity.ANTWERP,
    "ghent": BelgianCity.GHENT,
    "gent": BelgianCity.GHENT,
    "gand": BelgianCity.GHENT,
    "bruges": BelgianCity.BRUGES,
    "brugge": BelgianCity.BRUGES,
    "leuven": BelgianCity.LEUVEN,
    "louvain": BelgianCity.LEUVEN,
    "liège": BelgianCity.LIEGE,
    "liege": BelgianCity.LIEGE,
    "luik": BelgianCity.LIEGE,
    "namur": BelgianCity.NAMUR,
    "namen": BelgianCity.NAMUR,
    "charleroi": BelgianCity.CHARLEROI,
    "mons": BelgianCity.MONS,
    "bergen": BelgianCity.MONS,
    "ostend": BelgianCity.OSTEND,
    "oostende": BelgianCity.OSTEND,
    "ostende": BelgianCity.OSTEND,
}


# ------------------------------------------------------------------
# Categories
# ------------------------------------------------------------------


def map_category(raw: str | None) -> EventCategory:
    """Map a free-text provider category onto the canonical taxonomy.

    Matching is by substring on the lower-cased, trimmed input; unmatched
    input (including empty or None) maps to ``cultural``.
    """
    normalized = (raw or "").lower().strip()
    if normalized:
        for category, triggers in CATEGORY_RULES:
            if any(trigger in normalized for trigger in triggers):
                return category
    return EventCategory.CULTURAL


def combine_category_fields(*parts: str | None) -> str:
    """Join segment/genre/subgenre-style fields into one string for mapping."""
    return ", ".join(p.strip() for p in parts if p and p.strip())


# ------------------------------------------------------------------
# Coordinates
# ------------------------------------------------------------------


def _to_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def looks_reversed(first: float, second: float) -> bool:
    """True when ``(first, second)`` looks like a ``(lng, lat)`` pair.

    Tuned for the target region: longitudes around 0-10 E, latitudes
    above 40 N.
    """
    return 0.0 <= first <= 10.0 and abs(second) > 40.0


def normalize_coordinates(
    lat: object,
    lng: object,
    default: tuple[float, float] = DEFAULT_POINT,
) -> tuple[float, float]:
    """Parse a ``(lat, lng)`` input pair and return ``(longitude, latitude)``.

    Numeric strings are accepted. A pair that looks reversed is swapped.
    Missing, unparsable or out-of-range input yields *default*, which is
    given as ``(latitude, longitude)``.
    """
    first = _to_float(lat)
    second = _to_float(lng)
    if first is None or second is None:
        return (default[1], default[0])

    if looks_reversed(first, second):
        first, second = second, first

    latitude, longitude = first, second
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        return (default[1], default[0])
    return (longitude, latitude)


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres (haversine)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    # Rounding can push a a hair outside [0, 1] for antipodal points.
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


# ------------------------------------------------------------------
# Text, location, images, dates
# ------------------------------------------------------------------


def build_location(parts: Iterable[str | None], fallback: str) -> str:
    """Join the present address parts with commas, or return *fallback*."""
    present = [str(p).strip() for p in parts if p is not None and str(p).strip()]
    return ", ".join(present) or fallback


def extract_city(location: str | None) -> BelgianCity | None:
    """Find a Belgian city name inside a free-text location."""
    if not location:
        return None
    segments = [s.strip().lower() for s in location.split(",")]
    for segment in segments:
        if segment in CITY_NAMES:
            return CITY_NAMES[segment]
    for segment in segments:
        for word in segment.split():
            if word in CITY_NAMES:
                return CITY_NAMES[word]
    return None


def clean_text(value: str | None) -> str:
    """Strip HTML markup and collapse whitespace."""
    if not value:
        return ""
    if "<" not in value:
        return " ".join(value.split())
    text = BeautifulSoup(value, "html.parser").get_text(" ", strip=True)
    return " ".join(text.split())


def short_description(text: str, limit: int = 500) -> str:
    return text[:limit]


def pick_image(
    images: Sequence[dict] | None,
    ratio_key: str = "ratio",
    preferred_ratio: str = "16_9",
    url_key: str = "url",
) -> str:
    """Prefer a landscape image, else the first one with a URL, else ``""``."""
    if not images:
        return ""
    candidates = [img for img in images if isinstance(img, dict) and img.get(url_key)]
    for img in candidates:
        if img.get(ratio_key) == preferred_ratio:
            return img[url_key]
    return candidates[0][url_key] if candidates else ""


def parse_datetime(value: object, tz: ZoneInfo) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` allowed) or epoch milliseconds.

    Naive results are interpreted in *tz*. Returns None when unusable.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def combine_local(
    local_date: str | None, local_time: str | None, tz: ZoneInfo
) -> datetime | None:
    """Build an aware datetime from a local date and optional local time."""
    if not local_date:
        return None
    try:
        day = datetime.fromisoformat(local_date).date()
        at = time.fromisoformat(local_time) if local_time else DEFAULT_START_TIME
    except ValueError:
        return None
    return datetime.combine(day, at, tzinfo=tz)
