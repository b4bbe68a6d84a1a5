import math
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from ingestion.models import BelgianCity, EventCategory
from ingestion.normalize import (
    DEFAULT_POINT,
    build_location,
    clean_text,
    combine_local,
    distance_km,
    extract_city,
    map_category,
    normalize_coordinates,
    parse_datetime,
    pick_image,
)

BRUSSELS = ZoneInfo("Europe/Brussels")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Jazz Night", EventCategory.MUSIC),
        ("  CONCERT ", EventCategory.MUSIC),
        ("Photography Exhibition", EventCategory.ART),
        ("Beer tasting", EventCategory.FOOD),
        ("Sports, Football", EventCategory.SPORTS),
        ("Nightlife", EventCategory.NIGHTLIFE),
        ("Heritage walk", EventCategory.CULTURAL),
        ("Theatre", EventCategory.THEATER),
        ("Stand-up comedy", EventCategory.THEATER),
    ],
)
def test_map_category_rules(raw, expected):
    assert map_category(raw) is expected


def test_map_category_defaults_to_cultural():
    assert map_category("xyz") is EventCategory.CULTURAL
    assert map_category("") is EventCategory.CULTURAL
    assert map_category(None) is EventCategory.CULTURAL


def test_map_category_first_rule_wins():
    # "festival" (music) is listed before "food"
    assert map_category("Food festival") is EventCategory.MUSIC


def test_map_category_is_total():
    for raw in ["", "???", "Film", "Miscellaneous", "12345", "Family"]:
        assert map_category(raw) in set(EventCategory)


def test_normalize_coordinates_keeps_ordered_pair():
    assert normalize_coordinates(50.85, 4.35) == (4.35, 50.85)


def test_normalize_coordinates_swaps_reversed_pair():
    assert normalize_coordinates(4.35, 50.85) == normalize_coordinates(50.85, 4.35)


def test_normalize_coordinates_parses_strings():
    assert normalize_coordinates("50.8467", "4.3525") == (4.3525, 50.8467)


@pytest.mark.parametrize(
    "lat, lng",
    [(None, 4.35), ("abc", "4.35"), (float("nan"), 4.35), (120.0, 4.35), (True, 4.0)],
)
def test_normalize_coordinates_falls_back_to_default(lat, lng):
    lng_out, lat_out = normalize_coordinates(lat, lng)
    assert (lat_out, lng_out) == DEFAULT_POINT
    assert not math.isnan(lat_out)


def test_distance_zero_for_same_point():
    assert distance_km(50.85, 4.35, 50.85, 4.35) == 0


def test_distance_is_symmetric():
    a = distance_km(50.85, 4.35, 51.22, 4.40)
    b = distance_km(51.22, 4.40, 50.85, 4.35)
    assert a == pytest.approx(b)
    # Brussels to Antwerp is about 41 km
    assert 38 < a < 44


def test_distance_antipodal_is_half_circumference():
    d = distance_km(0.0, 0.0, 0.0, 180.0)
    assert d == pytest.approx(math.pi * 6371.0)
    assert not math.isnan(distance_km(90.0, 0.0, -90.0, 0.0))


def test_build_location_skips_absent_parts():
    parts = ["Rue Neuve 1", None, "1000", "", "Belgium"]
    assert build_location(parts, "Brussels, Belgium") == "Rue Neuve 1, 1000, Belgium"


def test_build_location_fallback():
    assert build_location([None, ""], "Brussels, Belgium") == "Brussels, Belgium"


def test_pick_image_prefers_landscape():
    images = [
        {"ratio": "4_3", "url": "https://img/a.jpg"},
        {"ratio": "16_9", "url": "https://img/b.jpg"},
    ]
    assert pick_image(images) == "https://img/b.jpg"
    assert pick_image(images[:1]) == "https://img/a.jpg"
    assert pick_image([]) == ""


def test_clean_text_strips_html():
    assert clean_text("<p>Live <b>jazz</b>\n tonight</p>") == "Live jazz tonight"
    assert clean_text(None) == ""


def test_extract_city_handles_local_spellings():
    assert extract_city("Rue Neuve 1, Bruxelles, 1000") is BelgianCity.BRUSSELS
    assert extract_city("Meir 50, Antwerpen") is BelgianCity.ANTWERP
    assert extract_city("Somewhere, Paris") is None


def test_parse_datetime_variants():
    utc = parse_datetime("2026-10-20T18:00:00Z", BRUSSELS)
    assert utc == datetime(2026, 10, 20, 18, 0, tzinfo=timezone.utc)

    naive = parse_datetime("2026-10-20T20:00:00", BRUSSELS)
    assert naive.tzinfo is BRUSSELS

    epoch = parse_datetime(1_790_000_000_000, BRUSSELS)
    assert epoch == datetime.fromtimestamp(1_790_000_000, tz=timezone.utc)

    assert parse_datetime("not a date", BRUSSELS) is None
    assert parse_datetime(None, BRUSSELS) is None


def test_combine_local_defaults_to_evening():
    start = combine_local("2026-10-20", None, BRUSSELS)
    assert (start.hour, start.minute) == (19, 0)
    assert combine_local(None, "10:00:00", BRUSSELS) is None
