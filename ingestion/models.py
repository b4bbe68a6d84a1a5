"""Shared Pydantic models for Brussels Events Radar."""

from __future__ import annotations

import math
from datetime import date as date_type
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class EventCategory(str, Enum):
    MUSIC = "music"
    ART = "art"
    FOOD = "food"
    SPORTS = "sports"
    NIGHTLIFE = "nightlife"
    CULTURAL = "cultural"
    THEATER = "theater"


class EventSource(str, Enum):
    FACEBOOK = "facebook"
    EVENTBRITE = "eventbrite"
    MEETUP = "meetup"
    BRUSSELS_OPEN_DATA = "brussels_open_data"
    TICKETMASTER = "ticketmaster"


class BelgianCity(str, Enum):
    BRUSSELS = "Brussels"
    ANTWERP = "Antwerp"
    GHENT = "Ghent"
    BRUGES = "Bruges"
    LEUVEN = "Leuven"
    LIEGE = "Liège"
    NAMUR = "Namur"
    CHARLEROI = "Charleroi"
    MONS = "Mons"
    OSTEND = "Ostend"
    ALL = "All"


class DateScope(str, Enum):
    TODAY = "today"
    TOMORROW = "tomorrow"
    WEEKEND = "weekend"
    NEXT_WEEK = "next-week"


class CanonicalEvent(BaseModel):
    """Normalized event record produced by ingestion, before persistence.

    Attributes are snake_case; the serialized names are camelCase
    (``imageUrl``, ``sourceUrl`` ...). Both spellings are accepted on input.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    title: str = Field(min_length=1)
    description: str = ""
    long_description: str | None = None
    date: datetime
    end_date: datetime | None = None
    location: str = Field(min_length=1)
    venue: str | None = None
    category: EventCategory
    image_url: str = ""
    organizer: str = ""
    organizer_image_url: str | None = None
    source: EventSource
    source_url: str | None = None
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    featured: bool = False
    city: BelgianCity | None = None

    @field_validator("title", "location")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("latitude", "longitude")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("must be a finite number")
        return value

    @model_validator(mode="after")
    def _end_after_start(self) -> CanonicalEvent:
        if self.end_date is not None and _comparable(self.end_date) < _comparable(self.date):
            raise ValueError("endDate must not be before date")
        return self

    @property
    def source_key(self) -> tuple[str, str] | None:
        """``(source, source_url)`` or None when the listing has no URL."""
        if not self.source_url:
            return None
        return (self.source.value, self.source_url)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class PersistedEvent(CanonicalEvent):
    """A CanonicalEvent accepted by the store, with its surrogate identifier."""

    id: int

    @classmethod
    def from_canonical(cls, event: CanonicalEvent, event_id: int) -> PersistedEvent:
        return cls(id=event_id, **event.model_dump())


class EventFilter(BaseModel):
    """Presentation-layer filter applied to the persisted set."""

    category: EventCategory | None = None
    date: DateScope | None = None
    day: date_type | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _all_means_any(cls, value):
        if value == "all" or value == "":
            return None
        return value


def _comparable(value: datetime) -> datetime:
    # Naive and aware datetimes cannot be compared; treat naive as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
