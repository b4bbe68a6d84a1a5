"""Presentation-layer filters over the persisted event set."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable
from zoneinfo import ZoneInfo

from ingestion.models import DateScope, EventFilter, PersistedEvent


def scope_days(scope: DateScope, today: date) -> tuple[date, date]:
    """Inclusive ``(first, last)`` calendar days covered by *scope*."""
    if scope is DateScope.TODAY:
        return today, today
    if scope is DateScope.TOMORROW:
        tomorrow = today + timedelta(days=1)
        return tomorrow, tomorrow
    if scope is DateScope.WEEKEND:
        # Friday to Sunday of the current week; on a weekend day, that weekend.
        friday = today + timedelta(days=4 - today.weekday())
        return friday, friday + timedelta(days=2)
    # Monday to Sunday of the following week
    monday = today + timedelta(days=7 - today.weekday())
    return monday, monday + timedelta(days=6)


def apply_filter(
    events: Iterable[PersistedEvent],
    event_filter: EventFilter | None,
    tz: ZoneInfo,
    now: datetime | None = None,
) -> list[PersistedEvent]:
    """Keep events matching *event_filter*; days are judged in *tz*."""
    events = list(events)
    if event_filter is None:
        return events

    if event_filter.category is not None:
        events = [e for e in events if e.category == event_filter.category]

    days: tuple[date, date] | None = None
    if event_filter.day is not None:
        days = (event_filter.day, event_filter.day)
    elif event_filter.date is not None:
        today = (now or datetime.now(tz)).astimezone(tz).date()
        days = scope_days(event_filter.date, today)

    if days is not None:
        first, last = days
        events = [e for e in events if first <= _local_day(e.date, tz) <= last]
    return events


def _local_day(value: datetime, tz: ZoneInfo) -> date:
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(tz).date()
