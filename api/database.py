"""Event persistence: an abstract store plus in-memory and SQLite backends."""

from __future__ import annotations

import abc
import asyncio
from datetime import datetime
from pathlib import Path

import aiosqlite

from ingestion.errors import StoreUnavailableError
from ingestion.models import CanonicalEvent, PersistedEvent
from ingestion.observability import log


class EventStore(abc.ABC):
    """Keyed record store. Identifiers are assigned by the store on create."""

    async def init(self) -> None:
        """Prepare the backing store. No-op by default."""

    @abc.abstractmethod
    async def list_all(self) -> list[PersistedEvent]:
        """Return every persisted event, in insertion order."""

    @abc.abstractmethod
    async def create(self, event: CanonicalEvent) -> PersistedEvent:
        """Insert *event* and return it with its new identifier."""

    @abc.abstractmethod
    async def get(self, event_id: int) -> PersistedEvent | None:
        """Look up an event by identifier."""


class MemoryEventStore(EventStore):
    """Process-local store with auto-incrementing identifiers."""

    def __init__(self) -> None:
        self._events: dict[int, PersistedEvent] = {}
        self._next_id = 1

    async def list_all(self) -> list[PersistedEvent]:
        return list(self._events.values())

    async def create(self, event: CanonicalEvent) -> PersistedEvent:
        event_id = self._next_id
        self._next_id += 1
        persisted = PersistedEvent.from_canonical(event, event_id)
        self._events[event_id] = persisted
        return persisted

    async def get(self, event_id: int) -> PersistedEvent | None:
        return self._events.get(event_id)


_COLUMNS = (
    "title",
    "description",
    "long_description",
    "date",
    "end_date",
    "location",
    "venue",
    "category",
    "image_url",
    "organizer",
    "organizer_image_url",
    "source",
    "source_url",
    "latitude",
    "longitude",
    "featured",
    "city",
)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        long_description TEXT,
        date TEXT NOT NULL,
        end_date TEXT,
        location TEXT NOT NULL,
        venue TEXT,
        category TEXT NOT NULL,
        image_url TEXT NOT NULL DEFAULT '',
        organizer TEXT NOT NULL DEFAULT '',
        organizer_image_url TEXT,
        source TEXT NOT NULL,
        source_url TEXT,
        latitude REAL NOT NULL,
        longitude REAL NOT NULL,
        featured INTEGER NOT NULL DEFAULT 0,
        city TEXT,
        created_at TEXT DEFAULT (datetime('now'))
    );

    CREATE INDEX IF NOT EXISTS idx_events_source_url ON events(source, source_url);
    CREATE INDEX IF NOT EXISTS idx_events_category ON events(category);
    CREATE INDEX IF NOT EXISTS idx_events_date ON events(date);
"""


class SqliteEventStore(EventStore):
    """SQLite-backed store; ``id`` comes from the AUTOINCREMENT column."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        # One writer at a time on the shared file.
        self._write_lock = asyncio.Lock()

    async def _connect(self) -> aiosqlite.Connection:
        """Get a database connection with row factory enabled."""
        db = await aiosqlite.connect(self.path)
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA journal_mode=WAL")
        return db

    async def init(self) -> None:
        """Initialize the events table and its indexes."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self.path) as db:
                await db.executescript(_SCHEMA)
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise StoreUnavailableError(f"cannot initialise {self.path}: {exc}") from exc

    async def list_all(self) -> list[PersistedEvent]:
        try:
            db = await self._connect()
            try:
                cursor = await db.execute("SELECT * FROM events ORDER BY id ASC")
                rows = await cursor.fetchall()
            finally:
                await db.close()
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(f"cannot read events: {exc}") from exc
        return [_row_to_event(row) for row in rows]

    async def create(self, event: CanonicalEvent) -> PersistedEvent:
        values = _event_to_row(event)
        placeholders = ", ".join("?" for _ in _COLUMNS)
        try:
            async with self._write_lock:
                db = await self._connect()
                try:
                    cursor = await db.execute(
                        f"INSERT INTO events ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                        values,
                    )
                    await db.commit()
                    event_id = cursor.lastrowid
                finally:
                    await db.close()
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(f"cannot insert event: {exc}") from exc
        log(f"Stored event {event_id} ({event.source.value})", "store")
        return PersistedEvent.from_canonical(event, event_id)

    async def get(self, event_id: int) -> PersistedEvent | None:
        try:
            db = await self._connect()
            try:
                cursor = await db.execute("SELECT * FROM events WHERE id = ?", (event_id,))
                row = await cursor.fetchone()
            finally:
                await db.close()
        except aiosqlite.Error as exc:
            raise StoreUnavailableError(f"cannot read event {event_id}: {exc}") from exc
        return _row_to_event(row) if row else None


def _event_to_row(event: CanonicalEvent) -> tuple:
    data = event.model_dump(mode="json")
    data["featured"] = int(event.featured)
    return tuple(data[column] for column in _COLUMNS)


def _row_to_event(row: aiosqlite.Row) -> PersistedEvent:
    data = {column: row[column] for column in _COLUMNS}
    data["date"] = datetime.fromisoformat(data["date"])
    if data["end_date"]:
        data["end_date"] = datetime.fromisoformat(data["end_date"])
    data["featured"] = bool(data["featured"])
    return PersistedEvent(id=row["id"], **data)
