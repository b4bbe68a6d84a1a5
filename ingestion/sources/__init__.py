"""Auto-import all provider clients to trigger @register decorators."""

from ingestion.sources import (  # noqa: F401
    brussels_open_data,
    eventbrite,
    facebook,
    meetup,
    ticketmaster,
)
