"""Multi-provider event ingestion for the Brussels Events Radar."""
