"""HTTP boundary, persistence and ingestion cycle for Brussels Events Radar."""
