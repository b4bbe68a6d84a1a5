"""CLI entry-point: python -m ingestion [run|list|ingest]."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer

from ingestion.aggregator import Aggregator
from ingestion.base import build_providers, get_providers
from ingestion.config import get_settings
from ingestion.observability import configure_logging

app = typer.Typer(help="Brussels Events Radar – ingestion CLI")


@app.command()
def run(
    source: list[str] | None = typer.Option(
        None, "--source", "-s", help="Provider name(s) to run. Omit for all."
    ),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write the fetched events to this JSON file."
    ),
) -> None:
    """Fetch from providers and report what each returned."""
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        providers = build_providers(settings, source or None)
    except KeyError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1)

    result = asyncio.run(Aggregator(providers).collect())
    for outcome in result.outcomes:
        line = f"  {outcome.provider}: {outcome.status.value} ({outcome.count})"
        if outcome.reason:
            line += f" – {outcome.reason}"
        typer.echo(line)
    typer.echo(f"Fetched {len(result.events)} event(s).")

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(
            json.dumps([e.to_json() for e in result.events], indent=2),
            encoding="utf-8",
        )
        typer.echo(f"Wrote {output}")


@app.command(name="list")
def list_providers() -> None:
    """List registered providers and whether they have credentials."""
    import ingestion.sources  # noqa: F401

    settings = get_settings()
    registry = get_providers()
    for name in sorted(registry):
        provider = registry[name](settings)
        configured = (
            not provider.requires_credential
            or settings.get_credential(name) is not None
        )
        typer.echo(f"  {name}{'' if configured else ' (not configured)'}")


@app.command()
def ingest(
    db: Path | None = typer.Option(None, "--db", help="SQLite file (default: DB_PATH)."),
) -> None:
    """Run one ingestion cycle into the SQLite store."""
    from api.database import SqliteEventStore
    from api.ingest import IngestionService

    settings = get_settings()
    configure_logging(settings.log_level)
    store = SqliteEventStore(db or settings.db_path)
    service = IngestionService(store, Aggregator(build_providers(settings)), settings)

    async def _cycle():
        await store.init()
        return await service.ingest()

    report = asyncio.run(_cycle())
    typer.echo(
        f"Fetched {report.fetched}, inserted {report.inserted}, "
        f"skipped {report.skipped} duplicate(s)."
    )
    if report.degraded:
        typer.echo("All providers failed; stored events were left unchanged.")


if __name__ == "__main__":
    app()
