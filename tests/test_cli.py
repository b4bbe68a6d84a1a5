import json

from typer.testing import CliRunner

from conftest import StaticProvider, make_settings
from ingestion import __main__ as cli

runner = CliRunner()


def test_list_marks_unconfigured_providers(monkeypatch):
    monkeypatch.setattr(cli, "get_settings", lambda: make_settings(MEETUP_API_KEY=""))

    result = runner.invoke(cli.app, ["list"])

    assert result.exit_code == 0
    assert "meetup (not configured)" in result.output
    assert "brussels_open_data\n" in result.output
    assert "ticketmaster\n" in result.output


def test_run_writes_output(monkeypatch, tmp_path, create_event):
    settings = make_settings()
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(
        cli,
        "build_providers",
        lambda s, names=None: [StaticProvider(s, [create_event()], label="mock")],
    )
    out = tmp_path / "events.json"

    result = runner.invoke(cli.app, ["run", "--output", str(out)])

    assert result.exit_code == 0
    assert "mock: ok (1)" in result.output
    data = json.loads(out.read_text())
    assert data[0]["title"] == "Test Event"
    assert data[0]["sourceUrl"] == "https://example.com/event/1"


def test_ingest_into_sqlite(monkeypatch, tmp_path, create_event):
    settings = make_settings()
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(
        cli,
        "build_providers",
        lambda s, names=None: [StaticProvider(s, [create_event()], label="mock")],
    )
    db = tmp_path / "events.db"

    first = runner.invoke(cli.app, ["ingest", "--db", str(db)])
    second = runner.invoke(cli.app, ["ingest", "--db", str(db)])

    assert first.exit_code == 0
    assert "inserted 1" in first.output
    assert "inserted 0, skipped 1" in second.output
