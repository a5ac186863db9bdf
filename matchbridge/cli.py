from __future__ import annotations

import json
import logging
import time

import typer

from .config import get_settings
from .db import make_session
from .errors import SourceUnavailable
from .logging_utils import configure_logging
from .orchestrator import run_automation
from .sources import build_source
from .store import StateStore

app = typer.Typer(add_completion=False)
log = logging.getLogger(__name__)


@app.callback()
def main() -> None:
    configure_logging(get_settings().log_level)


def _report(report) -> None:
    if report.aborted:
        typer.echo(f"Run aborted: {report.aborted}")
    else:
        typer.echo(f"Created: {report.created}, settled: {report.settled}")


@app.command("run")
def run(
    every_hours: float = typer.Option(
        None, help="Keep running, one pass every N hours (default: single pass)"
    ),
) -> None:
    """
    Register upcoming fixtures and settle finished matches.
    """
    while True:
        try:
            _report(run_automation(get_settings()))
        except Exception as exc:  # keep the loop alive between scheduled passes
            if not every_hours:
                raise
            log.exception("Automation run failed: %s", exc)
        if not every_hours:
            return
        time.sleep(every_hours * 3600)


@app.command("register")
def register() -> None:
    """
    Only register upcoming fixtures.
    """
    _report(run_automation(get_settings(), settle=False))


@app.command("settle")
def settle() -> None:
    """
    Only settle finished matches.
    """
    _report(run_automation(get_settings(), register=False))


@app.command("quota")
def quota() -> None:
    """
    Show the provider's daily request counters.
    """
    source = build_source(get_settings())
    try:
        q = source.quota()
    except SourceUnavailable as exc:
        typer.echo(f"Provider status unavailable: {exc}", err=True)
        raise typer.Exit(code=1)
    if q is None:
        typer.echo("Provider has no quota endpoint")
        return
    typer.echo(f"Used {q.current}/{q.limit_day}, remaining {q.remaining}")


@app.command("snapshot")
def snapshot() -> None:
    """
    Print the last published snapshot.
    """
    settings = get_settings()
    session = make_session(settings.database_url)
    try:
        payload = StateStore(session).get_json(settings.snapshot_key)
    finally:
        session.close()
    if payload is None:
        typer.echo("No snapshot published yet")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(payload, indent=2))


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
) -> None:
    """
    Serve the health check and snapshot endpoints.
    """
    import uvicorn

    uvicorn.run("matchbridge.server:app", host=host, port=port)


if __name__ == "__main__":
    app()
