#!/usr/bin/env python3
"""
Entry point for the scheduler (cron, Fly machine, GitHub Actions).

Runs one pass: quota check, fixture registration, settlement. Options
override the matching environment settings for this invocation only.
"""

import logging
from typing import Optional

import typer

from matchbridge.config import get_settings
from matchbridge.orchestrator import run_automation

app = typer.Typer(add_completion=False)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger(__name__)


@app.command()
def main(
    leagues: Optional[str] = typer.Option(None, help="Comma-separated league IDs"),
    mode: Optional[str] = typer.Option(None, help="all|rotate"),
    days_ahead: Optional[int] = typer.Option(None, help="Fixture horizon in days"),
    batch_limit: Optional[int] = typer.Option(None, help="Max matches created this run"),
    skip_register: bool = typer.Option(False, help="Only settle"),
    skip_settle: bool = typer.Option(False, help="Only register"),
):
    overrides = {
        "league_ids": leagues,
        "league_mode": mode,
        "days_ahead": days_ahead,
        "batch_limit": batch_limit,
    }
    settings = get_settings().model_copy(update={k: v for k, v in overrides.items() if v is not None})

    report = run_automation(settings, register=not skip_register, settle=not skip_settle)
    if report.aborted:
        log.warning("Run aborted (%s)", report.aborted)
        raise typer.Exit(code=1)
    log.info("Run complete (created=%s, settled=%s)", report.created, report.settled)


if __name__ == "__main__":
    app()
