"""Flask CLI commands for link maintenance."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from compactify.tasks.sweep import run_sweep

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("compactify.services.links").setLevel(level)
    LOGGER.setLevel(level)


@click.group("links")
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
def links_cli(verbose: bool) -> None:
    """Link maintenance commands."""
    _configure_logging(verbose)


@links_cli.command("sweep")
@with_appcontext
def sweep_command() -> None:
    """Delete expired anonymous links and deactivate expired owned ones."""
    try:
        outcome = run_sweep()
    except Exception as exc:  # pragma: no cover - CLI safeguard
        raise click.ClickException(f"Sweep failed: {exc}") from exc

    if outcome.get("skipped"):
        click.echo("Sweep skipped: another run is in progress.")
        return
    click.echo(f"Sweep done: deleted={outcome['deleted']} deactivated={outcome['deactivated']}")
