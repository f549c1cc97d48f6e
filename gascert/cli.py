# gascert/cli.py
from __future__ import annotations

import click
from flask import Flask

from gascert.services.store import get_store


def register_cli(app: Flask) -> None:
    @app.cli.command("refresh-statuses")
    def refresh_statuses():
        """Recompute every certificate status (suitable for a daily cron job)."""
        store = get_store()
        changed = store.refresh_statuses()
        stats = store.stats
        click.echo(
            f"Updated {changed} certificate(s): "
            f"{stats.current} current, {stats.near_expiry} near expiry, {stats.expired} expired."
        )

    @app.cli.command("seed-sample-data")
    @click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
    def seed_sample_data(yes: bool):
        """Wipe stored state and start over with default settings and sample data."""
        if not yes:
            click.confirm("This deletes all clients, certificates and settings. Continue?", abort=True)
        store = get_store()
        store.reset()
        click.echo(f"Reset done: {len(store.clients)} client(s), {len(store.certificates)} certificate(s).")
