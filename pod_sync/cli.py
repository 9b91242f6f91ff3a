"""Scheduler-facing commands.

    flask --app pod_sync sync-recent --days 14
    flask --app pod_sync resync 5551234567
"""
import json

import click
from flask import current_app

from .utils.logger import set_level


def _verbose_option(fn):
    return click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level.")(fn)


def register_commands(app):
    @app.cli.command("sync-recent")
    @click.option("--days", type=int, default=None, help="Look back this many days (default: tracking window).")
    @_verbose_option
    def sync_recent(days, verbose):
        """Run one reconciliation sweep over recent Printoteca orders."""
        if verbose:
            set_level("DEBUG")
        report = current_app.extensions["pod_sync"].reconciler.sync_recent(days)
        click.echo(json.dumps(report.as_json()))
        if report.errors:
            raise SystemExit(1)

    @app.cli.command("resync")
    @click.argument("order_id")
    @_verbose_option
    def resync(order_id, verbose):
        """Re-apply Printoteca status to one Shopify order."""
        if verbose:
            set_level("DEBUG")
        so = current_app.extensions["pod_sync"].reconciler.resync_one(order_id)
        if so is None:
            click.echo(json.dumps({"order_id": order_id, "linked": False}))
            raise SystemExit(2)
        click.echo(json.dumps({"order_id": order_id, "linked": True, "supplier_order": so.as_json()}))
