"""
CLI commands for transaction backups — list, restore, cleanup.

A backup only outlives its install/remove when the process was killed
mid-transaction. These commands are the manual recovery path.
"""

from __future__ import annotations

import json
import sys

import click

from modgraft.ui.cli._common import resolve_paths


@click.group()
def backups() -> None:
    """Backups — inspect and recover interrupted transactions."""


@backups.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List leftover transaction backups."""
    from modgraft.core.services.transaction import list_transactions

    paths = resolve_paths(ctx)
    found = list_transactions(paths)

    if as_json:
        click.echo(json.dumps([t.to_dict() for t in found], indent=2))
        return

    if not found:
        click.secho("No leftover backups.", fg="green")
        return

    click.secho(f"📦 Backups ({len(found)}):", fg="cyan", bold=True)
    for info in found:
        age = f"{info.age_days:.1f}d old" if info.age_days is not None else "age unknown"
        click.echo(f"   {info.transaction_id}  ({len(info.files)} files, {age})")
        if ctx.obj.get("verbose"):
            for file in info.files:
                click.echo(f"     │ {file}")


@backups.command()
@click.argument("transaction_id")
@click.pass_context
def restore(ctx: click.Context, transaction_id: str) -> None:
    """Roll back an interrupted transaction by TRANSACTION_ID."""
    from modgraft.core.errors import TransactionError
    from modgraft.core.services.transaction import TransactionalFileStore

    paths = resolve_paths(ctx)
    try:
        restored = TransactionalFileStore(paths, transaction_id).rollback()
    except (TransactionError, OSError) as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    click.secho(f"♻️  Restored {len(restored)} file(s) from {transaction_id}", fg="green", bold=True)
    for file in restored:
        click.echo(f"   • {file}")


@backups.command()
@click.option(
    "--max-age-days", type=float, default=None,
    help="Remove backups older than this (default: backup_retention_days from config).",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def cleanup(ctx: click.Context, max_age_days: float | None, as_json: bool) -> None:
    """Delete stale backups left by crashed processes."""
    from modgraft.core.services.transaction import cleanup as cleanup_backups

    paths = resolve_paths(ctx)
    if max_age_days is None:
        max_age_days = paths.config.backup_retention_days
    removed = cleanup_backups(paths, max_age_days)

    if as_json:
        click.echo(json.dumps({"removed": removed}, indent=2))
        return

    if not removed:
        click.secho("Nothing to clean up.", fg="green")
        return
    click.secho(f"🧹 Removed {len(removed)} backup(s)", fg="green", bold=True)
    for tid in removed:
        click.echo(f"   • {tid}")
