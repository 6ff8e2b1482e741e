"""
modgraft — CLI entrypoint.

Usage:
    python -m modgraft.main --help
    modgraft module add ./payments/module.json
    modgraft module doctor --json
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from modgraft import __version__
from modgraft.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="modgraft")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--project-root",
    "-C",
    "project_root",
    type=click.Path(file_okay=False),
    default=None,
    help="Project root (default: directory of modgraft.yml, or cwd).",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to modgraft.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    project_root: str | None,
    config_path: str | None,
) -> None:
    """modgraft — graft module code into your project, and take it out again."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["project_root"] = Path(project_root) if project_root else None
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("MODGRAFT_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("MODGRAFT_LOG_FILE"),
        log_file_level=os.environ.get("MODGRAFT_LOG_FILE_LEVEL"),
    )


# ── Register sub-command groups from modgraft/ui/cli/ ─────────────

from modgraft.ui.cli.backups import backups  # noqa: E402
from modgraft.ui.cli.module import module  # noqa: E402

cli.add_command(module)
cli.add_command(backups)


if __name__ == "__main__":
    cli()
