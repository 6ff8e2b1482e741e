"""
Shared helpers for CLI command groups.
"""

from __future__ import annotations

import sys

import click

from modgraft.core.config.loader import ConfigError, resolve_project
from modgraft.core.models.project import ProjectPaths


def resolve_paths(ctx: click.Context) -> ProjectPaths:
    """Project handle from global options; exits 1 on a bad config file."""
    obj = ctx.obj or {}
    try:
        return resolve_project(obj.get("project_root"), obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)
