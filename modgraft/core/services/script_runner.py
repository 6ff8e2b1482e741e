"""
Module lifecycle scripts.
"""

from __future__ import annotations

import logging

from modgraft.adapters.shell.command import CommandResult, run_command
from modgraft.core.errors import ScriptError
from modgraft.core.models.project import ProjectPaths

logger = logging.getLogger(__name__)


def run_script(paths: ProjectPaths, command: str, label: str) -> CommandResult:
    """Run a manifest script from the project root.

    Raises:
        ScriptError: Non-zero exit, timeout, or the shell could not start.
    """
    logger.info("Running %s script: %s", label, command)
    result = run_command(command, cwd=paths.root, timeout=paths.config.script_timeout)
    if not result.ok:
        raise ScriptError(f"{label} script failed: {result.error}")
    return result
