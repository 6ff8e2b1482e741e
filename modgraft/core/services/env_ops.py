"""
Env block operations — module-owned variables in the project env file.

A module's variables are appended inside a ``#``-comment marker block so
they can be removed as cleanly as code injections::

    # [MODGRAFT_MODULE:payments BEGIN]
    STRIPE_KEY=sk_test_xxx
    # [MODGRAFT_MODULE:payments END]

Keys already defined anywhere in the file are never duplicated.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from modgraft.core.models.manifest import EnvVar
from modgraft.core.models.markers import create_marker
from modgraft.core.models.project import ProjectPaths
from modgraft.core.services import marker_ops

logger = logging.getLogger(__name__)

ENV_COMMENT = "#"
_ENV_LINE_RE = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=(.*)$")


@dataclass
class EnvInjectResult:
    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"added": self.added, "skipped": self.skipped}


def parse_env(content: str) -> dict[str, str]:
    """KEY=VALUE pairs of an env file. Comments and blank lines are ignored."""
    values: dict[str, str] = {}
    for line in content.splitlines():
        if line.lstrip().startswith("#"):
            continue
        match = _ENV_LINE_RE.match(line)
        if match:
            values[match.group(1)] = match.group(2).strip()
    return values


def read_env(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    return parse_env(path.read_text(encoding="utf-8"))


def build_env_block(module_name: str, values: list[tuple[str, str]]) -> str:
    marker = create_marker(module_name, ENV_COMMENT)
    lines = [marker.begin, *(f"{k}={v}" for k, v in values), marker.end]
    return "\n".join(lines)


def inject_env_vars(
    paths: ProjectPaths,
    module_name: str,
    env_vars: list[EnvVar] | tuple[EnvVar, ...],
) -> EnvInjectResult:
    """Append a marker block with the module's missing variables.

    Values come from each declaration's ``example`` (empty otherwise);
    secrets are filled in by hand afterwards.
    """
    result = EnvInjectResult()
    if not env_vars:
        return result

    env_path = paths.env_file
    content = env_path.read_text(encoding="utf-8") if env_path.is_file() else ""

    if marker_ops.has_module(content, module_name, comment=ENV_COMMENT):
        logger.debug("Env block for %s already present in %s", module_name, env_path)
        result.skipped = [v.key for v in env_vars]
        return result

    existing = parse_env(content)
    new_values: list[tuple[str, str]] = []
    for var in env_vars:
        if var.key in existing:
            result.skipped.append(var.key)
            continue
        new_values.append((var.key, var.example or ""))
        result.added.append(var.key)

    if not new_values:
        return result

    # the block owns the newline before it, so removal restores ``content`` exactly
    separator = "\n" if content else ""
    block = build_env_block(module_name, new_values)
    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.write_text(content + separator + block + "\n", encoding="utf-8")

    logger.info("Added %d env var(s) for %s to %s", len(new_values), module_name, env_path.name)
    return result


def remove_env_vars(paths: ProjectPaths, module_name: str) -> list[str]:
    """Remove the module's env block, if any.

    Returns:
        Keys that were removed (empty when there was no block).
    """
    env_path = paths.env_file
    if not env_path.is_file():
        return []

    content = env_path.read_text(encoding="utf-8")
    detection = marker_ops.detect_markers(content, module_name, comment=ENV_COMMENT)
    if not detection.found:
        return []

    removed = list(parse_env(detection.inner_content or ""))
    env_path.write_text(
        marker_ops.remove_module(content, module_name, comment=ENV_COMMENT),
        encoding="utf-8",
    )
    logger.info("Removed %d env var(s) for %s from %s", len(removed), module_name, env_path.name)
    return removed
