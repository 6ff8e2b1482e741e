"""
Configuration loader — reads modgraft.yml into a ProjectConfig.

The file is optional: a project without one gets the defaults and its
root is the current working directory. When present, its directory is
the project root.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from modgraft.core.errors import ModgraftError
from modgraft.core.models.project import ProjectConfig, ProjectPaths

logger = logging.getLogger(__name__)

# Default config filename
PROJECT_CONFIG_FILE = "modgraft.yml"


class ConfigError(ModgraftError):
    """Raised when project configuration is invalid or unreadable."""


def find_project_file(start_dir: Path | None = None) -> Path | None:
    """Search for modgraft.yml starting from the given directory, walking up.

    Returns:
        Path to modgraft.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / PROJECT_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path) -> ProjectConfig:
    """Load and validate modgraft.yml.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading project config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid project configuration in {path}: {e}") from e


def resolve_project(
    project_root: Path | None = None,
    config_path: Path | None = None,
) -> ProjectPaths:
    """Work out the project root and its configuration.

    Precedence: explicit ``config_path`` > modgraft.yml in/above
    ``project_root`` (or cwd). Without any config file, the root is
    ``project_root`` or cwd and defaults apply.
    """
    if config_path is None:
        config_path = find_project_file(project_root)

    if config_path is not None:
        config = load_config(config_path)
        root = project_root or config_path.parent
        logger.info("Project root %s (config %s)", root, config_path)
        return ProjectPaths.for_root(root, config)

    root = project_root or Path.cwd()
    logger.debug("No %s found — using defaults for %s", PROJECT_CONFIG_FILE, root)
    return ProjectPaths.for_root(root)
