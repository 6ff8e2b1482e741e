"""
Project model — configuration and on-disk layout of a host project.

``ProjectConfig`` is loaded from the optional ``modgraft.yml``.
``ProjectPaths`` is the handle every service receives instead of reading
process-wide state, so several project roots can be driven from one
process (tests do this constantly).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field


class AnchorSpec(BaseModel):
    """An anchor the host template is expected to provide."""

    file: str
    anchor: str


# Anchors shipped by the host project template.
DEFAULT_ANCHORS: list[AnchorSpec] = [
    AnchorSpec(file="apps/api/src/index.ts", anchor="// [ANCHOR:ROUTES]"),
    AnchorSpec(file="apps/api/src/index.ts", anchor="// [ANCHOR:MIDDLEWARE]"),
    AnchorSpec(file="apps/admin/app/layout.tsx", anchor="// [ANCHOR:NAV_ITEMS]"),
]


class ProjectConfig(BaseModel):
    """Contents of modgraft.yml. Every key is optional."""

    anchors: list[AnchorSpec] = Field(default_factory=lambda: list(DEFAULT_ANCHORS))
    dependency_file: str = "package.json"
    env_file: str = ".env"
    state_dir: str = ".modgraft"
    backup_retention_days: int = Field(default=7, ge=0)
    script_timeout: int = Field(default=60, gt=0)


@dataclass(frozen=True)
class ProjectPaths:
    """Resolved locations for one project root."""

    root: Path
    config: ProjectConfig

    @classmethod
    def for_root(cls, root: Path, config: ProjectConfig | None = None) -> ProjectPaths:
        return cls(root=Path(root).resolve(), config=config or ProjectConfig())

    @property
    def state_dir(self) -> Path:
        return self.root / self.config.state_dir

    @property
    def registry_file(self) -> Path:
        return self.state_dir / "registry.json"

    @property
    def modules_dir(self) -> Path:
        return self.state_dir / "modules"

    @property
    def backups_dir(self) -> Path:
        return self.state_dir / "backups"

    @property
    def ledger_file(self) -> Path:
        return self.state_dir / "ledger.ndjson"

    @property
    def dependency_file(self) -> Path:
        return self.root / self.config.dependency_file

    @property
    def env_file(self) -> Path:
        return self.root / self.config.env_file

    def cached_manifest(self, module_name: str) -> Path:
        return self.modules_dir / module_name / "module.json"

    def resolve(self, relative: str) -> Path:
        """Absolute path for a project-relative file."""
        return self.root / relative
