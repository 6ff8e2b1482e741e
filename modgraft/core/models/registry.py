"""
Registry model — which modules are installed in a project.

Serialized to ``<state_dir>/registry.json``. Each entry is paired with a
cached copy of the manifest used at install time; an entry without its
cached manifest is reported by the doctor as an unfixable error.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class RegistryEntry(BaseModel):
    name: str
    version: str
    installed: bool = True
    installed_at: str = Field(default_factory=_now_iso)


class Registry(BaseModel):
    """All module entries of one project."""

    schema_version: int = 1
    updated_at: str = Field(default_factory=_now_iso)
    modules: list[RegistryEntry] = Field(default_factory=list)

    def touch(self) -> None:
        self.updated_at = _now_iso()

    def get(self, name: str) -> RegistryEntry | None:
        for entry in self.modules:
            if entry.name == name:
                return entry
        return None

    def installed(self) -> list[RegistryEntry]:
        return [m for m in self.modules if m.installed]

    def add(self, name: str, version: str) -> RegistryEntry:
        """Insert or replace the entry for ``name``."""
        self.remove(name)
        entry = RegistryEntry(name=name, version=version)
        self.modules.append(entry)
        return entry

    def remove(self, name: str) -> bool:
        before = len(self.modules)
        self.modules = [m for m in self.modules if m.name != name]
        return len(self.modules) != before
