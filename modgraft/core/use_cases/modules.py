"""
Module use cases — add, remove and list modules in a project.

Ties together manifest parsing, the installer, env blocks, lifecycle
scripts and the operation ledger. Functions never raise for expected
failures; they return a result object with ``error`` set.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from modgraft.core.errors import ModgraftError, ModuleNotInstalledError, ScriptError
from modgraft.core.models.project import ProjectPaths
from modgraft.core.models.registry import RegistryEntry
from modgraft.core.persistence.ledger import LedgerEntry, LedgerWriter
from modgraft.core.persistence.registry_store import RegistryStore
from modgraft.core.services.env_ops import inject_env_vars, remove_env_vars
from modgraft.core.services.manifest_parser import parse_manifest
from modgraft.core.services.module_installer import ModuleInstaller
from modgraft.core.services.script_runner import run_script

logger = logging.getLogger(__name__)


@dataclass
class ModuleOpResult:
    """Outcome of an add or remove."""

    operation: str
    module: str = ""
    version: str = ""
    files: list[str] = field(default_factory=list)
    env_added: list[str] = field(default_factory=list)
    env_removed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    transaction_id: str | None = None
    duration_ms: int = 0
    error: str | None = None
    error_type: str | None = None
    error_file: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def fail(self, exc: BaseException) -> ModuleOpResult:
        self.error = str(exc)
        self.error_type = type(exc).__name__
        self.error_file = getattr(exc, "file", None)
        return self

    def to_dict(self) -> dict:
        result: dict = {
            "ok": self.ok,
            "operation": self.operation,
            "module": self.module,
            "version": self.version,
            "files": self.files,
            "env_added": self.env_added,
            "env_removed": self.env_removed,
            "warnings": self.warnings,
            "transaction_id": self.transaction_id,
            "duration_ms": self.duration_ms,
        }
        if self.error:
            result["error"] = self.error
            result["error_type"] = self.error_type
            result["error_file"] = self.error_file
        return result


def _record(paths: ProjectPaths, result: ModuleOpResult) -> None:
    LedgerWriter(paths.ledger_file).write(LedgerEntry(
        operation_id=uuid.uuid4().hex[:12],
        operation=result.operation,
        module=result.module,
        version=result.version,
        status="ok" if result.ok else "failed",
        files=result.files,
        error=result.error,
        duration_ms=result.duration_ms,
    ))


def add_module(
    paths: ProjectPaths,
    manifest_path: Path | str,
    *,
    with_env: bool = False,
    run_scripts: bool = False,
) -> ModuleOpResult:
    """Install the module described by ``manifest_path``.

    A relative manifest path is resolved against the project root.
    """
    start = time.monotonic()
    result = ModuleOpResult(operation="add")

    manifest_path = Path(manifest_path)
    if not manifest_path.is_absolute():
        manifest_path = paths.root / manifest_path

    try:
        manifest = parse_manifest(manifest_path)
    except ModgraftError as e:
        return result.fail(e)

    result.module = manifest.name
    result.version = manifest.version

    installer = ModuleInstaller(paths)
    try:
        result.files = installer.install(manifest)
    except (ModgraftError, OSError) as e:
        result.fail(e)
    finally:
        result.transaction_id = installer.last_transaction_id

    if result.ok:
        if with_env:
            result.env_added = inject_env_vars(paths, manifest.name, manifest.env).added

        if run_scripts and manifest.scripts.post_install:
            try:
                run_script(paths, manifest.scripts.post_install, "postInstall")
            except ScriptError as e:
                logger.warning("%s", e)
                result.warnings.append(str(e))

    result.duration_ms = int((time.monotonic() - start) * 1000)
    _record(paths, result)
    return result


def remove_module(
    paths: ProjectPaths,
    name: str,
    *,
    run_scripts: bool = False,
) -> ModuleOpResult:
    """Uninstall ``name`` using the manifest cached at install time."""
    start = time.monotonic()
    result = ModuleOpResult(operation="remove", module=name)
    registry = RegistryStore(paths)

    try:
        entry = registry.get(name)
        if entry is None or not entry.installed:
            return result.fail(ModuleNotInstalledError(name))
        if not registry.has_manifest(name):
            return result.fail(ModgraftError(
                f"Cached manifest for {name} not found at {registry.manifest_path(name)}. "
                "Removal needs the original manifest."
            ))
        manifest = registry.load_manifest(name)
    except ModgraftError as e:
        return result.fail(e)

    result.version = manifest.version

    if run_scripts and manifest.scripts.pre_remove:
        try:
            run_script(paths, manifest.scripts.pre_remove, "preRemove")
        except ScriptError as e:
            result.fail(e)
            _record(paths, result)
            return result

    installer = ModuleInstaller(paths, registry)
    try:
        result.files = installer.uninstall(manifest)
        result.env_removed = remove_env_vars(paths, manifest.name)
    except (ModgraftError, OSError) as e:
        result.fail(e)
    finally:
        result.transaction_id = installer.last_transaction_id

    result.duration_ms = int((time.monotonic() - start) * 1000)
    _record(paths, result)
    return result


def list_modules(paths: ProjectPaths) -> list[RegistryEntry]:
    """Registry entries, installed or not. Raises RegistryError if unreadable."""
    return RegistryStore(paths).load().modules
