"""
Module installer — apply or remove a manifest's injections atomically.

Lifecycle of one call::

    Pending → Backed-up → Injecting → Committed
                                    ↘ RolledBack (original error re-raised)

Every file named by the manifest's injections is backed up before the
first write. Each injection is written to disk as soon as it is applied;
if any later step fails, the backup restores all touched files to their
exact pre-operation bytes. Registry changes happen inside the same
transaction, after the last file edit, and are never left half-done.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from modgraft.core.errors import (
    AlreadyInjectedError,
    AnchorNotFoundError,
    FileEncodingError,
    InjectedModuleNotFoundError,
)
from modgraft.core.models.manifest import Injection, Manifest
from modgraft.core.models.project import ProjectPaths
from modgraft.core.persistence.registry_store import RegistryStore
from modgraft.core.services import marker_ops
from modgraft.core.services.transaction import TransactionalFileStore

logger = logging.getLogger(__name__)


class InstallState(str, Enum):
    PENDING = "pending"
    BACKED_UP = "backed_up"
    INJECTING = "injecting"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class ModuleInstaller:
    """Install, uninstall and repair modules in one project."""

    def __init__(self, paths: ProjectPaths, registry: RegistryStore | None = None):
        self._paths = paths
        self._registry = registry or RegistryStore(paths)
        self.state = InstallState.PENDING
        self.last_transaction_id: str | None = None

    @property
    def registry(self) -> RegistryStore:
        return self._registry

    # ── Public operations ───────────────────────────────────────

    def install(self, manifest: Manifest) -> list[str]:
        """Inject every block of ``manifest`` and register the module.

        Registration is the last step inside the transaction, so a
        registry that cannot be read or written rolls the files back too.

        Returns:
            Project-relative files that were modified.
        """
        logger.info("Installing %s@%s", manifest.name, manifest.version)
        files = manifest.target_files
        self._registry.load()

        def apply() -> None:
            for injection in manifest.injections:
                self._inject(injection, manifest.module_name_for(injection))
            self._registry.register(manifest)

        self._transact(files, apply)
        return files

    def uninstall(self, manifest: Manifest) -> list[str]:
        """Remove every block of ``manifest`` and unregister the module."""
        logger.info("Uninstalling %s@%s", manifest.name, manifest.version)
        files = manifest.target_files
        targets = list(
            dict.fromkeys((inj.file, manifest.module_name_for(inj)) for inj in manifest.injections)
        )
        self._registry.load()

        def apply() -> None:
            for file, module_name in targets:
                self._remove(file, module_name)
            self._registry.unregister(manifest.name)

        self._transact(files, apply)
        return files

    def repair(self, manifest: Manifest) -> list[str]:
        """Re-inject only the blocks whose markers are missing.

        The registry is not changed. Returns the files that were modified
        (empty when nothing was missing).
        """
        missing = [
            inj for inj in manifest.injections
            if not self._is_injected(inj.file, manifest.module_name_for(inj))
        ]
        if not missing:
            logger.info("Nothing to repair for %s", manifest.name)
            return []

        files = list(dict.fromkeys(inj.file for inj in missing))
        logger.info("Repairing %s: %d block(s) in %s", manifest.name, len(missing), ", ".join(files))

        def apply() -> None:
            for injection in missing:
                self._inject(injection, manifest.module_name_for(injection))

        self._transact(files, apply)
        return files

    # ── Transaction wrapper ─────────────────────────────────────

    def _transact(self, files: list[str], apply: Callable[[], None]) -> None:
        tx = TransactionalFileStore(self._paths)
        self.last_transaction_id = tx.transaction_id
        self.state = InstallState.PENDING

        try:
            tx.backup(files)
            self.state = InstallState.BACKED_UP
            self.state = InstallState.INJECTING
            apply()
        except Exception as e:
            logger.error("Operation failed: %s", e)
            logger.info("Rolling back %s...", tx.transaction_id)
            tx.rollback()
            self.state = InstallState.ROLLED_BACK
            raise

        tx.commit()
        self.state = InstallState.COMMITTED

    # ── File-level steps ────────────────────────────────────────

    # newline="" on both sides keeps the file's own line endings untouched

    def _read(self, file: str) -> str:
        try:
            with self._paths.resolve(file).open("r", encoding="utf-8", newline="") as f:
                return f.read()
        except UnicodeDecodeError as e:
            raise FileEncodingError(file, e.reason) from e

    def _write(self, file: str, content: str) -> None:
        with self._paths.resolve(file).open("w", encoding="utf-8", newline="") as f:
            f.write(content)

    def _is_injected(self, file: str, module_name: str) -> bool:
        path = self._paths.resolve(file)
        if not path.is_file():
            return False
        return marker_ops.detect_markers(self._read(file), module_name).found

    def _inject(self, injection: Injection, module_name: str) -> None:
        content = self._read(injection.file)
        try:
            updated = marker_ops.inject_module(content, injection.anchor, module_name, injection.code)
        except (AnchorNotFoundError, AlreadyInjectedError) as e:
            e.file = injection.file
            raise
        self._write(injection.file, updated)
        logger.debug("Injected %s into %s", module_name, injection.file)

    def _remove(self, file: str, module_name: str) -> None:
        content = self._read(file)
        try:
            updated = marker_ops.remove_module(content, module_name)
        except InjectedModuleNotFoundError as e:
            e.file = file
            raise
        self._write(file, updated)
        logger.debug("Removed %s from %s", module_name, file)
