"""
Doctor use case — audit a project and optionally repair what is fixable.

Without ``fix`` this is the read-only ``ModuleDoctor`` run. With ``fix``:

    marker       missing blocks are re-injected (transactional repair)
    env          missing variables get a placeholder block in the env file
    transaction  backups past the retention window are cleaned up
    dependency   reported as a manual step (modgraft never runs npm)

The report returned after fixing reflects the project state *after*
the repairs.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from modgraft.core.errors import ModgraftError
from modgraft.core.models.project import ProjectPaths
from modgraft.core.persistence.ledger import LedgerEntry, LedgerWriter
from modgraft.core.persistence.registry_store import RegistryStore
from modgraft.core.services.env_ops import inject_env_vars
from modgraft.core.services.module_doctor import DoctorReport, ModuleDoctor
from modgraft.core.services.module_installer import ModuleInstaller
from modgraft.core.services.transaction import cleanup

logger = logging.getLogger(__name__)


@dataclass
class DoctorResult:
    report: DoctorReport = field(default_factory=DoctorReport)
    fixed: list[str] = field(default_factory=list)
    manual: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.error else self.report.exit_code

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error, "exit_code": self.exit_code}
        result = self.report.to_dict()
        result["fixed"] = self.fixed
        result["manual"] = self.manual
        return result


def run_doctor(paths: ProjectPaths, *, fix: bool = False) -> DoctorResult:
    """Audit ``paths`` and, when ``fix`` is set, repair fixable findings."""
    result = DoctorResult()
    doctor = ModuleDoctor(paths)

    try:
        result.report = doctor.run()
    except ModgraftError as e:
        result.error = str(e)
        return result

    if not fix or not result.report.fixable:
        return result

    _apply_fixes(paths, result)

    try:
        result.report = doctor.run()
    except ModgraftError as e:
        result.error = str(e)
    return result


def _apply_fixes(paths: ProjectPaths, result: DoctorResult) -> None:
    registry = RegistryStore(paths)
    installer = ModuleInstaller(paths, registry)
    ledger = LedgerWriter(paths.ledger_file)

    marker_modules: list[str] = []
    env_modules: list[str] = []
    stale_backups = False

    for finding in result.report.fixable:
        if finding.check == "marker" and finding.module and finding.module not in marker_modules:
            marker_modules.append(finding.module)
        elif finding.check == "env" and finding.module and finding.module not in env_modules:
            env_modules.append(finding.module)
        elif finding.check == "transaction":
            stale_backups = True
        elif finding.check == "dependency":
            result.manual.append(finding.message)

    for name in marker_modules:
        try:
            manifest = registry.load_manifest(name)
            files = installer.repair(manifest)
        except (ModgraftError, OSError) as e:
            logger.warning("Repair of %s failed: %s", name, e)
            result.manual.append(f"Repair of {name} failed: {e}")
            ledger.write(LedgerEntry(
                operation_id=uuid.uuid4().hex[:12],
                operation="repair",
                module=name,
                status="failed",
                error=str(e),
            ))
            continue
        if files:
            result.fixed.append(f"Re-injected {name} into {', '.join(files)}")
            ledger.write(LedgerEntry(
                operation_id=uuid.uuid4().hex[:12],
                operation="repair",
                module=name,
                version=manifest.version,
                status="ok",
                files=files,
            ))

    for name in env_modules:
        try:
            manifest = registry.load_manifest(name)
        except ModgraftError as e:
            result.manual.append(f"Env vars for {name}: {e}")
            continue
        added = inject_env_vars(paths, name, manifest.env).added
        if added:
            result.fixed.append(f"Added env placeholders for {name}: {', '.join(added)}")
        else:
            result.manual.append(f"Set the required env vars of {name} in {paths.config.env_file}")

    if stale_backups:
        removed = cleanup(paths, paths.config.backup_retention_days)
        if removed:
            result.fixed.append(f"Removed {len(removed)} stale backup(s)")
