"""
Module doctor — read-only consistency audit of a project.

Cross-checks three sources of truth and reports drift between them:

    registry.json            what the project claims is installed
    modules/<name>/*.json    the manifests used at install time
    live files               what is actually on disk

The doctor never mutates anything. Data-quality problems (a corrupt
cached manifest, a missing target file, ...) become findings; only a
registry that cannot be read at all raises.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field

from modgraft.core.errors import ManifestError
from modgraft.core.models.finding import Finding
from modgraft.core.models.manifest import Manifest
from modgraft.core.models.project import AnchorSpec, ProjectPaths
from modgraft.core.persistence.registry_store import RegistryStore
from modgraft.core.services import marker_ops
from modgraft.core.services.env_ops import read_env
from modgraft.core.services.transaction import list_transactions

logger = logging.getLogger(__name__)

_DEPENDENCY_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)


def package_name(spec: str) -> str:
    """``"stripe@^14.0.0"`` → ``"stripe"``; scoped names keep their leading ``@``."""
    if spec.startswith("@"):
        at = spec.find("@", 1)
        return spec if at == -1 else spec[:at]
    return spec.split("@", 1)[0]


@dataclass
class DoctorReport:
    """All findings of one doctor run."""

    findings: list[Finding] = field(default_factory=list)

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "error"]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity == "warning"]

    @property
    def fixable(self) -> list[Finding]:
        return [f for f in self.findings if f.fixable]

    @property
    def exit_code(self) -> int:
        """0 = clean, 1 = any error, 2 = warnings only."""
        if self.errors:
            return 1
        if self.warnings:
            return 2
        return 0

    def to_dict(self) -> dict:
        return {
            "ok": not self.errors,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "fixable": len(self.fixable),
            "exit_code": self.exit_code,
            "findings": [f.to_dict() for f in self.findings],
        }


class ModuleDoctor:
    """Audit one project root."""

    def __init__(
        self,
        paths: ProjectPaths,
        anchors: list[AnchorSpec] | None = None,
        registry: RegistryStore | None = None,
    ):
        self._paths = paths
        self._anchors = list(anchors) if anchors is not None else list(paths.config.anchors)
        self._registry = registry or RegistryStore(paths)

    def run(self) -> DoctorReport:
        return DoctorReport(findings=self.check_all())

    def check_all(self) -> list[Finding]:
        findings: list[Finding] = []
        findings.extend(self.check_anchors())
        findings.extend(self.check_markers())
        findings.extend(self.check_dependencies())
        findings.extend(self.check_env())
        findings.extend(self.check_conflicts())
        findings.extend(self.check_transactions())
        return findings

    # ── Helpers ─────────────────────────────────────────────────

    def _read(self, file: str) -> str | None:
        path = self._paths.resolve(file)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8", errors="replace")

    def _installed_manifests(self) -> list[Manifest]:
        """Parsable cached manifests of installed modules.

        Modules with a missing or broken cache are skipped here;
        ``check_markers`` is where those are reported.
        """
        manifests = []
        for entry in self._registry.installed():
            if not self._registry.has_manifest(entry.name):
                continue
            try:
                manifests.append(self._registry.load_manifest(entry.name))
            except ManifestError as e:
                logger.debug("Skipping %s: %s", entry.name, e)
        return manifests

    # ── Checks ──────────────────────────────────────────────────

    def check_anchors(self) -> list[Finding]:
        """Every template anchor must still exist; injections depend on them."""
        findings = []
        for spec in self._anchors:
            content = self._read(spec.file)
            if content is None:
                findings.append(Finding(
                    check="anchor",
                    severity="warning",
                    message=f"File not found: {spec.file}",
                    file=spec.file,
                ))
            elif spec.anchor not in content:
                findings.append(Finding(
                    check="anchor",
                    severity="error",
                    message=f"Missing anchor: {spec.anchor}",
                    file=spec.file,
                ))
        return findings

    def check_markers(self) -> list[Finding]:
        """Every installed module's blocks must be present in the live files."""
        findings = []
        for entry in self._registry.installed():
            if not self._registry.has_manifest(entry.name):
                findings.append(Finding(
                    check="marker",
                    severity="error",
                    message=f"Manifest not found for installed module: {entry.name}",
                    module=entry.name,
                ))
                continue

            try:
                manifest = self._registry.load_manifest(entry.name)
            except ManifestError as e:
                findings.append(Finding(
                    check="marker",
                    severity="error",
                    message=f"Invalid manifest for module {entry.name}: {e}",
                    module=entry.name,
                ))
                continue

            for injection in manifest.injections:
                content = self._read(injection.file)
                if content is None:
                    findings.append(Finding(
                        check="marker",
                        severity="error",
                        message=f"Injection target not found: {injection.file}",
                        file=injection.file,
                        module=entry.name,
                    ))
                    continue

                module_name = manifest.module_name_for(injection)
                if not marker_ops.detect_markers(content, module_name).found:
                    findings.append(Finding(
                        check="marker",
                        severity="error",
                        message=f"Module {module_name} not injected in {injection.file}",
                        file=injection.file,
                        module=entry.name,
                        fixable=True,
                    ))
        return findings

    def check_dependencies(self) -> list[Finding]:
        """Declared npm packages must appear in the project's dependency file.

        One finding per missing package, never aggregated.
        """
        required = [
            (manifest.name, dep)
            for manifest in self._installed_manifests()
            for dep in manifest.dependencies.npm
        ]
        if not required:
            return []

        dep_file = self._paths.config.dependency_file
        content = self._read(dep_file)
        if content is None:
            return [Finding(
                check="dependency",
                severity="error",
                message=f"{dep_file} not found",
                file=dep_file,
            )]

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            return [Finding(
                check="dependency",
                severity="error",
                message=f"{dep_file} is not valid JSON: {e.msg}",
                file=dep_file,
            )]

        declared: set[str] = set()
        if isinstance(data, dict):
            for section in _DEPENDENCY_SECTIONS:
                deps = data.get(section)
                if isinstance(deps, dict):
                    declared.update(deps)

        findings = []
        for module, dep in required:
            if package_name(dep) not in declared:
                findings.append(Finding(
                    check="dependency",
                    severity="warning",
                    message=f"Missing npm dependency: {dep} (required by {module})",
                    file=dep_file,
                    module=module,
                    fixable=True,
                ))
        return findings

    def check_env(self) -> list[Finding]:
        """Required env vars of installed modules must be set in the env file."""
        values = read_env(self._paths.env_file)
        env_file = self._paths.config.env_file

        findings = []
        for manifest in self._installed_manifests():
            for var in manifest.env:
                if var.required and var.key not in values:
                    findings.append(Finding(
                        check="env",
                        severity="warning",
                        message=f"Missing env var {var.key} in {env_file} (required by {manifest.name})",
                        file=env_file,
                        module=manifest.name,
                        fixable=True,
                    ))
        return findings

    def check_conflicts(self) -> list[Finding]:
        """Unresolved git merge conflicts inside injection targets."""
        findings = []
        seen: set[str] = set()
        for manifest in self._installed_manifests():
            for file in manifest.target_files:
                if file in seen:
                    continue
                seen.add(file)
                content = self._read(file)
                if content is None:
                    continue
                if any(line.startswith("<<<<<<<") for line in content.splitlines()):
                    findings.append(Finding(
                        check="conflict",
                        severity="error",
                        message=f"Merge conflict detected in {file}",
                        file=file,
                        module=manifest.name,
                    ))
        return findings

    def check_transactions(self) -> list[Finding]:
        """Backups left behind by interrupted installs.

        Only backups past the retention window are fixable (by cleanup);
        younger ones may still be needed for a manual restore.
        """
        retention = self._paths.config.backup_retention_days
        findings = []
        for info in list_transactions(self._paths):
            age = info.age_days
            findings.append(Finding(
                check="transaction",
                severity="warning",
                message=(
                    f"Interrupted transaction backup found: {info.transaction_id} "
                    f"({len(info.files)} file(s))"
                ),
                fixable=age is not None and age > retention,
            ))
        return findings
