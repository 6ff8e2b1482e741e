"""
Tests for the add/remove/list and doctor use cases.
"""

import json
import sys
from pathlib import Path

from conftest import make_manifest, write_manifest
from modgraft.core.models.project import ProjectPaths
from modgraft.core.persistence.ledger import LedgerWriter
from modgraft.core.persistence.registry_store import RegistryStore
from modgraft.core.services.marker_ops import remove_module as strip_block
from modgraft.core.use_cases.doctor import run_doctor
from modgraft.core.use_cases.modules import add_module, list_modules, remove_module

ADMIN = "apps/admin/app/layout.tsx"


class TestAddModule:
    def test_success(self, project: ProjectPaths, manifest_file: Path):
        result = add_module(project, manifest_file)

        assert result.ok
        assert result.module == "payments"
        assert result.version == "1.0.0"
        assert result.files == ["apps/api/src/index.ts", ADMIN]
        assert result.transaction_id.startswith("backup_")
        assert [e.name for e in list_modules(project)] == ["payments"]

    def test_relative_manifest_path(self, project: ProjectPaths, manifest_file: Path):
        result = add_module(project, "modules/payments/module.json")
        assert result.ok

    def test_invalid_manifest(self, project: ProjectPaths):
        path = write_manifest(project.root / "bad.json", make_manifest(version="nope"))
        result = add_module(project, path)

        assert not result.ok
        assert result.error_type == "InvalidManifestError"
        assert "version" in result.error

    def test_failure_is_recorded(self, project: ProjectPaths):
        data = make_manifest()
        data["injections"][1]["anchor"] = "// [ANCHOR:GONE]"
        path = write_manifest(project.root / "m.json", data)

        result = add_module(project, path)

        assert not result.ok
        assert result.error_type == "AnchorNotFoundError"
        [entry] = LedgerWriter(project.ledger_file).read_all()
        assert entry.status == "failed"
        assert entry.module == "payments"

    def test_with_env(self, project: ProjectPaths, manifest_file: Path):
        result = add_module(project, manifest_file, with_env=True)
        assert result.env_added == ["STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET"]
        assert "STRIPE_SECRET_KEY=sk_test_xxx" in project.env_file.read_text()

    def test_post_install_script(self, project: ProjectPaths):
        cmd = f'"{sys.executable}" -c "open(\'installed.txt\', \'w\').write(\'ok\')"'
        path = write_manifest(project.root / "m.json", make_manifest(scripts={"postInstall": cmd}))

        result = add_module(project, path, run_scripts=True)

        assert result.ok
        assert (project.root / "installed.txt").read_text() == "ok"

    def test_failing_post_install_is_a_warning(self, project: ProjectPaths):
        cmd = f'"{sys.executable}" -c "raise SystemExit(3)"'
        path = write_manifest(project.root / "m.json", make_manifest(scripts={"postInstall": cmd}))

        result = add_module(project, path, run_scripts=True)

        assert result.ok
        assert len(result.warnings) == 1
        assert "postInstall" in result.warnings[0]

    def test_scripts_not_run_by_default(self, project: ProjectPaths):
        cmd = f'"{sys.executable}" -c "open(\'installed.txt\', \'w\')"'
        path = write_manifest(project.root / "m.json", make_manifest(scripts={"postInstall": cmd}))
        add_module(project, path)
        assert not (project.root / "installed.txt").exists()

    def test_unsafe_name_touches_nothing(self, project: ProjectPaths):
        keep = project.root / "keep.txt"
        keep.write_text("precious")
        path = write_manifest(project.root / "m.json", make_manifest(name="../.."))

        result = add_module(project, path)

        assert not result.ok
        assert result.error_type == "InvalidManifestError"
        assert keep.read_text() == "precious"
        assert not project.registry_file.exists()

    def test_non_utf8_target_is_reported(self, project: ProjectPaths):
        target = project.resolve("bin.txt")
        target.write_bytes(b"// A\n\xff\xfe\n")
        path = write_manifest(project.root / "m.json", {
            "name": "bin",
            "version": "1.0.0",
            "injections": [{"file": "bin.txt", "anchor": "// A", "code": "x();"}],
        })

        result = add_module(project, path)

        assert not result.ok
        assert result.error_type == "FileEncodingError"
        assert result.error_file == "bin.txt"
        assert result.to_dict()["error_file"] == "bin.txt"
        assert target.read_bytes() == b"// A\n\xff\xfe\n"

    def test_error_file_reported(self, project: ProjectPaths):
        data = make_manifest()
        data["injections"][1]["anchor"] = "// [ANCHOR:GONE]"
        path = write_manifest(project.root / "m.json", data)

        result = add_module(project, path)

        assert result.error == "Anchor not found: // [ANCHOR:GONE]"
        assert result.to_dict()["error_file"] == ADMIN


class TestRemoveModule:
    def test_round_trip(self, project: ProjectPaths, manifest_file: Path):
        before = {p: p.read_bytes() for p in project.root.rglob("*.ts*")}
        add_module(project, manifest_file, with_env=True)

        result = remove_module(project, "payments")

        assert result.ok
        assert result.env_removed == ["STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET"]
        assert {p: p.read_bytes() for p in project.root.rglob("*.ts*")} == before
        assert list_modules(project) == []
        ops = [e.operation for e in LedgerWriter(project.ledger_file).read_all()]
        assert ops == ["add", "remove"]

    def test_not_installed(self, project: ProjectPaths):
        result = remove_module(project, "payments")
        assert not result.ok
        assert result.error_type == "ModuleNotInstalledError"

    def test_missing_cache(self, project: ProjectPaths, manifest_file: Path):
        add_module(project, manifest_file)
        RegistryStore(project).manifest_path("payments").unlink()

        result = remove_module(project, "payments")

        assert not result.ok
        assert "Cached manifest" in result.error

    def test_failing_pre_remove_aborts(self, project: ProjectPaths):
        cmd = f'"{sys.executable}" -c "raise SystemExit(1)"'
        path = write_manifest(project.root / "m.json", make_manifest(scripts={"preRemove": cmd}))
        add_module(project, path)

        result = remove_module(project, "payments", run_scripts=True)

        assert not result.ok
        assert result.error_type == "ScriptError"
        assert RegistryStore(project).get("payments") is not None


class TestRunDoctor:
    def test_healthy(self, project: ProjectPaths, manifest_file: Path):
        project.dependency_file.write_text(json.dumps({"dependencies": {"stripe": "^14"}}))
        add_module(project, manifest_file, with_env=True)
        result = run_doctor(project)
        assert result.exit_code == 0

    def test_fix_reinjects_and_adds_env(self, project: ProjectPaths, manifest_file: Path):
        add_module(project, manifest_file)
        admin = project.resolve(ADMIN)
        admin.write_text(strip_block(admin.read_text(), "payments"))

        before = run_doctor(project)
        assert before.exit_code == 1

        result = run_doctor(project, fix=True)

        assert any("Re-injected payments" in line for line in result.fixed)
        assert any("STRIPE_SECRET_KEY" in line for line in result.fixed)
        assert any("stripe" in line for line in result.manual)
        # only the npm warning remains
        assert result.report.errors == []
        assert [f.check for f in result.report.findings] == ["dependency"]
        assert result.exit_code == 2
        assert LedgerWriter(project.ledger_file).read_all()[-1].operation == "repair"

    def test_corrupt_registry(self, project: ProjectPaths):
        project.registry_file.parent.mkdir(parents=True)
        project.registry_file.write_text("not json")

        result = run_doctor(project)

        assert result.exit_code == 1
        assert "registry" in result.error
        assert result.to_dict()["exit_code"] == 1
