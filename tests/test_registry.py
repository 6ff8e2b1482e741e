"""
Tests for registry persistence and the manifest cache.
"""

import json
from pathlib import Path

import pytest

from conftest import make_manifest
from modgraft.core.errors import RegistryError
from modgraft.core.models.project import ProjectPaths
from modgraft.core.models.registry import Registry
from modgraft.core.persistence.registry_store import RegistryStore
from modgraft.core.services.manifest_parser import load_manifest_data


class TestRegistryModel:
    def test_add_replaces(self):
        registry = Registry()
        registry.add("a", "1.0.0")
        registry.add("a", "2.0.0")
        assert [(m.name, m.version) for m in registry.modules] == [("a", "2.0.0")]

    def test_remove(self):
        registry = Registry()
        registry.add("a", "1.0.0")
        assert registry.remove("a") is True
        assert registry.remove("a") is False

    def test_installed_filters(self):
        registry = Registry()
        registry.add("a", "1.0.0")
        registry.add("b", "1.0.0").installed = False
        assert [m.name for m in registry.installed()] == ["a"]


class TestRegistryStore:
    def test_missing_file_is_empty(self, tmp_path: Path):
        store = RegistryStore(ProjectPaths.for_root(tmp_path))
        assert store.load().modules == []
        assert store.get("x") is None

    def test_register_writes_both(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path)
        store = RegistryStore(paths)
        manifest = load_manifest_data(make_manifest())

        store.register(manifest)

        data = json.loads(paths.registry_file.read_text())
        assert data["schema_version"] == 1
        assert data["modules"][0]["name"] == "payments"
        assert store.load_manifest("payments") == manifest

    def test_cached_manifest_is_camel_case(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path)
        data = make_manifest()
        data["injections"][0]["moduleName"] = "pay-routes"
        RegistryStore(paths).register(load_manifest_data(data))

        cached = json.loads(paths.cached_manifest("payments").read_text())
        assert cached["injections"][0]["moduleName"] == "pay-routes"

    def test_unregister(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path)
        store = RegistryStore(paths)
        store.register(load_manifest_data(make_manifest()))

        assert store.unregister("payments") is True
        assert store.get("payments") is None
        assert not paths.cached_manifest("payments").parent.exists()

    def test_unregister_unknown(self, tmp_path: Path):
        assert RegistryStore(ProjectPaths.for_root(tmp_path)).unregister("nope") is False

    def test_corrupt_registry_raises(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path)
        paths.registry_file.parent.mkdir(parents=True)
        paths.registry_file.write_text("{{{")
        with pytest.raises(RegistryError):
            RegistryStore(paths).load()

    def test_non_utf8_registry_raises(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path)
        paths.registry_file.parent.mkdir(parents=True)
        paths.registry_file.write_bytes(b"\xff\xfe")
        with pytest.raises(RegistryError):
            RegistryStore(paths).load()

    def test_invalid_schema_raises(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path)
        paths.registry_file.parent.mkdir(parents=True)
        paths.registry_file.write_text(json.dumps({"modules": [{"version": "1.0.0"}]}))
        with pytest.raises(RegistryError):
            RegistryStore(paths).load()

    def test_no_temp_files_left(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path)
        RegistryStore(paths).register(load_manifest_data(make_manifest()))
        assert list(paths.state_dir.rglob("*.tmp")) == []

    def test_projects_are_isolated(self, tmp_path: Path):
        one = RegistryStore(ProjectPaths.for_root(tmp_path / "one"))
        two = RegistryStore(ProjectPaths.for_root(tmp_path / "two"))
        one.register(load_manifest_data(make_manifest()))
        assert two.get("payments") is None


class TestCachePathContainment:
    @pytest.mark.parametrize("name", ["../..", "..", "a/../../b"])
    def test_manifest_path_rejects_escaping_names(self, tmp_path: Path, name: str):
        with pytest.raises(RegistryError, match="Invalid module name"):
            RegistryStore(ProjectPaths.for_root(tmp_path)).manifest_path(name)

    def test_unregister_never_deletes_outside_cache(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path)
        keep = tmp_path / "keep.txt"
        keep.write_text("precious")

        with pytest.raises(RegistryError):
            RegistryStore(paths).unregister("../..")

        assert keep.read_text() == "precious"

    def test_corrupt_registry_leaves_no_cache(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path)
        paths.registry_file.parent.mkdir(parents=True)
        paths.registry_file.write_text("{not json")

        with pytest.raises(RegistryError):
            RegistryStore(paths).register(load_manifest_data(make_manifest()))

        assert not paths.cached_manifest("payments").exists()
