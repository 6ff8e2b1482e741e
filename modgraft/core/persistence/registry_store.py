"""
Registry persistence — installed-module registry and manifest cache.

The registry lives in ``<state_dir>/registry.json``; each installed
module also keeps the exact manifest used at install time in
``<state_dir>/modules/<name>/module.json``. Uninstall and the doctor
both need that copy to reproduce the original moduleName/anchor pairs.

Writes are atomic (write to temp file, then rename) so a crash never
leaves a half-written registry behind.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from pathlib import Path

from pydantic import ValidationError

from modgraft.core.errors import RegistryError
from modgraft.core.models.manifest import Manifest
from modgraft.core.models.project import ProjectPaths
from modgraft.core.models.registry import Registry, RegistryEntry
from modgraft.core.services.manifest_parser import parse_manifest

logger = logging.getLogger(__name__)


def _atomic_write_json(path: Path, data: dict, prefix: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise


class RegistryStore:
    """Read/write access to one project's registry and manifest cache."""

    def __init__(self, paths: ProjectPaths):
        self._paths = paths

    @property
    def path(self) -> Path:
        return self._paths.registry_file

    # ── Registry ────────────────────────────────────────────────

    def load(self) -> Registry:
        """Load the registry.

        Returns:
            An empty Registry when the file does not exist yet.

        Raises:
            RegistryError: The file exists but cannot be read or parsed.
        """
        if not self.path.is_file():
            logger.debug("No registry at %s — starting empty", self.path)
            return Registry()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise RegistryError(f"Cannot read registry {self.path}: {e}") from e

        try:
            return Registry.model_validate(data)
        except ValidationError as e:
            raise RegistryError(f"Invalid registry {self.path}: {e}") from e

    def save(self, registry: Registry) -> None:
        registry.touch()
        try:
            _atomic_write_json(self.path, registry.model_dump(mode="json"), ".registry_")
        except OSError as e:
            logger.error("Failed to save registry to %s: %s", self.path, e)
            raise RegistryError(f"Cannot write registry {self.path}: {e}") from e
        logger.debug("Registry saved to %s", self.path)

    def installed(self) -> list[RegistryEntry]:
        return self.load().installed()

    def get(self, name: str) -> RegistryEntry | None:
        return self.load().get(name)

    # ── Manifest cache ──────────────────────────────────────────

    def manifest_path(self, name: str) -> Path:
        """Cache location for ``name``.

        Raises:
            RegistryError: ``name`` would resolve outside the modules directory.
        """
        path = self._paths.cached_manifest(name)
        modules_dir = self._paths.modules_dir.resolve()
        if path.parent.resolve().parent != modules_dir:
            raise RegistryError(f"Invalid module name: {name!r}")
        return path

    def has_manifest(self, name: str) -> bool:
        return self.manifest_path(name).is_file()

    def load_manifest(self, name: str) -> Manifest:
        """Parse the cached manifest; raises the usual ManifestError family."""
        return parse_manifest(self.manifest_path(name))

    # ── Combined register / unregister ──────────────────────────

    def register(self, manifest: Manifest) -> RegistryEntry:
        """Cache the manifest, then add the registry entry.

        The registry is read before anything is written, and a cache file
        created here is removed again if the registry cannot be saved.
        """
        cache = self.manifest_path(manifest.name)
        registry = self.load()
        existed = cache.is_file()

        _atomic_write_json(cache, manifest.to_json_dict(), ".module_")
        entry = registry.add(manifest.name, manifest.version)
        try:
            self.save(registry)
        except RegistryError:
            if not existed:
                shutil.rmtree(cache.parent, ignore_errors=True)
            raise
        logger.info("Registered %s@%s", manifest.name, manifest.version)
        return entry

    def unregister(self, name: str) -> bool:
        """Drop the registry entry and the cached manifest directory."""
        cache_dir = self.manifest_path(name).parent
        registry = self.load()
        removed = registry.remove(name)
        if removed:
            self.save(registry)

        if cache_dir.is_dir():
            shutil.rmtree(cache_dir)

        logger.info("Unregistered %s", name)
        return removed
