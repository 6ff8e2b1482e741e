"""
Domain models — Pydantic types for modgraft.

All models are re-exported here for convenient access:

    from modgraft.core.models import Manifest, Injection, Registry, Finding
"""

from modgraft.core.models.finding import Finding
from modgraft.core.models.manifest import (
    Dependencies,
    EnvVar,
    Files,
    FileSet,
    Injection,
    Manifest,
    Scripts,
)
from modgraft.core.models.markers import MarkerDetection, ModuleMarker, create_marker
from modgraft.core.models.project import AnchorSpec, ProjectConfig, ProjectPaths
from modgraft.core.models.registry import Registry, RegistryEntry

__all__ = [
    # project.py
    "AnchorSpec",
    # manifest.py
    "Dependencies",
    "EnvVar",
    "FileSet",
    "Files",
    # finding.py
    "Finding",
    "Injection",
    "Manifest",
    # markers.py
    "MarkerDetection",
    "ModuleMarker",
    "ProjectConfig",
    "ProjectPaths",
    # registry.py
    "Registry",
    "RegistryEntry",
    "Scripts",
    "create_marker",
]
