"""
Manifest model — the validated descriptor of one module.

A manifest is parsed once from untrusted JSON (see
``modgraft.core.services.manifest_parser``) and is immutable afterwards.
JSON keys are camelCase; Python attributes are snake_case. Dumping with
``by_alias=True`` reproduces a document that parses back to an equal
manifest, which is how the install-time copy is cached for uninstall
and audit.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SEMVER_PATTERN = r"^\d+\.\d+\.\d+$"
# Module names become directory names and marker text: one path segment, one line.
MODULE_NAME_PATTERN = r"^[A-Za-z0-9@][A-Za-z0-9._@-]*$"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Dependencies(_Frozen):
    """Packages and peer modules a module expects to find in the host."""

    npm: tuple[str, ...] = ()
    peer_modules: tuple[str, ...] = Field(default=(), alias="peerModules")
    host_version: str = Field(default=">=0.1.0", alias="hostVersion")


class FileSet(_Frozen):
    source: str
    dest: str


class Files(_Frozen):
    """Copy pairs grouped by area. Not consumed by the injection engine."""

    backend: tuple[FileSet, ...] = ()
    frontend: tuple[FileSet, ...] = ()
    database: tuple[FileSet, ...] = ()


class Injection(_Frozen):
    """One block of code to insert after ``anchor`` in ``file``."""

    file: str
    anchor: str = Field(min_length=1)
    code: str
    module_name: str | None = Field(default=None, alias="moduleName", pattern=MODULE_NAME_PATTERN)

    @field_validator("file")
    @classmethod
    def _relative_inside_project(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("file must not be empty")
        posix = PurePosixPath(value.replace("\\", "/"))
        if posix.is_absolute() or value[1:3] == ":\\" or value[1:3] == ":/":
            raise ValueError("file must be relative to the project root")
        if ".." in posix.parts:
            raise ValueError("file must not escape the project root")
        return value


class Scripts(_Frozen):
    post_install: str | None = Field(default=None, alias="postInstall")
    pre_remove: str | None = Field(default=None, alias="preRemove")


class EnvVar(_Frozen):
    key: str = Field(min_length=1)
    required: bool = False
    example: str | None = None
    description: str | None = None


class Manifest(_Frozen):
    """A module descriptor."""

    name: str = Field(pattern=MODULE_NAME_PATTERN)
    version: str = Field(pattern=SEMVER_PATTERN)
    description: str | None = None
    author: str = "unknown"
    license: str = "Proprietary"

    dependencies: Dependencies = Field(default_factory=Dependencies)
    files: Files = Field(default_factory=Files)
    injections: tuple[Injection, ...]
    scripts: Scripts = Field(default_factory=Scripts)
    env: tuple[EnvVar, ...] = ()

    @model_validator(mode="after")
    def _unique_targets(self) -> "Manifest":
        seen: set[tuple[str, str]] = set()
        dupes: list[str] = []
        for inj in self.injections:
            key = (inj.file, self.module_name_for(inj))
            if key in seen:
                dupes.append(f"{key[0]} ({key[1]})")
            seen.add(key)
        if dupes:
            raise ValueError(
                "duplicate injection targets (file, moduleName): " + ", ".join(dupes)
            )
        return self

    def module_name_for(self, injection: Injection) -> str:
        """Marker name used for an injection: its own moduleName or the manifest name."""
        return injection.module_name or self.name

    @property
    def target_files(self) -> list[str]:
        """Distinct injection target files, in first-seen order."""
        return list(dict.fromkeys(inj.file for inj in self.injections))

    def to_json_dict(self) -> dict:
        """JSON-ready dict using the manifest's own (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)
