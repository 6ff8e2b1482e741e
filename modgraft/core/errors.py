"""
Error taxonomy for the injection engine.

Three families matter to callers:

    - ManifestError     — the module descriptor is missing, unreadable, or invalid.
    - InjectionError    — marker/anchor logic refused an edit (expected, recoverable).
    - TransactionError  — the backup/rollback layer could not do its job.

The installer never swallows any of these: it rolls back and re-raises
the original exception so the CLI can classify it.
"""

from __future__ import annotations

from pathlib import Path


class ModgraftError(Exception):
    """Base class for every error raised by modgraft."""


# ── Manifest ────────────────────────────────────────────────────


class ManifestError(ModgraftError):
    """Base class for manifest loading failures."""

    def __init__(self, message: str, path: Path | str | None = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class ManifestNotFoundError(ManifestError):
    def __init__(self, path: Path | str):
        super().__init__(f"Manifest not found: {path}", path)


class MalformedJSONError(ManifestError):
    def __init__(self, path: Path | str, detail: str = ""):
        message = f"Failed to parse manifest JSON: {path}"
        if detail:
            message += f" ({detail})"
        super().__init__(message, path)


class InvalidManifestError(ManifestError):
    """Manifest is valid JSON but violates the schema.

    ``errors`` lists every violation as ``"<field.path>: <message>"``.
    """

    def __init__(self, errors: list[str], path: Path | str | None = None):
        self.errors = list(errors)
        where = f" {path}" if path is not None else ""
        lines = "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(f"Invalid manifest{where}:\n{lines}", path)


# ── Injection ───────────────────────────────────────────────────


class InjectionError(ModgraftError):
    """Base class for marker/anchor refusals.

    ``file`` is set by the installer when the refusal concerns a file on
    disk; the message stays the one the marker service produced.
    """

    file: str | None = None


class AnchorNotFoundError(InjectionError):
    def __init__(self, anchor: str, file: str | None = None):
        self.anchor = anchor
        self.file = file
        where = f" in {file}" if file else ""
        super().__init__(f"Anchor not found{where}: {anchor}")


class AlreadyInjectedError(InjectionError):
    def __init__(self, module_name: str, file: str | None = None):
        self.module_name = module_name
        self.file = file
        where = f" in {file}" if file else ""
        super().__init__(f"Module {module_name} already injected{where}")


class InjectedModuleNotFoundError(InjectionError):
    """No marked block for the module exists in the buffer."""

    def __init__(self, module_name: str, file: str | None = None):
        self.module_name = module_name
        self.file = file
        where = file or "file"
        super().__init__(f"Module {module_name} not found in {where}")


class FileEncodingError(InjectionError):
    """A target file is not valid UTF-8 and cannot be edited as text."""

    def __init__(self, file: str, detail: str = ""):
        self.file = file
        message = f"Cannot edit {file}: not valid UTF-8 text"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


# ── Transactions ────────────────────────────────────────────────


class TransactionError(ModgraftError):
    """Base class for backup/rollback failures."""


class BackupSourceMissingError(TransactionError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found for backup: {path}")


class BackupNotFoundError(TransactionError):
    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Backup not found: {transaction_id}")


# ── Registry / scripts ──────────────────────────────────────────


class RegistryError(ModgraftError):
    """The project registry cannot be read or written."""


class ModuleNotInstalledError(RegistryError):
    def __init__(self, module_name: str):
        self.module_name = module_name
        super().__init__(f"Module {module_name} is not installed")


class ScriptError(ModgraftError):
    """A module lifecycle script failed."""
