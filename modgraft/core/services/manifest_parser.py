"""
Manifest parser — module.json into a validated ``Manifest``.

Three failure modes, each with its own exception:

    ManifestNotFoundError   the path does not exist
    MalformedJSONError      the file is not JSON
    InvalidManifestError    JSON, but the schema is violated (all violations listed)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from modgraft.core.errors import (
    InvalidManifestError,
    MalformedJSONError,
    ManifestError,
    ManifestNotFoundError,
)
from modgraft.core.models.manifest import Manifest

logger = logging.getLogger(__name__)


@dataclass
class ManifestValidation:
    """Non-throwing validation outcome."""

    valid: bool = False
    errors: list[str] = field(default_factory=list)
    manifest: Manifest | None = None

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": self.errors,
            "name": self.manifest.name if self.manifest else None,
            "version": self.manifest.version if self.manifest else None,
        }


def format_validation_errors(error: ValidationError) -> list[str]:
    """Flatten a pydantic error into ``"<field.path>: <message>"`` lines."""
    lines = []
    for issue in error.errors():
        loc = ".".join(str(p) for p in issue.get("loc", ()))
        lines.append(f"{loc or '(manifest)'}: {issue.get('msg', 'invalid')}")
    return lines


def load_manifest_data(data: Any, source: Path | str | None = None) -> Manifest:
    """Validate an already-decoded JSON value.

    Raises:
        InvalidManifestError: With one line per violated field.
    """
    if not isinstance(data, dict):
        raise InvalidManifestError(
            [f"(manifest): expected a JSON object, got {type(data).__name__}"],
            source,
        )
    try:
        return Manifest.model_validate(data)
    except ValidationError as e:
        raise InvalidManifestError(format_validation_errors(e), source) from e


def parse_manifest(path: Path | str) -> Manifest:
    """Read and validate a manifest file."""
    path = Path(path)
    if not path.is_file():
        raise ManifestNotFoundError(path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestNotFoundError(path) from e
    except UnicodeDecodeError as e:
        raise MalformedJSONError(path, f"not valid UTF-8 ({e.reason})") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedJSONError(path, f"line {e.lineno}: {e.msg}") from e

    manifest = load_manifest_data(data, path)
    logger.debug(
        "Parsed manifest %s@%s (%d injections) from %s",
        manifest.name, manifest.version, len(manifest.injections), path,
    )
    return manifest


def validate_manifest(path: Path | str) -> ManifestValidation:
    """Like ``parse_manifest`` but reports problems instead of raising."""
    try:
        manifest = parse_manifest(path)
    except InvalidManifestError as e:
        return ManifestValidation(valid=False, errors=e.errors)
    except ManifestError as e:
        return ManifestValidation(valid=False, errors=[str(e)])
    return ManifestValidation(valid=True, manifest=manifest)
