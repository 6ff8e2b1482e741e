"""
Marker model — sentinel pairs that delimit an injected block.

Markers are never persisted; they are recomputed from the module name
whenever a file needs to be scanned.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

MARKER_TAG = "MODGRAFT_MODULE"
DEFAULT_COMMENT = "//"


class ModuleMarker(BaseModel):
    """Begin/end sentinel lines for one module name."""

    model_config = ConfigDict(frozen=True)

    module_name: str
    begin: str
    end: str


class MarkerDetection(BaseModel):
    """Result of scanning a buffer for a module's marked block."""

    found: bool = False
    begin_line: int | None = None   # 0-based
    end_line: int | None = None     # 0-based
    inner_content: str | None = None


def create_marker(module_name: str, comment: str = DEFAULT_COMMENT) -> ModuleMarker:
    """Build the sentinel pair for ``module_name`` (pure, deterministic)."""
    prefix = f"{comment} " if comment else ""
    return ModuleMarker(
        module_name=module_name,
        begin=f"{prefix}[{MARKER_TAG}:{module_name} BEGIN]",
        end=f"{prefix}[{MARKER_TAG}:{module_name} END]",
    )
