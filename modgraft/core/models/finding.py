"""
Doctor findings — one observation about project drift.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

Severity = Literal["error", "warning", "info"]
CheckType = Literal["anchor", "marker", "dependency", "env", "conflict", "transaction"]


class Finding(BaseModel):
    """A single doctor result.

    ``fixable`` means ``module doctor --fix`` (or a documented command)
    can repair it without manual editing.
    """

    check: CheckType
    severity: Severity
    message: str
    file: str | None = None
    module: str | None = None
    fixable: bool = False

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
