"""
Operation ledger — append-only history of module operations.

Every add/remove/repair writes one NDJSON line to
``<state_dir>/ledger.ndjson``. Entries are never modified or deleted;
the ledger answers "what touched this project, and when".
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class LedgerEntry(BaseModel):
    """A single ledger line."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    operation: str = ""            # add, remove, repair
    module: str = ""
    version: str = ""
    status: str = ""               # ok, failed
    files: list[str] = Field(default_factory=list)
    error: str | None = None
    duration_ms: int = 0


class LedgerWriter:
    """Append-only ledger writer.

    A write failure is logged, never raised: the ledger is history, and
    losing a line must not fail an install that already committed.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: LedgerEntry) -> None:
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("Ledger entry written: %s/%s", entry.operation, entry.module)
        except OSError as e:
            logger.error("Failed to write ledger entry: %s", e)

    def read_all(self) -> list[LedgerEntry]:
        """All entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        with self._path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(LedgerEntry.model_validate(json.loads(line)))
                except (json.JSONDecodeError, ValidationError) as e:
                    logger.warning("Skipping corrupt ledger entry at line %d: %s", line_num, e)
        return entries

    def read_recent(self, n: int = 20) -> list[LedgerEntry]:
        return self.read_all()[-n:]
