"""
Transactional file store — whole-file backup, rollback and commit.

One ``TransactionalFileStore`` is one unit of work:

    tx = TransactionalFileStore(paths)
    tx.backup(["apps/api/src/index.ts"])
    ... mutate files ...
    tx.commit()      # success: drop the backup
    tx.rollback()    # failure: restore every backed-up file, drop the backup

Backups live under ``<state_dir>/backups/backup_<epoch-ms>_<hex>/`` and
mirror the project-relative paths of the files they hold. If the process
dies between backup and commit, the directory survives; ``cleanup()``
garbage-collects old ones and a transaction can be re-opened by id to
restore by hand.
"""

from __future__ import annotations

import logging
import re
import shutil
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from modgraft.core.errors import (
    BackupNotFoundError,
    BackupSourceMissingError,
    TransactionError,
)
from modgraft.core.models.project import ProjectPaths

logger = logging.getLogger(__name__)

_BACKUP_ID_RE = re.compile(r"^backup_(\d+)(?:_[0-9a-f]+)?$")
_DAY_MS = 24 * 60 * 60 * 1000


def new_transaction_id() -> str:
    return f"backup_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def _created_ms(transaction_id: str) -> int | None:
    match = _BACKUP_ID_RE.match(transaction_id)
    return int(match.group(1)) if match else None


@dataclass
class TransactionInfo:
    """A backup directory found on disk."""

    transaction_id: str
    created_ms: int | None
    files: list[str]

    @property
    def age_days(self) -> float | None:
        if self.created_ms is None:
            return None
        return (time.time() * 1000 - self.created_ms) / _DAY_MS

    def to_dict(self) -> dict:
        return {
            "transaction_id": self.transaction_id,
            "created_ms": self.created_ms,
            "age_days": round(self.age_days, 2) if self.age_days is not None else None,
            "files": self.files,
        }


class TransactionalFileStore:
    """Backup/rollback/commit around a batch of project files."""

    def __init__(self, paths: ProjectPaths, transaction_id: str | None = None):
        self._paths = paths
        self._id = transaction_id or new_transaction_id()
        self._backed_up: list[str] = []

    @property
    def transaction_id(self) -> str:
        return self._id

    @property
    def backup_path(self) -> Path:
        return self._paths.backups_dir / self._id

    @property
    def backed_up(self) -> list[str]:
        """Project-relative paths copied so far by this instance."""
        return list(self._backed_up)

    def _relative(self, file: str) -> Path:
        root = self._paths.root.resolve()
        absolute = (root / file).resolve()
        try:
            return absolute.relative_to(root)
        except ValueError:
            raise TransactionError(f"Refusing to back up file outside project: {file}") from None

    def backup(self, files: list[str]) -> None:
        """Copy each file byte-for-byte into the backup directory.

        Fails fast on the first missing file. Files copied before the
        failure stay in the backup directory.
        """
        self.backup_path.mkdir(parents=True, exist_ok=True)

        for file in files:
            rel = self._relative(file)
            source = self._paths.root / rel
            if not source.is_file():
                raise BackupSourceMissingError(file)

            target = self.backup_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            self._backed_up.append(rel.as_posix())
            logger.debug("Backed up %s → %s", rel, target)

        logger.info("Backup created: %s (%d files)", self._id, len(files))

    def rollback(self) -> list[str]:
        """Restore every file held in the backup, then delete the backup.

        Works from the backup directory contents, so a store re-opened
        with the id of an interrupted transaction restores correctly.

        Returns:
            Project-relative paths that were restored.
        """
        if not self.backup_path.is_dir():
            raise BackupNotFoundError(self._id)

        restored: list[str] = []
        for backup_file in sorted(self.backup_path.rglob("*")):
            if not backup_file.is_file():
                continue
            rel = backup_file.relative_to(self.backup_path)
            target = self._paths.root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(backup_file, target)
            restored.append(rel.as_posix())
            logger.debug("Restored %s", rel)

        shutil.rmtree(self.backup_path)
        logger.info("Rollback complete: %s (%d files restored)", self._id, len(restored))
        return restored

    def commit(self) -> None:
        """Discard the backup. Irreversible."""
        if self.backup_path.exists():
            shutil.rmtree(self.backup_path)
        logger.info("Transaction committed: %s", self._id)


def list_transactions(paths: ProjectPaths) -> list[TransactionInfo]:
    """Backup directories currently on disk, oldest first."""
    if not paths.backups_dir.is_dir():
        return []

    found = []
    for entry in paths.backups_dir.iterdir():
        if not entry.is_dir():
            continue
        files = sorted(
            p.relative_to(entry).as_posix() for p in entry.rglob("*") if p.is_file()
        )
        found.append(TransactionInfo(entry.name, _created_ms(entry.name), files))

    return sorted(found, key=lambda t: (t.created_ms or 0, t.transaction_id))


def cleanup(paths: ProjectPaths, max_age_days: float = 7) -> list[str]:
    """Delete backup directories older than ``max_age_days``.

    Out-of-band garbage collection for transactions abandoned by a
    crashed process; never called from inside an install. Directories
    whose name does not carry a timestamp are left alone.

    Returns:
        Ids of the removed transactions.
    """
    now_ms = time.time() * 1000
    removed = []
    for info in list_transactions(paths):
        if info.created_ms is None:
            continue
        if now_ms - info.created_ms > max_age_days * _DAY_MS:
            shutil.rmtree(paths.backups_dir / info.transaction_id)
            removed.append(info.transaction_id)
            logger.info("Removed stale backup %s", info.transaction_id)
    return removed
