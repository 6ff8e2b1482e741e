"""
Shell command adapter — run a command line and capture its output.

Used for module lifecycle scripts (``postInstall`` / ``preRemove``).
Never raises for command failures; the caller inspects ``CommandResult``.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    command: str
    ok: bool
    return_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "ok": self.ok,
            "return_code": self.return_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }


def run_command(command: str, cwd: Path, timeout: int = 60) -> CommandResult:
    """Run ``command`` through the shell in ``cwd``."""
    logger.debug("Executing: %s (cwd=%s)", command, cwd)
    start = time.monotonic()

    try:
        proc = subprocess.run(
            command,
            shell=True,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return CommandResult(
            command=command,
            ok=False,
            duration_ms=int((time.monotonic() - start) * 1000),
            error=f"Command timed out after {timeout}s",
        )
    except OSError as e:
        return CommandResult(command=command, ok=False, error=f"Command execution error: {e}")

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = proc.stdout.strip()
    stderr = proc.stderr.strip()

    if proc.returncode == 0:
        return CommandResult(
            command=command,
            ok=True,
            return_code=0,
            stdout=stdout,
            stderr=stderr,
            duration_ms=elapsed_ms,
        )

    return CommandResult(
        command=command,
        ok=False,
        return_code=proc.returncode,
        stdout=stdout,
        stderr=stderr,
        duration_ms=elapsed_ms,
        error=stderr or f"Command exited with code {proc.returncode}",
    )
