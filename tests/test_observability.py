"""
Tests for logging setup and the shell command adapter.
"""

import logging
import sys
from pathlib import Path

import pytest

from modgraft.adapters.shell.command import run_command
from modgraft.core.errors import ScriptError
from modgraft.core.models.project import ProjectConfig, ProjectPaths
from modgraft.core.observability.logging_config import parse_level, setup_logging
from modgraft.core.services.script_runner import run_script


class TestLogging:
    def test_parse_level(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level("nonsense") == logging.WARNING
        assert parse_level(None) == logging.WARNING

    def test_file_handler_gets_own_level(self, tmp_path: Path):
        log_file = tmp_path / "modgraft.log"
        setup_logging("ERROR", log_file=str(log_file), log_file_level="DEBUG")

        logging.getLogger("modgraft.test").debug("detail for post-mortem")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert logging.getLogger().level == logging.DEBUG
        assert "detail for post-mortem" in log_file.read_text()
        setup_logging("WARNING")

    def test_replaces_handlers(self):
        setup_logging("INFO")
        setup_logging("INFO")
        assert len(logging.getLogger().handlers) == 1
        setup_logging("WARNING")


class TestShell:
    def test_success(self, tmp_path: Path):
        result = run_command(f'"{sys.executable}" -c "print(42)"', cwd=tmp_path)
        assert result.ok
        assert result.stdout == "42"
        assert result.return_code == 0

    def test_failure(self, tmp_path: Path):
        result = run_command(f'"{sys.executable}" -c "raise SystemExit(4)"', cwd=tmp_path)
        assert not result.ok
        assert result.return_code == 4
        assert "code 4" in result.error

    def test_timeout(self, tmp_path: Path):
        result = run_command(f'"{sys.executable}" -c "import time; time.sleep(5)"', cwd=tmp_path, timeout=1)
        assert not result.ok
        assert "timed out" in result.error

    def test_script_runner_raises(self, tmp_path: Path):
        paths = ProjectPaths.for_root(tmp_path, ProjectConfig(script_timeout=5))
        with pytest.raises(ScriptError, match="postInstall script failed"):
            run_script(paths, f'"{sys.executable}" -c "raise SystemExit(2)"', "postInstall")
