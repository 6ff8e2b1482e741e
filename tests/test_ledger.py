"""
Tests for the operation ledger.
"""

from pathlib import Path

from modgraft.core.persistence.ledger import LedgerEntry, LedgerWriter


class TestLedgerWriter:
    def test_append_and_read(self, tmp_path: Path):
        ledger = LedgerWriter(tmp_path / "state" / "ledger.ndjson")
        ledger.write(LedgerEntry(operation="add", module="payments", status="ok"))
        ledger.write(LedgerEntry(operation="remove", module="payments", status="ok"))

        entries = ledger.read_all()
        assert [e.operation for e in entries] == ["add", "remove"]
        assert len(ledger.path.read_text().splitlines()) == 2

    def test_missing_file(self, tmp_path: Path):
        assert LedgerWriter(tmp_path / "nope.ndjson").read_all() == []

    def test_corrupt_lines_skipped(self, tmp_path: Path):
        path = tmp_path / "ledger.ndjson"
        ledger = LedgerWriter(path)
        ledger.write(LedgerEntry(operation="add", module="a"))
        with path.open("a") as f:
            f.write("garbage\n\n")
        ledger.write(LedgerEntry(operation="add", module="b"))

        assert [e.module for e in ledger.read_all()] == ["a", "b"]

    def test_read_recent(self, tmp_path: Path):
        ledger = LedgerWriter(tmp_path / "ledger.ndjson")
        for i in range(5):
            ledger.write(LedgerEntry(operation="add", module=f"m{i}"))
        assert [e.module for e in ledger.read_recent(2)] == ["m3", "m4"]

    def test_write_failure_is_not_raised(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        LedgerWriter(blocker / "ledger.ndjson").write(LedgerEntry(operation="add"))
