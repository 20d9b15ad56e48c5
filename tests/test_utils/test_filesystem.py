from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from buildkeeper.exceptions import FileOperationError
from buildkeeper.utils.filesystem import safe_read_file, safe_write_file


@pytest.mark.unit
class TestSafeReadFile:
    """Tests for safe_read_file."""

    def test_reads_text(self, tmp_path: Path) -> None:
        target = tmp_path / "snapshot.json"
        target.write_text('{"packages": {}}', encoding="utf-8")

        assert safe_read_file(target) == '{"packages": {}}'

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        target = tmp_path / "a.txt"
        target.write_text("x", encoding="utf-8")

        assert safe_read_file(str(target)) == "x"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileOperationError) as exc_info:
            safe_read_file(tmp_path / "missing.json")

        assert "not found" in str(exc_info.value).lower()

    def test_directory_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(FileOperationError):
            safe_read_file(tmp_path)

    def test_too_large(self, tmp_path: Path) -> None:
        target = tmp_path / "big.txt"
        target.write_text("x" * 100, encoding="utf-8")

        with pytest.raises(FileOperationError) as exc_info:
            safe_read_file(target, max_size=10)

        assert "too large" in str(exc_info.value).lower()

    def test_size_limit_disabled(self, tmp_path: Path) -> None:
        target = tmp_path / "big.txt"
        target.write_text("x" * 100, encoding="utf-8")

        assert len(safe_read_file(target, max_size=None)) == 100

    def test_decode_error(self, tmp_path: Path) -> None:
        target = tmp_path / "binary.bin"
        target.write_bytes(b"\xff\xfe\xfa")

        with pytest.raises(FileOperationError):
            safe_read_file(target)


@pytest.mark.unit
class TestSafeWriteFile:
    """Tests for safe_write_file."""

    def test_writes_and_returns_resolved_path(self, tmp_path: Path) -> None:
        target = tmp_path / ".jenkins_build_version.txt"

        written = safe_write_file(target, "1.2.3\n")

        assert written == target.resolve()
        assert target.read_text(encoding="utf-8") == "1.2.3\n"

    def test_overwrites_existing(self, tmp_path: Path) -> None:
        target = tmp_path / "version.txt"
        target.write_text("old\n", encoding="utf-8")

        safe_write_file(target, "new\n")

        assert target.read_text(encoding="utf-8") == "new\n"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "dir" / "version.txt"

        safe_write_file(target, "1.0.0\n")

        assert target.exists()

    def test_no_temporary_files_left(self, tmp_path: Path) -> None:
        safe_write_file(tmp_path / "version.txt", "1.0.0\n")

        assert [p.name for p in tmp_path.iterdir()] == ["version.txt"]

    def test_failure_wrapped(self, tmp_path: Path) -> None:
        target = tmp_path / "version.txt"

        with patch("pathlib.Path.replace", side_effect=OSError("disk full")):
            with pytest.raises(FileOperationError) as exc_info:
                safe_write_file(target, "1.0.0\n")

        assert exc_info.value.details["operation"] == "write"
        assert not any(p.name.endswith(".tmp") for p in tmp_path.iterdir())
