from __future__ import annotations

import sys
from unittest.mock import MagicMock, patch

import pytest

from buildkeeper.__main__ import _print_startup_error, main


@pytest.mark.unit
class TestMain:
    """Tests for main() entry point function."""

    @pytest.mark.parametrize(
        "exit_code",
        [0, 1, 130],
        ids=["success", "error", "interrupted"],
    )
    def test_main_returns_cli_exit_code(self, exit_code: int) -> None:
        """Test main returns exit code from cli_main when import succeeds."""
        mock_cli_module = MagicMock()
        mock_cli_module.main = MagicMock(return_value=exit_code)

        with patch.dict("sys.modules", {"buildkeeper.cli": mock_cli_module}):
            result = main()

        assert result == exit_code
        mock_cli_module.main.assert_called_once_with()

    def test_main_import_error_returns_one(self, capsys: pytest.CaptureFixture) -> None:
        """Test main returns 1 when the cli module cannot be imported."""
        # A None entry in sys.modules makes the import raise ImportError
        with patch.dict("sys.modules", {"buildkeeper.cli": None}):
            result = main()

        assert result == 1
        captured = capsys.readouterr()
        assert "buildkeeper CLI could not be loaded." in captured.err
        assert "ImportError:" in captured.err
        assert captured.out == ""


@pytest.mark.unit
class TestPrintStartupError:
    """Tests for _print_startup_error helper function."""

    def test_includes_version(self, capsys: pytest.CaptureFixture) -> None:
        mock_version_module = MagicMock(__version__="9.9.9")

        with patch.dict(sys.modules, {"buildkeeper.__version__": mock_version_module}):
            _print_startup_error(ImportError("Test error message"))

        captured = capsys.readouterr()
        assert "buildkeeper version: 9.9.9" in captured.err
        assert "ImportError: Test error message" in captured.err

    def test_version_unavailable(self, capsys: pytest.CaptureFixture) -> None:
        with patch.dict(sys.modules, {"buildkeeper.__version__": None}):
            _print_startup_error(ImportError("Test error message"))

        captured = capsys.readouterr()
        assert "buildkeeper version: <unknown>" in captured.err

    def test_reports_python_version(self, capsys: pytest.CaptureFixture) -> None:
        _print_startup_error(ImportError("Test error"))

        captured = capsys.readouterr()
        assert f"Python version : {sys.version}" in captured.err
        assert captured.out == ""
