from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from patchkeeper.__main__ import _print_startup_error, main


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

        with patch.dict("sys.modules", {"patchkeeper.cli": mock_cli_module}):
            result = main()

        assert result == exit_code
        mock_cli_module.main.assert_called_once_with()

    def test_main_import_error_returns_one(self, capsys: pytest.CaptureFixture) -> None:
        """Test main returns 1 when the CLI module cannot be imported."""
        with patch.dict("sys.modules", {"patchkeeper.cli": None}):
            result = main()

        assert result == 1
        captured = capsys.readouterr()
        assert "ImportError:" in captured.err
        assert "patchkeeper.cli" in captured.err


@pytest.mark.unit
class TestPrintStartupError:
    """Tests for _print_startup_error helper function."""

    def test_writes_to_stderr_only(self, capsys: pytest.CaptureFixture) -> None:
        _print_startup_error(ImportError("Test error message"))

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "ImportError: Test error message" in captured.err

    def test_includes_python_version(self, capsys: pytest.CaptureFixture) -> None:
        """Test the interpreter version is reported for bug reports."""
        _print_startup_error(ImportError("x"))

        assert "Python version:" in capsys.readouterr().err
