from __future__ import annotations

import sys
from typing import Generator
from unittest.mock import patch

import pytest
from rich.table import Table
from rich.console import Console

from patchkeeper.utils.console import (
    PATCHKEEPER_THEME,
    _get_console,
    _should_use_color,
    colorize_diff,
    print_error,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def reset_console() -> Generator[None, None, None]:
    """Reset console singleton before and after each test."""
    reconfigure_console()
    yield
    reconfigure_console()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove environment variables that affect console behavior."""
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.delenv("CI", raising=False)


# ==============================================================================
# Theme and color detection
# ==============================================================================


@pytest.mark.unit
class TestThemeConfiguration:
    """Tests for PATCHKEEPER_THEME configuration."""

    @pytest.mark.parametrize("style_name", ["success", "error", "warning", "info", "dim"])
    def test_theme_has_required_styles(self, style_name: str) -> None:
        assert style_name in PATCHKEEPER_THEME.styles


@pytest.mark.unit
class TestShouldUseColor:
    """Tests for _should_use_color environment detection."""

    def test_no_color_env_disables_color(
        self, clean_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("NO_COLOR", "1")

        with patch.object(sys.stdout, "isatty", return_value=True):
            assert _should_use_color() is False

    def test_ci_env_disables_color(
        self, clean_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CI", "true")

        with patch.object(sys.stdout, "isatty", return_value=True):
            assert _should_use_color() is False

    @pytest.mark.parametrize("isatty", [True, False])
    def test_follows_tty(self, clean_env: None, isatty: bool) -> None:
        with patch.object(sys.stdout, "isatty", return_value=isatty):
            assert _should_use_color() is isatty

    def test_isatty_raises_os_error(self, clean_env: None) -> None:
        """Test detached streams are treated as non-TTY."""
        with patch.object(sys.stdout, "isatty", side_effect=OSError):
            assert _should_use_color() is False


@pytest.mark.unit
class TestConsoleSingleton:
    """Tests for _get_console and reconfigure_console."""

    def test_singleton_returns_same_instance(self) -> None:
        assert _get_console() is _get_console()

    def test_reconfigure_clears_console(self) -> None:
        first = _get_console()

        reconfigure_console()

        assert _get_console() is not first

    def test_console_respects_no_color(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")

        assert _get_console().no_color is True


# ==============================================================================
# Output helpers
# ==============================================================================


@pytest.mark.unit
class TestStatusMessages:
    """Tests for print_success, print_error and print_warning."""

    def test_prints_success_message(self) -> None:
        with patch.object(Console, "print") as mock_print:
            print_success("No vulnerabilities found")

        mock_print.assert_called_once_with("[OK] No vulnerabilities found", style="success")

    def test_prints_error_message(self) -> None:
        with patch.object(Console, "print") as mock_print:
            print_error("Registry unavailable")

        mock_print.assert_called_once_with("[ERROR] Registry unavailable", style="error")

    def test_prints_warning_message(self) -> None:
        with patch.object(Console, "print") as mock_print:
            print_warning("2 unfixable")

        mock_print.assert_called_once_with("[WARNING] 2 unfixable", style="warning")

    def test_custom_prefix(self) -> None:
        with patch.object(Console, "print") as mock_print:
            print_success("Done", prefix="*")

        mock_print.assert_called_once_with("* Done", style="success")


@pytest.mark.unit
class TestPrintTable:
    """Tests for print_table."""

    def test_prints_table(self) -> None:
        with patch.object(Console, "print") as mock_print:
            print_table(
                [{"Package": "lodash", "Current": "4.17.15"}],
                title="In-place Patches",
            )

        table = mock_print.call_args.args[0]
        assert isinstance(table, Table)
        assert table.title == "In-place Patches"
        assert [c.header for c in table.columns] == ["Package", "Current"]
        assert table.row_count == 1

    def test_empty_data_prints_nothing(self) -> None:
        with patch.object(Console, "print") as mock_print:
            print_table([])

        mock_print.assert_not_called()

    def test_custom_headers_and_missing_values(self) -> None:
        """Test header order is respected and missing cells are blank."""
        with patch.object(Console, "print") as mock_print:
            print_table([{"a": 1}], headers=["b", "a"])

        table = mock_print.call_args.args[0]
        assert [c.header for c in table.columns] == ["b", "a"]
        assert list(table.columns[0].cells) == [""]
        assert list(table.columns[1].cells) == ["1"]

    def test_row_styler(self) -> None:
        with patch.object(Console, "print") as mock_print:
            print_table(
                [{"Dev only": "yes"}, {"Dev only": "no"}],
                row_styler=lambda row: "dim" if row["Dev only"] == "yes" else None,
            )

        table = mock_print.call_args.args[0]
        assert [r.style for r in table.rows] == ["dim", None]


@pytest.mark.unit
class TestColorizeDiff:
    """Tests for colorize_diff."""

    @pytest.mark.parametrize(
        "diff,expected",
        [
            ("major", "[red]major[/red]"),
            ("minor", "[yellow]minor[/yellow]"),
            ("patch", "[green]patch[/green]"),
            ("other", "[cyan]other[/cyan]"),
            ("MAJOR", "[red]MAJOR[/red]"),
        ],
    )
    def test_known_kinds(self, diff: str, expected: str) -> None:
        assert colorize_diff(diff) == expected

    def test_unknown_kind_unchanged(self) -> None:
        assert colorize_diff("same") == "same"
