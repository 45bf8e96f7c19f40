"""
Utility helpers for patchkeeper.

This package provides reusable utilities used across patchkeeper, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Filesystem safety helpers
- Async HTTP client utilities

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from patchkeeper.utils.filesystem import read_json_file, safe_read_file

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from patchkeeper.utils.logger import (
    disable_logging,
    get_logger,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from patchkeeper.utils.console import (
    colorize_diff,
    print_error,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# HTTP utilities
# ---------------------------------------------------------------------------

from patchkeeper.utils.http import HTTPClient

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "print_error",
    "print_table",
    "print_success",
    "print_warning",
    "reconfigure_console",
    "colorize_diff",
    # Logging
    "get_logger",
    "setup_logging",
    "disable_logging",
    # Filesystem
    "safe_read_file",
    "read_json_file",
    # HTTP
    "HTTPClient",
]
