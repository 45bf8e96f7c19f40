"""
Executable module for patchkeeper.

Running:
    python -m patchkeeper

is equivalent to:
    patchkeeper

This module simply forwards execution to the CLI entrypoint defined in
`patchkeeper.cli`.
"""

from __future__ import annotations

import sys


def _print_startup_error(exc: ImportError) -> None:
    """Explain a broken installation on stderr."""
    sys.stderr.write("patchkeeper could not start: a dependency is missing.\n")
    sys.stderr.write(f"Python version: {sys.version}\n")
    sys.stderr.write(f"ImportError: {exc}\n")


def main() -> int:
    """
    Main entrypoint when executing `python -m patchkeeper`.

    Returns:
        Exit code returned by the CLI, or 1 if it cannot be imported.
    """
    try:
        # Import lazily so dependencies are only loaded during CLI use
        from patchkeeper.cli import main as cli_main
    except ImportError as exc:
        _print_startup_error(exc)
        return 1

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
