"""
patchkeeper version information.

Single source of truth for the package version (Semantic Versioning).
"""

from __future__ import annotations

__version__ = "0.1.0"

#: Human-readable version string used by the CLI.
VERSION_STRING = f"patchkeeper {__version__}"
