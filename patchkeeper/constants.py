"""
Centralized constants for patchkeeper.

Immutable configuration values shared across the package: registry
endpoints, network settings, remediation defaults, ecosystem dev-group
names and logging formats.
"""

from typing import Final, FrozenSet, Mapping

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = (
    "patchkeeper/{version} (https://github.com/patchkeeper/patchkeeper)"
)

# ---------------------------------------------------------------------------
# Registry endpoints
# ---------------------------------------------------------------------------

#: Base URL for the PyPI JSON API (package-level document).
PYPI_JSON_API: Final[str] = "https://pypi.org/pypi/{package}/json"

#: PyPI JSON API for a single release.
PYPI_VERSION_JSON_API: Final[str] = "https://pypi.org/pypi/{package}/{version}/json"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Maximum number of retries for failed HTTP requests.
DEFAULT_MAX_RETRIES: Final[int] = 3

# ---------------------------------------------------------------------------
# Remediation defaults
# ---------------------------------------------------------------------------

#: Whether major-version bumps are allowed unless configured otherwise.
DEFAULT_ALLOW_MAJOR: Final[bool] = False

#: Whether vulnerabilities only reachable through dev dependencies are fixed.
DEFAULT_INCLUDE_DEV: Final[bool] = True

#: Maximum dependency depth considered (0 = unlimited).
DEFAULT_MAX_DEPTH: Final[int] = 0

#: Upper bound on concurrent candidate searches.
DEFAULT_MAX_CONCURRENCY: Final[int] = 10

#: Overall time limit for one remediation run in seconds (0 = none).
DEFAULT_RUN_TIMEOUT: Final[int] = 0

#: Requirement tag that means "whatever was newest at lock time".
LATEST_TAG: Final[str] = "latest"

#: Requirement text that matches any version.
WILDCARD: Final[str] = "*"

#: Manifest group names that mark a direct dependency as development-only,
#: keyed by ecosystem name. Ecosystems missing here are never dev.
DEV_GROUPS: Final[Mapping[str, FrozenSet[str]]] = {
    "npm": frozenset({"dev"}),
    "PyPI": frozenset({"dev"}),
}

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed size (in bytes) for graph / vulnerability input files.
MAX_FILE_SIZE: Final[int] = 50 * 1024 * 1024  # 50 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
