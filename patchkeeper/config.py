"""Configuration file loader for patchkeeper.

Handles discovery, loading, parsing, and validation of configuration files.
Supports two formats:

- ``patchkeeper.toml``: settings under the ``[patchkeeper]`` table
- ``pyproject.toml``: settings under the ``[tool.patchkeeper]`` table

Discovery order:

1. Explicit path from ``--config`` or ``PATCHKEEPER_CONFIG``
2. ``patchkeeper.toml`` in current directory
3. ``pyproject.toml`` with ``[tool.patchkeeper]`` section

Configuration precedence: defaults < config file < CLI args.

Example (``patchkeeper.toml``)::

    [patchkeeper]
    allow_major = false
    avoid_packages = ["lodash"]
    ignore_vulns = ["GHSA-xxxx-xxxx-xxxx"]
    include_dev = true
    max_depth = 0
    max_concurrency = 10
    timeout = 300
"""

from __future__ import annotations

import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from patchkeeper.exceptions import ConfigError
from patchkeeper.utils.logger import get_logger
from patchkeeper.constants import (
    DEFAULT_ALLOW_MAJOR,
    DEFAULT_INCLUDE_DEV,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_DEPTH,
    DEFAULT_RUN_TIMEOUT,
)

logger = get_logger("config")


@dataclass
class PatchKeeperConfig:
    """Parsed and validated patchkeeper configuration.

    All fields have defaults, so empty config files are valid.

    Attributes:
        allow_major: Accept replacement versions with a different major
            version.
        avoid_packages: Package names that must never be changed.
        ignore_vulns: Vulnerability IDs or aliases to leave alone.
        include_dev: Also fix vulnerabilities reachable only through
            development dependencies.
        max_depth: Ignore vulnerabilities deeper than this (0 = unlimited).
        max_concurrency: Maximum number of concurrent candidate searches.
        timeout: Overall time limit in seconds (0 = none).
        source_path: Path to loaded config file, or ``None`` if using defaults.
    """

    allow_major: bool = DEFAULT_ALLOW_MAJOR
    avoid_packages: List[str] = field(default_factory=list)
    ignore_vulns: List[str] = field(default_factory=list)
    include_dev: bool = DEFAULT_INCLUDE_DEV
    max_depth: int = DEFAULT_MAX_DEPTH
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    timeout: int = DEFAULT_RUN_TIMEOUT

    # Metadata (not a user-facing option)
    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary for debug logging."""
        return {
            "allow_major": self.allow_major,
            "avoid_packages": list(self.avoid_packages),
            "ignore_vulns": list(self.ignore_vulns),
            "include_dev": self.include_dev,
            "max_depth": self.max_depth,
            "max_concurrency": self.max_concurrency,
            "timeout": self.timeout,
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Args:
        explicit_path: Explicit config path. If provided, must exist.

    Returns:
        Resolved path to config file, or ``None`` if not found.

    Raises:
        ConfigError: Explicit path provided but does not exist.
    """
    if explicit_path is not None:
        resolved = explicit_path.resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    patchkeeper_toml = cwd / "patchkeeper.toml"
    if patchkeeper_toml.is_file():
        logger.debug("Found patchkeeper.toml: %s", patchkeeper_toml)
        return patchkeeper_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.is_file() and _pyproject_has_section(pyproject_toml):
        logger.debug("Found [tool.patchkeeper] in pyproject.toml: %s", pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_section(path: Path) -> bool:
    """Check if pyproject.toml contains a ``[tool.patchkeeper]`` section.

    Parse errors count as "no section" so a broken unrelated
    pyproject.toml does not stop the run.
    """
    try:
        raw = _read_toml(path)
    except ConfigError:
        return False
    return "patchkeeper" in raw.get("tool", {})


def load_config(config_path: Optional[Path] = None) -> PatchKeeperConfig:
    """Load and validate patchkeeper configuration.

    Args:
        config_path: Explicit path to config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`PatchKeeperConfig` with values from file or defaults.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return PatchKeeperConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == "pyproject.toml":
        section = raw.get("tool", {}).get("patchkeeper", {})
    else:
        section = raw.get("patchkeeper", {})

    if not section:
        logger.debug("Config file found but has no patchkeeper section, using defaults")
        return PatchKeeperConfig(source_path=resolved)

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


_BOOL_OPTIONS = ("allow_major", "include_dev")
_LIST_OPTIONS = ("avoid_packages", "ignore_vulns")
# option -> smallest accepted value
_INT_OPTIONS = {"max_depth": 0, "max_concurrency": 1, "timeout": 0}


def _parse_section(
    section: Dict[str, Any],
    *,
    config_path: str,
) -> PatchKeeperConfig:
    """Parse and validate a ``[patchkeeper]`` or ``[tool.patchkeeper]`` table.

    Rejects unknown keys and type mismatches.

    Raises:
        ConfigError: Unknown keys or incorrect types (e.g., string for boolean).
    """
    config = PatchKeeperConfig()

    known = set(_BOOL_OPTIONS) | set(_LIST_OPTIONS) | set(_INT_OPTIONS)
    unknown = set(section.keys()) - known
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    for name in _BOOL_OPTIONS:
        if name in section:
            val = section[name]
            if not isinstance(val, bool):
                raise ConfigError(
                    f"{name} must be a boolean, got {type(val).__name__}",
                    config_path=config_path,
                    option=name,
                )
            setattr(config, name, val)

    for name in _LIST_OPTIONS:
        if name in section:
            val = section[name]
            if not isinstance(val, list) or not all(isinstance(v, str) for v in val):
                raise ConfigError(
                    f"{name} must be a list of strings",
                    config_path=config_path,
                    option=name,
                )
            setattr(config, name, list(val))

    for name, minimum in _INT_OPTIONS.items():
        if name in section:
            val = section[name]
            # bool is an int subclass
            if isinstance(val, bool) or not isinstance(val, int):
                raise ConfigError(
                    f"{name} must be an integer, got {type(val).__name__}",
                    config_path=config_path,
                    option=name,
                )
            if val < minimum:
                raise ConfigError(
                    f"{name} must be >= {minimum}, got {val}",
                    config_path=config_path,
                    option=name,
                )
            setattr(config, name, val)

    return config
