"""
Custom exception hierarchy for patchkeeper.

Every error raised by patchkeeper inherits from :class:`PatchKeeperError`
and may carry structured metadata in ``details`` for logging.

Two families matter to the remediation engine:

- :class:`InPlaceImpossibleError` is an *expected* outcome: no candidate
  version satisfies the in-place constraints. Callers record the
  vulnerability as unfixable and carry on.
- Everything else (network, registry, version or constraint parsing)
  is fatal to a remediation run.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional


class PatchKeeperError(Exception):
    """Base exception for all patchkeeper errors.

    Args:
        message: Human-readable error message.
        details: Optional structured metadata describing the error.
    """

    __slots__ = ("message", "details")

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.message: str = message
        self.details: MutableMapping[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, details={dict(self.details)!r})"
        )


def _add_if(details: MutableMapping[str, Any], key: str, value: Any) -> None:
    """Add a key to ``details`` only if ``value`` is not ``None``."""
    if value is not None:
        details[key] = value


def _truncate(text: str, max_length: int = 200) -> str:
    """Truncate long text for safe logging or error reporting."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


class VersionError(PatchKeeperError):
    """Raised when a version string cannot be interpreted.

    Args:
        message: Error description.
        version: The offending version string.
        system: Name of the version system that rejected it.
    """

    __slots__ = ("version", "system")

    def __init__(
        self,
        message: str,
        *,
        version: Optional[str] = None,
        system: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "version", version)
        _add_if(details, "system", system)

        super().__init__(message, details)

        self.version = version
        self.system = system


class ConstraintError(PatchKeeperError):
    """Raised when a requirement string cannot be parsed or combined.

    Args:
        message: Error description.
        constraint: The requirement text being processed.
        system: Name of the version system in use.
    """

    __slots__ = ("constraint", "system")

    def __init__(
        self,
        message: str,
        *,
        constraint: Optional[str] = None,
        system: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "constraint", constraint)
        _add_if(details, "system", system)

        super().__init__(message, details)

        self.constraint = constraint
        self.system = system


class InPlaceImpossibleError(PatchKeeperError):
    """Raised when no version satisfies the in-place patch constraints.

    Args:
        message: Error description.
        package: Name of the package that could not be patched.
    """

    __slots__ = ("package",)

    def __init__(
        self,
        message: str = "cannot find a version satisfying in-place constraints",
        *,
        package: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "package", package)

        super().__init__(message, details)

        self.package = package


class GraphError(PatchKeeperError):
    """Raised when a dependency graph document is malformed.

    Args:
        message: Error description.
        file_path: Path of the document being loaded.
        location: Where in the document the problem was found.
    """

    __slots__ = ("file_path", "location")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        location: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "file", file_path)
        _add_if(details, "at", location)

        super().__init__(message, details)

        self.file_path = file_path
        self.location = location


class NetworkError(PatchKeeperError):
    """Raised when HTTP or network operations fail.

    Args:
        message: Error description.
        url: URL being accessed.
        status_code: HTTP status code, if available.
        response_body: Raw response body, truncated for safety.
    """

    __slots__ = ("url", "status_code", "response_body")

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "url", url)
        _add_if(details, "status_code", status_code)

        if response_body is not None:
            details["response"] = _truncate(response_body)

        super().__init__(message, details)

        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class RegistryError(NetworkError):
    """Raised for failures talking to a package registry.

    Args:
        message: Error description.
        package_name: Name of the package involved.
        **kwargs: Additional arguments forwarded to ``NetworkError``.
    """

    __slots__ = ("package_name",)

    def __init__(
        self,
        message: str,
        *,
        package_name: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)

        self.package_name = package_name
        if package_name is not None:
            self.details["package"] = package_name


class FileOperationError(PatchKeeperError):
    """Raised when file system operations fail.

    Args:
        message: Error description.
        file_path: Path to the file involved.
        operation: Operation being performed.
        original_error: Original exception that triggered this error.
    """

    __slots__ = ("file_path", "operation", "original_error")

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", file_path)
        _add_if(details, "operation", operation)
        _add_if(
            details,
            "original_error",
            str(original_error) if original_error else None,
        )

        super().__init__(message, details)

        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error


class ConfigError(PatchKeeperError):
    """Raised when a configuration file is missing, unreadable or invalid.

    Args:
        message: Error description.
        config_path: Path to the configuration file.
        option: Name of the offending option, if any.
    """

    __slots__ = ("config_path", "option")

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        details: MutableMapping[str, Any] = {}
        _add_if(details, "path", config_path)
        _add_if(details, "option", option)

        super().__init__(message, details)

        self.config_path = config_path
        self.option = option
