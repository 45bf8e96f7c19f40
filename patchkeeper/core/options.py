"""Remediation options.

:class:`RemediationOptions` controls which vulnerabilities the in-place
search considers and which replacement versions it may propose.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, FrozenSet, Optional, Union

from patchkeeper.config import PatchKeeperConfig
from patchkeeper.constants import (
    DEFAULT_ALLOW_MAJOR,
    DEFAULT_INCLUDE_DEV,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_MAX_DEPTH,
)
from patchkeeper.models.graph import PackageKey
from patchkeeper.models.vulnerability import ResolutionVuln

__all__ = ["RemediationOptions"]

AvoidEntry = Union[PackageKey, str]


@dataclass(frozen=True)
class RemediationOptions:
    """Policy for one in-place remediation run.

    Attributes:
        allow_major: Accept candidates whose major version differs from
            the installed one.
        avoid_pkgs: Packages that must not be changed.  A
            :class:`PackageKey` matches one ecosystem; a bare name matches
            the package in any ecosystem.  Their vulnerabilities are
            reported as unfixable.
        ignore_vulns: Vulnerability IDs or aliases to skip entirely.
        explicit_vulns: When non-empty, only these IDs or aliases are
            considered.
        include_dev: Consider vulnerabilities reachable only through
            development dependencies.
        max_depth: Skip vulnerabilities whose shortest chain is longer
            than this (0 = unlimited).
        vuln_filter: Extra predicate; vulnerabilities for which it
            returns ``False`` are skipped.
        max_concurrency: Maximum number of concurrent candidate searches.

    Example::

        >>> opts = RemediationOptions(avoid_pkgs=frozenset({"lodash"}))
        >>> opts.avoids(PackageKey(Ecosystem.NPM, "lodash"))
        True
    """

    allow_major: bool = DEFAULT_ALLOW_MAJOR
    avoid_pkgs: FrozenSet[AvoidEntry] = field(default_factory=frozenset)
    ignore_vulns: FrozenSet[str] = field(default_factory=frozenset)
    explicit_vulns: FrozenSet[str] = field(default_factory=frozenset)
    include_dev: bool = DEFAULT_INCLUDE_DEV
    max_depth: int = DEFAULT_MAX_DEPTH
    vuln_filter: Optional[Callable[[ResolutionVuln], bool]] = field(
        default=None, compare=False
    )
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    def __post_init__(self) -> None:
        object.__setattr__(self, "avoid_pkgs", frozenset(self.avoid_pkgs))
        object.__setattr__(self, "ignore_vulns", frozenset(self.ignore_vulns))
        object.__setattr__(self, "explicit_vulns", frozenset(self.explicit_vulns))
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")

    @classmethod
    def from_config(cls, config: PatchKeeperConfig, **overrides: Any) -> "RemediationOptions":
        """Build options from a loaded configuration.

        Keyword arguments override the configured values, which is how
        CLI flags take precedence over the file.
        """
        options = cls(
            allow_major=config.allow_major,
            avoid_pkgs=frozenset(config.avoid_packages),
            ignore_vulns=frozenset(config.ignore_vulns),
            include_dev=config.include_dev,
            max_depth=config.max_depth,
            max_concurrency=config.max_concurrency,
        )
        return replace(options, **overrides) if overrides else options

    def avoids(self, package: PackageKey) -> bool:
        """Return True if *package* must not be changed.

        Bare names are normalized the way *package*'s ecosystem normalizes
        its own names before comparing.
        """
        if package in self.avoid_pkgs:
            return True
        return any(
            isinstance(entry, str) and PackageKey(package.ecosystem, entry).name == package.name
            for entry in self.avoid_pkgs
        )

    def match_vuln(self, vuln: ResolutionVuln) -> bool:
        """Return True if *vuln* should be considered for remediation."""
        ids = vuln.vulnerability.identifiers()

        if any(i in self.ignore_vulns for i in ids):
            return False
        if self.explicit_vulns and not any(i in self.explicit_vulns for i in ids):
            return False
        if not self.include_dev and vuln.dev_only:
            return False
        if self.max_depth > 0:
            depth = vuln.depth
            if depth is not None and depth > self.max_depth:
                return False
        if self.vuln_filter is not None and not self.vuln_filter(vuln):
            return False
        return True
