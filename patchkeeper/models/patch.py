"""
Patch result models for patchkeeper.

An :class:`InPlacePatch` proposes moving one package from its current
version to another and lists the vulnerabilities that move resolves.  Its
identity for deduplication is the :class:`DependencyPatch` triple alone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from patchkeeper.models.graph import PackageKey
from patchkeeper.models.vulnerability import ResolutionVuln


@dataclass(frozen=True)
class DependencyPatch:
    """A single package version change."""

    pkg: PackageKey
    orig_version: str
    new_version: str

    def __str__(self) -> str:
        return f"{self.pkg}: {self.orig_version} -> {self.new_version}"


@dataclass
class InPlacePatch:
    """A version change and the vulnerabilities it fixes."""

    patch: DependencyPatch
    resolved_vulns: List[ResolutionVuln] = field(default_factory=list)

    @property
    def pkg(self) -> PackageKey:
        return self.patch.pkg

    @property
    def orig_version(self) -> str:
        return self.patch.orig_version

    @property
    def new_version(self) -> str:
        return self.patch.new_version

    def vuln_ids(self) -> List[str]:
        return [v.id for v in self.resolved_vulns]

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "ecosystem": self.pkg.ecosystem.value,
            "package": self.pkg.name,
            "orig_version": self.orig_version,
            "new_version": self.new_version,
            "fixes": [v.to_json() for v in self.resolved_vulns],
        }


@dataclass
class InPlaceResult:
    """Outcome of an in-place remediation run.

    Attributes:
        patches: Proposed patches, highest priority first.
        unfixable: Vulnerabilities no in-place version change can fix.
    """

    patches: List[InPlacePatch] = field(default_factory=list)
    unfixable: List[ResolutionVuln] = field(default_factory=list)

    def fixed_count(self) -> int:
        """Number of vulnerability occurrences fixed by all patches."""
        return sum(len(p.resolved_vulns) for p in self.patches)

    def has_vulnerabilities(self) -> bool:
        return bool(self.patches or self.unfixable)

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "patches": [p.to_json() for p in self.patches],
            "unfixable": [v.to_json() for v in self.unfixable],
        }

    def summary(self) -> str:
        """Human-readable multi-line summary.

        Example::

            >>> print(result.summary())
            In-place patches: 2 (fixing 3 vulnerabilities)
              • npm:lodash: 4.17.15 -> 4.17.21 [GHSA-1, GHSA-2]
              • npm:minimist: 1.2.0 -> 1.2.6 [GHSA-3]
            Unfixable: 1
              • GHSA-4
        """
        lines = [
            f"In-place patches: {len(self.patches)} "
            f"(fixing {self.fixed_count()} vulnerabilities)"
        ]
        for p in self.patches:
            lines.append(f"  • {p.patch} [{', '.join(p.vuln_ids())}]")
        lines.append(f"Unfixable: {len(self.unfixable)}")
        for v in self.unfixable:
            lines.append(f"  • {v.id}")
        return "\n".join(lines)
