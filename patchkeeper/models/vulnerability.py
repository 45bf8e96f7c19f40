"""
Vulnerability data models for patchkeeper.

:class:`Vulnerability` is the subset of an OSV record the remediation
engine needs: an identifier and the affected package versions.
:class:`ResolutionVuln` ties one vulnerability to the dependency chains
that make it reachable in a particular graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from patchkeeper.utils.logger import get_logger
from patchkeeper.models.chain import DependencyChain
from patchkeeper.models.graph import Ecosystem, PackageKey

logger = get_logger("models.vulnerability")


@dataclass(frozen=True)
class AffectedRange:
    """An OSV ``ranges`` entry.

    Attributes:
        type: Range type (``SEMVER``, ``ECOSYSTEM`` or ``GIT``).
        events: ``(kind, version)`` pairs, e.g. ``("introduced", "0")``.
    """

    type: str
    events: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class Affected:
    """One affected package in an OSV record."""

    package: PackageKey
    versions: Tuple[str, ...] = ()
    ranges: Tuple[AffectedRange, ...] = ()


@dataclass(frozen=True)
class Vulnerability:
    """A known vulnerability.

    Attributes:
        id: Database identifier, e.g. ``GHSA-xxxx-xxxx-xxxx``.
        summary: One-line description.
        aliases: Other identifiers for the same issue (CVE ids, ...).
        affected: Affected packages and versions.
    """

    id: str
    summary: str = ""
    aliases: Tuple[str, ...] = ()
    affected: Tuple[Affected, ...] = ()

    @classmethod
    def from_osv(cls, record: Mapping[str, Any]) -> "Vulnerability":
        """Build a vulnerability from an OSV JSON record.

        Affected entries for ecosystems patchkeeper does not handle are
        dropped.

        Raises:
            KeyError: The record has no ``id``.
        """
        affected: List[Affected] = []
        for entry in record.get("affected") or []:
            pkg = entry.get("package") or {}
            try:
                package = PackageKey(Ecosystem(pkg.get("ecosystem")), pkg["name"])
            except (KeyError, ValueError):
                logger.debug(
                    "Skipping affected entry of %s for unsupported package %r",
                    record.get("id"),
                    pkg,
                )
                continue

            ranges = tuple(
                AffectedRange(
                    type=r.get("type", ""),
                    events=tuple(
                        (kind, str(value))
                        for event in r.get("events") or []
                        for kind, value in event.items()
                    ),
                )
                for r in entry.get("ranges") or []
            )
            affected.append(
                Affected(
                    package=package,
                    versions=tuple(entry.get("versions") or ()),
                    ranges=ranges,
                )
            )

        return cls(
            id=record["id"],
            summary=record.get("summary", "") or "",
            aliases=tuple(record.get("aliases") or ()),
            affected=tuple(affected),
        )

    def identifiers(self) -> Tuple[str, ...]:
        """Return the id followed by every alias."""
        return (self.id,) + self.aliases

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable summary (not a full OSV record)."""
        return {"id": self.id, "summary": self.summary, "aliases": list(self.aliases)}


@dataclass
class ResolutionVuln:
    """A vulnerability together with the chains that reach it.

    Attributes:
        vulnerability: The vulnerability record.
        problem_chains: Every dependency chain leading to an affected node.
        dev_only: True only when every contributing chain is dev-only.
    """

    vulnerability: Vulnerability
    problem_chains: List[DependencyChain] = field(default_factory=list)
    dev_only: bool = False

    @property
    def id(self) -> str:
        return self.vulnerability.id

    @property
    def depth(self) -> Optional[int]:
        """Length of the shortest chain, or ``None`` without chains."""
        if not self.problem_chains:
            return None
        return min(c.depth for c in self.problem_chains)

    def merge(self, other: "ResolutionVuln") -> None:
        """Fold another occurrence of the same vulnerability into this one."""
        if other.id != self.id:
            raise ValueError(f"cannot merge {other.id} into {self.id}")
        self.problem_chains.extend(other.problem_chains)
        self.dev_only = self.dev_only and other.dev_only

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        data = self.vulnerability.to_json()
        data["dev_only"] = self.dev_only
        data["chains"] = [c.to_json() for c in self.problem_chains]
        return data
