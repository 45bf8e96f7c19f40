"""Collaborator interfaces consumed by the remediation engine.

The engine never talks to a registry or a vulnerability database
directly.  It goes through the narrow protocols below, so that online
clients, offline snapshots and test doubles are interchangeable.

Registry calls are ``async``: they may block on the network and must be
cancellable.  Vulnerability matching is a synchronous lookup.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from patchkeeper.models.vulnerability import Vulnerability
from patchkeeper.models.dependency import RequirementVersion
from patchkeeper.models.graph import Graph, PackageKey, VersionKey
from patchkeeper.exceptions import VersionError
from patchkeeper.constants import LATEST_TAG, WILDCARD

__all__ = [
    "DependencyClient",
    "ManifestClassifier",
    "ManifestGroups",
    "RemediationClient",
    "ResolutionClient",
    "VulnerabilityMatcher",
    "select_matching",
]


class VulnerabilityMatcher(Protocol):
    """Vulnerability database lookups."""

    def find_vulns(self, graph: Graph) -> Dict[int, List[Vulnerability]]:
        """Return, per node id, the vulnerabilities affecting that node."""
        ...

    def is_affected(self, vuln: Vulnerability, version: VersionKey) -> bool:
        """Return True if *vuln* affects the package at *version*."""
        ...


class DependencyClient(Protocol):
    """Registry lookups for versions and declared requirements."""

    async def versions(self, package: PackageKey) -> List[VersionKey]:
        """Return every known version of *package*, in any order."""
        ...

    async def requirements(self, version: VersionKey) -> List[RequirementVersion]:
        """Return the requirements declared by the concrete *version*."""
        ...

    async def matching_versions(self, requirement: VersionKey) -> List[VersionKey]:
        """Return concrete versions matching a ``REQUIREMENT`` key, ascending."""
        ...


class ResolutionClient(VulnerabilityMatcher, DependencyClient, Protocol):
    """Everything the in-place remediation engine needs."""


class ManifestClassifier(Protocol):
    """Maps a manifest's direct dependencies to their declared groups."""

    def groups_for(self, package: PackageKey) -> Sequence[str]:
        """Return the groups (``"dev"``, ``"optional"``, ...) of *package*."""
        ...


class ManifestGroups:
    """Dictionary-backed :class:`ManifestClassifier`.

    Args:
        groups: Direct dependency -> group names.  Packages not listed
            belong to no group (production).
    """

    def __init__(self, groups: Optional[Mapping[PackageKey, Sequence[str]]] = None) -> None:
        self._groups: Dict[PackageKey, List[str]] = {
            pk: list(g) for pk, g in (groups or {}).items()
        }

    def groups_for(self, package: PackageKey) -> Sequence[str]:
        return self._groups.get(package, [])

    def __len__(self) -> int:
        return len(self._groups)


class RemediationClient:
    """Bundles a vulnerability matcher and a dependency client.

    Example::

        client = RemediationClient(OSVDatabase.from_records(records), registry)
        result = await compute_in_place_patches(client, graph, options)
    """

    def __init__(self, matcher: VulnerabilityMatcher, registry: DependencyClient) -> None:
        self.matcher = matcher
        self.registry = registry

    def find_vulns(self, graph: Graph) -> Dict[int, List[Vulnerability]]:
        return self.matcher.find_vulns(graph)

    def is_affected(self, vuln: Vulnerability, version: VersionKey) -> bool:
        return self.matcher.is_affected(vuln, version)

    async def versions(self, package: PackageKey) -> List[VersionKey]:
        return await self.registry.versions(package)

    async def requirements(self, version: VersionKey) -> List[RequirementVersion]:
        return await self.registry.requirements(version)

    async def matching_versions(self, requirement: VersionKey) -> List[VersionKey]:
        return await self.registry.matching_versions(requirement)


def select_matching(
    versions: Iterable[VersionKey],
    requirement: VersionKey,
) -> List[VersionKey]:
    """Filter *versions* down to concrete keys satisfying *requirement*.

    Shared implementation of ``matching_versions`` for registry clients.
    Unparsable versions never match.

    Returns:
        Matching keys sorted ascending by the package's version order.

    Raises:
        ConstraintError: The requirement text cannot be parsed.
    """
    system = requirement.semver()
    text = WILDCARD if requirement.version == LATEST_TAG else requirement.version
    constraint = system.parse_constraint(text)

    matched: List[VersionKey] = []
    for vk in versions:
        if not vk.is_concrete:
            continue
        try:
            if constraint.match(vk.version):
                matched.append(vk)
        except VersionError:
            continue

    matched.sort(key=lambda vk: system.sort_key(vk.version))
    return matched

