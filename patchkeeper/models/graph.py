"""
Resolved dependency graph model for patchkeeper.

The graph is produced upstream by resolving a lockfile or manifest and is
consumed read-only: node 0 is the root (the manifest itself), every other
node is one resolved package version, and each edge records the
requirement string the source node declares on the target.  Cycles are
legal.
"""

from __future__ import annotations

import re
from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from patchkeeper.versioning import VersionSystem, get_system


def _normalize_name(name: str) -> str:
    """Normalize a Python package name according to PEP 503."""
    return re.sub(r"[-_.]+", "-", name).lower()


class Ecosystem(str, Enum):
    """Package ecosystems, named as in OSV records."""

    NPM = "npm"
    PYPI = "PyPI"

    def __str__(self) -> str:
        return self.value


class VersionType(Enum):
    """Whether a version key names a resolved release or a requirement."""

    CONCRETE = "concrete"
    REQUIREMENT = "requirement"


@dataclass(frozen=True)
class PackageKey:
    """Ecosystem-qualified package identity.

    PyPI names are PEP 503 normalized so ``Flask_Login`` and
    ``flask-login`` compare equal; npm names are case-sensitive and kept
    verbatim.

    Attributes:
        ecosystem: Owning ecosystem.
        name: Package name.
    """

    ecosystem: Ecosystem
    name: str

    def __post_init__(self) -> None:
        ecosystem = Ecosystem(self.ecosystem)
        object.__setattr__(self, "ecosystem", ecosystem)
        if ecosystem is Ecosystem.PYPI:
            object.__setattr__(self, "name", _normalize_name(self.name))

    def semver(self) -> VersionSystem:
        """Return the version system of this package's ecosystem."""
        return get_system(self.ecosystem)

    def __str__(self) -> str:
        return f"{self.ecosystem.value}:{self.name}"


@dataclass(frozen=True)
class VersionKey:
    """A package at a version, or a package under a requirement.

    Equality and hashing are structural over (package, version, kind), so
    version keys can be used directly as mapping keys.

    Attributes:
        package: Package identity.
        version: Version string (``CONCRETE``) or requirement text
            (``REQUIREMENT``).
        version_type: Kind of ``version``.
    """

    package: PackageKey
    version: str
    version_type: VersionType = VersionType.CONCRETE

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def ecosystem(self) -> Ecosystem:
        return self.package.ecosystem

    @property
    def is_concrete(self) -> bool:
        return self.version_type is VersionType.CONCRETE

    def semver(self) -> VersionSystem:
        """Return the version system used to compare this key's versions."""
        return self.package.semver()

    def with_version(
        self,
        version: str,
        version_type: VersionType = VersionType.CONCRETE,
    ) -> "VersionKey":
        """Return a key for the same package at another version."""
        return VersionKey(self.package, version, version_type)

    def __str__(self) -> str:
        sep = "@" if self.is_concrete else " "
        return f"{self.package}{sep}{self.version}"


@dataclass(frozen=True)
class Node:
    """One resolved package version in the graph."""

    version: VersionKey


@dataclass(frozen=True)
class Edge:
    """``from_node`` declares a dependency on ``to_node`` satisfying ``requirement``."""

    from_node: int
    to_node: int
    requirement: str


@dataclass(frozen=True)
class Graph:
    """Immutable resolved dependency graph rooted at node 0.

    Attributes:
        nodes: Nodes in id order; ``nodes[0]`` is the root.
        edges: Dependency edges; order is preserved.
    """

    nodes: Tuple[Node, ...] = field(default_factory=tuple)
    edges: Tuple[Edge, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(self.edges))

    @classmethod
    def build(
        cls,
        nodes: Sequence[VersionKey],
        edges: Sequence[Tuple[int, int, str]],
    ) -> "Graph":
        """Construct a graph from version keys and ``(from, to, req)`` triples.

        Example::

            >>> pk = PackageKey(Ecosystem.NPM, "a")
            >>> g = Graph.build(
            ...     [VersionKey(PackageKey(Ecosystem.NPM, "root"), "1.0.0"),
            ...      VersionKey(pk, "1.0.0")],
            ...     [(0, 1, "^1.0.0")],
            ... )
            >>> len(g.edges)
            1
        """
        return cls(
            nodes=tuple(Node(vk) for vk in nodes),
            edges=tuple(Edge(f, t, req) for f, t, req in edges),
        )

    def children(self, node_id: int) -> List[VersionKey]:
        """Return the version keys of ``node_id``'s direct dependencies."""
        return [self.nodes[e.to_node].version for e in self.edges if e.from_node == node_id]

    def to_json(self) -> Dict[str, object]:
        """Return a JSON-serializable representation."""
        return {
            "nodes": [
                {
                    "ecosystem": n.version.ecosystem.value,
                    "name": n.version.name,
                    "version": n.version.version,
                }
                for n in self.nodes
            ],
            "edges": [
                {"from": e.from_node, "to": e.to_node, "requirement": e.requirement}
                for e in self.edges
            ],
        }

    def __len__(self) -> int:
        return len(self.nodes)
