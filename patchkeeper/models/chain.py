"""
Dependency chain model for patchkeeper.

A chain explains *why* a vulnerable version is in the graph: it is the
path of edges from the vulnerable node back to the root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from patchkeeper.models.graph import Edge, Graph, VersionKey


@dataclass(frozen=True)
class DependencyChain:
    """Edges from a vulnerable node up to the root.

    ``edges[0]`` terminates on the vulnerable node; ``edges[-1]`` starts at
    the root (node 0).

    Attributes:
        graph: Graph the edges belong to.
        edges: Edges ordered from the vulnerable node towards the root.
    """

    graph: Graph = field(compare=False, repr=False)
    edges: Tuple[Edge, ...]

    def __post_init__(self) -> None:
        if not self.edges:
            raise ValueError("a dependency chain needs at least one edge")
        object.__setattr__(self, "edges", tuple(self.edges))

    def direct_dependency(self) -> Tuple[VersionKey, str]:
        """Return the root's direct dependency on this path and its requirement.

        This is the top-level manifest entry responsible for the chain.
        """
        edge = self.edges[-1]
        return self.graph.nodes[edge.to_node].version, edge.requirement

    def end_dependency(self) -> Tuple[VersionKey, str]:
        """Return the vulnerable version and the requirement its dependent declares.

        The requirement is what any replacement version must keep
        satisfying for this dependent.
        """
        edge = self.edges[0]
        return self.graph.nodes[edge.to_node].version, edge.requirement

    @property
    def depth(self) -> int:
        """Number of edges between the root and the vulnerable node."""
        return len(self.edges)

    def node_ids(self) -> List[int]:
        """Node ids along the path, vulnerable node first, root last."""
        ids = [self.edges[0].to_node]
        ids.extend(e.from_node for e in self.edges)
        return ids

    def to_json(self) -> List[Dict[str, str]]:
        """Return the path root-first as ``{name, version, requirement}`` hops."""
        return [
            {
                "name": self.graph.nodes[e.to_node].version.name,
                "version": self.graph.nodes[e.to_node].version.version,
                "requirement": e.requirement,
            }
            for e in reversed(self.edges)
        ]

    def __str__(self) -> str:
        hops = [str(self.graph.nodes[e.to_node].version) for e in reversed(self.edges)]
        return " -> ".join(hops)
