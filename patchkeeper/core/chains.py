"""Dependency chain computation.

For each vulnerable node, enumerate every acyclic path of edges leading
back to the root.  Chains are used to find the requirements that pin a
vulnerable version, to decide whether the vulnerability is reachable only
through development dependencies, and for reporting.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, FrozenSet, List, Optional, Sequence, Tuple

from patchkeeper.constants import DEV_GROUPS, LATEST_TAG, WILDCARD
from patchkeeper.exceptions import PatchKeeperError
from patchkeeper.utils.logger import get_logger
from patchkeeper.clients.base import ManifestClassifier, ResolutionClient
from patchkeeper.models.chain import DependencyChain
from patchkeeper.models.graph import Edge, Graph, VersionType
from patchkeeper.models.vulnerability import Vulnerability

logger = get_logger("chains")

__all__ = ["DependencyChain", "chain_constrains", "chain_is_dev", "compute_chains"]


def _parent_edges(graph: Graph) -> Dict[int, List[Edge]]:
    """Index incoming edges by target node, dropping self-dependencies."""
    parents: Dict[int, List[Edge]] = {}
    for edge in graph.edges:
        if edge.from_node == edge.to_node:
            continue
        parents.setdefault(edge.to_node, []).append(edge)
    return parents


def compute_chains(graph: Graph, node_ids: Sequence[int]) -> List[List[DependencyChain]]:
    """Compute every path from each node in *node_ids* to the root.

    The search is breadth-first, so within one node's list shorter chains
    come first.  A path is abandoned when extending it would revisit a
    node it already passes through, which keeps cyclic graphs finite.

    Args:
        graph: Resolved dependency graph.
        node_ids: Nodes to explain.

    Returns:
        One list of chains per requested node, in the same order.  A node
        that cannot reach the root gets an empty list.

    Example::

        >>> # root -> a -> c, root -> b -> c
        >>> [str(c) for c in compute_chains(graph, [3])[0]]
        ['npm:a@1.0.0 -> npm:c@1.0.0', 'npm:b@1.0.0 -> npm:c@1.0.0']
    """
    parents = _parent_edges(graph)
    all_chains: List[List[DependencyChain]] = []

    for node_id in node_ids:
        chains: List[DependencyChain] = []
        queue: Deque[Tuple[Tuple[Edge, ...], FrozenSet[int]]] = deque(
            ((edge,), frozenset((edge.to_node,))) for edge in parents.get(node_id, [])
        )

        while queue:
            edges, visited = queue.popleft()
            top = edges[-1]
            if top.from_node == 0:
                chains.append(DependencyChain(graph, edges))
                continue

            for parent in parents.get(top.from_node, []):
                # Cycle: the parent edge lands on a node already on this path
                if parent.to_node in visited:
                    continue
                queue.append((edges + (parent,), visited | {parent.to_node}))

        all_chains.append(chains)

    return all_chains


def chain_is_dev(chain: DependencyChain, classifier: Optional[ManifestClassifier]) -> bool:
    """Return True if *chain* enters the graph through a dev-only direct dependency.

    The direct dependency's groups must be non-empty and all of them must
    be development groups of its ecosystem.  Without a classifier, or for
    an ecosystem with no known dev groups, the chain is not dev.
    """
    if classifier is None:
        return False

    direct, _ = chain.direct_dependency()
    dev_groups = DEV_GROUPS.get(direct.ecosystem.value)
    if not dev_groups:
        return False

    groups = classifier.groups_for(direct.package)
    return bool(groups) and all(g in dev_groups for g in groups)


async def chain_constrains(
    client: ResolutionClient,
    chain: DependencyChain,
    vuln: Vulnerability,
) -> bool:
    """Return True if *chain* forces the vulnerable version.

    Looks at the requirement the vulnerable node's dependent declares and
    checks whether the highest version satisfying it is still affected.
    If so, re-resolving this chain alone would not escape the
    vulnerability.  Registry errors count as constraining.
    """
    vk, requirement = chain.end_dependency()
    text = WILDCARD if requirement == LATEST_TAG else requirement
    req_key = vk.with_version(text, VersionType.REQUIREMENT)

    try:
        matches = await client.matching_versions(req_key)
    except PatchKeeperError as exc:
        logger.debug("Cannot list versions matching %s: %s", req_key, exc)
        return True

    if not matches:
        return True
    return client.is_affected(vuln, matches[-1])
