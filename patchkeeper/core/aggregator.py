"""Vulnerability aggregation over a resolved graph.

Several nodes may instantiate the same package version (npm nests
duplicates), and each node may be reachable through several chains.  The
aggregator folds all of that into one :class:`ResolutionVuln` per
(version key, vulnerability id), which is the unit the patch search works
on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from patchkeeper.utils.logger import get_logger
from patchkeeper.clients.base import ManifestClassifier, VulnerabilityMatcher
from patchkeeper.core.chains import chain_is_dev, compute_chains
from patchkeeper.models.graph import Graph, VersionKey
from patchkeeper.models.vulnerability import ResolutionVuln

logger = get_logger("aggregator")

__all__ = ["VulnerabilityAggregate", "aggregate_vulnerabilities"]


@dataclass
class VulnerabilityAggregate:
    """Vulnerable nodes of a graph, grouped by version key.

    Attributes:
        node_dependencies: Vulnerable node id -> version keys of its
            direct dependencies, in edge order.
        vk_vulns: Vulnerable version -> one entry per distinct
            vulnerability id, in discovery order.
        vk_nodes: Vulnerable version -> node ids instantiating it.
    """

    node_dependencies: Dict[int, List[VersionKey]] = field(default_factory=dict)
    vk_vulns: Dict[VersionKey, List[ResolutionVuln]] = field(default_factory=dict)
    vk_nodes: Dict[VersionKey, List[int]] = field(default_factory=dict)

    def vuln_count(self) -> int:
        return sum(len(v) for v in self.vk_vulns.values())


def aggregate_vulnerabilities(
    client: VulnerabilityMatcher,
    graph: Graph,
    classifier: Optional[ManifestClassifier] = None,
) -> VulnerabilityAggregate:
    """Find vulnerable nodes in *graph* and group them by version.

    Args:
        client: Vulnerability matcher.
        graph: Resolved dependency graph.
        classifier: Manifest group lookup used to flag dev-only
            vulnerabilities.  Without one nothing is dev-only.

    Returns:
        The aggregated vulnerabilities.  Nodes are visited in ascending id
        order, so the result is deterministic.
    """
    node_vulns = client.find_vulns(graph)
    result = VulnerabilityAggregate()

    for edge in graph.edges:
        if node_vulns.get(edge.from_node):
            result.node_dependencies.setdefault(edge.from_node, []).append(
                graph.nodes[edge.to_node].version
            )

    node_ids = sorted(nid for nid, vulns in node_vulns.items() if vulns)
    node_chains = compute_chains(graph, node_ids)

    for node_id, chains in zip(node_ids, node_chains):
        vk = graph.nodes[node_id].version
        result.vk_nodes.setdefault(vk, []).append(node_id)
        dev_only = bool(chains) and all(chain_is_dev(c, classifier) for c in chains)

        entries = result.vk_vulns.setdefault(vk, [])
        for vuln in node_vulns[node_id]:
            rv = ResolutionVuln(vuln, list(chains), dev_only)
            existing = next((e for e in entries if e.id == rv.id), None)
            if existing is not None:
                existing.merge(rv)
            else:
                entries.append(rv)

    logger.debug(
        "Found %d vulnerability occurrence(s) across %d version(s)",
        result.vuln_count(),
        len(result.vk_vulns),
    )
    return result
