"""Input document loading.

Reads the resolved graph and OSV vulnerability documents the CLI works
on.  The graph document looks like::

    {
      "nodes": [
        {"ecosystem": "npm", "name": "my-app", "version": "1.0.0"},
        {"ecosystem": "npm", "name": "lodash", "version": "4.17.15"}
      ],
      "edges": [{"from": 0, "to": 1, "requirement": "^4.17.0"}],
      "groups": {"lodash": ["dev"]}
    }

Node 0 is the root.  ``groups`` is optional and maps direct dependency
names to their manifest groups.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple, Union

from patchkeeper.exceptions import GraphError
from patchkeeper.utils.filesystem import read_json_file
from patchkeeper.utils.logger import get_logger
from patchkeeper.clients.base import ManifestGroups
from patchkeeper.models.graph import Graph, PackageKey, VersionKey

logger = get_logger("loader")

__all__ = ["graph_from_dict", "load_graph", "load_osv_records"]

PathLike = Union[str, Path]


def load_graph(path: PathLike) -> Tuple[Graph, ManifestGroups]:
    """Load a graph document from *path*.

    Returns:
        The graph and the manifest groups of its direct dependencies.

    Raises:
        GraphError: The document is not a valid graph.
        FileOperationError: The file cannot be read or is not JSON.
    """
    data = read_json_file(path)
    try:
        graph, groups = graph_from_dict(data)
    except GraphError as exc:
        raise GraphError(exc.message, file_path=str(path), location=exc.location) from exc

    logger.info(
        "Loaded graph with %d node(s) and %d edge(s) from %s",
        len(graph.nodes),
        len(graph.edges),
        path,
    )
    return graph, groups


def graph_from_dict(data: Any) -> Tuple[Graph, ManifestGroups]:
    """Build a graph and its manifest groups from a decoded document.

    Raises:
        GraphError: The document is not a valid graph.
    """
    if not isinstance(data, dict):
        raise GraphError("Graph document must be a JSON object")

    raw_nodes = data.get("nodes")
    if not isinstance(raw_nodes, list) or not raw_nodes:
        raise GraphError("Graph needs a non-empty 'nodes' list", location="nodes")

    nodes: List[VersionKey] = []
    for i, raw in enumerate(raw_nodes):
        try:
            nodes.append(VersionKey(PackageKey(raw["ecosystem"], raw["name"]), str(raw["version"])))
        except (KeyError, TypeError, ValueError) as exc:
            raise GraphError(f"Invalid node: {exc}", location=f"nodes[{i}]") from exc

    edges: List[Tuple[int, int, str]] = []
    for i, raw in enumerate(data.get("edges") or []):
        try:
            src, dst, req = int(raw["from"]), int(raw["to"]), str(raw.get("requirement", "*"))
        except (KeyError, TypeError, ValueError) as exc:
            raise GraphError(f"Invalid edge: {exc}", location=f"edges[{i}]") from exc
        if not (0 <= src < len(nodes) and 0 <= dst < len(nodes)):
            raise GraphError(
                f"Edge references unknown node ({src} -> {dst})",
                location=f"edges[{i}]",
            )
        edges.append((src, dst, req))

    graph = Graph.build(nodes, edges)
    return graph, _parse_groups(data.get("groups") or {}, graph)


def _parse_groups(raw: Any, graph: Graph) -> ManifestGroups:
    if not isinstance(raw, dict):
        raise GraphError("'groups' must be an object", location="groups")

    # Group names refer to the root's direct dependencies
    direct: Dict[str, PackageKey] = {vk.name: vk.package for vk in graph.children(0)}
    root = graph.nodes[0].version.package
    groups: Dict[PackageKey, List[str]] = {}

    for name, values in raw.items():
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise GraphError("Group lists must hold strings", location=f"groups.{name}")
        package = PackageKey(root.ecosystem, name)
        package = direct.get(name) or direct.get(package.name) or package
        if package.name not in direct:
            logger.debug("Group entry %r is not a direct dependency", name)
        groups[package] = list(values)

    return ManifestGroups(groups)


def load_osv_records(path: PathLike) -> List[Mapping[str, Any]]:
    """Load OSV records from a JSON file.

    Accepts a list of records, a single record, or an object with a
    ``vulns`` list (the shape returned by the OSV query API).

    Raises:
        GraphError: The document holds no OSV records.
        FileOperationError: The file cannot be read or is not JSON.
    """
    data = read_json_file(path)

    if isinstance(data, list):
        records = data
    elif isinstance(data, dict) and "vulns" in data:
        records = data["vulns"] or []
    elif isinstance(data, dict) and "id" in data:
        records = [data]
    else:
        raise GraphError("Vulnerability file must hold OSV records", file_path=str(path))

    if not all(isinstance(r, dict) for r in records):
        raise GraphError("OSV records must be JSON objects", file_path=str(path))

    logger.info("Loaded %d vulnerability record(s) from %s", len(records), path)
    return records
