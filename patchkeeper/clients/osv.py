"""Offline OSV vulnerability database.

Matches graph nodes against a set of OSV records loaded into memory.
A version is affected when it appears in an ``affected[].versions`` list
or falls inside a ``SEMVER``/``ECOSYSTEM`` range, evaluated with the
package's own version system.  ``GIT`` ranges are ignored.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from patchkeeper.exceptions import GraphError, VersionError
from patchkeeper.utils.logger import get_logger
from patchkeeper.versioning import VersionSystem
from patchkeeper.models.graph import Graph, PackageKey, VersionKey
from patchkeeper.models.vulnerability import AffectedRange, Vulnerability

logger = get_logger("clients.osv")

__all__ = ["OSVDatabase"]

_VERSIONED_RANGE_TYPES = frozenset({"SEMVER", "ECOSYSTEM"})


class OSVDatabase:
    """In-memory vulnerability matcher over OSV records.

    Args:
        vulnerabilities: Vulnerability records to match against.

    Example::

        >>> db = OSVDatabase.from_records(load_osv_records("osv.json"))
        >>> db.find_vulns(graph)
        {3: [Vulnerability(id='GHSA-...', ...)]}
    """

    def __init__(self, vulnerabilities: Iterable[Vulnerability]) -> None:
        self._vulns: List[Vulnerability] = list(vulnerabilities)
        self._by_package: Dict[PackageKey, List[Vulnerability]] = {}
        for vuln in self._vulns:
            seen = set()
            for affected in vuln.affected:
                if affected.package in seen:
                    continue
                seen.add(affected.package)
                self._by_package.setdefault(affected.package, []).append(vuln)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "OSVDatabase":
        """Build a database from raw OSV JSON records.

        Raises:
            GraphError: A record lacks required fields.
        """
        try:
            db = cls(Vulnerability.from_osv(r) for r in records)
        except (KeyError, TypeError, AttributeError) as exc:
            raise GraphError(f"Malformed OSV record: {exc}") from exc

        logger.debug("Indexed %d vulnerability record(s)", len(db))
        return db

    # ------------------------------------------------------------------
    # VulnerabilityMatcher
    # ------------------------------------------------------------------

    def find_vulns(self, graph: Graph) -> Dict[int, List[Vulnerability]]:
        """Return vulnerabilities per node id; the root and clean nodes are omitted."""
        found: Dict[int, List[Vulnerability]] = {}
        for node_id, node in enumerate(graph.nodes):
            if node_id == 0 or not node.version.is_concrete:
                continue
            hits = [
                v
                for v in self._by_package.get(node.version.package, [])
                if self.is_affected(v, node.version)
            ]
            if hits:
                found[node_id] = hits
        return found

    def is_affected(self, vuln: Vulnerability, version: VersionKey) -> bool:
        """Return True if *vuln* affects *version*."""
        for affected in vuln.affected:
            if affected.package != version.package:
                continue
            if version.version in affected.versions:
                return True
            system = version.semver()
            for rng in affected.ranges:
                if rng.type in _VERSIONED_RANGE_TYPES and _in_range(
                    system, version.version, rng
                ):
                    return True
        return False

    def __len__(self) -> int:
        return len(self._vulns)


def _in_range(system: VersionSystem, version: str, rng: AffectedRange) -> bool:
    """Evaluate one OSV range for *version*.

    Events are applied in version order: ``introduced`` opens an affected
    interval, ``fixed``/``limit`` close it at that version and
    ``last_affected`` closes it just after.
    """
    try:
        target = system.parse_version(version)
        events = sorted(
            (_event_key(system, kind, value), kind, value) for kind, value in rng.events
        )
    except VersionError as exc:
        logger.debug("Cannot evaluate range %r for %s: %s", rng, version, exc)
        return False

    affected = False
    for (_, bound), kind, value in events:
        if kind == "introduced":
            if value == "0" or target >= bound:
                affected = True
        elif kind in ("fixed", "limit"):
            if target >= bound:
                affected = False
        elif kind == "last_affected":
            if target > bound:
                affected = False
    return affected


def _event_key(system: VersionSystem, kind: str, value: str) -> Tuple[int, Optional[Any]]:
    # "introduced: 0" means "from the very first release"
    if kind == "introduced" and value == "0":
        return (0, None)
    return (1, system.parse_version(value))
