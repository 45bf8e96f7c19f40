"""In-place patch computation.

An *in-place* patch replaces one vulnerable package version with another
version of the same package without touching anything else in the
graph.  A candidate is acceptable when:

1. it does not cross a major version (unless allowed);
2. it still satisfies every requirement that dependents declare on the
   vulnerable version;
3. its own requirements are met by the packages already installed below
   every node it would replace;
4. it is not affected by the vulnerability being fixed.

The newest acceptable version wins.  Vulnerabilities with no acceptable
version are reported as unfixable.

Typical usage::

    client = RemediationClient(OSVDatabase.from_records(records), registry)
    result = await compute_in_place_patches(client, graph, RemediationOptions())
    print(result.summary())
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from patchkeeper.exceptions import InPlaceImpossibleError, VersionError
from patchkeeper.utils.logger import get_logger
from patchkeeper.versioning import ConstraintSet, Diff
from patchkeeper.clients.base import DependencyClient, ManifestClassifier, ResolutionClient
from patchkeeper.core.options import RemediationOptions
from patchkeeper.core.aggregator import VulnerabilityAggregate, aggregate_vulnerabilities
from patchkeeper.core.constraints import dependencies_satisfied, dependent_constraints
from patchkeeper.models.graph import Graph, PackageKey, VersionKey
from patchkeeper.models.vulnerability import ResolutionVuln
from patchkeeper.models.patch import DependencyPatch, InPlacePatch, InPlaceResult

logger = get_logger("in_place")

__all__ = ["compute_in_place_patches", "find_fixed_version"]

Predicate = Callable[[VersionKey], Awaitable[bool]]


async def find_fixed_version(
    client: DependencyClient,
    package: PackageKey,
    predicate: Predicate,
) -> VersionKey:
    """Return the newest concrete version of *package* accepted by *predicate*.

    Args:
        client: Registry client listing the package's versions.
        package: Package to search.
        predicate: Async acceptance test, evaluated newest-first.

    Returns:
        The first accepted version key.

    Raises:
        InPlaceImpossibleError: No version is accepted.
        RegistryError: The versions cannot be listed.
    """
    system = package.semver()
    versions = sorted(await client.versions(package), key=lambda vk: system.sort_key(vk.version))

    for vk in reversed(versions):
        if vk.is_concrete and await predicate(vk):
            return vk

    raise InPlaceImpossibleError(package=str(package))


def _make_predicate(
    client: ResolutionClient,
    vk: VersionKey,
    vuln: ResolutionVuln,
    aggregate: VulnerabilityAggregate,
    constraint_set: Optional[ConstraintSet],
    options: RemediationOptions,
) -> Predicate:
    system = vk.semver()
    node_ids = aggregate.vk_nodes.get(vk, [])

    async def accepts(candidate: VersionKey) -> bool:
        if not options.allow_major:
            try:
                if system.difference(vk.version, candidate.version) is Diff.MAJOR:
                    return False
            except VersionError:
                return False

        if constraint_set is None:
            return False
        try:
            if not constraint_set.match(candidate.version):
                return False
        except VersionError:
            return False

        for node_id in node_ids:
            children = aggregate.node_dependencies.get(node_id, [])
            if not await dependencies_satisfied(client, candidate, children):
                return False

        return not client.is_affected(vuln.vulnerability, candidate)

    return accepts


async def compute_in_place_patches(
    client: ResolutionClient,
    graph: Graph,
    options: Optional[RemediationOptions] = None,
    classifier: Optional[ManifestClassifier] = None,
) -> InPlaceResult:
    """Find every in-place version change that fixes a vulnerability in *graph*.

    Each (vulnerable version, vulnerability) pair is searched
    independently and concurrently, up to ``options.max_concurrency`` at
    a time.  Results are merged in a deterministic order regardless of
    completion order.

    Args:
        client: Vulnerability matcher and registry client.
        graph: Resolved dependency graph; node 0 is the root.
        options: Remediation policy.  Defaults to :class:`RemediationOptions`.
        classifier: Manifest group lookup used to flag dev-only
            vulnerabilities.

    Returns:
        Patches sorted by number of vulnerabilities fixed (descending),
        package name, original version, then new version (descending);
        plus the vulnerabilities that cannot be fixed in place.

    Raises:
        PatchKeeperError: Any registry, version or constraint error other
            than "no acceptable version".  Outstanding searches are
            cancelled and no partial result is returned.
    """
    options = options or RemediationOptions()
    aggregate = aggregate_vulnerabilities(client, graph, classifier)
    constraints = dependent_constraints(aggregate)
    semaphore = asyncio.Semaphore(options.max_concurrency)

    async def search(vk: VersionKey, vuln: ResolutionVuln) -> Optional[VersionKey]:
        predicate = _make_predicate(
            client, vk, vuln, aggregate, constraints.get(vk), options
        )
        async with semaphore:
            try:
                found = await find_fixed_version(client, vk.package, predicate)
            except InPlaceImpossibleError:
                logger.debug("No in-place fix for %s in %s", vuln.id, vk)
                return None
        logger.debug("%s in %s is fixed by %s", vuln.id, vk, found.version)
        return found

    # (vk, vuln, index into tasks or None when the vuln is avoided)
    work: List[Tuple[VersionKey, ResolutionVuln, Optional[int]]] = []
    tasks: List["asyncio.Task[Optional[VersionKey]]"] = []

    for vk, vulns in aggregate.vk_vulns.items():
        for vuln in vulns:
            if not options.match_vuln(vuln):
                logger.debug("Skipping %s in %s (filtered)", vuln.id, vk)
                continue
            if options.avoids(vk.package):
                work.append((vk, vuln, None))
                continue
            work.append((vk, vuln, len(tasks)))
            tasks.append(asyncio.ensure_future(search(vk, vuln)))

    found = await _gather_all_or_nothing(tasks)

    result = InPlaceResult()
    patches: Dict[DependencyPatch, InPlacePatch] = {}

    for vk, vuln, index in work:
        new_vk = found[index] if index is not None else None
        if new_vk is None:
            result.unfixable.append(vuln)
            continue

        dp = DependencyPatch(vk.package, vk.version, new_vk.version)
        if dp in patches:
            patches[dp].resolved_vulns.append(vuln)
        else:
            patches[dp] = InPlacePatch(dp, [vuln])

    result.patches = _sort_patches(list(patches.values()))

    logger.info(
        "Computed %d in-place patch(es); %d vulnerability occurrence(s) unfixable",
        len(result.patches),
        len(result.unfixable),
    )
    return result


async def _gather_all_or_nothing(
    tasks: List["asyncio.Task[Optional[VersionKey]]"],
) -> List[Optional[VersionKey]]:
    """Await every task; on the first failure cancel the rest and re-raise."""
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _sort_patches(patches: List[InPlacePatch]) -> List[InPlacePatch]:
    # Stable sorts, least significant key first
    patches.sort(key=lambda p: p.new_version, reverse=True)
    patches.sort(key=lambda p: (-len(p.resolved_vulns), p.pkg.name, p.orig_version))
    return patches
