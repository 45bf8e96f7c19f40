"""Requirement handling for in-place patches.

Two checks decide whether a replacement version can be dropped into the
existing graph unchanged:

- it must satisfy every requirement the vulnerable node's dependents
  declare on it (:func:`build_constraint_set`, :func:`dependent_constraints`);
- its own requirements must be met by the packages already installed
  beneath the node it replaces (:func:`dependencies_satisfied`).
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from patchkeeper.constants import LATEST_TAG, WILDCARD
from patchkeeper.exceptions import ConstraintError, VersionError
from patchkeeper.utils.logger import get_logger
from patchkeeper.versioning import Constraint, ConstraintSet, VersionSystem
from patchkeeper.clients.base import DependencyClient
from patchkeeper.core.aggregator import VulnerabilityAggregate
from patchkeeper.models.dependency import DependencyAttr
from patchkeeper.models.graph import VersionKey

logger = get_logger("constraints")

__all__ = ["build_constraint_set", "dependencies_satisfied", "dependent_constraints"]


def _requirement_text(text: str) -> str:
    # "latest" in a lockfile names whatever was newest when it was written
    return WILDCARD if text == LATEST_TAG else text


def build_constraint_set(system: VersionSystem, requirements: Iterable[str]) -> ConstraintSet:
    """Combine requirement strings into one :class:`ConstraintSet`.

    Args:
        system: Version system the requirements are written in.
        requirements: Requirement strings; ``"latest"`` means any version.

    Returns:
        A set matching exactly the versions every requirement accepts.

    Raises:
        ConstraintError: *requirements* is empty or a requirement cannot
            be parsed or intersected.

    Example::

        >>> s = build_constraint_set(get_system("npm"), ["^1.0.0", "<1.5.0"])
        >>> s.match("1.4.0"), s.match("1.5.0")
        (True, False)
    """
    texts = list(requirements)
    if not texts:
        raise ConstraintError("No requirements to combine", system=system.name)

    result = system.parse_constraint(_requirement_text(texts[0])).to_set()
    for text in texts[1:]:
        result = result.intersect(system.parse_constraint(_requirement_text(text)).to_set())
    return result


def dependent_constraints(aggregate: VulnerabilityAggregate) -> Dict[VersionKey, ConstraintSet]:
    """Build the dependent constraint set of every vulnerable version.

    The requirements come from the final edge of every problem chain,
    i.e. whatever each dependent declares on the vulnerable version.  A
    version whose requirements cannot be combined is logged and left out;
    no candidate will be accepted for it.
    """
    result: Dict[VersionKey, ConstraintSet] = {}

    for vk, vulns in aggregate.vk_vulns.items():
        # ordered, de-duplicated
        reqs: Dict[str, None] = {}
        for vuln in vulns:
            for chain in vuln.problem_chains:
                _, req = chain.end_dependency()
                reqs[req] = None

        try:
            result[vk] = build_constraint_set(vk.semver(), reqs)
        except (ConstraintError, VersionError) as exc:
            logger.warning(
                "Cannot combine requirements on %s %s, skipping: %s",
                vk.name,
                vk.version,
                exc,
            )

    return result


async def dependencies_satisfied(
    client: DependencyClient,
    version: VersionKey,
    children: Sequence[VersionKey],
) -> bool:
    """Check that *version*'s requirements are met by existing packages.

    Optional requirements are ignored unless the package is already one
    of *children*; every other regular requirement must be satisfied by
    a child of the same name.

    Args:
        client: Registry client supplying the declared requirements.
        version: Candidate replacement version.
        children: Version keys currently installed beneath the node.

    Raises:
        ConstraintError: A declared requirement cannot be parsed.
        RegistryError: The requirements cannot be fetched.
    """
    regular: List[VersionKey] = []
    optional: List[VersionKey] = []

    for req in await client.requirements(version):
        if req.dep_type.is_regular():
            regular.append(req.version_key)
        elif req.dep_type.has_attr(DependencyAttr.OPT):
            optional.append(req.version_key)

    child_names = {c.name for c in children}
    for opt in optional:
        if opt.name in child_names:
            continue
        # Optional dependencies are also listed as regular ones
        for i, dep in enumerate(regular):
            if dep.name == opt.name:
                del regular[i]
                break

    system = version.semver()
    for dep in regular:
        constraint = system.parse_constraint(_requirement_text(dep.version))
        if not any(c.name == dep.name and _matches(constraint, c.version) for c in children):
            logger.debug("%s: requirement %s %s is not met", version, dep.name, dep.version)
            return False

    return True


def _matches(constraint: Constraint, version: str) -> bool:
    try:
        return constraint.match(version)
    except VersionError:
        return False
