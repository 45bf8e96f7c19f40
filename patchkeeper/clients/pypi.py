"""PyPI dependency client for patchkeeper.

Provides an async-safe cache over the PyPI JSON API so package listings
and per-release metadata documents are reused across every vulnerability
that asks about the same package.

Typical usage::

    from patchkeeper.utils.http import HTTPClient
    from patchkeeper.clients.pypi import PyPIDependencyClient

    async with HTTPClient() as http:
        registry = PyPIDependencyClient(http)
        versions = await registry.versions(PackageKey(Ecosystem.PYPI, "flask"))
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from packaging.requirements import InvalidRequirement, Requirement

from patchkeeper.exceptions import RegistryError
from patchkeeper.utils.http import HTTPClient
from patchkeeper.utils.logger import get_logger
from patchkeeper.clients.base import select_matching
from patchkeeper.constants import PYPI_JSON_API, PYPI_VERSION_JSON_API, WILDCARD
from patchkeeper.models.dependency import OPTIONAL, REGULAR, RequirementVersion
from patchkeeper.models.graph import Ecosystem, PackageKey, VersionKey, VersionType

logger = get_logger("clients.pypi")

__all__ = ["PyPIDependencyClient"]


class PyPIDependencyClient:
    """Registry lookups against ``pypi.org``.

    ``/pypi/{pkg}/json`` and ``/pypi/{pkg}/{version}/json`` responses are
    cached for the lifetime of the client.  A semaphore limits concurrent
    fetches; the cache is checked again once it is acquired so waiters
    reuse results fetched in the meantime.

    Args:
        http_client: A pre-configured :class:`HTTPClient` instance.
        concurrent_limit: Maximum number of PyPI fetches in flight.
    """

    def __init__(self, http_client: HTTPClient, concurrent_limit: int = 10) -> None:
        self.http_client = http_client
        self._semaphore = asyncio.Semaphore(concurrent_limit)

        # package -> releases that have at least one uploaded file
        self._versions: Dict[PackageKey, List[VersionKey]] = {}

        # concrete release -> declared requirements
        self._requirements: Dict[VersionKey, List[RequirementVersion]] = {}

    # ------------------------------------------------------------------
    # DependencyClient
    # ------------------------------------------------------------------

    async def versions(self, package: PackageKey) -> List[VersionKey]:
        """Return every release of *package* that has uploaded files.

        Raises:
            RegistryError: The package is not a PyPI package or does not
                exist.
        """
        _require_pypi(package)

        if package in self._versions:
            return list(self._versions[package])

        async with self._semaphore:
            if package in self._versions:
                return list(self._versions[package])

            data = await self._fetch(PYPI_JSON_API.format(package=package.name), package)
            releases: Dict[str, Any] = data.get("releases") or {}
            keys = [
                VersionKey(package, version)
                for version, files in releases.items()
                # Skip phantom versions that have no uploaded files
                if files
            ]
            self._versions[package] = keys
            logger.debug("Fetched %d release(s) of %s", len(keys), package)
            return list(keys)

    async def requirements(self, version: VersionKey) -> List[RequirementVersion]:
        """Return the requirements declared by one release.

        ``requires_dist`` entries guarded by an ``extra`` marker are
        reported twice, once plain and once optional.  Entries whose
        other environment markers do not hold for the running interpreter
        are dropped, as are entries that cannot be parsed.

        Raises:
            RegistryError: The release is not a concrete PyPI version or
                does not exist.
        """
        _require_pypi(version.package)
        if not version.is_concrete:
            raise RegistryError(
                f"Requirements are only available for concrete versions, got {version}",
                package_name=version.name,
            )

        if version in self._requirements:
            return list(self._requirements[version])

        async with self._semaphore:
            if version in self._requirements:
                return list(self._requirements[version])

            url = PYPI_VERSION_JSON_API.format(package=version.name, version=version.version)
            data = await self._fetch(url, version.package)
            reqs = _parse_requires_dist((data.get("info") or {}).get("requires_dist") or [])
            self._requirements[version] = reqs
            return list(reqs)

    async def matching_versions(self, requirement: VersionKey) -> List[VersionKey]:
        """Return releases satisfying *requirement*, ascending."""
        return select_matching(await self.versions(requirement.package), requirement)

    # ------------------------------------------------------------------
    # Network helpers (private)
    # ------------------------------------------------------------------

    async def _fetch(self, url: str, package: PackageKey) -> Dict[str, Any]:
        try:
            return await self.http_client.get_json(url)
        except RegistryError as exc:
            raise RegistryError(
                f"Package '{package.name}' not found on PyPI",
                package_name=package.name,
                url=url,
                status_code=exc.status_code,
            ) from exc


def _require_pypi(package: PackageKey) -> None:
    if package.ecosystem is not Ecosystem.PYPI:
        raise RegistryError(
            f"PyPI client cannot serve {package.ecosystem} packages",
            package_name=package.name,
        )


def _parse_requires_dist(entries: List[str]) -> List[RequirementVersion]:
    """Convert PEP 508 ``requires_dist`` strings to requirement versions.

    Example::

        >>> _parse_requires_dist(['idna<4,>=2.5', 'PySocks!=1.5.7; extra == "socks"'])
        [RequirementVersion(... 'idna' ... '<4,>=2.5' ...),
         RequirementVersion(... 'pysocks' ... '!=1.5.7' ...),
         RequirementVersion(... 'pysocks' ... '!=1.5.7' ..., dep_type=OPTIONAL)]
    """
    result: List[RequirementVersion] = []

    for entry in entries:
        try:
            req = Requirement(entry)
        except InvalidRequirement as exc:
            logger.debug("Skipping unparsable requirement %r: %s", entry, exc)
            continue

        optional = False
        if req.marker is not None:
            if "extra" in str(req.marker):
                optional = True
            elif not req.marker.evaluate():
                continue

        text = str(req.specifier) or WILDCARD
        key = VersionKey(
            PackageKey(Ecosystem.PYPI, req.name),
            text,
            VersionType.REQUIREMENT,
        )
        # Extras are listed both plain and optional, like npm metadata
        result.append(RequirementVersion(key, REGULAR))
        if optional:
            result.append(RequirementVersion(key, OPTIONAL))

    return result
