"""Offline registry snapshot.

:class:`StaticDependencyClient` answers registry queries from an
in-memory description of every known release, which makes remediation
runs reproducible without network access.  The snapshot format is::

    {
      "packages": [
        {
          "ecosystem": "npm",
          "name": "lodash",
          "versions": {
            "4.17.21": {
              "dependencies": {"dep": "^1.0.0"},
              "optionalDependencies": {"fsevents": "^2.0.0"}
            }
          }
        }
      ]
    }

Optional dependencies are reported twice, once plain and once with the
``OPT`` attribute, the way npm registry metadata lists them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from patchkeeper.exceptions import GraphError, RegistryError
from patchkeeper.utils.filesystem import read_json_file
from patchkeeper.utils.logger import get_logger
from patchkeeper.clients.base import select_matching
from patchkeeper.models.dependency import OPTIONAL, REGULAR, RequirementVersion
from patchkeeper.models.graph import PackageKey, VersionKey, VersionType

logger = get_logger("clients.static")

__all__ = ["StaticDependencyClient"]


class StaticDependencyClient:
    """Dependency client backed by a fixed set of releases.

    Args:
        releases: Package -> version -> declared requirements.
    """

    def __init__(
        self,
        releases: Mapping[PackageKey, Mapping[str, List[RequirementVersion]]],
    ) -> None:
        self._releases: Dict[PackageKey, Dict[str, List[RequirementVersion]]] = {
            pkg: {ver: list(reqs) for ver, reqs in versions.items()}
            for pkg, versions in releases.items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StaticDependencyClient":
        """Build a client from a decoded snapshot document.

        Raises:
            GraphError: The document does not follow the snapshot format.
        """
        releases: Dict[PackageKey, Dict[str, List[RequirementVersion]]] = {}

        try:
            for entry in data["packages"]:
                pkg = PackageKey(entry["ecosystem"], entry["name"])
                versions = releases.setdefault(pkg, {})
                for version, meta in (entry.get("versions") or {}).items():
                    versions[version] = _release_requirements(pkg, meta or {})
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise GraphError(f"Malformed registry snapshot: {exc}") from exc

        return cls(releases)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "StaticDependencyClient":
        """Load a snapshot from a JSON file.

        Raises:
            GraphError: The document does not follow the snapshot format.
            FileOperationError: The file cannot be read or is not JSON.
        """
        data = read_json_file(path)
        if not isinstance(data, dict):
            raise GraphError("Registry snapshot must be a JSON object", file_path=str(path))

        try:
            client = cls.from_dict(data)
        except GraphError as exc:
            raise GraphError(exc.message, file_path=str(path)) from exc

        logger.info("Loaded registry snapshot for %d package(s) from %s", len(client), path)
        return client

    # ------------------------------------------------------------------
    # DependencyClient
    # ------------------------------------------------------------------

    async def versions(self, package: PackageKey) -> List[VersionKey]:
        """Return every version of *package* in the snapshot.

        Raises:
            RegistryError: The package is not in the snapshot.
        """
        return [VersionKey(package, v) for v in self._package(package)]

    async def requirements(self, version: VersionKey) -> List[RequirementVersion]:
        """Return the requirements of one release.

        Raises:
            RegistryError: The release is not in the snapshot.
        """
        releases = self._package(version.package)
        if not version.is_concrete or version.version not in releases:
            raise RegistryError(
                f"Unknown release {version}",
                package_name=version.name,
            )
        return list(releases[version.version])

    async def matching_versions(self, requirement: VersionKey) -> List[VersionKey]:
        return select_matching(await self.versions(requirement.package), requirement)

    def _package(self, package: PackageKey) -> Dict[str, List[RequirementVersion]]:
        try:
            return self._releases[package]
        except KeyError:
            raise RegistryError(
                f"Package '{package}' not found in registry snapshot",
                package_name=package.name,
            ) from None

    def __len__(self) -> int:
        return len(self._releases)


def _release_requirements(
    parent: PackageKey,
    meta: Mapping[str, Any],
) -> List[RequirementVersion]:
    reqs: List[RequirementVersion] = []
    regular: Mapping[str, str] = meta.get("dependencies") or {}
    optional: Mapping[str, str] = meta.get("optionalDependencies") or {}

    def key(name: str, text: str) -> VersionKey:
        return VersionKey(PackageKey(parent.ecosystem, name), text, VersionType.REQUIREMENT)

    for name, text in regular.items():
        reqs.append(RequirementVersion(key(name, text), REGULAR))
    for name, text in optional.items():
        if name not in regular:
            reqs.append(RequirementVersion(key(name, text), REGULAR))
        reqs.append(RequirementVersion(key(name, text), OPTIONAL))
    return reqs
