"""Semantic-versioning system for the npm ecosystem.

Backed by :mod:`semantic_version`, whose :class:`~semantic_version.NpmSpec`
understands npm range syntax natively: caret and tilde ranges, x-ranges,
hyphen ranges and ``||`` unions.
"""

from __future__ import annotations

from typing import Tuple

import semantic_version

from patchkeeper.constants import WILDCARD
from patchkeeper.versioning.base import VersionSystem


class NpmSystem(VersionSystem):
    """Version semantics for npm packages."""

    name = "npm semver"

    def _native_version(self, text: str) -> semantic_version.Version:
        return semantic_version.Version(text.strip())

    def _native_constraint(self, text: str) -> semantic_version.NpmSpec:
        spec = text.strip() or WILDCARD
        return semantic_version.NpmSpec(spec)

    def _native_match(
        self,
        constraint: semantic_version.NpmSpec,
        version: semantic_version.Version,
    ) -> bool:
        return constraint.match(version)

    def _release(self, version: semantic_version.Version) -> Tuple[int, int, int]:
        return version.major, version.minor, version.patch
