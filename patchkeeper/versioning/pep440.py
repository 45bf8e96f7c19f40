"""PEP 440 version system for the PyPI ecosystem.

Backed by :mod:`packaging`.  Requirement text uses PEP 440 specifier
syntax (``>=1.2,<2``); a bare version (``1.2.3``) is read as an exact pin
and ``*`` or an empty string means "any version".
"""

from __future__ import annotations

from typing import Tuple

from packaging.version import InvalidVersion, Version, parse
from packaging.specifiers import SpecifierSet

from patchkeeper.constants import WILDCARD
from patchkeeper.versioning.base import VersionSystem


class Pep440System(VersionSystem):
    """Version semantics for Python packages."""

    name = "PEP 440"

    def _native_version(self, text: str) -> Version:
        parsed = parse(text)
        # Older packaging releases return LegacyVersion instead of raising
        if not isinstance(parsed, Version):
            raise InvalidVersion(text)
        return parsed

    def _native_constraint(self, text: str) -> SpecifierSet:
        spec = text.strip()
        if spec in ("", WILDCARD):
            return SpecifierSet("")
        if spec[0].isdigit():
            spec = f"=={spec}"
        return SpecifierSet(spec)

    def _native_match(self, constraint: SpecifierSet, version: Version) -> bool:
        return constraint.contains(version)

    def _release(self, version: Version) -> Tuple[int, int, int]:
        release = version.release
        major = release[0] if len(release) > 0 else 0
        minor = release[1] if len(release) > 1 else 0
        patch = release[2] if len(release) > 2 else 0
        return major, minor, patch
