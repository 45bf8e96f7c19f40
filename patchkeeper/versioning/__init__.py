"""
Ecosystem-aware version systems for patchkeeper.

Each ecosystem maps to one :class:`VersionSystem`; look it up with
:func:`get_system`::

    >>> from patchkeeper.versioning import get_system
    >>> get_system("npm").parse_constraint("^1.0.0").match("1.4.2")
    True
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Union

from patchkeeper.exceptions import VersionError
from patchkeeper.versioning.npm import NpmSystem
from patchkeeper.versioning.pep440 import Pep440System
from patchkeeper.versioning.base import Constraint, ConstraintSet, Diff, VersionSystem

_SYSTEMS: Dict[str, VersionSystem] = {
    "npm": NpmSystem(),
    "PyPI": Pep440System(),
}


def get_system(ecosystem: Union[str, Enum]) -> VersionSystem:
    """Return the version system for *ecosystem*.

    Args:
        ecosystem: An :class:`~patchkeeper.models.graph.Ecosystem` member or
            its OSV name (``"npm"``, ``"PyPI"``).

    Raises:
        VersionError: No version system is registered for *ecosystem*.
    """
    key = ecosystem.value if isinstance(ecosystem, Enum) else ecosystem
    try:
        return _SYSTEMS[key]
    except KeyError:
        raise VersionError(
            f"No version system registered for ecosystem {key!r}",
            system=str(key),
        ) from None


__all__ = [
    "Constraint",
    "ConstraintSet",
    "Diff",
    "NpmSystem",
    "Pep440System",
    "VersionSystem",
    "get_system",
]
