"""
Declared-dependency models for patchkeeper.

A registry reports each release's requirements as
:class:`RequirementVersion` entries.  Each carries a
:class:`DependencyType` describing *how* the dependency is declared;
only the plain (regular) and optional kinds are interpreted by the
remediation engine.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass, field
from typing import FrozenSet

from patchkeeper.models.graph import VersionKey


class DependencyAttr(Enum):
    """Attributes that qualify a declared dependency."""

    OPT = "optional"
    DEV = "dev"
    PEER = "peer"
    BUNDLED = "bundled"


@dataclass(frozen=True)
class DependencyType:
    """Set of attributes on a declared dependency.

    A dependency with no attributes is *regular*: it is installed
    unconditionally at runtime.
    """

    attrs: FrozenSet[DependencyAttr] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attrs", frozenset(self.attrs))

    @classmethod
    def of(cls, *attrs: DependencyAttr) -> "DependencyType":
        return cls(frozenset(attrs))

    def is_regular(self) -> bool:
        return not self.attrs

    def has_attr(self, attr: DependencyAttr) -> bool:
        return attr in self.attrs


REGULAR = DependencyType()
OPTIONAL = DependencyType.of(DependencyAttr.OPT)


@dataclass(frozen=True)
class RequirementVersion:
    """One requirement declared by a package release.

    Attributes:
        version_key: Target package with the requirement text as its
            version (kind ``REQUIREMENT``).
        dep_type: How the dependency is declared.
    """

    version_key: VersionKey
    dep_type: DependencyType = REGULAR

    @property
    def name(self) -> str:
        return self.version_key.name

