"""
Unified data model exports for patchkeeper.

Example:
    >>> from patchkeeper.models import Graph, VersionKey, InPlaceResult
"""

from __future__ import annotations

from patchkeeper.models.chain import DependencyChain
from patchkeeper.models.patch import DependencyPatch, InPlacePatch, InPlaceResult
from patchkeeper.models.graph import (
    Ecosystem,
    Edge,
    Graph,
    Node,
    PackageKey,
    VersionKey,
    VersionType,
)
from patchkeeper.models.vulnerability import (
    Affected,
    AffectedRange,
    ResolutionVuln,
    Vulnerability,
)
from patchkeeper.models.dependency import (
    OPTIONAL,
    REGULAR,
    DependencyAttr,
    DependencyType,
    RequirementVersion,
)

__all__ = [
    "Affected",
    "AffectedRange",
    "DependencyAttr",
    "DependencyChain",
    "DependencyPatch",
    "DependencyType",
    "Ecosystem",
    "Edge",
    "Graph",
    "InPlacePatch",
    "InPlaceResult",
    "Node",
    "OPTIONAL",
    "PackageKey",
    "REGULAR",
    "RequirementVersion",
    "ResolutionVuln",
    "VersionKey",
    "VersionType",
    "Vulnerability",
]
