"""
Registry and vulnerability database clients for patchkeeper.

Example:
    >>> from patchkeeper.clients import OSVDatabase, RemediationClient
"""

from __future__ import annotations

from patchkeeper.clients.osv import OSVDatabase
from patchkeeper.clients.pypi import PyPIDependencyClient
from patchkeeper.clients.static import StaticDependencyClient
from patchkeeper.clients.base import (
    DependencyClient,
    ManifestClassifier,
    ManifestGroups,
    RemediationClient,
    ResolutionClient,
    VulnerabilityMatcher,
    select_matching,
)

__all__ = [
    "DependencyClient",
    "ManifestClassifier",
    "ManifestGroups",
    "OSVDatabase",
    "PyPIDependencyClient",
    "RemediationClient",
    "ResolutionClient",
    "StaticDependencyClient",
    "VulnerabilityMatcher",
    "select_matching",
]
