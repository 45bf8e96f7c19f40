"""
patchkeeper: in-place vulnerability remediation for resolved dependency graphs.

Given a lockfile's resolved dependency graph and a vulnerability database,
patchkeeper answers: *which single-package version bumps fix which
vulnerabilities, and which vulnerabilities cannot be fixed without a full
re-resolution?*

Typical usage::

    from patchkeeper import RemediationOptions, compute_in_place_patches

    result = await compute_in_place_patches(client, graph, RemediationOptions())
    for patch in result.patches:
        print(patch.pkg.name, patch.orig_version, "->", patch.new_version)
"""

from __future__ import annotations

from patchkeeper.__version__ import __version__
from patchkeeper.core.options import RemediationOptions
from patchkeeper.core.in_place import compute_in_place_patches
from patchkeeper.models import Graph, InPlacePatch, InPlaceResult, ResolutionVuln

__author__ = "patchkeeper Contributors"
__license__ = "Apache-2.0"
__description__ = "In-place vulnerability patches for resolved dependency graphs."

__all__ = [
    "__version__",
    "Graph",
    "InPlacePatch",
    "InPlaceResult",
    "ResolutionVuln",
    "RemediationOptions",
    "compute_in_place_patches",
]
