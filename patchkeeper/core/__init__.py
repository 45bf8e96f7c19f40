"""
Core functionality exports for patchkeeper.

Importing from here keeps user-facing imports clean and stable:

    from patchkeeper.core import compute_in_place_patches, RemediationOptions
"""

from __future__ import annotations

from patchkeeper.core.options import RemediationOptions
from patchkeeper.core.loader import load_graph, load_osv_records
from patchkeeper.core.in_place import compute_in_place_patches, find_fixed_version
from patchkeeper.core.aggregator import VulnerabilityAggregate, aggregate_vulnerabilities
from patchkeeper.core.chains import (
    DependencyChain,
    chain_constrains,
    chain_is_dev,
    compute_chains,
)
from patchkeeper.core.constraints import (
    build_constraint_set,
    dependencies_satisfied,
    dependent_constraints,
)

__all__ = [
    "DependencyChain",
    "RemediationOptions",
    "VulnerabilityAggregate",
    "aggregate_vulnerabilities",
    "build_constraint_set",
    "chain_constrains",
    "chain_is_dev",
    "compute_chains",
    "compute_in_place_patches",
    "dependencies_satisfied",
    "dependent_constraints",
    "find_fixed_version",
    "load_graph",
    "load_osv_records",
]
