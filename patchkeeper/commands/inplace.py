"""Inplace command implementation for patchkeeper.

Reads a resolved dependency graph and a set of OSV vulnerability records,
then proposes single-package version changes that remove vulnerabilities
without re-resolving the graph.

The command wires together:

1. **load_graph / load_osv_records**: read the input documents.
2. **OSVDatabase**: matches graph nodes against the vulnerability records.
3. A registry client: :class:`StaticDependencyClient` when ``--registry``
   is given, otherwise :class:`PyPIDependencyClient` over HTTP.
4. **compute_in_place_patches**: the remediation engine.

Typical usage::

    # Table report
    $ patchkeeper inplace graph.json --vulns osv.json

    # Offline, machine-readable
    $ patchkeeper inplace graph.json --vulns osv.json --registry registry.json --format json

    # Never touch lodash, allow major bumps elsewhere
    $ patchkeeper inplace graph.json --vulns osv.json --avoid lodash --allow-major
"""

from __future__ import annotations

import sys
import json
import click
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from patchkeeper.exceptions import PatchKeeperError, VersionError
from patchkeeper.context import pass_context, PatchKeeperContext
from patchkeeper.models import Graph, InPlacePatch, InPlaceResult, ResolutionVuln
from patchkeeper.clients import (
    DependencyClient,
    ManifestGroups,
    OSVDatabase,
    PyPIDependencyClient,
    RemediationClient,
    StaticDependencyClient,
)
from patchkeeper.core import (
    RemediationOptions,
    compute_in_place_patches,
    load_graph,
    load_osv_records,
)
from patchkeeper.utils import (
    HTTPClient,
    colorize_diff,
    get_logger,
    print_error,
    print_success,
    print_table,
    print_warning,
)

logger = get_logger("commands.inplace")


@click.command()
@click.argument(
    "graph_file",
    metavar="GRAPH",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--vulns",
    "vulns_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="OSV vulnerability records (JSON).",
)
@click.option(
    "--registry",
    "registry_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Offline registry snapshot (JSON). Defaults to querying PyPI.",
)
@click.option(
    "--allow-major/--no-allow-major",
    default=None,
    help="Allow upgrades across major versions.",
)
@click.option(
    "--avoid",
    "avoid",
    multiple=True,
    metavar="PKG",
    help="Package that must not be changed (repeatable).",
)
@click.option(
    "--ignore-vuln",
    "ignore_vuln",
    multiple=True,
    metavar="ID",
    help="Vulnerability ID or alias to ignore (repeatable).",
)
@click.option(
    "--include-dev/--no-include-dev",
    default=None,
    help="Also fix vulnerabilities only reachable through dev dependencies.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@pass_context
def inplace(
    ctx: PatchKeeperContext,
    graph_file: Path,
    vulns_file: Path,
    registry_file: Optional[Path],
    allow_major: Optional[bool],
    avoid: Tuple[str, ...],
    ignore_vuln: Tuple[str, ...],
    include_dev: Optional[bool],
    format: str,
) -> None:
    """Propose in-place upgrades that fix vulnerabilities in GRAPH.

    Each proposal changes exactly one package version and keeps every
    existing requirement in the graph satisfied.  Vulnerabilities that
    cannot be fixed that way are listed as unfixable.

    Command-line flags override values from the configuration file.

    Exits:
        0 if the graph has no vulnerabilities in scope, 1 if
        vulnerabilities were found or an error occurred.
    """
    options = _build_options(ctx, allow_major, avoid, ignore_vuln, include_dev)
    timeout = ctx.config.timeout

    try:
        coro = _inplace_async(graph_file, vulns_file, registry_file, options)
        if timeout > 0:
            coro = asyncio.wait_for(coro, timeout)
        result = asyncio.run(coro)
    except asyncio.TimeoutError:
        print_error(f"Remediation did not finish within {timeout}s")
        sys.exit(1)
    except PatchKeeperError as e:
        print_error(f"{e}")
        sys.exit(1)

    if format == "json":
        _display_json(result)
    else:
        _display_table(result)

    sys.exit(1 if result.has_vulnerabilities() else 0)


def _build_options(
    ctx: PatchKeeperContext,
    allow_major: Optional[bool],
    avoid: Tuple[str, ...],
    ignore_vuln: Tuple[str, ...],
    include_dev: Optional[bool],
) -> RemediationOptions:
    """Merge configuration and CLI flags into :class:`RemediationOptions`."""
    config = ctx.config
    overrides: Dict[str, Any] = {}

    if allow_major is not None:
        overrides["allow_major"] = allow_major
    if include_dev is not None:
        overrides["include_dev"] = include_dev
    if avoid:
        overrides["avoid_pkgs"] = frozenset(config.avoid_packages) | frozenset(avoid)
    if ignore_vuln:
        overrides["ignore_vulns"] = frozenset(config.ignore_vulns) | frozenset(ignore_vuln)

    options = RemediationOptions.from_config(config, **overrides)
    logger.debug("Remediation options: %s", options)
    return options


# ---------------------------------------------------------------------------
# Async orchestration
# ---------------------------------------------------------------------------


async def _inplace_async(
    graph_file: Path,
    vulns_file: Path,
    registry_file: Optional[Path],
    options: RemediationOptions,
) -> InPlaceResult:
    """Load the inputs and run the remediation engine.

    Raises:
        PatchKeeperError: An input cannot be loaded or a registry lookup
            failed.
    """
    graph, groups = load_graph(graph_file)
    database = OSVDatabase.from_records(load_osv_records(vulns_file))

    if registry_file is not None:
        registry = StaticDependencyClient.from_file(registry_file)
        return await _run(graph, groups, database, registry, options)

    async with HTTPClient(max_concurrency=options.max_concurrency) as http:
        registry_client = PyPIDependencyClient(http, concurrent_limit=options.max_concurrency)
        return await _run(graph, groups, database, registry_client, options)


async def _run(
    graph: Graph,
    groups: ManifestGroups,
    database: OSVDatabase,
    registry: DependencyClient,
    options: RemediationOptions,
) -> InPlaceResult:
    client = RemediationClient(database, registry)
    return await compute_in_place_patches(client, graph, options, classifier=groups)


# ---------------------------------------------------------------------------
# Display renderers
# ---------------------------------------------------------------------------


def _display_table(result: InPlaceResult) -> None:
    """Render patches and unfixable vulnerabilities as Rich tables.

    Example::

        ┏━━━━━━━━━━━━━┳━━━━━━━━━━━┳━━━━━━━━━━━┳━━━━━━━━┳━━━━━━━━━━━━━━━━━━━━━━━━┓
        ┃ Package     ┃ Current   ┃ Patched   ┃ Change ┃ Fixes                  ┃
        ┡━━━━━━━━━━━━━╇━━━━━━━━━━━╇━━━━━━━━━━━╇━━━━━━━━╇━━━━━━━━━━━━━━━━━━━━━━━━┩
        │ lodash      │ 4.17.15   │ 4.17.21   │ patch  │ GHSA-p6mc-m468-83gw    │
        └─────────────┴───────────┴───────────┴────────┴────────────────────────┘
    """
    if not result.has_vulnerabilities():
        print_success("No vulnerabilities found")
        return

    if result.patches:
        print_table(
            [_patch_row(p) for p in result.patches],
            title="In-place Patches",
            column_styles={
                "Package": {"style": "bold cyan", "no_wrap": True},
                "Current": {"justify": "center", "style": "dim"},
                "Patched": {"justify": "center", "style": "bold green"},
                "Change": {"justify": "center"},
                "Fixes": {"justify": "left", "no_wrap": False},
            },
            show_row_lines=True,
        )

    if result.unfixable:
        print_table(
            [_unfixable_row(v) for v in result.unfixable],
            title="Unfixable Vulnerabilities",
            column_styles={
                "Vulnerability": {"style": "bold red", "no_wrap": True},
                "Package": {"style": "bold cyan"},
                "Dev only": {"justify": "center"},
                "Via": {"justify": "left", "no_wrap": False},
            },
            show_row_lines=True,
        )

    if result.patches:
        print_warning(
            f"\n{len(result.patches)} patch(es) fix "
            f"{result.fixed_count()} vulnerability occurrence(s)"
        )
    if result.unfixable:
        print_warning(f"{len(result.unfixable)} vulnerability occurrence(s) cannot be fixed in place")


def _patch_row(patch: InPlacePatch) -> Dict[str, str]:
    try:
        change = colorize_diff(
            patch.pkg.semver().difference(patch.orig_version, patch.new_version).value
        )
    except VersionError:
        change = "[dim]-[/dim]"

    return {
        "Package": patch.pkg.name,
        "Current": patch.orig_version,
        "Patched": patch.new_version,
        "Change": change,
        "Fixes": "\n".join(patch.vuln_ids()),
    }


def _unfixable_row(vuln: ResolutionVuln) -> Dict[str, str]:
    packages: List[str] = []
    via: List[str] = []
    for chain in vuln.problem_chains:
        vk, _ = chain.end_dependency()
        label = f"{vk.name}@{vk.version}"
        if label not in packages:
            packages.append(label)
        direct, _ = chain.direct_dependency()
        if direct.name not in via:
            via.append(direct.name)

    return {
        "Vulnerability": vuln.id,
        "Package": "\n".join(packages) or "[dim]-[/dim]",
        "Dev only": "yes" if vuln.dev_only else "no",
        "Via": ", ".join(via) or "[dim]-[/dim]",
    }


def _display_json(result: InPlaceResult) -> None:
    """Render the result as formatted JSON for machine consumption.

    Example::

        {
          "patches": [
            {"ecosystem": "npm", "package": "lodash", "orig_version": "4.17.15",
             "new_version": "4.17.21", "fixes": [...]}
          ],
          "unfixable": [...]
        }
    """
    print(json.dumps(result.to_json(), indent=2))
