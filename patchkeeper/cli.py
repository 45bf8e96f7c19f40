"""
Command-line interface for patchkeeper.

This module provides the main CLI entry point and handles global options,
configuration loading, and command registration.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from patchkeeper.config import load_config
from patchkeeper.__version__ import __version__
from patchkeeper.context import PatchKeeperContext
from patchkeeper.exceptions import ConfigError, PatchKeeperError
from patchkeeper.utils.logger import get_logger, setup_logging
from patchkeeper.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="PATCHKEEPER_CONFIG",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="PATCHKEEPER_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="patchkeeper",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """patchkeeper: in-place vulnerability patches for resolved dependency graphs.

    \b
    Available commands:
      patchkeeper inplace          Propose single-package upgrades that fix vulnerabilities

    \b
    Examples:
      patchkeeper inplace graph.json --vulns osv.json
      patchkeeper inplace graph.json --vulns osv.json --registry registry.json
      patchkeeper -v inplace graph.json --vulns osv.json --format json

    Use ``patchkeeper COMMAND --help`` for command-specific options.
    """
    _configure_logging(verbose)

    # Respect NO_COLOR for downstream libraries
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    try:
        loaded_config = load_config(config)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    patchkeeper_ctx = PatchKeeperContext()
    patchkeeper_ctx.config_path = config or loaded_config.source_path
    patchkeeper_ctx.color = color
    patchkeeper_ctx.verbose = verbose
    patchkeeper_ctx.config = loaded_config
    ctx.obj = patchkeeper_ctx

    logger.debug("patchkeeper v%s", __version__)
    logger.debug("Config path: %s", patchkeeper_ctx.config_path)
    if loaded_config.source_path:
        logger.debug("Loaded configuration: %s", loaded_config.to_log_dict())
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags."""
    if verbose <= 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    setup_logging(level=level, verbose=verbose > 1)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


# Register CLI subcommands
from patchkeeper.commands.inplace import inplace  # noqa: E402

cli.add_command(inplace)


def main() -> int:
    """Main entry point for the patchkeeper CLI.

    Returns:
        Exit code:
            0   No vulnerabilities found
            1   Vulnerabilities found, or an error occurred
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        result = cli(standalone_mode=False)
        return result if isinstance(result, int) else 0

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except PatchKeeperError as exc:
        print_error(str(exc))
        logger.debug(
            "PatchKeeperError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except (KeyboardInterrupt, click.exceptions.Abort):
        print_warning("\nOperation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
