"""
Command-line interface for buildkeeper.

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

from buildkeeper.config import load_config
from buildkeeper.__version__ import __version__
from buildkeeper.context import BuildKeeperContext
from buildkeeper.exceptions import ConfigError, BuildKeeperError
from buildkeeper.utils.logger import get_logger, level_for_verbosity, setup_logging
from buildkeeper.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="BUILDKEEPER_CONFIG",
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
    envvar="BUILDKEEPER_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="buildkeeper",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """buildkeeper — build versions and Debian dependency resolution.

    \b
    Available commands:
      buildkeeper version          Compute the version of this build
      buildkeeper resolve          Resolve dependency declarations

    \b
    Examples:
      buildkeeper version --local
      buildkeeper resolve --build bgpd --format table
      buildkeeper -v resolve 'rtbrick-libconfd' 'libssl1.1 (~= ^1\\.1\\.)'

    Use ``buildkeeper COMMAND --help`` for command-specific options.
    """
    # Respect NO_COLOR for logging and console output
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    _configure_logging(verbose)

    try:
        loaded_config = load_config(config)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    buildkeeper_ctx = BuildKeeperContext()
    buildkeeper_ctx.config_path = config or loaded_config.source_path
    buildkeeper_ctx.color = color
    buildkeeper_ctx.verbose = verbose
    buildkeeper_ctx.config = loaded_config
    ctx.obj = buildkeeper_ctx

    logger.debug("buildkeeper v%s", __version__)
    logger.debug("Config path: %s", buildkeeper_ctx.config_path)
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags."""
    level = level_for_verbosity(verbose)
    setup_logging(level=level, verbose=verbose >= 2)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


# Register CLI subcommands
from buildkeeper.commands.version import version  # noqa: E402
from buildkeeper.commands.resolve import resolve  # noqa: E402

cli.add_command(version)
cli.add_command(resolve)


def main() -> int:
    """Main entry point for the buildkeeper CLI.

    Returns:
        Exit code:
            0   Success
            1   Unhandled or application error
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return 0

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except click.exceptions.Abort:
        print_warning("\nOperation cancelled by user")
        return 130

    except BuildKeeperError as exc:
        print_error(str(exc))
        logger.debug(
            "BuildKeeperError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
