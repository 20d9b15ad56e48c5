"""
Executable module for buildkeeper.

Running:
    python -m buildkeeper

is equivalent to:
    buildkeeper

This module forwards execution to the CLI entrypoint defined in
`buildkeeper.cli`.
"""

from __future__ import annotations

import sys


def _print_startup_error(exc: ImportError) -> None:
    """Report a CLI import failure with enough context to debug it."""
    sys.stderr.write("buildkeeper CLI could not be loaded.\n")
    sys.stderr.write(f"Python version : {sys.version}\n")
    try:
        from buildkeeper.__version__ import __version__

        sys.stderr.write(f"buildkeeper version: {__version__}\n")
    except ImportError:
        sys.stderr.write("buildkeeper version: <unknown>\n")
    sys.stderr.write(f"ImportError: {exc}\n")


def main() -> int:
    """
    Main entrypoint when executing `python -m buildkeeper`.

    Returns:
        Exit code returned by the CLI.
    """
    try:
        # Import lazily so dependencies are only loaded during CLI use
        from buildkeeper.cli import main as cli_main
    except ImportError as exc:
        _print_startup_error(exc)
        return 1

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
