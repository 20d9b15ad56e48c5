"""
Console output utilities for buildkeeper using Rich.

This module provides user-facing output helpers for CLI commands.
For diagnostic or debug output, use :mod:`buildkeeper.utils.logger`.

Build scripts often capture stdout (the computed version, install lines),
so status messages go to stderr and only results are printed to stdout.
"""

from __future__ import annotations

import os
import sys
import threading
from typing import Any, Dict, List, Optional

from rich.table import Table
from rich.theme import Theme
from rich.console import Console

BUILDKEEPER_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
        "highlight": "bold magenta",
    }
)

_console: Optional[Console] = None
_err_console: Optional[Console] = None
_console_lock = threading.Lock()


def _should_use_color(stream: Any) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("CI"):
        return False
    try:
        return stream.isatty()
    except (AttributeError, OSError):
        return False


def _make_console(*, stderr: bool) -> Console:
    use_color = _should_use_color(sys.stderr if stderr else sys.stdout)
    return Console(
        theme=BUILDKEEPER_THEME,
        no_color=not use_color,
        highlight=use_color,
        stderr=stderr,
    )


def _get_console() -> Console:
    """Return the singleton stdout console."""
    global _console

    if _console is None:
        with _console_lock:
            if _console is None:
                _console = _make_console(stderr=False)
    return _console


def _get_err_console() -> Console:
    """Return the singleton stderr console used for status messages."""
    global _err_console

    if _err_console is None:
        with _console_lock:
            if _err_console is None:
                _err_console = _make_console(stderr=True)
    return _err_console


def reconfigure_console() -> None:
    """Drop cached consoles so the next call re-reads ``NO_COLOR``/``CI``."""
    global _console, _err_console
    with _console_lock:
        _console = None
        _err_console = None


# ---------------------------------------------------------------------------
# Status messages (stderr)
# ---------------------------------------------------------------------------


def print_success(message: str, *, prefix: str = "[OK]") -> None:
    _get_err_console().print(f"{prefix} {message}", style="success")


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    _get_err_console().print(f"{prefix} {message}", style="error")


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    _get_err_console().print(f"{prefix} {message}", style="warning")


# ---------------------------------------------------------------------------
# Results (stdout)
# ---------------------------------------------------------------------------


def print_result(text: str) -> None:
    """Print a machine-consumable result line without markup or wrapping."""
    _get_console().print(text, markup=False, highlight=False, soft_wrap=True)


def print_table(
    data: List[Dict[str, Any]],
    *,
    headers: Optional[List[str]] = None,
    title: Optional[str] = None,
    column_styles: Optional[Dict[str, Dict[str, Any]]] = None,
) -> None:
    """Render rows as a Rich table.

    Args:
        data: List of row dictionaries.
        headers: Column order. Defaults to keys of the first row.
        title: Optional table title.
        column_styles: Per-column ``style``/``justify``/``no_wrap`` settings.
    """
    if not data:
        return

    if headers is None:
        headers = list(data[0].keys())

    table = Table(title=title, show_header=True, header_style="bold")

    column_styles = column_styles or {}
    for header in headers:
        config = column_styles.get(header, {})
        table.add_column(
            header,
            style=config.get("style"),
            justify=config.get("justify", "default"),
            no_wrap=config.get("no_wrap", False),
            overflow="fold",
        )

    for row in data:
        table.add_row(*(str(row.get(h, "")) for h in headers))

    _get_console().print(table)


def colorize_origin(origin: str) -> str:
    """Return Rich markup coloring how a dependency was resolved.

    Args:
        origin: Resolution origin such as ``"branch"`` or ``"daily"``.
    """
    color_map = {
        "branch": "green",
        "development": "cyan",
        "daily": "yellow",
        "unconstrained": "red",
        "regex": "green",
        "exact": "green",
        "passthrough": "dim",
    }

    color = color_map.get(origin.lower())
    return f"[{color}]{origin}[/{color}]" if color else origin
