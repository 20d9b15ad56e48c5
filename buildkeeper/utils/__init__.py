"""
Utility helpers for buildkeeper.

This package provides reusable utilities used across buildkeeper, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Filesystem safety helpers
- Async HTTP client utilities
- Version ordering helpers

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

from buildkeeper.utils.filesystem import safe_read_file, safe_write_file

from buildkeeper.utils.logger import (
    get_logger,
    level_for_verbosity,
    setup_logging,
)

from buildkeeper.utils.console import (
    colorize_origin,
    print_error,
    print_result,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)

from buildkeeper.utils.http import HTTPClient

from buildkeeper.utils.version_utils import (
    compare_for_selection,
    pick_highest,
    version_sort_key,
)

__all__ = [
    # Console
    "print_error",
    "print_table",
    "print_result",
    "print_success",
    "print_warning",
    "reconfigure_console",
    "colorize_origin",
    # Logging
    "get_logger",
    "setup_logging",
    "level_for_verbosity",
    # Filesystem
    "safe_read_file",
    "safe_write_file",
    # HTTP
    "HTTPClient",
    # Version ordering
    "pick_highest",
    "version_sort_key",
    "compare_for_selection",
]
