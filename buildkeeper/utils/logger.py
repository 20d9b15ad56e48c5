"""
Logging utilities for buildkeeper.

Build jobs read buildkeeper's diagnostics in CI consoles, so every record
carries the short name of the component that produced it (``matcher``,
``fallback``, ``synthesizer``...), optionally colorized when writing to a
terminal. Libraries embedding buildkeeper get a ``NullHandler`` until
:func:`setup_logging` is called.
"""

from __future__ import annotations

import os
import sys
import logging
import threading
from typing import IO, Optional

from buildkeeper.constants import (
    LOG_DATE_FORMAT,
    LOG_DEFAULT_FORMAT,
    LOG_VERBOSE_FORMAT,
)

ROOT_LOGGER_NAME = "buildkeeper"

_lock = threading.Lock()


class ComponentFormatter(logging.Formatter):
    """Formatter that prefixes messages with the emitting component.

    ``buildkeeper.core.matcher`` is rendered as ``matcher:``; records from
    the root ``buildkeeper`` logger get no prefix. Level names are colored
    when ``use_color`` is set and stderr is a terminal.
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[95m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str,
        *,
        datefmt: Optional[str] = None,
        use_color: bool = True,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        original_msg, original_level = record.msg, record.levelname

        component = component_name(record.name)
        if component:
            record.msg = f"{component}: {record.msg}"

        if self.use_color and self._should_use_color():
            color = self.COLORS.get(record.levelname)
            if color:
                record.levelname = f"{color}{record.levelname}{self.RESET}"

        try:
            return super().format(record)
        finally:
            # Other handlers may format the same record.
            record.msg, record.levelname = original_msg, original_level

    @staticmethod
    def _should_use_color() -> bool:
        if os.environ.get("NO_COLOR"):
            return False
        if os.environ.get("CI"):
            return False
        try:
            return sys.stderr.isatty()
        except (AttributeError, OSError):
            return False


def component_name(logger_name: str) -> str:
    """Return the last dotted segment of a buildkeeper logger name."""
    if logger_name == ROOT_LOGGER_NAME:
        return ""
    return logger_name.rsplit(".", 1)[-1]


def level_for_verbosity(verbose: int) -> int:
    """Map the CLI ``-v`` count to a logging level."""
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(
    *,
    level: int = logging.INFO,
    verbose: bool = False,
    stream: Optional[IO[str]] = None,
) -> None:
    """Configure the ``buildkeeper`` logger hierarchy.

    Safe to call repeatedly; each call replaces the previous handler.

    Args:
        level: Logging level (e.g., ``logging.INFO``, ``logging.DEBUG``).
        verbose: Enable verbose formatting with timestamps.
        stream: Output stream; defaults to ``sys.stderr``.
    """
    with _lock:
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.handlers.clear()
        root_logger.setLevel(level)

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(
            ComponentFormatter(
                LOG_VERBOSE_FORMAT if verbose else LOG_DEFAULT_FORMAT,
                datefmt=LOG_DATE_FORMAT,
                use_color=not os.environ.get("NO_COLOR"),
            )
        )

        root_logger.addHandler(handler)
        root_logger.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger within the buildkeeper namespace.

    Args:
        name: Short component name (``"matcher"``) or a full dotted name.
    """
    if not name or name == ROOT_LOGGER_NAME:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
    elif name.startswith(f"{ROOT_LOGGER_NAME}."):
        logger = logging.getLogger(name)
    else:
        logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")

    if not logger.handlers and (not logger.parent or not logger.parent.handlers):
        logger.addHandler(logging.NullHandler())

    return logger

