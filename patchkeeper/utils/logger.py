"""
Logging utilities for patchkeeper.

All patchkeeper loggers live under the ``patchkeeper`` namespace. Library
code only ever calls :func:`get_logger`; handlers are installed by the CLI
through :func:`setup_logging`, so embedding applications keep full control
of their own logging configuration.
"""

from __future__ import annotations

import os
import sys
import logging
import threading
from typing import IO, Optional

from patchkeeper.constants import (
    LOG_DATE_FORMAT,
    LOG_DEFAULT_FORMAT,
    LOG_VERBOSE_FORMAT,
)

ROOT_LOGGER_NAME = "patchkeeper"

_logging_configured: bool = False
_lock = threading.Lock()


class ColoredFormatter(logging.Formatter):
    """Logging formatter that colours the level name on TTYs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
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
        if not (self.use_color and self._should_use_color()):
            return super().format(record)

        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)

        # Colour a copy so other handlers see the plain level name
        original = record.levelname
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original

    @staticmethod
    def _should_use_color() -> bool:
        """Return True when ANSI colours can be emitted."""
        if os.environ.get("NO_COLOR") or os.environ.get("CI"):
            return False
        try:
            return sys.stderr.isatty()
        except (AttributeError, OSError):
            return False


def setup_logging(
    *,
    level: int = logging.INFO,
    verbose: bool = False,
    stream: Optional[IO[str]] = None,
) -> None:
    """Install a single stream handler on the ``patchkeeper`` logger.

    Safe to call repeatedly; previous handlers are replaced.

    Args:
        level: Logging level (e.g. ``logging.DEBUG``).
        verbose: Use the verbose format with timestamps and logger names.
        stream: Output stream; defaults to ``sys.stderr``.
    """
    global _logging_configured

    with _lock:
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.handlers.clear()
        root_logger.setLevel(level)

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(
            ColoredFormatter(
                LOG_VERBOSE_FORMAT if verbose else LOG_DEFAULT_FORMAT,
                datefmt=LOG_DATE_FORMAT,
                use_color=not os.environ.get("NO_COLOR"),
            )
        )

        root_logger.addHandler(handler)
        root_logger.propagate = False
        _logging_configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger inside the ``patchkeeper`` hierarchy.

    Args:
        name: Short or dotted logger name, e.g. ``"core.in_place"``.

    Returns:
        The namespaced logger.
    """
    if not name or name == ROOT_LOGGER_NAME:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
    elif name.startswith(f"{ROOT_LOGGER_NAME}."):
        logger = logging.getLogger(name)
    else:
        logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")

    # Library-safe default: stay silent until the application configures us
    if not logger.handlers and (not logger.parent or not logger.parent.handlers):
        logger.addHandler(logging.NullHandler())

    return logger


def disable_logging() -> None:
    """Silence all patchkeeper logging output."""
    global _logging_configured

    with _lock:
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.handlers.clear()
        root_logger.addHandler(logging.NullHandler())
        root_logger.setLevel(logging.NOTSET)
        _logging_configured = False
