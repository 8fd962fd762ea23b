"""Logging configuration for the podstage CLI."""

import logging
from enum import IntEnum
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler


class LogLevel(IntEnum):
    """Log levels selected by the global CLI flags."""

    QUIET = logging.WARNING
    NORMAL = logging.INFO
    VERBOSE = logging.DEBUG


def resolve_level(verbosity: int = 0, quiet: bool = False, debug: bool = False) -> LogLevel:
    """Map CLI flags to a log level.

    Precedence is quiet > debug > verbosity.
    """
    if quiet:
        return LogLevel.QUIET
    if debug or verbosity >= 1:
        return LogLevel.VERBOSE
    return LogLevel.NORMAL


def configure_logging(
    verbosity: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    stream: TextIO | None = None,
    debug: bool = False,
) -> Console:
    """Configure root logging with a Rich handler.

    Args:
        verbosity: Number of -v flags
        quiet: Only warnings and errors
        no_color: Disable colored output
        stream: Stream the console writes to (stderr when omitted)
        debug: Force debug logging with timestamps and source paths

    Returns:
        The Rich console the log handler writes to
    """
    level = resolve_level(verbosity=verbosity, quiet=quiet, debug=debug)
    detailed = debug or verbosity >= 2

    console = Console(
        file=stream,
        stderr=stream is None,
        force_terminal=not no_color,
        no_color=no_color,
    )

    handler = RichHandler(
        console=console,
        show_time=detailed,
        show_path=detailed,
    )

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )

    return console
