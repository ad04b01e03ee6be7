"""Logging configuration for Twig.

Library modules only create module-level loggers. The CLI calls
``configure_logging`` once per invocation; records go to stderr so they
never mix with command output on stdout.
"""

import logging
import os
import sys
from typing import Optional

from twig.constants import (
    DEFAULT_LOG_LEVEL,
    LOG_LEVEL_ENV,
    STANDARD_DATE_FORMAT,
    STANDARD_LOG_FORMAT,
)


def resolve_log_level(verbose: bool = False, level: Optional[str] = None) -> int:
    """Pick the effective log level.

    ``verbose`` wins, then an explicit ``level``, then the TWIG_LOG_LEVEL
    environment variable, then the default. Unknown names fall back to the
    default.
    """
    if verbose:
        return logging.DEBUG

    name = (level or os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).upper()
    value = logging.getLevelName(name)
    if isinstance(value, int):
        return value
    return logging.getLevelName(DEFAULT_LOG_LEVEL)


def configure_logging(verbose: bool = False, level: Optional[str] = None) -> None:
    """Send Twig log records to stderr with the standard format."""
    logging.basicConfig(
        level=resolve_log_level(verbose, level),
        format=STANDARD_LOG_FORMAT,
        datefmt=STANDARD_DATE_FORMAT,
        stream=sys.stderr,
        force=True,
    )
