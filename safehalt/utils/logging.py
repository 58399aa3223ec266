"""
Logging setup for safehalt.

Timestamped console lines on standard output, or JSON lines.
Controlled via environment variables:
- SAFEHALT_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
- SAFEHALT_LOG_FORMAT: text|json (default: text)
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _get_level() -> int:
    level = os.getenv("SAFEHALT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level, logging.INFO)


def setup_logging(
    force: bool = False,
    *,
    level: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Configure root logging for console output.

    If a handler is already present and force is False, this is a no-op.
    An explicit level wins over SAFEHALT_LOG_LEVEL.
    """
    target_logger = logger or logging.getLogger()
    if target_logger.handlers and not force:
        return

    if force:
        for h in list(target_logger.handlers):
            target_logger.removeHandler(h)

    target_logger.setLevel(level if level is not None else _get_level())

    handler = logging.StreamHandler(sys.stdout)

    fmt = os.getenv("SAFEHALT_LOG_FORMAT", "text").lower()
    if fmt == "json":
        formatter: logging.Formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "name": "logger"},
        )
    else:
        formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)

    handler.setFormatter(formatter)
    target_logger.addHandler(handler)
