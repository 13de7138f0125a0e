# gguf_inspect/logging.py
"""
Logging setup using Loguru.

The package disables its own loggers on import (the usual Loguru convention
for libraries); applications opt in through :func:`configure_logging`.
"""
from __future__ import annotations

import sys
from typing import Any, TextIO

from loguru import logger

PACKAGE = "gguf_inspect"


def configure_logging(*, debug: bool = False, verbose: bool = False, sink: TextIO | Any = None) -> None:
    """Configure loguru logging sinks and enable this package's messages.

    Args:
        debug: DEBUG level with backtraces (decode timings, section offsets).
        verbose: INFO level. Without either flag only warnings are shown.
        sink: Destination, ``sys.stderr`` by default.
    """
    logger.remove()
    level = "DEBUG" if debug else "INFO" if verbose else "WARNING"
    fmt = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> "
        "| <level>{level: <8}</level> "
        "<cyan>{module}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> "
        "- <level>{message}</level>"
    )
    logger.add(sink or sys.stderr, level=level, format=fmt, backtrace=debug, diagnose=debug)
    logger.enable(PACKAGE)
