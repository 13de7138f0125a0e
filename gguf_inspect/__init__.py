# gguf_inspect/__init__.py
"""
gguf_inspect
============

Pure-Python decoder for GGUF model files: header, typed metadata table and
tensor descriptors, with parameter / size / bits-per-weight summaries and a
rich console report.
"""
from __future__ import annotations

from importlib.metadata import version as _pkg_version

from loguru import logger

__all__ = ["__version__"]

try:
    # Read version dynamically from installed package metadata
    __version__: str = _pkg_version("gguf-inspect")
except Exception:  # pragma: no cover - fallback for development environments
    __version__ = "0.0.0-dev"

logger.disable(__name__)
