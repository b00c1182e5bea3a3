"""
Logging setup.

Library modules only create ``logger = logging.getLogger(__name__)``;
handlers are installed once by the application entry point.
"""

from __future__ import annotations
import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Install a single stream handler on the root logger (idempotent)."""
    root = logging.getLogger()
    if not any(getattr(h, "_orrery", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._orrery = True
        root.addHandler(handler)
    root.setLevel(level)
    return root
