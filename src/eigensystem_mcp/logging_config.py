"""Logging configuration for the eigensystem MCP server.

stdout carries JSON-RPC for the stdio transport, so every log record
goes to stderr.
"""

from __future__ import annotations

import logging
import sys

QUIET_LOGGERS = ("petsc4py", "slepc4py", "mpi4py")


def configure_logging(level: str = "INFO") -> None:
    """Configure all logging to write to stderr only.

    Suppresses verbose third-party loggers that would clutter output.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
