"""Eigenvalue-system orchestration with an MCP server front end."""

from __future__ import annotations

from .eigen_solver import EigenSolver, build_eigen_solver
from .eigen_system import EigenSystem
from .enums import EigenProblemType, ParallelType, PositionOfSpectrum
from .system import DofLayout, System

__version__ = "0.3.0"

__all__ = [
    "DofLayout",
    "EigenProblemType",
    "EigenSolver",
    "EigenSystem",
    "ParallelType",
    "PositionOfSpectrum",
    "System",
    "__version__",
    "build_eigen_solver",
]
