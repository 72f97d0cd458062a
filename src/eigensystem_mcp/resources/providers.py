"""URI-based resource providers for the eigensystem MCP server."""

from __future__ import annotations

from typing import Any

from .. import __version__
from .._app import mcp
from ..assemblers import ASSEMBLERS
from ..enums import (
    EigenProblemType,
    EigenSolverType,
    MatrixBuildType,
    ParallelType,
    PositionOfSpectrum,
    SolverPackage,
)


@mcp.resource("eigensystem://capabilities")
def get_capabilities() -> dict[str, Any]:
    """Supported problem types, assemblers, solvers and spectrum positions."""
    return {
        "problem_types": [
            {
                "name": t.value,
                "generalized": t.is_generalized,
                "hermitian": t.is_hermitian,
            }
            for t in EigenProblemType
        ],
        "assemblers": sorted(ASSEMBLERS),
        "solver_packages": [p.value for p in SolverPackage],
        "solver_types": [t.value for t in EigenSolverType],
        "positions_of_spectrum": [p.value for p in PositionOfSpectrum],
        "parallel_types": [p.value for p in ParallelType],
        "matrix_build_types": [b.value for b in MatrixBuildType],
        "operators": ["assembled (sparse CSR)", "shell (matrix-free)"],
        "version": {"eigensystem_mcp": __version__},
    }
