"""Eigensolve and result retrieval tools."""

from __future__ import annotations

import logging
import time
from typing import Any

import numpy as np
from mcp.server.fastmcp import Context

from .._app import get_session, mcp
from ..errors import (
    EigenSystemError,
    PostconditionError,
    PreconditionError,
    SolverFailureError,
    handle_tool_errors,
)
from ..session import SolveRecord

logger = logging.getLogger(__name__)

_MAX_RETURNED_VECTOR = 10_000


@mcp.tool()
@handle_tool_errors
async def solve_eigen_system(
    system: str,
    initial_space: list[float] | None = None,
    ctx: Context = None,
) -> dict[str, Any]:
    """Assemble and solve an eigen system.

    Fewer converged eigenpairs than requested is not an error: check
    n_converged in the result before requesting eigenpairs.

    Args:
        system: System name.
        initial_space: Optional starting vector of length n_dofs.

    Returns:
        dict with n_converged, n_requested, n_iterations, eigenvalues
        (list of {index, real, imag}) and wall_time.
    """
    session = get_session(ctx)
    eigen_system = session.get_system(system)

    if initial_space is not None:
        # PRE-1: initial space matches the layout
        if len(initial_space) != eigen_system.n_dofs():
            raise PreconditionError(
                f"initial_space has {len(initial_space)} entries, "
                f"system has {eigen_system.n_dofs()} dofs."
            )
        eigen_system.set_initial_space(np.asarray(initial_space, dtype=float))

    t0 = time.perf_counter()
    try:
        eigen_system.solve()
    except EigenSystemError:
        raise
    except Exception as exc:
        raise SolverFailureError(f"Eigensolve of '{system}' failed: {exc}") from exc
    wall_time = time.perf_counter() - t0

    nconv = eigen_system.get_n_converged()
    eigenvalues = []
    for i in range(nconv):
        re, im = eigen_system.get_eigenvalue(i)
        eigenvalues.append({"index": i, "real": re, "imag": im})

    # POST-1: eigenvalues finite
    if not all(np.isfinite([ev["real"] for ev in eigenvalues] + [ev["imag"] for ev in eigenvalues])):
        raise PostconditionError(f"Eigensolve of '{system}' produced non-finite eigenvalues.")

    session.record_solve(
        SolveRecord(
            system_name=system,
            problem_type=eigen_system.get_eigenproblem_type().value,
            n_converged=nconv,
            n_iterations=eigen_system.get_n_iterations(),
            wall_time=round(wall_time, 4),
            eigenvalues=eigenvalues,
        )
    )

    if __debug__:
        session.check_invariants()

    return {
        "system": system,
        "n_converged": nconv,
        "n_requested": eigen_system.settings.n_eigenpairs,
        "n_iterations": eigen_system.get_n_iterations(),
        "eigenvalues": eigenvalues,
        "wall_time": round(wall_time, 4),
    }


@mcp.tool()
@handle_tool_errors
async def get_eigenpair(
    system: str,
    index: int,
    include_vector: bool = False,
    ctx: Context = None,
) -> dict[str, Any]:
    """Load eigenpair ``index`` into the system solution and return it.

    Args:
        system: System name.
        index: Eigenpair index in [0, n_converged).
        include_vector: Return the eigenvector values (systems up to
            10000 dofs).

    Returns:
        dict with index, real, imag, solution_norm and optionally vector.
    """
    session = get_session(ctx)
    eigen_system = session.get_system(system)

    re, im = eigen_system.get_eigenpair(index)
    solution = eigen_system.solution

    # POST-1: eigenvector finite
    if not np.isfinite(solution).all():
        raise PostconditionError(f"Eigenvector {index} contains NaN or Inf values.")

    result: dict[str, Any] = {
        "system": system,
        "index": index,
        "real": re,
        "imag": im,
        "solution_norm": float(np.linalg.norm(solution)),
    }
    if include_vector:
        if solution.size > _MAX_RETURNED_VECTOR:
            raise PreconditionError(
                f"Eigenvector has {solution.size} entries; the limit is {_MAX_RETURNED_VECTOR}.",
                suggestion="Call without include_vector for large systems.",
            )
        result["vector"] = solution.tolist()
    return result


@mcp.tool()
@handle_tool_errors
async def get_eigenvalues(
    system: str,
    ctx: Context = None,
) -> dict[str, Any]:
    """List all converged eigenvalues of a system without touching its solution.

    Returns:
        dict with n_converged, n_iterations and eigenvalues
        (list of {index, real, imag}).
    """
    session = get_session(ctx)
    eigen_system = session.get_system(system)

    eigenvalues = []
    for i in range(eigen_system.get_n_converged()):
        re, im = eigen_system.get_eigenvalue(i)
        eigenvalues.append({"index": i, "real": re, "imag": im})

    return {
        "system": system,
        "n_converged": eigen_system.get_n_converged(),
        "n_iterations": eigen_system.get_n_iterations(),
        "eigenvalues": eigenvalues,
    }
