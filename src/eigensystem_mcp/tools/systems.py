"""Eigen system creation and configuration tools."""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import Context

from .._app import get_session, mcp
from ..assemblers import ASSEMBLERS, build_assembler
from ..config import EigenSolverSettings
from ..eigen_solver import build_eigen_solver
from ..eigen_system import EigenSystem
from ..enums import (
    EigenProblemType,
    EigenSolverType,
    MatrixBuildType,
    ParallelType,
    PositionOfSpectrum,
)
from ..errors import (
    DuplicateNameError,
    PostconditionError,
    PreconditionError,
    handle_tool_errors,
)
from ._validators import require_enum, require_finite, require_nonempty, require_positive

logger = logging.getLogger(__name__)

_MAX_DOFS = 1_000_000


@mcp.tool()
@handle_tool_errors
async def create_eigen_system(
    name: str,
    n_dofs: int,
    assembler: str = "laplace",
    problem_type: str | None = None,
    length: float = 1.0,
    diffusion: float = 1.0,
    velocity: float = 1.0,
    use_shell_matrices: bool = False,
    use_shell_precond_matrix: bool = False,
    n_eigenpairs: int = 5,
    n_basis_vectors: int | None = None,
    tolerance: float = 1e-10,
    max_iterations: int = 1000,
    solver_type: str = "krylovschur",
    which: str = "largest_magnitude",
    target: float | None = None,
    ctx: Context = None,
) -> dict[str, Any]:
    """Create and initialize an eigen system on a uniform 1D P1 mesh.

    Args:
        name: Unique system name.
        n_dofs: Number of interior mesh nodes (degrees of freedom).
        assembler: Operator assembler. One of: laplace, stiffness_mass,
            convection_diffusion.
        problem_type: NHEP, HEP, GNHEP, GHEP or GHIEP. Defaults to the
            type implied by the assembler.
        length: Domain length.
        diffusion: Diffusion coefficient (convection_diffusion only).
        velocity: Convection velocity (convection_diffusion only).
        use_shell_matrices: Use matrix-free operators instead of assembled ones.
        use_shell_precond_matrix: Use a matrix-free preconditioner (requires
            use_shell_matrices).
        n_eigenpairs: Number of eigenpairs requested.
        n_basis_vectors: Search subspace dimension. Defaults to
            max(2 * n_eigenpairs + 1, 15).
        tolerance: Convergence tolerance.
        max_iterations: Maximum solver iterations.
        solver_type: krylovschur, arnoldi, lanczos, power or lapack.
        which: Part of the spectrum to compute, e.g. smallest_magnitude or
            target_real (target required).
        target: Spectral shift for target_* positions.

    Returns:
        dict with the system summary.
    """
    session = get_session(ctx)

    # PRE-1: name non-empty
    require_nonempty(name, "name")
    if name in session.systems:
        raise DuplicateNameError(
            f"System '{name}' already exists.",
            suggestion="Choose a different name or remove the existing system first.",
        )
    # PRE-2: n_dofs bounded
    require_positive(n_dofs, "n_dofs", _MAX_DOFS)
    # PRE-3: eigenpair count bounded by the problem size
    require_positive(n_eigenpairs, "n_eigenpairs", n_dofs)
    require_positive(tolerance, "tolerance")
    require_positive(max_iterations, "max_iterations")
    if n_basis_vectors is not None and n_basis_vectors < n_eigenpairs:
        raise PreconditionError(
            f"n_basis_vectors ({n_basis_vectors}) must be >= n_eigenpairs ({n_eigenpairs})."
        )
    if assembler not in ASSEMBLERS:
        raise PreconditionError(
            f"assembler must be one of {sorted(ASSEMBLERS)}, got '{assembler}'."
        )
    position = require_enum(which, PositionOfSpectrum, "which")
    kind = require_enum(solver_type, EigenSolverType, "solver_type")
    ept = require_enum(problem_type, EigenProblemType, "problem_type") if problem_type else None
    if target is not None:
        require_finite(target, "target")

    params: dict[str, Any] = {"length": length}
    if assembler == "convection_diffusion":
        params.update(
            diffusion=diffusion,
            velocity=velocity,
            generalized=bool(ept and ept.is_generalized),
        )
    op_assembler = build_assembler(assembler, **params)

    settings = EigenSolverSettings(
        n_eigenpairs=n_eigenpairs,
        n_basis_vectors=n_basis_vectors or max(2 * n_eigenpairs + 1, 15),
        tolerance=tolerance,
        max_iterations=max_iterations,
    )
    solver = build_eigen_solver(session.solver_package, solver_type=kind)
    solver.set_position_of_spectrum(position, target)

    system = EigenSystem(
        name,
        n_dofs=n_dofs,
        eigen_solver=solver,
        assembler=op_assembler,
        settings=settings,
    )
    if ept is not None:
        system.set_eigenproblem_type(ept)
    system.use_shell_matrices(use_shell_matrices)
    system.use_shell_precond_matrix(use_shell_precond_matrix)
    system.init()
    session.register_system(system)

    # POST-1: operator slots match configuration
    if system.operator_A() is None:
        raise PostconditionError(f"System '{name}' has no A operator after init().")
    if system.generalized() and system.operator_B() is None:
        raise PostconditionError(f"Generalized system '{name}' has no B operator after init().")

    if __debug__:
        session.check_invariants()

    logger.info("Created eigen system '%s' (%s, %d dofs)", name, assembler, n_dofs)
    return system.summary()


@mcp.tool()
@handle_tool_errors
async def set_eigenproblem_type(
    system: str,
    problem_type: str,
    ctx: Context = None,
) -> dict[str, Any]:
    """Change the eigenproblem type of a system and reallocate its operators.

    Args:
        system: System name.
        problem_type: NHEP, HEP, GNHEP, GHEP or GHIEP.

    Returns:
        dict with the updated system summary.
    """
    session = get_session(ctx)
    eigen_system = session.get_system(system)
    ept = require_enum(problem_type, EigenProblemType, "problem_type")

    previous = eigen_system.get_eigenproblem_type()
    eigen_system.set_eigenproblem_type(ept)
    try:
        eigen_system.reinit()
    except Exception:
        eigen_system.set_eigenproblem_type(previous)
        raise
    session.solve_records.pop(system, None)
    return eigen_system.summary()


@mcp.tool()
@handle_tool_errors
async def configure_shell(
    system: str,
    use_shell_matrices: bool,
    use_shell_precond_matrix: bool = False,
    ctx: Context = None,
) -> dict[str, Any]:
    """Switch a system between assembled and matrix-free operators.

    Args:
        system: System name.
        use_shell_matrices: Use matrix-free operators for A (and B).
        use_shell_precond_matrix: Use a matrix-free preconditioner.

    Returns:
        dict with the updated system summary.
    """
    session = get_session(ctx)
    eigen_system = session.get_system(system)

    previous = (eigen_system.use_shell_matrices(), eigen_system.use_shell_precond_matrix())
    eigen_system.use_shell_matrices(use_shell_matrices)
    eigen_system.use_shell_precond_matrix(use_shell_precond_matrix)
    try:
        eigen_system.reinit()
    except Exception:
        eigen_system.use_shell_matrices(previous[0])
        eigen_system.use_shell_precond_matrix(previous[1])
        raise
    session.solve_records.pop(system, None)
    return eigen_system.summary()


@mcp.tool()
@handle_tool_errors
async def reinit_system(
    system: str,
    n_dofs: int | None = None,
    ctx: Context = None,
) -> dict[str, Any]:
    """Reinitialize a system, optionally on a new number of DOFs (refinement).

    Args:
        system: System name.
        n_dofs: New DOF count. Keeps the current layout when omitted.

    Returns:
        dict with the updated system summary.
    """
    session = get_session(ctx)
    eigen_system = session.get_system(system)
    if n_dofs is not None:
        require_positive(n_dofs, "n_dofs", _MAX_DOFS)
        if eigen_system.settings.n_eigenpairs > n_dofs:
            raise PreconditionError(
                f"n_dofs {n_dofs} is smaller than the {eigen_system.settings.n_eigenpairs} "
                "requested eigenpairs."
            )
        eigen_system.resize(n_dofs)

    eigen_system.reinit()
    session.solve_records.pop(system, None)

    # POST-1: solution sized to the layout
    if eigen_system.solution.shape != (eigen_system.n_dofs(),):
        raise PostconditionError("Solution buffer does not match the DOF layout after reinit.")
    return eigen_system.summary()


@mcp.tool()
@handle_tool_errors
async def clear_system(
    system: str,
    ctx: Context = None,
) -> dict[str, Any]:
    """Release all operators, auxiliary matrices and results of a system.

    Configuration flags are kept; call reinit_system to allocate again.

    Returns:
        dict with the updated system summary.
    """
    session = get_session(ctx)
    eigen_system = session.get_system(system)
    eigen_system.clear()
    session.solve_records.pop(system, None)
    return eigen_system.summary()


@mcp.tool()
@handle_tool_errors
async def add_auxiliary_matrix(
    system: str,
    matrix_name: str,
    parallel_type: str = "parallel",
    build_type: str = "automatic",
    ctx: Context = None,
) -> dict[str, Any]:
    """Register an additional matrix that takes no part in the eigensolve.

    Args:
        system: System name.
        matrix_name: Unique matrix name within the system.
        parallel_type: serial, parallel, ghosted or automatic.
        build_type: automatic or diagonal.

    Returns:
        dict with the matrix name and its summary.
    """
    session = get_session(ctx)
    eigen_system = session.get_system(system)
    require_nonempty(matrix_name, "matrix_name")
    ptype = require_enum(parallel_type, ParallelType, "parallel_type")
    btype = require_enum(build_type, MatrixBuildType, "build_type")

    matrix = eigen_system.add_matrix(matrix_name, ptype, btype)

    # POST-1: registered and retrievable
    if eigen_system.get_matrix(matrix_name) is not matrix:
        raise PostconditionError(f"Matrix '{matrix_name}' not retrievable after add_matrix().")
    return {"matrix_name": matrix_name, **matrix.summary()}


@mcp.tool()
@handle_tool_errors
async def remove_system(
    system: str,
    ctx: Context = None,
) -> dict[str, Any]:
    """Remove a system and its solve record from the session."""
    session = get_session(ctx)
    session.remove_system(system)

    if __debug__:
        session.check_invariants()

    return {"removed": system, "remaining": list(session.systems.keys())}
