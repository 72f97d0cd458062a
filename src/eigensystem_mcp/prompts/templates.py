"""Prompt templates for guided eigenproblem workflows."""

from __future__ import annotations

from .._app import mcp


@mcp.prompt()
def setup_generalized_problem() -> str:
    """Guide through solving the vibrating-string problem K x = lambda M x."""
    return """You are helping the user compute vibration modes with an eigen system.

The continuous problem is: -u'' = lambda u  on (0, L),  u(0) = u(L) = 0
Its exact eigenvalues are (k * pi / L)^2 for k = 1, 2, ...

Follow these steps:

1. **Create the system**: Use create_eigen_system with
   assembler="stiffness_mass" and a DOF count (interior nodes).
   The problem type defaults to GHEP (generalized Hermitian).

2. **Target the spectrum**: The lowest modes are wanted, so use
   which="target_magnitude" with target=0.0 (shift-invert), or
   which="smallest_magnitude" for small systems.

3. **Solve**: Call solve_eigen_system. Check n_converged against
   n_requested -- partial convergence is reported, not raised.

4. **Inspect modes**: get_eigenvalues lists all converged values;
   get_eigenpair loads one eigenvector into the system solution.

5. **Refine**: reinit_system with a larger n_dofs and solve again.
   Compare against (k * pi / L)^2 to show convergence.

At each step, explain what is happening physically and mathematically."""


@mcp.prompt()
def debug_eigen_convergence() -> str:
    """Help debug an eigensolve that converged fewer pairs than requested."""
    return """You are helping debug an eigensolve with too few converged eigenpairs.

Diagnostic steps:

1. **Check session state**: Use get_session_state to review:
   - n_converged vs n_requested and n_iterations of the last solve
   - problem type: Hermitian types (HEP, GHEP) use Lanczos, others Arnoldi
   - whether shell (matrix-free) operators are in use

2. **Interior or smallest eigenvalues**: Krylov methods find the largest
   magnitudes fastest. For the smallest ones use a target position
   (target_magnitude / target_real) with a shift near the wanted values.

3. **Subspace size**: Recreate the system with a larger n_basis_vectors
   (at least 2 * n_eigenpairs + 1) or more max_iterations.

4. **Problem type**: A non-symmetric operator declared Hermitian gives
   wrong or unconverged results. Use NHEP/GNHEP for convection problems.

5. **Small systems**: solver_type="lapack" computes the full spectrum
   densely and always converges."""
