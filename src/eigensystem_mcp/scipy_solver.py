"""SciPy eigensolver backend.

Hermitian problems (HEP, GHEP) go to ARPACK's Lanczos driver (``eigsh``),
everything else to the Arnoldi driver (``eigs``). Small problems and the
``lapack`` solver type fall back to dense LAPACK.

Iteration counts are the number of operator applications ARPACK asked for;
dense solves count as a single iteration.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import numpy as np
import scipy.linalg as scipy_linalg
import scipy.sparse as sp
from scipy.sparse.linalg import (
    ArpackError,
    ArpackNoConvergence,
    LinearOperator,
    eigs,
    eigsh,
    gmres,
    splu,
)

from .config import EigenSolverSettings
from .eigen_solver import EigenSolver, Operator
from .enums import EigenProblemType, EigenSolverType, PositionOfSpectrum, SolverPackage
from .errors import ConfigurationError, SolverFailureError
from .matrices import ShellMatrix, SparseMatrix, as_operator

logger = logging.getLogger(__name__)

_EIGSH_WHICH = {
    PositionOfSpectrum.LARGEST_MAGNITUDE: "LM",
    PositionOfSpectrum.SMALLEST_MAGNITUDE: "SM",
    PositionOfSpectrum.LARGEST_REAL: "LA",
    PositionOfSpectrum.SMALLEST_REAL: "SA",
}

_EIGS_WHICH = {
    PositionOfSpectrum.LARGEST_MAGNITUDE: "LM",
    PositionOfSpectrum.SMALLEST_MAGNITUDE: "SM",
    PositionOfSpectrum.LARGEST_REAL: "LR",
    PositionOfSpectrum.SMALLEST_REAL: "SR",
    PositionOfSpectrum.LARGEST_IMAGINARY: "LI",
    PositionOfSpectrum.SMALLEST_IMAGINARY: "SI",
}


class _Counter:
    def __init__(self) -> None:
        self.count = 0

    def wrap(self, fn: Callable[[np.ndarray], np.ndarray]) -> Callable[[np.ndarray], np.ndarray]:
        def counted(x: np.ndarray) -> np.ndarray:
            self.count += 1
            return fn(x)

        return counted


def _sort_order(values: np.ndarray, position: PositionOfSpectrum, target: float | None) -> np.ndarray:
    if position == PositionOfSpectrum.LARGEST_MAGNITUDE:
        key = -np.abs(values)
    elif position == PositionOfSpectrum.SMALLEST_MAGNITUDE:
        key = np.abs(values)
    elif position == PositionOfSpectrum.LARGEST_REAL:
        key = -values.real
    elif position == PositionOfSpectrum.SMALLEST_REAL:
        key = values.real
    elif position == PositionOfSpectrum.LARGEST_IMAGINARY:
        key = -values.imag
    elif position == PositionOfSpectrum.SMALLEST_IMAGINARY:
        key = values.imag
    elif position == PositionOfSpectrum.TARGET_REAL:
        key = np.abs(values.real - target)
    else:
        key = np.abs(values - target)
    return np.argsort(key, kind="stable")


def _preconditioner_operator(precond: Operator | None) -> LinearOperator | None:
    """Wrap a populated preconditioner as the ``M`` argument of GMRES.

    An assembled preconditioner is a matrix approximating the operator and
    is factorized here. A shell preconditioner already applies the
    approximate inverse. Slots that were never filled are ignored.
    """
    if precond is None:
        return None
    n = precond.shape[0]
    if isinstance(precond, ShellMatrix):
        if not precond.has_action():
            return None
        return LinearOperator((n, n), matvec=precond.vector_mult, dtype=precond.dtype)
    if not precond.closed() or precond.nnz() == 0:
        return None
    try:
        lu = splu(sp.csc_matrix(precond.to_scipy()))
    except RuntimeError as exc:
        raise SolverFailureError(f"Factorization of the preconditioner failed: {exc}") from exc
    return LinearOperator((n, n), matvec=lu.solve, dtype=precond.dtype)


def _inverse_action(
    matrix: Operator,
    shift: float = 0.0,
    mass: Operator | None = None,
    precond: LinearOperator | None = None,
    rtol: float = 1e-10,
    maxiter: int | None = None,
) -> Callable:
    """Return ``x -> (matrix - shift * mass)^{-1} x``.

    Assembled matrices are factorized once with SuperLU; shell operators
    are inverted iteratively with GMRES, preconditioned by ``precond``.
    """
    n = matrix.shape[0]
    if isinstance(matrix, SparseMatrix) and (mass is None or isinstance(mass, SparseMatrix)):
        shifted = matrix.to_scipy()
        if shift != 0.0:
            identity = mass.to_scipy() if mass is not None else sp.identity(n, format="csr")
            shifted = shifted - shift * identity
        try:
            lu = splu(sp.csc_matrix(shifted))
        except RuntimeError as exc:
            raise SolverFailureError(f"Factorization of shifted operator failed: {exc}") from exc
        return lu.solve

    A_op = as_operator(matrix)
    if shift != 0.0:
        M_op = as_operator(mass) if mass is not None else sp.identity(n, format="csr")
        dtype = np.result_type(A_op.dtype, M_op.dtype)
        shifted_op = LinearOperator(
            (n, n), matvec=lambda x: A_op @ x - shift * (M_op @ x), dtype=dtype,
        )
    else:
        shifted_op = A_op

    def solve(x: np.ndarray) -> np.ndarray:
        y, info = gmres(
            shifted_op, x, M=precond, rtol=rtol, atol=0.0,
            restart=min(n, 100), maxiter=maxiter,
        )
        if info != 0:
            raise SolverFailureError(f"GMRES inner solve did not converge (info={info}).")
        return y

    return solve


class ScipyEigenSolver(EigenSolver):
    """Eigensolver backed by ``scipy.sparse.linalg`` (ARPACK) and ``scipy.linalg``."""

    package = SolverPackage.SCIPY

    def _solve(
        self,
        matrix_A: Operator,
        matrix_B: Operator | None,
        precond: Operator | None,
        settings: EigenSolverSettings,
    ) -> tuple[int, int]:
        n = matrix_A.shape[0]
        nev = min(settings.n_eigenpairs, n)

        if self.solver_type == EigenSolverType.LAPACK or nev >= n - 1:
            values, vectors, its = self._solve_dense(matrix_A, matrix_B)
        else:
            values, vectors, its = self._solve_arpack(matrix_A, matrix_B, precond, settings, nev)

        order = _sort_order(values, self.position_of_spectrum, self.target)[:nev]
        self._eigenvalues = np.asarray(values, dtype=complex)[order]
        self._eigenvectors = np.asarray(vectors)[:, order]

        logger.debug(
            "scipy eigensolve: n=%d nev=%d type=%s converged=%d its=%d",
            n, nev, self.problem_type.value, len(order), its,
        )
        return len(order), its

    # --- Dense LAPACK path ---

    def _solve_dense(
        self, matrix_A: Operator, matrix_B: Operator | None,
    ) -> tuple[np.ndarray, np.ndarray, int]:
        A = _to_dense(matrix_A)
        B = _to_dense(matrix_B) if matrix_B is not None else None
        try:
            if self.problem_type in (EigenProblemType.HEP, EigenProblemType.GHEP):
                values, vectors = scipy_linalg.eigh(A, B)
            else:
                values, vectors = scipy_linalg.eig(A, B)
        except (scipy_linalg.LinAlgError, ValueError) as exc:
            raise SolverFailureError(f"Dense eigensolve failed: {exc}") from exc
        finite = np.isfinite(values)
        return values[finite], vectors[:, finite], 1

    # --- ARPACK path ---

    def _solve_arpack(
        self,
        matrix_A: Operator,
        matrix_B: Operator | None,
        precond: Operator | None,
        settings: EigenSolverSettings,
        nev: int,
    ) -> tuple[np.ndarray, np.ndarray, int]:
        n = matrix_A.shape[0]
        hermitian = self.problem_type in (EigenProblemType.HEP, EigenProblemType.GHEP)
        ncv = min(max(settings.n_basis_vectors, 2 * nev + 1), n)
        counter = _Counter()
        dtype = np.result_type(
            matrix_A.dtype, matrix_B.dtype if matrix_B is not None else matrix_A.dtype,
        )

        kwargs: dict[str, Any] = {
            "k": nev,
            "ncv": ncv,
            "tol": settings.tolerance,
            "maxiter": settings.max_iterations,
        }
        if self._initial_space is not None:
            kwargs["v0"] = self._initial_space

        inner = {
            "rtol": min(settings.tolerance, 1e-8),
            "maxiter": settings.max_iterations,
        }

        if self.position_of_spectrum.is_target:
            # Shift-invert: ARPACK returns eigenvalues nearest the target.
            shift = float(self.target)  # type: ignore[arg-type]
            inverse = _inverse_action(
                matrix_A, shift, matrix_B, precond=_preconditioner_operator(precond), **inner,
            )
            kwargs["sigma"] = shift
            kwargs["which"] = "LM"
            kwargs["OPinv"] = LinearOperator((n, n), matvec=counter.wrap(inverse), dtype=dtype)
            A_op = as_operator(matrix_A)
            if matrix_B is not None:
                kwargs["M"] = as_operator(matrix_B)
        else:
            which_map = _EIGSH_WHICH if hermitian else _EIGS_WHICH
            if self.position_of_spectrum not in which_map:
                raise ConfigurationError(
                    f"Position '{self.position_of_spectrum.value}' is not available "
                    f"for {self.problem_type.value} problems.",
                    suggestion="Hermitian problems have real spectra; target the real axis.",
                )
            kwargs["which"] = which_map[self.position_of_spectrum]
            A_base = as_operator(matrix_A)
            if matrix_B is not None and not hermitian:
                # Non-Hermitian generalized: iterate on B^{-1} A.
                B_inverse = _inverse_action(matrix_B, **inner)
                matvec = lambda x: B_inverse(A_base @ x)  # noqa: E731
            else:
                matvec = lambda x: A_base @ x  # noqa: E731
                if matrix_B is not None:
                    kwargs["M"] = as_operator(matrix_B)
            A_op = LinearOperator((n, n), matvec=counter.wrap(matvec), dtype=dtype)

        driver = eigsh if hermitian else eigs
        try:
            values, vectors = driver(A_op, **kwargs)
        except ArpackNoConvergence as exc:
            logger.warning(
                "ARPACK stopped after %d iterations with %d of %d pairs converged",
                counter.count, len(exc.eigenvalues), nev,
            )
            values, vectors = exc.eigenvalues, exc.eigenvectors
        except (ArpackError, RuntimeError, ValueError) as exc:
            raise SolverFailureError(f"ARPACK eigensolve failed: {exc}") from exc
        return np.asarray(values), np.asarray(vectors), counter.count


def _to_dense(matrix: Operator) -> np.ndarray:
    if isinstance(matrix, ShellMatrix):
        n = matrix.shape[1]
        return np.column_stack([matrix.vector_mult(e) for e in np.eye(n)])
    return matrix.to_scipy().toarray()
