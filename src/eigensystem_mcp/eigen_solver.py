"""Eigensolver collaborator interface and backend factory.

An ``EigenSolver`` receives assembled (``SparseMatrix``) or matrix-free
(``ShellMatrix``) operators, runs the numerical method of its backend and
keeps the converged eigenpairs for indexed retrieval.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from .config import EigenSolverSettings
from .enums import EigenProblemType, EigenSolverType, PositionOfSpectrum, SolverPackage
from .errors import ConfigurationError, IndexOutOfRangeError, PreconditionError
from .matrices import ShellMatrix, SparseMatrix

logger = logging.getLogger(__name__)

Operator = SparseMatrix | ShellMatrix


class EigenSolver:
    """Base class for eigensolver backends.

    Subclasses implement ``_solve`` and fill ``_eigenvalues`` (complex array)
    and ``_eigenvectors`` (columns) with the converged pairs only.
    """

    package: SolverPackage

    def __init__(
        self,
        problem_type: EigenProblemType = EigenProblemType.NHEP,
        solver_type: EigenSolverType = EigenSolverType.KRYLOVSCHUR,
        position_of_spectrum: PositionOfSpectrum = PositionOfSpectrum.LARGEST_MAGNITUDE,
        target: float | None = None,
    ) -> None:
        self.problem_type = EigenProblemType(problem_type)
        self.solver_type = EigenSolverType(solver_type)
        self.position_of_spectrum = PositionOfSpectrum(position_of_spectrum)
        self.target = target
        self._initial_space: np.ndarray | None = None
        self._eigenvalues: np.ndarray = np.zeros(0, dtype=complex)
        self._eigenvectors: np.ndarray | None = None

    # --- Configuration ---

    def set_eigenproblem_type(self, problem_type: EigenProblemType) -> None:
        self.problem_type = EigenProblemType(problem_type)

    def set_position_of_spectrum(
        self, position: PositionOfSpectrum, target: float | None = None,
    ) -> None:
        position = PositionOfSpectrum(position)
        if position.is_target and target is None:
            raise ConfigurationError(
                f"A target value is required for position '{position.value}'.",
                suggestion="Pass target=<shift> together with a target_* position.",
            )
        self.position_of_spectrum = position
        self.target = target

    def set_solver_type(self, solver_type: EigenSolverType) -> None:
        self.solver_type = EigenSolverType(solver_type)

    def set_initial_space(self, vector: Any) -> None:
        """Use ``vector`` as the starting vector of the next solve."""
        self._initial_space = np.array(vector, copy=True)

    def initial_space(self) -> np.ndarray | None:
        return self._initial_space

    def clear(self) -> None:
        self._eigenvalues = np.zeros(0, dtype=complex)
        self._eigenvectors = None
        self._initial_space = None

    # --- Solves ---

    def solve_standard(
        self,
        matrix_A: Operator,
        settings: EigenSolverSettings,
        precond: Operator | None = None,
    ) -> tuple[int, int]:
        """Solve ``A x = l x``. Returns ``(n_converged, n_iterations)``.

        ``precond`` only preconditions the inner linear solves of a
        spectral transformation; it never replaces the operator.
        """
        return self._run(matrix_A, None, precond, settings)

    def solve_generalized(
        self,
        matrix_A: Operator,
        matrix_B: Operator,
        settings: EigenSolverSettings,
        precond: Operator | None = None,
    ) -> tuple[int, int]:
        """Solve ``A x = l B x``. Returns ``(n_converged, n_iterations)``."""
        if matrix_A.shape != matrix_B.shape:
            raise PreconditionError(
                f"Operator shapes differ: A {matrix_A.shape}, B {matrix_B.shape}."
            )
        return self._run(matrix_A, matrix_B, precond, settings)

    def _run(
        self,
        matrix_A: Operator,
        matrix_B: Operator | None,
        precond: Operator | None,
        settings: EigenSolverSettings,
    ) -> tuple[int, int]:
        n_rows, n_cols = matrix_A.shape
        if n_rows != n_cols:
            raise PreconditionError(f"Operator A must be square, got {matrix_A.shape}.")
        if self._initial_space is not None and self._initial_space.shape != (n_rows,):
            raise PreconditionError(
                f"Initial space has shape {self._initial_space.shape}, expected ({n_rows},)."
            )
        self._eigenvalues = np.zeros(0, dtype=complex)
        self._eigenvectors = None
        return self._solve(matrix_A, matrix_B, precond, settings)

    def _solve(
        self,
        matrix_A: Operator,
        matrix_B: Operator | None,
        precond: Operator | None,
        settings: EigenSolverSettings,
    ) -> tuple[int, int]:
        raise NotImplementedError

    # --- Results ---

    def n_converged(self) -> int:
        return len(self._eigenvalues)

    def _check_index(self, i: int) -> None:
        if not 0 <= i < self.n_converged():
            raise IndexOutOfRangeError(
                f"Eigenpair index {i} out of range: {self.n_converged()} converged."
            )

    def get_eigenvalue(self, i: int) -> tuple[float, float]:
        self._check_index(i)
        value = self._eigenvalues[i]
        return float(value.real), float(value.imag)

    def get_eigenpair(self, i: int, out: np.ndarray) -> tuple[float, float]:
        """Copy eigenvector ``i`` into ``out`` and return its eigenvalue."""
        self._check_index(i)
        vector = self._eigenvectors[:, i]  # type: ignore[index]
        if out.shape != vector.shape:
            raise PreconditionError(
                f"Output buffer has shape {out.shape}, eigenvector has {vector.shape}."
            )
        if np.iscomplexobj(out):
            out[:] = vector
        else:
            out[:] = vector.real
        return self.get_eigenvalue(i)

    def eigenvalues(self) -> np.ndarray:
        return self._eigenvalues.copy()


def build_eigen_solver(
    package: SolverPackage | str = SolverPackage.SCIPY, **kwargs: Any,
) -> EigenSolver:
    """Instantiate the eigensolver backend named by ``package``."""
    package = SolverPackage(package)
    if package == SolverPackage.SCIPY:
        from .scipy_solver import ScipyEigenSolver

        return ScipyEigenSolver(**kwargs)

    from .slepc_solver import SlepcEigenSolver

    return SlepcEigenSolver(**kwargs)
