"""Eigenvalue systems: standard ``A x = l x`` and generalized ``A x = l B x``.

``EigenSystem`` owns the operator slots and the auxiliary matrix registry,
sizes them from the base ``System`` DOF layout, and hands the operators to
an injected ``EigenSolver``. The operators are filled by an
``OperatorAssembler`` selected at construction, or by a subclass that
overrides ``assemble()``.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from .assemblers import OperatorAssembler
from .config import EigenSolverSettings
from .eigen_solver import EigenSolver, build_eigen_solver
from .enums import EigenProblemType, MatrixBuildType, ParallelType
from .errors import (
    ConfigurationError,
    DuplicateNameError,
    IndexOutOfRangeError,
    MatrixNotFoundError,
    PreconditionError,
)
from .matrices import ShellMatrix, SparseMatrix
from .system import System

logger = logging.getLogger(__name__)


class EigenSystem(System):
    """Manages operators, configuration and results of an eigenproblem.

    Call order: configure (problem type, shell flags) -> ``init()`` ->
    ``solve()`` -> ``get_eigenpair(i)`` for ``i < get_n_converged()``.
    After the DOF layout changes call ``reinit()``.
    """

    def __init__(
        self,
        name: str,
        number: int = 0,
        n_dofs: int = 0,
        eigen_solver: EigenSolver | None = None,
        assembler: OperatorAssembler | None = None,
        settings: EigenSolverSettings | None = None,
    ) -> None:
        super().__init__(name, number, n_dofs)
        self.eigen_solver: EigenSolver = eigen_solver or build_eigen_solver()
        self.assembler = assembler
        self.settings = settings or EigenSolverSettings()

        self.matrix_A: SparseMatrix | None = None
        self.matrix_B: SparseMatrix | None = None
        self.precond_matrix: SparseMatrix | None = None
        self.shell_matrix_A: ShellMatrix | None = None
        self.shell_matrix_B: ShellMatrix | None = None
        self.shell_precond_matrix: ShellMatrix | None = None

        self._matrices: dict[str, SparseMatrix] = {}
        self._n_converged_eigenpairs = 0
        self._n_iterations = 0
        self._use_shell_matrices = False
        self._use_shell_precond_matrix = False
        self._eigen_problem_type = EigenProblemType.NHEP
        self._is_generalized_eigenproblem = False

        problem_type = (
            assembler.kind.default_problem_type if assembler is not None
            else EigenProblemType.NHEP
        )
        self.set_eigenproblem_type(problem_type)

    def system_type(self) -> str:
        return "Eigen"

    # --- Configuration ---

    def set_eigenproblem_type(self, problem_type: EigenProblemType | str) -> None:
        """Set the problem type; ``generalized()`` follows from it."""
        try:
            problem_type = EigenProblemType(problem_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Unknown eigenproblem type '{problem_type}'. "
                f"Valid: {[t.value for t in EigenProblemType]}",
            ) from exc
        self._eigen_problem_type = problem_type
        self._is_generalized_eigenproblem = problem_type.is_generalized
        self.eigen_solver.set_eigenproblem_type(problem_type)

    def get_eigenproblem_type(self) -> EigenProblemType:
        return self._eigen_problem_type

    def generalized(self) -> bool:
        return self._is_generalized_eigenproblem

    def use_shell_matrices(self, flag: bool | None = None) -> bool:
        """Set the shell-matrix flag when ``flag`` is given; return its value."""
        if flag is not None:
            self._use_shell_matrices = bool(flag)
        return self._use_shell_matrices

    def use_shell_precond_matrix(self, flag: bool | None = None) -> bool:
        if flag is not None:
            self._use_shell_precond_matrix = bool(flag)
        return self._use_shell_precond_matrix

    def set_initial_space(self, initial_space: Any) -> None:
        self.eigen_solver.set_initial_space(initial_space)

    # --- Counters ---

    def get_n_converged(self) -> int:
        return self._n_converged_eigenpairs

    def get_n_iterations(self) -> int:
        return self._n_iterations

    def set_n_converged(self, nconv: int) -> None:
        self._n_converged_eigenpairs = nconv

    def set_n_iterations(self, its: int) -> None:
        self._n_iterations = its

    def n_matrices(self) -> int:
        if self._is_generalized_eigenproblem:
            return 2
        return 1

    # --- Lifecycle ---

    def clear(self) -> None:
        super().clear()
        self._drop_matrices()
        for mat in self._matrices.values():
            mat.clear()
        self._matrices.clear()
        self.eigen_solver.clear()
        self.set_n_converged(0)
        self.set_n_iterations(0)

    def init_data(self) -> None:
        super().init_data()
        self.init_matrices()

    def reinit(self) -> None:
        """Reallocate every slot for the current DOF layout, keeping the flags.

        A cleared (or never initialized) system is initialized from scratch.
        """
        if not self.is_initialized():
            self.init()
            return
        super().reinit()
        self.init_matrices()
        n = self.n_dofs()
        for mat in self._matrices.values():
            mat.init(n, n, mat.parallel_type, mat.build_type)
        self.set_n_converged(0)
        self.set_n_iterations(0)
        logger.info("Reinitialized eigen system '%s' with %d dofs", self.name, n)

    def init_matrices(self) -> None:
        """Allocate the operator slots the configuration calls for."""
        self._check_configuration()
        self._drop_matrices()

        n = self.n_dofs()
        parallel_type = self.dof_layout().parallel_type
        if self._use_shell_matrices:
            self.shell_matrix_A = _shell(n)
            if self._is_generalized_eigenproblem:
                self.shell_matrix_B = _shell(n)
            # Matrix-free operators need a separate preconditioner.
            if self._use_shell_precond_matrix:
                self.shell_precond_matrix = _shell(n)
            else:
                self.precond_matrix = _sparse(n, parallel_type)
        else:
            self.matrix_A = _sparse(n, parallel_type)
            if self._is_generalized_eigenproblem:
                self.matrix_B = _sparse(n, parallel_type)

    def _check_configuration(self) -> None:
        if self._use_shell_precond_matrix and not self._use_shell_matrices:
            raise ConfigurationError(
                "A shell preconditioning matrix requires shell system matrices.",
                suggestion="Enable use_shell_matrices or disable use_shell_precond_matrix.",
            )
        if self.assembler is not None and self.assembler.kind.is_generalized != self.generalized():
            raise ConfigurationError(
                f"Assembler {type(self.assembler).__name__} builds a "
                f"{self.assembler.kind.value} problem but the eigenproblem type is "
                f"{self._eigen_problem_type.value}.",
                suggestion="Choose an eigenproblem type matching the assembler.",
            )

    def _drop_matrices(self) -> None:
        self.matrix_A = None
        self.matrix_B = None
        self.precond_matrix = None
        self.shell_matrix_A = None
        self.shell_matrix_B = None
        self.shell_precond_matrix = None

    # --- Auxiliary matrices ---

    def add_matrix(
        self,
        mat_name: str,
        type: ParallelType = ParallelType.PARALLEL,
        mat_build_type: MatrixBuildType = MatrixBuildType.AUTOMATIC,
    ) -> SparseMatrix:
        """Register an extra matrix that takes no part in the eigensolve."""
        if not mat_name or not mat_name.strip():
            raise PreconditionError("Matrix name must be non-empty.")
        if mat_name in self._matrices:
            raise DuplicateNameError(
                f"Matrix '{mat_name}' already exists in system '{self.name}'.",
            )
        mat = SparseMatrix()
        mat.init(self.n_dofs(), self.n_dofs(), type, mat_build_type)
        self._matrices[mat_name] = mat
        return mat

    def have_matrix(self, mat_name: str) -> bool:
        return mat_name in self._matrices

    def get_matrix(self, mat_name: str) -> SparseMatrix:
        if mat_name not in self._matrices:
            raise MatrixNotFoundError(
                f"Matrix '{mat_name}' not found in system '{self.name}'. "
                f"Available: {list(self._matrices.keys())}",
            )
        return self._matrices[mat_name]

    def matrix_names(self) -> list[str]:
        return list(self._matrices.keys())

    # --- Assembly and solve ---

    def operator_A(self) -> SparseMatrix | ShellMatrix | None:
        return self.shell_matrix_A if self._use_shell_matrices else self.matrix_A

    def operator_B(self) -> SparseMatrix | ShellMatrix | None:
        return self.shell_matrix_B if self._use_shell_matrices else self.matrix_B

    def preconditioner(self) -> SparseMatrix | ShellMatrix | None:
        if self._use_shell_precond_matrix:
            return self.shell_precond_matrix
        return self.precond_matrix

    def assemble(self) -> None:
        """Fill A (and B) through the assembler; a no-op without one.

        Assemblers with a ``fill_preconditioner`` method also fill the
        preconditioner slot of matrix-free systems.
        """
        if self.assembler is None:
            return
        self.assembler.fill_operators(self.operator_A(), self.operator_B())
        precond = self.preconditioner() if self._use_shell_matrices else None
        fill_preconditioner = getattr(self.assembler, "fill_preconditioner", None)
        if precond is not None and fill_preconditioner is not None:
            fill_preconditioner(precond)

    def _check_operator_slots(self) -> None:
        self._check_configuration()
        missing = []
        if self.operator_A() is None:
            missing.append("A")
        if self._is_generalized_eigenproblem and self.operator_B() is None:
            missing.append("B")
        if missing:
            raise ConfigurationError(
                f"System '{self.name}' has no {' or '.join(missing)} operator allocated "
                f"for a {self._eigen_problem_type.value} problem "
                f"(use_shell_matrices={self._use_shell_matrices}).",
                suggestion="Call reinit() after changing the eigenproblem type or shell flags.",
            )

    def solve(self) -> None:
        """Assemble if requested, run the eigensolver and record its counters."""
        if not self.is_initialized():
            raise ConfigurationError(
                f"System '{self.name}' must be initialized before solve().",
                suggestion="Call init() first.",
            )
        self._check_operator_slots()
        if self.assemble_before_solve:
            self.assemble()

        matrix_A = self.operator_A()
        precond = self.preconditioner() if self._use_shell_matrices else None
        if self._is_generalized_eigenproblem:
            nconv, its = self.eigen_solver.solve_generalized(
                matrix_A, self.operator_B(), self.settings, precond,
            )
        else:
            nconv, its = self.eigen_solver.solve_standard(matrix_A, self.settings, precond)

        self.set_n_converged(nconv)
        self.set_n_iterations(its)

        if nconv < self.settings.n_eigenpairs:
            logger.warning(
                "Eigen system '%s': %d of %d requested eigenpairs converged",
                self.name, nconv, self.settings.n_eigenpairs,
            )
        logger.info(
            "Eigen system '%s' solved: type=%s, converged=%d, iterations=%d",
            self.name, self._eigen_problem_type.value, nconv, its,
        )

    def _check_index(self, i: int) -> None:
        if not 0 <= i < self._n_converged_eigenpairs:
            raise IndexOutOfRangeError(
                f"Eigenpair index {i} out of range for system '{self.name}': "
                f"{self._n_converged_eigenpairs} converged.",
            )

    def get_eigenpair(self, i: int) -> tuple[float, float]:
        """Return eigenvalue ``i`` and copy its eigenvector into ``solution``."""
        self._check_index(i)
        value = self.eigen_solver.get_eigenpair(i, self.solution)
        self.update()
        return value

    def get_eigenvalue(self, i: int) -> tuple[float, float]:
        """Return eigenvalue ``i`` without touching ``solution``."""
        self._check_index(i)
        return self.eigen_solver.get_eigenvalue(i)

    def eigenvalues(self) -> np.ndarray:
        return np.array(
            [complex(*self.get_eigenvalue(i)) for i in range(self._n_converged_eigenpairs)],
            dtype=complex,
        )

    def summary(self) -> dict[str, Any]:
        info = super().summary()
        info.update(
            problem_type=self._eigen_problem_type.value,
            generalized=self._is_generalized_eigenproblem,
            use_shell_matrices=self._use_shell_matrices,
            use_shell_precond_matrix=self._use_shell_precond_matrix,
            n_matrices=self.n_matrices(),
            n_converged=self._n_converged_eigenpairs,
            n_iterations=self._n_iterations,
            solver_package=self.eigen_solver.package.value,
            auxiliary_matrices=self.matrix_names(),
        )
        if self.assembler is not None:
            info["assembler"] = type(self.assembler).__name__
        return info


def _sparse(n: int, parallel_type: ParallelType) -> SparseMatrix:
    mat = SparseMatrix()
    mat.init(n, n, parallel_type)
    return mat


def _shell(n: int) -> ShellMatrix:
    mat = ShellMatrix()
    mat.init(n, n)
    return mat
