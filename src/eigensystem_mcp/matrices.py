"""Assembled and matrix-free operator containers.

``SparseMatrix`` accumulates entries in LIL form while assembling and
freezes to CSR on ``close()``. ``ShellMatrix`` only knows its size and an
attached action ``y = A @ x``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np
import scipy.sparse as sp
from scipy.sparse.linalg import LinearOperator

from .enums import MatrixBuildType, ParallelType
from .errors import InvariantError, PostconditionError, PreconditionError

logger = logging.getLogger(__name__)


class SparseMatrix:
    """Assembled sparse matrix sized from a DOF layout."""

    def __init__(self, dtype: Any = np.float64) -> None:
        self.dtype = np.dtype(dtype)
        self.parallel_type: ParallelType = ParallelType.AUTOMATIC
        self.build_type: MatrixBuildType = MatrixBuildType.AUTOMATIC
        self._lil: sp.lil_matrix | None = None
        self._csr: sp.csr_matrix | None = None
        self._shape: tuple[int, int] | None = None

    # --- Lifecycle ---

    def init(
        self,
        m: int,
        n: int,
        parallel_type: ParallelType = ParallelType.PARALLEL,
        build_type: MatrixBuildType = MatrixBuildType.AUTOMATIC,
    ) -> None:
        """(Re)allocate an empty ``m x n`` matrix, discarding any entries."""
        if m < 0 or n < 0:
            raise PreconditionError(f"Matrix dimensions must be >= 0, got ({m}, {n}).")
        if build_type == MatrixBuildType.DIAGONAL and m != n:
            raise PreconditionError(
                f"Diagonal matrices must be square, got ({m}, {n})."
            )
        self._shape = (m, n)
        self.parallel_type = ParallelType(parallel_type)
        self.build_type = MatrixBuildType(build_type)
        self._lil = sp.lil_matrix((m, n), dtype=self.dtype)
        self._csr = None

    def initialized(self) -> bool:
        return self._shape is not None

    def clear(self) -> None:
        self._lil = None
        self._csr = None
        self._shape = None

    @property
    def shape(self) -> tuple[int, int]:
        self._require_initialized()
        return self._shape  # type: ignore[return-value]

    def m(self) -> int:
        return self.shape[0]

    def n(self) -> int:
        return self.shape[1]

    # --- Assembly ---

    def _writable(self) -> sp.lil_matrix:
        self._require_initialized()
        if self._lil is None:
            # Reopen a closed matrix for further insertion.
            self._lil = self._csr.tolil()  # type: ignore[union-attr]
            self._csr = None
        return self._lil

    def _check_entry(self, i: int, j: int) -> None:
        m, n = self.shape
        if not (0 <= i < m and 0 <= j < n):
            raise PreconditionError(f"Entry ({i}, {j}) outside matrix of shape ({m}, {n}).")
        if self.build_type == MatrixBuildType.DIAGONAL and i != j:
            raise PreconditionError(
                f"Off-diagonal entry ({i}, {j}) in a diagonal matrix."
            )

    def set(self, i: int, j: int, value: complex) -> None:
        self._check_entry(i, j)
        self._writable()[i, j] = value

    def add(self, i: int, j: int, value: complex) -> None:
        self._check_entry(i, j)
        lil = self._writable()
        lil[i, j] = lil[i, j] + value

    def add_matrix(self, dense: Any, rows: Sequence[int], cols: Sequence[int] | None = None) -> None:
        """Scatter-add a dense element matrix at the given global indices."""
        cols = rows if cols is None else cols
        block = np.asarray(dense)
        if block.shape != (len(rows), len(cols)):
            raise PreconditionError(
                f"Element matrix shape {block.shape} does not match "
                f"({len(rows)}, {len(cols)}) index sets."
            )
        for a, i in enumerate(rows):
            for b, j in enumerate(cols):
                if block[a, b] != 0:
                    self.add(i, j, block[a, b])

    def zero(self) -> None:
        self._require_initialized()
        self._lil = sp.lil_matrix(self.shape, dtype=self.dtype)
        self._csr = None

    def close(self) -> None:
        """Finish assembly; the matrix becomes usable by solvers."""
        self._require_initialized()
        if self._lil is not None:
            self._csr = self._lil.tocsr()
            self._csr.sort_indices()
            self._lil = None

    def closed(self) -> bool:
        return self._csr is not None

    # --- Access ---

    def to_scipy(self) -> sp.csr_matrix:
        """Return the assembled CSR matrix, closing the matrix if needed."""
        self.close()
        return self._csr  # type: ignore[return-value]

    def vector_mult(self, x: Any) -> np.ndarray:
        return self.to_scipy() @ np.asarray(x)

    def nnz(self) -> int:
        return int(self.to_scipy().nnz)

    def is_hermitian(self, tol: float = 1e-12) -> bool:
        A = self.to_scipy()
        if A.shape[0] != A.shape[1]:
            return False
        diff = A - A.conj().T
        return diff.nnz == 0 or bool(np.all(np.abs(diff.data) < tol))

    def summary(self) -> dict[str, Any]:
        if not self.initialized():
            return {"initialized": False}
        return {
            "initialized": True,
            "shape": list(self.shape),
            "parallel_type": self.parallel_type.value,
            "build_type": self.build_type.value,
            "closed": self.closed(),
        }

    def _require_initialized(self) -> None:
        if self._shape is None:
            raise InvariantError("SparseMatrix used before init().")


class ShellMatrix:
    """Matrix-free operator: only the action ``y = A @ x`` is available."""

    def __init__(self, dtype: Any = np.float64) -> None:
        self.dtype = np.dtype(dtype)
        self._shape: tuple[int, int] | None = None
        self._action: Callable[[np.ndarray], np.ndarray] | None = None

    def init(self, m: int, n: int) -> None:
        if m < 0 or n < 0:
            raise PreconditionError(f"Shell dimensions must be >= 0, got ({m}, {n}).")
        self._shape = (m, n)
        self._action = None

    def initialized(self) -> bool:
        return self._shape is not None

    def clear(self) -> None:
        self._shape = None
        self._action = None

    @property
    def shape(self) -> tuple[int, int]:
        if self._shape is None:
            raise InvariantError("ShellMatrix used before init().")
        return self._shape

    def attach(self, action: Callable[[np.ndarray], np.ndarray]) -> None:
        """Attach the matrix-vector product defining this operator."""
        if not callable(action):
            raise PreconditionError("Shell matrix action must be callable.")
        self._action = action

    def has_action(self) -> bool:
        return self._action is not None

    def vector_mult(self, x: Any) -> np.ndarray:
        if self._action is None:
            raise InvariantError(
                "ShellMatrix has no attached action. Assemble the system first."
            )
        x = np.asarray(x)
        y = np.asarray(self._action(x))
        if y.shape != (self.shape[0],):
            raise PostconditionError(
                f"Shell action returned shape {y.shape}, expected ({self.shape[0]},)."
            )
        return y

    def as_linear_operator(self) -> LinearOperator:
        return LinearOperator(self.shape, matvec=self.vector_mult, dtype=self.dtype)

    def summary(self) -> dict[str, Any]:
        if not self.initialized():
            return {"initialized": False}
        return {
            "initialized": True,
            "shape": list(self.shape),
            "has_action": self.has_action(),
        }


def build_sparse_matrix(
    m: int,
    n: int,
    parallel_type: ParallelType = ParallelType.PARALLEL,
    build_type: MatrixBuildType = MatrixBuildType.AUTOMATIC,
    dtype: Any = np.float64,
) -> SparseMatrix:
    """Allocate and initialise a ``SparseMatrix`` in one step."""
    mat = SparseMatrix(dtype=dtype)
    mat.init(m, n, parallel_type, build_type)
    return mat


def as_operator(matrix: SparseMatrix | ShellMatrix) -> Any:
    """Return something SciPy's eigensolvers accept for ``matrix``."""
    if isinstance(matrix, ShellMatrix):
        return matrix.as_linear_operator()
    return matrix.to_scipy()
