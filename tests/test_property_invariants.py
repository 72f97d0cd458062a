"""Property-based tests using Hypothesis for EigenSystem and SessionState.

Properties tested:
  P1: generalized() always agrees with the problem type, and n_matrices() with both
  P2: after reinit the operator slots match the shell flag and problem type
  P3: every index below get_n_converged() is retrievable, the next one is not
  P4: clear() always leaves no operators, no auxiliary matrices and zero counters
  P5: any SessionState operation sequence preserves the registry invariants
  P6: cleanup always produces an empty session
"""

from __future__ import annotations

import pytest
from conftest import make_system
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from strategies import (
    apply_session_operation,
    apply_system_operation,
    dof_counts,
    problem_types,
    session_operation_sequence,
    system_operation_sequence,
)

from eigensystem_mcp.enums import EigenProblemType
from eigensystem_mcp.errors import IndexOutOfRangeError
from eigensystem_mcp.session import SessionState

_GENERALIZED = {EigenProblemType.GNHEP, EigenProblemType.GHEP, EigenProblemType.GHIEP}


class TestProblemTypeConsistency:
    """P1: the generalized flag is a function of the problem type."""

    @given(ops=system_operation_sequence)
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_flag_follows_type(self, ops: list) -> None:
        system = make_system(init=False, n_dofs=5)
        for op in ops:
            apply_system_operation(system, op)
            ept = system.get_eigenproblem_type()
            assert system.generalized() == (ept in _GENERALIZED)
            assert system.n_matrices() == (2 if system.generalized() else 1)


class TestSlotAllocation:
    """P2: reinit allocates exactly the slots the configuration calls for."""

    @given(ept=problem_types, shell=st.booleans(), n=dof_counts)
    @settings(max_examples=100)
    def test_reinit_matches_flags(self, ept, shell: bool, n: int) -> None:
        system = make_system(n_dofs=4)
        system.set_eigenproblem_type(ept)
        system.use_shell_matrices(shell)
        system.resize(n)
        system.reinit()

        assembled = (system.matrix_A, system.matrix_B)
        shells = (system.shell_matrix_A, system.shell_matrix_B)
        active, inactive = (shells, assembled) if shell else (assembled, shells)

        assert active[0] is not None and active[0].shape == (n, n)
        assert (active[1] is not None) == (ept in _GENERALIZED)
        assert inactive == (None, None)
        assert (system.precond_matrix is not None) == shell
        assert system.shell_precond_matrix is None


class TestIndexRange:
    """P3: valid eigenpair indices are exactly [0, n_converged)."""

    @given(ops=system_operation_sequence)
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_index_bounds(self, ops: list) -> None:
        system = make_system(init=False, n_dofs=5)
        for op in ops:
            apply_system_operation(system, op)
        nconv = system.get_n_converged()
        assert nconv >= 0
        for i in range(nconv):
            system.get_eigenvalue(i)
        with pytest.raises(IndexOutOfRangeError):
            system.get_eigenvalue(nconv)


class TestClear:
    """P4: clear() releases everything regardless of history."""

    @given(ops=system_operation_sequence)
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_clear_releases_all(self, ops: list) -> None:
        system = make_system(init=False, n_dofs=5)
        for op in ops:
            apply_system_operation(system, op)
        system.clear()
        assert system.operator_A() is None
        assert system.operator_B() is None
        assert system.preconditioner() is None
        assert system.matrix_names() == []
        assert (system.get_n_converged(), system.get_n_iterations()) == (0, 0)


class TestSessionInvariants:
    """P5 and P6: registry invariants hold for arbitrary operation sequences."""

    @given(ops=session_operation_sequence)
    @settings(max_examples=300, suppress_health_check=[HealthCheck.too_slow])
    def test_arbitrary_ops_preserve_invariants(self, ops: list) -> None:
        session = SessionState()
        for op in ops:
            apply_session_operation(session, op, make_system)
            session.check_invariants()

    @given(ops=session_operation_sequence)
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_cleanup_empties_session(self, ops: list) -> None:
        session = SessionState()
        for op in ops:
            apply_session_operation(session, op, make_system)
        session.cleanup()
        assert session.systems == {}
        assert session.solve_records == {}
