"""Unit tests for SessionState -- registration, lookup, cascade and cleanup."""

from __future__ import annotations

import pytest
from conftest import make_solve_record, make_system

from eigensystem_mcp.errors import (
    DuplicateNameError,
    InvariantError,
    PreconditionError,
    SystemNotFoundError,
)
from eigensystem_mcp.session import SessionState, SolveRecord


class TestSolveRecord:
    def test_valid(self):
        record = make_solve_record(eigenvalues=[{"index": 0, "real": 1.0, "imag": 0.0}])
        assert record.summary()["n_converged"] == 3

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"system_name": ""},
            {"n_converged": -1},
            {"n_iterations": -2},
            {"wall_time": -0.5},
            {"n_converged": 0, "eigenvalues": [{"index": 0, "real": 1.0, "imag": 0.0}]},
        ],
    )
    def test_rejects_invalid(self, kwargs):
        with pytest.raises(InvariantError):
            make_solve_record(**kwargs)


class TestRegistry:
    def test_register_and_get(self, session):
        system = session.register_system(make_system("a"))
        assert session.get_system("a") is system
        session.check_invariants()

    def test_numbers_follow_registration_order(self, session):
        session.register_system(make_system("a"))
        b = session.register_system(make_system("b"))
        assert b.number == 1

    def test_duplicate(self, session):
        session.register_system(make_system("a"))
        with pytest.raises(DuplicateNameError):
            session.register_system(make_system("a"))

    def test_not_found(self, session):
        with pytest.raises(SystemNotFoundError, match="nope"):
            session.get_system("nope")

    def test_solve_record_lookup(self, session):
        session.register_system(make_system("a"))
        with pytest.raises(PreconditionError, match="not been solved"):
            session.get_solve_record("a")
        session.record_solve(make_solve_record("a"))
        assert session.get_solve_record("a").n_iterations == 42

    def test_record_for_unknown_system(self, session):
        with pytest.raises(SystemNotFoundError):
            session.record_solve(make_solve_record("ghost"))

    def test_invariant_detects_renamed_system(self, session):
        system = session.register_system(make_system("a"))
        system.name = "b"
        with pytest.raises(InvariantError, match="registered as 'a'"):
            session.check_invariants()

    def test_invariant_detects_dangling_record(self, session):
        session.solve_records["ghost"] = SolveRecord("ghost", "NHEP", 0, 0, 0.0)
        with pytest.raises(InvariantError, match="unknown systems"):
            session.check_invariants()


class TestRemovalAndCleanup:
    def test_remove_cascades_record(self, session):
        system = session.register_system(make_system("a"))
        session.record_solve(make_solve_record("a"))
        session.remove_system("a")
        assert "a" not in session.systems
        assert "a" not in session.solve_records
        assert system.matrix_A is None
        session.check_invariants()

    def test_remove_missing(self, session):
        with pytest.raises(SystemNotFoundError):
            session.remove_system("a")

    def test_cleanup(self, session):
        session.register_system(make_system("a"))
        session.register_system(make_system("b"))
        session.record_solve(make_solve_record("b"))
        session.cleanup()
        assert session.systems == {}
        assert session.solve_records == {}

    def test_overview(self):
        session = SessionState(solver_package="slepc")
        session.register_system(make_system("a"))
        overview = session.overview()
        assert overview["solver_package"] == "slepc"
        assert overview["systems"]["a"]["type"] == "Eigen"
        assert overview["solve_records"] == {}
