"""Unit tests for DofLayout and the base System."""

from __future__ import annotations

import numpy as np
import pytest

from eigensystem_mcp.enums import ParallelType
from eigensystem_mcp.errors import ConfigurationError, InvariantError, PreconditionError
from eigensystem_mcp.system import DofLayout, System


class TestDofLayout:
    def test_serial_covers_all_dofs(self):
        layout = DofLayout.serial(12)
        assert layout.n_local_dofs == 12
        assert layout.first_local_index == 0
        assert layout.last_local_index == 12
        assert layout.parallel_type == ParallelType.SERIAL

    def test_partial_local_range(self):
        layout = DofLayout(n_dofs=10, n_local_dofs=4, first_local_index=6)
        assert layout.last_local_index == 10
        assert layout.summary()["parallel_type"] == "parallel"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"n_dofs": -1, "n_local_dofs": 0},
            {"n_dofs": 5, "n_local_dofs": 6},
            {"n_dofs": 5, "n_local_dofs": 3, "first_local_index": 3},
        ],
    )
    def test_rejects_inconsistent(self, kwargs):
        with pytest.raises(InvariantError):
            DofLayout(**kwargs)


class TestSystem:
    def test_requires_name(self):
        with pytest.raises(PreconditionError):
            System("  ")

    def test_type(self):
        assert System("s").system_type() == "Basic"
        assert System("s").n_matrices() == 0

    def test_init_requires_dofs(self):
        with pytest.raises(ConfigurationError, match="no degrees of freedom"):
            System("s").init()

    def test_init_allocates_solution(self):
        s = System("s", n_dofs=7)
        s.init()
        assert s.is_initialized()
        assert s.solution.shape == (7,)

    def test_resize_and_reinit(self):
        s = System("s", n_dofs=4)
        s.init()
        s.resize(9)
        with pytest.raises(InvariantError, match="Call reinit"):
            s.update()
        s.reinit()
        s.update()
        assert s.solution.shape == (9,)

    def test_clear(self):
        s = System("s", n_dofs=4)
        s.init()
        s.clear()
        assert not s.is_initialized()
        assert s.solution.size == 0

    def test_solve_not_implemented(self):
        with pytest.raises(NotImplementedError):
            System("s", n_dofs=2).solve()

    def test_assemble_is_noop(self):
        s = System("s", n_dofs=2)
        s.init()
        s.assemble()
        np.testing.assert_array_equal(s.solution, np.zeros(2))

    def test_summary(self):
        summary = System("s", number=3, n_dofs=2).summary()
        assert summary["number"] == 3
        assert summary["dof_layout"]["n_dofs"] == 2
        assert summary["initialized"] is False
