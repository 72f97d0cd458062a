"""Unit tests for error hierarchy and handle_tool_errors decorator."""

from __future__ import annotations

import pytest

from eigensystem_mcp.errors import (
    ConfigurationError,
    DuplicateNameError,
    EigenSystemError,
    IndexOutOfRangeError,
    InvariantError,
    MatrixNotFoundError,
    PostconditionError,
    PreconditionError,
    SolverFailureError,
    SystemNotFoundError,
    handle_tool_errors,
)

# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class TestErrorHierarchy:
    def test_base_error(self):
        e = EigenSystemError("test message")
        assert str(e) == "test message"
        assert e.error_code == "EIGENSYSTEM_ERROR"

    def test_base_with_suggestion(self):
        e = EigenSystemError("msg", suggestion="try this")
        d = e.to_dict()
        assert d["error"] == "EIGENSYSTEM_ERROR"
        assert d["message"] == "msg"
        assert d["suggestion"] == "try this"

    def test_base_without_suggestion_omits_key(self):
        assert "suggestion" not in EigenSystemError("msg").to_dict()

    def test_duplicate_name(self):
        e = DuplicateNameError("already exists")
        assert e.error_code == "DUPLICATE_NAME"

    def test_index_out_of_range(self):
        e = IndexOutOfRangeError("index 5")
        assert e.error_code == "INDEX_OUT_OF_RANGE"
        assert "get_n_converged" in e.suggestion

    def test_suggestion_override_does_not_leak_to_class(self):
        ConfigurationError("x", suggestion="custom")
        assert ConfigurationError("y").suggestion != "custom"

    def test_all_subclasses_have_unique_error_code(self):
        subclasses = [
            ConfigurationError,
            DuplicateNameError,
            MatrixNotFoundError,
            SystemNotFoundError,
            IndexOutOfRangeError,
            SolverFailureError,
            PreconditionError,
            PostconditionError,
            InvariantError,
        ]
        codes = [cls.error_code for cls in subclasses]
        assert len(set(codes)) == len(codes)
        for cls in subclasses:
            assert issubclass(cls, EigenSystemError)
            assert cls.error_code != EigenSystemError.error_code


# ---------------------------------------------------------------------------
# handle_tool_errors
# ---------------------------------------------------------------------------


class TestHandleToolErrors:
    @pytest.mark.asyncio
    async def test_passes_through_result(self):
        @handle_tool_errors
        async def tool(x: int) -> dict:
            return {"x": x}

        assert await tool(3) == {"x": 3}

    @pytest.mark.asyncio
    async def test_known_error_becomes_dict(self):
        @handle_tool_errors
        async def tool() -> dict:
            raise MatrixNotFoundError("Matrix 'aux' not found")

        result = await tool()
        assert result["error"] == "MATRIX_NOT_FOUND"
        assert "aux" in result["message"]

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_internal(self):
        @handle_tool_errors
        async def tool() -> dict:
            raise RuntimeError("boom")

        result = await tool()
        assert result["error"] == "INTERNAL_ERROR"
        assert "boom" in result["message"]

    def test_preserves_signature(self):
        import inspect

        async def tool(system: str, index: int = 0) -> dict:
            return {}

        wrapped = handle_tool_errors(tool)
        assert list(inspect.signature(wrapped).parameters) == ["system", "index"]
        assert wrapped.__name__ == "tool"
