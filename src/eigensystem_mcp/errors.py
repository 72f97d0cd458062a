"""Structured error hierarchy and tool error handling for the eigensystem MCP server."""

from __future__ import annotations

import functools
import inspect
import logging
import traceback
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class EigenSystemError(Exception):
    """Base error for all eigen system operations."""

    error_code: str = "EIGENSYSTEM_ERROR"
    suggestion: str = ""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        if suggestion is not None:
            self.suggestion = suggestion

    def to_dict(self) -> dict[str, str]:
        result: dict[str, str] = {
            "error": self.error_code,
            "message": str(self),
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        return result


# --- Configuration errors ---


class ConfigurationError(EigenSystemError):
    error_code = "CONFIGURATION_ERROR"
    suggestion = (
        "Check the eigenproblem type and shell-matrix flags, then call reinit."
    )


# --- Registry errors ---


class DuplicateNameError(EigenSystemError):
    error_code = "DUPLICATE_NAME"
    suggestion = "Use a different name or remove the existing object first."


class MatrixNotFoundError(EigenSystemError):
    error_code = "MATRIX_NOT_FOUND"
    suggestion = "Register the matrix with add_matrix first."


class SystemNotFoundError(EigenSystemError):
    error_code = "SYSTEM_NOT_FOUND"
    suggestion = "Check available systems with get_session_state."


# --- Result access ---


class IndexOutOfRangeError(EigenSystemError):
    error_code = "INDEX_OUT_OF_RANGE"
    suggestion = "Check get_n_converged() before requesting an eigenpair."


# --- Solver errors ---


class SolverFailureError(EigenSystemError):
    error_code = "SOLVER_FAILURE"
    suggestion = (
        "Try a different solver type or spectral target, or check the operators."
    )


# --- Contract violations ---


class PreconditionError(EigenSystemError):
    """Raised when a tool receives invalid input parameters."""

    error_code = "PRECONDITION_VIOLATED"
    suggestion = "Check input parameters meet the documented requirements."


class PostconditionError(EigenSystemError):
    """Raised when an operation produces an invalid result."""

    error_code = "POSTCONDITION_VIOLATED"
    suggestion = "Internal error: operation result failed validation. Report as bug."


class InvariantError(EigenSystemError):
    """Raised when system or session state is inconsistent."""

    error_code = "INVARIANT_VIOLATED"
    suggestion = "Internal error: state is inconsistent. Consider reset_session."


# --- Decorator ---


def handle_tool_errors(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that catches EigenSystemError and generic exceptions,
    returning structured error dicts instead of raising.

    Preserves __signature__ so FastMCP can generate JSON schemas from
    the decorated function's parameters.
    """

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await fn(*args, **kwargs)
        except EigenSystemError as exc:
            logger.warning("Tool %s raised %s: %s", fn.__name__, exc.error_code, exc)
            return exc.to_dict()
        except Exception as exc:
            logger.error(
                "Tool %s unexpected error: %s\n%s",
                fn.__name__,
                exc,
                traceback.format_exc(),
            )
            return {
                "error": "INTERNAL_ERROR",
                "message": f"Unexpected error: {exc}",
                "suggestion": "This may be a bug. Check server logs for details.",
            }

    wrapper.__signature__ = inspect.signature(fn)  # type: ignore[attr-defined]
    return wrapper
