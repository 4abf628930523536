"""API middleware and exception handlers."""

from .errors import branchdb_exception_handler, problem_response, unhandled_exception_handler

__all__ = ["branchdb_exception_handler", "problem_response", "unhandled_exception_handler"]
