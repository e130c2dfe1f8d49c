"""
Execution Errors

Construction and operational errors raised by the execution core.

Validation outcomes are NOT errors: ExecutionResult.validate() reports
problems as data (valid=False + validation_errors).
"""


class ExecutionError(Exception):
    """Base class for execution tracking errors."""


class MissingFieldError(ExecutionError):
    """A required builder field was not supplied."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} is required")


class InvalidOperationError(ExecutionError):
    """Operation not permitted for this span (e.g. artifact on a repo span)."""


class SpanNotFoundError(ExecutionError):
    """Tracker lookup of an agent span id it does not own."""

    def __init__(self, span_id: str):
        self.span_id = span_id
        super().__init__(f"Agent span {span_id} not found")
