# Execution Package
from execution.errors import (
    ExecutionError,
    InvalidOperationError,
    MissingFieldError,
    SpanNotFoundError,
)
from execution.types import (
    X_EXECUTION_ID,
    X_EXECUTION_PARENT_SPAN_ID,
    X_EXECUTION_REPO_NAME,
    Artifact,
    ArtifactContent,
    ExecutionContext,
    ExecutionEvent,
    ExecutionSpanKind,
    ExecutionSpanStatus,
    InlineContent,
    ReferenceContent,
)
from execution.span import ExecutionSpan, ExecutionSpanBuilder
from execution.result import ExecutionResult
from execution.artifacts import create_artifact
from execution.propagation import extract_execution_context, inject_execution_headers
from execution.tracker import ExecutionTracker

__all__ = [
    "X_EXECUTION_ID",
    "X_EXECUTION_PARENT_SPAN_ID",
    "X_EXECUTION_REPO_NAME",
    "Artifact",
    "ArtifactContent",
    "ExecutionContext",
    "ExecutionError",
    "ExecutionEvent",
    "ExecutionResult",
    "ExecutionSpan",
    "ExecutionSpanBuilder",
    "ExecutionSpanKind",
    "ExecutionSpanStatus",
    "ExecutionTracker",
    "InlineContent",
    "InvalidOperationError",
    "MissingFieldError",
    "ReferenceContent",
    "SpanNotFoundError",
    "create_artifact",
    "extract_execution_context",
    "inject_execution_headers",
]
