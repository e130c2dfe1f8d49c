"""
FastAPI Dependencies

Shared objects are created once here, not per request.
Request-scoped execution state is read back from what the execution
middleware injected.

RULE: A handler that declares ReqExecutionContext requires execution
context, regardless of the middleware's enforce setting.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Request

from app.core.config import settings
from app.core.errors import MISSING_EXECUTION_CONTEXT, ExecutionHTTPError
from app.middleware.execution import EXECUTION_CONTEXT_STATE, REPO_SPAN_STATE
from execution.span import ExecutionSpan
from execution.types import ExecutionContext
from observability.collector import ExecutionCollector
from observability.file_sink import FileResultSink
from observability.sink import ConsoleResultSink, JsonResultSink, NullResultSink, ResultSink


_MISSING_CONTEXT_MESSAGE = (
    "Execution context not found. Ensure execution middleware is applied "
    "and x-execution-id / x-execution-parent-span-id headers are provided."
)


def _build_sink(kind: str) -> ResultSink:
    if kind == "json":
        return JsonResultSink()
    if kind == "jsonl":
        return FileResultSink(settings.results_path)
    if kind == "none":
        return NullResultSink()
    return ConsoleResultSink(verbose=settings.sink_verbose)


@lru_cache(maxsize=1)
def get_execution_collector() -> ExecutionCollector:
    """
    Create and cache the ExecutionCollector singleton.

    Returns:
        ExecutionCollector: Emits validated results to the configured sink.
    """
    return ExecutionCollector(sink=_build_sink(settings.result_sink))


def optional_execution_context(request: Request) -> Optional[ExecutionContext]:
    """Injected context, or None when the request is untracked."""
    return getattr(request.state, EXECUTION_CONTEXT_STATE, None)


def require_execution_context(request: Request) -> ExecutionContext:
    """
    Injected context for handlers that require it.

    Raises:
        ExecutionHTTPError: 400 MISSING_EXECUTION_CONTEXT when absent.
    """
    context = optional_execution_context(request)
    if context is None:
        raise ExecutionHTTPError(400, MISSING_EXECUTION_CONTEXT, _MISSING_CONTEXT_MESSAGE)
    return context


def optional_repo_span(request: Request) -> Optional[ExecutionSpan]:
    return getattr(request.state, REPO_SPAN_STATE, None)


def require_repo_span(request: Request) -> ExecutionSpan:
    """Injected repo span; same boundary as require_execution_context."""
    repo_span = optional_repo_span(request)
    if repo_span is None:
        raise ExecutionHTTPError(400, MISSING_EXECUTION_CONTEXT, _MISSING_CONTEXT_MESSAGE)
    return repo_span


ReqExecutionContext = Annotated[ExecutionContext, Depends(require_execution_context)]
OptExecutionContext = Annotated[Optional[ExecutionContext], Depends(optional_execution_context)]
ReqRepoSpan = Annotated[ExecutionSpan, Depends(require_repo_span)]
OptRepoSpan = Annotated[Optional[ExecutionSpan], Depends(optional_repo_span)]
