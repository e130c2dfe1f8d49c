"""
Execution Context Middleware

Extracts agentic execution context from HTTP headers, creates the
repo-level execution span, and injects both into request state:

    request.state.execution_context -> ExecutionContext
    request.state.repo_span         -> ExecutionSpan (kind=REPO, RUNNING)

Headers:
- x-execution-id (required when enforcing): top-level execution id
- x-execution-parent-span-id (required when enforcing): caller's span id
- x-execution-repo-name (optional): overrides the configured repo name

Modes:
- Enforcing: missing headers are rejected with 400; the handler never runs
- Permissive: missing headers pass through untracked; span build failures
  are logged and the request proceeds without context
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from app.core.errors import (
    EXECUTION_SPAN_CREATION_FAILED,
    MISSING_EXECUTION_ID,
    MISSING_PARENT_SPAN_ID,
    ExecutionHTTPError,
)
from app.core.logging import log_fields
from execution.errors import ExecutionError
from execution.span import ExecutionSpan
from execution.types import (
    X_EXECUTION_ID,
    X_EXECUTION_PARENT_SPAN_ID,
    X_EXECUTION_REPO_NAME,
    ExecutionContext,
    ExecutionSpanKind,
    ExecutionSpanStatus,
    new_id,
)


logger = logging.getLogger(__name__)

EXECUTION_CONTEXT_STATE = "execution_context"
REPO_SPAN_STATE = "repo_span"


@dataclass
class ExecutionMiddlewareConfig:
    """
    Configuration for the execution context middleware.

    `enforce=False` is for gradual rollout / backwards compatibility.
    """
    repo_name: str
    enforce: bool = True
    exempt_paths: Tuple[str, ...] = field(default=("/health", "/docs", "/openapi.json"))

    @classmethod
    def permissive(cls, repo_name: str) -> "ExecutionMiddlewareConfig":
        return cls(repo_name=repo_name, enforce=False)


def build_repo_span(
    execution_id: str,
    parent_span_id: str,
    repo_name: str,
) -> Tuple[ExecutionContext, ExecutionSpan]:
    """
    Create the repo span for an inbound request and its linked context.

    Raises:
        ExecutionError: If the span cannot be built.
    """
    repo_span_id = new_id()
    repo_span = (
        ExecutionSpan.builder()
        .span_id(repo_span_id)
        .execution_id(execution_id)
        .parent_span_id(parent_span_id)
        .kind(ExecutionSpanKind.REPO)
        .repo_name(repo_name)
        .status(ExecutionSpanStatus.RUNNING)
        .build()
    )
    context = ExecutionContext(
        execution_id=execution_id,
        parent_span_id=parent_span_id,
        repo_span_id=repo_span_id,
        repo_name=repo_name,
    )
    return context, repo_span


class ExecutionContextMiddleware(BaseHTTPMiddleware):
    """
    Request-boundary component establishing execution context.

    Per request:
        NoContext -> ContextEstablished | Rejected | NoContext (passthrough)
    """

    def __init__(self, app: ASGIApp, config: ExecutionMiddlewareConfig):
        super().__init__(app)
        self.config = config

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.config.exempt_paths:
            return await call_next(request)

        execution_id = request.headers.get(X_EXECUTION_ID)
        parent_span_id = request.headers.get(X_EXECUTION_PARENT_SPAN_ID)
        # A present header overrides the configured name, even when empty.
        repo_name = request.headers.get(X_EXECUTION_REPO_NAME)
        if repo_name is None:
            repo_name = self.config.repo_name

        if self.config.enforce:
            rejection = self._establish_enforced(request, execution_id, parent_span_id, repo_name)
            if rejection is not None:
                return rejection.to_response()
        elif execution_id is not None and parent_span_id is not None:
            self._establish_permissive(request, execution_id, parent_span_id, repo_name)
        else:
            logger.warning(
                "No execution context headers found (permissive mode, proceeding without context) %s",
                log_fields(path=request.url.path),
            )

        return await call_next(request)

    def _establish_enforced(
        self,
        request: Request,
        execution_id: Optional[str],
        parent_span_id: Optional[str],
        repo_name: str,
    ) -> Optional[ExecutionHTTPError]:
        if execution_id is None:
            return ExecutionHTTPError(
                400, MISSING_EXECUTION_ID,
                f"Header '{X_EXECUTION_ID}' is required for all operations",
            )
        if parent_span_id is None:
            return ExecutionHTTPError(
                400, MISSING_PARENT_SPAN_ID,
                f"Header '{X_EXECUTION_PARENT_SPAN_ID}' is required for all operations",
            )

        try:
            context, repo_span = build_repo_span(execution_id, parent_span_id, repo_name)
        except ExecutionError as e:
            logger.error("Failed to create repo span %s", log_fields(execution_id=execution_id, error=e))
            return ExecutionHTTPError(
                500, EXECUTION_SPAN_CREATION_FAILED,
                f"Failed to create repo span: {e}",
            )

        self._inject(request, context, repo_span)
        logger.info(
            "Execution context established (enforced) %s",
            log_fields(execution_id=context.execution_id, repo_span_id=context.repo_span_id),
        )
        return None

    def _establish_permissive(
        self,
        request: Request,
        execution_id: str,
        parent_span_id: str,
        repo_name: str,
    ) -> None:
        try:
            context, repo_span = build_repo_span(execution_id, parent_span_id, repo_name)
        except ExecutionError as e:
            logger.warning(
                "Repo span creation failed (permissive mode, proceeding without context) %s",
                log_fields(execution_id=execution_id, error=e),
            )
            return

        self._inject(request, context, repo_span)
        logger.info(
            "Execution context established (permissive) %s",
            log_fields(execution_id=context.execution_id, repo_span_id=context.repo_span_id),
        )

    @staticmethod
    def _inject(request: Request, context: ExecutionContext, repo_span: ExecutionSpan) -> None:
        setattr(request.state, EXECUTION_CONTEXT_STATE, context)
        setattr(request.state, REPO_SPAN_STATE, repo_span)
