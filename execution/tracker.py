"""
Execution Tracker

Manages one repo span and the agent spans created beneath it, then
finalizes them into a validated ExecutionResult.

Agents running in parallel (threads) each own their own span; only the
shared agent-span collection is guarded by a lock.
"""

import logging
from threading import Lock
from typing import Any, Dict, List, Optional

from execution.artifacts import create_artifact
from execution.errors import SpanNotFoundError
from execution.propagation import inject_execution_headers
from execution.result import ExecutionResult
from execution.span import ExecutionSpan
from execution.types import Artifact, ExecutionContext, ExecutionEvent, ExecutionSpanKind


logger = logging.getLogger(__name__)


class ExecutionTracker:
    """
    Tracks a single execution inside this repository.

    Usage:
        tracker = ExecutionTracker.from_context(ctx)
        span = tracker.start_agent_span("analyzer")
        tracker.attach_artifact(span.span_id, "report", "application/json", data="{}")
        tracker.complete_agent_span(span.span_id)
        result = tracker.finalize()
    """

    def __init__(self, repo_span: ExecutionSpan):
        """
        Args:
            repo_span: The repo-level span this tracker owns.
        """
        self._repo_span = repo_span
        self._agent_spans: Dict[str, ExecutionSpan] = {}
        # Externally built spans may repeat ids; kept so validation can see them.
        self._extra_spans: List[ExecutionSpan] = []
        self._lock = Lock()

    @classmethod
    def from_context(cls, context: ExecutionContext) -> "ExecutionTracker":
        """Create a tracker with a fresh repo span linked to the caller."""
        builder = (
            ExecutionSpan.builder()
            .execution_id(context.execution_id)
            .parent_span_id(context.parent_span_id)
            .kind(ExecutionSpanKind.REPO)
            .repo_name(context.repo_name)
        )
        if context.repo_span_id:
            builder.span_id(context.repo_span_id)
        return cls(builder.build())

    @classmethod
    def from_repo_span(cls, repo_span: ExecutionSpan) -> "ExecutionTracker":
        """Adopt a repo span created elsewhere (e.g. by the middleware)."""
        return cls(repo_span)

    @property
    def repo_span(self) -> ExecutionSpan:
        return self._repo_span

    @property
    def repo_span_id(self) -> str:
        return self._repo_span.span_id

    def context(self) -> ExecutionContext:
        """Context for propagation to downstream calls."""
        return ExecutionContext(
            execution_id=self._repo_span.execution_id,
            parent_span_id=self._repo_span.parent_span_id,
            repo_span_id=self._repo_span.span_id,
            repo_name=self._repo_span.repo_name,
        )

    def headers(self) -> Dict[str, str]:
        """HTTP headers that link a downstream service under this repo span."""
        return dict(inject_execution_headers(self.context()))

    # --- Agent spans ---

    def start_agent_span(
        self,
        agent_name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> ExecutionSpan:
        """Start a RUNNING agent span parented to the repo span."""
        builder = (
            ExecutionSpan.builder()
            .execution_id(self._repo_span.execution_id)
            .parent_span_id(self._repo_span.span_id)
            .kind(ExecutionSpanKind.AGENT)
            .repo_name(self._repo_span.repo_name)
            .agent_name(agent_name)
        )
        for key, value in (attributes or {}).items():
            builder.attribute(key, value)
        span = builder.build()

        with self._lock:
            self._agent_spans[span.span_id] = span

        logger.debug("Agent span started span_id=%s agent=%s", span.span_id, agent_name)
        return span

    def add_agent_span(self, span: ExecutionSpan) -> None:
        """Hand an externally built agent span to this tracker."""
        with self._lock:
            if span.span_id in self._agent_spans:
                self._extra_spans.append(span)
            else:
                self._agent_spans[span.span_id] = span

    def get_agent_span(self, span_id: str) -> ExecutionSpan:
        with self._lock:
            span = self._agent_spans.get(span_id)
        if span is None:
            raise SpanNotFoundError(span_id)
        return span

    def complete_agent_span(self, span_id: str) -> None:
        self.get_agent_span(span_id).complete()

    def fail_agent_span(self, span_id: str, message: str) -> None:
        self.get_agent_span(span_id).fail(message)

    def attach_artifact(
        self,
        span_id: str,
        name: str,
        content_type: str,
        data: Optional[str] = None,
        uri: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Artifact:
        """Create an artifact (hashed) and attach it to an agent span."""
        span = self.get_agent_span(span_id)
        artifact = create_artifact(
            agent_span_id=span_id,
            name=name,
            content_type=content_type,
            data=data,
            uri=uri,
            metadata=metadata,
        )
        span.attach_artifact(artifact)
        return artifact

    def record_event(
        self,
        span_id: str,
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> ExecutionEvent:
        return self.get_agent_span(span_id).record_event(name, attributes)

    # --- Finalization ---

    def finalize(self, error: Optional[str] = None) -> ExecutionResult:
        """
        Terminate the repo span and validate the execution.

        Repo span is FAILED when `error` is given or any agent span failed,
        COMPLETED otherwise. Agent spans are ordered by start time.
        """
        with self._lock:
            agent_spans = list(self._agent_spans.values()) + list(self._extra_spans)
        agent_spans.sort(key=lambda span: span.start_time)

        if error:
            self._repo_span.fail(error)
        elif any(span.is_failed for span in agent_spans):
            self._repo_span.fail("One or more agent spans failed")
        else:
            self._repo_span.complete()

        result = ExecutionResult.new(self._repo_span, agent_spans).validate()

        if result.valid:
            logger.info(
                "Execution finalized execution_id=%s agent_spans=%d artifacts=%d",
                result.execution_id, len(agent_spans), result.total_artifacts,
            )
        else:
            logger.warning(
                "Execution finalized as INVALID execution_id=%s errors=%s",
                result.execution_id, result.validation_errors,
            )
        return result
