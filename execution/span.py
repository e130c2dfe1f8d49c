"""
Execution Span

A single causal node (repo-level or agent-level) with lifecycle:

    RUNNING -> COMPLETED | FAILED | CANCELLED

DESIGN RULES:
- Built only through ExecutionSpanBuilder (validated, fail-fast)
- agent_name is set if and only if kind == AGENT
- duration_ms is set if and only if end_time is set
- Artifacts attach to agent spans only
- Exclusively owned by its creator until handed to an ExecutionResult
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_serializer

from execution.errors import InvalidOperationError, MissingFieldError
from execution.types import (
    Artifact,
    ExecutionEvent,
    ExecutionSpanKind,
    ExecutionSpanStatus,
    duration_ms_between,
    new_id,
    utc_now,
)


logger = logging.getLogger(__name__)

# Omitted from the wire form when None (never emitted as null).
_OMIT_WHEN_ABSENT = ("agent_name", "end_time", "duration_ms", "error_message")


class ExecutionSpan(BaseModel):
    """
    Repo- or agent-level execution span.

    Parent linkage:
    - Repo span: parent_span_id is the caller's span id
    - Agent span: parent_span_id is the repo span id
    """

    span_id: str = Field(default_factory=new_id)
    execution_id: str
    parent_span_id: str
    kind: ExecutionSpanKind
    repo_name: str
    agent_name: Optional[str] = None
    status: ExecutionSpanStatus = ExecutionSpanStatus.RUNNING
    start_time: datetime = Field(default_factory=utc_now)
    end_time: Optional[datetime] = None
    duration_ms: Optional[int] = None
    artifacts: List[Artifact] = Field(default_factory=list)
    events: List[ExecutionEvent] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler) -> Dict[str, Any]:
        data = handler(self)
        for key in _OMIT_WHEN_ABSENT:
            if data.get(key) is None:
                data.pop(key, None)
        return data

    @classmethod
    def builder(cls) -> "ExecutionSpanBuilder":
        return ExecutionSpanBuilder()

    # --- Lifecycle ---

    def complete(self) -> None:
        """Mark the span COMPLETED, stamping end_time and duration_ms."""
        self._terminate(ExecutionSpanStatus.COMPLETED)

    def fail(self, message: str) -> None:
        """Mark the span FAILED with an error message."""
        self._terminate(ExecutionSpanStatus.FAILED)
        self.error_message = message

    def cancel(self, reason: Optional[str] = None) -> None:
        """Mark the span CANCELLED (e.g. abandoned by its request)."""
        self._terminate(ExecutionSpanStatus.CANCELLED)
        if reason is not None:
            self.attributes["cancel_reason"] = reason

    def _terminate(self, status: ExecutionSpanStatus) -> None:
        # Not idempotent: a second call overwrites end_time/duration_ms.
        if self.status.is_terminal:
            logger.warning(
                "Span already terminal; overwriting span_id=%s status=%s new_status=%s",
                self.span_id, self.status.value, status.value,
            )
        now = utc_now()
        self.end_time = now
        self.duration_ms = duration_ms_between(self.start_time, now)
        self.status = status
        # error_message only accompanies FAILED; fail() sets it afterwards.
        self.error_message = None

    # --- Mutation while running ---

    def attach_artifact(self, artifact: Artifact) -> None:
        """
        Attach an artifact to this span.

        Raises:
            InvalidOperationError: If this is not an agent span.
        """
        if self.kind != ExecutionSpanKind.AGENT:
            raise InvalidOperationError("Artifacts can only be attached to agent spans")
        self.artifacts.append(artifact)

    def record_event(
        self,
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> ExecutionEvent:
        """Append an event stamped with the current time."""
        event = ExecutionEvent(name=name, timestamp=utc_now(), attributes=attributes or {})
        self.events.append(event)
        return event

    # --- Queries ---

    @property
    def is_completed(self) -> bool:
        return self.status == ExecutionSpanStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == ExecutionSpanStatus.FAILED

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    # --- Wire format ---

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible dict (absent optionals omitted)."""
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionSpan":
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, raw: str) -> "ExecutionSpan":
        return cls.model_validate_json(raw)


class ExecutionSpanBuilder:
    """
    Fluent, validated constructor for ExecutionSpan.

    build() is fail-fast: the first missing required field raises
    MissingFieldError, checked in this order:
        execution_id, parent_span_id, kind, repo_name, agent_name (agent spans)

    Nothing is registered anywhere; the caller owns the built span.
    """

    def __init__(self):
        self._span_id: Optional[str] = None
        self._execution_id: Optional[str] = None
        self._parent_span_id: Optional[str] = None
        self._kind: Optional[ExecutionSpanKind] = None
        self._repo_name: Optional[str] = None
        self._agent_name: Optional[str] = None
        self._status = ExecutionSpanStatus.RUNNING
        self._start_time: Optional[datetime] = None
        self._end_time: Optional[datetime] = None
        self._artifacts: List[Artifact] = []
        self._events: List[ExecutionEvent] = []
        self._attributes: Dict[str, Any] = {}
        self._error_message: Optional[str] = None

    def span_id(self, span_id: str) -> "ExecutionSpanBuilder":
        """Set span id. Generated as a UUID v4 if never set."""
        self._span_id = span_id
        return self

    def execution_id(self, execution_id: str) -> "ExecutionSpanBuilder":
        self._execution_id = execution_id
        return self

    def parent_span_id(self, parent_span_id: str) -> "ExecutionSpanBuilder":
        self._parent_span_id = parent_span_id
        return self

    def kind(self, kind: ExecutionSpanKind) -> "ExecutionSpanBuilder":
        self._kind = kind
        return self

    def repo_name(self, repo_name: str) -> "ExecutionSpanBuilder":
        self._repo_name = repo_name
        return self

    def agent_name(self, agent_name: str) -> "ExecutionSpanBuilder":
        self._agent_name = agent_name
        return self

    def status(self, status: ExecutionSpanStatus) -> "ExecutionSpanBuilder":
        self._status = status
        return self

    def start_time(self, start_time: datetime) -> "ExecutionSpanBuilder":
        self._start_time = start_time
        return self

    def end_time(self, end_time: datetime) -> "ExecutionSpanBuilder":
        self._end_time = end_time
        return self

    def artifact(self, artifact: Artifact) -> "ExecutionSpanBuilder":
        self._artifacts.append(artifact)
        return self

    def event(self, event: ExecutionEvent) -> "ExecutionSpanBuilder":
        self._events.append(event)
        return self

    def attribute(self, key: str, value: Any) -> "ExecutionSpanBuilder":
        self._attributes[key] = value
        return self

    def error_message(self, message: str) -> "ExecutionSpanBuilder":
        self._error_message = message
        return self

    def build(self) -> ExecutionSpan:
        """
        Build the span.

        Raises:
            MissingFieldError: Naming the first missing required field.
        """
        if self._execution_id is None:
            raise MissingFieldError("execution_id")
        # Empty parent ids are accepted here; ExecutionResult.validate() flags them.
        if self._parent_span_id is None:
            raise MissingFieldError("parent_span_id")
        if self._kind is None:
            raise MissingFieldError("kind")
        if self._repo_name is None:
            raise MissingFieldError("repo_name")
        if self._kind == ExecutionSpanKind.AGENT and self._agent_name is None:
            raise MissingFieldError("agent_name", "agent_name is required for agent spans")

        start_time = self._start_time or utc_now()
        duration_ms = None
        if self._end_time is not None:
            duration_ms = duration_ms_between(start_time, self._end_time)

        return ExecutionSpan(
            span_id=self._span_id or new_id(),
            execution_id=self._execution_id,
            parent_span_id=self._parent_span_id,
            kind=self._kind,
            repo_name=self._repo_name,
            agent_name=self._agent_name if self._kind == ExecutionSpanKind.AGENT else None,
            status=self._status,
            start_time=start_time,
            end_time=self._end_time,
            duration_ms=duration_ms,
            artifacts=list(self._artifacts),
            events=list(self._events),
            attributes=dict(self._attributes),
            error_message=self._error_message,
        )
