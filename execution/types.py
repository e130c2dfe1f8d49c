"""
Execution Types

Leaf data types for agentic execution tracking.

Execution tracking is orthogonal to LLM call tracing: it records which
repository is running, which agents do work inside it, and what artifacts
they produce.

    Core
      └─ Repo (this repo)
          └─ Agent (one or more)

DESIGN RULES:
- Artifacts and contexts are immutable once created
- Events are append-only
- Absent optional fields are omitted on the wire, never null
"""

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator


# HTTP header names for execution context propagation.
# Distinct prefix from W3C trace context to avoid collision with OTel tracing.
X_EXECUTION_ID = "x-execution-id"
X_EXECUTION_PARENT_SPAN_ID = "x-execution-parent-span-id"
X_EXECUTION_REPO_NAME = "x-execution-repo-name"


def new_id() -> str:
    """Generate a collision-resistant identifier (UUID v4)."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def duration_ms_between(start: datetime, end: datetime) -> int:
    """Absolute delta between two instants in whole milliseconds."""
    return abs(end - start) // timedelta(milliseconds=1)


class ExecutionSpanKind(str, Enum):
    """Discriminates repo-level vs agent-level spans."""
    REPO = "repo"
    AGENT = "agent"


class ExecutionSpanStatus(str, Enum):
    """Lifecycle status: RUNNING, then exactly one terminal state."""
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionSpanStatus.RUNNING


# --- Artifact content ---

class InlineContent(BaseModel):
    """Small payload embedded directly in the artifact."""
    model_config = ConfigDict(frozen=True)

    content_location: Literal["inline"] = "inline"
    data: str


class ReferenceContent(BaseModel):
    """Payload stored externally, addressed by URI."""
    model_config = ConfigDict(frozen=True)

    content_location: Literal["reference"] = "reference"
    uri: str


ArtifactContent = Annotated[
    Union[InlineContent, ReferenceContent],
    Field(discriminator="content_location"),
]

_CONTENT_KEYS = ("content_location", "data", "uri")


class Artifact(BaseModel):
    """
    An artifact produced by an agent and attached to its span.

    `content_hash` (SHA-256 hex) gives a stable, content-addressed reference.
    `agent_span_id` is a plain id back-reference; the owning span's artifact
    list is the only ownership edge.

    Wire form flattens `content` into the artifact object:
        {"artifact_id": ..., "content_location": "inline", "data": "..."}
    """
    model_config = ConfigDict(frozen=True)

    artifact_id: str = Field(default_factory=new_id)
    agent_span_id: str
    name: str
    content_type: str = Field(..., description="MIME type of the content")
    content_hash: str
    size_bytes: int = Field(..., ge=0)
    content: ArtifactContent
    created_at: datetime = Field(default_factory=utc_now)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _nest_flattened_content(cls, data: Any) -> Any:
        if isinstance(data, dict) and "content" not in data and "content_location" in data:
            data = dict(data)
            data["content"] = {key: data.pop(key) for key in _CONTENT_KEYS if key in data}
        return data

    @model_serializer(mode="wrap")
    def _flatten_content(self, handler) -> Dict[str, Any]:
        data = handler(self)
        content = data.pop("content", None)
        if isinstance(content, dict):
            data.update(content)
        return data

    @property
    def is_inline(self) -> bool:
        return isinstance(self.content, InlineContent)


class ExecutionEvent(BaseModel):
    """A timestamped, append-only event within an execution span."""
    name: str
    timestamp: datetime = Field(default_factory=utc_now)
    attributes: Dict[str, Any] = Field(default_factory=dict)


class ExecutionContext(BaseModel):
    """
    Per-request causal linkage extracted from inbound headers.

    Created fresh per request by the execution middleware and never
    mutated after injection.
    """
    model_config = ConfigDict(frozen=True)

    execution_id: str
    parent_span_id: str = Field(..., description="Caller's span id; parent of the repo span")
    repo_span_id: Optional[str] = Field(default=None, description="Repo span created on entry")
    repo_name: str

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler) -> Dict[str, Any]:
        data = handler(self)
        if data.get("repo_span_id") is None:
            data.pop("repo_span_id", None)
        return data
