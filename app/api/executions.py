"""
Execution API Routes

Thin delegation layer over the execution core.
Handlers read the context injected by the execution middleware; they never
parse execution headers themselves.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_validator

from app.core.logging import log_fields
from app.dependencies import (
    OptExecutionContext,
    OptRepoSpan,
    ReqExecutionContext,
    ReqRepoSpan,
    get_execution_collector,
)
from execution.tracker import ExecutionTracker
from execution.types import utc_now
from observability.collector import ExecutionCollector


logger = logging.getLogger(__name__)

router = APIRouter()


class ArtifactReport(BaseModel):
    """An artifact produced by an agent; exactly one of data/uri."""
    name: str
    content_type: str
    data: Optional[str] = None
    uri: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _one_location(self) -> "ArtifactReport":
        if (self.data is None) == (self.uri is None):
            raise ValueError("exactly one of data or uri is required")
        return self


class EventReport(BaseModel):
    name: str
    attributes: Dict[str, Any] = Field(default_factory=dict)


class AgentReport(BaseModel):
    """One agent's unit of work under this request's repo span."""
    agent_name: str
    attributes: Dict[str, Any] = Field(default_factory=dict)
    events: List[EventReport] = Field(default_factory=list)
    artifacts: List[ArtifactReport] = Field(default_factory=list)
    error: Optional[str] = Field(default=None, description="Marks the agent span FAILED when set")


class ExecutionReportRequest(BaseModel):
    """Agent work performed while handling this execution."""
    agents: List[AgentReport] = Field(default_factory=list)
    error: Optional[str] = Field(default=None, description="Marks the repo span FAILED when set")


class ObservationEvent(BaseModel):
    """An observation pushed by an upstream subsystem."""
    source: str
    event_type: str
    execution_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    payload: Dict[str, Any] = Field(default_factory=dict)


class ObservationResponse(BaseModel):
    status: str = "accepted"
    execution_id: str
    tracked: bool = Field(..., description="Whether the observation was recorded on a repo span")


@router.get("/executions/context")
def get_execution_context(context: ReqExecutionContext) -> JSONResponse:
    """Return the execution context established for this request."""
    return JSONResponse(content=context.model_dump(mode="json"))


@router.post("/executions/report")
def report_execution(
    report: ExecutionReportRequest,
    repo_span: ReqRepoSpan,
    collector: ExecutionCollector = Depends(get_execution_collector),
) -> JSONResponse:
    """
    Record the reported agent work under this request's repo span.

    Flow:
    1. Adopt the middleware's repo span
    2. One agent span per reported agent (events, artifacts, outcome)
    3. Finalize (terminate repo span + validate)
    4. Emit via the collector, return the result

    An invalid execution is a normal 200 response with valid=false.
    """
    tracker = ExecutionTracker.from_repo_span(repo_span)

    for agent in report.agents:
        span = tracker.start_agent_span(agent.agent_name, agent.attributes)
        for event in agent.events:
            span.record_event(event.name, event.attributes)
        for artifact in agent.artifacts:
            tracker.attach_artifact(
                span.span_id,
                name=artifact.name,
                content_type=artifact.content_type,
                data=artifact.data,
                uri=artifact.uri,
                metadata=artifact.metadata,
            )
        if agent.error:
            span.fail(agent.error)
        else:
            span.complete()

    result = tracker.finalize(error=report.error)
    collector.capture(result)

    return JSONResponse(content=result.to_dict())


@router.post("/observations", status_code=202)
def receive_observation(
    event: ObservationEvent,
    context: OptExecutionContext,
    repo_span: OptRepoSpan,
) -> ObservationResponse:
    """Accept an observation; recorded on the repo span when tracked."""
    logger.info(
        "Observation received %s",
        log_fields(
            source=event.source,
            event_type=event.event_type,
            execution_id=event.execution_id,
            repo_span_id=context.repo_span_id if context else None,
        ),
    )

    if repo_span is not None:
        repo_span.record_event(
            "observation",
            {
                "source": event.source,
                "event_type": event.event_type,
                "observed_at": event.timestamp.isoformat(),
                "payload": event.payload,
            },
        )

    return ObservationResponse(execution_id=event.execution_id, tracked=repo_span is not None)
