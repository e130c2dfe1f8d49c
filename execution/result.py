"""
Execution Result

The final output of an execution within this repository: one repo span,
its agent spans, and a structural validation verdict.

DESIGN RULES:
- validate() never raises; "invalid" is data, not a fault
- validate() never mutates the spans
- validate() re-derives every computed field on each call (idempotent)
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_serializer

from execution.span import ExecutionSpan


class ExecutionResult(BaseModel):
    """
    Aggregate of one repo span and N agent spans.

    Validation rules:
    - Repo span has a non-empty parent_span_id
    - At least one agent span was emitted
    - Every agent span references the repo span as parent
    - No two agent spans share a span_id
    """

    execution_id: str
    repo_span: ExecutionSpan
    agent_spans: List[ExecutionSpan] = Field(default_factory=list)
    valid: bool = False
    validation_errors: List[str] = Field(default_factory=list)
    total_artifacts: int = 0
    total_duration_ms: Optional[int] = None

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler) -> Dict[str, Any]:
        data = handler(self)
        if data.get("total_duration_ms") is None:
            data.pop("total_duration_ms", None)
        return data

    @classmethod
    def new(cls, repo_span: ExecutionSpan, agent_spans: List[ExecutionSpan]) -> "ExecutionResult":
        """Assemble an unvalidated result (valid=False until validate() runs)."""
        return cls(
            execution_id=repo_span.execution_id,
            repo_span=repo_span,
            agent_spans=list(agent_spans),
            total_artifacts=sum(len(span.artifacts) for span in agent_spans),
            total_duration_ms=repo_span.duration_ms,
        )

    def validate(self) -> "ExecutionResult":
        """
        Run every structural check, accumulating all problems in one pass.

        Returns:
            self, with valid / validation_errors / total_artifacts /
            total_duration_ms recomputed from the current spans.
        """
        errors: List[str] = []
        repo_span_id = self.repo_span.span_id

        if not self.repo_span.parent_span_id:
            errors.append("Repo span is missing parent_span_id from caller")

        if not self.agent_spans:
            errors.append("No agent spans emitted -- execution has no evidence of agent work")

        for agent_span in self.agent_spans:
            if agent_span.parent_span_id != repo_span_id:
                errors.append(
                    f"Agent span {agent_span.span_id} has parent_span_id "
                    f"{agent_span.parent_span_id} but expected repo span {repo_span_id}"
                )

        seen_ids = set()
        for agent_span in self.agent_spans:
            if agent_span.span_id in seen_ids:
                errors.append(f"Duplicate agent span_id: {agent_span.span_id}")
            seen_ids.add(agent_span.span_id)

        self.validation_errors = errors
        self.valid = not errors
        self.total_artifacts = sum(len(span.artifacts) for span in self.agent_spans)
        self.total_duration_ms = self.repo_span.duration_ms
        return self

    # --- Wire format ---

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionResult":
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, raw: str) -> "ExecutionResult":
        return cls.model_validate_json(raw)
