import pytest

from execution.span import ExecutionSpan
from execution.types import Artifact, ExecutionSpanKind, InlineContent


@pytest.fixture
def make_repo_span():
    def _make(parent: str = "caller-span-1", span_id: str | None = None) -> ExecutionSpan:
        builder = (
            ExecutionSpan.builder()
            .execution_id("exec-1")
            .parent_span_id(parent)
            .kind(ExecutionSpanKind.REPO)
            .repo_name("llm-observatory")
        )
        if span_id is not None:
            builder.span_id(span_id)
        return builder.build()
    return _make


@pytest.fixture
def make_agent_span():
    def _make(parent: str, span_id: str | None = None, agent_name: str = "test-agent") -> ExecutionSpan:
        builder = (
            ExecutionSpan.builder()
            .execution_id("exec-1")
            .parent_span_id(parent)
            .kind(ExecutionSpanKind.AGENT)
            .repo_name("llm-observatory")
            .agent_name(agent_name)
        )
        if span_id is not None:
            builder.span_id(span_id)
        return builder.build()
    return _make


@pytest.fixture
def make_artifact():
    def _make(agent_span_id: str = "agent-1", data: str = "hello") -> Artifact:
        return Artifact(
            agent_span_id=agent_span_id,
            name="test",
            content_type="text/plain",
            content_hash="abc123",
            size_bytes=len(data),
            content=InlineContent(data=data),
        )
    return _make
