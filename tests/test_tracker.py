"""
ExecutionTracker, artifact factory and header propagation tests.
"""

import hashlib
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from execution.artifacts import create_artifact
from execution.errors import InvalidOperationError, MissingFieldError, SpanNotFoundError
from execution.propagation import extract_execution_context, inject_execution_headers
from execution.tracker import ExecutionTracker
from execution.types import (
    X_EXECUTION_ID,
    X_EXECUTION_PARENT_SPAN_ID,
    X_EXECUTION_REPO_NAME,
    ExecutionContext,
    ExecutionSpanKind,
    ExecutionSpanStatus,
    InlineContent,
    ReferenceContent,
)


@pytest.fixture
def context():
    return ExecutionContext(
        execution_id="exec-123",
        parent_span_id="caller-span-456",
        repo_name="llm-observatory",
    )


# --- Artifacts ---

def test_create_inline_artifact_hashes_content():
    artifact = create_artifact("agent-1", "analysis_report", "application/json", data='{"ok": true}')

    assert artifact.content == InlineContent(data='{"ok": true}')
    assert artifact.content_hash == hashlib.sha256(b'{"ok": true}').hexdigest()
    assert artifact.size_bytes == 12
    assert artifact.agent_span_id == "agent-1"


def test_create_reference_artifact():
    artifact = create_artifact("agent-1", "dataset", "text/csv", uri="s3://bucket/data.csv")

    assert artifact.content == ReferenceContent(uri="s3://bucket/data.csv")
    assert artifact.content_hash == hashlib.sha256(b"s3://bucket/data.csv").hexdigest()


def test_size_counts_utf8_bytes():
    artifact = create_artifact("agent-1", "note", "text/plain", data="héllo")
    assert artifact.size_bytes == 6


@pytest.mark.parametrize("kwargs", [{}, {"data": "x", "uri": "s3://y"}])
def test_create_artifact_requires_exactly_one_location(kwargs):
    with pytest.raises(InvalidOperationError):
        create_artifact("agent-1", "bad", "text/plain", **kwargs)


# --- Propagation ---

def test_extract_context_from_headers():
    ctx = extract_execution_context(
        {X_EXECUTION_ID: "exec-1", X_EXECUTION_PARENT_SPAN_ID: "caller-1"},
        default_repo_name="default-repo",
    )
    assert ctx.execution_id == "exec-1"
    assert ctx.parent_span_id == "caller-1"
    assert ctx.repo_name == "default-repo"
    assert ctx.repo_span_id is None


def test_extract_context_is_case_insensitive_and_honors_override():
    ctx = extract_execution_context(
        {"X-Execution-Id": "exec-1", "X-Execution-Parent-Span-Id": "caller-1", "X-Execution-Repo-Name": "other"},
        default_repo_name="default-repo",
    )
    assert ctx.execution_id == "exec-1"
    assert ctx.repo_name == "other"


def test_extract_context_present_empty_repo_name_overrides_default():
    ctx = extract_execution_context(
        {X_EXECUTION_ID: "exec-1", X_EXECUTION_PARENT_SPAN_ID: "caller-1", X_EXECUTION_REPO_NAME: ""},
        default_repo_name="default-repo",
    )
    assert ctx.repo_name == ""


@pytest.mark.parametrize(
    "headers",
    [{X_EXECUTION_ID: "exec-1"}, {X_EXECUTION_PARENT_SPAN_ID: "caller-1"}, {}],
)
def test_extract_context_missing_required_header(headers):
    assert extract_execution_context(headers, "repo") is None


def test_inject_headers_links_downstream_under_repo_span():
    ctx = ExecutionContext(execution_id="e", parent_span_id="caller", repo_span_id="R1", repo_name="repo")
    headers = inject_execution_headers(ctx, {"authorization": "Bearer x"})

    assert headers == {
        "authorization": "Bearer x",
        X_EXECUTION_ID: "e",
        X_EXECUTION_PARENT_SPAN_ID: "R1",
        X_EXECUTION_REPO_NAME: "repo",
    }


# --- Tracker ---

def test_tracker_creates_repo_span(context):
    tracker = ExecutionTracker.from_context(context)

    repo_span = tracker.repo_span
    assert repo_span.kind == ExecutionSpanKind.REPO
    assert repo_span.parent_span_id == "caller-span-456"
    assert repo_span.status == ExecutionSpanStatus.RUNNING
    assert tracker.context().repo_span_id == repo_span.span_id
    assert tracker.headers()[X_EXECUTION_PARENT_SPAN_ID] == repo_span.span_id


def test_tracker_reuses_context_repo_span_id(context):
    ctx = context.model_copy(update={"repo_span_id": "R-fixed"})
    assert ExecutionTracker.from_context(ctx).repo_span_id == "R-fixed"


def test_tracker_requires_execution_id(context):
    with pytest.raises(MissingFieldError):
        ExecutionTracker.from_context(context.model_copy(update={"execution_id": None}))


def test_tracker_full_flow(context):
    tracker = ExecutionTracker.from_context(context)

    span = tracker.start_agent_span("analyzer-agent", {"model": "gpt-4o"})
    tracker.record_event(span.span_id, "tool_call", {"tool": "search"})
    artifact = tracker.attach_artifact(span.span_id, "analysis_report", "application/json", data="{}")
    tracker.complete_agent_span(span.span_id)

    result = tracker.finalize()

    assert result.valid
    assert result.repo_span.status == ExecutionSpanStatus.COMPLETED
    assert result.total_artifacts == 1
    assert result.total_duration_ms is not None
    agent = result.agent_spans[0]
    assert agent.parent_span_id == tracker.repo_span_id
    assert agent.attributes == {"model": "gpt-4o"}
    assert agent.artifacts == [artifact]
    assert agent.events[0].name == "tool_call"


def test_finalize_without_agents_is_invalid(context):
    result = ExecutionTracker.from_context(context).finalize()

    assert not result.valid
    assert result.repo_span.status == ExecutionSpanStatus.COMPLETED
    assert any("No agent spans" in e for e in result.validation_errors)


def test_finalize_marks_repo_failed_when_agent_failed(context):
    tracker = ExecutionTracker.from_context(context)
    ok = tracker.start_agent_span("ok")
    bad = tracker.start_agent_span("bad")
    tracker.complete_agent_span(ok.span_id)
    tracker.fail_agent_span(bad.span_id, "timeout")

    result = tracker.finalize()

    assert result.valid
    assert result.repo_span.status == ExecutionSpanStatus.FAILED
    assert result.repo_span.error_message == "One or more agent spans failed"


def test_finalize_with_explicit_error(context):
    tracker = ExecutionTracker.from_context(context)
    tracker.start_agent_span("agent")

    result = tracker.finalize(error="upstream aborted")

    assert result.repo_span.error_message == "upstream aborted"
    assert result.repo_span.is_failed


def test_finalize_orders_agent_spans_by_start_time(context):
    tracker = ExecutionTracker.from_context(context)
    first = tracker.start_agent_span("first")
    second = tracker.start_agent_span("second")
    first.start_time = second.start_time + timedelta(seconds=1)

    result = tracker.finalize()

    assert [s.agent_name for s in result.agent_spans] == ["second", "first"]


def test_unknown_span_id_raises(context):
    tracker = ExecutionTracker.from_context(context)
    with pytest.raises(SpanNotFoundError):
        tracker.complete_agent_span("missing")


def test_added_duplicate_spans_surface_in_validation(context, make_agent_span):
    tracker = ExecutionTracker.from_context(context)
    tracker.add_agent_span(make_agent_span(tracker.repo_span_id, span_id="A1"))
    tracker.add_agent_span(make_agent_span(tracker.repo_span_id, span_id="A1"))

    result = tracker.finalize()

    assert not result.valid
    assert "Duplicate agent span_id: A1" in result.validation_errors


def test_parallel_agents_each_own_a_span(context):
    tracker = ExecutionTracker.from_context(context)

    def run_agent(i: int) -> str:
        span = tracker.start_agent_span(f"agent-{i}")
        tracker.attach_artifact(span.span_id, "out", "text/plain", data=str(i))
        tracker.complete_agent_span(span.span_id)
        return span.span_id

    with ThreadPoolExecutor(max_workers=8) as pool:
        span_ids = list(pool.map(run_agent, range(32)))

    result = tracker.finalize()

    assert result.valid
    assert len(result.agent_spans) == 32
    assert {s.span_id for s in result.agent_spans} == set(span_ids)
    assert result.total_artifacts == 32
