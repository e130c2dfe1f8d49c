"""
ExecutionResult Validation Tests

Verifies:
- Every structural rule reports its own diagnostic
- Errors accumulate in one pass
- validate() is idempotent and never mutates spans
- Derived totals are always refreshed
"""

from execution.result import ExecutionResult


def test_execution_result_valid(make_repo_span, make_agent_span):
    repo_span = make_repo_span("caller-span-1", span_id="R1")
    agents = [make_agent_span("R1", span_id="A1"), make_agent_span("R1", span_id="A2")]

    result = ExecutionResult.new(repo_span, agents).validate()

    assert result.valid
    assert result.validation_errors == []
    assert result.total_artifacts == 0
    assert result.execution_id == "exec-1"


def test_new_result_is_unvalidated(make_repo_span, make_agent_span):
    repo_span = make_repo_span()
    result = ExecutionResult.new(repo_span, [make_agent_span(repo_span.span_id)])
    assert result.valid is False
    assert result.validation_errors == []


def test_rejects_empty_parent_span_id(make_repo_span, make_agent_span):
    repo_span = make_repo_span("")
    agent_span = make_agent_span(repo_span.span_id)

    result = ExecutionResult.new(repo_span, [agent_span]).validate()

    assert not result.valid
    assert any("parent_span_id" in e for e in result.validation_errors)


def test_rejects_no_agent_spans(make_repo_span):
    result = ExecutionResult.new(make_repo_span("caller-span-1"), []).validate()

    assert not result.valid
    assert any("No agent spans" in e for e in result.validation_errors)


def test_rejects_wrong_parent(make_repo_span, make_agent_span):
    repo_span = make_repo_span(span_id="R1")
    agent_span = make_agent_span("wrong-parent", span_id="A1")

    result = ExecutionResult.new(repo_span, [agent_span]).validate()

    assert not result.valid
    assert result.validation_errors == [
        "Agent span A1 has parent_span_id wrong-parent but expected repo span R1"
    ]


def test_rejects_duplicate_span_ids(make_repo_span, make_agent_span):
    repo_span = make_repo_span(span_id="R1")
    agents = [make_agent_span("R1", span_id="A1"), make_agent_span("R1", span_id="A1")]

    result = ExecutionResult.new(repo_span, agents).validate()

    assert not result.valid
    assert result.validation_errors == ["Duplicate agent span_id: A1"]


def test_one_error_per_repeated_occurrence(make_repo_span, make_agent_span):
    repo_span = make_repo_span(span_id="R1")
    agents = [make_agent_span("R1", span_id="A1") for _ in range(3)]

    result = ExecutionResult.new(repo_span, agents).validate()

    assert sum("Duplicate" in e for e in result.validation_errors) == 2


def test_errors_accumulate_in_rule_order(make_repo_span, make_agent_span):
    repo_span = make_repo_span("", span_id="R1")
    agents = [make_agent_span("X", span_id="A1"), make_agent_span("R1", span_id="A1")]

    result = ExecutionResult.new(repo_span, agents).validate()

    assert len(result.validation_errors) == 3
    assert "parent_span_id from caller" in result.validation_errors[0]
    assert "has parent_span_id X" in result.validation_errors[1]
    assert "Duplicate" in result.validation_errors[2]


def test_counts_artifacts(make_repo_span, make_agent_span, make_artifact):
    repo_span = make_repo_span()
    first = make_agent_span(repo_span.span_id)
    second = make_agent_span(repo_span.span_id)
    first.attach_artifact(make_artifact(first.span_id))
    second.attach_artifact(make_artifact(second.span_id))
    second.attach_artifact(make_artifact(second.span_id))

    result = ExecutionResult.new(repo_span, [first, second]).validate()

    assert result.valid
    assert result.total_artifacts == 3


def test_total_duration_follows_repo_span(make_repo_span, make_agent_span):
    repo_span = make_repo_span()
    agent = make_agent_span(repo_span.span_id)

    result = ExecutionResult.new(repo_span, [agent]).validate()
    assert result.total_duration_ms is None

    repo_span.complete()
    result.validate()
    assert result.total_duration_ms == repo_span.duration_ms


def test_validate_is_idempotent(make_repo_span, make_agent_span):
    repo_span = make_repo_span("")
    result = ExecutionResult.new(repo_span, [make_agent_span("nope")])

    first = result.validate()
    snapshot = (first.valid, list(first.validation_errors), first.total_artifacts, first.total_duration_ms)
    second = result.validate()

    assert (second.valid, second.validation_errors, second.total_artifacts, second.total_duration_ms) == snapshot


def test_validate_does_not_mutate_spans(make_repo_span, make_agent_span):
    repo_span = make_repo_span()
    agent = make_agent_span("wrong")
    before = (repo_span.model_dump(), agent.model_dump())

    ExecutionResult.new(repo_span, [agent]).validate()

    assert (repo_span.model_dump(), agent.model_dump()) == before


def test_revalidate_reflects_span_changes(make_repo_span, make_agent_span, make_artifact):
    repo_span = make_repo_span(span_id="R1")
    agent = make_agent_span("wrong", span_id="A1")
    result = ExecutionResult.new(repo_span, [agent]).validate()
    assert not result.valid

    result.agent_spans[0].parent_span_id = "R1"
    result.agent_spans[0].attach_artifact(make_artifact("A1"))
    result.validate()

    assert result.valid
    assert result.total_artifacts == 1
