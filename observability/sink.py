"""
Result Sink Interface

Abstract sink for validated execution results.
Storage-agnostic - implementations can write to console, file, cloud, etc.

DESIGN RULES:
- Side-effect only
- Never throw exceptions
- Storage-agnostic interface
"""

import json
import logging
from abc import ABC, abstractmethod

from execution.result import ExecutionResult
from execution.span import ExecutionSpan


logger = logging.getLogger(__name__)


class ResultSink(ABC):
    """
    Abstract base for execution result destinations.

    Implementations:
    - ConsoleResultSink (default)
    - JsonResultSink (JSON lines on stdout)
    - FileResultSink (append-only JSONL file)
    """

    @abstractmethod
    def emit(self, result: ExecutionResult) -> None:
        """
        Emit a result to the sink.

        Must not throw - failures should be logged and ignored.
        """
        pass


class NullResultSink(ResultSink):
    """Discards results (tracking disabled at the sink level)."""

    def emit(self, result: ExecutionResult) -> None:
        return None


class ConsoleResultSink(ResultSink):
    """
    Default sink that prints results to console.

    Format: structured but human-readable.
    """

    def __init__(self, verbose: bool = True):
        """
        Initialize console sink.

        Args:
            verbose: If True, print every agent span. If False, summary only.
        """
        self._verbose = verbose

    def emit(self, result: ExecutionResult) -> None:
        """Print result to console."""
        try:
            status = "✓" if result.valid else "✗"
            repo = result.repo_span

            print(f"\n{'='*60}")
            print(f"[EXECUTION] {status} {result.execution_id}")
            print(f"{'='*60}")
            print(f"  Repo:      {repo.repo_name} ({repo.span_id[:8]}...)")
            print(f"  Status:    {repo.status.value}")
            print(f"  Agents:    {len(result.agent_spans)}")
            print(f"  Artifacts: {result.total_artifacts}")
            if result.total_duration_ms is not None:
                print(f"  Duration:  {result.total_duration_ms}ms")

            for error in result.validation_errors:
                print(f"  Invalid:   {error}")

            if self._verbose and result.agent_spans:
                print(f"\n  Agent spans:")
                for span in result.agent_spans:
                    self._print_span(span, indent=4)

            print(f"{'='*60}\n")

        except Exception as e:
            # Never throw - just log failure
            logger.warning("Failed to emit execution result: %s", e)

    def _print_span(self, span: ExecutionSpan, indent: int = 0) -> None:
        prefix = " " * indent
        duration = f"{span.duration_ms}ms" if span.duration_ms is not None else "running"
        print(f"{prefix}{span.agent_name} [{span.status.value}] {duration}")
        if span.error_message:
            print(f"{prefix}  error: {span.error_message}")
        if span.artifacts:
            print(f"{prefix}  artifacts: [{len(span.artifacts)} items]")
        if span.events:
            print(f"{prefix}  events: [{len(span.events)} items]")


class JsonResultSink(ResultSink):
    """
    Sink that outputs results as JSON lines.

    Useful for log aggregation systems.
    """

    def emit(self, result: ExecutionResult) -> None:
        """Print result as JSON line."""
        try:
            print(json.dumps(result.to_dict()))
        except Exception as e:
            logger.warning("Failed to emit JSON execution result: %s", e)
