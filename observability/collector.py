"""
Execution Collector

Coordinates validation and emission of execution results.
Single point of result management for the API layer.

DESIGN RULES:
- Never throw exceptions
- Graceful failure handling
- Configurable enable/disable
"""

import logging
from threading import Lock
from typing import Optional

from execution.result import ExecutionResult
from observability.sink import ConsoleResultSink, ResultSink


logger = logging.getLogger(__name__)


class ExecutionCollector:
    """
    Coordinates result lifecycle.

    Responsibilities:
    - Re-validate results before emission (validate() is idempotent)
    - Forward to configured sink
    - Handle failures gracefully (never throw)
    """

    def __init__(
        self,
        sink: Optional[ResultSink] = None,
        enabled: bool = True,
    ):
        """
        Initialize execution collector.

        Args:
            sink: ResultSink to emit results to. Defaults to ConsoleResultSink.
            enabled: Whether collection is enabled. Can be toggled at runtime.
        """
        self._sink = sink or ConsoleResultSink()
        self._enabled = enabled
        self._captured = 0
        self._invalid = 0
        self._lock = Lock()

    @property
    def enabled(self) -> bool:
        """Check if collection is enabled."""
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        """Enable or disable collection at runtime."""
        self._enabled = value

    @property
    def captured(self) -> int:
        return self._captured

    @property
    def invalid(self) -> int:
        return self._invalid

    def capture(self, result: ExecutionResult) -> None:
        """
        Validate and emit an execution result.

        Note: This method NEVER throws. Failures are logged and ignored.
        """
        if not self._enabled:
            return

        try:
            result.validate()
            with self._lock:
                self._captured += 1
                if not result.valid:
                    self._invalid += 1

            if not result.valid:
                logger.warning(
                    "Invalid execution captured execution_id=%s errors=%s",
                    result.execution_id, result.validation_errors,
                )

            self._sink.emit(result)

        except Exception as e:
            # Never throw - telemetry failure must not affect the request
            logger.warning("Failed to capture execution result: %s", e)
