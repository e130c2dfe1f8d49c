"""
File-based Result Sink

JSONL file storage for execution results.
Human-readable, easy to inspect, no external dependencies.

DESIGN RULES:
- Append-only (JSONL format)
- Never throws (graceful failure)
- One full ExecutionResult wire object per line
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from execution.result import ExecutionResult
from observability.sink import ResultSink


logger = logging.getLogger(__name__)


class FileResultSink(ResultSink):
    """
    JSONL file-based result storage.
    """

    DEFAULT_PATH = "executions.jsonl"

    def __init__(self, path: str | None = None):
        """
        Initialize file sink.

        Args:
            path: Path to JSONL file. Defaults to 'executions.jsonl' in cwd.
        """
        self._path = Path(path or self.DEFAULT_PATH)

        # Ensure parent directory exists
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def emit(self, result: ExecutionResult) -> None:
        """
        Append result to JSONL file.

        Never throws - failures are logged and ignored.
        """
        try:
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(json.dumps(result.to_dict()) + "\n")
        except Exception as e:
            logger.warning("Failed to write execution result to %s: %s", self._path, e)

    def read_all(self) -> List[ExecutionResult]:
        """
        Read all results from the file (for analysis).

        Lines that fail to parse are skipped.
        """
        results = []

        if not self._path.exists():
            return results

        with open(self._path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    results.append(ExecutionResult.from_json(line))
                except ValueError as e:
                    logger.warning("Skipping unreadable execution record: %s", e)

        return results

    def get_statistics(self) -> Dict[str, Any]:
        """
        Compute basic statistics from stored results.

        Returns:
            Dict with count, valid_rate, avg_agent_spans, total_artifacts
        """
        results = self.read_all()

        if not results:
            return {"count": 0}

        return {
            "count": len(results),
            "valid_rate": sum(1 for r in results if r.valid) / len(results),
            "avg_agent_spans": sum(len(r.agent_spans) for r in results) / len(results),
            "total_artifacts": sum(r.total_artifacts for r in results),
        }
