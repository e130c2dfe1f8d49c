# Observability Package
from observability.sink import ResultSink, ConsoleResultSink, JsonResultSink, NullResultSink
from observability.file_sink import FileResultSink
from observability.collector import ExecutionCollector

__all__ = [
    "ResultSink",
    "ConsoleResultSink",
    "JsonResultSink",
    "NullResultSink",
    "FileResultSink",
    "ExecutionCollector",
]
