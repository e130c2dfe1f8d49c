"""
HTTP Error Envelope

Request-boundary errors rendered as:

    {"error": {"code": ..., "message": ...}, "meta": {"timestamp": <RFC 3339>}}
"""

from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from execution.types import utc_now


# Stable machine-readable codes
MISSING_EXECUTION_ID = "MISSING_EXECUTION_ID"
MISSING_PARENT_SPAN_ID = "MISSING_PARENT_SPAN_ID"
EXECUTION_SPAN_CREATION_FAILED = "EXECUTION_SPAN_CREATION_FAILED"
MISSING_EXECUTION_CONTEXT = "MISSING_EXECUTION_CONTEXT"


def error_body(code: str, message: str) -> Dict[str, Any]:
    return {
        "error": {"code": code, "message": message},
        "meta": {"timestamp": utc_now().isoformat()},
    }


class ExecutionHTTPError(Exception):
    """An execution-context failure surfaced to the HTTP client."""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=error_body(self.code, self.message))


async def _execution_error_handler(request: Request, exc: ExecutionHTTPError) -> JSONResponse:
    return exc.to_response()


def register_exception_handlers(app: FastAPI) -> None:
    """Render ExecutionHTTPError raised by dependencies/handlers as the envelope."""
    app.add_exception_handler(ExecutionHTTPError, _execution_error_handler)
