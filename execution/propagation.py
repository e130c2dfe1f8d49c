"""
Header-based execution context propagation.

Inbound: extract an ExecutionContext from request headers.
Outbound: inject this service's context into downstream call headers.
"""

from typing import Mapping, MutableMapping, Optional

from execution.types import (
    X_EXECUTION_ID,
    X_EXECUTION_PARENT_SPAN_ID,
    X_EXECUTION_REPO_NAME,
    ExecutionContext,
)


def _get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    # Case-insensitive mappings (Starlette Headers) answer directly
    value = headers.get(name)
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == name:
                value = candidate
                break
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return value


def extract_execution_context(
    headers: Mapping[str, str],
    default_repo_name: str,
) -> Optional[ExecutionContext]:
    """
    Build an ExecutionContext from inbound headers.

    Returns:
        The context (repo_span_id unset), or None when x-execution-id or
        x-execution-parent-span-id is missing.
    """
    execution_id = _get_header(headers, X_EXECUTION_ID)
    parent_span_id = _get_header(headers, X_EXECUTION_PARENT_SPAN_ID)

    if execution_id is None or parent_span_id is None:
        return None

    repo_name = _get_header(headers, X_EXECUTION_REPO_NAME)
    if repo_name is None:
        repo_name = default_repo_name

    return ExecutionContext(
        execution_id=execution_id,
        parent_span_id=parent_span_id,
        repo_name=repo_name,
    )


def inject_execution_headers(
    context: ExecutionContext,
    headers: Optional[MutableMapping[str, str]] = None,
) -> MutableMapping[str, str]:
    """
    Write execution headers for a downstream call.

    The downstream parent is this service's repo span when known, so the
    callee's repo span links under ours; otherwise the inbound parent is
    forwarded unchanged.
    """
    if headers is None:
        headers = {}
    headers[X_EXECUTION_ID] = context.execution_id
    headers[X_EXECUTION_PARENT_SPAN_ID] = context.repo_span_id or context.parent_span_id
    if context.repo_name:
        headers[X_EXECUTION_REPO_NAME] = context.repo_name
    return headers
