"""
Artifact factory: content hashing and inline/reference selection.
"""

import hashlib
from typing import Any, Dict, Optional

from execution.errors import InvalidOperationError
from execution.types import Artifact, InlineContent, ReferenceContent


def content_hash(raw: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded content."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def create_artifact(
    agent_span_id: str,
    name: str,
    content_type: str,
    data: Optional[str] = None,
    uri: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Artifact:
    """
    Build an artifact for an agent span.

    Exactly one of `data` (inline payload) or `uri` (external reference)
    must be given. The hash and size cover whichever was supplied.

    Raises:
        InvalidOperationError: If neither or both of data/uri are given.
    """
    if (data is None) == (uri is None):
        raise InvalidOperationError("Exactly one of data or uri must be provided for an artifact")

    if data is not None:
        raw = data
        content = InlineContent(data=data)
    else:
        raw = uri
        content = ReferenceContent(uri=uri)

    return Artifact(
        agent_span_id=agent_span_id,
        name=name,
        content_type=content_type,
        content_hash=content_hash(raw),
        size_bytes=len(raw.encode("utf-8")),
        content=content,
        metadata=metadata or {},
    )
