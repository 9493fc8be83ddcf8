"""Trace identifier generation for data-plane request correlation.

Every datanode call carries one trace id so a single container operation can
be followed across the client, the pipeline leader, and its followers. Ids are
scoped to one operation invocation and never reused.
"""

from __future__ import annotations

from typing import Protocol
from uuid import uuid4


class TraceIdFactory(Protocol):
    """Callable returning one fresh, non-empty trace identifier."""

    def __call__(self) -> str:
        """Return one new trace identifier."""


def new_trace_id() -> str:
    """Return one random UUID4 trace identifier in canonical string form."""
    return str(uuid4())
