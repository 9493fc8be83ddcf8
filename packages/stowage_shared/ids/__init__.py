"""Shared identifier helpers for request correlation."""

from packages.stowage_shared.ids.trace import TraceIdFactory, new_trace_id

__all__ = ["TraceIdFactory", "new_trace_id"]
