"""Datanode data-plane adapter protocols and connection handle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Sequence, runtime_checkable

from packages.stowage_shared.containers import ContainerData, Pipeline


@dataclass(eq=False)
class ConnectionHandle:
    """Poolable connection to the datanodes of one pipeline.

    ``client`` is the transport used by the datanode adapter; the production
    pool stores an ``HttpClient`` targeting the pipeline leader. ``ref_count``
    is owned by the pool that issued the handle.
    """

    pipeline: Pipeline
    client: Any
    ref_count: int = 0


@runtime_checkable
class ConnectionPool(Protocol):
    """Protocol for acquiring and releasing pipeline connection handles."""

    def acquire(self, pipeline: Pipeline, container_id: int) -> ConnectionHandle:
        """Return a handle for ``pipeline``; raise ``StorageIOError`` on failure."""

    def release(self, handle: ConnectionHandle) -> None:
        """Return one acquisition of ``handle``; never raises."""


@runtime_checkable
class DatanodeAdapter(Protocol):
    """Protocol for container operations executed on a pipeline's datanodes.

    Every method raises ``StorageIOError`` when the call cannot be completed.
    """

    def create_container(
        self, handle: ConnectionHandle, *, container_id: int, trace_id: str
    ) -> None:
        """Create the physical container on the pipeline."""

    def delete_container(
        self,
        handle: ConnectionHandle,
        *,
        container_id: int,
        force: bool,
        trace_id: str,
    ) -> None:
        """Delete the physical container; ``force`` allows deleting open ones."""

    def close_container(
        self, handle: ConnectionHandle, *, container_id: int, trace_id: str
    ) -> None:
        """Close the physical container to further writes."""

    def read_container(
        self, handle: ConnectionHandle, *, container_id: int, trace_id: str
    ) -> ContainerData:
        """Return the datanode's snapshot of the container."""

    def create_pipeline(
        self,
        handle: ConnectionHandle,
        *,
        pipeline_name: str,
        members: Sequence[str],
    ) -> None:
        """Materialize pipeline structures on every member datanode."""
