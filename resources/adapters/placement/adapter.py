"""Transport-agnostic placement metadata adapter protocol."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from packages.stowage_shared.containers import (
    ContainerRecord,
    NodePool,
    NodeState,
    Pipeline,
    QueryScope,
    ReplicationFactor,
    ReplicationType,
    StageOperation,
    StagePhase,
    StageSubject,
)


@runtime_checkable
class PlacementAdapter(Protocol):
    """Protocol for the authoritative container and pipeline metadata service.

    Every method raises ``StorageIOError`` when the call cannot be completed.
    """

    def allocate_container(
        self,
        *,
        replication_type: ReplicationType,
        replication_factor: ReplicationFactor,
        owner: str,
    ) -> ContainerRecord:
        """Allocate a container record and attach a pipeline to it."""

    def notify_stage_change(
        self,
        *,
        subject: StageSubject,
        subject_id: str,
        operation: StageOperation,
        phase: StagePhase,
    ) -> None:
        """Report the begin or completion of one lifecycle operation."""

    def delete_container(self, *, container_id: int) -> None:
        """Remove a container from the metadata index."""

    def get_container(self, *, container_id: int) -> ContainerRecord:
        """Return the metadata record of one container."""

    def list_container(
        self, *, start_container_id: int, count: int
    ) -> list[ContainerRecord]:
        """Return up to ``count`` records starting at ``start_container_id``."""

    def query_node(
        self,
        *,
        node_states: Sequence[NodeState],
        query_scope: QueryScope,
        pool_name: str,
    ) -> NodePool:
        """Return the datanodes matching the given states."""

    def create_replication_pipeline(
        self,
        *,
        replication_type: ReplicationType,
        replication_factor: ReplicationFactor,
        node_pool: NodePool,
    ) -> Pipeline:
        """Ask the metadata service to build a replication pipeline."""
