"""Authoritative in-process Python API for container lifecycle operations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from packages.stowage_shared.config import StowageSettings
from packages.stowage_shared.containers import (
    ContainerData,
    ContainerRecord,
    NodePool,
    NodeState,
    Pipeline,
    QueryScope,
    ReplicationFactor,
    ReplicationType,
)


class ContainerOperationsService(ABC):
    """Public API for creating, closing, deleting and inspecting containers.

    Remote failures surface as ``StorageIOError``; violated preconditions as
    ``PreconditionError`` subclasses.
    """

    @abstractmethod
    def create_container(
        self,
        owner: str,
        *,
        replication_type: ReplicationType | None = None,
        replication_factor: ReplicationFactor | None = None,
    ) -> ContainerRecord:
        """Allocate a container, materialize its pipeline if needed, create it."""

    @abstractmethod
    def delete_container(
        self, container_id: int, pipeline: Pipeline, *, force: bool = False
    ) -> None:
        """Delete container data on its pipeline, then its metadata record."""

    @abstractmethod
    def close_container(self, container_id: int, pipeline: Pipeline) -> None:
        """Close a container to further writes."""

    @abstractmethod
    def read_container(self, container_id: int, pipeline: Pipeline) -> ContainerData:
        """Return the datanode snapshot of one container."""

    @abstractmethod
    def get_container(self, container_id: int) -> ContainerRecord:
        """Return the metadata record of one container."""

    @abstractmethod
    def list_container(
        self, start_container_id: int, count: int
    ) -> list[ContainerRecord]:
        """Return up to ``count`` metadata records from ``start_container_id``."""

    @abstractmethod
    def query_node(
        self,
        node_states: Sequence[NodeState],
        query_scope: QueryScope,
        pool_name: str,
    ) -> NodePool:
        """Return datanodes matching ``node_states``."""

    @abstractmethod
    def create_replication_pipeline(
        self,
        replication_type: ReplicationType,
        replication_factor: ReplicationFactor,
        node_pool: NodePool,
    ) -> Pipeline:
        """Ask the metadata service to build a replication pipeline."""

    @abstractmethod
    def get_container_size(self, container_id: int) -> int:
        """Return the configured container capacity in bytes."""

    def close(self) -> None:
        """Release network resources owned by this service."""


def build_container_operations_service(
    *, settings: StowageSettings
) -> ContainerOperationsService:
    """Build default container operations wiring from typed settings."""
    from services.storage.container_operations.implementation import (
        DefaultContainerOperationsService,
    )

    return DefaultContainerOperationsService.from_settings(settings)
