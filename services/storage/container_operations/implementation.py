"""Concrete container operations service implementation."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Sequence

from packages.stowage_shared.config import StowageSettings
from packages.stowage_shared.containers import (
    ContainerData,
    ContainerRecord,
    LifeCycleState,
    NodePool,
    NodeState,
    Pipeline,
    QueryScope,
    ReplicationFactor,
    ReplicationType,
    StageEvent,
    StageOperation,
    StagePhase,
    StageSubject,
)
from packages.stowage_shared.errors import (
    ContainerSizeUnknownError,
    IllegalPipelineStateError,
    MissingPipelineNameError,
)
from packages.stowage_shared.ids import TraceIdFactory, new_trace_id
from packages.stowage_shared.logging import (
    fields,
    get_logger,
    log_context,
    public_api_instrumented,
)
from resources.adapters.datanode import (
    ConnectionHandle,
    ConnectionPool,
    DatanodeAdapter,
)
from resources.adapters.placement import PlacementAdapter
from services.storage.container_operations.component import SERVICE_COMPONENT_ID
from services.storage.container_operations.config import (
    CONTAINER_SIZE_UNKNOWN,
    ContainerOperationsSettings,
    resolve_container_operations_settings,
)
from services.storage.container_operations.service import ContainerOperationsService

_LOGGER = get_logger(__name__)


class DefaultContainerOperationsService(ContainerOperationsService):
    """Orchestrates placement metadata and datanode calls per container.

    Every data-plane call runs on a handle acquired from ``pool`` and carries
    a fresh trace id from ``trace_ids``. The handle is released exactly once
    per acquisition whether or not the operation succeeds. No call is retried
    here; collaborator failures propagate unchanged.
    """

    def __init__(
        self,
        *,
        settings: ContainerOperationsSettings,
        placement: PlacementAdapter,
        datanodes: DatanodeAdapter,
        pool: ConnectionPool,
        trace_ids: TraceIdFactory | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._placement = placement
        self._datanodes = datanodes
        self._pool = pool
        self._trace_ids = trace_ids or new_trace_id
        self._logger = logger or _LOGGER

    @classmethod
    def from_settings(
        cls, settings: StowageSettings
    ) -> "DefaultContainerOperationsService":
        """Build the service over HTTP adapters from typed settings."""
        from resources.adapters.datanode import (
            DatanodeConnectionPool,
            HttpDatanodeAdapter,
            resolve_datanode_adapter_settings,
        )
        from resources.adapters.placement import (
            HttpPlacementAdapter,
            resolve_placement_adapter_settings,
        )

        return cls(
            settings=resolve_container_operations_settings(settings),
            placement=HttpPlacementAdapter(
                settings=resolve_placement_adapter_settings(settings)
            ),
            datanodes=HttpDatanodeAdapter(),
            pool=DatanodeConnectionPool(
                settings=resolve_datanode_adapter_settings(settings)
            ),
        )

    def close(self) -> None:
        """Close owned collaborators that hold network resources."""
        for owned in (self._pool, self._placement):
            closer = getattr(owned, "close", None)
            if callable(closer):
                closer()

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("owner",),
    )
    def create_container(
        self,
        owner: str,
        *,
        replication_type: ReplicationType | None = None,
        replication_factor: ReplicationFactor | None = None,
    ) -> ContainerRecord:
        """Allocate a container and create it on its pipeline.

        Omitted replication settings fall back to the configured defaults. A
        pipeline still in ALLOCATED state is materialized on its datanodes
        first. The returned record is the allocation result, not a re-read.
        """
        record = self._placement.allocate_container(
            replication_type=replication_type or self._settings.default_replication_type,
            replication_factor=(
                replication_factor or self._settings.default_replication_factor
            ),
            owner=owner,
        )
        pipeline = record.pipeline
        container_id = record.container_id

        with self._acquired(pipeline, container_id) as handle:
            if pipeline.state == LifeCycleState.ALLOCATED:
                self._materialize_pipeline(handle, pipeline)
            elif pipeline.state != LifeCycleState.OPEN:
                raise IllegalPipelineStateError(
                    f"unexpected state {pipeline.state.value} for pipeline "
                    f"{pipeline.key}, expected ALLOCATED or OPEN"
                )

            self._notify(container_id, StageOperation.CREATE, StagePhase.BEGIN)
            self._datanodes.create_container(
                handle,
                container_id=container_id,
                trace_id=self._trace_ids(),
            )
            self._notify(container_id, StageOperation.CREATE, StagePhase.COMPLETE)

            with log_context(_pipeline_fields(container_id, pipeline)):
                self._logger.debug("container created")
        return record

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("container_id", "force"),
    )
    def delete_container(
        self, container_id: int, pipeline: Pipeline, *, force: bool = False
    ) -> None:
        """Delete container data on the pipeline, then the metadata record.

        The metadata record is only removed after the datanodes confirmed the
        delete, so a failed data-plane delete leaves the record in place.
        """
        with self._acquired(pipeline, container_id) as handle:
            self._datanodes.delete_container(
                handle,
                container_id=container_id,
                force=force,
                trace_id=self._trace_ids(),
            )
            self._placement.delete_container(container_id=container_id)

            with log_context(
                {**_pipeline_fields(container_id, pipeline), fields.FORCE: force}
            ):
                self._logger.debug("container deleted")

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("container_id",),
    )
    def close_container(self, container_id: int, pipeline: Pipeline) -> None:
        """Close a container, datanodes first.

        The begin event is reported, then the datanodes close the container,
        then the complete event is reported. A crash between the data-plane
        close and the complete event leaves a container that is closed on disk
        but still CLOSING in metadata, which the placement service can
        reconcile. Closing metadata first would instead risk a container the
        metadata believes closed while datanodes still accept writes.
        """
        with self._acquired(pipeline, container_id) as handle:
            self._notify(container_id, StageOperation.CLOSE, StagePhase.BEGIN)
            self._datanodes.close_container(
                handle,
                container_id=container_id,
                trace_id=self._trace_ids(),
            )
            self._notify(container_id, StageOperation.CLOSE, StagePhase.COMPLETE)

            with log_context(_pipeline_fields(container_id, pipeline)):
                self._logger.debug("container closed")

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("container_id",),
    )
    def read_container(self, container_id: int, pipeline: Pipeline) -> ContainerData:
        """Return the datanode snapshot of one container."""
        with self._acquired(pipeline, container_id) as handle:
            data = self._datanodes.read_container(
                handle,
                container_id=container_id,
                trace_id=self._trace_ids(),
            )
            with log_context(_pipeline_fields(container_id, pipeline)):
                self._logger.debug("container read")
        return data

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("container_id",),
    )
    def get_container(self, container_id: int) -> ContainerRecord:
        """Return the metadata record of one container."""
        return self._placement.get_container(container_id=container_id)

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("start_container_id", "count"),
    )
    def list_container(
        self, start_container_id: int, count: int
    ) -> list[ContainerRecord]:
        """Return one page of metadata records."""
        if start_container_id < 0:
            raise ValueError("start_container_id must be >= 0")
        if count <= 0:
            raise ValueError("count must be > 0")
        return self._placement.list_container(
            start_container_id=start_container_id,
            count=count,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("pool_name",),
    )
    def query_node(
        self,
        node_states: Sequence[NodeState],
        query_scope: QueryScope,
        pool_name: str,
    ) -> NodePool:
        """Return datanodes matching ``node_states``."""
        return self._placement.query_node(
            node_states=node_states,
            query_scope=query_scope,
            pool_name=pool_name,
        )

    @public_api_instrumented(logger=_LOGGER, component_id=SERVICE_COMPONENT_ID)
    def create_replication_pipeline(
        self,
        replication_type: ReplicationType,
        replication_factor: ReplicationFactor,
        node_pool: NodePool,
    ) -> Pipeline:
        """Ask the metadata service to build a replication pipeline."""
        return self._placement.create_replication_pipeline(
            replication_type=replication_type,
            replication_factor=replication_factor,
            node_pool=node_pool,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("container_id",),
    )
    def get_container_size(self, container_id: int) -> int:
        """Return the configured container capacity in bytes.

        This is the capacity every container is created with, not the bytes a
        particular container currently uses.
        """
        del container_id
        if self._settings.container_size_bytes == CONTAINER_SIZE_UNKNOWN:
            raise ContainerSizeUnknownError()
        return self._settings.container_size_bytes

    def _materialize_pipeline(
        self, handle: ConnectionHandle, pipeline: Pipeline
    ) -> None:
        """Create pipeline structures on every member datanode.

        Pipeline begin/complete stage changes are not reported: the placement
        service has no handler for pipeline transitions yet, so a materialized
        pipeline stays ALLOCATED in metadata.
        """
        if not pipeline.name:
            raise MissingPipelineNameError(
                "pipeline name cannot be empty when the client materializes "
                "a pipeline"
            )
        # TODO: report pipeline create begin/complete once the placement
        # service accepts pipeline stage changes.
        self._datanodes.create_pipeline(
            handle,
            pipeline_name=pipeline.name,
            members=pipeline.members,
        )
        with log_context(
            {
                fields.PIPELINE: pipeline.name,
                fields.LEADER: pipeline.leader,
                fields.MEMBERS: ",".join(pipeline.members),
            }
        ):
            self._logger.debug("pipeline materialized")

    def _notify(
        self, container_id: int, operation: StageOperation, phase: StagePhase
    ) -> None:
        event = StageEvent(
            subject=StageSubject.CONTAINER,
            subject_id=str(container_id),
            operation=operation,
            phase=phase,
        )
        self._placement.notify_stage_change(
            subject=event.subject,
            subject_id=event.subject_id,
            operation=event.operation,
            phase=event.phase,
        )

    @contextmanager
    def _acquired(
        self, pipeline: Pipeline, container_id: int
    ) -> Iterator[ConnectionHandle]:
        """Hold one pool acquisition for the duration of the block."""
        handle = self._pool.acquire(pipeline, container_id)
        try:
            yield handle
        finally:
            self._pool.release(handle)


def _pipeline_fields(container_id: int, pipeline: Pipeline) -> dict[str, object]:
    return {
        fields.CONTAINER_ID: container_id,
        fields.LEADER: pipeline.leader,
        fields.MEMBERS: ",".join(pipeline.members),
    }
