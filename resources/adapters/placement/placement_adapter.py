"""Placement metadata adapter implementation over HTTP."""

from __future__ import annotations

from typing import Any, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from packages.stowage_shared.containers import (
    ContainerRecord,
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
from packages.stowage_shared.errors import StorageIOError, codes, dependency_error
from packages.stowage_shared.http import HttpClient, HttpClientError, to_storage_io_error
from packages.stowage_shared.logging import get_logger, public_api_instrumented
from resources.adapters.placement.adapter import PlacementAdapter
from resources.adapters.placement.component import RESOURCE_COMPONENT_ID
from resources.adapters.placement.config import PlacementAdapterSettings

_LOGGER = get_logger(__name__)

TModel = TypeVar("TModel", bound=BaseModel)


class HttpPlacementAdapter(PlacementAdapter):
    """Placement adapter backed by the metadata service JSON API."""

    def __init__(
        self,
        *,
        settings: PlacementAdapterSettings,
        client: HttpClient | None = None,
    ) -> None:
        self._settings = settings
        self._client = client or HttpClient(
            base_url=settings.base_url,
            timeout_seconds=settings.timeout_seconds,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        """Release the underlying HTTP client."""
        self._client.close()

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("owner",),
    )
    def allocate_container(
        self,
        *,
        replication_type: ReplicationType,
        replication_factor: ReplicationFactor,
        owner: str,
    ) -> ContainerRecord:
        """Allocate a container record with an attached pipeline."""
        payload = self._call(
            "allocate_container",
            "POST",
            "/containers",
            json={
                "replication_type": replication_type.value,
                "replication_factor": replication_factor.value,
                "owner": owner,
            },
        )
        return _parse(ContainerRecord, payload, operation="allocate_container")

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("subject_id",),
    )
    def notify_stage_change(
        self,
        *,
        subject: StageSubject,
        subject_id: str,
        operation: StageOperation,
        phase: StagePhase,
    ) -> None:
        """Post one stage-change event to the metadata service."""
        event = StageEvent(
            subject=subject,
            subject_id=subject_id,
            operation=operation,
            phase=phase,
        )
        self._call(
            "notify_stage_change",
            "POST",
            "/stage-changes",
            json=event.model_dump(mode="json"),
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("container_id",),
    )
    def delete_container(self, *, container_id: int) -> None:
        """Remove one container from the metadata index."""
        self._call("delete_container", "DELETE", f"/containers/{container_id}")

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("container_id",),
    )
    def get_container(self, *, container_id: int) -> ContainerRecord:
        """Return the metadata record of one container."""
        payload = self._call("get_container", "GET", f"/containers/{container_id}")
        return _parse(ContainerRecord, payload, operation="get_container")

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("start_container_id", "count"),
    )
    def list_container(
        self, *, start_container_id: int, count: int
    ) -> list[ContainerRecord]:
        """Return one page of container records."""
        payload = self._call(
            "list_container",
            "GET",
            "/containers",
            params={"start": start_container_id, "count": count},
        )
        if not isinstance(payload, dict) or not isinstance(
            payload.get("containers"), list
        ):
            raise _invalid_response("list_container", "missing containers list")
        return [
            _parse(ContainerRecord, item, operation="list_container")
            for item in payload["containers"]
        ]

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("pool_name",),
    )
    def query_node(
        self,
        *,
        node_states: Sequence[NodeState],
        query_scope: QueryScope,
        pool_name: str,
    ) -> NodePool:
        """Return datanodes in any of ``node_states``."""
        payload = self._call(
            "query_node",
            "POST",
            "/nodes/query",
            json={
                "node_states": [state.value for state in node_states],
                "query_scope": query_scope.value,
                "pool_name": pool_name,
            },
        )
        return _parse(NodePool, payload, operation="query_node")

    @public_api_instrumented(logger=_LOGGER, component_id=RESOURCE_COMPONENT_ID)
    def create_replication_pipeline(
        self,
        *,
        replication_type: ReplicationType,
        replication_factor: ReplicationFactor,
        node_pool: NodePool,
    ) -> Pipeline:
        """Ask the metadata service to build a pipeline over ``node_pool``."""
        payload = self._call(
            "create_replication_pipeline",
            "POST",
            "/pipelines",
            json={
                "replication_type": replication_type.value,
                "replication_factor": replication_factor.value,
                "node_pool": node_pool.model_dump(mode="json"),
            },
        )
        return _parse(Pipeline, payload, operation="create_replication_pipeline")

    def _call(self, operation: str, method: str, url: str, **kwargs: Any) -> Any:
        """Issue one request and map HTTP failures to ``StorageIOError``."""
        try:
            return self._client.request_json(method, url, **kwargs)
        except HttpClientError as exc:
            raise to_storage_io_error(operation=operation, error=exc) from None


def _parse(model: type[TModel], payload: Any, *, operation: str) -> TModel:
    """Validate one response payload into ``model``."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise _invalid_response(operation, str(exc)) from exc


def _invalid_response(operation: str, reason: str) -> StorageIOError:
    message = f"{operation} failed: invalid placement response: {reason}"
    return StorageIOError(
        message,
        operation=operation,
        detail=dependency_error(
            message, code=codes.INVALID_RESPONSE, retryable=False
        ),
    )
