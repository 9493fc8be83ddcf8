"""Datanode data-plane adapter implementation over HTTP."""

from __future__ import annotations

from typing import Any, Sequence

from pydantic import ValidationError

from packages.stowage_shared.containers import ContainerData
from packages.stowage_shared.errors import StorageIOError, codes, dependency_error
from packages.stowage_shared.http import HttpClientError, to_storage_io_error
from packages.stowage_shared.logging import get_logger, public_api_instrumented
from resources.adapters.datanode.adapter import ConnectionHandle, DatanodeAdapter
from resources.adapters.datanode.component import RESOURCE_COMPONENT_ID

_LOGGER = get_logger(__name__)


class HttpDatanodeAdapter(DatanodeAdapter):
    """Datanode adapter issuing JSON requests through pooled handles.

    The adapter holds no connection state of its own; every call runs on the
    ``HttpClient`` carried by the handle it is given.
    """

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("container_id", "trace_id"),
    )
    def create_container(
        self, handle: ConnectionHandle, *, container_id: int, trace_id: str
    ) -> None:
        """Create the physical container on the pipeline."""
        _call(
            handle,
            "create_container",
            "PUT",
            f"/containers/{container_id}",
            trace_id=trace_id,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("container_id", "force", "trace_id"),
    )
    def delete_container(
        self,
        handle: ConnectionHandle,
        *,
        container_id: int,
        force: bool,
        trace_id: str,
    ) -> None:
        """Delete the physical container."""
        _call(
            handle,
            "delete_container",
            "DELETE",
            f"/containers/{container_id}",
            trace_id=trace_id,
            params={"force": "true" if force else "false"},
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("container_id", "trace_id"),
    )
    def close_container(
        self, handle: ConnectionHandle, *, container_id: int, trace_id: str
    ) -> None:
        """Close the physical container to further writes."""
        _call(
            handle,
            "close_container",
            "POST",
            f"/containers/{container_id}/close",
            trace_id=trace_id,
        )

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("container_id", "trace_id"),
    )
    def read_container(
        self, handle: ConnectionHandle, *, container_id: int, trace_id: str
    ) -> ContainerData:
        """Return the embedded ``container_data`` snapshot."""
        payload = _call(
            handle,
            "read_container",
            "GET",
            f"/containers/{container_id}",
            trace_id=trace_id,
        )
        if not isinstance(payload, dict) or "container_data" not in payload:
            raise _invalid_response("read_container", "missing container_data")
        try:
            return ContainerData.model_validate(payload["container_data"])
        except ValidationError as exc:
            raise _invalid_response("read_container", str(exc)) from exc

    @public_api_instrumented(
        logger=_LOGGER,
        component_id=RESOURCE_COMPONENT_ID,
        id_fields=("pipeline_name",),
    )
    def create_pipeline(
        self,
        handle: ConnectionHandle,
        *,
        pipeline_name: str,
        members: Sequence[str],
    ) -> None:
        """Materialize pipeline structures on the member datanodes."""
        _call(
            handle,
            "create_pipeline",
            "POST",
            "/pipelines",
            json={"pipeline_name": pipeline_name, "members": list(members)},
        )


def _call(
    handle: ConnectionHandle,
    operation: str,
    method: str,
    url: str,
    **kwargs: Any,
) -> Any:
    """Issue one request on the handle's client and map HTTP failures."""
    try:
        return handle.client.request_json(method, url, **kwargs)
    except HttpClientError as exc:
        raise to_storage_io_error(operation=operation, error=exc) from None


def _invalid_response(operation: str, reason: str) -> StorageIOError:
    message = f"{operation} failed: invalid datanode response: {reason}"
    return StorageIOError(
        message,
        operation=operation,
        detail=dependency_error(
            message, code=codes.INVALID_RESPONSE, retryable=False
        ),
    )
