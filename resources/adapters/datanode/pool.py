"""Reference-counted connection pool for pipeline leader clients.

Handles are cached per pipeline identity and shared by concurrent callers.
A handle whose reference count drops to zero stays cached as idle until the
number of idle handles exceeds ``max_idle_handles``; the least recently used
idle handles are then closed.

A cached handle is bound to the leader it was opened against. When a pipeline
arrives with a different leader, a fresh client replaces the cached one. The
old handle is closed at once when idle, or on its last release otherwise.
"""

from __future__ import annotations

from collections import OrderedDict
from threading import Lock
from typing import Callable

import httpx

from packages.stowage_shared.containers import Pipeline
from packages.stowage_shared.errors import StorageIOError, codes, validation_error
from packages.stowage_shared.http import HttpClient
from packages.stowage_shared.logging import fields, get_logger, log_context
from resources.adapters.datanode.adapter import ConnectionHandle, ConnectionPool
from resources.adapters.datanode.config import DatanodeAdapterSettings

_LOGGER = get_logger(__name__)

ClientFactory = Callable[[Pipeline], HttpClient]


class DatanodeConnectionPool(ConnectionPool):
    """Thread-safe pool of ``HttpClient`` handles keyed by pipeline."""

    def __init__(
        self,
        *,
        settings: DatanodeAdapterSettings,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory or self._default_client
        self._lock = Lock()
        self._handles: OrderedDict[str, ConnectionHandle] = OrderedDict()
        self._retired: list[ConnectionHandle] = []

    def acquire(self, pipeline: Pipeline, container_id: int) -> ConnectionHandle:
        """Return the cached handle for ``pipeline`` or open a new one."""
        key = pipeline.key
        if key == "":
            raise StorageIOError(
                "pipeline has neither a name nor a leader",
                operation="acquire",
                detail=validation_error(
                    "pipeline has neither a name nor a leader",
                    code=codes.INVALID_ARGUMENT,
                ),
            )

        stale: ConnectionHandle | None = None
        stale_in_use = False
        with self._lock:
            handle = self._handles.get(key)
            if handle is not None and handle.pipeline.leader != pipeline.leader:
                client = self._open_client(pipeline)
                stale, stale_in_use = handle, handle.ref_count > 0
                if stale_in_use:
                    self._retired.append(stale)
                handle = ConnectionHandle(pipeline=pipeline, client=client)
                self._handles[key] = handle
            elif handle is None:
                handle = ConnectionHandle(
                    pipeline=pipeline,
                    client=self._open_client(pipeline),
                )
                self._handles[key] = handle
            self._handles.move_to_end(key)
            handle.ref_count += 1
            ref_count = handle.ref_count

        if stale is not None:
            with log_context({fields.PIPELINE: key, fields.LEADER: pipeline.leader}):
                _LOGGER.info("datanode handle reopened for new pipeline leader")
            if not stale_in_use:
                self._close_quietly(stale)

        with log_context(
            {
                fields.CONTAINER_ID: container_id,
                fields.PIPELINE: key,
                fields.REF_COUNT: ref_count,
            }
        ):
            _LOGGER.debug("datanode handle acquired")
        return handle

    def release(self, handle: ConnectionHandle) -> None:
        """Return one acquisition; close idle handles beyond the cap."""
        key = handle.pipeline.key
        with self._lock:
            if handle.ref_count <= 0:
                tracked = False
                evicted: list[ConnectionHandle] = []
            elif any(retired is handle for retired in self._retired):
                tracked = True
                handle.ref_count -= 1
                evicted = []
                if handle.ref_count == 0:
                    self._retired = [r for r in self._retired if r is not handle]
                    evicted.append(handle)
            elif self._handles.get(key) is not handle:
                tracked = False
                evicted = []
            else:
                tracked = True
                handle.ref_count -= 1
                evicted = self._evict_idle_locked()

        if not tracked:
            with log_context({fields.PIPELINE: key}):
                _LOGGER.warning("release of untracked datanode handle ignored")
            return

        for stale in evicted:
            self._close_quietly(stale)

    def close(self) -> None:
        """Close every cached handle regardless of reference count."""
        with self._lock:
            handles = list(self._handles.values()) + self._retired
            self._handles.clear()
            self._retired = []
        for handle in handles:
            self._close_quietly(handle)

    def __enter__(self) -> DatanodeConnectionPool:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _evict_idle_locked(self) -> list[ConnectionHandle]:
        """Remove least recently used idle handles beyond ``max_idle_handles``."""
        idle = [key for key, cached in self._handles.items() if cached.ref_count == 0]
        excess = len(idle) - self._settings.max_idle_handles
        evicted: list[ConnectionHandle] = []
        for key in idle[: max(excess, 0)]:
            evicted.append(self._handles.pop(key))
        return evicted

    def _open_client(self, pipeline: Pipeline) -> HttpClient:
        try:
            return self._client_factory(pipeline)
        except (httpx.InvalidURL, ValueError) as exc:
            raise StorageIOError(
                f"cannot connect to pipeline {pipeline.key}: {exc}",
                operation="acquire",
            ) from exc

    def _default_client(self, pipeline: Pipeline) -> HttpClient:
        target = pipeline.leader or (pipeline.members[0] if pipeline.members else "")
        if target == "":
            raise ValueError("pipeline has no datanodes")
        return HttpClient(
            base_url=f"{self._settings.scheme}://{target}",
            timeout_seconds=self._settings.timeout_seconds,
            headers={"Content-Type": "application/json"},
        )

    def _close_quietly(self, handle: ConnectionHandle) -> None:
        try:
            handle.client.close()
        except Exception as exc:  # noqa: BLE001
            with log_context(
                {
                    fields.PIPELINE: handle.pipeline.key,
                    fields.ERRORS: f"{type(exc).__name__}: {exc}",
                }
            ):
                _LOGGER.warning("datanode handle close failed")
