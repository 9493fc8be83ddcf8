"""Behavior tests for container lifecycle orchestration ordering."""

from __future__ import annotations

from itertools import count
from typing import Callable, Sequence

import pytest

from packages.stowage_shared.containers import (
    ContainerData,
    ContainerRecord,
    LifeCycleState,
    NodeInfo,
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
from packages.stowage_shared.errors import (
    ContainerSizeUnknownError,
    IllegalPipelineStateError,
    MissingPipelineNameError,
    PreconditionError,
    StorageIOError,
)
from resources.adapters.datanode.adapter import ConnectionHandle
from services.storage.container_operations.config import ContainerOperationsSettings
from services.storage.container_operations.implementation import (
    DefaultContainerOperationsService,
)

Event = tuple[object, ...]


def _pipeline(
    state: LifeCycleState = LifeCycleState.OPEN, *, name: str | None = "p1"
) -> Pipeline:
    return Pipeline(
        name=name,
        members=("n1", "n2", "n3"),
        leader="n1",
        state=state,
        replication_type=ReplicationType.RATIS,
        replication_factor=ReplicationFactor.THREE,
    )


class _FakePlacement:
    """Recording placement adapter fake sharing the test event log."""

    def __init__(self, events: list[Event], record: ContainerRecord) -> None:
        self.events = events
        self.record = record
        self.allocations: list[tuple[ReplicationType, ReplicationFactor, str]] = []
        self.raise_on_notify: dict[tuple[str, str], Exception] = {}

    def allocate_container(
        self,
        *,
        replication_type: ReplicationType,
        replication_factor: ReplicationFactor,
        owner: str,
    ) -> ContainerRecord:
        self.allocations.append((replication_type, replication_factor, owner))
        self.events.append(("allocate", owner))
        return self.record

    def notify_stage_change(
        self,
        *,
        subject: StageSubject,
        subject_id: str,
        operation: StageOperation,
        phase: StagePhase,
    ) -> None:
        failure = self.raise_on_notify.get((operation.value, phase.value))
        if failure is not None:
            self.events.append(("notify_failed", subject_id, operation.value, phase.value))
            raise failure
        self.events.append(("notify", subject.value, subject_id, operation.value, phase.value))

    def delete_container(self, *, container_id: int) -> None:
        self.events.append(("meta_delete", container_id))

    def get_container(self, *, container_id: int) -> ContainerRecord:
        self.events.append(("meta_get", container_id))
        return self.record

    def list_container(
        self, *, start_container_id: int, count: int
    ) -> list[ContainerRecord]:
        self.events.append(("meta_list", start_container_id, count))
        return [self.record]

    def query_node(
        self,
        *,
        node_states: Sequence[NodeState],
        query_scope: QueryScope,
        pool_name: str,
    ) -> NodePool:
        self.events.append(("query_node", tuple(node_states), query_scope, pool_name))
        return NodePool(name=pool_name, nodes=(NodeInfo(address="n1"),))

    def create_replication_pipeline(
        self,
        *,
        replication_type: ReplicationType,
        replication_factor: ReplicationFactor,
        node_pool: NodePool,
    ) -> Pipeline:
        self.events.append(("meta_pipeline", replication_type, replication_factor))
        return _pipeline()


class _FakeDatanodes:
    """Recording datanode adapter fake with injectable failures."""

    def __init__(self, events: list[Event]) -> None:
        self.events = events
        self.raise_on: dict[str, Exception] = {}

    def _record(self, name: str, *details: object) -> None:
        if name in self.raise_on:
            self.events.append((f"{name}_failed", *details))
            raise self.raise_on[name]
        self.events.append((name, *details))

    def create_container(
        self, handle: ConnectionHandle, *, container_id: int, trace_id: str
    ) -> None:
        self._record("data_create", container_id, trace_id)

    def delete_container(
        self,
        handle: ConnectionHandle,
        *,
        container_id: int,
        force: bool,
        trace_id: str,
    ) -> None:
        self._record("data_delete", container_id, force, trace_id)

    def close_container(
        self, handle: ConnectionHandle, *, container_id: int, trace_id: str
    ) -> None:
        self._record("data_close", container_id, trace_id)

    def read_container(
        self, handle: ConnectionHandle, *, container_id: int, trace_id: str
    ) -> ContainerData:
        self._record("data_read", container_id, trace_id)
        return ContainerData(container_id=container_id, key_count=4)

    def create_pipeline(
        self,
        handle: ConnectionHandle,
        *,
        pipeline_name: str,
        members: Sequence[str],
    ) -> None:
        self._record("create_pipeline", pipeline_name, tuple(members))


class _FakePool:
    """Pool fake tracking outstanding acquisitions."""

    def __init__(self, events: list[Event]) -> None:
        self.events = events
        self.outstanding = 0
        self.raise_on_acquire: Exception | None = None

    def acquire(self, pipeline: Pipeline, container_id: int) -> ConnectionHandle:
        if self.raise_on_acquire is not None:
            raise self.raise_on_acquire
        self.outstanding += 1
        self.events.append(("acquire", pipeline.key, container_id))
        return ConnectionHandle(pipeline=pipeline, client=None, ref_count=1)

    def release(self, handle: ConnectionHandle) -> None:
        self.outstanding -= 1
        self.events.append(("release", handle.pipeline.key))


class _Harness:
    def __init__(
        self,
        *,
        pipeline: Pipeline | None = None,
        settings: ContainerOperationsSettings | None = None,
    ) -> None:
        self.events: list[Event] = []
        self.record = ContainerRecord(
            container_id=7,
            pipeline=pipeline or _pipeline(),
            allocated_bytes=5 * 1024**3,
            owner="ozone",
        )
        self.placement = _FakePlacement(self.events, self.record)
        self.datanodes = _FakeDatanodes(self.events)
        self.pool = _FakePool(self.events)
        counter = count(1)
        self.service = DefaultContainerOperationsService(
            settings=settings or ContainerOperationsSettings(),
            placement=self.placement,
            datanodes=self.datanodes,
            pool=self.pool,
            trace_ids=lambda: f"trace-{next(counter)}",
        )


def test_create_materializes_allocated_pipeline_before_container() -> None:
    harness = _Harness(pipeline=_pipeline(LifeCycleState.ALLOCATED))

    record = harness.service.create_container("ozone")

    assert record is harness.record
    assert harness.events == [
        ("allocate", "ozone"),
        ("acquire", "p1", 7),
        ("create_pipeline", "p1", ("n1", "n2", "n3")),
        ("notify", "container", "7", "create", "begin"),
        ("data_create", 7, "trace-1"),
        ("notify", "container", "7", "create", "complete"),
        ("release", "p1"),
    ]


def test_create_on_open_pipeline_skips_materialization() -> None:
    harness = _Harness(pipeline=_pipeline(LifeCycleState.OPEN))

    harness.service.create_container("ozone")

    assert all(event[0] != "create_pipeline" for event in harness.events)
    assert ("data_create", 7, "trace-1") in harness.events
    assert harness.pool.outstanding == 0


def test_create_uses_configured_replication_defaults() -> None:
    harness = _Harness(
        settings=ContainerOperationsSettings(
            default_replication_type=ReplicationType.RATIS,
            default_replication_factor=ReplicationFactor.THREE,
        )
    )

    harness.service.create_container("ozone")
    harness.service.create_container(
        "ozone",
        replication_type=ReplicationType.STAND_ALONE,
        replication_factor=ReplicationFactor.ONE,
    )

    assert harness.placement.allocations == [
        (ReplicationType.RATIS, ReplicationFactor.THREE, "ozone"),
        (ReplicationType.STAND_ALONE, ReplicationFactor.ONE, "ozone"),
    ]


def test_create_acquires_exactly_once() -> None:
    harness = _Harness(pipeline=_pipeline(LifeCycleState.ALLOCATED))

    harness.service.create_container("ozone")

    assert [event[0] for event in harness.events].count("acquire") == 1
    assert [event[0] for event in harness.events].count("release") == 1


def test_create_failure_skips_complete_notification_and_releases() -> None:
    harness = _Harness()
    harness.datanodes.raise_on["data_create"] = StorageIOError("datanode down")

    with pytest.raises(StorageIOError, match="datanode down"):
        harness.service.create_container("ozone")

    assert ("notify", "container", "7", "create", "begin") in harness.events
    assert ("notify", "container", "7", "create", "complete") not in harness.events
    assert harness.events[-1] == ("release", "p1")
    assert harness.pool.outstanding == 0


@pytest.mark.parametrize(
    "state",
    [
        LifeCycleState.CREATING,
        LifeCycleState.CLOSING,
        LifeCycleState.CLOSED,
        LifeCycleState.DELETING,
        LifeCycleState.DELETED,
    ],
)
def test_create_rejects_pipeline_in_illegal_state(state: LifeCycleState) -> None:
    harness = _Harness(pipeline=_pipeline(state))

    with pytest.raises(IllegalPipelineStateError) as exc_info:
        harness.service.create_container("ozone")

    assert isinstance(exc_info.value, PreconditionError)
    assert state.value in str(exc_info.value)
    assert all(event[0] != "notify" for event in harness.events)
    assert harness.pool.outstanding == 0


def test_create_rejects_unnamed_allocated_pipeline() -> None:
    harness = _Harness(pipeline=_pipeline(LifeCycleState.ALLOCATED, name=None))

    with pytest.raises(MissingPipelineNameError, match="pipeline name cannot be empty"):
        harness.service.create_container("ozone")

    assert all(event[0] != "data_create" for event in harness.events)
    assert harness.events[-1] == ("release", "n1")


def test_create_propagates_allocation_failure_without_acquiring() -> None:
    harness = _Harness()

    def _fail(**_: object) -> ContainerRecord:
        raise StorageIOError("placement unavailable")

    harness.placement.allocate_container = _fail  # type: ignore[method-assign]

    with pytest.raises(StorageIOError):
        harness.service.create_container("ozone")

    assert harness.events == []


def test_close_sends_complete_only_after_data_plane_close() -> None:
    harness = _Harness()

    harness.service.close_container(7, _pipeline())

    assert harness.events == [
        ("acquire", "p1", 7),
        ("notify", "container", "7", "close", "begin"),
        ("data_close", 7, "trace-1"),
        ("notify", "container", "7", "close", "complete"),
        ("release", "p1"),
    ]


def test_close_failure_never_reports_completion() -> None:
    harness = _Harness()
    harness.datanodes.raise_on["data_close"] = StorageIOError("close timed out")

    with pytest.raises(StorageIOError, match="close timed out"):
        harness.service.close_container(7, _pipeline())

    assert harness.events == [
        ("acquire", "p1", 7),
        ("notify", "container", "7", "close", "begin"),
        ("data_close_failed", 7, "trace-1"),
        ("release", "p1"),
    ]


def test_forced_delete_removes_metadata_after_data() -> None:
    harness = _Harness()

    harness.service.delete_container(7, _pipeline(), force=True)

    assert harness.events == [
        ("acquire", "p1", 7),
        ("data_delete", 7, True, "trace-1"),
        ("meta_delete", 7),
        ("release", "p1"),
    ]


def test_failed_data_delete_keeps_metadata_record() -> None:
    harness = _Harness()
    harness.datanodes.raise_on["data_delete"] = StorageIOError("container open")

    with pytest.raises(StorageIOError):
        harness.service.delete_container(7, _pipeline())

    assert ("meta_delete", 7) not in harness.events
    assert ("data_delete_failed", 7, False, "trace-1") in harness.events
    assert harness.pool.outstanding == 0


def test_read_returns_snapshot_without_notifications() -> None:
    harness = _Harness()

    data = harness.service.read_container(7, _pipeline())

    assert data.key_count == 4
    assert harness.events == [
        ("acquire", "p1", 7),
        ("data_read", 7, "trace-1"),
        ("release", "p1"),
    ]


def test_each_data_plane_call_gets_a_fresh_trace_id() -> None:
    harness = _Harness()

    harness.service.read_container(7, _pipeline())
    harness.service.close_container(7, _pipeline())

    traces = [event[-1] for event in harness.events if event[0].startswith("data_")]
    assert traces == ["trace-1", "trace-2"]


def test_default_trace_ids_are_unique_and_non_empty() -> None:
    harness = _Harness()
    service = DefaultContainerOperationsService(
        settings=ContainerOperationsSettings(),
        placement=harness.placement,
        datanodes=harness.datanodes,
        pool=harness.pool,
    )

    service.read_container(7, _pipeline())
    service.read_container(7, _pipeline())

    traces = [event[-1] for event in harness.events if event[0] == "data_read"]
    assert len(set(traces)) == 2
    assert all(trace for trace in traces)


def test_acquire_failure_propagates_without_release() -> None:
    harness = _Harness()
    harness.pool.raise_on_acquire = StorageIOError("no route to leader")

    with pytest.raises(StorageIOError):
        harness.service.close_container(7, _pipeline())

    assert harness.events == []


def test_container_size_unknown_until_configured() -> None:
    harness = _Harness()

    with pytest.raises(ContainerSizeUnknownError) as exc_info:
        harness.service.get_container_size(7)

    assert isinstance(exc_info.value, StorageIOError)
    assert "container size unknown" in str(exc_info.value)


def test_container_size_returns_configured_capacity() -> None:
    harness = _Harness(
        settings=ContainerOperationsSettings(container_size_bytes=5 * 1024**3)
    )

    assert harness.service.get_container_size(1) == 5 * 1024**3
    assert harness.service.get_container_size(2) == 5 * 1024**3


def test_metadata_operations_pass_through() -> None:
    harness = _Harness()

    assert harness.service.get_container(7) is harness.record
    assert harness.service.list_container(0, 10) == [harness.record]
    pool = harness.service.query_node(
        [NodeState.HEALTHY], QueryScope.CLUSTER, ""
    )
    pipeline = harness.service.create_replication_pipeline(
        ReplicationType.RATIS, ReplicationFactor.THREE, pool
    )

    assert pipeline.name == "p1"
    assert harness.events == [
        ("meta_get", 7),
        ("meta_list", 0, 10),
        ("query_node", (NodeState.HEALTHY,), QueryScope.CLUSTER, ""),
        ("meta_pipeline", ReplicationType.RATIS, ReplicationFactor.THREE),
    ]


@pytest.mark.parametrize(("start", "size"), [(-1, 10), (0, 0), (0, -5)])
def test_list_container_rejects_invalid_paging(start: int, size: int) -> None:
    harness = _Harness()

    with pytest.raises(ValueError):
        harness.service.list_container(start, size)

    assert harness.events == []


def _fail_read(harness: _Harness) -> None:
    harness.datanodes.raise_on["data_read"] = StorageIOError("read failed")
    harness.service.read_container(7, _pipeline())


def _fail_materialize(harness: _Harness) -> None:
    harness.datanodes.raise_on["create_pipeline"] = StorageIOError("pipeline refused")
    harness.service.create_container("ozone")


def _fail_create_begin(harness: _Harness) -> None:
    harness.placement.raise_on_notify[("create", "begin")] = StorageIOError(
        "placement rejected begin"
    )
    harness.service.create_container("ozone")


def _fail_close_begin(harness: _Harness) -> None:
    harness.placement.raise_on_notify[("close", "begin")] = StorageIOError(
        "placement rejected begin"
    )
    harness.service.close_container(7, _pipeline())


@pytest.mark.parametrize(
    ("pipeline_state", "scenario"),
    [
        (LifeCycleState.OPEN, _fail_read),
        (LifeCycleState.ALLOCATED, _fail_materialize),
        (LifeCycleState.OPEN, _fail_create_begin),
        (LifeCycleState.OPEN, _fail_close_begin),
    ],
    ids=["read", "materialize", "create-begin-notify", "close-begin-notify"],
)
def test_failures_inside_acquired_scope_release_the_handle(
    pipeline_state: LifeCycleState, scenario: Callable[[_Harness], None]
) -> None:
    harness = _Harness(pipeline=_pipeline(pipeline_state))

    with pytest.raises(StorageIOError):
        scenario(harness)

    assert harness.pool.outstanding == 0
    assert harness.events[-1] == ("release", "p1")
    assert all(event[0] not in {"data_create", "data_close"} for event in harness.events)
    assert all(event[-1] != "complete" for event in harness.events)
