"""Shared container and pipeline data types.

These models describe the records exchanged between the container operations
service, the placement adapter, and the datanode adapter. The placement
service owns the authoritative copies; clients only ever hold transient,
immutable snapshots.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LifeCycleState(str, Enum):
    """Lifecycle state shared by containers and pipelines."""

    ALLOCATED = "ALLOCATED"
    CREATING = "CREATING"
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"
    DELETING = "DELETING"
    DELETED = "DELETED"


class ReplicationType(str, Enum):
    """Replication mechanism used by a pipeline."""

    STAND_ALONE = "STAND_ALONE"
    RATIS = "RATIS"
    CHAINED = "CHAINED"


class ReplicationFactor(str, Enum):
    """Number of replicas kept by a pipeline."""

    ONE = "ONE"
    THREE = "THREE"

    @property
    def replicas(self) -> int:
        return 1 if self is ReplicationFactor.ONE else 3


class NodeState(str, Enum):
    """Datanode states understood by node queries."""

    HEALTHY = "HEALTHY"
    STALE = "STALE"
    DEAD = "DEAD"
    DECOMMISSIONING = "DECOMMISSIONING"
    DECOMMISSIONED = "DECOMMISSIONED"
    RAFT_MEMBER = "RAFT_MEMBER"
    FREE_NODE = "FREE_NODE"
    INVALID = "INVALID"


class QueryScope(str, Enum):
    """Scope of a node query."""

    CLUSTER = "CLUSTER"
    POOL = "POOL"


class StageSubject(str, Enum):
    """Kind of object a stage-change notification refers to."""

    CONTAINER = "container"
    PIPELINE = "pipeline"


class StageOperation(str, Enum):
    """Operation bracketed by a stage-change notification."""

    CREATE = "create"
    CLOSE = "close"
    DELETE = "delete"


class StagePhase(str, Enum):
    """Phase of a bracketed operation."""

    BEGIN = "begin"
    COMPLETE = "complete"


class Pipeline(BaseModel):
    """Named, ordered set of datanodes jointly hosting container replicas."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str | None = None
    members: tuple[str, ...] = ()
    leader: str = ""
    state: LifeCycleState = LifeCycleState.ALLOCATED
    replication_type: ReplicationType = ReplicationType.STAND_ALONE
    replication_factor: ReplicationFactor = ReplicationFactor.ONE

    @model_validator(mode="after")
    def _validate_leader(self) -> "Pipeline":
        """Require the leader to be a pipeline member when members are known."""
        if self.members and self.leader and self.leader not in self.members:
            raise ValueError(f"pipeline leader {self.leader!r} is not a member")
        return self

    @property
    def key(self) -> str:
        """Return the identity used to pool connections to this pipeline."""
        return self.name or self.leader


class ContainerRecord(BaseModel):
    """Placement-service record for one container."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    container_id: int = Field(ge=0)
    pipeline: Pipeline
    state: LifeCycleState = LifeCycleState.ALLOCATED
    allocated_bytes: int = Field(default=0, ge=0)
    used_bytes: int = Field(default=0, ge=0)
    number_of_keys: int = Field(default=0, ge=0)
    owner: str = ""


class ContainerData(BaseModel):
    """Datanode-side snapshot of one container's metadata."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    container_id: int = Field(ge=0)
    state: LifeCycleState = LifeCycleState.OPEN
    size_bytes: int = Field(default=0, ge=0)
    bytes_used: int = Field(default=0, ge=0)
    key_count: int = Field(default=0, ge=0)
    container_path: str = ""
    db_path: str = ""
    hash: str = ""
    metadata: Mapping[str, str] = Field(default_factory=dict)


class StageEvent(BaseModel):
    """One begin/complete bookkeeping notification for the placement service."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    subject: StageSubject
    subject_id: str
    operation: StageOperation
    phase: StagePhase


class NodeInfo(BaseModel):
    """One datanode reported by a node query."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    address: str
    state: NodeState = NodeState.HEALTHY


class NodePool(BaseModel):
    """Set of datanodes returned by a query or used to build a pipeline."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = ""
    nodes: tuple[NodeInfo, ...] = ()
