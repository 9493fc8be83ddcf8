"""Pydantic settings for container operations behavior."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from packages.stowage_shared.config import StowageSettings, resolve_component_settings
from packages.stowage_shared.containers import ReplicationFactor, ReplicationType
from services.storage.container_operations.component import SERVICE_COMPONENT_ID

CONTAINER_SIZE_UNKNOWN = -1


class ContainerOperationsSettings(BaseModel):
    """Container operations runtime settings, fixed at start-up."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    container_size_bytes: int = CONTAINER_SIZE_UNKNOWN
    default_replication_type: ReplicationType = ReplicationType.STAND_ALONE
    default_replication_factor: ReplicationFactor = ReplicationFactor.ONE

    @field_validator("container_size_bytes")
    @classmethod
    def _validate_container_size(cls, value: int) -> int:
        """Accept a positive capacity or the unknown sentinel."""
        if value != CONTAINER_SIZE_UNKNOWN and value <= 0:
            raise ValueError(
                "container_size_bytes must be positive or "
                f"{CONTAINER_SIZE_UNKNOWN} when unknown"
            )
        return value


def resolve_container_operations_settings(
    settings: StowageSettings,
) -> ContainerOperationsSettings:
    """Resolve service settings from ``components.service.container_operations``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=ContainerOperationsSettings,
    )
