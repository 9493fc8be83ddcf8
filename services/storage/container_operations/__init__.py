"""Container operations service exports."""

from services.storage.container_operations.component import SERVICE_COMPONENT_ID
from services.storage.container_operations.config import (
    CONTAINER_SIZE_UNKNOWN,
    ContainerOperationsSettings,
    resolve_container_operations_settings,
)
from services.storage.container_operations.implementation import (
    DefaultContainerOperationsService,
)
from services.storage.container_operations.service import (
    ContainerOperationsService,
    build_container_operations_service,
)

__all__ = [
    "CONTAINER_SIZE_UNKNOWN",
    "ContainerOperationsService",
    "ContainerOperationsSettings",
    "DefaultContainerOperationsService",
    "SERVICE_COMPONENT_ID",
    "build_container_operations_service",
    "resolve_container_operations_settings",
]
