"""Component declaration for the container operations service."""

from __future__ import annotations

SERVICE_COMPONENT_ID = "service_container_operations"
