"""Component declaration for the placement metadata adapter resource."""

from __future__ import annotations

RESOURCE_COMPONENT_ID = "adapter_placement"
