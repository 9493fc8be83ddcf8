"""Component declaration for the datanode data-plane adapter resource."""

from __future__ import annotations

RESOURCE_COMPONENT_ID = "adapter_datanode"
