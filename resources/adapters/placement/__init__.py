"""Placement metadata adapter resource exports."""

from resources.adapters.placement.adapter import PlacementAdapter
from resources.adapters.placement.component import RESOURCE_COMPONENT_ID
from resources.adapters.placement.config import (
    PlacementAdapterSettings,
    resolve_placement_adapter_settings,
)
from resources.adapters.placement.placement_adapter import HttpPlacementAdapter

__all__ = [
    "HttpPlacementAdapter",
    "PlacementAdapter",
    "PlacementAdapterSettings",
    "RESOURCE_COMPONENT_ID",
    "resolve_placement_adapter_settings",
]
