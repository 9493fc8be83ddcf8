"""Pydantic settings for the datanode adapter resource."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from packages.stowage_shared.config import StowageSettings, resolve_component_settings
from resources.adapters.datanode.component import RESOURCE_COMPONENT_ID


class DatanodeAdapterSettings(BaseModel):
    """Runtime settings for pipeline leader connections."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    scheme: Literal["http", "https"] = "http"
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_idle_handles: int = Field(default=8, ge=0)


def resolve_datanode_adapter_settings(
    settings: StowageSettings,
) -> DatanodeAdapterSettings:
    """Resolve adapter settings from ``components.adapter.datanode``."""
    return resolve_component_settings(
        settings=settings,
        component_id=RESOURCE_COMPONENT_ID,
        model=DatanodeAdapterSettings,
    )
