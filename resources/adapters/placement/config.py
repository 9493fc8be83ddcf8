"""Pydantic settings for the placement adapter resource."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.stowage_shared.config import StowageSettings, resolve_component_settings
from resources.adapters.placement.component import RESOURCE_COMPONENT_ID


class PlacementAdapterSettings(BaseModel):
    """Runtime settings for placement metadata service calls."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str = "http://scm:9860"
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("base_url", mode="before")
    @classmethod
    def _validate_base_url(cls, value: object) -> object:
        """Require a non-empty endpoint without a trailing slash."""
        if not isinstance(value, str):
            return value
        normalized = value.strip().rstrip("/")
        if normalized == "":
            raise ValueError("base_url must be non-empty")
        return normalized


def resolve_placement_adapter_settings(
    settings: StowageSettings,
) -> PlacementAdapterSettings:
    """Resolve adapter settings from ``components.adapter.placement``."""
    return resolve_component_settings(
        settings=settings,
        component_id=RESOURCE_COMPONENT_ID,
        model=PlacementAdapterSettings,
    )
