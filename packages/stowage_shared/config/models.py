"""Typed configuration models for Stowage runtime settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "stowage" / "stowage.yaml"


class LoggingSettings(BaseModel):
    """Structured logging configuration shared by Stowage components."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "stowage"
    environment: str = "dev"


class PublicApiOtelSettings(BaseModel):
    """Configurable OTel names for public API tracing and metrics."""

    meter_name: str = "stowage.public_api"
    tracer_name: str = "stowage.public_api"
    metric_calls_total: str = "stowage_public_api_calls_total"
    metric_duration_ms: str = "stowage_public_api_duration_ms"
    metric_errors_total: str = "stowage_public_api_errors_total"


class ObservabilitySettings(BaseModel):
    """Global observability configuration."""

    otel: PublicApiOtelSettings = Field(default_factory=PublicApiOtelSettings)


class ComponentNamespaceSettings(BaseModel):
    """Namespace map for grouped component settings under ``components.<kind>``."""

    model_config = ConfigDict(extra="allow")


class ComponentsSettings(BaseModel):
    """Typed ``components`` subtree; component-local keys live in namespaces."""

    model_config = ConfigDict(extra="forbid")

    service: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )
    adapter: ComponentNamespaceSettings = Field(
        default_factory=ComponentNamespaceSettings
    )

    @model_validator(mode="before")
    @classmethod
    def _reject_flat_component_keys(cls, value: object) -> object:
        """Reject flat ``service_x`` keys in favor of ``service.x`` namespaces."""
        if not isinstance(value, dict):
            return value
        for key in value:
            if isinstance(key, str) and key.startswith(("service_", "adapter_")):
                kind, _, name = key.partition("_")
                raise ValueError(
                    f"components.{key} is invalid; use components.{kind}.{name} instead"
                )
        return value


class StowageSettings(BaseModel):
    """Root runtime settings resolved by ``load_settings``."""

    model_config = ConfigDict(extra="ignore")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)


TComponentSettings = TypeVar("TComponentSettings", bound=BaseModel)


def resolve_component_settings(
    *,
    settings: StowageSettings,
    component_id: str,
    model: type[TComponentSettings],
) -> TComponentSettings:
    """Resolve one component settings object from grouped ``components`` keys.

    ``component_id`` is ``<kind>_<name>``; for example
    ``service_container_operations`` reads ``components.service.container_operations``.
    """
    kind, separator, name = component_id.partition("_")
    if not separator or kind not in {"service", "adapter"}:
        raise ValueError(f"unsupported component id: {component_id!r}")

    namespace = settings.components.model_dump(mode="python").get(kind, {})
    resolved = namespace.get(name, {})
    if not isinstance(resolved, dict):
        raise TypeError(f"components.{kind}.{name} must resolve to an object mapping")
    return model.model_validate(resolved)
