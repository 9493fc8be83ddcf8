"""Public API for shared Stowage configuration utilities."""

from .loader import load_config, load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    LoggingSettings,
    ObservabilitySettings,
    PublicApiOtelSettings,
    StowageSettings,
    resolve_component_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "LoggingSettings",
    "ObservabilitySettings",
    "PublicApiOtelSettings",
    "StowageSettings",
    "load_config",
    "load_settings",
    "resolve_component_settings",
]
