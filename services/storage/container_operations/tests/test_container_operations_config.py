"""Tests for container operations settings resolution."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from packages.stowage_shared.config import load_settings
from packages.stowage_shared.containers import ReplicationFactor, ReplicationType
from services.storage.container_operations.config import (
    CONTAINER_SIZE_UNKNOWN,
    ContainerOperationsSettings,
    resolve_container_operations_settings,
)


def test_defaults_leave_container_size_unknown() -> None:
    settings = ContainerOperationsSettings()

    assert settings.container_size_bytes == CONTAINER_SIZE_UNKNOWN
    assert settings.default_replication_type == ReplicationType.STAND_ALONE
    assert settings.default_replication_factor == ReplicationFactor.ONE


@pytest.mark.parametrize("value", [0, -2])
def test_rejects_non_positive_container_size(value: int) -> None:
    with pytest.raises(ValidationError):
        ContainerOperationsSettings(container_size_bytes=value)


def test_settings_are_frozen() -> None:
    settings = ContainerOperationsSettings(container_size_bytes=1024)

    with pytest.raises(ValidationError):
        settings.container_size_bytes = 2048  # type: ignore[misc]


def test_resolves_from_component_namespace(tmp_path) -> None:
    config_path = tmp_path / "stowage.yaml"
    config_path.write_text(
        "components:\n"
        "  service:\n"
        "    container_operations:\n"
        "      container_size_bytes: 1073741824\n"
        "      default_replication_type: RATIS\n",
        encoding="utf-8",
    )

    settings = load_settings(
        config_path=config_path,
        environ={
            "STOWAGE_COMPONENTS__SERVICE__CONTAINER_OPERATIONS__DEFAULT_REPLICATION_FACTOR": "THREE"
        },
    )
    resolved = resolve_container_operations_settings(settings)

    assert resolved.container_size_bytes == 1073741824
    assert resolved.default_replication_type == ReplicationType.RATIS
    assert resolved.default_replication_factor == ReplicationFactor.THREE
