"""Stowage container lifecycle CLI actor implemented with Typer."""

from __future__ import annotations

import dataclasses
import json
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import typer

from packages.stowage_shared.config import load_settings
from packages.stowage_shared.containers import ReplicationFactor, ReplicationType
from packages.stowage_shared.errors import (
    PreconditionError,
    StorageIOError,
    exception_to_error,
)
from packages.stowage_shared.logging import configure_logging_from_settings
from services.storage.container_operations.service import (
    ContainerOperationsService,
    build_container_operations_service,
)

SUCCESS_EXIT_CODE = 0
PRECONDITION_ERROR_EXIT_CODE = 3
IO_ERROR_EXIT_CODE = 4


@dataclass(frozen=True)
class CliConfig:
    """Global CLI runtime options propagated to every command."""

    config_path: Path | None
    as_json: bool
    log_level: str | None


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""
    if isinstance(value, Enum):
        return value.value
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Path):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _serialize(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize(item) for item in value]
    if hasattr(value, "model_dump"):
        return _serialize(value.model_dump(mode="json"))
    return str(value)


def _emit_output(result: Any, as_json: bool) -> None:
    """Render command output in requested format."""
    data = _serialize(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
        return
    if data is None:
        typer.echo("ok")
        return
    if isinstance(data, (dict, list)):
        typer.echo(json.dumps(data, indent=2, sort_keys=True))
        return
    typer.echo(str(data))


def _emit_error(exc: Exception, as_json: bool) -> None:
    """Render mapped service errors to stderr."""
    if as_json:
        typer.echo(json.dumps({"error": _serialize(exception_to_error(exc))}), err=True)
        return
    typer.echo(f"error: {exc}", err=True)


def _run_command(
    cfg: CliConfig, invoke: Callable[[ContainerOperationsService], Any]
) -> None:
    """Execute one service call and map outputs/errors to process semantics."""
    service: ContainerOperationsService | None = None
    try:
        settings = load_settings(config_path=cfg.config_path)
        configure_logging_from_settings(
            settings.logging, level=cfg.log_level, stream=sys.stderr
        )
        service = build_container_operations_service(settings=settings)
        result = invoke(service)
    except (PreconditionError, ValueError) as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=PRECONDITION_ERROR_EXIT_CODE) from exc
    except StorageIOError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=IO_ERROR_EXIT_CODE) from exc
    finally:
        if service is not None:
            service.close()
    _emit_output(result, cfg.as_json)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""
    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


app = typer.Typer(no_args_is_help=True, help="Stowage command-line interface")
container_app = typer.Typer(help="Container lifecycle commands")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        envvar="STOWAGE_CONFIG_PATH",
        help="YAML config file (defaults to ~/.config/stowage/stowage.yaml)",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
    log_level: str | None = typer.Option(
        None, help="Override the configured log level; logs go to stderr"
    ),
) -> None:
    """Store global options for all container commands."""
    ctx.obj = CliConfig(config_path=config, as_json=as_json, log_level=log_level)


@container_app.command("create")
def create_command(
    ctx: typer.Context,
    owner: str = typer.Option(..., help="Owner recorded on the container"),
    replication_type: ReplicationType | None = typer.Option(
        None, "--type", case_sensitive=False, help="Replication type"
    ),
    replication_factor: ReplicationFactor | None = typer.Option(
        None, "--factor", case_sensitive=False, help="Replication factor"
    ),
) -> None:
    """Allocate and create one container."""
    cfg = _require_config(ctx)
    _run_command(
        cfg,
        lambda service: service.create_container(
            owner,
            replication_type=replication_type,
            replication_factor=replication_factor,
        ),
    )


@container_app.command("close")
def close_command(
    ctx: typer.Context,
    container_id: int = typer.Argument(..., min=0, help="Container id"),
) -> None:
    """Close one container to further writes."""
    cfg = _require_config(ctx)

    def invoke(service: ContainerOperationsService) -> None:
        record = service.get_container(container_id)
        service.close_container(container_id, record.pipeline)

    _run_command(cfg, invoke)


@container_app.command("delete")
def delete_command(
    ctx: typer.Context,
    container_id: int = typer.Argument(..., min=0, help="Container id"),
    force: bool = typer.Option(False, "--force", help="Delete even if open"),
) -> None:
    """Delete one container's data and metadata."""
    cfg = _require_config(ctx)

    def invoke(service: ContainerOperationsService) -> None:
        record = service.get_container(container_id)
        service.delete_container(container_id, record.pipeline, force=force)

    _run_command(cfg, invoke)


@container_app.command("info")
def info_command(
    ctx: typer.Context,
    container_id: int = typer.Argument(..., min=0, help="Container id"),
) -> None:
    """Show metadata and the datanode snapshot of one container."""
    cfg = _require_config(ctx)

    def invoke(service: ContainerOperationsService) -> dict[str, Any]:
        record = service.get_container(container_id)
        data = service.read_container(container_id, record.pipeline)
        return {"record": record, "container_data": data}

    _run_command(cfg, invoke)


@container_app.command("list")
def list_command(
    ctx: typer.Context,
    start: int = typer.Option(0, help="First container id"),
    count: int = typer.Option(20, help="Maximum number of records"),
) -> None:
    """List container metadata records."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda service: service.list_container(start, count))


@container_app.command("size")
def size_command(
    ctx: typer.Context,
    container_id: int = typer.Argument(..., min=0, help="Container id"),
) -> None:
    """Show the configured container capacity in bytes."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda service: service.get_container_size(container_id))


app.add_typer(container_app, name="container")


if __name__ == "__main__":
    app()
