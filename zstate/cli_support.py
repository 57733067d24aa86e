"""Shared utilities for the zstate CLI."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional, Type

import typer
from rich.console import Console
from rich.table import Table

from zstate.core.config import AgentConfig
from zstate.core.executor import CommandExecutor, Runner
from zstate.core.zfs_manager import ZFSManager
from zstate.models.resources import ResourceSpec
from zstate.resources import FilesystemResource, PoolResource, VolumeResource
from zstate.resources.base import Resource
from zstate.services import LocalRunner, SSHRunner

# Default config search paths (ordered by proximity to current run)
CONFIG_PATHS = [
    "./zstate.yml",
    str(Path.home() / ".config" / "zstate" / "zstate.yml"),
    "/etc/zstate/zstate.yml",
]

RESOURCE_TYPES: Dict[str, Type[Resource]] = {
    "pool": PoolResource,
    "filesystem": FilesystemResource,
    "volume": VolumeResource,
}


def find_config(config_path: Optional[str] = None) -> str:
    """Locate the active zstate configuration file."""
    if config_path:
        return config_path

    if env_config := os.environ.get("ZSTATE_CONFIG"):
        return env_config

    for path in CONFIG_PATHS:
        if Path(path).exists():
            return path

    return "zstate.yml"


def make_runner(config: AgentConfig) -> Runner:
    """Local subprocess runner for this machine, SSH for anything else."""
    if config.is_local:
        return LocalRunner()
    return SSHRunner.from_config(config)


def make_manager(runner: Runner, config: AgentConfig) -> ZFSManager:
    executor = CommandExecutor(runner, command_prefix=config.command_prefix)
    return ZFSManager(executor)


def resource_for(kind: str, manager: ZFSManager) -> Resource:
    try:
        return RESOURCE_TYPES[kind](manager)
    except KeyError:
        raise typer.BadParameter(
            f"unknown resource kind '{kind}', expected one of: {', '.join(RESOURCE_TYPES)}"
        ) from None


def confirm_action(message: str, yes_flag: bool = False) -> bool:
    """Prompt user for confirmation unless --yes."""
    if yes_flag:
        return True
    return typer.confirm(message)


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Print the error and exit; the traceback only with --verbose."""
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def render_record(console: Console, kind: str, record: ResourceSpec) -> None:
    """Print a record as a two-part table: attributes, then declared properties."""
    table = Table(title=f"{kind} {record.name}", show_header=True, header_style="bold cyan")
    table.add_column("Attribute", style="bold")
    table.add_column("Value")

    attributes = record.model_dump(exclude={"name", "declared", "properties", "raw_properties"})
    for key, value in attributes.items():
        if value is None or value == []:
            continue
        table.add_row(key, str(value))

    for block in record.declared:
        table.add_row(f"property {block.name}", block.value)

    console.print(table)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    console.print(f"[yellow]{prefix}[/yellow] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    console.print(f"[cyan]{prefix}[/cyan] {message}")
