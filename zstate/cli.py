#!/usr/bin/env python3
"""zstate CLI - declarative ZFS pools, filesystems and volumes over SSH."""
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from zstate.cli_support import (
    confirm_action,
    find_config,
    handle_cli_error,
    make_manager,
    make_runner,
    print_error,
    print_info,
    print_success,
    print_warning,
    render_record,
    resource_for,
)
from zstate.config.loader import KIND_MODELS, ConfigLoader
from zstate.core.config import get_config
from zstate.core.errors import ResourceError, ZStateError
from zstate.core.logger import configure_logging, get_logger
from zstate.core.state_store import StateStore
from zstate.models.resources import ResourceSpec
from zstate.resources.base import Resource

app = typer.Typer(
    name="zstate",
    help="""zstate - declarative ZFS over SSH

One YAML file describes pools, filesystems and volumes; zstate makes the
host match it and remembers what it manages.

Quick start:
  zstate apply --dry-run     # See what will change
  zstate apply               # Make it happen
  zstate read filesystem tank/data
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def plan_action(kind: str, desired: ResourceSpec, store: StateStore) -> Tuple[str, Optional[dict]]:
    """Decide what apply does with one record.

    Returns ("create", None), ("update", prior_record), or ("import", None) when
    the record names a guid zstate has no stored record for.
    """
    prior = store.get(kind, desired.name)
    if prior is None and desired.id:
        prior = store.find_by_id(kind, desired.id)
    if prior is not None:
        return "update", prior
    if desired.id:
        return "import", None
    return "create", None


def reconcile(resource: Resource, kind: str, desired: ResourceSpec, store: StateStore) -> ResourceSpec:
    """Create or update one resource and persist the record read back from the host."""
    action, prior_data = plan_action(kind, desired, store)
    previous_name = None

    try:
        if action == "create":
            result = resource.create(desired)
        else:
            if prior_data is None:
                prior = resource.read(desired)
            else:
                prior = KIND_MODELS[kind].model_validate(prior_data)
            previous_name = prior.name
            result = resource.update(prior, desired.model_copy(update={"id": desired.id or prior.id}))
    except ResourceError as e:
        if e.record is not None:
            # The host holds the resource even though the operation failed
            store.put(kind, e.record.name, e.record.to_record(), previous_name=previous_name)
        raise

    store.put(kind, result.name, result.to_record(), previous_name=previous_name)
    return result


def _render_plan(plan: List[Tuple[str, str, str]]) -> None:
    table = Table(title="Plan", show_header=True, header_style="bold cyan")
    table.add_column("Action", style="bold")
    table.add_column("Kind")
    table.add_column("Name")
    styles = {"create": "green", "update": "yellow", "import": "cyan"}
    for action, kind, name in plan:
        style = styles[action]
        table.add_row(f"[{style}]{action}[/{style}]", kind, name)
    console.print(table)


@app.command()
def apply(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show actions without applying"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Make the host match the configuration file."""
    configure_logging(verbose, log_file)
    settings = get_config()

    try:
        desired = ConfigLoader(find_config(config), settings.default_property_mode).load()
    except (ZStateError, FileNotFoundError) as e:
        handle_cli_error(e, console, verbose)

    store = StateStore(settings.state_file)
    plan = [(plan_action(kind, spec, store)[0], kind, spec.name) for kind, spec in desired.items()]

    declared = {f"{kind}.{spec.name}" for kind, spec in desired.items()}
    for orphan in store.addresses():
        if orphan not in declared:
            print_warning(console, f"{orphan} is tracked but no longer declared; use 'zstate destroy' to remove it")

    if not plan:
        print_info(console, "Nothing declared")
        return

    _render_plan(plan)
    if dry_run:
        print_info(console, "Dry run, no changes made")
        return

    if not confirm_action("\nDo you want to apply these changes?", yes):
        print_warning(console, "Apply cancelled")
        raise typer.Exit(1)

    failures = 0
    try:
        with make_runner(settings) as runner:
            manager = make_manager(runner, settings)
            for kind, spec in desired.items():
                try:
                    result = reconcile(resource_for(kind, manager), kind, spec, store)
                except ResourceError as e:
                    failures += 1
                    print_error(console, str(e))
                    continue
                print_success(console, f"{kind} {result.name} ({result.id})")
    except ZStateError as e:
        handle_cli_error(e, console, verbose)

    if failures:
        print_error(console, f"{failures} of {len(plan)} resource(s) failed")
        raise typer.Exit(1)
    print_success(console, f"Applied {len(plan)} resource(s)")


@app.command()
def read(
    kind: str = typer.Argument(..., help="pool, filesystem or volume"),
    name: str = typer.Argument(..., help="Resource name, e.g. tank/data"),
    json_output: bool = typer.Option(False, "--json", help="Print the record as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Refresh a tracked resource from the host (untracked ones are looked up read-only)."""
    configure_logging(verbose, log_file)
    settings = get_config()
    store = StateStore(settings.state_file)

    try:
        with make_runner(settings) as runner:
            resource = resource_for(kind, make_manager(runner, settings))
            stored = store.get(kind, name)
            if stored is None:
                record = resource.lookup(name)
            else:
                record = resource.read(KIND_MODELS[kind].model_validate(stored))
                store.put(kind, record.name, record.to_record(), previous_name=name)
    except ZStateError as e:
        handle_cli_error(e, console, verbose)

    if json_output:
        console.print_json(data=record.to_record())
    else:
        render_record(console, kind, record)


@app.command()
def lookup(
    kind: str = typer.Argument(..., help="pool, filesystem or volume"),
    guid: str = typer.Argument(..., help="guid of the resource"),
    json_output: bool = typer.Option(False, "--json", help="Print the record as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Find a resource by guid, wherever it has been renamed to."""
    configure_logging(verbose, log_file)
    settings = get_config()

    try:
        with make_runner(settings) as runner:
            resource = resource_for(kind, make_manager(runner, settings))
            record = resource.lookup(resource.resolve(guid))
    except ZStateError as e:
        handle_cli_error(e, console, verbose)

    if json_output:
        console.print_json(data=record.to_record())
    else:
        render_record(console, kind, record)


@app.command()
def destroy(
    kind: str = typer.Argument(..., help="pool, filesystem or volume"),
    name: str = typer.Argument(..., help="Resource name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Destroy a resource and forget its record."""
    configure_logging(verbose, log_file)
    settings = get_config()
    store = StateStore(settings.state_file)

    if not confirm_action(f"Destroy {kind} {name}? This cannot be undone.", yes):
        print_warning(console, "Destroy cancelled")
        raise typer.Exit(1)

    try:
        with make_runner(settings) as runner:
            resource = resource_for(kind, make_manager(runner, settings))
            stored = store.get(kind, name)
            spec = resource.lookup(name) if stored is None else KIND_MODELS[kind].model_validate(stored)
            resource.delete(spec)
    except ZStateError as e:
        handle_cli_error(e, console, verbose)

    store.remove(kind, name)
    print_success(console, f"Destroyed {kind} {name}")


@app.command()
def layout(
    pool: str = typer.Argument(..., help="Pool name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Show the vdev layout of a pool."""
    configure_logging(verbose, log_file)
    settings = get_config()

    try:
        with make_runner(settings) as runner:
            pool_layout = make_manager(runner, settings).read_pool_layout(pool)
    except ZStateError as e:
        handle_cli_error(e, console, verbose)

    tree = Tree(f"[bold]{pool}[/bold]")
    for device in pool_layout.striped:
        tree.add(device)
    for index, mirror in enumerate(pool_layout.mirrors):
        branch = tree.add(f"[cyan]mirror-{index}[/cyan]")
        for device in mirror.devices:
            branch.add(device)
    console.print(tree)


if __name__ == "__main__":
    app()
