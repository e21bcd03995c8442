"""CLI entry point for rolesync."""

import json
import sys
from pathlib import Path
from typing import List, Optional

import typer
from botocore.exceptions import ClientError
from rich.console import Console
from rich.table import Table

from rolesync.exceptions import RoleOperationError, RolesyncError, ValidationError
from rolesync.lifecycle.role_manager import RoleManager
from rolesync.models import RoleConfig, RoleState
from rolesync.state.store import StateStore
from rolesync.utils.aws_client import AWSClientManager
from rolesync.utils.config import RolesyncConfig, configure_logging

app = typer.Typer(
    help="Manage one AWS IAM role from a JSON configuration",
    no_args_is_help=True,
)
console = Console()

STATE_OPTION = typer.Option(
    None,
    "--state",
    "-s",
    help="State file to use (defaults to STATE_FILE or rolesync.tfstate.json)",
)


def _settings(dry_run: bool = False) -> RolesyncConfig:
    config = RolesyncConfig.from_environment()
    config.dry_run = config.dry_run or dry_run
    configure_logging(config)
    return config


def _build_manager(config: RolesyncConfig) -> RoleManager:
    client_manager = AWSClientManager(region=config.region, role_arn=config.role_arn or None)
    return RoleManager.from_config(config, client_manager)


def _store(config: RolesyncConfig, state_file: Optional[Path]) -> StateStore:
    return StateStore(state_file or config.state_file)


def _load_role_config(path: Path) -> RoleConfig:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValidationError(f"Unable to read {path}: {e}", [str(e)]) from e
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path} is not valid JSON: {e}", [str(e)]) from e
    if not isinstance(data, dict):
        raise ValidationError(f"{path} must contain a JSON object", ["expected an object"])
    try:
        return RoleConfig.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise ValidationError(f"{path} is not a valid role configuration: {e}", [str(e)]) from e


def _print_changes(changes: List[str]) -> None:
    if not changes:
        console.print("[green]No changes.[/green] The role matches the configuration.")
        return
    styles = {"+": "green", "-": "red", "~": "yellow"}
    for line in changes:
        style = styles.get(line[0], "yellow")
        console.print(f"  [{style}]{line}[/{style}]", highlight=False)


def _print_state(state: RoleState) -> None:
    table = Table(title=f"aws_iam_role {state.id}", show_header=False)
    table.add_column("attribute", style="bold")
    table.add_column("value")
    for key, value in state.to_dict().items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, indent=2, sort_keys=True)
        table.add_row(key, str(value))
    console.print(table)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    if isinstance(error, ValidationError):
        for message in error.errors:
            console.print(f"  - {message}")
    sys.exit(1)


@app.command("version")
def version():
    """Show the version of rolesync."""
    from rolesync import __version__

    console.print(f"rolesync version: [bold green]{__version__}[/bold green]")


@app.command("plan")
def plan(
    config_file: Path = typer.Argument(..., help="Role configuration (JSON)"),
    state_file: Optional[Path] = STATE_OPTION,
):
    """
    Show the changes apply would make.

    The tracked role is refreshed from IAM first, so changes made outside
    rolesync show up in the plan.
    """
    try:
        config = _settings(dry_run=True)
        role_config = _load_role_config(config_file)
        state = _store(config, state_file).load()
        role_plan = _build_manager(config).plan(role_config, state)
    except (RolesyncError, ClientError) as e:
        _fail(e)
        return

    console.print(f"Plan: [bold]{role_plan.action.value}[/bold]")
    _print_changes(role_plan.describe())


@app.command("apply")
def apply(
    config_file: Path = typer.Argument(..., help="Role configuration (JSON)"),
    state_file: Optional[Path] = STATE_OPTION,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would be done without making changes",
    ),
):
    """
    Create, update or replace the role so it matches the configuration.

    Examples:
        rolesync apply role.json

        rolesync apply role.json --dry-run
    """
    try:
        config = _settings(dry_run=dry_run)
        role_config = _load_role_config(config_file)
        store = _store(config, state_file)
        result = _build_manager(config).apply(role_config, store.load())
    except RoleOperationError as e:
        if e.state is not None and not dry_run:
            store.save(e.state)
            console.print(f"[yellow]Role {e.state.id} exists and is tracked in state.[/yellow]")
        _fail(e)
        return
    except (RolesyncError, ClientError) as e:
        _fail(e)
        return

    _print_changes(result.changes)
    if result.dry_run:
        console.print("[yellow]Dry run, nothing was changed.[/yellow]")
        return

    if result.state is None:
        store.clear()
        console.print("[yellow]The role no longer exists and was removed from state.[/yellow]")
        return

    store.save(result.state)
    console.print(
        f"[bold green]Apply complete:[/bold green] {result.action.value} {result.state.arn}"
    )


@app.command("destroy")
def destroy(
    state_file: Optional[Path] = STATE_OPTION,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would be done without making changes",
    ),
):
    """Delete the tracked role and forget it."""
    try:
        config = _settings(dry_run=dry_run)
        store = _store(config, state_file)
        result = _build_manager(config).destroy(store.load())
    except (RolesyncError, ClientError) as e:
        _fail(e)
        return

    if not result.changes:
        console.print("No role is tracked, nothing to destroy.")
        return

    _print_changes(result.changes)
    if result.dry_run:
        console.print("[yellow]Dry run, nothing was changed.[/yellow]")
        return

    store.clear()
    console.print("[bold green]Destroy complete.[/bold green]")


@app.command("import")
def import_role(
    role_name: str = typer.Argument(..., help="Name of the existing IAM role"),
    state_file: Optional[Path] = STATE_OPTION,
):
    """Start tracking an existing role."""
    try:
        config = _settings()
        store = _store(config, state_file)
        current = store.load()
        if current is not None:
            raise RolesyncError(
                f"State already tracks IAM Role {current.id}; destroy or remove it first"
            )
        state = _build_manager(config).import_role(role_name)
        store.save(state)
    except (RolesyncError, ClientError) as e:
        _fail(e)
        return

    console.print(f"[bold green]Imported[/bold green] {state.arn}")


@app.command("refresh")
def refresh(state_file: Optional[Path] = STATE_OPTION):
    """Re-read the tracked role from IAM and update state."""
    try:
        config = _settings()
        store = _store(config, state_file)
        current = store.load()
        if current is None:
            console.print("No role is tracked.")
            return
        state = _build_manager(config).refresh(current)
        if state is None:
            store.clear()
        else:
            store.save(state)
    except (RolesyncError, ClientError) as e:
        _fail(e)
        return

    if state is None:
        console.print(f"[yellow]IAM Role {current.id} no longer exists, removed from state.[/yellow]")
    else:
        console.print(f"[bold green]Refreshed[/bold green] {state.id}")


@app.command("show")
def show(state_file: Optional[Path] = STATE_OPTION):
    """Show the tracked role as recorded in state."""
    try:
        config = _settings()
        state = _store(config, state_file).load()
    except RolesyncError as e:
        _fail(e)
        return

    if state is None:
        console.print("No role is tracked.")
        return
    _print_state(state)


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
