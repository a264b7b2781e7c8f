"""Command-line interface for the PWA to Azure DevOps bridge."""

import json
import logging
import sys
from collections.abc import Callable
from contextlib import ExitStack
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from pwa_devops_sync import __version__
from pwa_devops_sync.config import Config
from pwa_devops_sync.devops import AzureDevOpsClient
from pwa_devops_sync.errors import ConfigurationError
from pwa_devops_sync.pwa import ProjectOnlineClient, SyncMode
from pwa_devops_sync.sync import SyncEngine, SyncResult, SyncService, WorkItemGateway
from pwa_devops_sync.utils import get_logger, setup_logging

app = typer.Typer(help="Synchronize Project Online projects to Azure DevOps work items")
console = Console()
logger = get_logger(__name__)

ConfigDirOption = typer.Option(
    None,
    "--config-dir",
    help="Configuration directory. Defaults to ~/.pwa-devops-sync/",
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable verbose logging.")
ConfirmOption = typer.Option(
    False,
    "--confirm",
    help="Print each API call and prompt for confirmation before sending.",
)
JsonOption = typer.Option(False, "--json", help="Print the result as JSON.")


def _open_devops(config: Config, confirm: bool) -> AzureDevOpsClient:
    settings = config.devops_settings()
    return AzureDevOpsClient(
        organization_url=settings.organization_url,
        project=settings.project,
        auth=config.devops_auth(),
        confirm=confirm,
    )


def _open_pwa(config: Config, confirm: bool) -> ProjectOnlineClient:
    return ProjectOnlineClient(
        site_url=config.pwa_settings().url,
        auth=config.pwa_auth(),
        confirm=confirm,
    )


def _print_result(result: SyncResult, as_json: bool) -> None:
    if as_json:
        console.print_json(json.dumps(result.to_dict()))
        return

    table = Table(title="Sync Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="magenta")
    table.add_row("Projects processed", str(result.projects_processed))
    table.add_row("Work items created", str(result.work_items_created))
    table.add_row("Work items updated", str(result.work_items_updated))
    table.add_row("Errors", str(result.errors))
    console.print(table)

    style = "green" if result.success else "red"
    console.print(f"[{style}]{result.message}[/{style}]")

    if result.validation_errors:
        console.print("\n[yellow]Validation errors:[/yellow]")
        for message in result.validation_errors:
            console.print(f"  - {message}")

    if result.failures:
        console.print("\n[red]Failures:[/red]")
        for failure in result.failures:
            console.print(f"  - {failure}")


def _run_sync(
    config_dir: Optional[Path],
    verbose: bool,
    confirm: bool,
    as_json: bool,
    action: Callable[[SyncService], SyncResult],
    needs_pwa: bool = True,
) -> None:
    """Wire clients into a SyncService, run ``action`` and exit with its outcome."""
    setup_logging(
        log_level=logging.DEBUG if verbose else logging.INFO,
        config_dir=config_dir,
    )
    logger.info(f"PWA DevOps Sync v{__version__}")

    try:
        config = Config(config_dir)
        with ExitStack() as stack:
            devops = stack.enter_context(_open_devops(config, confirm))
            settings = config.devops_settings()
            pwa = None
            if needs_pwa or config.is_configured("pwa"):
                pwa = stack.enter_context(_open_pwa(config, confirm))

            gateway = WorkItemGateway(
                devops,
                parent_type=settings.parent_type,
                child_type=settings.child_type,
                lookup_failure=settings.lookup_failure,
            )
            service = SyncService(SyncEngine(gateway), pwa_client=pwa)
            result = action(service)

        _print_result(result, as_json)
        try:
            config.storage.record_sync(datetime.now(), result.to_dict())
        except (OSError, ValueError) as e:
            logger.warning(f"Could not record sync state: {e}")

    except ConfigurationError as e:
        console.print(f"[yellow]{e.message}. Please configure it first.[/yellow]")
        console.print("Run: pwa-devops-sync configure")
        raise typer.Exit(code=1)
    except httpx.RequestError as e:
        if "cancelled by user" in str(e).lower():
            console.print("[yellow]Sync cancelled by user[/yellow]")
            raise typer.Exit(code=0)
        logger.error(f"API request failed: {e}", exc_info=True)
        console.print(f"[red]Error: API request failed: {e}[/red]")
        raise typer.Exit(code=1)

    raise typer.Exit(code=0 if result.success else 1)


@app.command()
def sync(
    project_uid: str = typer.Argument(..., help="Project Online project GUID."),
    verbose: bool = VerboseOption,
    confirm: bool = ConfirmOption,
    as_json: bool = JsonOption,
    config_dir: Optional[Path] = ConfigDirOption,
) -> None:
    """Sync a Project Online project, by GUID, to Azure DevOps."""
    _run_sync(config_dir, verbose, confirm, as_json, lambda s: s.sync_by_uid(project_uid))


@app.command("sync-by-name")
def sync_by_name(
    project_name: str = typer.Argument(..., help="Exact Project Online project name."),
    verbose: bool = VerboseOption,
    confirm: bool = ConfirmOption,
    as_json: bool = JsonOption,
    config_dir: Optional[Path] = ConfigDirOption,
) -> None:
    """Sync the Project Online project with a unique name to Azure DevOps."""
    _run_sync(config_dir, verbose, confirm, as_json, lambda s: s.sync_by_name(project_name))


@app.command("sync-file")
def sync_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON payload file."),
    verbose: bool = VerboseOption,
    confirm: bool = ConfirmOption,
    as_json: bool = JsonOption,
    config_dir: Optional[Path] = ConfigDirOption,
) -> None:
    """Sync a project payload, or a list of projects, read from a JSON file."""
    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}: {e}[/red]")
        raise typer.Exit(code=1)

    if isinstance(payload, list):
        _run_sync(
            config_dir, verbose, confirm, as_json,
            lambda s: s.sync_payloads(payload),
            needs_pwa=False,
        )
    else:
        _run_sync(
            config_dir, verbose, confirm, as_json,
            lambda s: s.sync_payload(payload),
            needs_pwa=False,
        )


@app.command()
def demo(
    verbose: bool = VerboseOption,
    confirm: bool = ConfirmOption,
    as_json: bool = JsonOption,
    config_dir: Optional[Path] = ConfigDirOption,
) -> None:
    """Create a demo project with two tasks in Azure DevOps."""
    now = datetime.now(timezone.utc)
    payload = {
        "projectName": "Demo PWA Project",
        "startDate": now.isoformat(),
        "finishDate": (now + timedelta(days=10)).isoformat(),
        "mode": SyncMode.TARGET_ONLY.value,
        "tasks": [
            {
                "taskName": "Initial planning",
                "startDate": now.isoformat(),
                "finishDate": (now + timedelta(days=3)).isoformat(),
            },
            {
                "taskName": "Development work",
                "startDate": (now + timedelta(days=3)).isoformat(),
                "finishDate": (now + timedelta(days=10)).isoformat(),
            },
        ],
    }
    _run_sync(
        config_dir, verbose, confirm, as_json,
        lambda s: s.sync_payload(payload),
        needs_pwa=False,
    )


@app.command()
def projects(
    verbose: bool = VerboseOption,
    config_dir: Optional[Path] = ConfigDirOption,
) -> None:
    """List projects published in Project Online."""
    setup_logging(log_level=logging.DEBUG if verbose else logging.INFO, config_dir=config_dir)

    try:
        with _open_pwa(Config(config_dir), confirm=False) as pwa:
            summaries = pwa.list_projects()
    except ConfigurationError as e:
        console.print(f"[yellow]{e.message}. Run: pwa-devops-sync configure[/yellow]")
        raise typer.Exit(code=1)

    table = Table(title="Project Online Projects")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Start", style="green")
    table.add_column("Finish", style="green")
    for summary in summaries:
        table.add_row(
            summary.uid,
            summary.name,
            summary.start_date.date().isoformat() if summary.start_date else "-",
            summary.finish_date.date().isoformat() if summary.finish_date else "-",
        )
    console.print(table)


@app.command()
def show(
    project_uid: str = typer.Argument(..., help="Project Online project GUID."),
    verbose: bool = VerboseOption,
    config_dir: Optional[Path] = ConfigDirOption,
) -> None:
    """Show a Project Online project with its tasks."""
    setup_logging(log_level=logging.DEBUG if verbose else logging.INFO, config_dir=config_dir)

    try:
        with _open_pwa(Config(config_dir), confirm=False) as pwa:
            project = pwa.get_project_with_tasks(project_uid)
    except ConfigurationError as e:
        console.print(f"[yellow]{e.message}. Run: pwa-devops-sync configure[/yellow]")
        raise typer.Exit(code=1)

    if project is None:
        console.print(f"[red]Project {project_uid} not found in Project Online.[/red]")
        raise typer.Exit(code=1)

    table = Table(title=f"{project.name} ({project.uid})")
    table.add_column("Task", style="magenta")
    table.add_column("Id", style="cyan")
    table.add_column("Start", style="green")
    table.add_column("Finish", style="green")
    for task in project.tasks:
        table.add_row(
            task.name,
            task.uid,
            task.start_date.isoformat() if task.start_date else "-",
            task.finish_date.isoformat() if task.finish_date else "-",
        )
    console.print(table)


def _check_configuration_status(config: Config) -> None:
    """Display current configuration status."""
    console.print("[bold cyan]Current Configuration Status[/bold cyan]")
    for label, section in (("Azure DevOps", "devops"), ("Project Online", "pwa")):
        configured = config.is_configured(section) and bool(config.storage.get_token(section))
        status = "[green]✓ Configured[/green]" if configured else "[yellow]✗ Not configured[/yellow]"
        console.print(f"  {label}:  {status}")

    last_sync, last_result = config.storage.get_last_sync()
    if last_sync:
        summary = "ok" if last_result and last_result.get("success") else "with errors"
        console.print(f"  Last sync: {last_sync:%Y-%m-%d %H:%M} ({summary})")
    console.print()


def _configure_devops(config: Config) -> None:
    console.print("[yellow]Azure DevOps Configuration[/yellow]")
    current = config.get_settings().get("devops", {})
    values = {
        "organization_url": Prompt.ask(
            "Organization URL (e.g., https://dev.azure.com/contoso)",
            default=current.get("organization_url"),
        ),
        "project": Prompt.ask("Team project", default=current.get("project")),
        "parent_type": Prompt.ask("Work item type per project", default=current.get("parent_type", "Epic")),
        "child_type": Prompt.ask("Work item type per task", default=current.get("child_type", "Task")),
        "lookup_failure": Prompt.ask(
            "When the Epic lookup fails",
            choices=["create", "abort"],
            default=current.get("lookup_failure", "create"),
        ),
    }
    config.update_section("devops", values)
    config.storage.set_token("devops", Prompt.ask("Personal access token", password=True))
    console.print("[green]✓ Azure DevOps settings saved[/green]")


def _configure_pwa(config: Config) -> None:
    console.print("[yellow]Project Online Configuration[/yellow]")
    current = config.get_settings().get("pwa", {})
    url = Prompt.ask(
        "PWA site URL (e.g., https://contoso.sharepoint.com/sites/pwa)",
        default=current.get("url"),
    )
    config.update_section("pwa", {"url": url})
    config.storage.set_token("pwa", Prompt.ask("Access token", password=True))
    console.print("[green]✓ Project Online settings saved[/green]")


@app.command()
def configure(config_dir: Optional[Path] = ConfigDirOption) -> None:
    """Configure Azure DevOps and Project Online connections."""
    setup_logging(config_dir=config_dir)
    config = Config(config_dir)

    console.print("[bold cyan]PWA DevOps Sync Configuration[/bold cyan]")
    console.print()
    _check_configuration_status(config)

    choice = Prompt.ask(
        "Which service would you like to configure?",
        choices=["devops", "pwa", "both"],
        default="both",
    )
    console.print()

    if choice in ("devops", "both"):
        _configure_devops(config)
        console.print()
    if choice in ("pwa", "both"):
        _configure_pwa(config)
        console.print()

    console.print("[cyan]Testing connections...[/cyan]")

    if choice in ("devops", "both"):
        try:
            with _open_devops(config, confirm=False) as devops:
                gateway = WorkItemGateway(devops, parent_type=config.devops_settings().parent_type)
                devops.query_wiql(gateway.build_parent_query("connection test"))
            console.print("[green]✓ Connected to Azure DevOps[/green]")
        except Exception as e:
            console.print(f"[red]✗ Failed to connect to Azure DevOps: {e}[/red]")

    if choice in ("pwa", "both"):
        try:
            with _open_pwa(config, confirm=False) as pwa:
                count = len(pwa.list_projects())
            console.print(f"[green]✓ Connected to Project Online (found {count} projects)[/green]")
        except Exception as e:
            console.print(f"[red]✗ Failed to connect to Project Online: {e}[/red]")

    console.print("\n[green]Configuration complete![/green]")
    console.print("Run 'pwa-devops-sync sync-by-name <project>' to start syncing.")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"PWA DevOps Sync v{__version__}")


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
