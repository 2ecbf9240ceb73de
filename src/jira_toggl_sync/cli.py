"""Command-line interface for the Toggl to Jira synchronizer."""

import concurrent.futures
import logging
import sys
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from jira_toggl_sync import __version__
from jira_toggl_sync.config import Config
from jira_toggl_sync.jira import JiraClient, JiraWorklogRepository
from jira_toggl_sync.sync import RunStatus, SyncEngine, SyncResult, SyncState
from jira_toggl_sync.toggl import TogglClient, TogglEntrySource
from jira_toggl_sync.utils import get_logger, setup_logging
from jira_toggl_sync.utils.confirmation import create_confirming_transport

app = typer.Typer(help="Synchronize Toggl Track time entries to Jira worklogs")
console = Console()
logger = get_logger(__name__)

T = TypeVar("T")

STATE_MESSAGES = {
    SyncState.FETCHING_SOURCE: "Reading Toggl time entries...",
    SyncState.FETCHING_TARGET: "Reading Jira worklogs...",
    SyncState.PLANNING: "Comparing entries...",
    SyncState.EXECUTING: "Applying changes to Jira...",
    SyncState.REPORTING: "Summarizing...",
}


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        console.print(f"[red]Invalid date '{value}'. Use YYYY-MM-DD[/red]")
        raise typer.Exit(code=RunStatus.FATAL.exit_code)


def _run_cancellable(func: Callable[[], T], cancel_event: threading.Event) -> T:
    """Run func on a worker thread; Ctrl-C sets cancel_event and waits for it to stop."""
    with concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="run") as runner:
        future = runner.submit(func)
        while True:
            try:
                return future.result(timeout=0.2)
            except concurrent.futures.TimeoutError:
                continue
            except KeyboardInterrupt:
                if not cancel_event.is_set():
                    console.print("\n[yellow]Cancelling, waiting for requests in flight...[/yellow]")
                    cancel_event.set()


def _show_state(state: SyncState) -> None:
    message = STATE_MESSAGES.get(state)
    if message:
        console.print(f"[dim]{message}[/dim]")


def _print_result(result: SyncResult) -> None:
    if result.status is RunStatus.FATAL:
        console.print(f"[red]Sync aborted, nothing was changed: {escape(result.fatal_error or '')}[/red]")
        return

    table = Table(title="Planned Changes" if result.dry_run else "Sync Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="magenta")
    table.add_row("Created", str(result.entries_created))
    table.add_row("Updated", str(result.entries_updated))
    table.add_row("Deleted", str(result.entries_deleted))
    table.add_row("Unchanged", str(result.entries_unchanged))
    table.add_row("Failed", str(result.entries_failed))
    console.print(table)

    if result.dry_run and result.plan is not None:
        for operation in result.plan.operations:
            console.print(f"  - {escape(str(operation))}")

    if result.failures:
        console.print("\n[red]Errors:[/red]")
        for failure in result.failures:
            console.print(f"  - {escape(str(failure))}")

    if result.status is RunStatus.CONVERGED:
        console.print("[green]Jira worklogs match Toggl[/green]")
    else:
        console.print("[yellow]Some changes failed; run sync again to retry them[/yellow]")


@app.command()
def sync(
    from_date: Optional[str] = typer.Option(
        None,
        "--from-date",
        help="First day to sync (YYYY-MM-DD). Defaults to days_back days before --to-date.",
    ),
    to_date: Optional[str] = typer.Option(
        None,
        "--to-date",
        help="Last day to sync (YYYY-MM-DD). Defaults to today.",
    ),
    issues: Optional[List[str]] = typer.Option(
        None,
        "--issue",
        "-i",
        help="Also reconcile this issue. Can be repeated.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would change without changing Jira.",
    ),
    confirm: bool = typer.Option(
        False,
        "--confirm",
        help="Show each Jira write request and ask before sending it.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging.",
    ),
    config_dir: Optional[Path] = typer.Option(
        None,
        "--config-dir",
        help="Configuration directory. Defaults to ~/.jira-toggl-sync/",
    ),
) -> None:
    """Make Jira worklogs match Toggl time entries for a range of days."""
    setup_logging(
        log_level=logging.DEBUG if verbose else logging.INFO,
        config_dir=config_dir,
    )
    logger.info(f"Jira Toggl Sync v{__version__}")

    from_dt = _parse_date(from_date)
    to_dt = _parse_date(to_date)
    if from_dt and to_dt and from_dt > to_dt:
        console.print("[red]--from-date must not be after --to-date[/red]")
        raise typer.Exit(code=RunStatus.FATAL.exit_code)

    config = Config(config_dir)
    if not config.is_configured():
        console.print("[yellow]Not configured yet. Run: jira-toggl-sync configure[/yellow]")
        raise typer.Exit(code=RunStatus.FATAL.exit_code)

    transport = create_confirming_transport() if confirm else None
    toggl_client = TogglClient(config.storage.get_token("toggl") or "")
    jira_client = JiraClient(
        base_url=config.jira_url or "",
        username=config.jira_username or "",
        api_token=config.storage.get_token("jira") or "",
        transport=transport,
    )

    cancel_event = threading.Event()
    with toggl_client, jira_client:
        source = TogglEntrySource(
            toggl_client,
            issue_key_pattern=config.issue_key_pattern,
            rounding_minutes=config.rounding_minutes,
        )
        repository = JiraWorklogRepository(
            jira_client, username=config.jira_username, max_workers=config.max_workers
        )

        mode_str = "[bold cyan]DRY RUN[/bold cyan]" if dry_run else "[bold green]SYNC[/bold green]"
        console.print(f"Starting {mode_str} mode...")

        engine = SyncEngine(
            config=config,
            toggl_source=source,
            jira_repository=repository,
            on_state_change=_show_state,
        )
        result = _run_cancellable(
            lambda: engine.sync(
                from_date=from_dt,
                to_date=to_dt,
                dry_run=dry_run,
                issue_keys=issues or [],
                cancel_event=cancel_event,
            ),
            cancel_event,
        )

    _print_result(result)
    raise typer.Exit(code=result.exit_code)


@app.command()
def configure(
    config_dir: Optional[Path] = typer.Option(
        None,
        "--config-dir",
        help="Configuration directory. Defaults to ~/.jira-toggl-sync/",
    ),
) -> None:
    """Store Jira and Toggl credentials and check that they work."""
    setup_logging(config_dir=config_dir)
    config = Config(config_dir)

    console.print("[bold cyan]Jira Toggl Sync Configuration[/bold cyan]")

    jira_url = Prompt.ask("Jira site URL (e.g. https://mycompany.atlassian.net)", default=config.jira_url)
    jira_username = Prompt.ask("Jira login email", default=config.jira_username)
    jira_token = Prompt.ask("Jira API token", password=True)
    toggl_token = Prompt.ask("Toggl API token", password=True)

    config.update_setting("jira_url", jira_url)
    config.update_setting("jira_username", jira_username)
    config.storage.set_token("jira", jira_token)
    config.storage.set_token("toggl", toggl_token)
    console.print("[green]✓ Settings saved[/green]")

    console.print("[cyan]Testing connections...[/cyan]")
    try:
        with TogglClient(toggl_token) as toggl_client:
            user = toggl_client.get_current_user()
            console.print(f"[green]✓ Connected to Toggl as {user.fullname or user.email}[/green]")
            if user.timezone and not config.get("timezone"):
                config.update_setting("timezone", user.timezone)
                console.print(f"[dim]Counting days in the Toggl profile timezone {user.timezone}[/dim]")
    except Exception as e:
        console.print(f"[red]✗ Failed to connect to Toggl: {e}[/red]")

    try:
        with JiraClient(jira_url, jira_username, jira_token) as jira_client:
            me = jira_client.get_myself()
            console.print(f"[green]✓ Connected to Jira as {me.display_name or me.name}[/green]")
    except Exception as e:
        console.print(f"[red]✗ Failed to connect to Jira: {e}[/red]")

    console.print("Run 'jira-toggl-sync sync' to start syncing work logs.")


@app.command()
def status(
    config_dir: Optional[Path] = typer.Option(
        None,
        "--config-dir",
        help="Configuration directory. Defaults to ~/.jira-toggl-sync/",
    ),
) -> None:
    """Show settings and the time of the last sync."""
    config = Config(config_dir)

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")
    for key, value in config.get_settings().items():
        shown = ", ".join(value) if isinstance(value, list) else value
        table.add_row(key, "-" if shown in (None, "") else escape(str(shown)))
    for service in ("jira", "toggl"):
        stored = config.storage.get_token(service)
        table.add_row(f"{service} token", "[green]set[/green]" if stored else "[yellow]missing[/yellow]")
    console.print(table)

    last_sync = config.storage.get_last_sync_date()
    console.print(f"Last sync: {last_sync:%Y-%m-%d %H:%M}" if last_sync else "Last sync: never")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"Jira Toggl Sync v{__version__}")


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(RunStatus.FATAL.exit_code)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(RunStatus.FATAL.exit_code)


if __name__ == "__main__":
    main()
