"""
dlsync CLI - Run command.

Performs one reconciliation pass. Meant to be invoked by an external
scheduler (cron, a CI schedule); the exit code tells the scheduler whether
every attempted dataset kind succeeded.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from dlsync.cli.errors import ExitCode, print_config_error
from dlsync.core.catalog.models import DatasetKind
from dlsync.core.config import load_config
from dlsync.core.exceptions import ConfigError
from dlsync.core.github.auth import build_credential_provider
from dlsync.core.reporting import build_error_sink
from dlsync.core.store import open_store
from dlsync.core.sync import DatasetStatus, RunSummary, SyncService

console = Console()


class Policy(str, Enum):
    ISOLATE = "isolate"
    ABORT = "abort"


_STATUS_STYLES = {
    DatasetStatus.COMMITTED: "green",
    DatasetStatus.UNCHANGED: "blue",
    DatasetStatus.DRY_RUN: "yellow",
    DatasetStatus.FAILED: "red",
    DatasetStatus.SKIPPED: "dim",
}


def _format_status(status: DatasetStatus) -> str:
    style = _STATUS_STYLES[status]
    return f"[{style}]{status.value}[/{style}]"


def render_summary(summary: RunSummary) -> Table:
    """Build the per-dataset result table."""
    table = Table(title="Download Sync")
    table.add_column("Dataset", style="cyan")
    table.add_column("Status")
    table.add_column("Entries", justify="right")
    table.add_column("Matched", justify="right")
    table.add_column("Unmatched", justify="right")
    table.add_column("Detail")

    for result in summary.results:
        if result.error:
            detail = f"[red]{result.error}[/red]"
        elif result.commit_sha:
            detail = result.commit_sha[:8]
        else:
            detail = ""
        table.add_row(
            result.kind.value,
            _format_status(result.status),
            str(result.entries),
            str(result.matched),
            str(len(result.unmatched)),
            detail,
        )
    return table


def run(
    kind: Optional[list[DatasetKind]] = typer.Option(
        None,
        "--kind",
        "-k",
        help="Dataset kind to sync (repeatable; default: all configured kinds)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Fetch and reconcile but do not commit",
    ),
    policy: Optional[Policy] = typer.Option(
        None,
        "--policy",
        help="Failure policy: 'isolate' keeps going after a failed kind, 'abort' stops",
    ),
    project_dir: Optional[Path] = typer.Option(
        None,
        "--project-dir",
        help="Directory containing .dlsync.json (default: current directory)",
    ),
) -> None:
    """
    Sync download counts from the store into the catalog documents.

    Examples:
        dlsync run                      # Sync apps and themes
        dlsync run --kind themes        # Sync themes only
        dlsync run --dry-run            # Show what would change
        dlsync run --policy abort       # Stop at the first failing kind
    """
    try:
        config = load_config(project_dir=project_dir, use_cache=False)
        updates: dict[str, object] = {}
        if dry_run:
            updates["dry_run"] = True
        if policy is not None:
            updates["failure_policy"] = policy.value
        if updates:
            config = config.model_copy(update=updates)

        unknown = [k.value for k in (kind or []) if k not in config.datasets]
        if unknown:
            raise ConfigError(f"Dataset kind not configured: {', '.join(unknown)}")

        service = SyncService(
            config,
            credential_provider=build_credential_provider(config.github),
            store=open_store(config.store),
            error_sink=build_error_sink(config.sentry),
        )
    except ConfigError as e:
        print_config_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)

    summary = service.run(kind or None)

    console.print(render_summary(summary))
    if summary.error:
        console.print(f"[red]Run failed:[/red] {summary.error}")

    if not summary.ok:
        raise typer.Exit(ExitCode.GENERAL_ERROR)
