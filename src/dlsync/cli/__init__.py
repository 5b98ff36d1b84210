"""
dlsync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from dlsync import __version__
from dlsync.cli import run
from dlsync.cli.argv import preprocess_argv
from dlsync.cli.errors import ExitCode, print_config_error
from dlsync.core.config import load_config, load_layered_env
from dlsync.core.exceptions import ConfigError

app = typer.Typer(
    name="dlsync",
    help="Sync community app and theme download counts to GitHub",
    no_args_is_help=True,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for dlsync commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    if not debug:
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    dlsync - download-count sync for community catalogs.

    Reads the authoritative download counts from MongoDB and writes them
    into the community apps and themes JSON documents on GitHub, using the
    document SHA to refuse overwriting concurrent edits.

    Common Workflows:
        dlsync run                   # Sync all dataset kinds
        dlsync run --dry-run         # Reconcile without committing
        dlsync kinds                 # Show configured dataset kinds
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    setup_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="run")(run.run)


@app.command()
def kinds(
    project_dir: Optional[Path] = typer.Option(
        None,
        "--project-dir",
        help="Directory containing .dlsync.json (default: current directory)",
    ),
) -> None:
    """Show the configured dataset kinds and where they live."""
    try:
        config = load_config(project_dir=project_dir, use_cache=False)
    except ConfigError as e:
        print_config_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)

    table = Table(title=f"Dataset kinds ({config.github.owner}/{config.github.repo})")
    table.add_column("Kind", style="cyan")
    table.add_column("Label")
    table.add_column("Document")
    table.add_column("Records")
    table.add_column("Store collection")

    for kind, spec in config.datasets.items():
        table.add_row(
            kind.value,
            spec.label,
            spec.path,
            f"{spec.collection_field}[].{spec.item_field}",
            spec.store_collection,
        )

    console.print(table)


@app.command()
def version() -> None:
    """Show dlsync version and exit."""
    console.print(f"dlsync version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """
    Main CLI entry point.

    The argv preprocessor normalizes ``dlsync --version`` and hoists
    ``--debug`` before the subcommand.
    """
    sys.argv[1:] = preprocess_argv(sys.argv[1:])
    app()


__all__ = ["app", "cli_main"]
