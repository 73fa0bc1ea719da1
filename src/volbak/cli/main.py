# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/cli/main.py

"""
CLI dispatcher: parses options and routes to the command handlers.

- transfer commands: backup, restore
- info commands: validate-config
"""

# Standard library imports
from importlib.metadata import PackageNotFoundError, version
from typing import Optional

# Third-party imports
import typer
from rich.console import Console

# Local volbak imports
from volbak.cli.commands import info as info_commands
from volbak.cli.commands import transfer as transfer_commands
from volbak.cli.utils import CliState, handle_operation_error, prepare_command
from volbak.system.exceptions import VolbakError
from volbak.system.logging_setup import setup_logging

# Initialize Typer app
app = typer.Typer(
    help="""volbak - Back up and restore container volumes

[bold green]Transfer:[/bold green] backup, restore
[bold red]Validation:[/bold red] validate-config
""",
    rich_markup_mode="rich"
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        try:
            pkg_version = version("volbak")
        except PackageNotFoundError as e:
            handle_operation_error(console, "retrieving version", e)
        console.print(f"volbak version {pkg_version}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True,
        help="Show version and exit"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """volbak - streaming backup and restore of container volumes."""
    setup_logging(verbose=verbose, debug=debug)
    ctx.obj = CliState(verbose=verbose or debug, debug=debug)


# =============================================================================
# TRANSFER COMMANDS
# =============================================================================

@app.command()
def backup(
    ctx: typer.Context,
    volume: str = typer.Argument(..., help="Name of the volume to back up"),
    destination: str = typer.Argument(..., help="Archive path or s3://bucket/key"),
    compress: Optional[str] = typer.Option(
        None, "--compress", "-c", help="Compression: none, gz or zstd (default from config: gz)"
    ),
    progress: Optional[bool] = typer.Option(None, "--progress/--no-progress", help="Show transfer progress"),
) -> None:
    """[bold green]Transfer[/bold green]: Back up a volume to a local archive or S3."""
    state = ctx.ensure_object(CliState)
    config = prepare_command(console, state)
    try:
        transfer_commands.backup(
            console, config, volume, destination,
            compression=compress, show_progress=progress, verbose=state.verbose,
        )
    except VolbakError as e:
        handle_operation_error(console, "backing up volume", e)


@app.command()
def restore(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Archive path or s3://bucket/key"),
    volume: str = typer.Argument(..., help="Name of the volume to restore into"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Clear an existing volume before restoring"),
    progress: Optional[bool] = typer.Option(None, "--progress/--no-progress", help="Show transfer progress"),
) -> None:
    """[bold green]Transfer[/bold green]: Restore a volume from a local archive or S3."""
    state = ctx.ensure_object(CliState)
    config = prepare_command(console, state)
    try:
        transfer_commands.restore(
            console, config, source, volume,
            overwrite=overwrite, show_progress=progress, verbose=state.verbose,
        )
    except VolbakError as e:
        handle_operation_error(console, "restoring volume", e)


# =============================================================================
# INFO COMMANDS
# =============================================================================

@app.command(name="validate-config")
def validate_config_command(
    ctx: typer.Context,
    check_backend: bool = typer.Option(True, "--backend/--no-backend", help="Test backend availability"),
) -> None:
    """[bold red]Validation[/bold red]: Validate volbak configuration."""
    state = ctx.ensure_object(CliState)
    result = info_commands.validate_config(console, check_backend=check_backend, verbose=state.verbose)
    if not result['valid']:
        raise typer.Exit(1)


# =============================================================================
# ENTRY POINT
# =============================================================================

def cli_main() -> None:  # pragma: no cover - entry point
    """Entry point for the volbak CLI application."""
    app()


if __name__ == "__main__":  # pragma: no cover
    cli_main()
