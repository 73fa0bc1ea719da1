# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/system/display.py

# Standard library imports
from datetime import timedelta
from typing import TYPE_CHECKING

# Third-party imports
import humanize
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from volbak.config.manager import VolbakConfig
    from volbak.core.operations import TransferResult


def transfer_result_to_table(result: "TransferResult") -> Table:
    """Summarise a finished transfer as a two-column table."""
    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Volume", result.volume)
    table.add_row("Location", result.location)
    table.add_row("Compression", result.compression.value)
    table.add_row("Archive size", humanize.naturalsize(result.archive_bytes, binary=True))
    table.add_row("Entries", f"{result.entries} ({result.files} files)")
    table.add_row("Content", humanize.naturalsize(result.content_bytes, binary=True))
    table.add_row("Elapsed", humanize.precisedelta(timedelta(seconds=result.elapsed), minimum_unit="milliseconds"))
    return table


def display_backup_result(console: Console, result: "TransferResult", verbose: bool = False) -> None:
    console.print(f"[green]✓[/green] Successfully backed up volume '{result.volume}' to {result.location}")
    if verbose:
        console.print(transfer_result_to_table(result))


def display_restore_result(console: Console, result: "TransferResult", verbose: bool = False) -> None:
    console.print(f"[green]✓[/green] Successfully restored volume '{result.volume}' from {result.location}")
    if verbose:
        console.print(transfer_result_to_table(result))


def display_config_validation_results(console: Console, errors: list[str], check_backend: bool) -> None:
    """Display configuration validation results."""
    console.print("[bold]volbak Configuration Validation[/bold]")
    console.print()

    if not errors:
        console.print("[green]✓[/green] All configuration checks passed")
        if check_backend:
            console.print("[green]✓[/green] Backend availability verified")
        console.print("\n[green]Configuration is valid and ready to use.[/green]")
    else:
        console.print("[red]✗[/red] Configuration validation failed")
        console.print()

        for i, error in enumerate(errors, 1):
            console.print(f"[red]{i}.[/red] {error}")

        console.print(f"\n[red]Found {len(errors)} configuration error(s).[/red]")


def display_config_summary(console: Console, config: "VolbakConfig") -> None:
    """Display configuration summary table."""
    console.print("\n[bold]Configuration Details:[/bold]")

    table = Table(title="Configuration Summary")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Backend", config.backend)
    table.add_row("Compression", config.compression.value)
    table.add_row("Progress", str(config.progress))
    table.add_row("Staging directory", str(config.staging_dir))

    if config.backend == "docker":
        table.add_row("Docker binary", config.docker.binary)
        table.add_row("Helper image", config.docker.helper_image)
        table.add_row("Mount point", config.docker.mount_point)
    else:
        table.add_row("Volume root", str(config.directory.root))

    table.add_row("S3 region", config.s3.region or "(environment / us-east-1)")
    if config.s3.endpoint_url:
        table.add_row("S3 endpoint", config.s3.endpoint_url)

    console.print(table)
