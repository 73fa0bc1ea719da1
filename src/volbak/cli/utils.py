# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/cli/utils.py

"""
CLI utility functions shared by volbak commands.

- Per-invocation state from the global options
- Config loading with console error reporting
- Error handling with typer exits
"""

from dataclasses import dataclass

import typer
from rich.console import Console
from rich.markup import escape

from volbak.config.manager import VolbakConfig, load_config
from volbak.system.exceptions import ConfigError
from volbak.system.logging_setup import setup_logging


@dataclass
class CliState:
    """Global options, carried on the typer context."""
    verbose: bool = False
    debug: bool = False


def load_config_with_console(console: Console, verbose: bool = False) -> VolbakConfig:
    """
    Load volbak configuration with proper error handling and console output.

    Args:
        console: Rich console for output
        verbose: Show loading message if True

    Returns:
        Loaded configuration object

    Raises:
        typer.Exit: If configuration loading fails
    """
    if verbose:
        console.print("[dim]Loading configuration...[/dim]")

    try:
        return load_config()
    except ConfigError as e:
        console.print(f"[red]✗[/red] Configuration error: {escape(str(e))}")
        raise typer.Exit(1)


def prepare_command(console: Console, state: CliState) -> VolbakConfig:
    """Load config and attach the file log sink if one is configured."""
    config = load_config_with_console(console, verbose=state.verbose)
    if config.local_log is not None:
        setup_logging(verbose=state.verbose, debug=state.debug, local_log=config.local_log)
    return config


def handle_operation_error(console: Console, operation: str, error: Exception) -> None:
    """Handle operation errors with consistent formatting."""
    console.print(f"[red]✗[/red] Error {operation}: {escape(str(error))}")
    raise typer.Exit(1)
