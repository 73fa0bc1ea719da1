# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/cli/commands/transfer.py

"""
Transfer command handlers - state-changing commands.

Handles: backup, restore
"""

from typing import Optional

from rich.console import Console

from volbak.config.manager import VolbakConfig
from volbak.core import operations
from volbak.core.operations import TransferResult
from volbak.system.display import display_backup_result, display_restore_result


def backup(
    console: Console,
    config: VolbakConfig,
    volume: str,
    destination: str,
    compression: Optional[str] = None,
    show_progress: Optional[bool] = None,
    verbose: bool = False,
) -> TransferResult:
    """Back up a volume to a local archive or an S3 object.

    Args:
        console: Rich console for output
        config: Loaded configuration
        volume: Volume name
        destination: Archive path or s3://bucket/key
        compression: none, gz or zstd; None uses the configured default
        show_progress: Progress display; None uses the configured default
        verbose: Show a transfer summary

    Returns:
        The transfer result
    """
    result = operations.backup(
        volume,
        destination,
        compression=compression,
        show_progress=show_progress,
        config=config,
        console=Console(stderr=True),
    )
    display_backup_result(console, result, verbose=verbose)
    return result


def restore(
    console: Console,
    config: VolbakConfig,
    source: str,
    volume: str,
    overwrite: bool = False,
    show_progress: Optional[bool] = None,
    verbose: bool = False,
) -> TransferResult:
    """Restore a volume from a local archive or an S3 object."""
    result = operations.restore(
        source,
        volume,
        overwrite=overwrite,
        show_progress=show_progress,
        config=config,
        console=Console(stderr=True),
    )
    display_restore_result(console, result, verbose=verbose)
    return result
