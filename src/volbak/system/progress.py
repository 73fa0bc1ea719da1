# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.03
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/system/progress.py

"""
Progress reporting for backup and restore transfers.

Provides a Rich byte counter that the instrumented streams feed. When the
total is unknown the bar runs in indeterminate mode.
"""

from typing import Callable, Optional

from rich.console import Console
from rich.progress import (
    BarColumn, DownloadColumn, Progress, SpinnerColumn, TextColumn,
    TimeRemainingColumn, TransferSpeedColumn,
)


class TransferProgressReporter:
    """Byte-level progress display for a single transfer."""

    def __init__(self, console: Console, enabled: bool = False) -> None:
        self.console = console
        self.enabled = enabled
        self.progress = None
        self.task = None
        self.completed = 0
        self.finished = False

    def start(self, description: str, total: Optional[int] = None) -> Optional[Callable[[int], None]]:
        """Start the display and return the callback streams report into.

        Returns None when progress is disabled, which turns the instrumented
        streams into pass-throughs.
        """
        if not self.enabled:
            return None

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=self.console,
            transient=False,
        )
        self.progress.start()
        # total=None puts the task in indeterminate mode
        self.task = self.progress.add_task(description, total=total if total else None)
        return self.advance

    def advance(self, n: int) -> None:
        self.completed += n
        if self.progress is not None and self.task is not None:
            self.progress.update(self.task, advance=n)

    def finish(self) -> None:
        """Stop the display. Safe to call more than once."""
        if self.finished:
            return
        self.finished = True
        if self.progress is not None:
            if self.task is not None:
                task = self.progress.tasks[0]
                if task.total is None:
                    self.progress.update(self.task, total=self.completed)
                self.progress.update(self.task, completed=self.completed)
            self.progress.stop()
            self.progress = None
