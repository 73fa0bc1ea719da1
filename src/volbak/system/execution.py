# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.02
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/system/execution.py

"""Unified command execution for short-lived helper commands."""

import subprocess
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from volbak.system.exceptions import SubprocessError


@dataclass
class CommandResult:
    """Result of command execution."""
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


class CommandExecutor:
    """Runs commands to completion and captures their output.

    Streaming commands (docker cp) do not go through here; see
    volbak.storage.gateway.
    """

    @staticmethod
    def run_local(cmd: list[str], check: bool = True,
                  timeout: Optional[int] = None) -> CommandResult:
        """Execute a command on the local host.

        Raises:
            SubprocessError: If check=True and the command exits non-zero
        """
        logger.debug(f"Running: {' '.join(cmd)}")
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout
        )

        cmd_result = CommandResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr
        )

        if check and not cmd_result.success:
            output = cmd_result.stderr or cmd_result.stdout
            raise SubprocessError(
                f"Command failed with exit code {result.returncode}",
                command=cmd,
                returncode=result.returncode,
                output=output,
            )

        return cmd_result
