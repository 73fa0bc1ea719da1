# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.03
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/system/logging_setup.py

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(verbose: bool = False, debug: bool = False,
                  local_log: Optional[Path] = None) -> None:
    """Setup loguru logging for the entire application.

    Configures:
    - Console output: WARNING+ by default, INFO+ with verbose, DEBUG+ with debug
    - File output: DEBUG+ if local_log is configured
    """
    logger.remove()

    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = "WARNING"

    logger.add(
        sys.stderr,
        level=level,
        format="<level>{level}</level>: {message}",
        colorize=True
    )

    if local_log is None:
        return

    try:
        log_dir = Path(local_log)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "volbak.log"

        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="10 MB",
            retention="30 days",
            compression="gz"
        )
        logger.debug(f"File logging enabled: {log_file}")

    except OSError as e:
        # Don't fail the entire application if logging setup fails
        logger.warning(f"Failed to setup file logging: {e}")
