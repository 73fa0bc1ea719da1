# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/cli/commands/info.py

"""
Info command handlers - read-only information commands.

Handles: validate-config
"""

from typing import Any

from rich.console import Console

from volbak.config.manager import load_config, validate_config as run_config_validation
from volbak.system.display import display_config_summary, display_config_validation_results


def validate_config(
    console: Console,
    check_backend: bool = True,
    verbose: bool = False,
) -> dict[str, Any]:
    """Validate the merged configuration and, optionally, backend availability.

    Returns:
        Validation result with the list of errors
    """
    errors = run_config_validation(check_backend=check_backend)
    display_config_validation_results(console, errors, check_backend)

    if verbose and not errors:
        display_config_summary(console, load_config())

    return {'valid': not errors, 'errors': errors}
