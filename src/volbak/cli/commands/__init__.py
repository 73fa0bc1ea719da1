# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/cli/commands/__init__.py

"""
Command handlers for volbak CLI operations.

Business logic for the CLI commands, separated from the typer layer:

- transfer: backup and restore
- info: validate-config
"""
