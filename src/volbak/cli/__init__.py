# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.09
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/cli/__init__.py

"""Command Line Interface package for volbak."""

from .main import cli_main as main, app

__all__ = ['main', 'app']
