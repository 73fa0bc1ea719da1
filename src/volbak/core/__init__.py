# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.02
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/core/__init__.py
