# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.04
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/storage/__init__.py

"""
Storage layer for volbak - handles all data I/O.

- codecs: gzip/zstd stream adapters
- io_transports: progress-instrumented streams and staging files
- volumes / gateway: volume lifecycle and tar views of a volume
- remote: S3-compatible object store
"""
