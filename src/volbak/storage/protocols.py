# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.04
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/storage/protocols.py

"""
Interfaces for the collaborators around the transfer pipeline.

Defines minimal interfaces that the volume backends (docker, directory) and
the object store implement, so operations can be exercised against fakes.
"""

from contextlib import AbstractContextManager
from pathlib import Path
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from volbak.core.transcoder import ArchiveReader, ArchiveWriter


class VolumeStore(Protocol):
    """Volume lifecycle primitives."""

    def validate_name(self, name: str) -> None:
        """Raise ValidationError if name is not a valid volume name."""
        ...

    def exists(self, name: str) -> bool:
        ...

    def create(self, name: str) -> None:
        ...

    def ensure_exists(self, name: str) -> None:
        """Create the volume unless it already exists. Idempotent."""
        ...

    def clear(self, name: str) -> None:
        """Remove all content, hidden entries included.

        Raises if anything remains afterwards.
        """
        ...

    def estimate_size(self, name: str) -> int:
        """Best-effort content size in bytes; 0 when unknown."""
        ...


class VolumeGateway(Protocol):
    """Byte-exact tar views of a volume's file tree."""

    def export_stream(self, volume: str) -> AbstractContextManager["ArchiveReader"]:
        """Scoped reader over the volume's file tree as a tar stream."""
        ...

    def import_sink(self, volume: str) -> AbstractContextManager["ArchiveWriter"]:
        """Scoped writer whose tar entries are materialised into the volume."""
        ...


class RemoteStore(Protocol):
    """Object-store transfer primitives."""

    def validate_path(self, remote_path: str) -> None:
        ...

    def upload(self, local_path: Path, remote_path: str) -> None:
        ...

    def download(self, remote_path: str, local_path: Path) -> None:
        ...
