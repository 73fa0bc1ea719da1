# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.04
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/storage/io_transports.py

"""
Byte-level transport helpers for archive streams.

Instrumented readers/writers count bytes in transit without changing stream
framing, and staging files bridge local archives to the remote store.
"""

import io
import os
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from loguru import logger

from volbak.system.exceptions import ResourceCleanupError

ProgressCallback = Callable[[int], None]


@dataclass
class TransferMetrics:
    """Performance metrics for one direction of a transfer"""
    bytes_transferred: int = 0
    chunk_count: int = 0
    started: float = field(default_factory=time.monotonic)

    @property
    def transfer_time(self) -> float:
        return time.monotonic() - self.started

    @property
    def transfer_rate(self) -> float:
        """Calculate transfer rate in bytes/second"""
        elapsed = self.transfer_time
        if elapsed > 0:
            return self.bytes_transferred / elapsed
        return 0.0

    def record(self, n: int) -> None:
        self.bytes_transferred += n
        self.chunk_count += 1


class InstrumentedReader(io.RawIOBase):
    """Reader that reports every successfully read byte count."""

    def __init__(self, source: BinaryIO, progress: ProgressCallback):
        self._source = source
        self._progress = progress
        self.metrics = TransferMetrics()

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        data = self._source.read(size)
        if data:
            self.metrics.record(len(data))
            self._progress(len(data))
        return data

    def readinto(self, b) -> int:
        n = self._source.readinto(b)
        if n:
            self.metrics.record(n)
            self._progress(n)
        return n

    def close(self) -> None:
        # The wrapped source belongs to the caller
        super().close()


class InstrumentedWriter(io.RawIOBase):
    """Writer that reports every successfully written byte count."""

    def __init__(self, sink: BinaryIO, progress: ProgressCallback):
        self._sink = sink
        self._progress = progress
        self.metrics = TransferMetrics()

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        n = self._sink.write(b)
        if n is None:
            # Raw sinks may return None for a full write
            n = len(b)
        if n:
            self.metrics.record(n)
            self._progress(n)
        return n

    def flush(self) -> None:
        if not self.closed:
            self._sink.flush()

    def close(self) -> None:
        super().close()


def instrumented_reader(source: BinaryIO, progress: Optional[ProgressCallback]) -> BinaryIO:
    """Wrap source so reads feed progress; returns source itself if progress is None."""
    if progress is None:
        return source
    return InstrumentedReader(source, progress)


def instrumented_writer(sink: BinaryIO, progress: Optional[ProgressCallback]) -> BinaryIO:
    """Wrap sink so writes feed progress; returns sink itself if progress is None."""
    if progress is None:
        return sink
    return InstrumentedWriter(sink, progress)


def log_metrics(stream, label: str) -> None:
    metrics = getattr(stream, "metrics", None)
    if metrics is None or metrics.bytes_transferred == 0:
        return
    logger.debug(
        f"{label}: {metrics.bytes_transferred} bytes in {metrics.chunk_count} chunks, "
        f"{metrics.transfer_rate:.1f} bytes/sec"
    )


class StagingFile:
    """Uniquely named temporary file with guaranteed removal.

    Bridges a local archive to or from the remote store. The file is created
    on entry (so the name is reserved) and removed on exit whatever the
    outcome. Removal failure is logged, never raised.
    """

    def __init__(self, temp_dir: Path, prefix: str, suffix: str = ""):
        self.temp_dir = Path(temp_dir)
        self.prefix = prefix
        self.suffix = suffix
        self.path: Optional[Path] = None

    def create(self) -> Path:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=self.prefix, suffix=self.suffix, dir=self.temp_dir)
        os.close(fd)
        self.path = Path(name)
        logger.debug(f"Created staging file {self.path}")
        return self.path

    def cleanup(self) -> None:
        """Remove the staging file"""
        if self.path is None:
            return
        try:
            self.path.unlink(missing_ok=True)
            logger.debug(f"Removed staging file {self.path}")
        except OSError as e:
            error = ResourceCleanupError(f"Failed to remove staging file {self.path}: {e}",
                                         resource=str(self.path))
            logger.warning(str(error))

    def __enter__(self) -> Path:
        return self.create()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()
