# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.08
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/core/operations.py

"""
Backup and restore operations.

Composes the volume store, the volume gateway, the codecs and the remote
store into the two public operations:

    backup:  volume -> gateway export -> transcode -> compress -> file [-> upload]
    restore: [download ->] file -> decompress -> transcode -> gateway import -> volume

Remote transfers are staged through a local temporary file that this module
owns and always removes. Every public call returns a TransferResult or raises
a single VolbakError.
"""

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePath
from typing import Optional, Union

from loguru import logger
from rich.console import Console

from volbak.config.manager import VolbakConfig, load_config
from volbak.core.admission import admit_restore
from volbak.core.transcoder import ArchiveReader, ArchiveWriter, TranscodeStats, transcode
from volbak.storage.codecs import (
    Compression, archive_suffix, compression_from_name, make_compressor,
    make_decompressor, sniff_compression,
)
from volbak.storage.factory import create_gateway, create_remote_store, create_volume_store
from volbak.storage.io_transports import StagingFile, instrumented_reader, instrumented_writer, log_metrics
from volbak.storage.protocols import RemoteStore, VolumeGateway, VolumeStore
from volbak.storage.remote import S3RemoteStore, is_remote_path, parse_remote_path
from volbak.system.exceptions import PreconditionError, StreamError, ValidationError
from volbak.system.progress import TransferProgressReporter


# ---- Locations ----

class LocationKind(Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(frozen=True)
class TransferLocation:
    """Where an archive is written to or read from."""
    kind: LocationKind
    value: str

    @property
    def is_remote(self) -> bool:
        return self.kind is LocationKind.REMOTE

    def __str__(self) -> str:
        return self.value


def parse_location(text: str) -> TransferLocation:
    if is_remote_path(text):
        return TransferLocation(LocationKind.REMOTE, text)
    return TransferLocation(LocationKind.LOCAL, text)


def validate_file_path(path: str) -> None:
    """Check that a local archive path is non-empty and has no '..' segment.

    Raises:
        ValidationError: If the path is empty or traverses upwards
    """
    if not path:
        raise ValidationError("file path cannot be empty")
    if ".." in PurePath(path).parts:
        raise ValidationError(f"path traversal not allowed in '{path}'")


def get_file_size(path: Path) -> int:
    """Size of path in bytes, 0 if it cannot be determined."""
    try:
        return Path(path).stat().st_size
    except OSError as e:
        logger.warning(f"Could not determine file size: {e}")
        return 0


@dataclass
class TransferResult:
    """Outcome of a successful backup or restore."""
    volume: str
    location: str
    compression: Compression
    archive_bytes: int
    entries: int
    files: int
    content_bytes: int
    elapsed: float

    @classmethod
    def from_stats(cls, volume: str, location: str, compression: Compression,
                   archive_bytes: int, stats: TranscodeStats, started: float) -> "TransferResult":
        return cls(
            volume=volume,
            location=location,
            compression=compression,
            archive_bytes=archive_bytes,
            entries=stats.entries,
            files=stats.files,
            content_bytes=stats.content_bytes,
            elapsed=time.monotonic() - started,
        )


def _close_after_error(stream, label: str) -> None:
    """Close a codec stream while another error is propagating."""
    try:
        stream.close()
    except Exception as e:
        logger.debug(f"Ignoring error closing {label} after failure: {e}")


class _Operation:
    """Shared wiring for backup and restore."""

    def __init__(self, volume: str, show_progress: bool, store: VolumeStore,
                 gateway: VolumeGateway, remote: Optional[RemoteStore],
                 staging_dir: Optional[Path], console: Optional[Console]):
        store.validate_name(volume)
        self.volume = volume
        self.store = store
        self.gateway = gateway
        self.remote = remote if remote is not None else S3RemoteStore()
        self.staging_dir = Path(staging_dir) if staging_dir is not None else VolbakConfig().staging_dir
        self.show_progress = show_progress
        self.console = console or Console(stderr=True)

    def _new_reporter(self) -> TransferProgressReporter:
        # One counter per transfer, finished exactly once
        return TransferProgressReporter(self.console, enabled=self.show_progress)


class BackupOperation(_Operation):
    """Back up a volume to a local archive file or an S3 object."""

    def __init__(self, volume: str, compression: Union[str, Compression] = Compression.GZIP,
                 show_progress: bool = False, *, store: VolumeStore, gateway: VolumeGateway,
                 remote: Optional[RemoteStore] = None, staging_dir: Optional[Path] = None,
                 console: Optional[Console] = None):
        super().__init__(volume, show_progress, store, gateway, remote, staging_dir, console)
        self.compression = Compression.parse(compression)

    def run(self, destination: str) -> TransferResult:
        location = parse_location(destination)
        if location.is_remote:
            return self.backup_to_remote(location.value)
        return self.backup_to_file(location.value)

    def _require_volume(self) -> None:
        if not self.store.exists(self.volume):
            raise PreconditionError(f"volume '{self.volume}' does not exist", volume=self.volume)

    def backup_to_file(self, dest: str) -> TransferResult:
        validate_file_path(dest)
        self._require_volume()
        logger.info(f"Backing up volume '{self.volume}' to {dest}")
        return self._run_backup(Path(dest), dest)

    def backup_to_remote(self, remote_path: str) -> TransferResult:
        self.remote.validate_path(remote_path)
        self._require_volume()

        staging = StagingFile(self.staging_dir, prefix=f"volbak-backup-{self.volume}-",
                              suffix=self.compression.extension)
        with staging as tmp_path:
            logger.info(f"Creating temporary backup of volume '{self.volume}'")
            result = self._run_backup(tmp_path, remote_path)
            self.remote.upload(tmp_path, remote_path)

        logger.info(f"Successfully backed up volume '{self.volume}' to {remote_path}")
        return result

    def _run_backup(self, dest: Path, location: str) -> TransferResult:
        started = time.monotonic()
        reporter = self._new_reporter()
        total = self.store.estimate_size(self.volume) if reporter.enabled else 0
        progress = reporter.start("Backing up", total)

        try:
            with open(dest, "wb") as out:
                sink = instrumented_writer(out, progress)
                compressor = make_compressor(sink, self.compression)
                writer = ArchiveWriter(compressor, name=str(dest))
                try:
                    with self.gateway.export_stream(self.volume) as reader:
                        stats = transcode(reader, writer)
                    writer.close()
                    compressor.close()
                except Exception:
                    _close_after_error(compressor, "compressor")
                    raise
                log_metrics(sink, f"Backup of '{self.volume}'")
        except OSError as e:
            raise StreamError(f"failed to write backup file {dest}: {e}") from e
        finally:
            reporter.finish()

        return TransferResult.from_stats(self.volume, location, self.compression,
                                         get_file_size(dest), stats, started)


class RestoreOperation(_Operation):
    """Restore a volume from a local archive file or an S3 object."""

    def __init__(self, volume: str, show_progress: bool = False, *, store: VolumeStore,
                 gateway: VolumeGateway, remote: Optional[RemoteStore] = None,
                 staging_dir: Optional[Path] = None, console: Optional[Console] = None):
        super().__init__(volume, show_progress, store, gateway, remote, staging_dir, console)

    def run(self, source: str, overwrite: bool = False) -> TransferResult:
        location = parse_location(source)
        if location.is_remote:
            return self.restore_from_remote(location.value, overwrite)
        return self.restore_from_file(location.value, overwrite)

    def restore_from_file(self, src: str, overwrite: bool = False) -> TransferResult:
        validate_file_path(src)
        path = Path(src)
        if not path.is_file():
            raise PreconditionError(f"backup file '{src}' does not exist", volume=self.volume)

        admit_restore(self.store, self.volume, overwrite)
        logger.info(f"Restoring {src} to volume '{self.volume}'")
        return self._run_restore(path, src)

    def restore_from_remote(self, remote_path: str, overwrite: bool = False) -> TransferResult:
        self.remote.validate_path(remote_path)
        _, key = parse_remote_path(remote_path)

        # Keep the archive suffix so the codec can be inferred from the name
        staging = StagingFile(self.staging_dir, prefix=f"volbak-restore-{self.volume}-",
                              suffix=archive_suffix(key) or "")
        with staging as tmp_path:
            logger.info(f"Downloading from S3: {remote_path}")
            self.remote.download(remote_path, tmp_path)

            admit_restore(self.store, self.volume, overwrite)
            logger.info(f"Restoring volume '{self.volume}' from downloaded backup")
            result = self._run_restore(tmp_path, remote_path, name=key)

        logger.info(f"Successfully restored volume '{self.volume}' from {remote_path}")
        return result

    def _run_restore(self, path: Path, location: str, name: Optional[str] = None) -> TransferResult:
        started = time.monotonic()
        name = name or path.name
        compression = compression_from_name(name)
        if compression is None:
            compression = sniff_compression(path)
            logger.info(f"No archive suffix on '{name}', detected {compression.value} from content")

        reporter = self._new_reporter()
        archive_bytes = get_file_size(path)
        progress = reporter.start("Restoring", archive_bytes if reporter.enabled else 0)

        try:
            with open(path, "rb") as f:
                source = instrumented_reader(f, progress)
                decompressor = make_decompressor(source, name, compression)
                reader = ArchiveReader(decompressor, name=name)
                try:
                    with self.gateway.import_sink(self.volume) as writer:
                        stats = transcode(reader, writer)
                        # Surface trailer/checksum errors before the import completes
                        decompressor.finish()
                finally:
                    reader.close()
                    decompressor.close()
                log_metrics(source, f"Restore of '{self.volume}'")
        except OSError as e:
            raise StreamError(f"failed to read backup file {path}: {e}") from e
        finally:
            reporter.finish()

        return TransferResult.from_stats(self.volume, location, compression,
                                         archive_bytes, stats, started)


# ---- Convenience entry points ----

def backup(volume: str, destination: str, compression: Union[str, Compression, None] = None,
           show_progress: Optional[bool] = None, config: Optional[VolbakConfig] = None,
           console: Optional[Console] = None) -> TransferResult:
    """Back up volume to destination (local path or s3://bucket/key)."""
    config = config or load_config()
    store = create_volume_store(config)
    operation = BackupOperation(
        volume,
        compression if compression is not None else config.compression,
        show_progress if show_progress is not None else config.progress,
        store=store,
        gateway=create_gateway(config, store),
        remote=create_remote_store(config),
        staging_dir=config.staging_dir,
        console=console,
    )
    return operation.run(destination)


def restore(source: str, volume: str, overwrite: bool = False,
            show_progress: Optional[bool] = None, config: Optional[VolbakConfig] = None,
            console: Optional[Console] = None) -> TransferResult:
    """Restore volume from source (local path or s3://bucket/key)."""
    config = config or load_config()
    store = create_volume_store(config)
    operation = RestoreOperation(
        volume,
        show_progress if show_progress is not None else config.progress,
        store=store,
        gateway=create_gateway(config, store),
        remote=create_remote_store(config),
        staging_dir=config.staging_dir,
        console=console,
    )
    return operation.run(source, overwrite)
