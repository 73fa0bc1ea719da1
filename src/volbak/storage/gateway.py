# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.06
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/storage/gateway.py

"""
Volume access gateways: tar views of a volume's file tree.

A gateway hands out scoped archive readers (export) and writers (import).
Behind each one sits a bridge that produces or consumes the raw tar bytes:

- docker: `docker cp` against an ephemeral container that exists only to
  mount the volume, connected over OS pipes
- directory: a worker thread connected over os.pipe()

Either way the pipe is the only buffer between producer and consumer, so a
volume of any size streams in constant memory, and each side blocks on the
other (backpressure).

Error precedence: a stream error raised while the caller is reading or
writing always wins. A bridge that exits non-zero is reported as
SubprocessError only when the stream itself completed cleanly; otherwise its
output is logged as a secondary diagnostic. Teardown failures are logged and
never replace the error being raised.
"""

import os
import subprocess
import tarfile
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Callable, Iterator

from loguru import logger

from volbak.core.transcoder import ArchiveReader, ArchiveWriter
from volbak.storage.volumes import DirectoryVolumeStore
from volbak.system.exceptions import (
    PreconditionError, ResourceCleanupError, StreamError, SubprocessError,
)
from volbak.system.execution import CommandExecutor

if TYPE_CHECKING:
    from volbak.config.manager import DockerSettings


DRAIN_CHUNK_SIZE = 64 * 1024


def _drain(stream: BinaryIO) -> None:
    """Consume whatever the producer still has to say (tar padding)."""
    while stream.read(DRAIN_CHUNK_SIZE):
        pass


def _close_quietly(stream: BinaryIO) -> None:
    try:
        stream.close()
    except OSError as e:
        logger.debug(f"Ignoring error closing bridge stream: {e}")


# ---- Ephemeral container ----

@contextmanager
def ephemeral_container(volume: str, settings: "DockerSettings",
                        executor=CommandExecutor) -> Iterator[str]:
    """Create a throw-away container with volume mounted; remove it on exit.

    The container never runs. It only anchors the mount so `docker cp` can
    reach the volume. Removal runs exactly once on every exit path, and its
    failure is logged rather than raised.
    """
    create_cmd = [
        settings.binary, "create",
        "-v", f"{volume}:{settings.mount_point}",
        settings.helper_image, "true",
    ]
    try:
        result = executor.run_local(create_cmd)
    except (OSError, SubprocessError) as e:
        raise SubprocessError(f"failed to create temp container: {e}", command=create_cmd) from e

    container_id = result.stdout.strip()
    logger.debug(f"Created temp container {container_id[:12]} for volume '{volume}'")
    try:
        yield container_id
    finally:
        _remove_container(container_id, settings, executor)


def _remove_container(container_id: str, settings: "DockerSettings", executor) -> None:
    rm_cmd = [settings.binary, "rm", container_id]
    try:
        result = executor.run_local(rm_cmd, check=False)
    except OSError as e:
        logger.warning(str(ResourceCleanupError(
            f"failed to remove temp container {container_id[:12]}: {e}", resource=container_id)))
        return
    if not result.success:
        logger.warning(str(ResourceCleanupError(
            f"failed to remove temp container {container_id[:12]}: {result.stderr.strip()}",
            resource=container_id)))
    else:
        logger.debug(f"Removed temp container {container_id[:12]}")


# ---- Subprocess bridge ----

@contextmanager
def subprocess_bridge(cmd: list[str], export: bool,
                      popen=subprocess.Popen) -> Iterator[BinaryIO]:
    """Run cmd and yield its stdout (export) or stdin (import) as a pipe.

    stderr is spooled to a temp file so a chatty process cannot stall on a
    full stderr pipe.
    """
    stderr = tempfile.TemporaryFile()
    try:
        if export:
            proc = popen(cmd, stdout=subprocess.PIPE, stderr=stderr)
            stream = proc.stdout
        else:
            proc = popen(cmd, stdin=subprocess.PIPE, stderr=stderr)
            stream = proc.stdin
    except OSError as e:
        stderr.close()
        raise SubprocessError(f"failed to start {cmd[0]}: {e}", command=cmd) from e

    def captured_output() -> str:
        stderr.seek(0)
        return stderr.read().decode("utf-8", errors="replace")

    try:
        try:
            yield stream
        except Exception:
            _close_quietly(stream)
            if proc.poll() is None:
                proc.kill()
            returncode = proc.wait()
            output = captured_output().strip()
            if output:
                logger.warning(f"{' '.join(cmd[:2])} exited {returncode} after stream error: {output}")
            raise

        stream_error = None
        try:
            if export:
                _drain(stream)
            stream.close()
        except OSError as e:
            stream_error = StreamError(f"bridge stream failed: {e}")
            stream_error.__cause__ = e

        returncode = proc.wait()
        if stream_error is not None:
            if returncode != 0:
                logger.warning(f"{' '.join(cmd[:2])} exited {returncode}: {captured_output().strip()}")
            raise stream_error
        if returncode != 0:
            raise SubprocessError(
                f"{' '.join(cmd[:2])} failed with exit code {returncode}",
                command=cmd,
                returncode=returncode,
                output=captured_output(),
            )
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()
        stderr.close()


class DockerVolumeGateway:
    """Gateway to Docker named volumes via ephemeral containers and docker cp."""

    def __init__(self, settings: "DockerSettings", executor=CommandExecutor,
                 popen=subprocess.Popen):
        self.settings = settings
        self.executor = executor
        self.popen = popen

    @contextmanager
    def export_stream(self, volume: str) -> Iterator[ArchiveReader]:
        with ephemeral_container(volume, self.settings, self.executor) as container_id:
            cmd = [self.settings.binary, "cp", f"{container_id}:{self.settings.mount_point}/.", "-"]
            with subprocess_bridge(cmd, export=True, popen=self.popen) as stdout:
                reader = ArchiveReader(stdout, name=f"volume '{volume}'")
                try:
                    yield reader
                finally:
                    reader.close()

    @contextmanager
    def import_sink(self, volume: str) -> Iterator[ArchiveWriter]:
        with ephemeral_container(volume, self.settings, self.executor) as container_id:
            cmd = [self.settings.binary, "cp", "-", f"{container_id}:{self.settings.mount_point}/"]
            with subprocess_bridge(cmd, export=False, popen=self.popen) as stdin:
                writer = ArchiveWriter(stdin, name=f"volume '{volume}'")
                yield writer
                # End-of-archive marker must precede the half-close
                writer.close()


# ---- Thread bridge ----

@contextmanager
def thread_bridge(worker: Callable[[BinaryIO], None], export: bool,
                  name: str = "volbak-bridge") -> Iterator[BinaryIO]:
    """Run worker on the far end of an os.pipe() and yield the near end.

    export=True: the worker writes tar bytes, the caller reads them.
    export=False: the caller writes tar bytes, the worker reads them.
    """
    read_fd, write_fd = os.pipe()
    read_end = os.fdopen(read_fd, "rb")
    write_end = os.fdopen(write_fd, "wb")
    worker_end, near_end = (write_end, read_end) if export else (read_end, write_end)
    failures: list[Exception] = []

    def run() -> None:
        try:
            worker(worker_end)
        except Exception as e:
            failures.append(e)
        finally:
            _close_quietly(worker_end)

    thread = threading.Thread(target=run, name=name, daemon=True)
    thread.start()

    try:
        yield near_end
    except Exception:
        # Closing our end unblocks the worker (EOF or broken pipe)
        _close_quietly(near_end)
        thread.join()
        if failures:
            logger.warning(f"{name} worker failed after stream error: {failures[0]}")
        raise

    stream_error = None
    try:
        if export:
            _drain(near_end)
        near_end.close()
    except OSError as e:
        stream_error = StreamError(f"bridge stream failed: {e}")
        stream_error.__cause__ = e
    thread.join()

    if stream_error is not None:
        if failures:
            logger.warning(f"{name} worker failed: {failures[0]}")
        raise stream_error
    if failures:
        raise SubprocessError(f"{name} worker failed: {failures[0]}") from failures[0]


def _write_tree(root: Path, out: BinaryIO) -> None:
    """Write root's file tree as a tar stream, paths relative to root."""
    with tarfile.open(fileobj=out, mode="w|", format=tarfile.PAX_FORMAT) as tar:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            base = Path(dirpath)
            for dirname in dirnames:
                path = base / dirname
                tar.add(path, arcname=path.relative_to(root).as_posix(), recursive=False)
                tar.members = []
            for filename in sorted(filenames):
                path = base / filename
                tar.add(path, arcname=path.relative_to(root).as_posix(), recursive=False)
                tar.members = []
    out.flush()


def _iter_members(tar: tarfile.TarFile) -> Iterator[tarfile.TarInfo]:
    """Pull headers one at a time without tarfile keeping a member list."""
    while True:
        info = tar.next()
        if info is None:
            return
        tar.members = []
        yield info


def _extract_tree(source: BinaryIO, root: Path) -> None:
    """Materialise a tar stream under root."""
    with tarfile.open(fileobj=source, mode="r|") as tar:
        tar.extractall(root, members=_iter_members(tar), filter="tar")
    _drain(source)


class DirectoryVolumeGateway:
    """Gateway to directory-backed volumes."""

    def __init__(self, store: DirectoryVolumeStore):
        self.store = store

    def _root(self, volume: str) -> Path:
        root = self.store.path_for(volume)
        if not root.is_dir():
            raise PreconditionError(f"volume '{volume}' does not exist", volume=volume)
        return root

    @contextmanager
    def export_stream(self, volume: str) -> Iterator[ArchiveReader]:
        root = self._root(volume)
        with thread_bridge(lambda out: _write_tree(root, out), export=True,
                           name=f"export of volume '{volume}'") as stream:
            reader = ArchiveReader(stream, name=f"volume '{volume}'")
            try:
                yield reader
            finally:
                reader.close()

    @contextmanager
    def import_sink(self, volume: str) -> Iterator[ArchiveWriter]:
        root = self._root(volume)
        with thread_bridge(lambda src: _extract_tree(src, root), export=False,
                           name=f"import into volume '{volume}'") as stream:
            writer = ArchiveWriter(stream, name=f"volume '{volume}'")
            yield writer
            writer.close()

