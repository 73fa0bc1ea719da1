# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.05
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/core/transcoder.py

"""
Archive transcoding between tar streams.

The transcoder re-frames a tar stream entry by entry: it pulls one header at
a time from an ArchiveReader and writes it, followed by the member's content
for regular files only, into an ArchiveWriter. It is used unchanged for both
directions:

- backup: volume export stream -> compressing archive file
- restore: decompressing archive file -> volume import sink

Memory use is one header plus one copy buffer regardless of volume size.
Entries are never buffered, reordered or retried.
"""

import copy
import tarfile
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Iterator, Optional

from loguru import logger

from volbak.system.exceptions import StreamError, VolbakError

# tarfile raises these for framing and I/O failures; EOFError comes from
# truncated codec streams read through tarfile internals.
_STREAM_FAILURES = (tarfile.TarError, OSError, EOFError)


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    HARDLINK = "hardlink"
    OTHER = "other"


def _kind_of(info: tarfile.TarInfo) -> EntryKind:
    if info.isreg():
        return EntryKind.FILE
    if info.isdir():
        return EntryKind.DIRECTORY
    if info.issym():
        return EntryKind.SYMLINK
    if info.islnk():
        return EntryKind.HARDLINK
    return EntryKind.OTHER


@dataclass(frozen=True)
class ArchiveEntry:
    """One filesystem object in an archive stream."""
    path: str
    kind: EntryKind
    size: int = 0
    mode: int = 0o644
    mtime: float = 0
    linkname: str = ""
    info: Optional[tarfile.TarInfo] = field(default=None, compare=False, repr=False)

    @property
    def has_content(self) -> bool:
        """Only regular files carry a content body."""
        return self.kind is EntryKind.FILE

    @classmethod
    def from_tarinfo(cls, info: tarfile.TarInfo) -> "ArchiveEntry":
        kind = _kind_of(info)
        return cls(
            path=info.name,
            kind=kind,
            size=info.size if kind is EntryKind.FILE else 0,
            mode=info.mode,
            mtime=info.mtime,
            linkname=info.linkname,
            info=info,
        )

    def to_tarinfo(self) -> tarfile.TarInfo:
        """Header for this entry; the original header when known.

        Header-only kinds are re-emitted with size 0, since no body follows
        them in the output stream.
        """
        if self.info is not None:
            if self.has_content:
                return self.info
            info = copy.copy(self.info)
            info.size = 0
            info.pax_headers = {k: v for k, v in self.info.pax_headers.items() if k != "size"}
            return info
        info = tarfile.TarInfo(self.path)
        info.type = {
            EntryKind.FILE: tarfile.REGTYPE,
            EntryKind.DIRECTORY: tarfile.DIRTYPE,
            EntryKind.SYMLINK: tarfile.SYMTYPE,
            EntryKind.HARDLINK: tarfile.LNKTYPE,
        }.get(self.kind, tarfile.FIFOTYPE)
        info.size = self.size if self.kind is EntryKind.FILE else 0
        info.mode = self.mode
        info.mtime = self.mtime
        info.linkname = self.linkname
        return info


class ArchiveReader:
    """Strict single-pass reader over a tar stream.

    Iterating yields ArchiveEntry objects in stream order. content() gives
    the body of the entry most recently yielded; it is invalid once the next
    entry has been pulled.
    """

    def __init__(self, stream: BinaryIO, name: str = "<stream>"):
        self.stream = stream
        self.name = name
        self._tar: Optional[tarfile.TarFile] = None
        self._current: Optional[tarfile.TarInfo] = None

    def _open(self) -> tarfile.TarFile:
        if self._tar is None:
            try:
                self._tar = tarfile.open(fileobj=self.stream, mode="r|")
            except VolbakError:
                raise
            except _STREAM_FAILURES as e:
                raise StreamError(f"failed to read tar header from {self.name}: {e}") from e
        return self._tar

    def __iter__(self) -> Iterator[ArchiveEntry]:
        tar = self._open()
        while True:
            try:
                info = tar.next()
            except VolbakError:
                raise
            except _STREAM_FAILURES as e:
                raise StreamError(f"failed to read tar header from {self.name}: {e}") from e
            if info is None:
                self._current = None
                return
            # Stream-mode TarFile keeps every header it has read
            tar.members = []
            self._current = info
            yield ArchiveEntry.from_tarinfo(info)

    def content(self, entry: ArchiveEntry) -> Optional[BinaryIO]:
        """Content stream of the current entry, or None for non-regular kinds."""
        if not entry.has_content:
            return None
        if self._current is None or entry.info is not self._current:
            raise StreamError(f"entry {entry.path!r} is no longer readable; archives are single-pass")
        try:
            return self._tar.extractfile(self._current)
        except _STREAM_FAILURES as e:
            raise StreamError(f"failed to open content of {entry.path!r}: {e}") from e

    def close(self) -> None:
        # Leaves self.stream open; it belongs to the caller
        if self._tar is not None:
            self._tar.close()
            self._tar = None


class ArchiveWriter:
    """Tar stream writer that never closes the stream it writes into."""

    def __init__(self, stream: BinaryIO, name: str = "<stream>"):
        self.stream = stream
        self.name = name
        self._tar = tarfile.open(fileobj=stream, mode="w|", format=tarfile.PAX_FORMAT)
        self.closed = False

    def write(self, entry: ArchiveEntry, content: Optional[BinaryIO] = None) -> None:
        """Write the header, then exactly entry.size bytes for regular files."""
        info = entry.to_tarinfo()
        try:
            if entry.has_content:
                if content is None:
                    raise StreamError(f"regular file {entry.path!r} has no content stream")
                self._tar.addfile(info, content)
            else:
                # Non-regular entries are header-only
                self._tar.addfile(info)
            self._tar.members = []
        except VolbakError:
            raise
        except _STREAM_FAILURES as e:
            raise StreamError(f"failed to write {entry.path!r} to {self.name}: {e}") from e

    def close(self) -> None:
        """Write the end-of-archive marker."""
        if self.closed:
            return
        self.closed = True
        try:
            self._tar.close()
        except _STREAM_FAILURES as e:
            raise StreamError(f"failed to finalize archive {self.name}: {e}") from e


@dataclass
class TranscodeStats:
    entries: int = 0
    files: int = 0
    content_bytes: int = 0


def transcode(source: ArchiveReader, sink: ArchiveWriter) -> TranscodeStats:
    """Copy every entry of source into sink, in order, in a single pass.

    End of the source stream is the only non-error termination. Any header,
    content or codec failure aborts immediately as StreamError.
    """
    stats = TranscodeStats()
    for entry in source:
        sink.write(entry, source.content(entry))
        stats.entries += 1
        if entry.has_content:
            stats.files += 1
            stats.content_bytes += entry.size

    logger.debug(
        f"Transcoded {stats.entries} entries ({stats.files} files, "
        f"{stats.content_bytes} content bytes) from {source.name} to {sink.name}"
    )
    return stats
