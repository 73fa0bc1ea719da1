# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.04
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/storage/codecs.py

"""
Compression codecs for archive streams.

The selector is a closed enumeration. Backup picks it explicitly; restore
infers it from the archive name (or, failing that, from the file's magic
bytes). Both directions stream: nothing here holds more than one buffer.

Wrappers never close the stream they wrap. Closing a compressor writes the
codec trailer and flushes; the underlying sink belongs to the caller.
"""

import gzip
import io
import zlib
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional, Union

import zstandard

from volbak.system.exceptions import CodecError, ConfigError


DRAIN_CHUNK_SIZE = 64 * 1024

GZIP_MAGIC = b"\x1f\x8b"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"


class Compression(str, Enum):
    """Supported archive compressions."""
    NONE = "none"
    GZIP = "gz"
    ZSTD = "zstd"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @classmethod
    def parse(cls, value: Union[str, "Compression"]) -> "Compression":
        """Resolve a selector, raising ConfigError for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            choices = "|".join(c.value for c in cls)
            raise ConfigError(f"unsupported compression type: {value!r} (expected {choices})") from None


_EXTENSIONS = {
    Compression.NONE: ".tar",
    Compression.GZIP: ".tar.gz",
    Compression.ZSTD: ".tar.zst",
}

# Longest suffix first
_SUFFIXES = (
    (".tar.zst", Compression.ZSTD),
    (".zst", Compression.ZSTD),
    (".tar.gz", Compression.GZIP),
    (".gz", Compression.GZIP),
    (".tar", Compression.NONE),
)

_DECODE_ERRORS = (gzip.BadGzipFile, EOFError, zlib.error, zstandard.ZstdError)


def archive_suffix(name: str) -> Optional[str]:
    """Return the recognised archive suffix of name, or None."""
    for suffix, _ in _SUFFIXES:
        if name.endswith(suffix):
            return suffix
    return None


def compression_from_name(name: str) -> Optional[Compression]:
    """Infer compression from a file or object name.

    Returns None when the name carries no recognised suffix.
    """
    for suffix, compression in _SUFFIXES:
        if name.endswith(suffix):
            return compression
    return None


def sniff_compression(path: Path) -> Compression:
    """Detect compression from the leading magic bytes of a file."""
    with open(path, "rb") as f:
        head = f.read(len(ZSTD_MAGIC))
    if head.startswith(GZIP_MAGIC):
        return Compression.GZIP
    if head.startswith(ZSTD_MAGIC):
        return Compression.ZSTD
    return Compression.NONE


class _PassThroughWriter(io.RawIOBase):
    """Writable view of a sink whose close() only flushes."""

    def __init__(self, sink: BinaryIO):
        self._sink = sink

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        return self._sink.write(b)

    def flush(self) -> None:
        if not self.closed:
            self._sink.flush()

    def close(self) -> None:
        if not self.closed:
            self._sink.flush()
        super().close()


class _CompressingWriter(io.RawIOBase):
    """Writable codec stream that reports codec failures as CodecError."""

    def __init__(self, codec_stream, sink: BinaryIO, codec: str):
        self._stream = codec_stream
        self._sink = sink
        self.codec = codec

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        try:
            self._stream.write(b)
        except (zlib.error, zstandard.ZstdError) as e:
            raise CodecError(f"{self.codec} compression failed: {e}", codec=self.codec) from e
        return len(b)

    def close(self) -> None:
        if self.closed:
            return
        try:
            # Writes the gzip footer / zstd frame epilogue into the sink
            self._stream.close()
            self._sink.flush()
        except (zlib.error, zstandard.ZstdError) as e:
            raise CodecError(f"{self.codec} compression failed: {e}", codec=self.codec) from e
        finally:
            super().close()


class DecompressingReader(io.RawIOBase):
    """Readable codec stream that reports decode failures as CodecError."""

    def __init__(self, codec_stream, codec: Compression):
        self._stream = codec_stream
        self.codec = codec

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        try:
            return self._stream.read(size)
        except _DECODE_ERRORS as e:
            raise CodecError(f"failed to decode {self.codec.value} stream: {e}", codec=self.codec.value) from e

    def readinto(self, b) -> int:
        data = self.read(len(b))
        n = len(data)
        b[:n] = data
        return n

    def finish(self) -> int:
        """Drain the rest of the stream so trailer errors surface.

        Returns the number of trailing decoded bytes discarded.
        """
        if self.codec is Compression.NONE:
            return 0
        drained = 0
        while True:
            chunk = self.read(DRAIN_CHUNK_SIZE)
            if not chunk:
                return drained
            drained += len(chunk)

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self.codec is not Compression.NONE:
                self._stream.close()
        finally:
            super().close()


def make_compressor(sink: BinaryIO, selector: Union[str, Compression]) -> io.RawIOBase:
    """Wrap sink in a compressing stream for the given selector.

    Raises:
        ConfigError: If the selector is unknown; no stream is produced
    """
    compression = Compression.parse(selector)
    if compression is Compression.NONE:
        return _PassThroughWriter(sink)
    if compression is Compression.GZIP:
        # fileobj= keeps GzipFile from closing the sink
        return _CompressingWriter(gzip.GzipFile(fileobj=sink, mode="wb"), sink, compression.value)
    if compression is Compression.ZSTD:
        writer = zstandard.ZstdCompressor().stream_writer(sink, closefd=False)
        return _CompressingWriter(writer, sink, compression.value)
    raise ConfigError(f"unsupported compression type: {selector!r}")


def make_decompressor(source: BinaryIO, source_name: str,
                      compression: Optional[Compression] = None) -> DecompressingReader:
    """Wrap source in a decompressing stream inferred from source_name.

    An explicit compression overrides the name-based inference.
    """
    if compression is None:
        compression = compression_from_name(source_name) or Compression.NONE
    if compression is Compression.NONE:
        return DecompressingReader(source, compression)
    if compression is Compression.GZIP:
        return DecompressingReader(gzip.GzipFile(fileobj=source, mode="rb"), compression)
    if compression is Compression.ZSTD:
        reader = zstandard.ZstdDecompressor().stream_reader(source, closefd=False)
        return DecompressingReader(reader, compression)
    raise ConfigError(f"unsupported compression type: {compression!r}")
