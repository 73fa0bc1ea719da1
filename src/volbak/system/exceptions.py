# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.02
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/system/exceptions.py

"""
Volbak-specific exception classes.

Every public backup/restore operation either succeeds or raises exactly one
of these. None of them is retried automatically.
"""


class VolbakError(Exception):
    """Base exception for all volbak errors."""
    pass


class ConfigError(VolbakError):
    """Raised when configuration is invalid or a selector is unknown."""
    pass


class ValidationError(VolbakError):
    """Raised when a volume name, file path or remote path is malformed.

    Always raised before any I/O begins.
    """
    pass


class PreconditionError(VolbakError):
    """Raised when the volume state forbids the operation.

    Examples: backing up a missing volume, restoring into an existing volume
    without overwrite.
    """

    def __init__(self, message: str, volume: str = None):
        self.volume = volume
        super().__init__(message)


# === STREAM ERRORS ===

class StreamError(VolbakError):
    """Read, write or framing failure in the middle of a transfer.

    The destination (volume or archive file) may be left incomplete.
    """
    pass


class CodecError(StreamError):
    """Compressed input could not be decoded, or a codec failed to flush."""

    def __init__(self, message: str, codec: str = None):
        self.codec = codec
        super().__init__(message)


# === BRIDGE AND RESOURCE ERRORS ===

class SubprocessError(VolbakError):
    """The process (or worker) bridging a volume's file tree failed."""

    def __init__(self, message: str, command: list[str] = None,
                 returncode: int = None, output: str = None):
        self.command = command
        self.returncode = returncode
        self.output = output
        if output:
            message = f"{message}: {output.strip()}"
        super().__init__(message)


class ResourceCleanupError(VolbakError):
    """Tearing down an ephemeral container or staging file failed.

    Only ever logged; never replaces the error being returned.
    """

    def __init__(self, message: str, resource: str = None):
        self.resource = resource
        super().__init__(message)


class RemoteStoreError(VolbakError):
    """Object-store upload or download failure."""

    def __init__(self, message: str, remote_path: str = None):
        self.remote_path = remote_path
        super().__init__(message)


class VolumeError(VolbakError):
    """A volume lifecycle primitive (create, clear) failed."""

    def __init__(self, message: str, volume: str = None):
        self.volume = volume
        super().__init__(message)
