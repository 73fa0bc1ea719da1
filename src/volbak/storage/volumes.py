# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.06
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/storage/volumes.py

"""
Volume lifecycle primitives for the supported backends.

- DockerVolumeStore: named Docker volumes, managed through the docker CLI
- DirectoryVolumeStore: plain directories under a root, one per volume
"""

import os
import re
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from volbak.system.exceptions import SubprocessError, ValidationError, VolumeError
from volbak.system.execution import CommandExecutor, CommandResult

if TYPE_CHECKING:
    from volbak.config.manager import DockerSettings


VOLUME_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def validate_volume_name(name: str) -> None:
    """Check that name is a safe volume name.

    Must start with an alphanumeric and contain only a-z, A-Z, 0-9, -, _ and
    '.', so it can never carry path separators or shell metacharacters.

    Raises:
        ValidationError: If the name is empty or malformed
    """
    if not name:
        raise ValidationError("volume name cannot be empty")
    if not VOLUME_NAME_PATTERN.fullmatch(name):
        raise ValidationError(
            f"invalid volume name '{name}': must start with alphanumeric "
            f"and contain only a-z, A-Z, 0-9, -, _, ."
        )


class DockerVolumeStore:
    """Docker named volumes, driven through the docker CLI."""

    def __init__(self, settings: "DockerSettings", executor=CommandExecutor):
        self.settings = settings
        self.executor = executor

    def _docker(self, args: list[str], check: bool = True) -> CommandResult:
        cmd = [self.settings.binary, *args]
        try:
            return self.executor.run_local(cmd, check=check)
        except OSError as e:
            raise SubprocessError(f"could not run {self.settings.binary}: {e}", command=cmd) from e

    def _helper(self, volume: str, script: str, read_only: bool = False) -> list[str]:
        """Arguments for a throw-away helper container with volume mounted."""
        mount = f"{volume}:{self.settings.mount_point}"
        if read_only:
            mount += ":ro"
        return ["run", "--rm", "-v", mount, self.settings.helper_image, "sh", "-c", script]

    def validate_name(self, name: str) -> None:
        validate_volume_name(name)

    def is_available(self) -> bool:
        """Check whether the docker daemon answers."""
        try:
            return self._docker(["version"], check=False).success
        except SubprocessError:
            return False

    def exists(self, name: str) -> bool:
        return self._docker(["volume", "inspect", name], check=False).success

    def create(self, name: str) -> None:
        logger.info(f"Creating volume '{name}'")
        try:
            self._docker(["volume", "create", name])
        except SubprocessError as e:
            raise VolumeError(f"failed to create volume '{name}': {e}", volume=name) from e

    def ensure_exists(self, name: str) -> None:
        if not self.exists(name):
            self.create(name)

    def clear(self, name: str) -> None:
        """Remove everything in the volume, then verify it is empty."""
        logger.info(f"Clearing volume '{name}'")
        mp = self.settings.mount_point
        # Globs cover plain, dot-prefixed and double-dot-prefixed names;
        # the final test fails the container if anything survived.
        script = (
            f"rm -rf {mp}/* {mp}/..?* {mp}/.[!.]*; "
            f"test -z \"$(ls -A {mp})\""
        )
        try:
            self._docker(self._helper(name, script))
        except SubprocessError as e:
            raise VolumeError(f"failed to clear volume '{name}': {e}", volume=name) from e

    def estimate_size(self, name: str) -> int:
        """Approximate volume size in bytes, 0 if it cannot be determined."""
        script = f"du -sk {self.settings.mount_point} | cut -f1"
        try:
            result = self._docker(self._helper(name, script, read_only=True), check=False)
        except SubprocessError as e:
            logger.debug(f"Volume size probe failed: {e}")
            return 0
        if not result.success:
            logger.debug(f"Volume size probe failed: {result.stderr.strip()}")
            return 0
        try:
            return int(result.stdout.strip()) * 1024
        except ValueError:
            return 0


class DirectoryVolumeStore:
    """Volumes stored as directories under a common root."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        validate_volume_name(name)
        return self.root / name

    def validate_name(self, name: str) -> None:
        validate_volume_name(name)

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_dir()

    def create(self, name: str) -> None:
        logger.info(f"Creating volume '{name}'")
        try:
            self.path_for(name).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise VolumeError(f"failed to create volume '{name}': {e}", volume=name) from e

    def ensure_exists(self, name: str) -> None:
        if not self.exists(name):
            self.create(name)

    def clear(self, name: str) -> None:
        logger.info(f"Clearing volume '{name}'")
        path = self.path_for(name)
        try:
            for child in path.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
            remaining = [child.name for child in path.iterdir()]
        except OSError as e:
            raise VolumeError(f"failed to clear volume '{name}': {e}", volume=name) from e
        if remaining:
            raise VolumeError(
                f"failed to clear volume '{name}': entries remain: {', '.join(sorted(remaining))}",
                volume=name,
            )

    def estimate_size(self, name: str) -> int:
        total = 0
        try:
            for dirpath, _dirnames, filenames in os.walk(self.path_for(name)):
                for filename in filenames:
                    st = os.lstat(os.path.join(dirpath, filename))
                    total += st.st_size
        except OSError as e:
            logger.debug(f"Volume size probe failed: {e}")
            return 0
        return total
