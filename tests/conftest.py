# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.10
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/conftest.py

"""
Shared test fixtures for the volbak test suite.

Most tests run against the directory backend, where a volume is just a
directory under a temporary root, and a FakeRemoteStore that keeps objects
in memory.
"""

import os
from pathlib import Path

import pytest

from volbak.config.manager import VolbakConfig
from volbak.storage.gateway import DirectoryVolumeGateway
from volbak.storage.remote import parse_remote_path
from volbak.storage.volumes import DirectoryVolumeStore
from volbak.system.exceptions import RemoteStoreError

HELLO_TEXT = "hello, world\n"  # 13 bytes


@pytest.fixture(autouse=True)
def isolated_config_env(tmp_path_factory, monkeypatch):
    """Keep tests away from real volbak.yml files."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("VOLBAK_CONFIG_HOME", raising=False)
    return home


@pytest.fixture
def volume_root(tmp_path):
    root = tmp_path / "volumes"
    root.mkdir()
    return root


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def directory_store(volume_root):
    return DirectoryVolumeStore(volume_root)


@pytest.fixture
def directory_gateway(directory_store):
    return DirectoryVolumeGateway(directory_store)


@pytest.fixture
def directory_config(volume_root, staging_dir):
    return VolbakConfig.from_dict({
        "backend": "directory",
        "temp_dir": str(staging_dir),
        "directory": {"root": str(volume_root)},
    })


def populate_volume(root: Path) -> None:
    """Small tree with the entry kinds a volume typically holds."""
    root.mkdir(parents=True, exist_ok=True)
    (root / "hello.txt").write_text(HELLO_TEXT)
    (root / "empty.dat").write_bytes(b"")
    (root / ".hidden").write_text("dotfile\n")
    sub = root / "sub" / "deeper"
    sub.mkdir(parents=True)
    (sub / "data.bin").write_bytes(bytes(range(256)) * 64)
    (root / "sub" / "notes.md").write_text("# notes\n")
    (root / "link-to-hello").symlink_to("hello.txt")


@pytest.fixture
def populated_volume(directory_store):
    """Volume 'v1' holding hello.txt (13 bytes) and a few other entries."""
    populate_volume(directory_store.path_for("v1"))
    return "v1"


def snapshot_tree(root: Path) -> dict:
    """Map relative path -> (kind, payload) for tree comparisons."""
    snapshot = {}
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        for name in dirnames + filenames:
            path = base / name
            rel = path.relative_to(root).as_posix()
            if path.is_symlink():
                snapshot[rel] = ("symlink", os.readlink(path))
            elif path.is_dir():
                snapshot[rel] = ("directory", None)
            else:
                snapshot[rel] = ("file", path.read_bytes())
    return snapshot


class FakeRemoteStore:
    """In-memory stand-in for S3RemoteStore."""

    def __init__(self, fail_upload: bool = False, fail_download: bool = False):
        self.objects: dict[str, bytes] = {}
        self.uploaded_from: list[Path] = []
        self.downloaded_to: list[Path] = []
        self.fail_upload = fail_upload
        self.fail_download = fail_download

    def validate_path(self, remote_path: str) -> None:
        parse_remote_path(remote_path)

    def upload(self, local_path: Path, remote_path: str) -> None:
        self.uploaded_from.append(Path(local_path))
        if self.fail_upload:
            raise RemoteStoreError("failed to upload to S3: simulated", remote_path=remote_path)
        self.objects[remote_path] = Path(local_path).read_bytes()

    def download(self, remote_path: str, local_path: Path) -> None:
        self.downloaded_to.append(Path(local_path))
        if self.fail_download or remote_path not in self.objects:
            raise RemoteStoreError(f"object not found: {remote_path}", remote_path=remote_path)
        Path(local_path).write_bytes(self.objects[remote_path])


@pytest.fixture
def fake_remote():
    return FakeRemoteStore()


@pytest.fixture
def fake_remote_factory():
    """Build a FakeRemoteStore with failure switches."""
    return FakeRemoteStore


@pytest.fixture
def tree_snapshot():
    return snapshot_tree


@pytest.fixture
def volume_populator():
    return populate_volume
