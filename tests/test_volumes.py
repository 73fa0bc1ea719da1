# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.10
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_volumes.py

from unittest.mock import MagicMock

import pytest

from volbak.config.manager import DockerSettings
from volbak.storage.volumes import DirectoryVolumeStore, DockerVolumeStore, validate_volume_name
from volbak.system.exceptions import SubprocessError, ValidationError, VolumeError
from volbak.system.execution import CommandResult


class TestVolumeNameValidation:
    @pytest.mark.parametrize("name", ["v1", "my-volume", "a.b_c-d", "0", "Data2025", "x" * 200])
    def test_valid_names(self, name):
        validate_volume_name(name)

    def test_empty_name(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            validate_volume_name("")

    @pytest.mark.parametrize("name", [
        "-leading-dash", ".hidden", "_under", "a/b", "../etc", "a b", "vol;rm -rf /",
        "vol$(id)", "tab\there", "üñí", "trailing\n", "a\\b",
    ])
    def test_invalid_names(self, name):
        with pytest.raises(ValidationError, match="invalid volume name"):
            validate_volume_name(name)


class TestDirectoryVolumeStore:
    def test_lifecycle(self, tmp_path):
        store = DirectoryVolumeStore(tmp_path / "root")
        assert not store.exists("v1")
        store.create("v1")
        assert store.exists("v1")
        store.ensure_exists("v1")
        assert (tmp_path / "root" / "v1").is_dir()

    def test_rejects_bad_names_before_touching_disk(self, tmp_path):
        store = DirectoryVolumeStore(tmp_path)
        with pytest.raises(ValidationError):
            store.create("../escape")
        assert not (tmp_path.parent / "escape").exists()

    def test_clear_removes_hidden_entries(self, directory_store, populated_volume):
        root = directory_store.path_for(populated_volume)
        (root / "..double-dot").write_text("x")
        (root / ".hidden-dir").mkdir()
        (root / ".hidden-dir" / "f").write_text("y")

        directory_store.clear(populated_volume)

        assert root.is_dir()
        assert list(root.iterdir()) == []

    def test_clear_does_not_follow_symlinked_dirs(self, tmp_path, directory_store):
        outside = tmp_path / "outside"
        outside.mkdir()
        (outside / "keep.txt").write_text("keep")
        directory_store.create("v2")
        (directory_store.path_for("v2") / "link").symlink_to(outside, target_is_directory=True)

        directory_store.clear("v2")

        assert (outside / "keep.txt").exists()

    def test_clear_failure_raises_volume_error(self, directory_store):
        with pytest.raises(VolumeError, match="failed to clear"):
            directory_store.clear("missing")

    def test_estimate_size(self, directory_store, populated_volume):
        # Symlinks count their own size (the target path), not the target
        assert directory_store.estimate_size(populated_volume) == 13 + 8 + 16384 + 8 + len("hello.txt")

    def test_estimate_size_of_missing_volume(self, directory_store):
        assert directory_store.estimate_size("missing") == 0


def docker_result(returncode=0, stdout="", stderr=""):
    return CommandResult(returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def executor():
    mock = MagicMock()
    mock.run_local.return_value = docker_result()
    return mock


@pytest.fixture
def docker_store(executor):
    return DockerVolumeStore(DockerSettings(), executor=executor)


class TestDockerVolumeStore:
    def test_exists(self, docker_store, executor):
        executor.run_local.return_value = docker_result(0, "[{...}]")
        assert docker_store.exists("v1") is True
        executor.run_local.assert_called_once_with(["docker", "volume", "inspect", "v1"], check=False)

    def test_not_exists(self, docker_store, executor):
        executor.run_local.return_value = docker_result(1, "", "Error: No such volume: v1")
        assert docker_store.exists("v1") is False

    def test_create(self, docker_store, executor):
        docker_store.create("v1")
        executor.run_local.assert_called_once_with(["docker", "volume", "create", "v1"], check=True)

    def test_create_failure(self, docker_store, executor):
        executor.run_local.side_effect = SubprocessError("Command failed with exit code 1", output="denied")
        with pytest.raises(VolumeError, match="failed to create volume 'v1'"):
            docker_store.create("v1")

    def test_ensure_exists_skips_create_when_present(self, docker_store, executor):
        docker_store.ensure_exists("v1")
        assert executor.run_local.call_count == 1

    def test_clear_runs_helper_with_hidden_globs_and_emptiness_check(self, docker_store, executor):
        docker_store.clear("v1")

        cmd = executor.run_local.call_args[0][0]
        assert cmd[:5] == ["docker", "run", "--rm", "-v", "v1:/data"]
        assert cmd[5] == "alpine"
        script = cmd[-1]
        assert "/data/*" in script
        assert "/data/.[!.]*" in script
        assert "/data/..?*" in script
        assert 'test -z "$(ls -A /data)"' in script

    def test_clear_failure(self, docker_store, executor):
        executor.run_local.side_effect = SubprocessError("Command failed with exit code 1")
        with pytest.raises(VolumeError, match="failed to clear volume 'v1'"):
            docker_store.clear("v1")

    def test_estimate_size(self, docker_store, executor):
        executor.run_local.return_value = docker_result(0, "12\n")
        assert docker_store.estimate_size("v1") == 12 * 1024
        cmd = executor.run_local.call_args[0][0]
        assert "v1:/data:ro" in cmd

    @pytest.mark.parametrize("result", [docker_result(1, "", "boom"), docker_result(0, "garbage")])
    def test_estimate_size_failure_is_zero(self, docker_store, executor, result):
        executor.run_local.return_value = result
        assert docker_store.estimate_size("v1") == 0

    def test_missing_binary_becomes_subprocess_error(self, docker_store, executor):
        executor.run_local.side_effect = FileNotFoundError("docker")
        with pytest.raises(SubprocessError, match="could not run docker"):
            docker_store.exists("v1")
        assert docker_store.is_available() is False

    def test_is_available(self, docker_store, executor):
        assert docker_store.is_available() is True
        executor.run_local.assert_called_once_with(["docker", "version"], check=False)

    def test_custom_settings(self, executor):
        store = DockerVolumeStore(
            DockerSettings(binary="podman", helper_image="busybox", mount_point="/mnt/vol/"),
            executor=executor,
        )
        store.clear("v1")
        cmd = executor.run_local.call_args[0][0]
        assert cmd[0] == "podman"
        assert "v1:/mnt/vol" in cmd
        assert "busybox" in cmd
