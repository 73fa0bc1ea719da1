# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.12
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_cli.py

"""Test suite for CLI functionality."""

import tarfile
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from volbak.cli import app

# Setup test runner
runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path, monkeypatch, directory_store, volume_root, staging_dir):
    """Point the CLI at a directory-backend config."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    with (config_dir / "volbak.yml").open("w") as f:
        yaml.safe_dump({
            "backend": "directory",
            "temp_dir": str(staging_dir),
            "directory": {"root": str(volume_root)},
        }, f)
    monkeypatch.setenv("VOLBAK_CONFIG_HOME", str(config_dir))
    return directory_store


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "backup" in result.output
    assert "restore" in result.output


def test_version():
    with patch("volbak.cli.main.version", return_value="0.1.0"):
        result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "volbak version 0.1.0" in result.output


class TestBackupCommand:
    def test_backup_success(self, cli_env, populated_volume, tmp_path):
        dest = tmp_path / "out.tar.gz"
        result = runner.invoke(app, ["backup", "v1", str(dest)])

        assert result.exit_code == 0, result.output
        assert "✓" in result.output
        with tarfile.open(dest, "r:gz") as tar:
            assert tar.getmember("hello.txt").size == 13

    def test_backup_compress_option(self, cli_env, populated_volume, tmp_path):
        dest = tmp_path / "out.tar.zst"
        result = runner.invoke(app, ["backup", "--compress", "zstd", "v1", str(dest)])
        assert result.exit_code == 0, result.output
        assert dest.read_bytes()[:4] == b"\x28\xb5\x2f\xfd"

    def test_backup_verbose_shows_summary(self, cli_env, populated_volume, tmp_path):
        result = runner.invoke(app, ["--verbose", "backup", "v1", str(tmp_path / "out.tar")])
        assert result.exit_code == 0, result.output
        assert "Compression" in result.output

    def test_backup_with_progress(self, cli_env, populated_volume, tmp_path):
        result = runner.invoke(app, ["backup", "--progress", "v1", str(tmp_path / "out.tar.gz")])
        assert result.exit_code == 0, result.output

    def test_backup_missing_volume(self, cli_env, tmp_path):
        result = runner.invoke(app, ["backup", "ghost", str(tmp_path / "out.tar.gz")])
        assert result.exit_code == 1
        assert "Error backing up volume" in result.output
        assert "does not exist" in result.output

    def test_backup_unknown_compression(self, cli_env, populated_volume, tmp_path):
        result = runner.invoke(app, ["backup", "--compress", "bz2", "v1", str(tmp_path / "out")])
        assert result.exit_code == 1
        assert "unsupported compression" in result.output

    def test_backup_invalid_volume_name(self, cli_env, tmp_path):
        result = runner.invoke(app, ["backup", "../etc", str(tmp_path / "out.tar.gz")])
        assert result.exit_code == 1
        assert "invalid volume name" in result.output

    def test_backup_requires_arguments(self):
        result = runner.invoke(app, ["backup", "v1"])
        assert result.exit_code != 0


class TestRestoreCommand:
    @pytest.fixture
    def archive(self, cli_env, populated_volume, tmp_path):
        dest = tmp_path / "v1.tar.gz"
        result = runner.invoke(app, ["backup", "v1", str(dest)])
        assert result.exit_code == 0, result.output
        return dest

    def test_restore_into_new_volume(self, cli_env, archive):
        result = runner.invoke(app, ["restore", str(archive), "copy"])
        assert result.exit_code == 0, result.output
        assert "✓" in result.output
        assert (cli_env.path_for("copy") / "hello.txt").read_text() == "hello, world\n"

    def test_restore_existing_volume_refused(self, cli_env, archive):
        result = runner.invoke(app, ["restore", str(archive), "v1"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_restore_overwrite(self, cli_env, archive):
        (cli_env.path_for("v1") / "stale.txt").write_text("old")
        result = runner.invoke(app, ["restore", "--overwrite", str(archive), "v1"])
        assert result.exit_code == 0, result.output
        assert not (cli_env.path_for("v1") / "stale.txt").exists()

    def test_restore_bad_remote_path(self, cli_env):
        result = runner.invoke(app, ["restore", "s3://bucket", "v2"])
        assert result.exit_code == 1
        assert "Error restoring volume" in result.output


class TestValidateConfigCommand:
    def test_valid_config(self, cli_env):
        result = runner.invoke(app, ["validate-config"])
        assert result.exit_code == 0, result.output
        assert "All configuration checks passed" in result.output

    def test_verbose_shows_summary(self, cli_env):
        result = runner.invoke(app, ["--verbose", "validate-config"])
        assert result.exit_code == 0, result.output
        assert "Configuration Summary" in result.output

    def test_missing_directory_root(self, tmp_path, monkeypatch):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "volbak.yml").write_text(
            f"backend: directory\ndirectory:\n  root: {tmp_path / 'missing'}\n")
        monkeypatch.setenv("VOLBAK_CONFIG_HOME", str(config_dir))

        result = runner.invoke(app, ["validate-config"])
        assert result.exit_code == 1
        assert "validation failed" in result.output

        result = runner.invoke(app, ["validate-config", "--no-backend"])
        assert result.exit_code == 0

    def test_broken_config_reported_by_commands(self, tmp_path, monkeypatch):
        (tmp_path / "volbak.yml").write_text("backend: podman\n")
        monkeypatch.setenv("VOLBAK_CONFIG_HOME", str(tmp_path))
        result = runner.invoke(app, ["backup", "v1", str(tmp_path / "out.tar.gz")])
        assert result.exit_code == 1
        assert "Configuration error" in result.output
