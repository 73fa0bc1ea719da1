# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.11
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# tests/test_remote.py

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from volbak.config.manager import S3Settings
from volbak.storage.remote import (
    S3RemoteStore, is_remote_path, parse_remote_path, validate_remote_path,
)
from volbak.system.exceptions import RemoteStoreError, ValidationError


class TestRemotePaths:
    @pytest.mark.parametrize("path,expected", [
        ("s3://bucket/key.tar.gz", ("bucket", "key.tar.gz")),
        ("s3://bucket/nested/dir/v1.tar.zst", ("bucket", "nested/dir/v1.tar.zst")),
        ("s3://my-bucket.example/k", ("my-bucket.example", "k")),
    ])
    def test_parse(self, path, expected):
        assert parse_remote_path(path) == expected

    @pytest.mark.parametrize("path", ["", "bucket/key", "S3://bucket/key", "s3:/bucket/key", "not-s3://bucket/key",
                                      "gs://bucket/key", "/tmp/s3://bucket/key"])
    def test_wrong_scheme(self, path):
        with pytest.raises(ValidationError, match="must start with s3://"):
            validate_remote_path(path)

    @pytest.mark.parametrize("path", ["s3://", "s3://bucket", "s3://bucket/", "s3:///key"])
    def test_missing_bucket_or_key(self, path):
        with pytest.raises(ValidationError, match="expected s3://bucket/key"):
            validate_remote_path(path)

    def test_is_remote_path(self):
        assert is_remote_path("s3://b/k")
        assert not is_remote_path("/backups/v1.tar.gz")
        assert not is_remote_path("backup.tar.gz")


class TestS3RemoteStore:
    def test_upload(self, tmp_path):
        local = tmp_path / "v1.tar.gz"
        local.write_bytes(b"archive")
        client = MagicMock()

        S3RemoteStore(client=client).upload(local, "s3://bucket/backups/v1.tar.gz")

        client.upload_file.assert_called_once_with(str(local), "bucket", "backups/v1.tar.gz")

    def test_upload_missing_local_file(self, tmp_path):
        client = MagicMock()
        with pytest.raises(RemoteStoreError, match="failed to open file"):
            S3RemoteStore(client=client).upload(tmp_path / "nope", "s3://bucket/k")
        client.upload_file.assert_not_called()

    def test_upload_client_error(self, tmp_path):
        local = tmp_path / "v1.tar"
        local.write_bytes(b"x")
        client = MagicMock()
        client.upload_file.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject")

        with pytest.raises(RemoteStoreError, match="failed to upload to S3") as exc_info:
            S3RemoteStore(client=client).upload(local, "s3://bucket/k")
        assert exc_info.value.remote_path == "s3://bucket/k"

    def test_download(self, tmp_path):
        client = MagicMock()
        target = tmp_path / "out.tar.gz"
        S3RemoteStore(client=client).download("s3://bucket/a/b.tar.gz", target)
        client.download_file.assert_called_once_with("bucket", "a/b.tar.gz", str(target))

    @pytest.mark.parametrize("code", ["404", "NoSuchKey"])
    def test_download_missing_object(self, tmp_path, code):
        client = MagicMock()
        client.download_file.side_effect = ClientError({"Error": {"Code": code}}, "HeadObject")
        with pytest.raises(RemoteStoreError, match="object not found: s3://bucket/k"):
            S3RemoteStore(client=client).download("s3://bucket/k", tmp_path / "x")

    def test_download_connection_error(self, tmp_path):
        client = MagicMock()
        client.download_file.side_effect = EndpointConnectionError(endpoint_url="http://minio:9000")
        with pytest.raises(RemoteStoreError, match="failed to download from S3"):
            S3RemoteStore(client=client).download("s3://bucket/k", tmp_path / "x")

    def test_invalid_path_checked_before_client_use(self, tmp_path):
        client = MagicMock()
        with pytest.raises(ValidationError):
            S3RemoteStore(client=client).download("s3://bucket", tmp_path / "x")
        client.download_file.assert_not_called()


class TestClientConstruction:
    def test_default_region_and_path_style(self, monkeypatch):
        monkeypatch.delenv("AWS_REGION", raising=False)
        monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)

        with patch("volbak.storage.remote.boto3.client") as mock_client:
            S3RemoteStore().client

        kwargs = mock_client.call_args.kwargs
        assert mock_client.call_args.args == ("s3",)
        assert kwargs["region_name"] == "us-east-1"
        assert kwargs["endpoint_url"] is None
        assert kwargs["config"].s3 == {"addressing_style": "path"}

    def test_region_from_environment(self, monkeypatch):
        monkeypatch.delenv("AWS_REGION", raising=False)
        monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")
        with patch("volbak.storage.remote.boto3.client") as mock_client:
            S3RemoteStore().client
        assert mock_client.call_args.kwargs["region_name"] == "eu-west-1"

    def test_settings_override_environment(self, monkeypatch):
        monkeypatch.setenv("AWS_REGION", "eu-west-1")
        settings = S3Settings(region="ap-south-1", endpoint_url="http://minio:9000", path_style=False)
        with patch("volbak.storage.remote.boto3.client") as mock_client:
            S3RemoteStore(settings).client
        kwargs = mock_client.call_args.kwargs
        assert kwargs["region_name"] == "ap-south-1"
        assert kwargs["endpoint_url"] == "http://minio:9000"
        assert kwargs["config"].s3 == {"addressing_style": "auto"}

    def test_client_created_once(self):
        with patch("volbak.storage.remote.boto3.client") as mock_client:
            store = S3RemoteStore()
            assert store.client is store.client
        mock_client.assert_called_once()
