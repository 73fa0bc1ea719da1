# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.07
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/storage/remote.py

"""
S3-compatible object store access for archive staging.

Remote paths look like s3://bucket/key. Clients use path-style addressing
by default so MinIO and other S3-compatible services work unchanged.
"""

import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from volbak.system.exceptions import RemoteStoreError, ValidationError

if TYPE_CHECKING:
    from volbak.config.manager import S3Settings


S3_SCHEME = "s3://"
DEFAULT_REGION = "us-east-1"


def is_remote_path(path: str) -> bool:
    return path.startswith(S3_SCHEME)


def parse_remote_path(remote_path: str) -> tuple[str, str]:
    """Split s3://bucket/key into (bucket, key).

    Raises:
        ValidationError: If the scheme is wrong or bucket/key is empty
    """
    if not remote_path or not remote_path.startswith(S3_SCHEME):
        raise ValidationError("S3 path must start with s3://")
    bucket, sep, key = remote_path[len(S3_SCHEME):].partition("/")
    if not sep or not bucket or not key:
        raise ValidationError(f"invalid S3 path format '{remote_path}': expected s3://bucket/key")
    return bucket, key


def validate_remote_path(remote_path: str) -> None:
    parse_remote_path(remote_path)


class S3RemoteStore:
    """Upload and download archives with boto3."""

    def __init__(self, settings: Optional["S3Settings"] = None, client=None):
        self.settings = settings
        self._client = client

    def _region(self) -> str:
        if self.settings is not None and self.settings.region:
            return self.settings.region
        # Some S3-compatible services require a region even if they ignore it
        return os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or DEFAULT_REGION

    @property
    def client(self):
        """boto3 S3 client, created on first use."""
        if self._client is None:
            path_style = True if self.settings is None else self.settings.path_style
            endpoint_url = None if self.settings is None else self.settings.endpoint_url
            self._client = boto3.client(
                "s3",
                region_name=self._region(),
                endpoint_url=endpoint_url,
                config=BotoConfig(s3={"addressing_style": "path" if path_style else "auto"}),
            )
        return self._client

    def validate_path(self, remote_path: str) -> None:
        validate_remote_path(remote_path)

    def upload(self, local_path: Path, remote_path: str) -> None:
        bucket, key = parse_remote_path(remote_path)
        local_path = Path(local_path)
        if not local_path.is_file():
            raise RemoteStoreError(f"failed to open file {local_path}: not a file", remote_path=remote_path)

        logger.info(f"Uploading {local_path} to {remote_path}")
        try:
            self.client.upload_file(str(local_path), bucket, key)
        except (BotoCoreError, ClientError, OSError) as e:
            raise RemoteStoreError(f"failed to upload to S3: {e}", remote_path=remote_path) from e
        logger.debug(f"Uploaded {local_path.stat().st_size} bytes to {remote_path}")

    def download(self, remote_path: str, local_path: Path) -> None:
        bucket, key = parse_remote_path(remote_path)
        local_path = Path(local_path)

        logger.info(f"Downloading {remote_path} to {local_path}")
        try:
            self.client.download_file(bucket, key, str(local_path))
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey"):
                raise RemoteStoreError(f"object not found: {remote_path}", remote_path=remote_path) from e
            raise RemoteStoreError(f"failed to download from S3: {e}", remote_path=remote_path) from e
        except (BotoCoreError, OSError) as e:
            raise RemoteStoreError(f"failed to download from S3: {e}", remote_path=remote_path) from e
