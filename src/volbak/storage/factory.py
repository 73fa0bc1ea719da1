# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.07
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/storage/factory.py

"""Build the volume store, gateway and remote store a config asks for."""

from loguru import logger

from volbak.config.manager import VolbakConfig
from volbak.storage.gateway import DirectoryVolumeGateway, DockerVolumeGateway
from volbak.storage.protocols import RemoteStore, VolumeGateway, VolumeStore
from volbak.storage.remote import S3RemoteStore
from volbak.storage.volumes import DirectoryVolumeStore, DockerVolumeStore
from volbak.system.exceptions import ConfigError


def create_volume_store(config: VolbakConfig) -> VolumeStore:
    if config.backend == "docker":
        return DockerVolumeStore(config.docker)
    if config.backend == "directory":
        return DirectoryVolumeStore(config.directory.root)
    raise ConfigError(f"unsupported backend: {config.backend}")


def create_gateway(config: VolbakConfig, store: VolumeStore = None) -> VolumeGateway:
    if config.backend == "docker":
        logger.debug("Using docker volume gateway")
        return DockerVolumeGateway(config.docker)
    if config.backend == "directory":
        logger.debug(f"Using directory volume gateway rooted at {config.directory.root}")
        if not isinstance(store, DirectoryVolumeStore):
            store = DirectoryVolumeStore(config.directory.root)
        return DirectoryVolumeGateway(store)
    raise ConfigError(f"unsupported backend: {config.backend}")


def create_remote_store(config: VolbakConfig) -> RemoteStore:
    return S3RemoteStore(config.s3)
