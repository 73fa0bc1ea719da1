# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.03
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/volbak/config/manager.py

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Literal, Final

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from volbak.storage.codecs import Compression
from volbak.system.exceptions import ConfigError


# ---- Constants ----

USER_CFG: Final = "volbak.yml"

DEFAULT_HELPER_IMAGE: Final = "alpine"
DEFAULT_MOUNT_POINT: Final = "/data"


def _get_config_search_paths() -> tuple[Path, ...]:
    """Get config file search paths (ordered by priority: lowest to highest).

    Evaluated at call time so environment overrides work in tests.
    """
    return (
        Path("/etc/volbak") / USER_CFG,  # System defaults
        Path.home() / ".config" / "volbak" / USER_CFG,  # User config
        Path(os.getenv("XDG_CONFIG_HOME", "")) / "volbak" / USER_CFG,  # XDG override
        Path(os.getenv("VOLBAK_CONFIG_HOME", "")) / USER_CFG,  # Explicit override (highest priority)
    )


def _deep_update(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_update(dict(base[key]), value)
        else:
            base[key] = value
    return base


def _load_merged_config_data(candidates: tuple[Path, ...]) -> dict:
    """Load and merge config data from candidate paths.

    Missing files are skipped; an empty result means built-in defaults.

    Raises:
        ConfigError: If a config file exists but is not a YAML mapping
    """
    merged_data: dict = {}
    found_configs = []

    for candidate in candidates:
        if candidate == Path("") / USER_CFG or candidate == Path("volbak") / USER_CFG:
            continue  # Unset environment variable
        if not candidate.is_file():
            continue
        try:
            with candidate.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config {candidate}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config {candidate} must contain a mapping")

        merged_data = _deep_update(merged_data, data)  # Later configs override earlier ones
        found_configs.append(str(candidate))
        logger.debug(f"Loaded config from {candidate}")

    if found_configs:
        logger.debug(f"Merged config from: {', '.join(found_configs)}")
    else:
        logger.debug("No volbak.yml found, using defaults")
    return merged_data


# ---- Backend Settings ----

class DockerSettings(BaseModel):
    """Docker backend settings."""
    binary: str = "docker"
    helper_image: str = DEFAULT_HELPER_IMAGE
    mount_point: str = DEFAULT_MOUNT_POINT

    @field_validator("mount_point")
    @classmethod
    def mount_point_is_absolute(cls, value: str) -> str:
        if not value.startswith("/") or value.rstrip("/") == "":
            raise ValueError(f"mount_point must be an absolute, non-root path: {value!r}")
        return value.rstrip("/")


class DirectorySettings(BaseModel):
    """Directory backend settings: each volume is a subdirectory of root."""
    root: Path = Field(default_factory=lambda: Path.home() / ".local" / "share" / "volbak" / "volumes")


class S3Settings(BaseModel):
    """S3-compatible object store settings."""
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    path_style: bool = True


# ---- Main Config ----

class VolbakConfig(BaseModel):
    """Merged volbak configuration."""
    backend: Literal["docker", "directory"] = "docker"
    compression: Compression = Compression.GZIP
    progress: bool = False
    temp_dir: Optional[Path] = None
    local_log: Optional[Path] = None

    docker: DockerSettings = Field(default_factory=DockerSettings)
    directory: DirectorySettings = Field(default_factory=DirectorySettings)
    s3: S3Settings = Field(default_factory=S3Settings)

    @property
    def staging_dir(self) -> Path:
        """Directory for temporary staging files."""
        return self.temp_dir or Path(tempfile.gettempdir())

    @classmethod
    def from_dict(cls, data: dict) -> "VolbakConfig":
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigError(str(e)) from e


def load_config() -> VolbakConfig:
    """Load and merge config from all locations (system defaults + user overrides)."""
    merged_data = _load_merged_config_data(_get_config_search_paths())
    return VolbakConfig.from_dict(merged_data)


# ---- Validation Function ----

def validate_config(check_backend: bool = False) -> list[str]:
    """Return a list of validation errors. Empty list means config is valid."""
    errors = []

    try:
        cfg = load_config()
    except ConfigError as e:
        errors.append(f"Error loading config: {e}")
        return errors

    if cfg.temp_dir is not None and not cfg.temp_dir.is_dir():
        errors.append(f"temp_dir does not exist or is not a directory: {cfg.temp_dir}")

    if cfg.local_log is not None and not cfg.local_log.is_absolute():
        errors.append(f"local_log path must be absolute: {cfg.local_log}")

    if check_backend:
        if cfg.backend == "docker":
            from volbak.storage.volumes import DockerVolumeStore
            if not DockerVolumeStore(cfg.docker).is_available():
                errors.append(f"Docker is not available via '{cfg.docker.binary}'")
        elif not cfg.directory.root.is_dir():
            errors.append(f"Directory backend root does not exist: {cfg.directory.root}")

    return errors


# done.
