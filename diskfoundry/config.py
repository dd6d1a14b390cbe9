"""Typed disk configuration.

Disk settings arrive as plain mappings (from code, YAML or any other
source) and are validated into one frozen pydantic model per backend kind.
Kinds registered at runtime without a model of their own parse into the
base ``DiskConfig`` with their extra fields retained.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Protocol, Type, Union, runtime_checkable

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from diskfoundry.env import expand_config, load_env_file
from diskfoundry.errors import ConfigurationError, ConfigurationNotFound, InvalidDiskConfiguration
from diskfoundry.visibility import Visibility

logger = logging.getLogger(__name__)

__all__ = [
    "DiskConfig",
    "LocalDiskConfig",
    "MemoryDiskConfig",
    "S3DiskConfig",
    "FtpDiskConfig",
    "SftpDiskConfig",
    "GcsDiskConfig",
    "AzureDiskConfig",
    "DISK_CONFIG_MODELS",
    "register_config_model",
    "parse_disk_config",
    "FilesystemSettings",
    "ConfigSource",
    "MappingConfigSource",
    "load_settings",
]


class DiskConfig(BaseModel):
    """Settings shared by every disk, whatever its backend."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    type: str = "local"
    root: str = ""
    prefix: Optional[str] = None
    url: Optional[str] = None
    visibility: Optional[Visibility] = None
    directory_visibility: Optional[Visibility] = None
    throw: bool = False
    read_only: bool = Field(default=False, alias="read-only")
    disable_asserts: bool = False
    temporary_url: Optional[str] = None
    directory_separator: str = "/"

    @field_validator("visibility", "directory_visibility", mode="before")
    @classmethod
    def _normalize_visibility(cls, value: Any) -> Any:
        if value is None:
            return None
        return Visibility.normalize(value)

    @field_validator("directory_separator")
    @classmethod
    def _validate_separator(cls, value: str) -> str:
        if value not in ("/", "\\"):
            raise ValueError("directory_separator must be '/' or '\\'")
        return value

    def facade_options(self) -> Dict[str, Any]:
        """Settings handed down to the filesystem façade."""
        return {
            "directory_visibility": self.directory_visibility,
            "disable_asserts": self.disable_asserts,
            "temporary_url": self.temporary_url,
            "url": self.url,
            "visibility": self.visibility,
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a declared or extra field by name."""
        if key in type(self).model_fields:
            return getattr(self, key)
        return (self.model_extra or {}).get(key, default)


class LocalDiskConfig(DiskConfig):
    type: Literal["local"] = "local"
    root: str
    permissions: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    links: Literal["skip", "disallow"] = "disallow"
    lock: bool = True

    @field_validator("root")
    @classmethod
    def _validate_root(cls, value: str) -> str:
        if not value:
            raise ValueError("root must not be empty for local disks")
        return value

    @field_validator("permissions")
    @classmethod
    def _validate_permissions(cls, value: Dict[str, Dict[str, int]]) -> Dict[str, Dict[str, int]]:
        for kind, modes in value.items():
            if kind not in ("file", "dir"):
                raise ValueError(f"permissions keys must be 'file' or 'dir', got '{kind}'")
            for visibility in modes:
                Visibility.normalize(visibility)
        return value


class MemoryDiskConfig(DiskConfig):
    type: Literal["memory"] = "memory"


class S3DiskConfig(DiskConfig):
    type: Literal["s3"] = "s3"
    bucket: str
    key: Optional[str] = None
    secret: Optional[str] = None
    token: Optional[str] = None
    region: Optional[str] = None
    endpoint: Optional[str] = None
    use_path_style_endpoint: bool = False
    expire: int = 1800
    options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("expire")
    @classmethod
    def _validate_expire(cls, value: int) -> int:
        if value < 1:
            raise ValueError("expire must be a positive number of seconds")
        return value

    @model_validator(mode="after")
    def _validate_credentials(self) -> "S3DiskConfig":
        if bool(self.key) != bool(self.secret):
            raise ValueError("key and secret must be provided together")
        return self


class FtpDiskConfig(DiskConfig):
    type: Literal["ftp"] = "ftp"
    host: str
    port: int = Field(default=21, ge=1, le=65535)
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: int = 30
    tls: bool = False


class SftpDiskConfig(DiskConfig):
    type: Literal["sftp"] = "sftp"
    host: str
    port: int = Field(default=22, ge=1, le=65535)
    username: Optional[str] = None
    password: Optional[str] = None
    private_key: Optional[str] = None
    timeout: int = 10


class GcsDiskConfig(DiskConfig):
    type: Literal["gcs"] = "gcs"
    bucket: str
    project_id: Optional[str] = None
    token: Optional[str] = None


class AzureDiskConfig(DiskConfig):
    type: Literal["azure"] = "azure"
    container: str
    account_name: Optional[str] = None
    account_key: Optional[str] = None
    connection_string: Optional[str] = None


DISK_CONFIG_MODELS: Dict[str, Type[DiskConfig]] = {
    "local": LocalDiskConfig,
    "memory": MemoryDiskConfig,
    "s3": S3DiskConfig,
    "ftp": FtpDiskConfig,
    "sftp": SftpDiskConfig,
    "gcs": GcsDiskConfig,
    "azure": AzureDiskConfig,
}


def register_config_model(kind: str, model: Type[DiskConfig]) -> None:
    """Use ``model`` to validate disks of ``kind``."""
    DISK_CONFIG_MODELS[kind.lower()] = model


def _format_issue(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "disk"
    return f"{location}: {error.get('msg')}"


def parse_disk_config(name: str, raw: Union[Mapping[str, Any], DiskConfig]) -> DiskConfig:
    """Validate the raw settings of disk ``name`` into its typed model.

    Raises:
        InvalidDiskConfiguration: If the settings do not satisfy the model
    """
    if isinstance(raw, DiskConfig):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidDiskConfiguration(
            f"Disk [{name}] configuration must be a mapping, got {type(raw).__name__}", disk=name
        )

    kind = str(raw.get("type") or "local").lower()
    model = DISK_CONFIG_MODELS.get(kind, DiskConfig)
    try:
        return model.model_validate({**raw, "type": kind})
    except ValidationError as exc:
        issues = [_format_issue(error) for error in exc.errors()]
        raise InvalidDiskConfiguration(
            f"Invalid configuration for disk [{name}]", disk=name, kind=kind, issues=issues
        ) from exc


class FilesystemSettings(BaseModel):
    """``{default: <disk name>, disks: {name: settings}}``.

    Disk settings stay raw here and are validated when a disk is first
    requested, so one broken disk does not prevent using the others.
    """

    model_config = ConfigDict(frozen=True)

    default: Optional[str] = None
    disks: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_default(self) -> "FilesystemSettings":
        if self.default is not None and self.disks and self.default not in self.disks:
            raise ValueError(f"default disk '{self.default}' is not defined under disks")
        return self


@runtime_checkable
class ConfigSource(Protocol):
    """Anything able to supply disk configuration by name."""

    def get_disk_config(self, name: str) -> DiskConfig:
        ...

    def default_disk(self) -> Optional[str]:
        ...


class MappingConfigSource:
    """Configuration source backed by ``FilesystemSettings``.

    Example:
        >>> source = MappingConfigSource({"default": "local", "disks": {"local": {"type": "local", "root": "/srv"}}})
        >>> source.get_disk_config("local").root
        '/srv'
    """

    def __init__(self, settings: Union[FilesystemSettings, Mapping[str, Any], None] = None) -> None:
        if settings is None:
            settings = FilesystemSettings()
        elif not isinstance(settings, FilesystemSettings):
            try:
                settings = FilesystemSettings.model_validate(dict(settings))
            except ValidationError as exc:
                raise ConfigurationError(
                    "Invalid filesystem settings",
                    details={"issues": "; ".join(_format_issue(e) for e in exc.errors())},
                ) from exc
        self.settings = settings

    def __repr__(self) -> str:
        return f"MappingConfigSource(disks={self.disk_names()!r})"

    @classmethod
    def from_yaml(
        cls,
        path: Union[str, Path],
        *,
        env_file: Optional[Union[str, Path]] = None,
        expand_env: bool = True,
    ) -> "MappingConfigSource":
        return cls(load_settings(path, env_file=env_file, expand_env=expand_env))

    def get_disk_config(self, name: str) -> DiskConfig:
        raw = self.settings.disks.get(name)
        if raw is None:
            raise ConfigurationNotFound(f"Disk [{name}] not found.", disk=name)
        return parse_disk_config(name, raw)

    def default_disk(self) -> Optional[str]:
        return self.settings.default

    def disk_names(self) -> List[str]:
        return list(self.settings.disks)


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    config_path = Path(path)
    logger.info("Loading filesystem config from %s", config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}", details={"path": str(config_path)})

    try:
        with open(config_path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in config file: {exc}", details={"path": str(config_path)}) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Config must be a YAML dictionary/object", details={"path": str(config_path)})
    # Allow the settings to live under a top-level ``filesystem`` key
    if "filesystem" in data and isinstance(data["filesystem"], dict):
        data = data["filesystem"]
    return data


def load_settings(
    path: Union[str, Path],
    *,
    env_file: Optional[Union[str, Path]] = None,
    expand_env: bool = True,
) -> FilesystemSettings:
    """Load ``FilesystemSettings`` from a YAML file.

    Args:
        path: YAML file holding ``default`` and ``disks``
        env_file: Optional .env file loaded before expansion
        expand_env: Substitute ``${VAR}`` references with environment values
    """
    if env_file is not None:
        load_env_file(env_file)
    data = _read_yaml(path)
    if expand_env:
        data = expand_config(data)
    try:
        return FilesystemSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid filesystem settings in {path}",
            details={"issues": "; ".join(_format_issue(e) for e in exc.errors())},
        ) from exc
