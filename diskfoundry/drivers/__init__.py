"""Built-in disk backend factories.

Each factory imports its driver lazily so the optional libraries (paramiko,
gcsfs, adlfs) are only needed by the disks that use them.
"""

from __future__ import annotations

import logging

from diskfoundry.config import DiskConfig
from diskfoundry.driver import Driver
from diskfoundry.registry import missing_dependency, register_backend

logger = logging.getLogger(__name__)


@register_backend("local")
def _local_factory(config: DiskConfig, name: str) -> Driver:
    from diskfoundry.drivers.local import LocalDriver

    return LocalDriver(config, name)


@register_backend("memory")
def _memory_factory(config: DiskConfig, name: str) -> Driver:
    from diskfoundry.drivers.memory import MemoryDriver

    return MemoryDriver(config, name)


@register_backend("s3")
def _s3_factory(config: DiskConfig, name: str) -> Driver:
    from diskfoundry.drivers.s3 import S3Driver

    return S3Driver(config, name)


@register_backend("ftp")
def _ftp_factory(config: DiskConfig, name: str) -> Driver:
    from diskfoundry.drivers.transfer import FtpDriver

    return FtpDriver(config, name)


@register_backend("sftp")
def _sftp_factory(config: DiskConfig, name: str) -> Driver:
    from diskfoundry.drivers.transfer import SftpDriver

    try:
        return SftpDriver(config, name)
    except ImportError as exc:
        raise missing_dependency("sftp", exc, name) from exc


@register_backend("gcs")
def _gcs_factory(config: DiskConfig, name: str) -> Driver:
    from diskfoundry.drivers.cloud import GcsDriver

    try:
        return GcsDriver(config, name)
    except ImportError as exc:
        raise missing_dependency("gcs", exc, name) from exc


@register_backend("azure")
def _azure_factory(config: DiskConfig, name: str) -> Driver:
    from diskfoundry.drivers.cloud import AzureDriver

    try:
        return AzureDriver(config, name)
    except ImportError as exc:
        raise missing_dependency("azure", exc, name) from exc
