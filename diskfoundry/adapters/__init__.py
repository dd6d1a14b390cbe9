"""Storage adapters.

One adapter per storage system, all implementing ``FilesystemAdapter``:

- LocalAdapter: directories on the local disk
- S3Adapter: S3-compatible object storage through boto3
- FsspecAdapter / TransferServerAdapter: any fsspec filesystem (FTP, SFTP, GCS, Azure)
- MemoryAdapter: a private in-process store

``ReadOnlyAdapter`` and ``PathPrefixedAdapter`` decorate any of them.
"""

from diskfoundry.adapters.base import (
    FilesystemAdapter,
    LocalStorage,
    RemoteTransfer,
    TemporaryUrlGenerator,
    UrlResolvable,
    WriteConfig,
)
from diskfoundry.adapters.fsspec_adapter import FsspecAdapter, TransferServerAdapter, get_fsspec_filesystem
from diskfoundry.adapters.local import LocalAdapter
from diskfoundry.adapters.memory import MemoryAdapter
from diskfoundry.adapters.s3 import S3Adapter
from diskfoundry.adapters.wrappers import PathPrefixedAdapter, ReadOnlyAdapter

__all__ = [
    "FilesystemAdapter",
    "WriteConfig",
    "UrlResolvable",
    "TemporaryUrlGenerator",
    "RemoteTransfer",
    "LocalStorage",
    "FsspecAdapter",
    "TransferServerAdapter",
    "get_fsspec_filesystem",
    "LocalAdapter",
    "MemoryAdapter",
    "S3Adapter",
    "ReadOnlyAdapter",
    "PathPrefixedAdapter",
]
