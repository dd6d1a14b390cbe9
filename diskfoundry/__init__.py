"""diskfoundry: uniform file operations across named disks.

Application code asks for a disk by name and gets a ``Driver`` exposing
the same reads, writes, listings, metadata and URL operations whatever the
backend (local directory, S3, FTP, SFTP, GCS, Azure or memory).

Example:
    >>> import diskfoundry
    >>> diskfoundry.configure({"default": "local", "disks": {"local": {"type": "local", "root": "/srv"}}})
    >>> diskfoundry.disk().put("hello.txt", "hi")
    True
"""

__version__ = "1.0.0"

from diskfoundry.attributes import StorageAttributes
from diskfoundry.config import (
    ConfigSource,
    DiskConfig,
    FilesystemSettings,
    MappingConfigSource,
    load_settings,
    parse_disk_config,
    register_config_model,
)
from diskfoundry.driver import Driver, attempt
from diskfoundry.errors import (
    ConfigurationError,
    ConfigurationNotFound,
    CopyFailure,
    CorruptedPathDetected,
    DeleteFailure,
    DirectoryCreateFailure,
    DirectoryDeleteFailure,
    FilesystemError,
    FilesystemOperationError,
    InvalidDiskConfiguration,
    ListingFailure,
    MetadataUnavailable,
    MoveFailure,
    PathTraversalDetected,
    ReadFailure,
    SymbolicLinkEncountered,
    UnsupportedOperation,
    VisibilitySetFailure,
    WriteFailure,
)
from diskfoundry.files import File, UploadedFile
from diskfoundry.filesystem import Filesystem
from diskfoundry.http import StreamedResponse, fallback_name, make_disposition
from diskfoundry.manager import FilesystemManager, cloud, configure, disk, extend, get_manager
from diskfoundry.prefixer import PathPrefixer, normalize_path
from diskfoundry.registry import list_backends, register_backend
from diskfoundry.visibility import Visibility

__all__ = [
    "__version__",
    # Manager
    "FilesystemManager",
    "configure",
    "get_manager",
    "disk",
    "cloud",
    "extend",
    "register_backend",
    "list_backends",
    # Driver and façade
    "Driver",
    "attempt",
    "Filesystem",
    "StorageAttributes",
    "Visibility",
    "PathPrefixer",
    "normalize_path",
    "File",
    "UploadedFile",
    "StreamedResponse",
    "make_disposition",
    "fallback_name",
    # Configuration
    "ConfigSource",
    "DiskConfig",
    "FilesystemSettings",
    "MappingConfigSource",
    "load_settings",
    "parse_disk_config",
    "register_config_model",
    # Errors
    "FilesystemError",
    "ConfigurationError",
    "ConfigurationNotFound",
    "InvalidDiskConfiguration",
    "UnsupportedOperation",
    "PathTraversalDetected",
    "CorruptedPathDetected",
    "FilesystemOperationError",
    "ReadFailure",
    "WriteFailure",
    "VisibilitySetFailure",
    "CopyFailure",
    "MoveFailure",
    "DeleteFailure",
    "DirectoryCreateFailure",
    "DirectoryDeleteFailure",
    "MetadataUnavailable",
    "ListingFailure",
    "SymbolicLinkEncountered",
]
