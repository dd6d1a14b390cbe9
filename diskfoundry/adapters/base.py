"""Backend adapter contract.

An adapter is the only component that talks to a concrete storage system.
It receives normalised logical paths, applies its own root through a
``PathPrefixer`` and raises ``FilesystemOperationError`` subclasses on
failure. Everything above it (façade, driver, manager) is backend agnostic.

Optional behaviour is advertised through the capability protocols at the
bottom of this module and probed with ``isinstance``.
"""

from __future__ import annotations

import codecs
import logging
import mimetypes
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, BinaryIO, Dict, Iterator, Mapping, Optional, Protocol, runtime_checkable

from diskfoundry.attributes import StorageAttributes

logger = logging.getLogger(__name__)

__all__ = [
    "FilesystemAdapter",
    "WriteConfig",
    "UrlResolvable",
    "TemporaryUrlGenerator",
    "RemoteTransfer",
    "LocalStorage",
    "detect_mime_type",
    "OCTET_STREAM",
    "SNIFF_LENGTH",
]

OCTET_STREAM = "application/octet-stream"

# Bytes read from the start of a file when the extension says nothing
SNIFF_LENGTH = 1024

# Per-call options handed to writes (visibility, directory_visibility,
# backend specific extras such as S3 ``ContentType``).
WriteConfig = Mapping[str, Any]


def detect_mime_type(path: str, head: bytes = b"") -> str:
    """Guess the MIME type of a file from its name, then from its first bytes.

    Files without a known extension are reported as ``text/plain`` when
    ``head`` is valid UTF-8 without NUL bytes, otherwise as
    ``application/octet-stream``.
    """
    mime_type, _ = mimetypes.guess_type(path)
    if mime_type:
        return mime_type
    if not head or b"\x00" in head:
        return OCTET_STREAM
    try:
        # A multi-byte sequence cut off at the end of head is not an error
        codecs.getincrementaldecoder("utf-8")().decode(head, final=False)
    except UnicodeDecodeError:
        return OCTET_STREAM
    return "text/plain"


class FilesystemAdapter(ABC):
    """Abstract base class for storage adapters.

    Subclasses must implement all abstract methods. Metadata accessors
    return a ``StorageAttributes`` so that one backend request can fill
    several fields at once.
    """

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """Return True if a file exists at ``path``."""

    @abstractmethod
    def directory_exists(self, path: str) -> bool:
        """Return True if a directory (or a key prefix) exists at ``path``."""

    @abstractmethod
    def write(self, path: str, contents: bytes, config: WriteConfig) -> None:
        """Write ``contents`` to ``path``, replacing any existing file.

        Raises:
            WriteFailure: If the backend rejects the write
        """

    @abstractmethod
    def write_stream(self, path: str, stream: BinaryIO, config: WriteConfig) -> None:
        """Write everything readable from ``stream`` to ``path``.

        The stream stays owned by the caller and is not closed here.
        """

    @abstractmethod
    def read(self, path: str) -> bytes:
        """Read the full contents of ``path``.

        Raises:
            ReadFailure: If the file is missing or unreadable
        """

    @abstractmethod
    def read_stream(self, path: str) -> BinaryIO:
        """Open ``path`` for binary reading. The caller closes the handle."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete the file at ``path``. Deleting a missing file is not an error."""

    @abstractmethod
    def delete_directory(self, path: str) -> None:
        """Delete the directory at ``path`` and everything beneath it."""

    @abstractmethod
    def create_directory(self, path: str, config: WriteConfig) -> None:
        """Create ``path`` including missing parents."""

    @abstractmethod
    def set_visibility(self, path: str, visibility: str) -> None:
        pass

    @abstractmethod
    def visibility(self, path: str) -> StorageAttributes:
        pass

    @abstractmethod
    def mime_type(self, path: str) -> StorageAttributes:
        pass

    @abstractmethod
    def last_modified(self, path: str) -> StorageAttributes:
        pass

    @abstractmethod
    def file_size(self, path: str) -> StorageAttributes:
        pass

    @abstractmethod
    def list_contents(self, path: str, deep: bool) -> Iterator[StorageAttributes]:
        """Yield entries below ``path`` with logical (root-relative) paths.

        Args:
            path: Logical directory to list ('' for the root)
            deep: If True, descend into sub-directories
        """

    @abstractmethod
    def move(self, source: str, destination: str, config: WriteConfig) -> None:
        pass

    @abstractmethod
    def copy(self, source: str, destination: str, config: WriteConfig) -> None:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


# =============================================================================
# Capability protocols
# =============================================================================


@runtime_checkable
class UrlResolvable(Protocol):
    """Something that can turn a logical path into a public URL."""

    def get_url(self, path: str) -> str:
        ...


@runtime_checkable
class TemporaryUrlGenerator(Protocol):
    """Adapters able to sign time-limited URLs."""

    def temporary_url(
        self, path: str, expires_at: datetime, options: Optional[Dict[str, Any]] = None
    ) -> str:
        ...


@runtime_checkable
class RemoteTransfer(Protocol):
    """Adapters backed by a file transfer server (FTP, SFTP).

    URLs on such disks are built from the configured base URL, or fall back
    to the logical path itself.
    """

    transfer_protocol: str


@runtime_checkable
class LocalStorage(Protocol):
    """Adapters storing files on the local disk under ``root_location``."""

    root_location: str
