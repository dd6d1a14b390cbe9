"""Adapter decorators applied by the driver when building a disk.

``ReadOnlyAdapter`` rejects every mutating call; ``PathPrefixedAdapter``
namespaces a disk below a sub-prefix of the backend root. When both are
configured, the read-only wrapper sits closest to the backend.
"""

from __future__ import annotations

from typing import BinaryIO, Iterator

from diskfoundry.adapters.base import FilesystemAdapter, WriteConfig
from diskfoundry.attributes import StorageAttributes
from diskfoundry.errors import (
    CopyFailure,
    DeleteFailure,
    DirectoryCreateFailure,
    DirectoryDeleteFailure,
    MoveFailure,
    VisibilitySetFailure,
    WriteFailure,
)
from diskfoundry.prefixer import PathPrefixer

__all__ = ["ReadOnlyAdapter", "PathPrefixedAdapter"]

_READ_ONLY = "This is a read-only adapter."


class ReadOnlyAdapter(FilesystemAdapter):
    """Forward reads to ``adapter`` and refuse all writes."""

    def __init__(self, adapter: FilesystemAdapter) -> None:
        self.adapter = adapter

    def __repr__(self) -> str:
        return f"ReadOnlyAdapter({self.adapter!r})"

    def file_exists(self, path: str) -> bool:
        return self.adapter.file_exists(path)

    def directory_exists(self, path: str) -> bool:
        return self.adapter.directory_exists(path)

    def read(self, path: str) -> bytes:
        return self.adapter.read(path)

    def read_stream(self, path: str) -> BinaryIO:
        return self.adapter.read_stream(path)

    def visibility(self, path: str) -> StorageAttributes:
        return self.adapter.visibility(path)

    def mime_type(self, path: str) -> StorageAttributes:
        return self.adapter.mime_type(path)

    def last_modified(self, path: str) -> StorageAttributes:
        return self.adapter.last_modified(path)

    def file_size(self, path: str) -> StorageAttributes:
        return self.adapter.file_size(path)

    def list_contents(self, path: str, deep: bool) -> Iterator[StorageAttributes]:
        return self.adapter.list_contents(path, deep)

    def write(self, path: str, contents: bytes, config: WriteConfig) -> None:
        raise WriteFailure.at(path, reason=_READ_ONLY)

    def write_stream(self, path: str, stream: BinaryIO, config: WriteConfig) -> None:
        raise WriteFailure.at(path, reason=_READ_ONLY)

    def delete(self, path: str) -> None:
        raise DeleteFailure.at(path, reason=_READ_ONLY)

    def delete_directory(self, path: str) -> None:
        raise DirectoryDeleteFailure.at(path, reason=_READ_ONLY)

    def create_directory(self, path: str, config: WriteConfig) -> None:
        raise DirectoryCreateFailure.at(path, reason=_READ_ONLY)

    def set_visibility(self, path: str, visibility: str) -> None:
        raise VisibilitySetFailure.at(path, reason=_READ_ONLY)

    def move(self, source: str, destination: str, config: WriteConfig) -> None:
        raise MoveFailure(f"Unable to move file from {source} to {destination}. {_READ_ONLY}",
                          path=source, destination=destination)

    def copy(self, source: str, destination: str, config: WriteConfig) -> None:
        raise CopyFailure(f"Unable to copy file from {source} to {destination}. {_READ_ONLY}",
                          path=source, destination=destination)


class PathPrefixedAdapter(FilesystemAdapter):
    """Place every path of ``adapter`` below ``prefix``.

    Listings are translated back, so callers never see the prefix.

    Example:
        >>> adapter = PathPrefixedAdapter(MemoryAdapter(), "tenant-a")
        >>> adapter.write("logo.png", b"...", {})
        >>> adapter.adapter.file_exists("tenant-a/logo.png")
        True
    """

    def __init__(self, adapter: FilesystemAdapter, prefix: str) -> None:
        if prefix.strip("/") == "":
            raise ValueError("The prefix must not be empty.")
        self.adapter = adapter
        self.prefixer = PathPrefixer(prefix.strip("/"))

    def __repr__(self) -> str:
        return f"PathPrefixedAdapter({self.adapter!r}, prefix={self.prefixer.prefix!r})"

    def _prefixed(self, path: str) -> str:
        return self.prefixer.prefix_path(path)

    def _unprefixed(self, attributes: StorageAttributes) -> StorageAttributes:
        return attributes.with_path(self.prefixer.strip_prefix(attributes.path))

    def file_exists(self, path: str) -> bool:
        return self.adapter.file_exists(self._prefixed(path))

    def directory_exists(self, path: str) -> bool:
        return self.adapter.directory_exists(self._prefixed(path))

    def write(self, path: str, contents: bytes, config: WriteConfig) -> None:
        self.adapter.write(self._prefixed(path), contents, config)

    def write_stream(self, path: str, stream: BinaryIO, config: WriteConfig) -> None:
        self.adapter.write_stream(self._prefixed(path), stream, config)

    def read(self, path: str) -> bytes:
        return self.adapter.read(self._prefixed(path))

    def read_stream(self, path: str) -> BinaryIO:
        return self.adapter.read_stream(self._prefixed(path))

    def delete(self, path: str) -> None:
        self.adapter.delete(self._prefixed(path))

    def delete_directory(self, path: str) -> None:
        self.adapter.delete_directory(self._prefixed(path))

    def create_directory(self, path: str, config: WriteConfig) -> None:
        self.adapter.create_directory(self._prefixed(path), config)

    def set_visibility(self, path: str, visibility: str) -> None:
        self.adapter.set_visibility(self._prefixed(path), visibility)

    def visibility(self, path: str) -> StorageAttributes:
        return self._unprefixed(self.adapter.visibility(self._prefixed(path)))

    def mime_type(self, path: str) -> StorageAttributes:
        return self._unprefixed(self.adapter.mime_type(self._prefixed(path)))

    def last_modified(self, path: str) -> StorageAttributes:
        return self._unprefixed(self.adapter.last_modified(self._prefixed(path)))

    def file_size(self, path: str) -> StorageAttributes:
        return self._unprefixed(self.adapter.file_size(self._prefixed(path)))

    def list_contents(self, path: str, deep: bool) -> Iterator[StorageAttributes]:
        for attributes in self.adapter.list_contents(self._prefixed(path), deep):
            yield self._unprefixed(attributes)

    def move(self, source: str, destination: str, config: WriteConfig) -> None:
        self.adapter.move(self._prefixed(source), self._prefixed(destination), config)

    def copy(self, source: str, destination: str, config: WriteConfig) -> None:
        self.adapter.copy(self._prefixed(source), self._prefixed(destination), config)
