"""Adapter over any fsspec-compatible filesystem.

Used for the backends that fsspec already speaks: FTP, SFTP (paramiko),
Google Cloud Storage (gcsfs) and Azure Blob storage (adlfs). The in-memory
adapter builds on it as well.
"""

from __future__ import annotations

import logging
import mimetypes
import shutil
from datetime import datetime
from typing import Any, BinaryIO, Dict, Iterator, Optional

import fsspec
from fsspec.spec import AbstractFileSystem

from diskfoundry.adapters.base import SNIFF_LENGTH, FilesystemAdapter, WriteConfig, detect_mime_type
from diskfoundry.attributes import StorageAttributes
from diskfoundry.errors import (
    CopyFailure,
    DeleteFailure,
    DirectoryCreateFailure,
    DirectoryDeleteFailure,
    ListingFailure,
    MetadataUnavailable,
    MoveFailure,
    ReadFailure,
    VisibilitySetFailure,
    WriteFailure,
)
from diskfoundry.prefixer import PathPrefixer

logger = logging.getLogger(__name__)

__all__ = ["FsspecAdapter", "TransferServerAdapter", "get_fsspec_filesystem"]

# Object stores without real directories; parents are never created for them
OBJECT_STORE_PROTOCOLS = ("s3", "s3a", "gs", "gcs", "az", "abfs", "abfss")

_TIMESTAMP_KEYS = ("mtime", "LastModified", "last_modified", "updated", "modify", "created")


def get_fsspec_filesystem(protocol: str, **storage_options: Any) -> AbstractFileSystem:
    """Get an fsspec filesystem for ``protocol``.

    Example:
        >>> fs = get_fsspec_filesystem("ftp", host="ftp.example.com", port=21)
        >>> fs = get_fsspec_filesystem("gs", token="/path/to/credentials.json")
    """
    return fsspec.filesystem(protocol, **storage_options)


def _to_timestamp(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return int(value.timestamp())
    if isinstance(value, (int, float)):
        return int(value)
    text = str(value)
    # FTP MLSD facts use YYYYMMDDHHMMSS[.sss]
    if text[:14].isdigit() and len(text) >= 14:
        return int(datetime.strptime(text[:14], "%Y%m%d%H%M%S").timestamp())
    try:
        return int(datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp())
    except ValueError:
        return None


class FsspecAdapter(FilesystemAdapter):
    """Store files on an fsspec filesystem below ``root``.

    Visibility is not portable across fsspec implementations, so this
    adapter reports it as unsupported. Writes never fail because of the
    disk's default visibility; an explicit ``set_visibility`` does.
    """

    supports_visibility = False

    def __init__(self, fs: AbstractFileSystem, root: str = "") -> None:
        self.fs = fs
        self.prefixer = PathPrefixer(root)
        protocol = fs.protocol if isinstance(fs.protocol, str) else fs.protocol[0]
        self.protocol = protocol
        self.create_parents = protocol not in OBJECT_STORE_PROTOCOLS

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(protocol={self.protocol!r}, root={self.prefixer.prefix!r})"

    def _location(self, path: str) -> str:
        return self.prefixer.prefix_path(path)

    def _directory_location(self, path: str) -> str:
        location = self._location(path).rstrip("/")
        if not location and self.prefixer.prefix.startswith("/"):
            return "/"
        return location

    def _logical(self, name: str) -> str:
        base = self.prefixer.prefix.lstrip("/")
        name = name.strip("/")
        if base:
            if name + "/" == base:
                return ""
            if name.startswith(base):
                name = name[len(base):]
        return name

    def _ensure_parent(self, location: str) -> None:
        if not self.create_parents:
            return
        parent = self.fs._parent(location)
        if parent and not self.fs.isdir(parent):
            self.fs.makedirs(parent, exist_ok=True)

    # -------------------------------------------------------------------------
    # Existence
    # -------------------------------------------------------------------------

    def file_exists(self, path: str) -> bool:
        location = self._location(path)
        try:
            return bool(self.fs.isfile(location))
        except Exception as e:
            logger.debug("Error checking existence of %s: %s", location, e)
            return False

    def directory_exists(self, path: str) -> bool:
        location = self._directory_location(path)
        try:
            return bool(self.fs.isdir(location))
        except Exception as e:
            logger.debug("Error checking directory %s: %s", location, e)
            return False

    # -------------------------------------------------------------------------
    # Reads and writes
    # -------------------------------------------------------------------------

    def write(self, path: str, contents: bytes, config: WriteConfig) -> None:
        location = self._location(path)
        try:
            self._ensure_parent(location)
            self.fs.pipe_file(location, contents)
        except Exception as e:
            raise WriteFailure.at(path, cause=e) from e
        self._after_write(path, config)

    def write_stream(self, path: str, stream: BinaryIO, config: WriteConfig) -> None:
        location = self._location(path)
        try:
            self._ensure_parent(location)
            with self.fs.open(location, "wb") as handle:
                shutil.copyfileobj(stream, handle)
        except Exception as e:
            raise WriteFailure.at(path, cause=e) from e
        self._after_write(path, config)

    def _after_write(self, path: str, config: WriteConfig) -> None:
        if config.get("visibility") and not self.supports_visibility:
            logger.debug("Ignoring visibility for %s on %s", path, self.protocol)

    def read(self, path: str) -> bytes:
        try:
            return self.fs.cat_file(self._location(path))
        except Exception as e:
            raise ReadFailure.at(path, cause=e) from e

    def read_stream(self, path: str) -> BinaryIO:
        location = self._location(path)
        try:
            if not self.fs.isfile(location):
                raise FileNotFoundError(location)
            return self.fs.open(location, "rb")
        except Exception as e:
            raise ReadFailure.at(path, cause=e) from e

    # -------------------------------------------------------------------------
    # Deletion and directories
    # -------------------------------------------------------------------------

    def delete(self, path: str) -> None:
        location = self._location(path)
        try:
            if self.fs.isfile(location):
                self.fs.rm_file(location)
        except Exception as e:
            raise DeleteFailure.at(path, cause=e) from e

    def delete_directory(self, path: str) -> None:
        location = self._directory_location(path)
        try:
            if self.fs.isdir(location):
                self.fs.rm(location, recursive=True)
        except Exception as e:
            raise DirectoryDeleteFailure.at(path, cause=e) from e

    def create_directory(self, path: str, config: WriteConfig) -> None:
        location = self._directory_location(path)
        try:
            self.fs.makedirs(location, exist_ok=True)
        except Exception as e:
            raise DirectoryCreateFailure.at(path, cause=e) from e

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def set_visibility(self, path: str, visibility: str) -> None:
        raise VisibilitySetFailure.at(
            path, reason=f"Visibility is not supported by the {self.protocol} backend."
        )

    def visibility(self, path: str) -> StorageAttributes:
        raise MetadataUnavailable.for_attribute(
            path, "visibility", reason=f"Visibility is not supported by the {self.protocol} backend."
        )

    def _file_info(self, path: str, attribute: str) -> Dict[str, Any]:
        location = self._location(path)
        try:
            info = self.fs.info(location)
        except Exception as e:
            raise MetadataUnavailable.for_attribute(path, attribute, cause=e) from e
        if info.get("type") == "directory":
            raise MetadataUnavailable.for_attribute(path, attribute, reason="Path is a directory.")
        return info

    def mime_type(self, path: str) -> StorageAttributes:
        info = self._file_info(path, "mime_type")
        mime_type = info.get("ContentType") or info.get("contentType") or info.get("content_type")
        if not mime_type:
            mime_type, _ = mimetypes.guess_type(path)
        if not mime_type:
            try:
                with self.fs.open(self._location(path), "rb") as handle:
                    head = handle.read(SNIFF_LENGTH)
            except Exception as e:
                raise MetadataUnavailable.for_attribute(path, "mime_type", cause=e) from e
            mime_type = detect_mime_type(path, head)
        return StorageAttributes.file(path, mime_type=mime_type)

    def last_modified(self, path: str) -> StorageAttributes:
        info = self._file_info(path, "last_modified")
        timestamp = None
        for key in _TIMESTAMP_KEYS:
            timestamp = _to_timestamp(info.get(key))
            if timestamp is not None:
                break
        if timestamp is None:
            raise MetadataUnavailable.for_attribute(path, "last_modified")
        return StorageAttributes.file(path, last_modified=timestamp)

    def file_size(self, path: str) -> StorageAttributes:
        info = self._file_info(path, "file_size")
        size = info.get("size", info.get("Size"))
        if size is None:
            raise MetadataUnavailable.for_attribute(path, "file_size")
        return StorageAttributes.file(path, file_size=int(size))

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def list_contents(self, path: str, deep: bool) -> Iterator[StorageAttributes]:
        location = self._directory_location(path)
        try:
            if not self.fs.isdir(location):
                return
            if deep:
                items = self.fs.find(location, withdirs=True, detail=True)
            else:
                items = self.fs.ls(location, detail=True)
        except Exception as e:
            raise ListingFailure.at(path, cause=e) from e

        if isinstance(items, dict):
            entries = list(items.values())
        else:
            entries = [item for item in items if isinstance(item, dict)]

        listed = path.strip("/")
        for info in entries:
            logical = self._logical(info.get("name", ""))
            if not logical or logical == listed:
                continue
            yield self._attributes_for(logical, info)

    def _attributes_for(self, logical: str, info: Dict[str, Any]) -> StorageAttributes:
        timestamp = None
        for key in _TIMESTAMP_KEYS:
            timestamp = _to_timestamp(info.get(key))
            if timestamp is not None:
                break
        if info.get("type") == "directory":
            return StorageAttributes.directory(logical, last_modified=timestamp)
        return StorageAttributes.file(
            logical,
            file_size=info.get("size", info.get("Size")),
            last_modified=timestamp,
            visibility=self._visibility_of(logical),
        )

    def _visibility_of(self, logical: str) -> Optional[str]:
        return None

    # -------------------------------------------------------------------------
    # Copy / move
    # -------------------------------------------------------------------------

    def copy(self, source: str, destination: str, config: WriteConfig) -> None:
        origin = self._location(source)
        target = self._location(destination)
        try:
            self._ensure_parent(target)
            try:
                self.fs.cp_file(origin, target)
            except NotImplementedError:
                self.fs.pipe_file(target, self.fs.cat_file(origin))
        except Exception as e:
            raise CopyFailure.between(source, destination, cause=e) from e

    def move(self, source: str, destination: str, config: WriteConfig) -> None:
        origin = self._location(source)
        target = self._location(destination)
        try:
            self._ensure_parent(target)
            self.fs.mv(origin, target)
        except Exception as e:
            raise MoveFailure.between(source, destination, cause=e) from e


class TransferServerAdapter(FsspecAdapter):
    """Adapter for file transfer servers (FTP, SFTP)."""

    def __init__(self, fs: AbstractFileSystem, root: str = "", transfer_protocol: str = "ftp") -> None:
        super().__init__(fs, root)
        self.transfer_protocol = transfer_protocol
