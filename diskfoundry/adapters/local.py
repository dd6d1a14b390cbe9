"""Local filesystem adapter."""

from __future__ import annotations

import logging
import mimetypes
import os
import shutil
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

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
    SymbolicLinkEncountered,
    VisibilitySetFailure,
    WriteFailure,
)
from diskfoundry.prefixer import PathPrefixer
from diskfoundry.visibility import PortableVisibilityConverter, Visibility

try:
    import fcntl
except ImportError:  # pragma: no cover - not available on Windows
    fcntl = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

__all__ = ["LocalAdapter", "SKIP_LINKS", "DISALLOW_LINKS"]

SKIP_LINKS = "skip"
DISALLOW_LINKS = "disallow"


class LocalAdapter(FilesystemAdapter):
    """Store files below a directory on the local disk.

    Visibility maps to unix permission bits through a
    ``PortableVisibilityConverter``. Symbolic links met while listing are
    either skipped or rejected with ``SymbolicLinkEncountered``.

    Example:
        >>> adapter = LocalAdapter("/var/storage")
        >>> adapter.write("reports/today.txt", b"ok", {})
        >>> adapter.read("reports/today.txt")
        b'ok'
    """

    def __init__(
        self,
        root: str,
        visibility: Optional[PortableVisibilityConverter] = None,
        lock: bool = True,
        links: str = DISALLOW_LINKS,
    ) -> None:
        self.root_location = os.path.abspath(root)
        self.prefixer = PathPrefixer(self.root_location, "/")
        self.converter = visibility or PortableVisibilityConverter()
        self.lock = lock
        self.links = links

    def __repr__(self) -> str:
        return f"LocalAdapter(root={self.root_location!r})"

    def _location(self, path: str) -> Path:
        return Path(self.prefixer.prefix_path(path))

    def _ensure_directory(self, directory: Path, visibility: Optional[str] = None) -> None:
        if directory.is_dir():
            return
        mode = (
            self.converter.for_directory(visibility)
            if visibility
            else self.converter.default_for_directory()
        )
        try:
            directory.mkdir(mode=mode, parents=True, exist_ok=True)
            os.chmod(directory, mode)
        except OSError as e:
            raise DirectoryCreateFailure.at(str(directory), cause=e) from e

    def _apply_visibility(self, location: Path, config: WriteConfig) -> None:
        visibility = config.get("visibility")
        if visibility:
            os.chmod(location, self.converter.for_file(visibility))

    # -------------------------------------------------------------------------
    # Existence
    # -------------------------------------------------------------------------

    def file_exists(self, path: str) -> bool:
        return self._location(path).is_file()

    def directory_exists(self, path: str) -> bool:
        return self._location(path).is_dir()

    # -------------------------------------------------------------------------
    # Reads and writes
    # -------------------------------------------------------------------------

    def write(self, path: str, contents: bytes, config: WriteConfig) -> None:
        location = self._location(path)
        try:
            self._ensure_directory(location.parent, config.get("directory_visibility"))
            with self._open_for_write(location) as handle:
                handle.write(contents)
            self._apply_visibility(location, config)
        except (OSError, DirectoryCreateFailure) as e:
            raise WriteFailure.at(path, cause=e) from e
        logger.debug("Wrote %d bytes to %s", len(contents), location)

    def write_stream(self, path: str, stream: BinaryIO, config: WriteConfig) -> None:
        location = self._location(path)
        try:
            self._ensure_directory(location.parent, config.get("directory_visibility"))
            with self._open_for_write(location) as handle:
                shutil.copyfileobj(stream, handle)
            self._apply_visibility(location, config)
        except (OSError, DirectoryCreateFailure) as e:
            raise WriteFailure.at(path, cause=e) from e

    def _open_for_write(self, location: Path) -> BinaryIO:
        """Open ``location`` for writing, truncating only once the lock is held."""
        handle = os.fdopen(os.open(location, os.O_WRONLY | os.O_CREAT | getattr(os, "O_BINARY", 0), 0o666), "wb")
        try:
            if self.lock and fcntl is not None:
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            handle.truncate(0)
        except OSError:
            handle.close()
            raise
        return handle

    def read(self, path: str) -> bytes:
        try:
            return self._location(path).read_bytes()
        except OSError as e:
            raise ReadFailure.at(path, cause=e) from e

    def read_stream(self, path: str) -> BinaryIO:
        try:
            return open(self._location(path), "rb")
        except OSError as e:
            raise ReadFailure.at(path, cause=e) from e

    # -------------------------------------------------------------------------
    # Deletion and directories
    # -------------------------------------------------------------------------

    def delete(self, path: str) -> None:
        location = self._location(path)
        if not location.exists() and not location.is_symlink():
            return
        try:
            location.unlink()
        except OSError as e:
            raise DeleteFailure.at(path, cause=e) from e

    def delete_directory(self, path: str) -> None:
        location = self._location(path)
        if not location.is_dir():
            return
        try:
            shutil.rmtree(location)
        except OSError as e:
            raise DirectoryDeleteFailure.at(path, cause=e) from e

    def create_directory(self, path: str, config: WriteConfig) -> None:
        location = self._location(path)
        visibility = config.get("directory_visibility") or config.get("visibility")
        try:
            self._ensure_directory(location, visibility)
            if visibility:
                os.chmod(location, self.converter.for_directory(visibility))
        except DirectoryCreateFailure as e:
            raise DirectoryCreateFailure.at(path, cause=e.cause) from e
        except OSError as e:
            raise DirectoryCreateFailure.at(path, cause=e) from e

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def set_visibility(self, path: str, visibility: str) -> None:
        location = self._location(path)
        try:
            if location.is_dir():
                mode = self.converter.for_directory(visibility)
            else:
                mode = self.converter.for_file(visibility)
            os.chmod(location, mode)
        except (OSError, ValueError) as e:
            raise VisibilitySetFailure.at(path, cause=e) from e

    def visibility(self, path: str) -> StorageAttributes:
        location = self._location(path)
        try:
            mode = location.stat().st_mode
        except OSError as e:
            raise MetadataUnavailable.for_attribute(path, "visibility", cause=e) from e
        if location.is_dir():
            visibility = self.converter.inverse_for_directory(mode)
            return StorageAttributes.directory(path, visibility=visibility.value)
        visibility = self.converter.inverse_for_file(mode)
        return StorageAttributes.file(path, visibility=visibility.value)

    def mime_type(self, path: str) -> StorageAttributes:
        location = self._location(path)
        if not location.is_file():
            raise MetadataUnavailable.for_attribute(path, "mime_type", reason="File does not exist.")
        mime_type, _ = mimetypes.guess_type(location.name)
        if mime_type is None:
            try:
                with open(location, "rb") as handle:
                    head = handle.read(SNIFF_LENGTH)
            except OSError as e:
                raise MetadataUnavailable.for_attribute(path, "mime_type", cause=e) from e
            mime_type = detect_mime_type(location.name, head)
        return StorageAttributes.file(path, mime_type=mime_type)

    def last_modified(self, path: str) -> StorageAttributes:
        try:
            stat = self._location(path).stat()
        except OSError as e:
            raise MetadataUnavailable.for_attribute(path, "last_modified", cause=e) from e
        return StorageAttributes.file(path, last_modified=int(stat.st_mtime))

    def file_size(self, path: str) -> StorageAttributes:
        location = self._location(path)
        try:
            if not location.is_file():
                raise FileNotFoundError(f"No file at {location}")
            stat = location.stat()
        except OSError as e:
            raise MetadataUnavailable.for_attribute(path, "file_size", cause=e) from e
        return StorageAttributes.file(path, file_size=stat.st_size)

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def list_contents(self, path: str, deep: bool) -> Iterator[StorageAttributes]:
        location = self._location(path)
        if not location.is_dir():
            return
        pending = [str(location)]
        while pending:
            current = pending.pop(0)
            try:
                with os.scandir(current) as entries:
                    for entry in entries:
                        if entry.is_symlink():
                            if self.links == SKIP_LINKS:
                                continue
                            raise SymbolicLinkEncountered.at(self.prefixer.strip_prefix(entry.path))
                        yield self._attributes_for(entry)
                        if deep and entry.is_dir():
                            pending.append(entry.path)
            except OSError as e:
                raise ListingFailure.at(path, cause=e) from e

    def _attributes_for(self, entry: "os.DirEntry[str]") -> StorageAttributes:
        logical = self.prefixer.strip_prefix(entry.path.replace(os.sep, "/"))
        stat = entry.stat()
        if entry.is_dir():
            return StorageAttributes.directory(
                logical,
                visibility=self.converter.inverse_for_directory(stat.st_mode).value,
                last_modified=int(stat.st_mtime),
            )
        return StorageAttributes.file(
            logical,
            file_size=stat.st_size,
            visibility=self.converter.inverse_for_file(stat.st_mode).value,
            last_modified=int(stat.st_mtime),
        )

    # -------------------------------------------------------------------------
    # Copy / move
    # -------------------------------------------------------------------------

    def move(self, source: str, destination: str, config: WriteConfig) -> None:
        target = self._location(destination)
        try:
            self._ensure_directory(target.parent, config.get("directory_visibility"))
            os.replace(self._location(source), target)
        except (OSError, DirectoryCreateFailure) as e:
            raise MoveFailure.between(source, destination, cause=e) from e

    def copy(self, source: str, destination: str, config: WriteConfig) -> None:
        origin = self._location(source)
        target = self._location(destination)
        try:
            self._ensure_directory(target.parent, config.get("directory_visibility"))
            shutil.copyfile(origin, target)
            shutil.copymode(origin, target)
            if config.get("visibility"):
                os.chmod(target, self.converter.for_file(Visibility.normalize(config["visibility"])))
        except (OSError, DirectoryCreateFailure) as e:
            raise CopyFailure.between(source, destination, cause=e) from e
