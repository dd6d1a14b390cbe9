"""Filesystem façade over a single adapter.

The façade normalises paths, merges the disk-level defaults
(``visibility``, ``directory_visibility``) into every write, checks that
copy and move sources exist and offers checksums and URL generation on top
of the raw adapter contract.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime
from typing import Any, BinaryIO, Callable, Dict, Iterator, Mapping, Optional, Union

from diskfoundry.adapters.base import FilesystemAdapter
from diskfoundry.attributes import StorageAttributes
from diskfoundry.errors import (
    CopyFailure,
    MetadataUnavailable,
    MoveFailure,
    ReadFailure,
    UnsupportedOperation,
)
from diskfoundry.prefixer import normalize_path

logger = logging.getLogger(__name__)

__all__ = ["Filesystem", "FACADE_CONFIG_KEYS"]

# Disk configuration keys the driver hands down to the façade
FACADE_CONFIG_KEYS = (
    "directory_visibility",
    "disable_asserts",
    "temporary_url",
    "url",
    "visibility",
)

PublicUrlGenerator = Callable[[str, Mapping[str, Any]], str]
TemporaryUrlFactory = Callable[[str, datetime, Mapping[str, Any]], str]

_CHUNK_SIZE = 64 * 1024


class Filesystem:
    """Path-normalising operations on top of one adapter.

    Args:
        adapter: The (possibly wrapped) adapter doing the work
        config: Disk level settings, see ``FACADE_CONFIG_KEYS``
        public_url_generator: Optional callable ``(path, config) -> url``
        temporary_url_generator: Optional callable ``(path, expires_at, config) -> url``
    """

    def __init__(
        self,
        adapter: FilesystemAdapter,
        config: Optional[Mapping[str, Any]] = None,
        public_url_generator: Optional[PublicUrlGenerator] = None,
        temporary_url_generator: Optional[TemporaryUrlFactory] = None,
    ) -> None:
        self.adapter = adapter
        self.config: Dict[str, Any] = {
            key: value for key, value in (config or {}).items() if value is not None
        }
        self.public_url_generator = public_url_generator
        self.temporary_url_generator = temporary_url_generator

    def __repr__(self) -> str:
        return f"Filesystem({self.adapter!r})"

    def _write_config(self, options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        merged = {
            key: self.config[key]
            for key in ("visibility", "directory_visibility")
            if key in self.config
        }
        merged.update({k: v for k, v in (options or {}).items() if v is not None})
        return merged

    @property
    def asserts_enabled(self) -> bool:
        return not self.config.get("disable_asserts", False)

    # -------------------------------------------------------------------------
    # Existence
    # -------------------------------------------------------------------------

    def file_exists(self, path: str) -> bool:
        return self.adapter.file_exists(normalize_path(path))

    def directory_exists(self, path: str) -> bool:
        return self.adapter.directory_exists(normalize_path(path))

    def has(self, path: str) -> bool:
        """Return True if a file or a directory exists at ``path``."""
        location = normalize_path(path)
        return self.adapter.file_exists(location) or self.adapter.directory_exists(location)

    # -------------------------------------------------------------------------
    # Reads and writes
    # -------------------------------------------------------------------------

    def write(self, path: str, contents: Union[bytes, str], config: Optional[Mapping[str, Any]] = None) -> None:
        if isinstance(contents, str):
            contents = contents.encode("utf-8")
        self.adapter.write(normalize_path(path), contents, self._write_config(config))

    def write_stream(self, path: str, stream: BinaryIO, config: Optional[Mapping[str, Any]] = None) -> None:
        self.adapter.write_stream(normalize_path(path), stream, self._write_config(config))

    def read(self, path: str) -> bytes:
        return self.adapter.read(normalize_path(path))

    def read_stream(self, path: str) -> BinaryIO:
        return self.adapter.read_stream(normalize_path(path))

    # -------------------------------------------------------------------------
    # Deletion and directories
    # -------------------------------------------------------------------------

    def delete(self, path: str) -> None:
        self.adapter.delete(normalize_path(path))

    def delete_directory(self, path: str) -> None:
        self.adapter.delete_directory(normalize_path(path))

    def create_directory(self, path: str, config: Optional[Mapping[str, Any]] = None) -> None:
        self.adapter.create_directory(normalize_path(path), self._write_config(config))

    def list_contents(self, path: str = "", deep: bool = False) -> Iterator[StorageAttributes]:
        return self.adapter.list_contents(normalize_path(path), deep)

    # -------------------------------------------------------------------------
    # Copy / move
    # -------------------------------------------------------------------------

    def move(self, source: str, destination: str, config: Optional[Mapping[str, Any]] = None) -> None:
        source, destination = normalize_path(source), normalize_path(destination)
        if self.asserts_enabled and not self.adapter.file_exists(source):
            raise MoveFailure.between(source, destination, cause=FileNotFoundError(source))
        if source == destination:
            return
        self.adapter.move(source, destination, self._write_config(config))

    def copy(self, source: str, destination: str, config: Optional[Mapping[str, Any]] = None) -> None:
        source, destination = normalize_path(source), normalize_path(destination)
        if self.asserts_enabled and not self.adapter.file_exists(source):
            raise CopyFailure.between(source, destination, cause=FileNotFoundError(source))
        if source == destination:
            return
        self.adapter.copy(source, destination, self._write_config(config))

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def last_modified(self, path: str) -> int:
        return self.adapter.last_modified(normalize_path(path)).last_modified

    def file_size(self, path: str) -> int:
        return self.adapter.file_size(normalize_path(path)).file_size

    def mime_type(self, path: str) -> str:
        return self.adapter.mime_type(normalize_path(path)).mime_type

    def visibility(self, path: str) -> str:
        return self.adapter.visibility(normalize_path(path)).visibility

    def set_visibility(self, path: str, visibility: str) -> None:
        self.adapter.set_visibility(normalize_path(path), str(getattr(visibility, "value", visibility)))

    def checksum(self, path: str, algo: str = "md5") -> str:
        """Return the hex digest of the file contents.

        Raises:
            MetadataUnavailable: If the file cannot be read or ``algo`` is unknown
        """
        location = normalize_path(path)
        try:
            digest = hashlib.new(algo)
        except ValueError as e:
            raise MetadataUnavailable.for_attribute(location, "checksum", cause=e) from e

        try:
            stream = self.adapter.read_stream(location)
        except ReadFailure as e:
            raise MetadataUnavailable.for_attribute(location, "checksum", cause=e) from e
        try:
            for chunk in iter(lambda: stream.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        finally:
            stream.close()
        return digest.hexdigest()

    # -------------------------------------------------------------------------
    # URLs
    # -------------------------------------------------------------------------

    def has_public_url_generator(self) -> bool:
        return self.public_url_generator is not None

    def public_url(self, path: str) -> str:
        if self.public_url_generator is None:
            raise UnsupportedOperation("No public URL generator configured.", operation="url")
        return self.public_url_generator(normalize_path(path), self.config)

    def temporary_url(
        self, path: str, expires_at: datetime, config: Optional[Mapping[str, Any]] = None
    ) -> str:
        """Build a time-limited URL from the generator or the ``temporary_url`` template.

        The template may use ``{path}`` and ``{expires}`` (a unix timestamp).
        """
        location = normalize_path(path)
        merged = {**self.config, **(config or {})}
        if self.temporary_url_generator is not None:
            return self.temporary_url_generator(location, expires_at, merged)
        template = self.config.get("temporary_url")
        if template:
            return str(template).format(path=location, expires=int(expires_at.timestamp()))
        raise UnsupportedOperation("This driver does not support creating temporary URLs.", operation="temporary_url")
