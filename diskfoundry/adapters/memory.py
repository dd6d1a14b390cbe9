"""In-memory adapter backed by fsspec's memory filesystem."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fsspec.implementations.memory import MemoryFileSystem

from diskfoundry.adapters.base import WriteConfig
from diskfoundry.adapters.fsspec_adapter import FsspecAdapter
from diskfoundry.attributes import StorageAttributes
from diskfoundry.errors import MetadataUnavailable, VisibilitySetFailure
from diskfoundry.visibility import Visibility

logger = logging.getLogger(__name__)

__all__ = ["MemoryAdapter"]


class MemoryAdapter(FsspecAdapter):
    """Keep files in process memory.

    Each adapter owns a private store, so two memory disks never see each
    other's files. Visibility is tracked per path.

    Example:
        >>> adapter = MemoryAdapter()
        >>> adapter.write("notes.txt", b"hello", {"visibility": "private"})
        >>> adapter.visibility("notes.txt").visibility
        'private'
    """

    supports_visibility = True

    def __init__(self, default_visibility: str = Visibility.PUBLIC.value) -> None:
        fs = MemoryFileSystem(skip_instance_cache=True)
        # The class-level store is shared by every instance; give this one its own
        fs.store = {}
        fs.pseudo_dirs = [""]
        super().__init__(fs, root="")
        self.default_visibility = Visibility.normalize(default_visibility)
        self._visibility: Dict[str, Visibility] = {}

    def _after_write(self, path: str, config: WriteConfig) -> None:
        self._visibility[path] = Visibility.normalize(config.get("visibility"), self.default_visibility)

    def _visibility_of(self, logical: str) -> Optional[str]:
        return self._visibility.get(logical, self.default_visibility).value

    def delete(self, path: str) -> None:
        super().delete(path)
        self._visibility.pop(path, None)

    def delete_directory(self, path: str) -> None:
        super().delete_directory(path)
        prefix = path.rstrip("/") + "/" if path else ""
        for known in [p for p in self._visibility if p.startswith(prefix)]:
            del self._visibility[known]

    def set_visibility(self, path: str, visibility: str) -> None:
        if not self.file_exists(path):
            raise VisibilitySetFailure.at(path, reason="File does not exist.")
        try:
            self._visibility[path] = Visibility.normalize(visibility)
        except ValueError as e:
            raise VisibilitySetFailure.at(path, cause=e) from e

    def visibility(self, path: str) -> StorageAttributes:
        if not self.file_exists(path):
            raise MetadataUnavailable.for_attribute(path, "visibility", reason="File does not exist.")
        return StorageAttributes.file(path, visibility=self._visibility_of(path))

    def copy(self, source: str, destination: str, config: WriteConfig) -> None:
        retained = self._visibility.get(source, self.default_visibility)
        super().copy(source, destination, config)
        self._visibility[destination] = Visibility.normalize(config.get("visibility"), retained)

    def move(self, source: str, destination: str, config: WriteConfig) -> None:
        retained = self._visibility.get(source, self.default_visibility)
        super().move(source, destination, config)
        self._visibility.pop(source, None)
        self._visibility[destination] = Visibility.normalize(config.get("visibility"), retained)
