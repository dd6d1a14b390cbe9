"""Entries returned by adapter listings."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

__all__ = ["StorageAttributes", "FILE", "DIRECTORY"]

FILE = "file"
DIRECTORY = "dir"


@dataclass(frozen=True)
class StorageAttributes:
    """Information about a file or directory in storage."""

    path: str
    type: str = FILE
    file_size: Optional[int] = None
    visibility: Optional[str] = None
    last_modified: Optional[int] = None
    mime_type: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def file(cls, path: str, **kwargs: Any) -> "StorageAttributes":
        return cls(path=path, type=FILE, **kwargs)

    @classmethod
    def directory(cls, path: str, **kwargs: Any) -> "StorageAttributes":
        return cls(path=path, type=DIRECTORY, **kwargs)

    def is_file(self) -> bool:
        return self.type == FILE

    def is_dir(self) -> bool:
        return self.type == DIRECTORY

    def with_path(self, path: str) -> "StorageAttributes":
        return replace(self, path=path)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "type": self.type,
            "file_size": self.file_size,
            "visibility": self.visibility,
            "last_modified": self.last_modified,
            "mime_type": self.mime_type,
        }
