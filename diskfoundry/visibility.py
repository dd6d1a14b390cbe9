"""File visibility at the uniform layer.

Backends express access control in their own terms (unix permission bits,
object ACLs). The uniform layer only ever exposes two values, ``public``
and ``private``; adapters translate in both directions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Union

__all__ = ["Visibility", "PortableVisibilityConverter"]


class Visibility(str, Enum):
    """Two-valued visibility enumeration."""

    PUBLIC = "public"
    PRIVATE = "private"

    @classmethod
    def choices(cls) -> List[str]:
        """Return list of valid enum values."""
        return [member.value for member in cls]

    @classmethod
    def normalize(cls, raw: Union[str, "Visibility", None], default: Optional["Visibility"] = None) -> "Visibility":
        """Normalize a visibility value."""
        if isinstance(raw, cls):
            return raw
        if raw is None:
            if default is None:
                raise ValueError("Visibility is required")
            return default

        candidate = str(raw).strip().lower()
        for member in cls:
            if member.value == candidate:
                return member

        raise ValueError(
            f"Invalid visibility '{raw}'. Valid options: {', '.join(cls.choices())}"
        )


_DEFAULT_PERMISSIONS: Dict[str, Dict[str, int]] = {
    "file": {"public": 0o644, "private": 0o600},
    "dir": {"public": 0o755, "private": 0o700},
}


@dataclass(frozen=True)
class PortableVisibilityConverter:
    """Map visibility to unix permission bits and back.

    Example:
        >>> converter = PortableVisibilityConverter.from_mapping({"file": {"public": 0o664}})
        >>> oct(converter.for_file(Visibility.PUBLIC))
        '0o664'
        >>> converter.inverse_for_file(0o600)
        <Visibility.PRIVATE: 'private'>
    """

    file_public: int = 0o644
    file_private: int = 0o600
    directory_public: int = 0o755
    directory_private: int = 0o700
    default_for_directories: Visibility = Visibility.PRIVATE

    @classmethod
    def from_mapping(
        cls,
        permissions: Optional[Mapping[str, Mapping[str, int]]] = None,
        default_for_directories: Union[str, Visibility] = Visibility.PRIVATE,
    ) -> "PortableVisibilityConverter":
        merged = {kind: dict(modes) for kind, modes in _DEFAULT_PERMISSIONS.items()}
        for kind, modes in (permissions or {}).items():
            merged.setdefault(kind, {}).update(modes)
        return cls(
            file_public=merged["file"]["public"],
            file_private=merged["file"]["private"],
            directory_public=merged["dir"]["public"],
            directory_private=merged["dir"]["private"],
            default_for_directories=Visibility.normalize(default_for_directories),
        )

    def for_file(self, visibility: Union[str, Visibility]) -> int:
        if Visibility.normalize(visibility) is Visibility.PUBLIC:
            return self.file_public
        return self.file_private

    def for_directory(self, visibility: Union[str, Visibility]) -> int:
        if Visibility.normalize(visibility) is Visibility.PUBLIC:
            return self.directory_public
        return self.directory_private

    def inverse_for_file(self, mode: int) -> Visibility:
        mode &= 0o777
        if mode == self.file_public:
            return Visibility.PUBLIC
        if mode == self.file_private:
            return Visibility.PRIVATE
        # Anything else counts as public when others may read it
        return Visibility.PUBLIC if mode & 0o004 else Visibility.PRIVATE

    def inverse_for_directory(self, mode: int) -> Visibility:
        mode &= 0o777
        if mode == self.directory_public:
            return Visibility.PUBLIC
        if mode == self.directory_private:
            return Visibility.PRIVATE
        return Visibility.PUBLIC if mode & 0o004 else Visibility.PRIVATE

    def default_for_directory(self) -> int:
        return self.for_directory(self.default_for_directories)
