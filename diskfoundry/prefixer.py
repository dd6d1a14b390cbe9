"""Logical to physical path mapping.

Every disk is namespaced under a root (and optionally a sub-prefix). Callers
only ever see logical paths; adapters prepend the root through a
``PathPrefixer`` before touching the backend and strip it again from
listings.
"""

from __future__ import annotations

import re
from typing import List

from diskfoundry.errors import CorruptedPathDetected, PathTraversalDetected

__all__ = ["PathPrefixer", "normalize_path"]

_SEPARATORS = "\\/"
_CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")


class PathPrefixer:
    """Prefix logical paths with a root and strip it back off.

    Example:
        >>> prefixer = PathPrefixer("/var/storage/")
        >>> prefixer.prefix_path("avatars/1.png")
        '/var/storage/avatars/1.png'
        >>> prefixer.strip_prefix("/var/storage/avatars/1.png")
        'avatars/1.png'
    """

    def __init__(self, prefix: str, separator: str = "/") -> None:
        self.separator = separator
        self.prefix = prefix.rstrip(_SEPARATORS)
        if self.prefix != "" or prefix == separator:
            self.prefix += separator

    def prefix_path(self, path: str) -> str:
        return self.prefix + path.lstrip(_SEPARATORS)

    def strip_prefix(self, path: str) -> str:
        return path[len(self.prefix):]

    def strip_directory_prefix(self, path: str) -> str:
        return self.strip_prefix(path).rstrip(_SEPARATORS)

    def prefix_directory_path(self, path: str) -> str:
        prefixed = self.prefix_path(path)
        if prefixed == "" or prefixed.endswith(self.separator):
            return prefixed
        return prefixed + self.separator

    def chain(self, sub_prefix: str) -> "PathPrefixer":
        """Return a prefixer rooted at ``sub_prefix`` beneath this one."""
        return PathPrefixer(self.prefix_path(sub_prefix), self.separator)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(prefix={self.prefix!r})"


def normalize_path(path: str) -> str:
    """Normalize a logical path.

    Backslashes become forward slashes, empty and ``.`` segments are
    dropped and ``..`` segments are resolved. A path that climbs above the
    root raises ``PathTraversalDetected``.

    Example:
        >>> normalize_path("./docs//2024/../report.pdf")
        'docs/report.pdf'
    """
    if _CONTROL_CHARACTERS.search(path):
        raise CorruptedPathDetected(path)

    parts: List[str] = []
    for segment in path.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise PathTraversalDetected(path)
            parts.pop()
            continue
        parts.append(segment)
    return "/".join(parts)
