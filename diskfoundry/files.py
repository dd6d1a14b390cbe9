"""Local file references used as upload sources.

``File`` points at a file on the local disk; ``UploadedFile`` adds the
name and content type the client sent. Both can generate a storage name
through ``hash_name``.
"""

from __future__ import annotations

import hashlib
import inspect
import mimetypes
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Callable, Optional, Union

__all__ = ["File", "UploadedFile", "NameRule"]

# A hash algorithm name, or a callable producing the name (optionally from the file)
NameRule = Union[str, Callable[..., str], None]

_CHUNK_SIZE = 64 * 1024


class File:
    """A file on the local disk.

    Example:
        >>> f = File("/tmp/report.pdf")
        >>> f.extension
        'pdf'
        >>> f.hash_name("sha1")       # doctest: +SKIP
        '3f/786850e387550fdab836ed7e6dc881de23001b.pdf'
    """

    def __init__(self, path: Union[str, os.PathLike], check: bool = True) -> None:
        self.path = Path(path)
        if check and not self.path.is_file():
            raise FileNotFoundError(f"The file \"{self.path}\" does not exist")
        self._hash_name: Optional[str] = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self.path)!r})"

    @property
    def real_path(self) -> str:
        return os.path.realpath(self.path)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def extension(self) -> str:
        return self.path.suffix.lstrip(".").lower()

    @property
    def mime_type(self) -> Optional[str]:
        return mimetypes.guess_type(self.path.name)[0]

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def open(self) -> BinaryIO:
        """Open the file for binary reading. The caller closes it."""
        return open(self.real_path, "rb")

    def hash(self, algo: str = "sha1") -> str:
        digest = hashlib.new(algo)
        with self.open() as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()

    def hash_name(self, rule: NameRule = None) -> str:
        """Generate a storage name for this file.

        Rules:
            - a callable taking the file: its return value
            - a hashlib algorithm name: ``ab/cdef...`` split after two characters
            - any other callable (no arguments): its return value
            - None: ``YYYYMMDD/<md5 of the current time and the path>``

        The file extension is appended in every case. The generated name is
        remembered, so repeated calls return the same value.
        """
        if self._hash_name is None:
            self._hash_name = self._generate_name(rule)
        extension = self.extension
        return f"{self._hash_name}.{extension}" if extension else self._hash_name

    def _generate_name(self, rule: NameRule) -> str:
        if callable(rule):
            if _accepts_argument(rule):
                return str(rule(self))
            return str(rule())
        if isinstance(rule, str) and rule in hashlib.algorithms_available:
            digest = self.hash(rule)
            return f"{digest[:2]}/{digest[2:]}"
        if rule is not None:
            raise ValueError(f"Unsupported naming rule: {rule!r}")
        seed = f"{time.time()}{self.path}".encode("utf-8")
        return f"{datetime.now():%Y%m%d}/{hashlib.md5(seed).hexdigest()}"


class UploadedFile(File):
    """A file received from a client, stored at a temporary local path."""

    def __init__(
        self,
        path: Union[str, os.PathLike],
        original_name: str,
        mime_type: Optional[str] = None,
        check: bool = True,
    ) -> None:
        super().__init__(path, check=check)
        self.original_name = original_name
        self.original_mime = mime_type

    @property
    def extension(self) -> str:
        return Path(self.original_name).suffix.lstrip(".").lower()

    @property
    def mime_type(self) -> Optional[str]:
        return self.original_mime or mimetypes.guess_type(self.original_name)[0]


def _accepts_argument(func: Callable[..., Any]) -> bool:
    try:
        parameters = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return True
    return any(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.VAR_POSITIONAL) for p in parameters
    )
