"""Driver: the uniform operation surface of one disk.

A driver owns one adapter, the façade built over it and the prefixer that
maps logical paths to physical ones. Every operation that can fail at the
storage level goes through ``attempt``: with ``throw: true`` on the disk the
typed error propagates, otherwise it is logged and the operation's sentinel
(``False``, ``None`` or ``[]``) is returned instead. Misconfiguration
(``ConfigurationError``, ``UnsupportedOperation``, invalid paths) always
propagates.
"""

from __future__ import annotations

import functools
import logging
import os
import posixpath
from datetime import datetime, timedelta, timezone
from typing import Any, BinaryIO, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar, Union

from diskfoundry.adapters.base import (
    FilesystemAdapter,
    LocalStorage,
    RemoteTransfer,
    TemporaryUrlGenerator,
    UrlResolvable,
)
from diskfoundry.adapters.wrappers import PathPrefixedAdapter, ReadOnlyAdapter
from diskfoundry.config import DiskConfig
from diskfoundry.errors import DeleteFailure, FilesystemOperationError, UnsupportedOperation
from diskfoundry.files import File, NameRule
from diskfoundry.filesystem import Filesystem, PublicUrlGenerator
from diskfoundry.http import DISPOSITION_ATTACHMENT, DISPOSITION_INLINE, StreamedResponse, fallback_name, make_disposition
from diskfoundry.logging_config import failure_context
from diskfoundry.prefixer import PathPrefixer, normalize_path
from diskfoundry.visibility import Visibility

logger = logging.getLogger(__name__)

__all__ = ["Driver", "attempt", "concat_path_to_url"]

F = TypeVar("F", bound=Callable[..., Any])

Contents = Union[bytes, bytearray, str, BinaryIO, File]
Options = Union[Mapping[str, Any], str, Visibility, None]


def attempt(fallback: Any) -> Callable[[F], F]:
    """Route ``FilesystemOperationError`` through the disk's throw policy.

    ``fallback`` is returned when the disk does not throw; pass a callable
    (e.g. ``list``) to get a fresh value per failure.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: "Driver", *args: Any, **kwargs: Any) -> Any:
            try:
                return func(self, *args, **kwargs)
            except FilesystemOperationError as exc:
                exc.details.setdefault("disk", self.name)
                if self.throws_exceptions():
                    raise
                logger.warning(
                    "%s failed on disk '%s': %s", func.__name__, self.name, exc.message,
                    extra=failure_context(exc),
                )
                return fallback() if callable(fallback) else fallback

        return wrapper  # type: ignore[return-value]

    return decorator


def concat_path_to_url(url: str, path: str) -> str:
    return url.rstrip("/") + "/" + path.lstrip("/")


def _normalize_options(options: Options) -> Dict[str, Any]:
    if options is None:
        return {}
    if isinstance(options, (str, Visibility)):
        return {"visibility": Visibility.normalize(options)}
    return dict(options)


def _to_bytes(data: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class Driver:
    """Uniform file operations on one disk.

    Subclasses implement ``create_adapter``. A driver may additionally
    define ``get_url(path)``; it is used as the last step of ``url``.

    Example:
        >>> driver = MemoryDriver(parse_disk_config("scratch", {"type": "memory"}), "scratch")
        >>> driver.put("hello.txt", "hi")
        True
        >>> driver.get("hello.txt")
        b'hi'
    """

    kind = "generic"

    def __init__(
        self,
        config: DiskConfig,
        name: Optional[str] = None,
        adapter: Optional[FilesystemAdapter] = None,
    ) -> None:
        self.config = config
        self.name = name or config.type

        self.prefixer = PathPrefixer(config.root or "", config.directory_separator)
        self.sub_prefixer: Optional[PathPrefixer] = None
        if config.prefix:
            self.prefixer = self.prefixer.chain(config.prefix)
            self.sub_prefixer = PathPrefixer(config.prefix.strip("/"))

        self.adapter = adapter if adapter is not None else self.create_adapter()
        self.filesystem = self.create_filesystem(self.adapter, config)
        logger.debug(
            "Constructed %s driver for disk '%s' (adapter=%r, read_only=%s, prefix=%s)",
            self.kind, self.name, self.adapter, config.read_only, config.prefix,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, adapter={self.adapter!r})"

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def create_adapter(self) -> FilesystemAdapter:
        raise NotImplementedError(f"{self.__class__.__name__} must implement create_adapter()")

    def create_filesystem(self, adapter: FilesystemAdapter, config: DiskConfig) -> Filesystem:
        """Wrap ``adapter`` (read-only first, then sub-prefix) in a façade."""
        if config.read_only:
            adapter = ReadOnlyAdapter(adapter)
        if config.prefix:
            adapter = PathPrefixedAdapter(adapter, config.prefix)
        return Filesystem(
            adapter,
            config.facade_options(),
            public_url_generator=self.create_public_url_generator(),
        )

    def create_public_url_generator(self) -> Optional[PublicUrlGenerator]:
        return None

    def throws_exceptions(self) -> bool:
        return bool(self.config.throw)

    def get_adapter(self) -> FilesystemAdapter:
        """Return the backend adapter, without read-only or prefix wrapping."""
        return self.adapter

    def get_filesystem(self) -> Filesystem:
        return self.filesystem

    def path(self, path: str) -> str:
        """Return the physical location of ``path`` (root and sub-prefix applied)."""
        return self.prefixer.prefix_path(path)

    def _adapter_path(self, path: str) -> str:
        path = normalize_path(path)
        if self.sub_prefixer is not None:
            return self.sub_prefixer.prefix_path(path)
        return path

    # -------------------------------------------------------------------------
    # Existence
    # -------------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self.filesystem.has(path)

    def missing(self, path: str) -> bool:
        return not self.exists(path)

    def file_exists(self, path: str) -> bool:
        return self.filesystem.file_exists(path)

    def file_missing(self, path: str) -> bool:
        return not self.file_exists(path)

    def directory_exists(self, path: str) -> bool:
        return self.filesystem.directory_exists(path)

    def directory_missing(self, path: str) -> bool:
        return not self.directory_exists(path)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @attempt(None)
    def get(self, path: str) -> Optional[bytes]:
        return self.filesystem.read(path)

    @attempt(None)
    def read_stream(self, path: str) -> Optional[BinaryIO]:
        """Open ``path`` for reading. The caller must close the returned handle."""
        return self.filesystem.read_stream(path)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @attempt(False)
    def write_stream(self, path: str, stream: BinaryIO, options: Options = None) -> bool:
        self.filesystem.write_stream(path, stream, _normalize_options(options))
        return True

    @attempt(False)
    def put(self, path: str, contents: Contents, options: Options = None) -> bool:
        """Store ``contents`` at ``path``.

        ``contents`` may be bytes, a string, a readable binary stream or a
        ``File``/``UploadedFile``. ``options`` is a mapping of write options
        or a bare visibility (``"public"``/``"private"``).
        """
        config = _normalize_options(options)

        if isinstance(contents, File):
            with contents.open() as stream:
                self.filesystem.write_stream(path, stream, config)
            return True

        if isinstance(contents, (bytes, bytearray, str)):
            self.filesystem.write(path, _to_bytes(contents), config)
            return True

        if hasattr(contents, "read"):
            self.filesystem.write_stream(path, contents, config)
            return True

        raise TypeError(f"Unsupported contents type for put(): {type(contents).__name__}")

    def put_file(
        self,
        path: str,
        file: Union[str, os.PathLike, File],
        rule: NameRule = None,
        options: Options = None,
    ) -> Union[str, bool]:
        """Store ``file`` in directory ``path`` under a generated name.

        Returns:
            The stored path, or False when the write failed
        """
        if not isinstance(file, File):
            file = File(file)
        return self.put_file_as(path, file, file.hash_name(rule), options)

    def put_file_as(
        self,
        path: str,
        file: Union[str, os.PathLike, File],
        name: str,
        options: Options = None,
    ) -> Union[str, bool]:
        """Store ``file`` in directory ``path`` as ``name``.

        Returns:
            The stored path, or False when the write failed
        """
        if not isinstance(file, File):
            file = File(file)
        target = f"{path}/{name}".strip("/")
        with file.open() as stream:
            result = self.put(target, stream, options)
        return target if result else False

    def prepend(self, path: str, data: Union[bytes, str], separator: Union[bytes, str] = os.linesep) -> bool:
        """Prepend ``data`` to the file at ``path``, creating it if missing.

        Not atomic: the current contents are read and the result written
        back without any lock in between.
        """
        if self.file_exists(path):
            existing = self.get(path)
            if existing is None:
                return False
            return self.put(path, _to_bytes(data) + _to_bytes(separator) + existing)
        return self.put(path, data)

    def append(self, path: str, data: Union[bytes, str], separator: Union[bytes, str] = os.linesep) -> bool:
        """Append ``data`` to the file at ``path``, creating it if missing.

        Not atomic, see ``prepend``.
        """
        if self.file_exists(path):
            existing = self.get(path)
            if existing is None:
                return False
            return self.put(path, existing + _to_bytes(separator) + _to_bytes(data))
        return self.put(path, data)

    # -------------------------------------------------------------------------
    # Delete / copy / move
    # -------------------------------------------------------------------------

    def delete(self, *paths: Union[str, Iterable[str]]) -> bool:
        """Delete one or more files.

        Accepts ``delete("a", "b")`` as well as ``delete(["a", "b"])``. Every
        path is attempted; the result is True only if all were deleted. On a
        throwing disk a single ``DeleteFailure`` naming every failed path is
        raised after the last attempt. Mixing strings and iterables raises
        ``TypeError``.
        """
        if len(paths) == 1 and not isinstance(paths[0], str):
            targets: List[str] = list(paths[0])
        else:
            targets = []
            for p in paths:
                if not isinstance(p, str):
                    raise TypeError(
                        f"delete() takes paths as separate strings or one iterable, got {type(p).__name__}"
                    )
                targets.append(p)

        failures: List[DeleteFailure] = []
        for target in targets:
            try:
                self.filesystem.delete(target)
            except DeleteFailure as exc:
                exc.details.setdefault("disk", self.name)
                failures.append(exc)
                if not self.throws_exceptions():
                    logger.warning(
                        "delete failed on disk '%s': %s", self.name, exc.message, extra=failure_context(exc)
                    )

        if not failures:
            return True
        if self.throws_exceptions():
            if len(failures) == 1:
                raise failures[0]
            failed = [f.path for f in failures if f.path]
            raise DeleteFailure(
                f"Unable to delete {len(failed)} of {len(targets)} files: {', '.join(failed)}",
                path=failed[0] if failed else None,
                cause=failures[0],
                disk=self.name,
                failed_paths=failed,
            ) from failures[0]
        return False

    @attempt(False)
    def copy(self, source: str, destination: str) -> bool:
        self.filesystem.copy(source, destination)
        return True

    @attempt(False)
    def move(self, source: str, destination: str) -> bool:
        self.filesystem.move(source, destination)
        return True

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    @attempt(None)
    def size(self, path: str) -> Optional[int]:
        return self.filesystem.file_size(path)

    @attempt(None)
    def last_modified(self, path: str) -> Optional[int]:
        return self.filesystem.last_modified(path)

    @attempt(False)
    def mime_type(self, path: str) -> Union[str, bool]:
        return self.filesystem.mime_type(path)

    @attempt(None)
    def checksum(self, path: str, algo: str = "md5") -> Optional[str]:
        return self.filesystem.checksum(path, algo)

    @attempt(None)
    def get_visibility(self, path: str) -> Optional[Visibility]:
        return Visibility.normalize(self.filesystem.visibility(path))

    @attempt(False)
    def set_visibility(self, path: str, visibility: Union[str, Visibility]) -> bool:
        self.filesystem.set_visibility(path, Visibility.normalize(visibility).value)
        return True

    # -------------------------------------------------------------------------
    # Listing and directories
    # -------------------------------------------------------------------------

    @attempt(list)
    def files(self, directory: Optional[str] = None, recursive: bool = False) -> List[str]:
        """Paths of the files in ``directory``, sorted."""
        entries = self.filesystem.list_contents(directory or "", recursive)
        return sorted(entry.path for entry in entries if entry.is_file())

    def all_files(self, directory: Optional[str] = None) -> List[str]:
        return self.files(directory, True)

    @attempt(list)
    def directories(self, directory: Optional[str] = None, recursive: bool = False) -> List[str]:
        """Paths of the directories in ``directory``, in listing order."""
        entries = self.filesystem.list_contents(directory or "", recursive)
        return [entry.path for entry in entries if entry.is_dir()]

    def all_directories(self, directory: Optional[str] = None) -> List[str]:
        return self.directories(directory, True)

    @attempt(False)
    def make_directory(self, path: str) -> bool:
        self.filesystem.create_directory(path)
        return True

    @attempt(False)
    def delete_directory(self, directory: str) -> bool:
        self.filesystem.delete_directory(directory)
        return True

    # -------------------------------------------------------------------------
    # URLs
    # -------------------------------------------------------------------------

    def url(self, path: str) -> str:
        """Resolve a public URL for ``path``.

        Tried in order: the adapter's own URL support, the façade's URL
        generator, the transfer-server rule (FTP/SFTP), the local-disk rule
        and finally this driver's ``get_url``.

        Raises:
            UnsupportedOperation: If none of them applies
        """
        adapter = self.adapter
        if isinstance(adapter, UrlResolvable):
            return adapter.get_url(self._adapter_path(path))
        if self.filesystem.has_public_url_generator():
            return self.filesystem.public_url(path)
        if isinstance(adapter, RemoteTransfer):
            return self._transfer_url(path)
        if isinstance(adapter, LocalStorage):
            return self._local_url(path)
        if isinstance(self, UrlResolvable):
            return self.get_url(path)
        raise UnsupportedOperation(
            "This driver does not support retrieving URLs.", operation="url", disk=self.name
        )

    def _transfer_url(self, path: str) -> str:
        if self.config.url:
            return concat_path_to_url(self.config.url, path)
        return path

    def _local_url(self, path: str) -> str:
        if self.config.url:
            return concat_path_to_url(self.config.url, path)
        return path

    def temporary_url(
        self, path: str, expiration: Union[datetime, timedelta, int], **options: Any
    ) -> str:
        """Return a URL for ``path`` that stops working at ``expiration``.

        ``expiration`` is a datetime, a timedelta from now or a number of
        seconds from now.

        Raises:
            UnsupportedOperation: If neither the adapter nor the disk's
                ``temporary_url`` template can produce one
        """
        expires_at = _expires_at(expiration)
        if isinstance(self.adapter, TemporaryUrlGenerator):
            return self.adapter.temporary_url(self._adapter_path(path), expires_at, options)
        try:
            return self.filesystem.temporary_url(path, expires_at, options)
        except UnsupportedOperation as exc:
            exc.details.setdefault("disk", self.name)
            raise

    # -------------------------------------------------------------------------
    # HTTP responses
    # -------------------------------------------------------------------------

    def response(
        self,
        path: str,
        name: Optional[str] = None,
        headers: Optional[Mapping[str, Any]] = None,
        disposition: str = DISPOSITION_INLINE,
    ) -> StreamedResponse:
        """Describe a streaming HTTP response serving ``path``.

        Missing ``Content-Type``, ``Content-Length`` and
        ``Content-Disposition`` headers are filled in. The body is read
        from storage only when the response is iterated.
        """
        response_headers: Dict[str, Any] = dict(headers or {})

        if "Content-Type" not in response_headers:
            response_headers["Content-Type"] = self.mime_type(path) or "application/octet-stream"

        if "Content-Length" not in response_headers:
            size = self.size(path)
            if size is not None:
                response_headers["Content-Length"] = size

        if "Content-Disposition" not in response_headers:
            filename = name or posixpath.basename(normalize_path(path))
            response_headers["Content-Disposition"] = make_disposition(
                disposition, filename, fallback_name(filename)
            )

        return StreamedResponse(lambda: self.read_stream(path), response_headers)

    def download(
        self, path: str, name: Optional[str] = None, headers: Optional[Mapping[str, Any]] = None
    ) -> StreamedResponse:
        return self.response(path, name, headers, DISPOSITION_ATTACHMENT)


def _expires_at(expiration: Union[datetime, timedelta, int]) -> datetime:
    if isinstance(expiration, datetime):
        return expiration
    if isinstance(expiration, timedelta):
        return datetime.now(timezone.utc) + expiration
    return datetime.now(timezone.utc) + timedelta(seconds=int(expiration))
