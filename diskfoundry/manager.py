"""Disk manager: resolves disk names to cached drivers.

A ``FilesystemManager`` reads disk settings from a ``ConfigSource``, picks
the factory registered for the disk's ``type`` and builds the driver on
first use. Each disk name is built exactly once per manager, even when
several threads request it at the same time.

Example:
    >>> manager = FilesystemManager({
    ...     "default": "local",
    ...     "disks": {"local": {"type": "local", "root": "/srv/storage"}},
    ... })
    >>> manager.disk().put("reports/q1.csv", b"id,total\\n")
    True
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Union

import diskfoundry.drivers  # noqa: F401 registers the built-in backends
from diskfoundry.adapters.base import FilesystemAdapter
from diskfoundry.config import ConfigSource, DiskConfig, FilesystemSettings, MappingConfigSource
from diskfoundry.driver import Driver
from diskfoundry.errors import ConfigurationNotFound, InvalidDiskConfiguration
from diskfoundry.registry import BackendFactory, get_backend_factory

logger = logging.getLogger(__name__)

__all__ = [
    "FilesystemManager",
    "configure",
    "get_manager",
    "disk",
    "cloud",
    "extend",
]

ManagerConfig = Union[ConfigSource, FilesystemSettings, Mapping[str, Any], None]


def _as_source(config: ManagerConfig) -> ConfigSource:
    if isinstance(config, (FilesystemSettings, Mapping)) or config is None:
        return MappingConfigSource(config)
    if isinstance(config, ConfigSource):
        return config
    raise TypeError(f"Unsupported filesystem configuration: {type(config).__name__}")


class FilesystemManager:
    """Resolve disk names to drivers, building each one once."""

    def __init__(self, config: ManagerConfig = None) -> None:
        self.source = _as_source(config)
        self._drivers: Dict[str, Driver] = {}
        self._custom_factories: Dict[str, BackendFactory] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def __repr__(self) -> str:
        return f"FilesystemManager(source={self.source!r}, cached={sorted(self._drivers)!r})"

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def get(self, name: Optional[str] = None) -> Driver:
        """Return the driver for ``name`` (the default disk when omitted).

        Raises:
            ConfigurationNotFound: If no disk is configured under the name
            InvalidDiskConfiguration: If the disk settings are invalid or
                its kind has no registered factory
        """
        name = name or self.get_default_driver()

        driver = self._drivers.get(name)
        if driver is not None:
            return driver

        with self._lock_for(name):
            driver = self._drivers.get(name)
            if driver is None:
                driver = self._resolve(name)
                self._drivers[name] = driver
        return driver

    def disk(self, name: Optional[str] = None) -> Driver:
        return self.get(name)

    def cloud(self, name: Optional[str] = None) -> Driver:
        return self.get(name)

    def get_default_driver(self) -> str:
        default = self.source.default_disk()
        if not default:
            raise ConfigurationNotFound("No default disk is configured.")
        return default

    def get_disk_config(self, name: str) -> DiskConfig:
        return self.source.get_disk_config(name)

    def list_disks(self) -> List[str]:
        """Names of the configured disks (when the source can enumerate them)."""
        disk_names = getattr(self.source, "disk_names", None)
        return list(disk_names()) if callable(disk_names) else sorted(self._drivers)

    def extend(self, kind: str, factory: BackendFactory) -> "FilesystemManager":
        """Register ``factory`` for disks of ``kind`` on this manager.

        ``factory(config, name)`` may return a ``Driver`` or a bare
        ``FilesystemAdapter``; adapters are wrapped in a generic ``Driver``.
        Disks already built are not rebuilt; call ``purge`` for that.
        """
        self._custom_factories[kind.lower()] = factory
        logger.debug("Registered custom factory for kind '%s'", kind.lower())
        return self

    def purge(self, name: Optional[str] = None) -> None:
        """Forget the cached driver for ``name``, or every cached driver."""
        if name is None:
            self._drivers.clear()
            return
        self._drivers.pop(name, None)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def _lock_for(self, name: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock

    def _resolve(self, name: str) -> Driver:
        config = self.get_disk_config(name)
        kind = config.type.lower()

        factory = self._custom_factories.get(kind) or get_backend_factory(kind, disk=name)
        created = factory(config, name)

        if isinstance(created, FilesystemAdapter):
            created = Driver(config, name, adapter=created)
        if not isinstance(created, Driver):
            raise InvalidDiskConfiguration(
                f"Factory for kind [{kind}] returned {type(created).__name__}, expected a Driver or adapter",
                disk=name,
                kind=kind,
            )

        logger.info("Created %s disk '%s'", kind, name)
        return created


# =============================================================================
# Process-wide manager
# =============================================================================

_manager: Optional[FilesystemManager] = None
_manager_lock = threading.Lock()


def configure(config: ManagerConfig) -> FilesystemManager:
    """Replace the process-wide manager with one built from ``config``."""
    global _manager
    with _manager_lock:
        _manager = FilesystemManager(config)
    return _manager


def get_manager() -> FilesystemManager:
    """Return the process-wide manager (empty until ``configure`` is called)."""
    global _manager
    with _manager_lock:
        if _manager is None:
            _manager = FilesystemManager()
        return _manager


def disk(name: Optional[str] = None) -> Driver:
    return get_manager().disk(name)


def cloud(name: Optional[str] = None) -> Driver:
    return get_manager().cloud(name)


def extend(kind: str, factory: BackendFactory) -> FilesystemManager:
    return get_manager().extend(kind, factory)
