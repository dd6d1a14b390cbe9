"""Backend registry.

Maps a backend kind (the ``type`` of a disk) to the factory that builds
its driver. Built-in kinds register themselves from ``diskfoundry.drivers``;
applications add their own with ``register_backend`` or per manager with
``FilesystemManager.extend``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from diskfoundry.errors import InvalidDiskConfiguration

if TYPE_CHECKING:
    from diskfoundry.config import DiskConfig

logger = logging.getLogger(__name__)

__all__ = [
    "BACKEND_REGISTRY",
    "BackendFactory",
    "register_backend",
    "unregister_backend",
    "get_backend_factory",
    "list_backends",
    "missing_dependency",
]

# factory(config, name) -> Driver or FilesystemAdapter
BackendFactory = Callable[["DiskConfig", str], Any]

BACKEND_REGISTRY: Dict[str, BackendFactory] = {}

# Extras that provide the libraries a built-in kind needs
_INSTALL_HINTS = {
    "sftp": "paramiko",
    "gcs": "gcsfs",
    "azure": "adlfs",
}


def register_backend(name: str) -> Callable[[BackendFactory], BackendFactory]:
    """Decorator to register a backend factory.

    Usage:
        @register_backend("dropbox")
        def dropbox_factory(config: DiskConfig, name: str) -> Driver:
            return DropboxDriver(config, name)
    """

    def decorator(factory: BackendFactory) -> BackendFactory:
        BACKEND_REGISTRY[name.lower()] = factory
        logger.debug("Registered backend factory for '%s'", name.lower())
        return factory

    return decorator


def unregister_backend(name: str) -> Optional[BackendFactory]:
    """Remove the factory for ``name``; return it if one was registered."""
    return BACKEND_REGISTRY.pop(name.lower(), None)


def list_backends() -> List[str]:
    """Return all registered backend kinds."""
    return sorted(BACKEND_REGISTRY.keys())


def get_backend_factory(kind: str, disk: Optional[str] = None) -> BackendFactory:
    """Get the factory function for a backend kind.

    Raises:
        InvalidDiskConfiguration: If no factory is registered for ``kind``
    """
    factory = BACKEND_REGISTRY.get(kind.lower())
    if factory is None:
        available = list_backends()
        message = (
            f"Driver [{kind}] is not supported. "
            f"Available backends: {', '.join(available) or 'none'}."
        )
        raise InvalidDiskConfiguration(message, disk=disk, kind=kind)
    return factory


def missing_dependency(kind: str, exc: ImportError, disk: Optional[str] = None) -> InvalidDiskConfiguration:
    """Build the error raised when a built-in backend's library is not installed."""
    package = _INSTALL_HINTS.get(kind, exc.name or "the backend library")
    message = (
        f"The {kind} backend needs {package}: {exc}\n"
        f"Install it with:\n"
        f"  pip install diskfoundry[{kind}]"
    )
    return InvalidDiskConfiguration(message, disk=disk, kind=kind)
