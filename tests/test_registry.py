"""Tests for the backend registry."""

import pytest

import diskfoundry  # noqa: F401 registers the built-in backends
from diskfoundry.errors import InvalidDiskConfiguration
from diskfoundry.registry import (
    BACKEND_REGISTRY,
    get_backend_factory,
    list_backends,
    missing_dependency,
    register_backend,
    unregister_backend,
)


class TestBackendRegistry:
    """Tests for register_backend and lookups."""

    def test_builtin_backends_are_registered(self):
        assert {"local", "memory", "s3", "ftp", "sftp", "gcs", "azure"} <= set(list_backends())

    def test_register_and_unregister(self):
        @register_backend("Dropbox")
        def dropbox_factory(config, name):
            return None

        try:
            assert "dropbox" in list_backends()
            assert get_backend_factory("DROPBOX") is dropbox_factory
        finally:
            assert unregister_backend("dropbox") is dropbox_factory
        assert "dropbox" not in BACKEND_REGISTRY
        assert unregister_backend("dropbox") is None

    def test_unknown_kind(self):
        with pytest.raises(InvalidDiskConfiguration) as exc_info:
            get_backend_factory("webdav", disk="shared")

        error = exc_info.value
        assert "Driver [webdav] is not supported." in error.message
        assert "local" in error.message
        assert error.disk == "shared"
        assert error.kind == "webdav"

    def test_missing_dependency_hint(self):
        error = missing_dependency("sftp", ImportError("No module named 'paramiko'", name="paramiko"), "backups")
        assert "The sftp backend needs paramiko" in error.message
        assert "pip install diskfoundry[sftp]" in error.message
        assert error.disk == "backups"
