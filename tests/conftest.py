"""Pytest configuration and fixtures."""

import logging
from typing import Any, Dict

import boto3
import pytest
from moto import mock_aws

import diskfoundry.manager as manager_module
from diskfoundry.config import parse_disk_config
from diskfoundry.drivers.local import LocalDriver
from diskfoundry.drivers.memory import MemoryDriver


@pytest.fixture
def make_memory_disk():
    """Build a memory disk named ``scratch`` from extra settings."""

    def factory(**settings: Any) -> MemoryDriver:
        config = parse_disk_config("scratch", {"type": "memory", **settings})
        return MemoryDriver(config, "scratch")

    return factory


@pytest.fixture
def memory_disk(make_memory_disk):
    """A non-throwing memory disk."""
    return make_memory_disk()


@pytest.fixture
def make_local_disk(tmp_path):
    """Build a local disk rooted in a temporary directory."""

    def factory(**settings: Any) -> LocalDriver:
        raw: Dict[str, Any] = {"type": "local", "root": str(tmp_path / "storage")}
        raw.update(settings)
        return LocalDriver(parse_disk_config("local", raw), "local")

    return factory


@pytest.fixture
def local_disk(make_local_disk):
    return make_local_disk()


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def s3_bucket(aws_credentials):
    """Create the mocked ``test-bucket`` and keep moto active for the test."""
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="test-bucket")
        yield client


@pytest.fixture(autouse=True)
def reset_process_manager(monkeypatch):
    """Each test starts without a process-wide manager."""
    monkeypatch.setattr(manager_module, "_manager", None)


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way it was after a logging test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
