"""Tests for URL resolution and temporary URLs."""

from datetime import datetime, timedelta, timezone

import pytest

from diskfoundry.adapters.memory import MemoryAdapter
from diskfoundry.config import parse_disk_config
from diskfoundry.driver import Driver, concat_path_to_url
from diskfoundry.drivers.cloud import AzureDriver, GcsDriver
from diskfoundry.drivers.memory import MemoryDriver
from diskfoundry.drivers.transfer import SftpDriver
from diskfoundry.errors import UnsupportedOperation


class UrlAdapter(MemoryAdapter):
    """Adapter that knows its own public URLs."""

    def get_url(self, path):
        return f"https://adapter.example.com/{path}"


class SigningAdapter(MemoryAdapter):
    """Adapter that can sign URLs."""

    def temporary_url(self, path, expires_at, options=None):
        return f"https://signed.example.com/{path}?until={int(expires_at.timestamp())}"


class TransferAdapter(MemoryAdapter):
    """Memory adapter posing as a transfer server."""

    transfer_protocol = "ftp"


def driver_with(adapter, **settings):
    return Driver(parse_disk_config("scratch", {"type": "memory", **settings}), "scratch", adapter=adapter)


def test_concat_path_to_url():
    assert concat_path_to_url("https://cdn.example.com/", "/a/b.png") == "https://cdn.example.com/a/b.png"
    assert concat_path_to_url("https://cdn.example.com", "a.png") == "https://cdn.example.com/a.png"


class TestUrlChain:
    """The capability probes are tried in order."""

    def test_adapter_capability_comes_first(self):
        disk = driver_with(UrlAdapter(), url="https://cdn.example.com")
        assert disk.url("a.txt") == "https://adapter.example.com/a.txt"

    def test_adapter_receives_sub_prefixed_path(self):
        disk = driver_with(UrlAdapter(), prefix="tenant-a")
        assert disk.url("/logo.png") == "https://adapter.example.com/tenant-a/logo.png"

    def test_public_url_generator(self):
        class GeneratingDriver(MemoryDriver):
            def create_public_url_generator(self):
                return lambda path, config: f"https://public.example.com/{path}"

        disk = GeneratingDriver(parse_disk_config("scratch", {"type": "memory"}), "scratch")
        assert disk.url("a b.txt") == "https://public.example.com/a b.txt"

    def test_generator_wins_over_transfer_rule(self):
        class GeneratingDriver(Driver):
            def create_public_url_generator(self):
                return lambda path, config: f"https://public.example.com/{path}"

        disk = GeneratingDriver(
            parse_disk_config("scratch", {"type": "memory", "url": "ftp://files.example.com"}),
            "scratch",
            adapter=TransferAdapter(),
        )
        assert disk.url("a.txt") == "https://public.example.com/a.txt"

    def test_transfer_rule_with_base_url(self):
        disk = driver_with(TransferAdapter(), url="ftp://files.example.com/pub/")
        assert disk.url("reports/a.csv") == "ftp://files.example.com/pub/reports/a.csv"

    def test_transfer_rule_without_base_url(self):
        disk = driver_with(TransferAdapter())
        assert disk.url("reports/a.csv") == "reports/a.csv"

    def test_driver_hook(self):
        class HookedDriver(MemoryDriver):
            def get_url(self, path):
                return f"https://hook.example.com/{path}"

        disk = HookedDriver(parse_disk_config("scratch", {"type": "memory"}), "scratch")
        assert disk.url("a.txt") == "https://hook.example.com/a.txt"

    def test_unsupported(self, memory_disk):
        with pytest.raises(UnsupportedOperation, match="does not support retrieving URLs") as exc_info:
            memory_disk.url("a.txt")
        assert exc_info.value.details["disk"] == "scratch"


class TestBackendUrls:
    """URL rules of the concrete drivers, with their adapters swapped for memory."""

    def test_sftp_prefers_configured_url(self):
        config = parse_disk_config("backups", {"type": "sftp", "host": "sftp.example.com", "url": "https://files.example.com"})
        disk = SftpDriver(config, "backups", adapter=UrlAdapter())
        assert disk.url("a.txt") == "https://files.example.com/a.txt"

    def test_sftp_without_url_falls_back_to_chain(self):
        config = parse_disk_config("backups", {"type": "sftp", "host": "sftp.example.com"})
        disk = SftpDriver(config, "backups", adapter=TransferAdapter())
        assert disk.url("a.txt") == "a.txt"

    def test_gcs_public_url(self):
        config = parse_disk_config("media", {"type": "gcs", "bucket": "media", "root": "public"})
        disk = GcsDriver(config, "media", adapter=MemoryAdapter())
        assert disk.url("a/b.png") == "https://storage.googleapis.com/media/public/a/b.png"

    def test_gcs_configured_url(self):
        config = parse_disk_config("media", {"type": "gcs", "bucket": "media", "url": "https://cdn.example.com"})
        disk = GcsDriver(config, "media", adapter=MemoryAdapter())
        assert disk.url("a/b.png") == "https://cdn.example.com/a/b.png"

    def test_azure_public_url(self):
        config = parse_disk_config("blobs", {"type": "azure", "container": "files", "account_name": "acct"})
        disk = AzureDriver(config, "blobs", adapter=MemoryAdapter())
        assert disk.url("a.txt") == "https://acct.blob.core.windows.net/files/a.txt"

    def test_azure_needs_account_or_url(self):
        config = parse_disk_config("blobs", {"type": "azure", "container": "files"})
        disk = AzureDriver(config, "blobs", adapter=MemoryAdapter())
        with pytest.raises(UnsupportedOperation, match="account_name"):
            disk.url("a.txt")


class TestTemporaryUrl:
    """Tests for temporary_url."""

    EXPIRES = datetime(2030, 1, 1, tzinfo=timezone.utc)

    def test_adapter_signs(self):
        disk = driver_with(SigningAdapter(), prefix="tenant-a")
        url = disk.temporary_url("a.txt", self.EXPIRES)
        assert url == f"https://signed.example.com/tenant-a/a.txt?until={int(self.EXPIRES.timestamp())}"

    def test_template(self, make_memory_disk):
        disk = make_memory_disk(temporary_url="https://files.example.com/{path}?expires={expires}")
        url = disk.temporary_url("docs/a.pdf", self.EXPIRES)
        assert url == f"https://files.example.com/docs/a.pdf?expires={int(self.EXPIRES.timestamp())}"

    @pytest.mark.parametrize("expiration", [timedelta(minutes=5), 300])
    def test_relative_expirations(self, make_memory_disk, expiration):
        disk = make_memory_disk(temporary_url="{path}|{expires}")
        before = int(datetime.now(timezone.utc).timestamp())

        path, expires = disk.temporary_url("a.txt", expiration).split("|")

        assert path == "a.txt"
        assert before + 299 <= int(expires) <= before + 302

    def test_unsupported(self, memory_disk):
        with pytest.raises(UnsupportedOperation, match="temporary URLs") as exc_info:
            memory_disk.temporary_url("a.txt", self.EXPIRES)
        assert exc_info.value.details["disk"] == "scratch"
