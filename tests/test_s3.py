"""Tests for S3 disks using moto."""

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from diskfoundry.adapters.s3 import S3Adapter
from diskfoundry.config import parse_disk_config
from diskfoundry.drivers.s3 import S3Driver
from diskfoundry.errors import WriteFailure
from diskfoundry.manager import FilesystemManager
from diskfoundry.visibility import Visibility

BUCKET = "test-bucket"


@pytest.fixture
def make_s3_disk(s3_bucket):
    """Build an S3 disk on the mocked bucket."""

    def factory(**settings):
        raw = {"type": "s3", "bucket": BUCKET, "root": "uploads", "region": "us-east-1"}
        raw.update(settings)
        return S3Driver(parse_disk_config("media", raw), "media")

    return factory


@pytest.fixture
def s3_disk(make_s3_disk):
    return make_s3_disk()


def object_body(client, key):
    return client.get_object(Bucket=BUCKET, Key=key)["Body"].read()


class TestS3ReadWrite:
    """Reading and writing objects."""

    def test_put_and_get(self, s3_disk, s3_bucket):
        assert s3_disk.put("a.txt", "hello") is True

        assert s3_disk.get("a.txt") == b"hello"
        assert object_body(s3_bucket, "uploads/a.txt") == b"hello"
        assert s3_disk.exists("a.txt")
        assert s3_disk.missing("b.txt")

    def test_put_stream(self, s3_disk, tmp_path):
        source = tmp_path / "big.bin"
        source.write_bytes(b"x" * 4096)

        with open(source, "rb") as handle:
            assert s3_disk.put("big.bin", handle) is True

        assert s3_disk.size("big.bin") == 4096

    def test_put_file_with_generated_name(self, s3_disk, tmp_path):
        source = tmp_path / "report.pdf"
        source.write_bytes(b"%PDF")

        stored = s3_disk.put_file("reports", str(source), lambda: "q1")

        assert stored == "reports/q1.pdf"
        assert s3_disk.get("reports/q1.pdf") == b"%PDF"

    def test_missing_object(self, s3_disk):
        assert s3_disk.get("ghost.txt") is None
        assert s3_disk.read_stream("ghost.txt") is None

    def test_read_stream(self, s3_disk):
        s3_disk.put("a.txt", b"streamed")
        stream = s3_disk.read_stream("a.txt")
        try:
            assert stream.read() == b"streamed"
        finally:
            stream.close()

    def test_content_type_is_guessed(self, s3_disk, s3_bucket):
        s3_disk.put("docs/manual.pdf", b"%PDF")

        assert s3_disk.mime_type("docs/manual.pdf") == "application/pdf"
        head = s3_bucket.head_object(Bucket=BUCKET, Key="uploads/docs/manual.pdf")
        assert head["ContentType"] == "application/pdf"

    def test_explicit_options_win(self, s3_disk, s3_bucket):
        s3_disk.put("data.bin", b"1", {"ContentType": "text/csv", "CacheControl": "max-age=60"})

        head = s3_bucket.head_object(Bucket=BUCKET, Key="uploads/data.bin")
        assert head["ContentType"] == "text/csv"
        assert head["CacheControl"] == "max-age=60"

    def test_missing_bucket_with_throw(self, s3_bucket):
        config = parse_disk_config("media", {"type": "s3", "bucket": "no-such-bucket", "throw": True})
        disk = S3Driver(config, "media")

        with pytest.raises(WriteFailure) as exc_info:
            disk.put("a.txt", "x")
        assert exc_info.value.path == "a.txt"


class TestS3Visibility:
    """Visibility maps to canned ACLs."""

    def test_explicit_visibility(self, s3_disk):
        s3_disk.put("public.txt", "x", "public")
        s3_disk.put("private.txt", "x", "private")

        assert s3_disk.get_visibility("public.txt") is Visibility.PUBLIC
        assert s3_disk.get_visibility("private.txt") is Visibility.PRIVATE

    def test_set_visibility(self, s3_disk):
        s3_disk.put("a.txt", "x", "private")

        assert s3_disk.set_visibility("a.txt", "public") is True
        assert s3_disk.get_visibility("a.txt") is Visibility.PUBLIC

    def test_disk_visibility_applies_to_writes(self, make_s3_disk):
        disk = make_s3_disk(visibility="public")
        disk.put("a.txt", "x")
        assert disk.get_visibility("a.txt") is Visibility.PUBLIC

    def test_copy_keeps_visibility(self, s3_disk):
        s3_disk.put("a.txt", "x", "public")

        assert s3_disk.copy("a.txt", "b.txt") is True
        assert s3_disk.get_visibility("b.txt") is Visibility.PUBLIC

    def test_move(self, s3_disk):
        s3_disk.put("a.txt", "x")

        assert s3_disk.move("a.txt", "archive/a.txt") is True
        assert s3_disk.missing("a.txt")
        assert s3_disk.get("archive/a.txt") == b"x"


class TestS3Listing:
    """Listing keys and derived directories."""

    @pytest.fixture
    def populated(self, s3_disk, s3_bucket):
        for name in ("b.txt", "a.txt", "docs/c.txt", "docs/deep/d.txt"):
            s3_disk.put(name, name)
        s3_bucket.put_object(Bucket=BUCKET, Key="outside.txt", Body=b"not ours")
        return s3_disk

    def test_files(self, populated):
        assert populated.files() == ["a.txt", "b.txt"]
        assert populated.files("docs") == ["docs/c.txt"]

    def test_all_files(self, populated):
        assert populated.all_files() == ["a.txt", "b.txt", "docs/c.txt", "docs/deep/d.txt"]

    def test_directories(self, populated):
        assert populated.directories() == ["docs"]
        assert populated.all_directories() == ["docs", "docs/deep"]

    def test_make_and_delete_directory(self, populated, s3_bucket):
        assert populated.make_directory("empty") is True
        assert populated.directory_exists("empty")

        assert populated.delete_directory("docs") is True
        assert populated.directory_missing("docs")
        assert populated.all_files() == ["a.txt", "b.txt"]
        assert object_body(s3_bucket, "outside.txt") == b"not ours"

    def test_delete_many(self, populated):
        assert populated.delete("a.txt", "b.txt") is True
        assert populated.files() == []


class TestS3Urls:
    """Presigned URLs."""

    def test_url_is_presigned(self, s3_disk):
        parsed = urlparse(s3_disk.url("avatars/1.png"))
        query = parse_qs(parsed.query)

        assert parsed.path.endswith("uploads/avatars/1.png")
        assert "X-Amz-Expires" in query or "Expires" in query

    def test_temporary_url(self, s3_disk):
        url = s3_disk.temporary_url("a.txt", timedelta(minutes=5))
        assert "uploads/a.txt" in url

    def test_temporary_url_with_prefix(self, make_s3_disk):
        disk = make_s3_disk(prefix="tenant-a")
        url = disk.temporary_url("a.txt", datetime.now(timezone.utc) + timedelta(minutes=5))
        assert "uploads/tenant-a/a.txt" in url


class TestS3Construction:
    """Building S3 disks."""

    def test_manager_builds_s3_disk(self, s3_bucket):
        manager = FilesystemManager(
            {"default": "media", "disks": {"media": {"type": "s3", "bucket": BUCKET, "region": "us-east-1"}}}
        )

        disk = manager.disk()

        assert isinstance(disk, S3Driver)
        assert isinstance(disk.get_adapter(), S3Adapter)
        assert disk.put("a.txt", "x") is True
        assert object_body(s3_bucket, "a.txt") == b"x"

    def test_path_style_client(self, make_s3_disk):
        disk = make_s3_disk(use_path_style_endpoint=True, key="testing", secret="testing")
        client = disk.get_adapter().client
        assert client.meta.config.s3["addressing_style"] == "path"

    def test_physical_path(self, s3_disk):
        assert s3_disk.path("a.txt") == "uploads/a.txt"
