"""Tests for File and UploadedFile."""

import hashlib
import re

import pytest

from diskfoundry.adapters.base import detect_mime_type
from diskfoundry.files import File, UploadedFile


@pytest.fixture
def report(tmp_path):
    path = tmp_path / "Report.PDF"
    path.write_bytes(b"%PDF-1.4 quarterly")
    return path


class TestFile:
    """Tests for File."""

    def test_properties(self, report):
        f = File(report)
        assert f.name == "Report.PDF"
        assert f.extension == "pdf"
        assert f.mime_type == "application/pdf"
        assert f.size == len(b"%PDF-1.4 quarterly")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            File(tmp_path / "nope.txt")

    def test_unchecked_missing_file(self, tmp_path):
        assert File(tmp_path / "later.txt", check=False).name == "later.txt"

    def test_hash(self, report):
        assert File(report).hash("md5") == hashlib.md5(b"%PDF-1.4 quarterly").hexdigest()

    def test_open(self, report):
        with File(report).open() as handle:
            assert handle.read() == b"%PDF-1.4 quarterly"


class TestHashName:
    """Tests for File.hash_name naming rules."""

    def test_default_rule(self, report):
        name = File(report).hash_name()
        assert re.match(r"^\d{8}/[0-9a-f]{32}\.pdf$", name)

    def test_algorithm_rule(self, report):
        digest = hashlib.sha1(b"%PDF-1.4 quarterly").hexdigest()
        assert File(report).hash_name("sha1") == f"{digest[:2]}/{digest[2:]}.pdf"

    def test_callable_with_file(self, report):
        assert File(report).hash_name(lambda f: f"docs/{f.size}") == "docs/18.pdf"

    def test_callable_without_arguments(self, report):
        assert File(report).hash_name(lambda: "fixed") == "fixed.pdf"

    def test_name_is_remembered(self, report):
        f = File(report)
        first = f.hash_name()
        assert f.hash_name("sha1") == first

    def test_no_extension(self, tmp_path):
        path = tmp_path / "LICENSE"
        path.write_text("MIT")
        assert File(path).hash_name(lambda: "license") == "license"

    def test_unknown_rule(self, report):
        with pytest.raises(ValueError, match="Unsupported naming rule"):
            File(report).hash_name("not-a-hash")


class TestUploadedFile:
    """Tests for UploadedFile."""

    def test_uses_client_name_and_type(self, tmp_path):
        path = tmp_path / "phpA1B2"
        path.write_bytes(b"\x89PNG")

        upload = UploadedFile(path, "Avatar.PNG", "image/x-custom")

        assert upload.extension == "png"
        assert upload.mime_type == "image/x-custom"
        assert upload.hash_name(lambda: "avatars/1") == "avatars/1.png"

    def test_guesses_type_from_client_name(self, tmp_path):
        path = tmp_path / "upload.tmp"
        path.write_bytes(b"a,b")
        assert UploadedFile(path, "data.csv").mime_type == "text/csv"

    def test_stored_on_a_disk(self, memory_disk, tmp_path):
        path = tmp_path / "upload.tmp"
        path.write_bytes(b"payload")
        upload = UploadedFile(path, "notes.txt")

        assert memory_disk.put(f"uploads/{upload.hash_name(lambda: 'n1')}", upload) is True
        assert memory_disk.get("uploads/n1.txt") == b"payload"


class TestDetectMimeType:
    """Extension lookup first, then the leading bytes."""

    def test_extension_wins(self):
        assert detect_mime_type("notes.csv", b"\x00\x01") == "text/csv"

    def test_text_without_extension(self):
        assert detect_mime_type("README", b"# Title\n") == "text/plain"

    def test_utf8_cut_mid_character(self):
        head = "Grüß".encode("utf-8")[:-1]
        assert detect_mime_type("NOTES", head) == "text/plain"

    def test_binary_without_extension(self):
        assert detect_mime_type("blob", b"\xff\xfe\xfa") == "application/octet-stream"
        assert detect_mime_type("blob", b"abc\x00def") == "application/octet-stream"

    def test_empty_file(self):
        assert detect_mime_type("EMPTY", b"") == "application/octet-stream"
