"""Tests for Content-Disposition helpers and streamed responses."""

import io

import pytest

from diskfoundry.http import StreamedResponse, fallback_name, make_disposition


class TestMakeDisposition:
    """Tests for make_disposition."""

    def test_plain_ascii_name(self):
        assert make_disposition("inline", "report.pdf") == "inline; filename=report.pdf"

    def test_names_needing_quotes(self):
        assert make_disposition("attachment", "my report.pdf") == 'attachment; filename="my report.pdf"'
        assert make_disposition("attachment", 'say "hi".txt') == 'attachment; filename="say \\"hi\\".txt"'

    def test_unicode_name_with_fallback(self):
        header = make_disposition("attachment", "résumé.pdf", "resume.pdf")
        assert header == "attachment; filename=resume.pdf; filename*=utf-8''r%C3%A9sum%C3%A9.pdf"

    def test_invalid_disposition(self):
        with pytest.raises(ValueError, match="disposition must be either"):
            make_disposition("download", "a.txt")

    def test_non_ascii_fallback(self):
        with pytest.raises(ValueError, match="only contain ASCII"):
            make_disposition("inline", "résumé.pdf")

    def test_percent_in_fallback(self):
        with pytest.raises(ValueError, match='"%"'):
            make_disposition("inline", "100%.txt")

    @pytest.mark.parametrize("name", ["dir/a.txt", "dir\\a.txt"])
    def test_separators_are_rejected(self, name):
        with pytest.raises(ValueError, match="cannot contain"):
            make_disposition("inline", name, "a.txt")


class TestFallbackName:
    """Tests for fallback_name."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("report.pdf", "report.pdf"),
            ("Übersicht 100%.pdf", "Ubersicht 100.pdf"),
            ("naïve café.txt", "naive cafe.txt"),
            ("日本.txt", ".txt"),
            ("日本", "download"),
        ],
    )
    def test_transliterates(self, name, expected):
        assert fallback_name(name) == expected

    def test_result_is_a_valid_fallback(self):
        name = "Ærø – 50%.csv"
        assert make_disposition("attachment", name, fallback_name(name)).startswith("attachment; filename=")


class TrackingStream(io.BytesIO):
    """BytesIO remembering that it was closed."""

    def close(self):
        self.was_closed = True
        super().close()


class TestStreamedResponse:
    """Tests for StreamedResponse."""

    def test_iterates_in_chunks_and_closes(self):
        stream = TrackingStream(b"abcdefgh")
        response = StreamedResponse(lambda: stream, {"Content-Type": "text/plain"})

        assert list(response.iter_body(chunk_size=3)) == [b"abc", b"def", b"gh"]
        assert stream.was_closed

    def test_abandoned_iteration_closes_stream(self):
        stream = TrackingStream(b"abcdefgh")
        body = StreamedResponse(lambda: stream).iter_body(chunk_size=2)

        assert next(body) == b"ab"
        body.close()

        assert stream.was_closed

    def test_stream_is_opened_lazily(self):
        opened = []

        def opener():
            opened.append(True)
            return io.BytesIO(b"x")

        response = StreamedResponse(opener)
        assert opened == []
        assert b"".join(response) == b"x"
        assert opened == [True]

    def test_missing_stream_gives_empty_body(self):
        assert list(StreamedResponse(lambda: None)) == []

    def test_write_to(self):
        sink = io.BytesIO()
        written = StreamedResponse(lambda: io.BytesIO(b"payload")).write_to(sink)
        assert written == 7
        assert sink.getvalue() == b"payload"

    def test_header_list(self):
        response = StreamedResponse(lambda: None, {"Content-Length": 7, "X-Empty": None}, status_code=206)
        assert response.header_list() == [("Content-Length", "7")]
        assert response.status_code == 206


class TestDriverResponses:
    """Tests for Driver.response and Driver.download."""

    def test_response_headers_and_body(self, memory_disk):
        memory_disk.put("docs/report.txt", b"quarterly numbers")

        response = memory_disk.response("docs/report.txt")

        assert response.status_code == 200
        assert response.headers["Content-Type"] == "text/plain"
        assert response.headers["Content-Length"] == 17
        assert response.headers["Content-Disposition"] == "inline; filename=report.txt"
        assert b"".join(response) == b"quarterly numbers"

    def test_download_with_unicode_name(self, memory_disk):
        memory_disk.put("a.pdf", b"%PDF")

        response = memory_disk.download("a.pdf", "résumé.pdf")

        assert response.headers["Content-Disposition"] == (
            "attachment; filename=resume.pdf; filename*=utf-8''r%C3%A9sum%C3%A9.pdf"
        )
        assert response.headers["Content-Type"] == "application/pdf"

    def test_explicit_headers_are_kept(self, memory_disk):
        memory_disk.put("a.txt", b"x")

        response = memory_disk.response("a.txt", headers={"Content-Type": "text/csv", "Cache-Control": "no-store"})

        assert response.headers["Content-Type"] == "text/csv"
        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["Content-Length"] == 1

    def test_unknown_type_and_missing_file(self, memory_disk):
        response = memory_disk.response("ghost.bin")

        assert response.headers["Content-Type"] == "application/octet-stream"
        assert "Content-Length" not in response.headers
        assert list(response) == []

    def test_body_reads_current_contents(self, memory_disk):
        memory_disk.put("a.txt", b"old")
        response = memory_disk.response("a.txt")
        memory_disk.put("a.txt", b"new")

        assert b"".join(response) == b"new"
