"""Streaming HTTP response descriptors for stored files.

Nothing here talks to a web framework. ``StreamedResponse`` carries the
status, headers and a lazily opened body that any WSGI/ASGI layer can
iterate.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Any, BinaryIO, Callable, Dict, Iterator, Mapping, Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)

__all__ = [
    "StreamedResponse",
    "make_disposition",
    "fallback_name",
    "DISPOSITION_INLINE",
    "DISPOSITION_ATTACHMENT",
]

DISPOSITION_INLINE = "inline"
DISPOSITION_ATTACHMENT = "attachment"

DEFAULT_CHUNK_SIZE = 8192

_PRINTABLE_ASCII = re.compile(r"^[\x20-\x7e]*$")
_TOKEN = re.compile(r"^[a-z0-9!#$%&'*.^_`|~-]+$", re.IGNORECASE)


def _quote(value: str) -> str:
    if _TOKEN.match(value):
        return value
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def make_disposition(disposition: str, filename: str, fallback: str = "") -> str:
    """Build a ``Content-Disposition`` header value.

    Args:
        disposition: ``inline`` or ``attachment``
        filename: The name the client should see, any unicode allowed
        fallback: Printable ASCII name for clients without RFC 6266 support;
            defaults to ``filename``

    Returns:
        Header value, with an RFC 5987 ``filename*`` parameter when the two
        names differ

    Raises:
        ValueError: On an unknown disposition, a non-ASCII or ``%``-containing
            fallback, or a path separator in either name

    Example:
        >>> make_disposition("attachment", "résumé.pdf", "resume.pdf")
        "attachment; filename=resume.pdf; filename*=utf-8''r%C3%A9sum%C3%A9.pdf"
    """
    if disposition not in (DISPOSITION_ATTACHMENT, DISPOSITION_INLINE):
        raise ValueError(
            f'The disposition must be either "{DISPOSITION_ATTACHMENT}" or "{DISPOSITION_INLINE}".'
        )

    if fallback == "":
        fallback = filename

    if not _PRINTABLE_ASCII.match(fallback):
        raise ValueError("The filename fallback must only contain ASCII characters.")

    if "%" in fallback:
        raise ValueError('The filename fallback cannot contain the "%" character.')

    if any(sep in name for name in (filename, fallback) for sep in ("/", "\\")):
        raise ValueError('The filename and the fallback cannot contain the "/" and "\\" characters.')

    params = {"filename": fallback}
    if filename != fallback:
        params["filename*"] = "utf-8''" + quote(filename, safe="-_.~")

    return "; ".join([disposition] + [f"{key}={_quote(value)}" for key, value in params.items()])


def fallback_name(name: str) -> str:
    """Transliterate ``name`` to printable ASCII and strip ``%``.

    Example:
        >>> fallback_name("Übersicht 100%.pdf")
        'Ubersicht 100.pdf'
    """
    decomposed = unicodedata.normalize("NFKD", name)
    ascii_only = "".join(ch for ch in decomposed if " " <= ch <= "~")
    ascii_only = ascii_only.replace("%", "").strip()
    return ascii_only or "download"


class StreamedResponse:
    """A response whose body is read from storage while it is sent.

    ``opener`` is called once per iteration of the body; the handle it
    returns is closed when iteration ends, whether it finished, failed or
    was abandoned by the consumer.
    """

    def __init__(
        self,
        opener: Callable[[], Optional[BinaryIO]],
        headers: Optional[Mapping[str, Any]] = None,
        status_code: int = 200,
    ) -> None:
        self.opener = opener
        self.headers: Dict[str, Any] = dict(headers or {})
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"StreamedResponse(status_code={self.status_code}, headers={self.headers!r})"

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_body()

    def iter_body(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        stream = self.opener()
        if stream is None:
            return
        try:
            for chunk in iter(lambda: stream.read(chunk_size), b""):
                yield chunk
        finally:
            stream.close()

    def write_to(self, sink: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
        """Copy the body into a writable ``sink``; return the number of bytes written."""
        written = 0
        for chunk in self.iter_body(chunk_size):
            sink.write(chunk)
            written += len(chunk)
        return written

    def header_list(self) -> list:
        """Headers as ``(name, value)`` string pairs, e.g. for WSGI ``start_response``."""
        return [(name, str(value)) for name, value in self.headers.items() if value is not None]
