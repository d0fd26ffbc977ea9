"""Capture of a proxied request and response into an HTTP log record."""

from __future__ import annotations

import gzip
import json
import time
import zlib
from typing import Any, Iterable, Iterator, Optional, Tuple

import brotli

from .logger import with_context
from .storage.models import HttpLogModel

_TOKEN_CHARS = set(
    "!#$%&'*+-.^_`|~0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)

_JSON_HTML_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _canonical_key(key: str) -> str:
    if not key or any(c not in _TOKEN_CHARS for c in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("latin-1")
    return str(value)


def _header_pairs(headers: Any) -> Iterator[Tuple[str, str]]:
    if headers is None:
        return
    if hasattr(headers, "multi_items"):
        items: Iterable = headers.multi_items()
    elif hasattr(headers, "items"):
        items = headers.items()
    else:
        items = headers
    for key, value in items:
        if isinstance(value, (list, tuple)):
            for single in value:
                yield _text(key), _text(single)
        else:
            yield _text(key), _text(value)


def _header_get(headers: Any, name: str) -> str:
    wanted = name.lower()
    return next((v for k, v in _header_pairs(headers) if k.lower() == wanted), "")


def header_marshal(headers: Any) -> str:
    """Serialise headers to a JSON object holding the first value of each name."""
    first: dict = {}
    for key, value in _header_pairs(headers):
        first.setdefault(_canonical_key(key), value)
    text = json.dumps(first, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    for raw, escaped in _JSON_HTML_ESCAPES:
        text = text.replace(raw, escaped)
    return text


def decode_response_body(body: bytes, content_encoding: str) -> bytes:
    """Undo ``br``, ``gzip`` or ``deflate`` encoding; other bodies pass unchanged.

    A body that fails to decode yields the error message instead.
    """
    if content_encoding == "br":
        try:
            return brotli.decompress(body)
        except brotli.error as exc:
            return f"brotli: {exc}".encode()
    if content_encoding == "gzip":
        try:
            return gzip.decompress(body)
        except (OSError, EOFError, zlib.error) as exc:
            return f"gzip: {exc}".encode()
    if content_encoding == "deflate":
        decoder = zlib.decompressobj(-zlib.MAX_WBITS)
        try:
            data = decoder.decompress(body) + decoder.flush()
        except zlib.error as exc:
            return f"flate: {exc}".encode()
        if not decoder.eof:
            return b"flate: unexpected EOF"
        return data
    return body


class LogRecorder:
    """Collects one request/response exchange and stores it on flush."""

    def __init__(self, storage) -> None:
        self.storage = storage
        self.log = HttpLogModel()

    def write_request(self, method: str, url: str, headers: Any, body: Optional[bytes]) -> None:
        self.log.request_url = url
        self.log.request_method = method
        self.log.request_header = header_marshal(headers)
        if body is not None:
            self.log.request_body = body.decode("utf-8", errors="replace")

    def write_response(self, status: int, headers: Any, body: Optional[bytes]) -> None:
        self.log.response_code = status
        self.log.response_header = header_marshal(headers)
        if body is not None:
            decoded = decode_response_body(body, _header_get(headers, "Content-Encoding"))
            self.log.response_body = decoded.decode("utf-8", errors="replace")

    def flush(self, request_id: str, app_id: str) -> None:
        """Stamp the record and hand it to storage; failures are only logged."""
        self.log.request_id = request_id
        self.log.app_id = app_id
        self.log.create_at = int(time.time())
        try:
            self.storage.add_http_log(self.log)
        except Exception as exc:
            with_context({}).info("Error adding http log:%s", exc)