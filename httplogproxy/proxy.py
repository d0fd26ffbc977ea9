"""Reverse proxy that records every exchange as an HTTP log."""

from __future__ import annotations

import uuid
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

import httpx
from werkzeug.wrappers import Request, Response

from .logger import with_context
from .recorder import LogRecorder
from .storage.models import AppModel

HTTP_LOG_PROXY_REQUEST_ID = "X-Http-Log-Proxy-Request-Id"

_HOP_BY_HOP = frozenset(
    "connection keep-alive proxy-connection proxy-authenticate proxy-authorization "
    "te trailer transfer-encoding upgrade".split()
)
_DROPPED_OUTBOUND = _HOP_BY_HOP | {
    "host", "content-length", "x-forwarded-for", "x-forwarded-host", "x-forwarded-proto",
    "referer", HTTP_LOG_PROXY_REQUEST_ID.lower(),
}
_DROPPED_INBOUND = _HOP_BY_HOP | {"content-length"}


def _join(a: str, b: str) -> str:
    if a.endswith("/") and b.startswith("/"):
        return a + b[1:]
    if not a.endswith("/") and not b.startswith("/"):
        return a + "/" + b
    return a + b


def rewrite_url(target: str, path: str, query: str, app_id: str) -> str:
    """Build the upstream URL: *path* joined under *target* with the app prefix removed."""
    parts = urlsplit(target)
    joined = _join(parts.path, path).replace("/" + app_id, "")
    merged = f"{parts.query}&{query}" if parts.query and query else parts.query + query
    return urlunsplit((parts.scheme, parts.netloc, quote(joined, safe="/:@!$&'()*+,;=-._~"), merged, ""))


def _filter_headers(pairs, dropped):
    pairs = list(pairs)
    listed = {t.strip().lower() for k, v in pairs if k.lower() == "connection" for t in v.split(",")}
    return [(k, v) for k, v in pairs if k.lower() not in dropped and k.lower() not in listed]


def _error_response(message: str, status: int) -> Response:
    return Response(
        message + "\n",
        status=status,
        content_type="text/plain; charset=utf-8",
        headers={"X-Content-Type-Options": "nosniff"},
    )


class HttpLogProxy:
    """WSGI application forwarding ``/<app_id>/...`` to the app's target."""

    def __init__(self, storage, client: Optional[httpx.Client] = None) -> None:
        self.storage = storage
        self.client = client if client is not None else httpx.Client(timeout=None)

    def resolve_app(self, path: str) -> AppModel:
        """Find the application named by the first path segment."""
        flag = path.removeprefix("/").split("/", 1)[0]
        try:
            return self.storage.get_app_by_id(flag)
        except Exception as exc:
            raise LookupError(f"invalid application flag: {flag}") from exc

    def __call__(self, environ, start_response):
        request = Request(environ)
        try:
            app = self.resolve_app(request.path)
        except LookupError as exc:
            return _error_response(str(exc), 400)(environ, start_response)

        request_id = str(uuid.uuid4())
        out_url = rewrite_url(app.target, request.path, environ.get("QUERY_STRING", ""), app.id)
        headers = _filter_headers(request.headers.items(), _DROPPED_OUTBOUND)
        headers += [(HTTP_LOG_PROXY_REQUEST_ID, request_id), ("Referer", app.target)]
        if not any(k.lower() == "accept-encoding" for k, _ in headers):
            headers.append(("Accept-Encoding", "identity"))
        with_context({}).info("%s => %s", request.url, out_url)

        recorder = LogRecorder(self.storage)
        body = request.get_data()
        recorder.write_request(request.method, out_url, headers, body)

        try:
            outbound = self.client.build_request(request.method, out_url, headers=headers, content=body or None)
            upstream = self.client.send(outbound, stream=True)
            try:
                raw = b"".join(upstream.iter_raw())
            finally:
                upstream.close()
        except httpx.HTTPError as exc:
            with_context({}).info("proxy error: %s", exc)
            return _error_response(f"proxy error: {exc}", 502)(environ, start_response)

        response_headers = upstream.headers.multi_items()
        recorder.write_response(upstream.status_code, response_headers, raw)
        recorder.flush(request_id, app.id)

        response = Response(raw, status=upstream.status_code, headers=_filter_headers(response_headers, _DROPPED_INBOUND))
        return response(environ, start_response)