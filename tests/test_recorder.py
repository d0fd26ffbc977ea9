import gzip
import json
import zlib

import brotli
import pytest

from httplogproxy.recorder import LogRecorder, decode_response_body, header_marshal
from httplogproxy.config import StorageConfig
from httplogproxy.storage.sqlite import SQLiteStorage


@pytest.fixture
def storage():
    store = SQLiteStorage()
    store.init(StorageConfig(type="local", source=":memory:"))
    store.setup()
    yield store
    store.close()


def _raw_deflate(data):
    compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def test_header_marshal_keeps_first_value_and_canonical_keys():
    result = json.loads(header_marshal([("content-type", "text/plain"), ("x-a", "1"), ("X-A", "2")]))
    assert result == {"Content-Type": "text/plain", "X-A": "1"}


def test_header_marshal_accepts_mapping_of_lists():
    result = json.loads(header_marshal({"Accept": ["a", "b"], "Host": "h"}))
    assert result == {"Accept": "a", "Host": "h"}


def test_header_marshal_escapes_html_and_sorts():
    assert header_marshal({"b": "<x>", "a": "1"}) == '{"A":"1","B":"\\u003cx\\u003e"}'


def test_header_marshal_empty():
    assert header_marshal({}) == "{}"


@pytest.mark.parametrize(
    "encoding, encode",
    [("gzip", gzip.compress), ("deflate", _raw_deflate), ("br", brotli.compress)],
)
def test_decode_round_trip(encoding, encode):
    data = "payload 中文".encode() * 20
    assert decode_response_body(encode(data), encoding) == data


def test_decode_unknown_encoding_passes_through():
    assert decode_response_body(b"raw", "identity") == b"raw"
    assert decode_response_body(b"raw", "") == b"raw"


@pytest.mark.parametrize("encoding, prefix", [("gzip", b"gzip: "), ("deflate", b"flate: "), ("br", b"brotli: ")])
def test_decode_failure_yields_error_text(encoding, prefix):
    assert decode_response_body(b"\xff\xfenot compressed", encoding).startswith(prefix)


def test_write_request_records_fields(storage):
    recorder = LogRecorder(storage)
    recorder.write_request("POST", "http://upstream.test/x", {"Content-Type": "application/json"}, b'{"a":1}')
    assert recorder.log.request_method == "POST"
    assert recorder.log.request_url == "http://upstream.test/x"
    assert recorder.log.request_body == '{"a":1}'
    assert json.loads(recorder.log.request_header) == {"Content-Type": "application/json"}


def test_write_response_decodes_body(storage):
    recorder = LogRecorder(storage)
    headers = [("Content-Encoding", "gzip"), ("Content-Type", "text/plain")]
    recorder.write_response(201, headers, gzip.compress(b"hello"))
    assert recorder.log.response_code == 201
    assert recorder.log.response_body == "hello"
    assert json.loads(recorder.log.response_header)["Content-Encoding"] == "gzip"


def test_flush_persists_log(storage):
    recorder = LogRecorder(storage)
    recorder.write_request("GET", "http://upstream.test/", {}, b"")
    recorder.write_response(200, {}, b"ok")
    recorder.flush("req-1", "app-1")
    stored = storage.get_http_log_by_request_id("req-1")
    assert stored.app_id == "app-1"
    assert stored.response_body == "ok"
    assert stored.create_at == recorder.log.create_at
    assert stored.create_at > 0


def test_flush_swallows_storage_errors(storage):
    storage.close()
    recorder = LogRecorder(storage)
    recorder.flush("req-2", "app-2")
    assert (recorder.log.request_id, recorder.log.app_id) == ("req-2", "app-2")