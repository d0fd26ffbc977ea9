import json
import logging

from httplogproxy.logger import JsonFormatter, with_context


def _record(**extra):
    record = logging.LogRecord("t", logging.WARNING, "/x/file.py", 12, "hello %s", ("world",), None, "fn")
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_format_is_json_with_caller():
    data = json.loads(JsonFormatter().format(_record()))
    assert data["msg"] == "hello world"
    assert data["level"] == "warning"
    assert data["func"] == "fn"
    assert data["file"] == "/x/file.py:12"
    assert "req_id" not in data


def test_format_includes_req_id():
    data = json.loads(JsonFormatter().format(_record(req_id="abc")))
    assert data["req_id"] == "abc"


def test_with_context_none_has_no_fields():
    assert with_context(None).extra == {}


def test_with_context_takes_request_id():
    assert with_context({"X-Request-Id": "r1"}).extra == {"req_id": "r1"}
    assert with_context({}).extra == {"req_id": None}