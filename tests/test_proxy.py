import gzip

import httpx
import pytest
from werkzeug.test import Client

from httplogproxy.config import StorageConfig
from httplogproxy.proxy import HttpLogProxy, rewrite_url
from httplogproxy.storage.models import AppModel, SearchHttpLogListParam
from httplogproxy.storage.sqlite import SQLiteStorage

TARGET = "http://upstream.test/api"


@pytest.fixture
def storage():
    store = SQLiteStorage()
    store.init(StorageConfig(type="local", source=":memory:"))
    store.setup()
    store.add_app(AppModel(id="app1", name="demo", target=TARGET, create_at=1, update_at=1))
    yield store
    store.close()


class Upstream:
    def __init__(self, response=None, error=None):
        self.requests = []
        self.response = response
        self.error = error

    def __call__(self, request):
        request.read()
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


def make_client(storage, upstream):
    http = httpx.Client(transport=httpx.MockTransport(upstream))
    return Client(HttpLogProxy(storage, http))


def test_rewrite_url_joins_and_strips_app_id():
    assert rewrite_url(TARGET, "/app1/hello", "x=1", "app1") == "http://upstream.test/api/hello?x=1"


def test_rewrite_url_merges_queries():
    url = rewrite_url("http://upstream.test/?a=1", "/app1/p", "b=2", "app1")
    assert url.endswith("?a=1&b=2")
    assert "app1" not in url


def test_rewrite_url_without_query_has_no_question_mark():
    url = rewrite_url("http://upstream.test", "/app1/p", "", "app1")
    assert "?" not in url
    assert url.startswith("http://upstream.test/")


def test_resolve_app_finds_first_segment(storage):
    proxy = HttpLogProxy(storage, httpx.Client())
    assert proxy.resolve_app("/app1/anything/else").target == TARGET


def test_resolve_app_unknown_raises(storage):
    proxy = HttpLogProxy(storage, httpx.Client())
    with pytest.raises(LookupError, match="invalid application flag: nope"):
        proxy.resolve_app("/nope/x")


def test_unknown_app_returns_bad_request(storage):
    client = make_client(storage, Upstream())
    response = client.get("/nope/x")
    assert response.status_code == 400
    assert response.get_data() == b"invalid application flag: nope\n"


def test_proxies_and_records_exchange(storage):
    upstream = Upstream(
        httpx.Response(
            201,
            headers={"Content-Type": "text/plain", "Content-Encoding": "gzip"},
            content=gzip.compress(b"hello world"),
        )
    )
    client = make_client(storage, upstream)
    response = client.post("/app1/hello?x=1", data=b"payload")

    assert response.status_code == 201
    assert gzip.decompress(response.get_data()) == b"hello world"

    sent = upstream.requests[0]
    assert sent.method == "POST"
    assert sent.content == b"payload"
    assert sent.headers["Referer"] == TARGET
    assert str(sent.url) == rewrite_url(TARGET, "/app1/hello", "x=1", "app1")

    total, logs = storage.search_http_log_list("app1", SearchHttpLogListParam())
    assert total == 1
    log = logs[0]
    assert log.request_id == sent.headers["X-Http-Log-Proxy-Request-Id"]
    assert log.request_body == "payload"
    assert log.response_body == "hello world"
    assert log.response_code == 201


def test_each_request_gets_its_own_id(storage):
    upstream = Upstream(httpx.Response(200, content=b"ok"))
    client = make_client(storage, upstream)
    client.get("/app1/a")
    client.get("/app1/b")
    ids = {r.headers["X-Http-Log-Proxy-Request-Id"] for r in upstream.requests}
    assert len(ids) == 2
    total, _ = storage.search_http_log_list("app1", SearchHttpLogListParam())
    assert total == 2


def test_upstream_failure_returns_bad_gateway(storage):
    upstream = Upstream(error=httpx.ConnectError("refused"))
    client = make_client(storage, upstream)
    response = client.get("/app1/x")
    assert response.status_code == 502
    assert response.get_data().startswith(b"proxy error: ")
    total, _ = storage.search_http_log_list("app1", SearchHttpLogListParam())
    assert total == 0