import pytest

from httplogproxy.config import Config, StorageConfig
from httplogproxy.storage.models import AppModel
from httplogproxy.storage.provider import NotFoundError, Provider, StorageError, load, register


class _Memory(Provider):
    def __init__(self, fail_setup=False):
        self.apps = {}
        self.conf = None
        self.fail_setup = fail_setup
        self.setup_called = False

    def init(self, conf):
        self.conf = conf

    def setup(self):
        self.setup_called = True
        if self.fail_setup:
            raise StorageError("boom")

    def add_app(self, app):
        self.apps[app.id] = app

    def del_app(self, app_id):
        self.apps.pop(app_id)

    def update_app(self, app):
        self.apps[app.id] = app

    def get_app_by_id(self, app_id):
        try:
            return self.apps[app_id]
        except KeyError:
            raise NotFoundError("app not found") from None

    def search_app_list(self, name, app_id):
        return list(self.apps.values())

    def add_http_log(self, log):
        pass

    def get_http_log_by_request_id(self, request_id):
        raise NotFoundError("http log not found")

    def search_http_log_list(self, app_id, param):
        return 0, []


def test_load_registered():
    register("memtest", _Memory)
    conf = Config(StorageConfig(type="memtest", source="s"))
    provider = load(conf)
    assert provider.conf.source == "s"
    assert provider.setup_called is True


def test_setup_failure_is_swallowed():
    register("memfail", lambda: _Memory(fail_setup=True))
    provider = load(Config(StorageConfig(type="memfail")))
    assert provider.setup_called is True


def test_unknown_type():
    with pytest.raises(StorageError, match="storage type nope not exist"):
        load(Config(StorageConfig(type="nope")))


def test_missing_storage():
    with pytest.raises(StorageError):
        load(Config())


def test_not_found_is_storage_error():
    provider = _Memory()
    provider.add_app(AppModel(id="x"))
    assert provider.get_app_by_id("x").id == "x"
    with pytest.raises(StorageError):
        provider.get_app_by_id("y")