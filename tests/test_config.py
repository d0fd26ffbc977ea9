import pytest

from httplogproxy.config import Config, ConfigError, StorageConfig, load


def test_load_full_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "Storage:\n"
        "  Type: local\n"
        "  Source: ./data.db\n"
        "  Host: localhost\n"
        "  Port: 9200\n"
        "  User: user\n"
        "  Pass: password\n"
    )
    conf = load(path)
    assert conf.storage.type == "local"
    assert conf.storage.source == "./data.db"
    assert conf.storage.host == "localhost"
    assert conf.storage.port == "9200"
    assert conf.storage.user == "user"
    assert conf.storage.password == "password"


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="config file read error"):
        load(tmp_path / "nope.yaml")


def test_load_bad_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("Storage: [unclosed\n")
    with pytest.raises(ConfigError, match="config file unmarshal error"):
        load(path)


def test_empty_file_has_no_storage(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load(path).storage is None


def test_from_dict_defaults():
    conf = Config.from_dict({"Storage": {"Type": "local"}})
    assert conf.storage == StorageConfig(type="local")