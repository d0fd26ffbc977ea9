"""Loading of the YAML configuration file."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import yaml


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or parsed."""


@dataclass
class StorageConfig:
    """Settings of the storage backend."""

    type: str = ""
    source: str = ""
    host: str = ""
    port: str = ""
    user: str = ""
    password: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "StorageConfig":
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigError("config file unmarshal error: Storage must be a mapping")

        def text(key: str) -> str:
            value = data.get(key)
            return "" if value is None else str(value)

        return cls(text("Type"), text("Source"), text("Host"), text("Port"), text("User"), text("Pass"))


@dataclass
class Config:
    """Top-level configuration."""

    storage: Optional[StorageConfig] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Config":
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigError("config file unmarshal error: top level must be a mapping")
        storage = data.get("Storage")
        return cls(None if storage is None else StorageConfig.from_dict(storage))


def load(filename) -> Config:
    """Read and parse the YAML configuration at *filename*."""
    try:
        with open(filename, "rb") as handle:
            raw = handle.read()
    except OSError as exc:
        raise ConfigError(f"config file read error: {exc}") from exc
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"config file unmarshal error: {exc}") from exc
    return Config.from_dict(data)