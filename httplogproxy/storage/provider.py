"""Storage interface and the registry of backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Tuple

from ..config import Config, StorageConfig
from ..logger import with_context
from .models import AppModel, HttpLogModel, SearchHttpLogListParam


class StorageError(Exception):
    """Raised when a storage operation fails."""


class NotFoundError(StorageError):
    """Raised when a requested record does not exist."""


class Provider(ABC):
    """A backend that stores applications and HTTP logs."""

    def init(self, conf: StorageConfig) -> None:
        """Open the connection described by *conf*."""

    @abstractmethod
    def setup(self) -> None: ...

    @abstractmethod
    def add_app(self, app: AppModel) -> None: ...

    @abstractmethod
    def del_app(self, app_id: str) -> None: ...

    @abstractmethod
    def update_app(self, app: AppModel) -> None: ...

    @abstractmethod
    def get_app_by_id(self, app_id: str) -> AppModel: ...

    @abstractmethod
    def search_app_list(self, name: str, app_id: str) -> List[AppModel]: ...

    @abstractmethod
    def add_http_log(self, log: HttpLogModel) -> None: ...

    @abstractmethod
    def get_http_log_by_request_id(self, request_id: str) -> HttpLogModel: ...

    @abstractmethod
    def search_http_log_list(
        self, app_id: str, param: SearchHttpLogListParam
    ) -> Tuple[int, List[HttpLogModel]]: ...


_storages: Dict[str, Callable[[], Provider]] = {}


def register(name: str, factory: Callable[[], Provider]) -> None:
    """Make a backend available under *name*."""
    _storages[name] = factory


def load(conf: Config) -> Provider:
    """Create, connect and set up the backend chosen in *conf*."""
    if conf.storage is None:
        raise StorageError("missing storage configuration")
    factory = _storages.get(conf.storage.type)
    if factory is None:
        raise StorageError(f"storage type {conf.storage.type} not exist")
    provider = factory()
    provider.init(conf.storage)
    try:
        provider.setup()
    except Exception as exc:  # setup failures are only logged
        with_context({}).debug(str(exc))
    return provider