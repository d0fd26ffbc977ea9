"""Records kept by the storage backends."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping

APP_MODEL_TABLE_NAME = "tb_app"
HTTP_LOG_MODEL_TABLE_NAME = "tb_http_log"


def _pick(cls, data: Mapping[str, Any]) -> dict:
    return {f.name: data[f.name] for f in fields(cls) if f.name in data}


@dataclass
class AppModel:
    id: str = ""
    name: str = ""
    target: str = ""
    create_at: int = 0
    update_at: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppModel":
        return cls(**_pick(cls, data))


@dataclass
class HttpLogModel:
    request_id: str = ""
    app_id: str = ""
    request_url: str = ""
    request_method: str = ""
    request_header: str = ""
    request_body: str = ""
    response_code: int = 0
    response_header: str = ""
    response_body: str = ""
    create_at: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HttpLogModel":
        return cls(**_pick(cls, data))


@dataclass
class SearchHttpLogListParam:
    keyword: str = ""
    start_time: int = 0
    end_time: int = 0
    size: int = 10
    page: int = 1

    def offset(self) -> int:
        """Number of rows skipped before the requested page."""
        return (self.page - 1) * self.size