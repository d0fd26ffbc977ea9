"""Request and response shapes of the dashboard API."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, List, Mapping


class ValidationError(ValueError):
    """Raised when request data does not satisfy its constraints."""


def format_timestamp(seconds: int) -> str:
    """Format a Unix timestamp in local time as ``YYYY-MM-DD HH:MM:SS``."""
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(seconds))


def _str(data: Mapping[str, Any], key: str, required: bool = False) -> str:
    value = data.get(key)
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(f"field {key} must be a string")
    if required and not value:
        raise ValidationError(f"field {key} is required")
    return value


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValidationError(f"field {key} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"field {key} must be an integer") from exc


@dataclass
class AppListReq:
    name: str = ""
    id: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AppListReq":
        return cls(name=_str(data, "name"), id=_str(data, "id"))


@dataclass
class AppListItem:
    id: str
    name: str
    target: str
    create_at: str
    update_at: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AppListResp:
    data: List[AppListItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"data": [item.to_dict() for item in self.data]}


@dataclass
class NewAppReq:
    name: str
    target: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "NewAppReq":
        name = _str(data, "name", required=True)
        if len(name) > 50:
            raise ValidationError("field name must be at most 50 characters")
        return cls(name=name, target=_str(data, "target", required=True))


@dataclass
class EditAppReq:
    id: str
    name: str
    target: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EditAppReq":
        base = NewAppReq.from_mapping(data)
        return cls(id=_str(data, "id"), name=base.name, target=base.target)


@dataclass
class NewAppResp:
    id: str
    name: str
    target: str
    create_at: str
    update_at: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class HttpLogListReq:
    app_id: str
    start_time: int = 0
    end_time: int = 0
    keyword: str = ""
    page: int = 1
    size: int = 10

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "HttpLogListReq":
        app_id = _str(data, "app_id", required=True)
        page, size = _int(data, "page"), _int(data, "size")
        if page < 1:
            raise ValidationError("field page must be at least 1")
        if not 1 <= size <= 100:
            raise ValidationError("field size must be between 1 and 100")
        return cls(
            app_id=app_id,
            start_time=_int(data, "start_time"),
            end_time=_int(data, "end_time"),
            keyword=_str(data, "keyword"),
            page=page,
            size=size,
        )


@dataclass
class HttpLogListItem:
    create_at: str
    request_id: str
    request_url: str
    request_method: str
    response_code: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class HttpLogListResp:
    total: int = 0
    data: List[HttpLogListItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"total": self.total, "data": [item.to_dict() for item in self.data]}