"""Elasticsearch backend over its REST API, registered as ``elasticsearch``."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from ..config import StorageConfig
from .models import (
    APP_MODEL_TABLE_NAME,
    HTTP_LOG_MODEL_TABLE_NAME,
    AppModel,
    HttpLogModel,
    SearchHttpLogListParam,
)
from .provider import NotFoundError, Provider, StorageError, register

APP_INDEX_MAPPING: Dict[str, Any] = {
    "mappings": {
        "properties": {
            "id": {"type": "keyword"},
            "name": {"type": "text", "fields": {"keyword": {"type": "keyword"}}},
            "target": {"type": "keyword"},
            "create_at": {"type": "long"},
            "update_at": {"type": "long"},
        }
    }
}

HTTP_LOG_INDEX_MAPPING: Dict[str, Any] = {
    "mappings": {
        "properties": {
            "request_id": {"type": "keyword"},
            "app_id": {"type": "keyword"},
            "request_url": {"type": "keyword"},
            "request_method": {"type": "keyword"},
            "request_header": {"type": "text"},
            "request_body": {"type": "text"},
            "response_code": {"type": "integer"},
            "response_header": {"type": "text"},
            "response_body": {"type": "text"},
            "create_at": {"type": "long"},
        }
    }
}

_QUERY_STRING_SPECIAL = set('\\+-=&|><!(){}[]^"~*?:/')


def _escape_query_string(text: str) -> str:
    return "".join("\\" + c if c in _QUERY_STRING_SPECIAL else c for c in text)


def _total_hits(hits: Dict[str, Any]) -> int:
    total = hits.get("total", 0)
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)


class ElasticsearchStorage(Provider):
    """Stores apps and logs as documents in two Elasticsearch indices."""

    def __init__(self, client: Optional[httpx.Client] = None) -> None:
        self._client = client

    def init(self, conf: StorageConfig) -> None:
        auth = (conf.user, conf.password) if (conf.user or conf.password) else None
        client = httpx.Client(base_url=conf.source, auth=auth, timeout=30.0)
        try:
            response = client.get("/")
            response.raise_for_status()
        except (httpx.HTTPError, ValueError) as exc:
            client.close()
            raise StorageError(f"elasticsearch.NewClient: {exc}") from exc
        self._client = client

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if self._client is None:
            raise StorageError("storage is not initialised")
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(str(exc)) from exc
        if response.status_code >= 400:
            raise StorageError(f"elasticsearch error {response.status_code}: {response.text}")
        return response

    def _index_exists(self, index: str) -> bool:
        if self._client is None:
            raise StorageError("storage is not initialised")
        try:
            response = self._client.head(f"/{index}")
        except httpx.HTTPError as exc:
            raise StorageError(str(exc)) from exc
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise StorageError(f"elasticsearch error {response.status_code}")

    def setup(self) -> None:
        for index, mapping in (
            (APP_MODEL_TABLE_NAME, APP_INDEX_MAPPING),
            (HTTP_LOG_MODEL_TABLE_NAME, HTTP_LOG_INDEX_MAPPING),
        ):
            try:
                exists = self._index_exists(index)
            except StorageError as exc:
                raise StorageError(f"elasticsearch check {index} index exists: {exc}") from exc
            if exists:
                continue
            try:
                self._request(
                    "PUT",
                    f"/{index}",
                    content=json.dumps(mapping),
                    headers={"Content-Type": "application/json"},
                )
            except StorageError as exc:
                raise StorageError(f"elasticsearch create {index} index: {exc}") from exc

    def _search(self, index: str, body: Dict[str, Any]) -> Tuple[int, List[Dict[str, Any]]]:
        response = self._request("POST", f"/{index}/_search", json=body)
        try:
            hits = response.json().get("hits", {})
        except ValueError as exc:
            raise StorageError(str(exc)) from exc
        return _total_hits(hits), list(hits.get("hits", []))

    def _first_hit(self, index: str, field: str, value: str) -> Optional[Dict[str, Any]]:
        total, hits = self._search(index, {"query": {"match": {field: value}}, "size": 1})
        if total == 0 or not hits:
            return None
        return hits[0]

    def add_app(self, app: AppModel) -> None:
        self._request("POST", f"/{APP_MODEL_TABLE_NAME}/_doc", json=app.to_dict())

    def del_app(self, app_id: str) -> None:
        hit = self._first_hit(APP_MODEL_TABLE_NAME, "id", app_id)
        if hit is None:
            raise NotFoundError("app not found")
        self._request(
            "DELETE",
            f"/{APP_MODEL_TABLE_NAME}/_doc/{quote(str(hit['_id']), safe='')}",
            params={"refresh": "true"},
        )

    def update_app(self, app: AppModel) -> None:
        hit = self._first_hit(APP_MODEL_TABLE_NAME, "id", app.id)
        if hit is None:
            raise NotFoundError("app not found")
        self._request(
            "POST",
            f"/{APP_MODEL_TABLE_NAME}/_update/{quote(str(hit['_id']), safe='')}",
            params={"refresh": "true"},
            json={"doc": app.to_dict()},
        )

    def get_app_by_id(self, app_id: str) -> AppModel:
        hit = self._first_hit(APP_MODEL_TABLE_NAME, "id", app_id)
        if hit is None:
            raise NotFoundError("app not found")
        return AppModel.from_dict(hit.get("_source", {}))

    def search_app_list(self, name: str, app_id: str) -> List[AppModel]:
        must: List[Dict[str, Any]] = []
        if name:
            must.append({"match": {"name": name}})
        if app_id:
            must.append({"wildcard": {"id": f"*{app_id}*"}})
        bool_query: Dict[str, Any] = {"must": must} if must else {}
        body = {
            "query": {"bool": bool_query},
            "sort": [{"create_at": {"order": "desc"}}, {"update_at": {"order": "desc"}}],
        }
        _, hits = self._search(APP_MODEL_TABLE_NAME, body)
        return [AppModel.from_dict(hit.get("_source", {})) for hit in hits]

    def add_http_log(self, log: HttpLogModel) -> None:
        self._request("POST", f"/{HTTP_LOG_MODEL_TABLE_NAME}/_doc", json=log.to_dict())

    def get_http_log_by_request_id(self, request_id: str) -> HttpLogModel:
        hit = self._first_hit(HTTP_LOG_MODEL_TABLE_NAME, "request_id", request_id)
        if hit is None:
            raise NotFoundError("http log not found")
        return HttpLogModel.from_dict(hit.get("_source", {}))

    def search_http_log_list(
        self, app_id: str, param: SearchHttpLogListParam
    ) -> Tuple[int, List[HttpLogModel]]:
        filters: List[Dict[str, Any]] = [{"term": {"app_id": app_id}}]
        bounds: Dict[str, int] = {}
        if param.start_time:
            bounds["gte"] = param.start_time
        if param.end_time:
            bounds["lte"] = param.end_time
        if bounds:
            filters.append({"range": {"create_at": bounds}})
        if param.keyword:
            filters.append({
                "query_string": {
                    "query": _escape_query_string(param.keyword),
                    "default_operator": "AND",
                    "fields": ["request_id", "request_body", "response_body"],
                }
            })
        body = {
            "query": {"bool": {"filter": filters}},
            "from": int(param.offset()),
            "size": int(param.size),
            "sort": [{"create_at": {"order": "desc"}}],
        }
        total, hits = self._search(HTTP_LOG_MODEL_TABLE_NAME, body)
        return total, [HttpLogModel.from_dict(hit.get("_source", {})) for hit in hits]


register("elasticsearch", ElasticsearchStorage)