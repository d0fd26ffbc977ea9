"""SQL storage over a DB-API connection using ``?`` placeholders."""

from __future__ import annotations

import threading
from typing import Any, List, Sequence, Tuple

from .models import (
    APP_MODEL_TABLE_NAME,
    HTTP_LOG_MODEL_TABLE_NAME,
    AppModel,
    HttpLogModel,
    SearchHttpLogListParam,
)
from .provider import NotFoundError, Provider, StorageError

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {APP_MODEL_TABLE_NAME} (
    `id` VARCHAR(64) NOT NULL PRIMARY KEY,
    `name` VARCHAR(50) NOT NULL DEFAULT '',
    `target` VARCHAR(1024) NOT NULL DEFAULT '',
    `create_at` BIGINT NOT NULL DEFAULT 0,
    `update_at` BIGINT NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS {HTTP_LOG_MODEL_TABLE_NAME} (
    `request_id` VARCHAR(64) NOT NULL PRIMARY KEY,
    `app_id` VARCHAR(64) NOT NULL DEFAULT '',
    `request_url` TEXT NOT NULL,
    `request_method` VARCHAR(16) NOT NULL DEFAULT '',
    `request_header` TEXT NOT NULL,
    `request_body` TEXT NOT NULL,
    `response_code` INT NOT NULL DEFAULT 0,
    `response_header` TEXT NOT NULL,
    `response_body` TEXT NOT NULL,
    `create_at` BIGINT NOT NULL DEFAULT 0
);
"""

_NAMED_ESCAPES = {
    "\a": "\\a", "\b": "\\b", "\f": "\\f", "\n": "\\n",
    "\r": "\\r", "\t": "\\t", "\v": "\\v", '"': '\\"', "\\": "\\\\",
}


def unicode_for_mysql_like(text: str) -> str:
    """Escape *text* to pure ASCII, non-ASCII characters as ``\\uXXXX``."""
    parts = []
    for char in text:
        code = ord(char)
        if char in _NAMED_ESCAPES:
            parts.append(_NAMED_ESCAPES[char])
        elif 0x20 <= code < 0x7F:
            parts.append(char)
        elif code < 0x80:
            parts.append(f"\\x{code:02x}")
        elif code < 0x10000:
            parts.append(f"\\u{code:04x}")
        else:
            parts.append(f"\\U{code:08x}")
    return "".join(parts)


class SqlStorage(Provider):
    """Stores apps and logs in SQL tables."""

    def __init__(self, connection) -> None:
        self._conn = connection
        self._lock = threading.RLock()

    def _run(self, sql: str, args: Sequence[Any] = (), commit: bool = False):
        if self._conn is None:
            raise StorageError("storage is not initialised")
        with self._lock:
            try:
                cursor = self._conn.cursor()
                cursor.execute(sql, tuple(args))
                if commit:
                    self._conn.commit()
                    return None
                columns = [d[0] for d in cursor.description or ()]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
            except StorageError:
                raise
            except Exception as exc:
                raise StorageError(str(exc)) from exc

    def _table_exists(self) -> bool:
        rows = self._run(
            "SELECT COUNT(*) AS c FROM information_schema.tables "
            "WHERE `table_schema` = DATABASE() AND `table_name` = ?",
            (APP_MODEL_TABLE_NAME,),
        )
        return next(iter(rows[0].values())) > 0

    def _create_schema(self) -> None:
        for statement in filter(None, (s.strip() for s in SCHEMA_SQL.split(";"))):
            self._run(statement, commit=True)

    def setup(self) -> None:
        try:
            exists = self._table_exists()
        except StorageError as exc:
            raise StorageError(f"query table exists: {exc}") from exc
        if exists:
            return
        try:
            self._create_schema()
        except StorageError as exc:
            raise StorageError(f"init: {exc}") from exc

    def add_app(self, app: AppModel) -> None:
        self._run(
            f"INSERT INTO {APP_MODEL_TABLE_NAME} (`id`, `name`, `target`, `create_at`, `update_at`) "
            "VALUES (?, ?, ?, ?, ?)",
            (app.id, app.name, app.target, app.create_at, app.update_at),
            commit=True,
        )

    def del_app(self, app_id: str) -> None:
        self._run(f"DELETE FROM {APP_MODEL_TABLE_NAME} WHERE `id` = ?", (app_id,), commit=True)

    def update_app(self, app: AppModel) -> None:
        self._run(
            f"UPDATE {APP_MODEL_TABLE_NAME} SET `name` = ?, `target` = ?, `update_at` = ? WHERE `id` = ?",
            (app.name, app.target, app.update_at, app.id),
            commit=True,
        )

    def get_app_by_id(self, app_id: str) -> AppModel:
        rows = self._run(f"SELECT * FROM {APP_MODEL_TABLE_NAME} WHERE `id` = ? LIMIT 1", (app_id,))
        if not rows:
            raise NotFoundError("app not found")
        return AppModel.from_dict(rows[0])

    def search_app_list(self, name: str, app_id: str) -> List[AppModel]:
        sql = f"SELECT * FROM {APP_MODEL_TABLE_NAME} WHERE 1 = 1"
        args: List[Any] = []
        if name:
            sql += " AND `name` LIKE ?"
            args.append(f"%{name}%")
        if app_id:
            sql += " AND `id` LIKE ?"
            args.append(f"%{app_id}%")
        return [AppModel.from_dict(row) for row in self._run(sql, args)]

    def add_http_log(self, log: HttpLogModel) -> None:
        self._run(
            f"INSERT INTO {HTTP_LOG_MODEL_TABLE_NAME} (`request_id`, `app_id`, `request_url`, "
            "`request_method`, `request_header`, `request_body`, `response_code`, "
            "`response_header`, `response_body`, `create_at`) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (log.request_id, log.app_id, log.request_url, log.request_method, log.request_header,
             log.request_body, log.response_code, log.response_header, log.response_body,
             log.create_at),
            commit=True,
        )

    def get_http_log_by_request_id(self, request_id: str) -> HttpLogModel:
        rows = self._run(
            f"SELECT * FROM {HTTP_LOG_MODEL_TABLE_NAME} WHERE `request_id` = ?", (request_id,)
        )
        if not rows:
            raise NotFoundError("http log not found")
        return HttpLogModel.from_dict(rows[0])

    def search_http_log_list(
        self, app_id: str, param: SearchHttpLogListParam
    ) -> Tuple[int, List[HttpLogModel]]:
        sql = f"SELECT * FROM {HTTP_LOG_MODEL_TABLE_NAME} WHERE `app_id` = ?"
        args: List[Any] = [app_id]
        if param.keyword:
            sql += (" AND `request_body` LIKE ? OR `request_body` LIKE ?"
                    " OR `response_body` LIKE ? OR `response_body` LIKE ?")
            plain = f"%{param.keyword}%"
            escaped = f"%{unicode_for_mysql_like(param.keyword)}%"
            args += [plain, escaped, plain, escaped]
        if param.start_time:
            sql += " AND `create_at` >= ?"
            args.append(param.start_time)
        if param.end_time:
            sql += " AND `create_at` <= ?"
            args.append(param.end_time)

        count_rows = self._run(sql.replace("*", "COUNT(1)", 1), args)
        total = int(next(iter(count_rows[0].values())))

        sql += f" ORDER BY `create_at` DESC LIMIT {int(param.offset())}, {int(param.size)}"
        return total, [HttpLogModel.from_dict(row) for row in self._run(sql, args)]