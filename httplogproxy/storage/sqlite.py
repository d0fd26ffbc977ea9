"""SQLite backend, registered as ``local``."""

from __future__ import annotations

import sqlite3

from ..config import StorageConfig
from .models import APP_MODEL_TABLE_NAME
from .provider import StorageError, register
from .sql import SqlStorage


class SQLiteStorage(SqlStorage):
    """SQL storage kept in a SQLite database file."""

    def __init__(self) -> None:
        super().__init__(None)

    def init(self, conf: StorageConfig) -> None:
        try:
            conn = sqlite3.connect(conf.source, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"sql.Open: {exc}") from exc
        try:
            conn.execute("SELECT 1")
        except sqlite3.Error as exc:
            conn.close()
            raise StorageError(f"db.Ping: {exc}") from exc
        self._conn = conn

    def _table_exists(self) -> bool:
        rows = self._run(
            "SELECT COUNT(*) AS c FROM sqlite_master WHERE `type` = 'table' AND `name` = ?",
            (APP_MODEL_TABLE_NAME,),
        )
        return rows[0]["c"] > 0

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
            raise StorageError(f"sqlite init: {exc}") from exc

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None


register("local", SQLiteStorage)