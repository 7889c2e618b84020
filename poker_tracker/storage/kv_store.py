from __future__ import annotations

import copy
import json
import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, List

from loguru import logger

from poker_tracker.core.errors import StorageError

SESSIONS_KEY = "sessions"
ACTIVE_SESSION_KEY = "activeSession"
PLANS_KEY = "plans"
OFF_DAYS_KEY = "offDays"
SETTINGS_KEY = "settings"


class KeyValueStore:
    """
    Мінімальний інтерфейс сховища: одне значення (JSON-сумісне) на ключ.
    Запис кожного ключа атомарний, транзакцій між ключами немає.
    """

    def get(self, key: str, default=None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError

    def clear(self) -> None:
        for key in self.keys():
            self.delete(key)


class MemoryStore(KeyValueStore):

    def __init__(self, initial: Dict[str, Any] | None = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str, default=None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        # та сама перевірка серіалізації, що й у файлових сховищ
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON-serialisable: {e}") from e
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())


class SQLiteStore(KeyValueStore):

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        parent = os.path.dirname(self.db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self._ensure_table()

    def _ensure_table(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        self.conn.commit()

    def get(self, key: str, default=None) -> Any:
        cur = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,))
        row = cur.fetchone()
        if not row:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            logger.error(f"[SQLiteStore] Corrupt value under '{key}', ignoring it")
            return default

    def set(self, key: str, value: Any) -> None:
        try:
            as_json = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON-serialisable: {e}") from e

        try:
            with self.conn:
                self.conn.execute("""
                    INSERT OR REPLACE INTO kv (key, value)
                    VALUES (?, ?)
                """, (key, as_json))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write '{key}': {e}") from e

    def delete(self, key: str) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete '{key}': {e}") from e

    def keys(self) -> List[str]:
        cur = self.conn.execute("SELECT key FROM kv ORDER BY key")
        return [row["key"] for row in cur.fetchall()]

    def close(self) -> None:
        self.conn.close()


class JSONFileStore(KeyValueStore):
    """Один JSON-файл на весь стан; запис через тимчасовий файл + replace."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"[JSONFileStore] Cannot read {self.path}: {e}; starting empty")
            return {}

        if not isinstance(data, dict):
            logger.error(f"[JSONFileStore] {self.path} is not an object; starting empty")
            return {}
        return data

    def _save_raw(self, data: Dict[str, Any]) -> None:
        tmp_path = self.path.with_suffix(".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

    def get(self, key: str, default=None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        updated = dict(self._data)
        updated[key] = copy.deepcopy(value)
        self._save_raw(updated)
        self._data = updated

    def delete(self, key: str) -> None:
        if key not in self._data:
            return
        updated = dict(self._data)
        updated.pop(key)
        self._save_raw(updated)
        self._data = updated

    def keys(self) -> List[str]:
        return list(self._data.keys())
