from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, List, Optional, Protocol

import redis

from ainews.exceptions import StorageError

logger = logging.getLogger(__name__)

FAVORITES_KEY = "favorites"
READ_HISTORY_KEY = "readHistory"


class Storage(Protocol):
    def load(self, key: str) -> List[Dict[str, Any]]:  # pragma: no cover - interface
        ...

    def save(self, key: str, items: List[Dict[str, Any]]) -> None:  # pragma: no cover - interface
        ...

    def remove(self, key: str) -> None:  # pragma: no cover - interface
        ...

    def describe(self) -> str:  # pragma: no cover - interface
        ...


def _decode(raw: Optional[str], key: str) -> List[Dict[str, Any]]:
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except ValueError:
        logger.error(f"Discarding unreadable stored value for '{key}'")
        return []
    return items if isinstance(items, list) else []


class MemoryStorage:
    """Dict-backed storage, mainly for tests."""

    def __init__(self, initial: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> None:
        self._values: Dict[str, str] = {
            key: json.dumps(items) for key, items in (initial or {}).items()
        }

    def load(self, key: str) -> List[Dict[str, Any]]:
        return _decode(self._values.get(key), key)

    def save(self, key: str, items: List[Dict[str, Any]]) -> None:
        self._values[key] = json.dumps(items, ensure_ascii=False)

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def describe(self) -> str:
        return "memory"


class JsonFileStorage:
    """
    One JSON document mapping storage key to a serialized array, the way a
    browser keeps local storage. Each save rewrites the whole file.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        # Guards the read-modify-write of the shared document.
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except ValueError:
            logger.error(f"Storage file {self.path} is corrupt, starting empty")
            return {}
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(self.path) or "."
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=directory,
                                             suffix=".tmp", delete=False) as f:
                tmp_path = f.name
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Cannot write {self.path}: {e}") from e

    def load(self, key: str) -> List[Dict[str, Any]]:
        with self._lock:
            return _decode(self._read_all().get(key), key)

    def save(self, key: str, items: List[Dict[str, Any]]) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = json.dumps(items, ensure_ascii=False)
            self._write_all(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key in data:
                del data[key]
                self._write_all(data)

    def describe(self) -> str:
        return f"file:{self.path}"


class RedisStorage:
    """Each storage key holds a JSON string under `<prefix><key>`."""

    def __init__(self, url: Optional[str] = None, client: Any = None, prefix: str = "ainews:") -> None:
        if client is None:
            if not url:
                raise ValueError("RedisStorage needs a url or a client")
            client = redis.Redis.from_url(url)
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def load(self, key: str) -> List[Dict[str, Any]]:
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as e:
            raise StorageError(f"Redis get error: {e}") from e
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return _decode(raw, key)

    def save(self, key: str, items: List[Dict[str, Any]]) -> None:
        try:
            self.client.set(self._key(key), json.dumps(items, ensure_ascii=False))
        except redis.RedisError as e:
            raise StorageError(f"Redis set error: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except redis.RedisError as e:
            raise StorageError(f"Redis delete error: {e}") from e

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    def describe(self) -> str:
        return "redis"


def build_storage(redis_url: Optional[str] = None, path: Optional[str] = None):
    if redis_url:
        logger.info("Persisting favorites and history to Redis")
        return RedisStorage(url=redis_url)
    if path:
        logger.info(f"Persisting favorites and history to {path}")
        return JsonFileStorage(path)
    return MemoryStorage()
