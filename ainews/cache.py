from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple

DEFAULT_TTL_SECONDS = 10 * 60


@dataclass
class CacheEntry:
    key: str
    data: Any
    timestamp: float


class NewsCache:
    """
    Process-lifetime map from a composite key to a fetched result.

    Entries are never deleted. Staleness is checked at read time and a stale
    key is simply overwritten by the next fetch.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    @staticmethod
    def compute_key(category: str, params: Optional[Dict[str, Any]] = None) -> str:
        serialized = json.dumps(params or {}, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        return f"{category}_{serialized}"

    def is_valid(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        return self._clock() - entry.timestamp < self.ttl_seconds

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(key=key, data=data, timestamp=self._clock())

    def entries(self, prefixes: Iterable[str]) -> Iterator[Tuple[str, Any]]:
        prefixes = tuple(prefixes)
        for key, entry in list(self._entries.items()):
            if key.startswith(prefixes):
                yield key, entry.data

    def __len__(self) -> int:
        return len(self._entries)
