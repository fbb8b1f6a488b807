"""QueryCache — TTL cache of query results keyed by canonical query JSON."""

from __future__ import annotations

import json
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from pydantic import BaseModel

from kgctl.domain.queries import QueryResult


def cache_key(query: BaseModel) -> str:
    """Canonical JSON of *query*: sorted keys, defaults included."""
    return json.dumps(query.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class CacheEntry:
    key: str
    result: QueryResult
    inserted_at: float


class QueryCache:
    """Results are served until they are ``ttl`` seconds old.

    Entries are never invalidated by graph mutations; expiry is purely
    time-based. Expired entries are dropped when next looked up.
    """

    def __init__(self, ttl: float = 300.0, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> QueryResult | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.inserted_at >= self._ttl:
                del self._entries[key]
                return None
            return entry.result

    def put(self, key: str, result: QueryResult) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, result=result, inserted_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
