from __future__ import annotations

import threading
import time
from typing import Any, Protocol


class CacheStore(Protocol):
    def get(self, cache_key: str) -> Any | None: ...

    def put(self, cache_key: str, value: Any) -> bool: ...


class InMemoryCacheStore:
    """
    Process-local cache store.

    Entries never expire unless ``ttl_seconds`` is positive; expiry is the
    store's own policy and is invisible to the key store above it.
    """

    def __init__(self, *, ttl_seconds: int = 0):
        self._ttl = max(0, int(ttl_seconds))
        self._lock = threading.Lock()
        self._store: dict[str, tuple[float | None, Any]] = {}

    def get(self, cache_key: str) -> Any | None:
        now = time.monotonic()
        with self._lock:
            value = self._store.get(cache_key)
            if not value:
                return None
            expires_at, payload = value
            if expires_at is not None and expires_at <= now:
                self._store.pop(cache_key, None)
                return None
            return payload

    def put(self, cache_key: str, value: Any) -> bool:
        expires_at = time.monotonic() + self._ttl if self._ttl > 0 else None
        with self._lock:
            self._store[cache_key] = (expires_at, value)
        return True

    def delete(self, cache_key: str) -> None:
        with self._lock:
            self._store.pop(cache_key, None)
