from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Any


def make_key(request_dict: dict) -> str:
    normalized = json.dumps(request_dict, sort_keys=True, default=str)
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


class TTLCache:
    """Small in-process cache whose entries expire ``ttl`` seconds after insertion.

    Each capability client owns its own instance; nothing reaches into it
    from outside except through ``stats()`` and ``clear()``.
    """

    def __init__(self, ttl: float = 300.0, clock=time.time) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, dict[str, Any]] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    def get(self, request_dict: dict) -> Any | None:
        key = make_key(request_dict)
        with self._lock:
            entry = self._entries.get(key)
            if entry and entry["expires_at"] > self._clock():
                self._hits += 1
                return entry["value"]
            if entry:
                del self._entries[key]
            self._misses += 1
            return None

    def set(self, request_dict: dict, value: Any) -> None:
        key = make_key(request_dict)
        with self._lock:
            self._entries[key] = {"value": value, "expires_at": self._clock() + self.ttl}

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
