"""Response caches injected into the registry and GitHub clients."""

import time
from typing import Any, Callable, Protocol


class Cache(Protocol):
    """Key to TTL'd value store."""

    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any, ttl: float) -> None:
        ...


class TTLCache:
    """In-memory cache whose entries expire ``ttl`` seconds after being set.

    Args:
        clock: Monotonic time source, replaceable in tests.
        max_entries: Oldest entries are evicted past this size.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 10_000,
    ) -> None:
        self._clock = clock
        self._max_entries = max_entries
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        self._entries.pop(key, None)
        self._entries[key] = (self._clock() + ttl, value)
        while len(self._entries) > self._max_entries:
            # dicts keep insertion order, so the first key is the oldest write
            del self._entries[next(iter(self._entries))]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class NullCache:
    """Cache that never stores anything."""

    def get(self, key: str) -> Any | None:
        return None

    def set(self, key: str, value: Any, ttl: float) -> None:
        return None
