"""Key-value backends shared by every request.

All cross-request coordination (votes, finalization markers, caches) goes through
one of these stores. Writes are plain overwrites so concurrent requests race to
last-write-wins; ``set_if_absent`` is the one atomic claim, used where a side
effect must run at most once.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from threading import Lock
from typing import Protocol

import redis

from texting_theory.core.settings import Settings


class KeyValueStore(Protocol):
    """Subset of Redis commands the engine relies on."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ex: int | None = None) -> None: ...

    def set_if_absent(self, key: str, value: str) -> bool: ...

    def delete(self, *keys: str) -> None: ...

    def hset(self, key: str, mapping: Mapping[str, str]) -> None: ...

    def hgetall(self, key: str) -> dict[str, str]: ...

    def hdel(self, key: str, *fields: str) -> None: ...


class RedisKeyValueStore:
    """Store backed by a Redis server."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> RedisKeyValueStore:
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> str | None:
        return self._redis.get(key)

    def set(self, key: str, value: str, ex: int | None = None) -> None:
        self._redis.set(key, value, ex=ex)

    def set_if_absent(self, key: str, value: str) -> bool:
        return bool(self._redis.set(key, value, nx=True))

    def delete(self, *keys: str) -> None:
        if keys:
            self._redis.delete(*keys)

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        if mapping:
            self._redis.hset(key, mapping=dict(mapping))

    def hgetall(self, key: str) -> dict[str, str]:
        return dict(self._redis.hgetall(key))

    def hdel(self, key: str, *fields: str) -> None:
        if fields:
            self._redis.hdel(key, *fields)


class InMemoryKeyValueStore:
    """Process-local store for single-process deployments and tests."""

    def __init__(self) -> None:
        self._strings: dict[str, str] = {}
        self._expiry: dict[str, float] = {}
        self._hashes: dict[str, dict[str, str]] = {}
        self._lock = Lock()

    def _expire_if_due(self, key: str) -> None:
        deadline = self._expiry.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self._strings.pop(key, None)
            self._expiry.pop(key, None)

    def get(self, key: str) -> str | None:
        with self._lock:
            self._expire_if_due(key)
            return self._strings.get(key)

    def set(self, key: str, value: str, ex: int | None = None) -> None:
        with self._lock:
            self._strings[key] = value
            if ex is not None and ex > 0:
                self._expiry[key] = time.monotonic() + ex
            else:
                self._expiry.pop(key, None)

    def set_if_absent(self, key: str, value: str) -> bool:
        with self._lock:
            self._expire_if_due(key)
            if key in self._strings:
                return False
            self._strings[key] = value
            self._expiry.pop(key, None)
            return True

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._strings.pop(key, None)
                self._expiry.pop(key, None)
                self._hashes.pop(key, None)

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        with self._lock:
            self._hashes.setdefault(key, {}).update(mapping)

    def hgetall(self, key: str) -> dict[str, str]:
        with self._lock:
            return dict(self._hashes.get(key, {}))

    def hdel(self, key: str, *fields: str) -> None:
        with self._lock:
            bucket = self._hashes.get(key)
            if bucket is None:
                return
            for field in fields:
                bucket.pop(field, None)
            if not bucket:
                self._hashes.pop(key, None)


def build_kv_store(config: Settings) -> KeyValueStore:
    """Return the backend selected by ``KV_BACKEND``."""
    if config.kv_backend == "memory":
        return InMemoryKeyValueStore()
    return RedisKeyValueStore.from_url(config.redis_url)
