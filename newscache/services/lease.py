"""Refresh lease so that only one process refreshes the shared store at a time."""

from __future__ import annotations

import uuid
from typing import Protocol


class RefreshLease(Protocol):
    def acquire(self) -> bool: ...  # noqa: D401
    def release(self) -> None: ...  # noqa: D401


class _RedisLikeClient(Protocol):
    def set(self, name: str, value: str, *, ex: int | None = None, nx: bool | None = None) -> bool | None: ...
    def get(self, name: str) -> bytes | str | None: ...
    def delete(self, *names: str) -> int: ...


class RedisRefreshLease:
    """Redis-backed lease.

    - acquire: `SET key token NX EX <ttl>`; True only if this process set the key
    - release: deletes the key when it still holds this process's token

    The TTL bounds how long a crashed holder can block other processes. Tests
    inject a fake client with the redis-py ``set``/``get``/``delete`` signatures.
    """

    def __init__(self, client: _RedisLikeClient, *, key: str = "newscache:refresh", ttl_seconds: int = 900) -> None:
        self._client = client
        self._key = key
        self._ttl = ttl_seconds
        self._token = uuid.uuid4().hex

    def acquire(self) -> bool:
        # redis-py: set(name, value, ex=seconds, nx=True) returns True if set, None if not set
        return bool(self._client.set(self._key, self._token, ex=self._ttl, nx=True))

    def release(self) -> None:
        current = self._client.get(self._key)
        if isinstance(current, bytes):
            current = current.decode("utf-8")
        if current == self._token:
            self._client.delete(self._key)


def redis_lease_from_url(redis_url: str, *, ttl_seconds: int) -> RedisRefreshLease:
    import redis as redislib

    client = redislib.Redis.from_url(redis_url, socket_connect_timeout=0.5)
    return RedisRefreshLease(client, ttl_seconds=ttl_seconds)
